"""
Reglas de contabilización de eventos de negocio

| Evento      | Débito                          | Crédito                        |
|-------------|---------------------------------|--------------------------------|
| Venta       | caja/banco según medio de pago  | Ventas (4000)                  |
| Compra      | Inventario (1200)               | Cuentas por pagar (2000)       |
| Devolución  | Ventas (4000)                   | caja/banco del pago original   |

Los módulos de ventas, compras y devoluciones llaman a safe_post_*: la
contabilización es de mejor esfuerzo y nunca revierte el evento de negocio.
Un fallo se registra en posting_outbox y el worker de Celery lo reintenta.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.common.exceptions import ConfigurationError, ConflictError
from app.core.config import settings
from app.modules.accounts.models import Account
from app.modules.journal.models import (
    JournalEntry, OutboxStatus, PostingEventType, PostingOutbox
)
from app.modules.journal.service import JournalService, to_amount

logger = logging.getLogger(__name__)


def cash_account_code(payment_method: Optional[str]) -> str:
    """Cuenta de caja/banco para un medio de pago (desconocido -> caja)"""
    return settings.cash_account_code(payment_method)


class PostingRules:
    """Traduce eventos de negocio a un único par débito/crédito"""

    def __init__(self, db: Session, journal: Optional[JournalService] = None):
        self.db = db
        self.journal = journal or JournalService(db)

    # ===== REGLAS =====

    def post_sale_entry(self, sale_id, total, payment_method: Optional[str],
                        user_id: UUID) -> JournalEntry:
        """Venta: débito caja/banco, crédito ventas"""
        cash_account = self._resolve(cash_account_code(payment_method), "sale")
        revenue_account = self._resolve(settings.SALES_REVENUE_ACCOUNT_CODE, "sale")
        return self._post(
            PostingEventType.SALE, sale_id,
            description=f"Sale transaction - {sale_id}",
            debit=cash_account, credit=revenue_account,
            amount=total, user_id=user_id
        )

    def post_purchase_entry(self, purchase_id, total, user_id: UUID) -> JournalEntry:
        """Compra: débito inventario, crédito cuentas por pagar"""
        inventory_account = self._resolve(settings.INVENTORY_ACCOUNT_CODE, "purchase")
        payable_account = self._resolve(settings.ACCOUNTS_PAYABLE_ACCOUNT_CODE, "purchase")
        return self._post(
            PostingEventType.PURCHASE, purchase_id,
            description=f"Purchase transaction - {purchase_id}",
            debit=inventory_account, credit=payable_account,
            amount=total, user_id=user_id
        )

    def post_return_entry(self, return_id, total, payment_method: Optional[str],
                          user_id: UUID) -> JournalEntry:
        """Devolución: débito ventas, crédito caja/banco del pago original"""
        revenue_account = self._resolve(settings.SALES_REVENUE_ACCOUNT_CODE, "return")
        cash_account = self._resolve(cash_account_code(payment_method), "return")
        return self._post(
            PostingEventType.RETURN, return_id,
            description=f"Return transaction - {return_id}",
            debit=revenue_account, credit=cash_account,
            amount=total, user_id=user_id
        )

    # ===== MEJOR ESFUERZO =====

    def safe_post_sale_entry(self, sale_id, total, payment_method, user_id) -> Optional[JournalEntry]:
        return self._safe_post(
            PostingEventType.SALE, sale_id,
            {"total": str(total), "payment_method": payment_method, "user_id": str(user_id)}
        )

    def safe_post_purchase_entry(self, purchase_id, total, user_id) -> Optional[JournalEntry]:
        return self._safe_post(
            PostingEventType.PURCHASE, purchase_id,
            {"total": str(total), "user_id": str(user_id)}
        )

    def safe_post_return_entry(self, return_id, total, payment_method, user_id) -> Optional[JournalEntry]:
        return self._safe_post(
            PostingEventType.RETURN, return_id,
            {"total": str(total), "payment_method": payment_method, "user_id": str(user_id)}
        )

    # ===== OUTBOX =====

    def retry_pending_postings(self, max_attempts: Optional[int] = None) -> Dict[str, int]:
        """
        Reintentar las contabilizaciones pendientes.

        Éxito -> POSTED. Fallo -> attempts + 1; al llegar a max_attempts -> FAILED.
        """
        max_attempts = max_attempts or settings.POSTING_OUTBOX_MAX_ATTEMPTS
        pending = self.db.query(PostingOutbox).filter(
            PostingOutbox.status == OutboxStatus.PENDING
        ).order_by(PostingOutbox.created_at).all()

        result = {"processed": 0, "posted": 0, "failed": 0, "pending": 0}
        for row in pending:
            row_id = row.id
            event_type = row.event_type
            source_id = row.source_id
            payload = dict(row.payload or {})
            result["processed"] += 1

            try:
                entry = self._dispatch(event_type, source_id, payload)
            except Exception as e:
                self.db.rollback()
                row = self.db.get(PostingOutbox, row_id)
                row.attempts += 1
                row.last_error = str(e)
                if row.attempts >= max_attempts:
                    row.status = OutboxStatus.FAILED
                    result["failed"] += 1
                    logger.error(
                        f"Posting for {event_type.value} {source_id} failed permanently "
                        f"after {row.attempts} attempts: {e}"
                    )
                else:
                    result["pending"] += 1
                    logger.warning(f"Retry of {event_type.value} {source_id} failed: {e}")
                self.db.commit()
                continue

            row = self.db.get(PostingOutbox, row_id)
            row.attempts += 1
            row.status = OutboxStatus.POSTED
            row.last_error = None
            row.journal_entry_id = entry.id
            self.db.commit()
            result["posted"] += 1
            logger.info(f"Pending posting for {event_type.value} {source_id} recovered")

        return result

    def list_outbox(self, status: Optional[OutboxStatus] = None,
                    limit: int = 100, offset: int = 0) -> List[PostingOutbox]:
        query = self.db.query(PostingOutbox)
        if status is not None:
            query = query.filter(PostingOutbox.status == status)
        return query.order_by(PostingOutbox.created_at).offset(offset).limit(limit).all()

    def list_failed_postings(self) -> List[PostingOutbox]:
        return self.list_outbox(OutboxStatus.FAILED)

    # ===== HELPERS =====

    def _resolve(self, code: str, event: str) -> Account:
        account = self.db.query(Account).filter(Account.code == code).first()
        if not account:
            raise ConfigurationError(
                f"Required account {code} not found for {event} transaction"
            )
        return account

    def _post(self, event_type: PostingEventType, source_id, description: str,
              debit: Account, credit: Account, amount, user_id: UUID) -> JournalEntry:
        existing = self.journal.find_by_source(event_type, str(source_id))
        if existing:
            logger.info(f"{event_type.value} {source_id} already posted as entry {existing.id}")
            return existing

        try:
            return self.journal.post_entry(
                datetime.utcnow(), description, debit.id, credit.id, amount, user_id,
                source_type=event_type, source_id=str(source_id)
            )
        except ConflictError:
            # Concurrent posting of the same event won the unique constraint
            existing = self.journal.find_by_source(event_type, str(source_id))
            if existing:
                return existing
            raise

    def _dispatch(self, event_type: PostingEventType, source_id: str,
                  payload: Dict[str, Any]) -> JournalEntry:
        total = to_amount(payload.get("total"))
        user_id = UUID(payload["user_id"])
        if event_type == PostingEventType.SALE:
            return self.post_sale_entry(source_id, total, payload.get("payment_method"), user_id)
        if event_type == PostingEventType.PURCHASE:
            return self.post_purchase_entry(source_id, total, user_id)
        return self.post_return_entry(source_id, total, payload.get("payment_method"), user_id)

    def _safe_post(self, event_type: PostingEventType, source_id,
                   payload: Dict[str, Any]) -> Optional[JournalEntry]:
        try:
            return self._dispatch(event_type, str(source_id), payload)
        except Exception as e:
            self.db.rollback()
            logger.warning(
                f"Failed to create journal entry for {event_type.value} {source_id}: {e}. "
                f"Queued for retry."
            )
            self._enqueue(event_type, str(source_id), payload, str(e))
            return None

    def _enqueue(self, event_type: PostingEventType, source_id: str,
                 payload: Dict[str, Any], error: str):
        try:
            row = self.db.query(PostingOutbox).filter(
                PostingOutbox.event_type == event_type,
                PostingOutbox.source_id == source_id
            ).first()
            if row is None:
                row = PostingOutbox(
                    event_type=event_type,
                    source_id=source_id,
                    payload=payload,
                    status=OutboxStatus.PENDING,
                    attempts=1
                )
                self.db.add(row)
            else:
                row.attempts += 1
                row.status = OutboxStatus.PENDING
            row.last_error = error
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.warning(f"Outbox row for {event_type.value} {source_id} already queued")
        except Exception:
            self.db.rollback()
            logger.exception(f"Could not queue posting for {event_type.value} {source_id}")
