"""
Servicio del libro diario (Journal Engine)

- post_entry: única primitiva de escritura; un par débito/crédito por asiento
- account_balance: débitos, créditos y saldo bruto de una cuenta en un rango
- trial_balance: balance de comprobación a una fecha
- entries_summary: conteo y monto total de asientos filtrados

Los saldos se devuelven en bruto (débito - crédito); el signo según el tipo
de cuenta lo aplica normal_balance() de app.modules.accounts.models.
"""

import logging
from datetime import date, datetime, time, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy import and_, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.common.exceptions import (
    ConflictError, InvalidStateError, NotFoundError, ValidationError
)
from app.modules.accounts.models import Account, normal_balance
from app.modules.journal.models import JournalEntry, PostingEventType
from app.modules.journal.schemas import JournalFilters

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")
CENT = Decimal("0.01")


def to_amount(value) -> Decimal:
    """Convierte un monto a Decimal con dos decimales; ValidationError si no es numérico"""
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
        if not amount.is_finite():
            raise ValidationError(f"Invalid amount: {value!r}")
        return amount.quantize(CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"Invalid amount: {value!r}")


def as_datetime(value, end_of_day: bool = False) -> Optional[datetime]:
    """
    A bare date covers the whole day: start at 00:00, end at 23:59:59.999999.
    Aware datetimes are converted to naive UTC.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.max if end_of_day else time.min)
    raise ValidationError(f"Invalid date: {value!r}")


class JournalService:
    """Servicio para el libro diario de partida doble"""

    def __init__(self, db: Session):
        self.db = db

    # ===== ESCRITURA =====

    def post_entry(self, entry_date: Optional[datetime], description: str,
                   debit_account_id: UUID, credit_account_id: UUID, amount,
                   user_id: UUID, source_type: Optional[PostingEventType] = None,
                   source_id: Optional[str] = None) -> JournalEntry:
        """
        Registrar un asiento de partida doble.

        Toda la validación ocurre antes de escribir: si falla, no se crea
        ninguna fila.
        """
        amount = to_amount(amount)
        if amount <= 0:
            raise ValidationError("Journal entry amount must be positive")

        if debit_account_id == credit_account_id:
            raise ValidationError("Debit and credit accounts must be different")

        if not description or not description.strip():
            raise ValidationError("Description is required")

        self._require_active_account(debit_account_id, "Debit")
        self._require_active_account(credit_account_id, "Credit")

        try:
            entry = JournalEntry(
                date=as_datetime(entry_date) or datetime.utcnow(),
                description=description.strip()[:255],
                debit_account_id=debit_account_id,
                credit_account_id=credit_account_id,
                amount=amount,
                user_id=user_id,
                source_type=source_type,
                source_id=source_id
            )
            self.db.add(entry)
            self.db.commit()
            self.db.refresh(entry)

        except IntegrityError:
            self.db.rollback()
            raise ConflictError("A journal entry for this source event already exists")
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Journal entry {entry.id} posted: debit={debit_account_id} "
            f"credit={credit_account_id} amount={amount}"
        )
        return entry

    # ===== LECTURA =====

    def get_entry(self, entry_id: UUID) -> JournalEntry:
        entry = self.db.get(JournalEntry, entry_id)
        if not entry:
            raise NotFoundError("Journal entry not found")
        return entry

    def find_by_source(self, source_type: PostingEventType, source_id: str) -> Optional[JournalEntry]:
        return self.db.query(JournalEntry).filter(
            JournalEntry.source_type == source_type,
            JournalEntry.source_id == str(source_id)
        ).first()

    def list_entries(self, filters: Optional[JournalFilters] = None,
                     limit: int = 100, offset: int = 0) -> Dict[str, Any]:
        """Listar asientos con filtros, más recientes primero"""
        query = self._apply_filters(self.db.query(JournalEntry), filters or JournalFilters())
        query = query.order_by(JournalEntry.date.desc(), JournalEntry.created_at.desc())

        total = query.count()
        entries = query.offset(offset).limit(limit).all()

        return {
            "entries": entries,
            "total": total,
            "limit": limit,
            "offset": offset
        }

    def account_balance(self, account_id: UUID, start_date=None, end_date=None) -> Dict[str, Decimal]:
        """
        Débitos y créditos de una cuenta en [start_date, end_date] (inclusivo).

        Retorna {"debit", "credit", "balance"} con balance = debit - credit.
        """
        if not self.db.get(Account, account_id):
            raise NotFoundError("Account not found")

        date_filter = self._date_range(start_date, end_date)

        debit = self.db.query(func.coalesce(func.sum(JournalEntry.amount), 0)).filter(
            JournalEntry.debit_account_id == account_id, *date_filter
        ).scalar()
        credit = self.db.query(func.coalesce(func.sum(JournalEntry.amount), 0)).filter(
            JournalEntry.credit_account_id == account_id, *date_filter
        ).scalar()

        debit = to_amount(debit)
        credit = to_amount(credit)
        return {
            "debit": debit,
            "credit": credit,
            "balance": debit - credit
        }

    def balances_by_account(self, start_date=None, end_date=None) -> Dict[UUID, Dict[str, Decimal]]:
        """Débitos y créditos brutos de todas las cuentas con movimiento, en dos consultas"""
        date_filter = self._date_range(start_date, end_date)
        balances: Dict[UUID, Dict[str, Decimal]] = {}

        debit_rows = self.db.query(
            JournalEntry.debit_account_id, func.sum(JournalEntry.amount)
        ).filter(*date_filter).group_by(JournalEntry.debit_account_id).all()
        for account_id, total in debit_rows:
            balances.setdefault(account_id, {"debit": ZERO, "credit": ZERO})["debit"] = to_amount(total)

        credit_rows = self.db.query(
            JournalEntry.credit_account_id, func.sum(JournalEntry.amount)
        ).filter(*date_filter).group_by(JournalEntry.credit_account_id).all()
        for account_id, total in credit_rows:
            balances.setdefault(account_id, {"debit": ZERO, "credit": ZERO})["credit"] = to_amount(total)

        return balances

    def trial_balance(self, as_of=None) -> Dict[str, Any]:
        """
        Balance de comprobación a una fecha.

        Cada cuenta activa lleva su saldo con el signo de su lado normal; los
        totales suman los débitos y créditos brutos, que siempre coinciden.
        """
        as_of_dt = as_datetime(as_of, end_of_day=True) or datetime.utcnow()
        balances = self.balances_by_account(None, as_of_dt)

        accounts = self.db.query(Account).filter(
            Account.is_active == True
        ).order_by(Account.type, Account.code).all()

        lines = []
        total_debit = ZERO
        total_credit = ZERO
        for account in accounts:
            raw = balances.get(account.id, {"debit": ZERO, "credit": ZERO})
            lines.append({
                "id": account.id,
                "code": account.code,
                "name": account.name,
                "type": account.type.value,
                "debit": raw["debit"],
                "credit": raw["credit"],
                "balance": normal_balance(account.type, raw["debit"], raw["credit"])
            })
            total_debit += raw["debit"]
            total_credit += raw["credit"]

        if total_debit != total_credit:
            logger.error(f"Trial balance out of balance: debit={total_debit} credit={total_credit}")

        return {
            "date": as_of_dt,
            "accounts": lines,
            "totals": {
                "debit": total_debit,
                "credit": total_credit
            },
            "is_balanced": total_debit == total_credit
        }

    def entries_summary(self, start_date=None, end_date=None,
                        user_id: Optional[UUID] = None) -> Dict[str, Any]:
        query = self.db.query(
            func.count(JournalEntry.id),
            func.coalesce(func.sum(JournalEntry.amount), 0)
        ).filter(*self._date_range(start_date, end_date))

        if user_id:
            query = query.filter(JournalEntry.user_id == user_id)

        count, total = query.one()
        return {
            "count": count,
            "total_amount": to_amount(total)
        }

    # ===== HELPERS =====

    def _require_active_account(self, account_id: UUID, side: str) -> Account:
        account = self.db.get(Account, account_id)
        if not account:
            raise ValidationError(f"{side} account not found")
        if not account.is_active:
            raise InvalidStateError(f"{side} account {account.code} is inactive")
        return account

    def _date_range(self, start_date, end_date):
        conditions = []
        start = as_datetime(start_date)
        end = as_datetime(end_date, end_of_day=True)
        if start is not None:
            conditions.append(JournalEntry.date >= start)
        if end is not None:
            conditions.append(JournalEntry.date <= end)
        return conditions

    def _apply_filters(self, query, filters: JournalFilters):
        if filters.debit_account_id:
            query = query.filter(JournalEntry.debit_account_id == filters.debit_account_id)
        if filters.credit_account_id:
            query = query.filter(JournalEntry.credit_account_id == filters.credit_account_id)
        if filters.user_id:
            query = query.filter(JournalEntry.user_id == filters.user_id)
        if filters.search:
            query = query.filter(JournalEntry.description.ilike(f"%{filters.search}%"))
        conditions = self._date_range(filters.start_date, filters.end_date)
        if conditions:
            query = query.filter(and_(*conditions))
        return query
