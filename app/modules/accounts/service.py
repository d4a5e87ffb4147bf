"""
Servicio del plan de cuentas (Account Registry)

- Alta/edición de cuentas con código único y jerarquía padre/hijo
- Desactivación (soft delete) bloqueada si la cuenta tiene hijas o asientos
- Árbol de cuentas activas
"""

import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.common.exceptions import (
    AppError, ConflictError, InvalidStateError, NotFoundError, ValidationError
)
from app.modules.accounts.models import Account, AccountType
from app.modules.accounts.schemas import AccountCreate, AccountUpdate
from app.modules.journal.models import JournalEntry

logger = logging.getLogger(__name__)


def parse_account_type(value) -> AccountType:
    """Accepts an AccountType, the schema enum or a raw string"""
    if isinstance(value, AccountType):
        return value
    raw = getattr(value, "value", value)
    try:
        return AccountType(str(raw).upper())
    except ValueError:
        valid = ", ".join(t.value for t in AccountType)
        raise ValidationError(f"Account type must be one of: {valid}")


class AccountService:
    """Servicio para gestión del plan de cuentas"""

    def __init__(self, db: Session):
        self.db = db

    # ===== LECTURA =====

    def get_account(self, account_id: UUID) -> Account:
        account = self.db.get(Account, account_id)
        if not account:
            raise NotFoundError("Account not found")
        return account

    def get_account_by_code(self, code: str) -> Account:
        account = self.find_by_code(code)
        if not account:
            raise NotFoundError(f"Account with code '{code}' not found")
        return account

    def find_by_code(self, code: str) -> Optional[Account]:
        return self.db.query(Account).filter(Account.code == code).first()

    def list_accounts(self, account_type=None, is_active: Optional[bool] = None,
                      search: Optional[str] = None, limit: int = 100,
                      offset: int = 0) -> Dict[str, Any]:
        """Listar cuentas con filtros y paginación"""
        query = self.db.query(Account)

        if account_type is not None:
            query = query.filter(Account.type == parse_account_type(account_type))
        if is_active is not None:
            query = query.filter(Account.is_active == is_active)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(Account.code.ilike(pattern), Account.name.ilike(pattern)))

        query = query.order_by(Account.code)
        total = query.count()
        accounts = query.offset(offset).limit(limit).all()

        return {
            "accounts": accounts,
            "total": total,
            "limit": limit,
            "offset": offset
        }

    def accounts_by_type(self, account_type) -> List[Account]:
        return self.db.query(Account).filter(
            Account.type == parse_account_type(account_type),
            Account.is_active == True
        ).order_by(Account.code).all()

    def active_accounts(self) -> List[Account]:
        return self.db.query(Account).filter(
            Account.is_active == True
        ).order_by(Account.type, Account.code).all()

    # ===== ESCRITURA =====

    def create_account(self, data: AccountCreate) -> Account:
        """Crear cuenta; el código debe ser único y el padre debe existir"""
        try:
            if self.find_by_code(data.code):
                raise ConflictError(f"Account with code '{data.code}' already exists")

            if data.parent_id is not None and not self.db.get(Account, data.parent_id):
                raise ValidationError("Parent account not found")

            account = Account(
                code=data.code,
                name=data.name,
                type=parse_account_type(data.type),
                description=data.description,
                parent_id=data.parent_id,
                is_active=True
            )
            self.db.add(account)
            self.db.commit()
            self.db.refresh(account)

            logger.info(f"Account created: {account.code} {account.name}")
            return account

        except AppError:
            raise
        except IntegrityError:
            self.db.rollback()
            raise ConflictError(f"Account with code '{data.code}' already exists")
        except Exception:
            self.db.rollback()
            raise

    def update_account(self, account_id: UUID, data: AccountUpdate) -> Account:
        """Actualizar cuenta validando código, padre y ciclos"""
        try:
            account = self.get_account(account_id)
            changes = data.model_dump(exclude_unset=True)

            if changes.get("code") and changes["code"] != account.code:
                existing = self.find_by_code(changes["code"])
                if existing and existing.id != account.id:
                    raise ConflictError(f"Account with code '{changes['code']}' already exists")

            if "parent_id" in changes and changes["parent_id"] is not None:
                parent_id = changes["parent_id"]
                if parent_id == account.id:
                    raise ValidationError("Account cannot be its own parent")
                if not self.db.get(Account, parent_id):
                    raise ValidationError("Parent account not found")
                if self._is_descendant(parent_id, account.id):
                    raise ValidationError("Account cannot be its own ancestor")

            if "type" in changes and changes["type"] is not None:
                changes["type"] = parse_account_type(changes["type"])

            if changes.get("is_active") is False and account.is_active:
                self._ensure_can_deactivate(account)

            for field, value in changes.items():
                setattr(account, field, value)

            self.db.commit()
            self.db.refresh(account)
            return account

        except AppError:
            raise
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("Account code already in use")
        except Exception:
            self.db.rollback()
            raise

    def deactivate_account(self, account_id: UUID) -> Account:
        """Desactivar cuenta (soft delete)"""
        account = self.get_account(account_id)
        self._ensure_can_deactivate(account)

        account.deactivate()
        self.db.commit()
        self.db.refresh(account)

        logger.info(f"Account deactivated: {account.code}")
        return account

    # ===== JERARQUÍA =====

    def hierarchy(self) -> List[Dict[str, Any]]:
        """
        Árbol de cuentas activas.

        Primera pasada: mapa id -> nodo. Segunda pasada: cada nodo se cuelga de
        su padre, o de la raíz si no tiene padre activo.
        """
        accounts = self.active_accounts()

        nodes = {}
        for account in accounts:
            nodes[account.id] = {
                "id": account.id,
                "code": account.code,
                "name": account.name,
                "type": account.type.value,
                "parent_id": account.parent_id,
                "children": []
            }

        roots = []
        for account in accounts:
            node = nodes[account.id]
            parent = nodes.get(account.parent_id) if account.parent_id else None
            if parent is not None:
                parent["children"].append(node)
            else:
                roots.append(node)

        return roots

    # ===== HELPERS =====

    def has_children(self, account_id: UUID) -> bool:
        return self.db.query(Account.id).filter(
            Account.parent_id == account_id,
            Account.is_active == True
        ).first() is not None

    def has_journal_entries(self, account_id: UUID) -> bool:
        return self.db.query(JournalEntry.id).filter(
            or_(
                JournalEntry.debit_account_id == account_id,
                JournalEntry.credit_account_id == account_id
            )
        ).first() is not None

    def _ensure_can_deactivate(self, account: Account):
        if self.has_children(account.id):
            raise InvalidStateError("Cannot delete account with child accounts")
        if self.has_journal_entries(account.id):
            raise InvalidStateError("Cannot delete account with journal entries")

    def _is_descendant(self, candidate_id: UUID, ancestor_id: UUID) -> bool:
        """True if candidate_id sits somewhere below ancestor_id"""
        seen = set()
        current = self.db.get(Account, candidate_id)
        while current is not None and current.parent_id is not None:
            if current.parent_id == ancestor_id:
                return True
            if current.parent_id in seen:
                break
            seen.add(current.parent_id)
            current = self.db.get(Account, current.parent_id)
        return False
