"""
Modelos SQLAlchemy para el plan de cuentas (Chart of Accounts)

- Account: cuenta contable con jerarquía padre/hijo
- AccountType: ASSET, LIABILITY, EQUITY, REVENUE, EXPENSE

Las cuentas nunca se borran físicamente: se desactivan (is_active=False)
para conservar las referencias históricas del libro diario.
"""

from app.database.database import Base
from sqlalchemy import Column, String, ForeignKey, Enum, Text
from sqlalchemy.orm import relationship
from sqlalchemy.dialects.postgresql import UUID
from uuid import uuid4
from decimal import Decimal
from app.common.mixins import TimestampMixin, ActiveMixin
import enum


# ===== ENUMS =====

class AccountType(enum.Enum):
    """Tipos de cuenta contable"""
    ASSET = "ASSET"
    LIABILITY = "LIABILITY"
    EQUITY = "EQUITY"
    REVENUE = "REVENUE"
    EXPENSE = "EXPENSE"

    @property
    def is_debit_normal(self) -> bool:
        return self in (AccountType.ASSET, AccountType.EXPENSE)


def normal_balance(account_type: AccountType, debit: Decimal, credit: Decimal) -> Decimal:
    """Signed balance following the account type's normal side.

    ASSET/EXPENSE: debit - credit. LIABILITY/EQUITY/REVENUE: credit - debit.
    """
    if account_type.is_debit_normal:
        return debit - credit
    return credit - debit


# ===== MODELOS =====

class Account(Base, TimestampMixin, ActiveMixin):
    """
    Cuenta del plan de cuentas.

    El código es único en todo el plan. parent_id forma un árbol; una cuenta
    no puede ser su propio padre.
    """
    __tablename__ = "accounts"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    code = Column(String(20), nullable=False, unique=True, index=True)
    name = Column(String(100), nullable=False)
    type = Column(Enum(AccountType), nullable=False, index=True)
    description = Column(Text, nullable=True)
    parent_id = Column(UUID(as_uuid=True), ForeignKey("accounts.id"), nullable=True, index=True)

    # Relationships
    parent = relationship("Account", remote_side=[id], back_populates="children")
    children = relationship("Account", back_populates="parent")

    def __repr__(self):
        return f"<Account {self.code} {self.name} ({self.type.value})>"
