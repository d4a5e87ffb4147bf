"""
Modelos SQLAlchemy para el módulo POS (Point of Sale)

Este módulo maneja las cajas registradoras físicas:
- CashRegister: Cajas con ciclo de apertura/cierre (CLOSED -> OPEN -> CLOSED)
- CashMovement: Bitácora de movimientos de efectivo, solo de inserción

current_balance se mantiene de forma incremental con cada movimiento; el
balance esperado se recalcula desde la bitácora. La diferencia entre ambos
al cierre es la señal de arqueo (faltantes/sobrantes).
"""

from app.database.database import Base
from sqlalchemy import (
    Column, String, Boolean, DateTime, ForeignKey, Numeric, Enum, Text, Index, CheckConstraint
)
from sqlalchemy.orm import relationship
from sqlalchemy.dialects.postgresql import UUID
from uuid import uuid4
from decimal import Decimal
from app.common.mixins import TimestampMixin
import enum


# ===== ENUMS =====

class MovementType(enum.Enum):
    """Tipos de movimiento de caja"""
    OPENING = "OPENING"         # Apertura (base, ya incluida en opening_balance)
    SALE = "SALE"               # Venta (ingreso)
    RETURN = "RETURN"           # Devolución (egreso)
    DEPOSIT = "DEPOSIT"         # Depósito (ingreso manual)
    WITHDRAWAL = "WITHDRAWAL"   # Retiro (egreso manual)
    CLOSING = "CLOSING"         # Cierre (marcador, lleva el saldo contado)


INFLOW_TYPES = (MovementType.SALE, MovementType.DEPOSIT)
OUTFLOW_TYPES = (MovementType.RETURN, MovementType.WITHDRAWAL)


def replay_balance(opening_balance: Decimal, movements) -> Decimal:
    """Reconstruir el saldo de caja recorriendo la bitácora en orden"""
    balance = opening_balance
    for movement in movements:
        balance += movement.signed_amount
    return balance


# ===== MODELOS =====

class CashRegister(Base, TimestampMixin):
    """
    Caja registradora.

    Un usuario solo puede tener una caja abierta a la vez; lo garantiza el
    índice único parcial sobre opened_by_id de las cajas abiertas.
    """
    __tablename__ = "cash_registers"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    name = Column(String(100), nullable=False, unique=True, index=True)
    is_open = Column(Boolean, nullable=False, default=False, index=True)

    # Balances
    opening_balance = Column(Numeric(15, 2), nullable=False, default=0)
    current_balance = Column(Numeric(15, 2), nullable=False, default=0)

    # Control de apertura/cierre
    opened_at = Column(DateTime, nullable=True)
    closed_at = Column(DateTime, nullable=True)
    opened_by_id = Column(UUID(as_uuid=True), nullable=True, index=True)
    closed_by_id = Column(UUID(as_uuid=True), nullable=True)

    # Relationships
    movements = relationship(
        "CashMovement", back_populates="cash_register", order_by="CashMovement.created_at"
    )

    __table_args__ = (
        Index(
            "uq_cash_register_open_per_user", "opened_by_id",
            unique=True,
            postgresql_where=(is_open == True),
            sqlite_where=(is_open == True)
        ),
        CheckConstraint("current_balance >= 0", name="ck_cash_register_balance_non_negative"),
    )

    @property
    def status(self) -> str:
        return "OPEN" if self.is_open else "CLOSED"


class CashMovement(Base, TimestampMixin):
    """
    Movimiento de caja registradora.

    amount siempre es positivo (o cero para OPENING/CLOSING); el signo lo da
    el tipo.
    """
    __tablename__ = "cash_movements"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    cash_register_id = Column(UUID(as_uuid=True), ForeignKey("cash_registers.id"), nullable=False, index=True)
    type = Column(Enum(MovementType), nullable=False, index=True)
    amount = Column(Numeric(15, 2), nullable=False)
    description = Column(Text, nullable=True)
    reference = Column(String(100), nullable=True)
    user_id = Column(UUID(as_uuid=True), nullable=False, index=True)

    # Relationships
    cash_register = relationship("CashRegister", back_populates="movements")

    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_cash_movement_amount_non_negative"),
    )

    @property
    def signed_amount(self) -> Decimal:
        """Efecto sobre el saldo: ingresos +, egresos -, apertura/cierre 0"""
        if self.type in INFLOW_TYPES:
            return self.amount
        if self.type in OUTFLOW_TYPES:
            return -self.amount
        return Decimal("0")
