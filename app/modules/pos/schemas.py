"""
Esquemas Pydantic para el módulo POS (Point of Sale)

Define la validación de datos de entrada y salida para:
- CashRegister: Cajas registradoras con apertura/cierre
- CashMovement: Movimientos de caja
"""

from pydantic import BaseModel, Field, field_validator
from decimal import Decimal
from typing import Optional, List
from uuid import UUID
from datetime import datetime
from enum import Enum


# ===== ENUMS =====

class MovementType(str, Enum):
    OPENING = "OPENING"
    SALE = "SALE"
    RETURN = "RETURN"
    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"
    CLOSING = "CLOSING"


# ===== CASH REGISTER SCHEMAS =====

class CashRegisterCreate(BaseModel):
    """Esquema para crear caja registradora"""
    name: str = Field(..., min_length=1, max_length=100, description="Nombre de la caja")

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        cleaned = v.strip()
        if not cleaned:
            raise ValueError('El nombre no puede estar vacío')
        return cleaned


class CashRegisterOpen(BaseModel):
    """Esquema para abrir caja registradora"""
    opening_balance: Decimal = Field(..., ge=0, description="Saldo inicial de apertura")


class CashRegisterClose(BaseModel):
    """Esquema para cerrar caja registradora"""
    actual_balance: Decimal = Field(..., ge=0, description="Efectivo contado al cierre")


class CashRegisterOut(BaseModel):
    """Esquema de salida para caja registradora"""
    id: UUID
    name: str
    is_open: bool
    status: str
    opening_balance: Decimal
    current_balance: Decimal
    opened_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    opened_by_id: Optional[UUID] = None
    closed_by_id: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class CashRegisterList(BaseModel):
    cash_registers: List[CashRegisterOut]
    total: int
    limit: int
    offset: int


class CashRegisterCloseSummary(BaseModel):
    """Resultado del arqueo de cierre"""
    cash_register: CashRegisterOut
    opening_balance: Decimal
    expected_balance: Decimal
    actual_balance: Decimal
    difference: Decimal = Field(description="actual_balance - expected_balance")


class ExpectedBalanceOut(BaseModel):
    cash_register_id: UUID
    expected_balance: Decimal
    current_balance: Decimal
    drift: Decimal = Field(description="current_balance - expected_balance")


# ===== CASH MOVEMENT SCHEMAS =====

class CashMovementCreate(BaseModel):
    """Esquema para registrar movimiento manual o de venta/devolución"""
    amount: Decimal = Field(..., gt=0, description="Monto del movimiento (siempre positivo)")
    reference: Optional[str] = Field(None, max_length=100, description="Referencia (ID de venta/devolución)")
    description: Optional[str] = Field(None, max_length=500)


class CashMovementOut(BaseModel):
    id: UUID
    cash_register_id: UUID
    type: MovementType
    amount: Decimal
    signed_amount: Decimal
    description: Optional[str] = None
    reference: Optional[str] = None
    user_id: UUID
    created_at: datetime

    model_config = {"from_attributes": True}

    @field_validator('type', mode='before')
    @classmethod
    def enum_value(cls, v):
        return getattr(v, "value", v)


class CashMovementList(BaseModel):
    movements: List[CashMovementOut]
    total: int
    limit: int
    offset: int
