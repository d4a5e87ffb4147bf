from pydantic import BaseModel, Field, field_validator
from decimal import Decimal
from uuid import UUID
from typing import Optional, List, Union
from datetime import date, datetime
from enum import Enum


class AccountType(str, Enum):
    ASSET = "ASSET"
    LIABILITY = "LIABILITY"
    EQUITY = "EQUITY"
    REVENUE = "REVENUE"
    EXPENSE = "EXPENSE"


class AccountCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=20, description="Código único de la cuenta")
    name: str = Field(..., min_length=1, max_length=100, description="Nombre de la cuenta")
    type: AccountType = Field(..., description="Tipo de cuenta")
    description: Optional[str] = Field(None, max_length=500)
    parent_id: Optional[UUID] = Field(None, description="Cuenta padre")

    @field_validator('code', 'name')
    @classmethod
    def strip_text(cls, v: str) -> str:
        cleaned = v.strip()
        if not cleaned:
            raise ValueError('El valor no puede estar vacío')
        return cleaned


class AccountUpdate(BaseModel):
    code: Optional[str] = Field(None, min_length=1, max_length=20)
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    type: Optional[AccountType] = None
    description: Optional[str] = Field(None, max_length=500)
    parent_id: Optional[UUID] = None
    is_active: Optional[bool] = None


class AccountOut(BaseModel):
    id: UUID
    code: str
    name: str
    type: AccountType
    description: Optional[str] = None
    parent_id: Optional[UUID] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @field_validator('type', mode='before')
    @classmethod
    def enum_value(cls, v):
        return getattr(v, "value", v)


class AccountNode(BaseModel):
    """Nodo del árbol de cuentas"""
    id: UUID
    code: str
    name: str
    type: AccountType
    parent_id: Optional[UUID] = None
    children: List['AccountNode'] = Field(default_factory=list)


class AccountList(BaseModel):
    accounts: List[AccountOut]
    total: int
    limit: int
    offset: int


class AccountBalanceOut(BaseModel):
    account_id: UUID
    code: str
    name: str
    type: AccountType
    debit: Decimal
    credit: Decimal
    balance: Decimal = Field(description="Raw debit - credit")
    normal_balance: Decimal = Field(description="Balance signed by the account type's normal side")
    start_date: Optional[Union[datetime, date]] = None
    end_date: Optional[Union[datetime, date]] = None


AccountNode.model_rebuild()
