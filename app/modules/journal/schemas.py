from pydantic import BaseModel, Field, field_validator
from decimal import Decimal
from uuid import UUID
from typing import Optional, List, Dict, Any
from datetime import date, datetime

from app.modules.accounts.schemas import AccountType


class JournalEntryCreate(BaseModel):
    """Esquema para crear un asiento manual"""
    date: Optional[datetime] = Field(None, description="Fecha contable (por defecto ahora)")
    description: str = Field(..., min_length=1, max_length=255)
    debit_account_id: UUID
    credit_account_id: UUID
    amount: Decimal = Field(..., description="Monto del asiento (positivo)")

    @field_validator('description')
    @classmethod
    def validate_description(cls, v: str) -> str:
        cleaned = v.strip()
        if not cleaned:
            raise ValueError('La descripción no puede estar vacía')
        return cleaned


class JournalEntryOut(BaseModel):
    id: UUID
    date: datetime
    description: str
    debit_account_id: UUID
    credit_account_id: UUID
    amount: Decimal
    user_id: UUID
    source_type: Optional[str] = None
    source_id: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}

    @field_validator('source_type', mode='before')
    @classmethod
    def enum_value(cls, v):
        return getattr(v, "value", v)


class JournalEntryList(BaseModel):
    entries: List[JournalEntryOut]
    total: int
    limit: int
    offset: int


class JournalFilters(BaseModel):
    debit_account_id: Optional[UUID] = None
    credit_account_id: Optional[UUID] = None
    user_id: Optional[UUID] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    search: Optional[str] = None


class EntriesSummary(BaseModel):
    count: int
    total_amount: Decimal


class TrialBalanceLine(BaseModel):
    id: UUID
    code: str
    name: str
    type: AccountType
    debit: Decimal
    credit: Decimal
    balance: Decimal


class TrialBalanceOut(BaseModel):
    date: datetime
    accounts: List[TrialBalanceLine]
    totals: Dict[str, Decimal]
    is_balanced: bool


class SalePosting(BaseModel):
    sale_id: str
    total: Decimal = Field(..., gt=0)
    payment_method: Optional[str] = "cash"


class PurchasePosting(BaseModel):
    purchase_id: str
    total: Decimal = Field(..., gt=0)


class ReturnPosting(BaseModel):
    return_id: str
    total: Decimal = Field(..., gt=0)
    payment_method: Optional[str] = "cash"


class PostingOutboxOut(BaseModel):
    id: UUID
    event_type: str
    source_id: str
    payload: Dict[str, Any]
    status: str
    attempts: int
    last_error: Optional[str] = None
    journal_entry_id: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @field_validator('event_type', 'status', mode='before')
    @classmethod
    def enum_value(cls, v):
        return getattr(v, "value", v)
