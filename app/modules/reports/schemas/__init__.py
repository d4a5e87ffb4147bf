"""
Pydantic schemas for Reports module

Defines request and response models for all report endpoints.
"""

from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.modules.pos.schemas import CashMovementOut, CashRegisterOut


# Cash register reports
class MovementBucket(BaseModel):
    count: int
    total: Decimal


class DailySummaryTotals(BaseModel):
    total_sales: Decimal
    total_returns: Decimal
    total_deposits: Decimal
    total_withdrawals: Decimal
    net_cash_flow: Decimal = Field(description="sales + deposits - returns - withdrawals")


class DailySummaryResponse(BaseModel):
    date: date
    cash_register_id: Optional[UUID] = None
    registers: List[CashRegisterOut]
    movements: List[CashMovementOut]
    totals: Dict[str, MovementBucket]
    summary: DailySummaryTotals


class UserRegisterStatusResponse(BaseModel):
    has_open_register: bool
    cash_register: Optional[CashRegisterOut] = None
    expected_balance: Optional[Decimal] = None
    difference: Optional[Decimal] = Field(None, description="current_balance - expected_balance")


# Financial reports
class BalanceLine(BaseModel):
    id: UUID
    code: str
    name: str
    type: str
    debit: Decimal
    credit: Decimal
    balance: Decimal


class AccountBalancesResponse(BaseModel):
    period: Dict[str, Optional[date]]
    accounts: List[BalanceLine]
    balances_by_type: Dict[str, List[BalanceLine]]
    totals_by_type: Dict[str, Dict[str, Decimal]]
    summary: Dict[str, Decimal]


class ProfitAndLossLine(BaseModel):
    id: UUID
    code: str
    name: str
    balance: Decimal


class ProfitAndLossSection(BaseModel):
    accounts: List[ProfitAndLossLine]
    total: Decimal


class ProfitAndLossSummary(BaseModel):
    total_revenue: Decimal
    total_expenses: Decimal
    net_profit: Decimal
    profit_margin: Decimal = Field(description="Net profit as a percentage of revenue")


class ProfitAndLossResponse(BaseModel):
    period: Dict[str, Optional[date]]
    revenue: ProfitAndLossSection
    expenses: ProfitAndLossSection
    summary: ProfitAndLossSummary

