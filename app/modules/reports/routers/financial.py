"""
Financial Reports Router

FastAPI router for ledger-derived financial reports.
"""

from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.common.exceptions import ValidationError
from app.database.database import get_db
from app.modules.accounts.schemas import AccountBalanceOut
from ..services.financial import FinancialReportService
from ..schemas import (
    AccountBalancesResponse,
    ProfitAndLossResponse
)
from app.modules.journal.schemas import TrialBalanceOut


router = APIRouter(prefix="/reports/financial", tags=["Reports"])


def _check_range(start_date: Optional[date], end_date: Optional[date]):
    if start_date and end_date and end_date < start_date:
        raise ValidationError("end_date must be greater than or equal to start_date")


@router.get("/trial-balance", response_model=TrialBalanceOut)
async def get_trial_balance(
    as_of: Optional[date] = Query(None, description="Include entries up to this date"),
    db: Session = Depends(get_db)
):
    """Balance de comprobación a una fecha."""
    service = FinancialReportService(db)
    return service.trial_balance(as_of)


@router.get("/account-balances", response_model=AccountBalancesResponse)
async def get_account_balances(
    start_date: Optional[date] = Query(None, description="Start date for the report period"),
    end_date: Optional[date] = Query(None, description="End date for the report period"),
    account_type: Optional[str] = Query(None, description="ASSET | LIABILITY | EQUITY | REVENUE | EXPENSE"),
    db: Session = Depends(get_db)
):
    """Saldos de todas las cuentas activas agrupados por tipo."""
    _check_range(start_date, end_date)
    service = FinancialReportService(db)
    return service.account_balances_report(start_date, end_date, account_type)


@router.get("/accounts/{account_id}/balance", response_model=AccountBalanceOut)
async def get_account_balance(
    account_id: UUID,
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    db: Session = Depends(get_db)
):
    _check_range(start_date, end_date)
    service = FinancialReportService(db)
    return service.account_balance(account_id, start_date, end_date)


@router.get("/profit-and-loss", response_model=ProfitAndLossResponse)
async def get_profit_and_loss(
    start_date: Optional[date] = Query(None, description="Start date for the report period"),
    end_date: Optional[date] = Query(None, description="End date for the report period"),
    db: Session = Depends(get_db)
):
    """Estado de resultados: ingresos vs gastos del periodo."""
    _check_range(start_date, end_date)
    service = FinancialReportService(db)
    return service.profit_and_loss(start_date, end_date)
