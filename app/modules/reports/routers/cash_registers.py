"""
Cash Register Reports Router

FastAPI router for the daily cash summary and the per-user register status.
"""

from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.database.database import get_db
from app.dependencies.userDependencies import user_dependency
from ..services.cash_registers import CashRegisterReportService
from ..schemas import DailySummaryResponse, UserRegisterStatusResponse


router = APIRouter(prefix="/reports/cash-registers", tags=["Reports"])


@router.get("/daily-summary", response_model=DailySummaryResponse)
async def get_daily_summary(
    day: date = Query(..., alias="date", description="Calendar day of the summary"),
    cash_register_id: Optional[UUID] = Query(None, description="Filter by specific cash register"),
    db: Session = Depends(get_db)
):
    """
    Resumen diario de caja.

    Totales por tipo de movimiento y flujo neto:
    ventas + depósitos - devoluciones - retiros.
    """
    service = CashRegisterReportService(db)
    return service.daily_summary(day, cash_register_id)


@router.get("/user-status", response_model=UserRegisterStatusResponse)
async def get_user_register_status(
    user_id: user_dependency,
    db: Session = Depends(get_db)
):
    """Caja abierta del usuario con saldo esperado y diferencia."""
    service = CashRegisterReportService(db)
    return service.user_register_status(user_id)


@router.get("/user-status/{user_id}", response_model=UserRegisterStatusResponse)
async def get_register_status_for_user(
    user_id: UUID,
    db: Session = Depends(get_db)
):
    """Same as /user-status for an arbitrary user (supervisor view)."""
    service = CashRegisterReportService(db)
    return service.user_register_status(user_id)
