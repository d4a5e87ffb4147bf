"""
Routers FastAPI para el módulo POS (Point of Sale)

Define los endpoints REST para:
- CashRegisters: alta, apertura y cierre con arqueo
- CashMovements: ventas, devoluciones, depósitos y retiros en efectivo

El usuario que opera llega en el header X-User-Id.
"""

from fastapi import APIRouter, Depends, status, Query, Path
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from app.core.config import settings
from app.database.database import get_db
from app.dependencies.userDependencies import user_dependency
from app.modules.pos.services import CashRegisterService
from app.modules.pos.schemas import (
    CashRegisterCreate, CashRegisterOpen, CashRegisterClose, CashRegisterOut,
    CashRegisterList, CashRegisterCloseSummary, ExpectedBalanceOut,
    CashMovementCreate, CashMovementOut, CashMovementList
)


# ===== CASH REGISTERS ROUTER =====

cash_registers_router = APIRouter(prefix="/cash-registers", tags=["POS"])


@cash_registers_router.post("/", response_model=CashRegisterOut, status_code=status.HTTP_201_CREATED)
async def create_cash_register(
    register_data: CashRegisterCreate,
    db: Session = Depends(get_db)
):
    """Crear caja registradora (inicia cerrada y con saldo cero)."""
    service = CashRegisterService(db)
    return service.create_register(register_data)


@cash_registers_router.get("/", response_model=CashRegisterList)
async def get_cash_registers(
    is_open: Optional[bool] = Query(None, description="Filtrar por estado"),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db)
):
    service = CashRegisterService(db)
    return service.list_registers(is_open, limit, offset)


@cash_registers_router.get("/current", response_model=Optional[CashRegisterOut])
async def get_current_cash_register(
    user_id: user_dependency,
    db: Session = Depends(get_db)
):
    """Caja abierta por el usuario actual (null si no tiene ninguna)."""
    service = CashRegisterService(db)
    return service.find_open_by_user(user_id)


@cash_registers_router.get("/{register_id}", response_model=CashRegisterOut)
async def get_cash_register(
    register_id: UUID = Path(..., description="ID de la caja registradora"),
    db: Session = Depends(get_db)
):
    service = CashRegisterService(db)
    return service.get_register(register_id)


@cash_registers_router.post("/{register_id}/open", response_model=CashRegisterOut)
async def open_cash_register(
    register_data: CashRegisterOpen,
    user_id: user_dependency,
    register_id: UUID = Path(..., description="ID de la caja registradora"),
    db: Session = Depends(get_db)
):
    """
    Abrir caja registradora.

    Validaciones:
    - La caja no puede estar abierta
    - El usuario no puede tener otra caja abierta
    - El saldo inicial no puede ser negativo
    """
    service = CashRegisterService(db)
    return service.open_register(register_id, register_data.opening_balance, user_id)


@cash_registers_router.post("/{register_id}/close", response_model=CashRegisterCloseSummary)
async def close_cash_register(
    close_data: CashRegisterClose,
    user_id: user_dependency,
    register_id: UUID = Path(..., description="ID de la caja registradora"),
    db: Session = Depends(get_db)
):
    """
    Cerrar caja registradora con arqueo.

    - **actual_balance**: efectivo contado
    - Responde con saldo esperado (recalculado desde los movimientos) y diferencia
    - Solo el usuario que abrió la caja puede cerrarla
    """
    service = CashRegisterService(db)
    return service.close_register(register_id, close_data.actual_balance, user_id)


@cash_registers_router.get("/{register_id}/expected-balance", response_model=ExpectedBalanceOut)
async def get_expected_balance(
    register_id: UUID = Path(..., description="ID de la caja registradora"),
    db: Session = Depends(get_db)
):
    service = CashRegisterService(db)
    register = service.get_register(register_id)
    expected = service.expected_balance(register_id)
    return {
        "cash_register_id": register.id,
        "expected_balance": expected,
        "current_balance": register.current_balance,
        "drift": register.current_balance - expected
    }


# ===== CASH MOVEMENTS =====

@cash_registers_router.get("/{register_id}/movements", response_model=CashMovementList)
async def get_cash_movements(
    register_id: UUID = Path(..., description="ID de la caja registradora"),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db)
):
    service = CashRegisterService(db)
    return service.list_movements(register_id, limit, offset)


@cash_registers_router.post("/{register_id}/deposits", response_model=CashMovementOut,
                            status_code=status.HTTP_201_CREATED)
async def create_deposit(
    movement: CashMovementCreate,
    user_id: user_dependency,
    register_id: UUID = Path(..., description="ID de la caja registradora"),
    db: Session = Depends(get_db)
):
    service = CashRegisterService(db)
    return service.record_deposit(register_id, movement.amount, movement.reference,
                                  user_id, movement.description)


@cash_registers_router.post("/{register_id}/withdrawals", response_model=CashMovementOut,
                            status_code=status.HTTP_201_CREATED)
async def create_withdrawal(
    movement: CashMovementCreate,
    user_id: user_dependency,
    register_id: UUID = Path(..., description="ID de la caja registradora"),
    db: Session = Depends(get_db)
):
    """Retiro de efectivo; falla si el saldo de la caja no alcanza."""
    service = CashRegisterService(db)
    return service.record_withdrawal(register_id, movement.amount, movement.reference,
                                     user_id, movement.description)


@cash_registers_router.post("/{register_id}/sales", response_model=CashMovementOut,
                            status_code=status.HTTP_201_CREATED)
async def create_sale_movement(
    movement: CashMovementCreate,
    user_id: user_dependency,
    register_id: UUID = Path(..., description="ID de la caja registradora"),
    db: Session = Depends(get_db)
):
    service = CashRegisterService(db)
    return service.record_sale(register_id, movement.amount, movement.reference,
                               user_id, movement.description)


@cash_registers_router.post("/{register_id}/returns", response_model=CashMovementOut,
                            status_code=status.HTTP_201_CREATED)
async def create_return_movement(
    movement: CashMovementCreate,
    user_id: user_dependency,
    register_id: UUID = Path(..., description="ID de la caja registradora"),
    db: Session = Depends(get_db)
):
    service = CashRegisterService(db)
    return service.record_return(register_id, movement.amount, movement.reference,
                                 user_id, movement.description)
