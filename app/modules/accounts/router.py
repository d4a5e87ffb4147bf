from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID

from app.core.config import settings
from app.database.database import get_db
from app.modules.accounts import service
from app.modules.accounts.schemas import (
    AccountCreate, AccountUpdate, AccountOut, AccountList, AccountNode, AccountType
)

account_router = APIRouter(prefix="/accounts", tags=["Accounts"])


@account_router.post("/", response_model=AccountOut, status_code=status.HTTP_201_CREATED)
def create_account(
    account: AccountCreate,
    db: Session = Depends(get_db)
):
    account_service = service.AccountService(db)
    return account_service.create_account(account)


@account_router.get("/", response_model=AccountList)
def list_accounts(
    type: Optional[AccountType] = Query(None, description="Filtrar por tipo de cuenta"),
    is_active: Optional[bool] = Query(None),
    search: Optional[str] = Query(None, description="Buscar por código o nombre"),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db)
):
    account_service = service.AccountService(db)
    return account_service.list_accounts(type, is_active, search, limit, offset)


@account_router.get("/hierarchy", response_model=List[AccountNode])
def get_hierarchy(db: Session = Depends(get_db)):
    """Árbol de cuentas activas; una cuenta cuyo padre está inactivo aparece como raíz."""
    account_service = service.AccountService(db)
    return account_service.hierarchy()


@account_router.get("/by-type/{account_type}", response_model=List[AccountOut])
def get_accounts_by_type(
    account_type: str,
    db: Session = Depends(get_db)
):
    account_service = service.AccountService(db)
    return account_service.accounts_by_type(account_type)


@account_router.get("/by-code/{code}", response_model=AccountOut)
def get_account_by_code(
    code: str,
    db: Session = Depends(get_db)
):
    account_service = service.AccountService(db)
    return account_service.get_account_by_code(code)


@account_router.get("/{account_id}", response_model=AccountOut)
def get_account(
    account_id: UUID,
    db: Session = Depends(get_db)
):
    account_service = service.AccountService(db)
    return account_service.get_account(account_id)


@account_router.patch("/{account_id}", response_model=AccountOut)
def update_account(
    account_id: UUID,
    update: AccountUpdate,
    db: Session = Depends(get_db)
):
    account_service = service.AccountService(db)
    return account_service.update_account(account_id, update)


@account_router.delete("/{account_id}", status_code=status.HTTP_204_NO_CONTENT)
def deactivate_account(
    account_id: UUID,
    db: Session = Depends(get_db)
):
    """Soft delete: la cuenta queda inactiva y conserva su historial."""
    account_service = service.AccountService(db)
    account_service.deactivate_account(account_id)
