from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session
from datetime import date
from typing import Dict, List, Optional
from uuid import UUID

from app.core.config import settings
from app.database.database import get_db
from app.dependencies.userDependencies import user_dependency
from app.modules.accounts.schemas import AccountBalanceOut
from app.modules.journal.models import OutboxStatus
from app.modules.journal.posting import PostingRules
from app.modules.journal.service import JournalService
from app.modules.journal.schemas import (
    JournalEntryCreate, JournalEntryOut, JournalEntryList, JournalFilters,
    EntriesSummary, TrialBalanceOut, SalePosting, PurchasePosting, ReturnPosting,
    PostingOutboxOut
)
from app.modules.reports.services.financial import FinancialReportService

journal_router = APIRouter(prefix="/journal", tags=["Journal"])


# ===== ASIENTOS =====

@journal_router.post("/entries", response_model=JournalEntryOut, status_code=status.HTTP_201_CREATED)
def create_entry(
    entry: JournalEntryCreate,
    user_id: user_dependency,
    db: Session = Depends(get_db)
):
    """Asiento manual: un débito y un crédito por el mismo monto."""
    journal_service = JournalService(db)
    return journal_service.post_entry(
        entry.date, entry.description, entry.debit_account_id,
        entry.credit_account_id, entry.amount, user_id
    )


@journal_router.get("/entries", response_model=JournalEntryList)
def list_entries(
    debit_account_id: Optional[UUID] = Query(None),
    credit_account_id: Optional[UUID] = Query(None),
    user_id: Optional[UUID] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    search: Optional[str] = Query(None, description="Buscar en la descripción"),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db)
):
    filters = JournalFilters(
        debit_account_id=debit_account_id,
        credit_account_id=credit_account_id,
        user_id=user_id,
        start_date=start_date,
        end_date=end_date,
        search=search
    )
    journal_service = JournalService(db)
    return journal_service.list_entries(filters, limit, offset)


@journal_router.get("/entries/summary", response_model=EntriesSummary)
def entries_summary(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    user_id: Optional[UUID] = Query(None),
    db: Session = Depends(get_db)
):
    journal_service = JournalService(db)
    return journal_service.entries_summary(start_date, end_date, user_id)


@journal_router.get("/entries/{entry_id}", response_model=JournalEntryOut)
def get_entry(
    entry_id: UUID,
    db: Session = Depends(get_db)
):
    journal_service = JournalService(db)
    return journal_service.get_entry(entry_id)


# ===== SALDOS =====

@journal_router.get("/accounts/{account_id}/balance", response_model=AccountBalanceOut)
def account_balance(
    account_id: UUID,
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    db: Session = Depends(get_db)
):
    return FinancialReportService(db).account_balance(account_id, start_date, end_date)


@journal_router.get("/trial-balance", response_model=TrialBalanceOut)
def trial_balance(
    as_of: Optional[date] = Query(None, description="Fecha de corte (por defecto hoy)"),
    db: Session = Depends(get_db)
):
    journal_service = JournalService(db)
    return journal_service.trial_balance(as_of)


# ===== CONTABILIZACIÓN DE EVENTOS =====

@journal_router.post("/postings/sales", response_model=JournalEntryOut, status_code=status.HTTP_201_CREATED)
def post_sale(
    posting: SalePosting,
    user_id: user_dependency,
    db: Session = Depends(get_db)
):
    """Venta: débito caja/banco según medio de pago, crédito ventas. Idempotente por sale_id."""
    rules = PostingRules(db)
    return rules.post_sale_entry(posting.sale_id, posting.total, posting.payment_method, user_id)


@journal_router.post("/postings/purchases", response_model=JournalEntryOut, status_code=status.HTTP_201_CREATED)
def post_purchase(
    posting: PurchasePosting,
    user_id: user_dependency,
    db: Session = Depends(get_db)
):
    rules = PostingRules(db)
    return rules.post_purchase_entry(posting.purchase_id, posting.total, user_id)


@journal_router.post("/postings/returns", response_model=JournalEntryOut, status_code=status.HTTP_201_CREATED)
def post_return(
    posting: ReturnPosting,
    user_id: user_dependency,
    db: Session = Depends(get_db)
):
    rules = PostingRules(db)
    return rules.post_return_entry(posting.return_id, posting.total, posting.payment_method, user_id)


# ===== OUTBOX =====

@journal_router.get("/outbox", response_model=List[PostingOutboxOut])
def list_outbox(
    status_filter: Optional[OutboxStatus] = Query(None, alias="status"),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db)
):
    """Contabilizaciones pendientes o fallidas para revisión del operador."""
    rules = PostingRules(db)
    return rules.list_outbox(status_filter, limit, offset)


@journal_router.post("/outbox/retry", response_model=Dict[str, int])
def retry_outbox(db: Session = Depends(get_db)):
    """Reintenta ahora las contabilizaciones pendientes (el worker lo hace periódicamente)."""
    rules = PostingRules(db)
    return rules.retry_pending_postings()
