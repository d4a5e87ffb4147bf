"""
Base service class for Reports module

Provides common functionality for all report services: the session, the
ledger/cash services reports are built on, and common date filters.
"""

from datetime import date, datetime, time
from typing import Tuple

from sqlalchemy import and_
from sqlalchemy.orm import Session

from app.modules.accounts.service import AccountService
from app.modules.journal.service import JournalService
from app.modules.pos.models import CashMovement
from app.modules.pos.services import CashRegisterService


class BaseReportService:
    """Base service class for all report services"""

    def __init__(self, db: Session):
        self.db = db
        self.accounts = AccountService(db)
        self.journal = JournalService(db)
        self.registers = CashRegisterService(db)

    def _get_base_cash_movement_query(self):
        """Get base query for cash movements"""
        return self.db.query(CashMovement)

    def _day_bounds(self, day: date) -> Tuple[datetime, datetime]:
        """[00:00:00, 23:59:59.999999] of a calendar day"""
        if isinstance(day, datetime):
            day = day.date()
        return datetime.combine(day, time.min), datetime.combine(day, time.max)

    def _apply_date_filter(self, query, date_field, start: datetime, end: datetime):
        """Apply inclusive datetime range filter to a query"""
        return query.filter(
            and_(
                date_field >= start,
                date_field <= end
            )
        )
