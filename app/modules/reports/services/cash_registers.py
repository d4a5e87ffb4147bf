"""
Cash Register Reports Service

Daily cash summaries and the per-user register status (live expected
balance and drift against the incrementally maintained balance).
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Dict, Optional
from uuid import UUID

from .base import BaseReportService
from app.modules.pos.models import CashMovement, CashRegister, MovementType

logger = logging.getLogger(__name__)


class CashRegisterReportService(BaseReportService):
    """Service for generating cash register reports"""

    def daily_summary(self, day: date, cash_register_id: Optional[UUID] = None) -> Dict:
        """
        Generate the daily cash summary.

        Buckets every movement of the day by type and derives
        net_cash_flow = sales + deposits - returns - withdrawals.
        """
        start, end = self._day_bounds(day)

        query = self._get_base_cash_movement_query()
        query = self._apply_date_filter(query, CashMovement.created_at, start, end)
        if cash_register_id:
            query = query.filter(CashMovement.cash_register_id == cash_register_id)
        movements = query.order_by(CashMovement.created_at).all()

        totals = {
            movement_type.value: {"count": 0, "total": Decimal("0.00")}
            for movement_type in MovementType
        }
        register_ids = []
        for movement in movements:
            bucket = totals[movement.type.value]
            bucket["count"] += 1
            bucket["total"] += movement.amount
            if movement.cash_register_id not in register_ids:
                register_ids.append(movement.cash_register_id)

        registers = []
        if register_ids:
            registers = self.db.query(CashRegister).filter(
                CashRegister.id.in_(register_ids)
            ).order_by(CashRegister.name).all()

        total_sales = totals[MovementType.SALE.value]["total"]
        total_returns = totals[MovementType.RETURN.value]["total"]
        total_deposits = totals[MovementType.DEPOSIT.value]["total"]
        total_withdrawals = totals[MovementType.WITHDRAWAL.value]["total"]

        return {
            "date": start.date(),
            "cash_register_id": cash_register_id,
            "registers": registers,
            "movements": movements,
            "totals": totals,
            "summary": {
                "total_sales": total_sales,
                "total_returns": total_returns,
                "total_deposits": total_deposits,
                "total_withdrawals": total_withdrawals,
                "net_cash_flow": total_sales + total_deposits - total_returns - total_withdrawals
            }
        }

    def user_register_status(self, user_id: UUID) -> Dict:
        """Open register of a user with its live expected balance and drift"""
        register = self.registers.find_open_by_user(user_id)
        if not register:
            return {
                "has_open_register": False,
                "cash_register": None,
                "expected_balance": None,
                "difference": None
            }

        expected_balance = self.registers.expected_balance(register.id)
        difference = register.current_balance - expected_balance
        if difference != 0:
            logger.warning(
                f"Cash register {register.name} drift: current {register.current_balance}, "
                f"expected {expected_balance}"
            )

        return {
            "has_open_register": True,
            "cash_register": register,
            "expected_balance": expected_balance,
            "difference": difference
        }
