"""
Financial Reports Service

Account balances, trial balance and profit & loss, all computed from the
journal. Signed balances always follow the account type's normal side.
"""

from decimal import Decimal
from typing import Dict, Optional
from uuid import UUID

from .base import BaseReportService
from app.modules.accounts.models import AccountType, normal_balance
from app.modules.accounts.service import parse_account_type

ZERO = Decimal("0.00")


class FinancialReportService(BaseReportService):
    """Service for generating financial reports"""

    def account_balance(self, account_id: UUID, start_date=None, end_date=None) -> Dict:
        """Raw debit/credit of one account plus its normal-signed balance."""
        account = self.accounts.get_account(account_id)
        raw = self.journal.account_balance(account_id, start_date, end_date)

        return {
            "account_id": account.id,
            "code": account.code,
            "name": account.name,
            "type": account.type.value,
            "debit": raw["debit"],
            "credit": raw["credit"],
            "balance": raw["balance"],
            "normal_balance": normal_balance(account.type, raw["debit"], raw["credit"]),
            "start_date": start_date,
            "end_date": end_date
        }

    def trial_balance(self, as_of=None) -> Dict:
        return self.journal.trial_balance(as_of)

    def account_balances_report(self, start_date=None, end_date=None,
                                account_type: Optional[str] = None) -> Dict:
        """
        Generate account balances report.

        Every active account with raw totals and signed balance, grouped by
        type with per-type totals.
        """
        if account_type:
            accounts = self.accounts.accounts_by_type(parse_account_type(account_type))
        else:
            accounts = self.accounts.active_accounts()

        balances = self.journal.balances_by_account(start_date, end_date)

        lines = []
        by_type: Dict[str, list] = {}
        totals_by_type: Dict[str, Dict[str, Decimal]] = {}
        for account in accounts:
            raw = balances.get(account.id, {"debit": ZERO, "credit": ZERO})
            line = {
                "id": account.id,
                "code": account.code,
                "name": account.name,
                "type": account.type.value,
                "debit": raw["debit"],
                "credit": raw["credit"],
                "balance": normal_balance(account.type, raw["debit"], raw["credit"])
            }
            lines.append(line)
            by_type.setdefault(account.type.value, []).append(line)

            type_totals = totals_by_type.setdefault(
                account.type.value,
                {"total_debit": ZERO, "total_credit": ZERO, "total_balance": ZERO}
            )
            type_totals["total_debit"] += line["debit"]
            type_totals["total_credit"] += line["credit"]
            type_totals["total_balance"] += line["balance"]

        return {
            "period": {"start_date": start_date, "end_date": end_date},
            "accounts": lines,
            "balances_by_type": by_type,
            "totals_by_type": totals_by_type,
            "summary": {
                "total_accounts": len(lines),
                "total_debit": sum((line["debit"] for line in lines), ZERO),
                "total_credit": sum((line["credit"] for line in lines), ZERO)
            }
        }

    def profit_and_loss(self, start_date=None, end_date=None) -> Dict:
        """
        Generate profit & loss report.

        Revenue and expense accounts with normal-signed balances, so returns
        debited to revenue reduce total revenue.
        """
        balances = self.journal.balances_by_account(start_date, end_date)

        sections = {}
        for account_type in (AccountType.REVENUE, AccountType.EXPENSE):
            lines = []
            for account in self.accounts.accounts_by_type(account_type):
                raw = balances.get(account.id, {"debit": ZERO, "credit": ZERO})
                lines.append({
                    "id": account.id,
                    "code": account.code,
                    "name": account.name,
                    "balance": normal_balance(account_type, raw["debit"], raw["credit"])
                })
            sections[account_type] = {
                "accounts": lines,
                "total": sum((line["balance"] for line in lines), ZERO)
            }

        total_revenue = sections[AccountType.REVENUE]["total"]
        total_expenses = sections[AccountType.EXPENSE]["total"]
        net_profit = total_revenue - total_expenses
        profit_margin = ZERO
        if total_revenue > 0:
            profit_margin = (net_profit / total_revenue * 100).quantize(Decimal("0.01"))

        return {
            "period": {"start_date": start_date, "end_date": end_date},
            "revenue": sections[AccountType.REVENUE],
            "expenses": sections[AccountType.EXPENSE],
            "summary": {
                "total_revenue": total_revenue,
                "total_expenses": total_expenses,
                "net_profit": net_profit,
                "profit_margin": profit_margin
            }
        }
