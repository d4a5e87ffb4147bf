"""
Tests para el módulo de Reportes

- Resumen diario de caja y flujo neto
- Estado de la caja abierta de un usuario
- Saldos por cuenta y estado de resultados
"""

import pytest
from datetime import date, datetime, timedelta
from decimal import Decimal
from uuid import uuid4

from app.common.exceptions import ValidationError
from app.modules.journal.posting import PostingRules
from app.modules.pos.models import CashMovement, MovementType
from app.modules.pos.schemas import CashRegisterCreate
from app.modules.pos.services import CashRegisterService
from app.modules.reports.services import CashRegisterReportService, FinancialReportService


# ===== FIXTURES =====

@pytest.fixture
def registers(db_session):
    return CashRegisterService(db_session)


@pytest.fixture
def busy_register(registers, register, user_id):
    """Caja abierta con 100, venta 50, depósito 20, devolución 5, retiro 30"""
    registers.open_register(register.id, 100, user_id)
    registers.record_sale(register.id, 50, "S-1", user_id)
    registers.record_deposit(register.id, 20, None, user_id)
    registers.record_return(register.id, 5, "R-1", user_id)
    registers.record_withdrawal(register.id, 30, None, user_id)
    return registers.get_register(register.id)


# ===== RESUMEN DIARIO =====

class TestDailySummary:
    """Resumen diario de caja"""

    def test_net_cash_flow(self, db_session, busy_register):
        report = CashRegisterReportService(db_session).daily_summary(datetime.utcnow().date())

        summary = report["summary"]
        assert summary["total_sales"] == Decimal("50.00")
        assert summary["total_deposits"] == Decimal("20.00")
        assert summary["total_returns"] == Decimal("5.00")
        assert summary["total_withdrawals"] == Decimal("30.00")
        assert summary["net_cash_flow"] == Decimal("35.00")

        assert report["totals"]["OPENING"]["count"] == 1
        assert len(report["movements"]) == 5
        assert [r.id for r in report["registers"]] == [busy_register.id]

    def test_other_day_is_empty(self, db_session, busy_register):
        yesterday = datetime.utcnow().date() - timedelta(days=1)
        report = CashRegisterReportService(db_session).daily_summary(yesterday)

        assert report["movements"] == []
        assert report["summary"]["net_cash_flow"] == Decimal("0.00")

    def test_filter_by_register(self, db_session, busy_register, registers, other_user_id):
        other = registers.create_register(CashRegisterCreate(name="Caja 2"))
        registers.open_register(other.id, 0, other_user_id)
        registers.record_sale(other.id, 500, "S-2", other_user_id)

        service = CashRegisterReportService(db_session)
        today = datetime.utcnow().date()

        assert service.daily_summary(today)["summary"]["total_sales"] == Decimal("550.00")
        assert service.daily_summary(today, other.id)["summary"]["total_sales"] == Decimal("500.00")

    def test_movements_on_day_boundaries(self, db_session, register, user_id):
        db_session.add_all([
            CashMovement(cash_register_id=register.id, type=MovementType.SALE, amount=Decimal("10"),
                         user_id=user_id, created_at=datetime(2024, 3, 1, 0, 0, 0)),
            CashMovement(cash_register_id=register.id, type=MovementType.SALE, amount=Decimal("7"),
                         user_id=user_id, created_at=datetime(2024, 3, 1, 23, 59, 59)),
            CashMovement(cash_register_id=register.id, type=MovementType.SALE, amount=Decimal("1000"),
                         user_id=user_id, created_at=datetime(2024, 3, 2, 0, 0, 0)),
        ])
        db_session.commit()

        report = CashRegisterReportService(db_session).daily_summary(date(2024, 3, 1))
        assert report["summary"]["total_sales"] == Decimal("17.00")


# ===== ESTADO DE CAJA POR USUARIO =====

class TestUserRegisterStatus:
    """Caja abierta del usuario"""

    def test_no_open_register(self, db_session, user_id):
        status = CashRegisterReportService(db_session).user_register_status(user_id)
        assert status == {
            "has_open_register": False,
            "cash_register": None,
            "expected_balance": None,
            "difference": None
        }

    def test_open_register_without_drift(self, db_session, busy_register, user_id):
        status = CashRegisterReportService(db_session).user_register_status(user_id)

        assert status["has_open_register"] is True
        assert status["cash_register"].id == busy_register.id
        assert status["expected_balance"] == Decimal("135.00")
        assert status["difference"] == Decimal("0.00")

    def test_drift_is_reported(self, db_session, busy_register, user_id):
        # Simulate an out-of-band balance change
        busy_register.current_balance = Decimal("140.00")
        db_session.commit()

        status = CashRegisterReportService(db_session).user_register_status(user_id)
        assert status["difference"] == Decimal("5.00")

    def test_closed_register_not_reported(self, db_session, busy_register, registers, user_id):
        registers.close_register(busy_register.id, 135, user_id)
        status = CashRegisterReportService(db_session).user_register_status(user_id)
        assert status["has_open_register"] is False


# ===== REPORTES FINANCIEROS =====

@pytest.fixture
def posted(db_session, chart, user_id):
    rules = PostingRules(db_session)
    rules.post_sale_entry("S-1", 300, "cash", user_id)
    rules.post_sale_entry("S-2", 100, "card", user_id)
    rules.post_return_entry("R-1", 50, "cash", user_id)
    rules.post_purchase_entry("P-1", 120, user_id)
    rules.journal.post_entry(None, "Arriendo", chart["5100"].id, chart["1001"].id, 70, user_id)
    return rules


class TestFinancialReports:
    """Saldos, balance de comprobación y estado de resultados"""

    def test_profit_and_loss(self, db_session, posted):
        report = FinancialReportService(db_session).profit_and_loss()

        assert report["summary"]["total_revenue"] == Decimal("350.00")
        assert report["summary"]["total_expenses"] == Decimal("70.00")
        assert report["summary"]["net_profit"] == Decimal("280.00")
        assert report["summary"]["profit_margin"] == Decimal("80.00")
        assert [line["code"] for line in report["expenses"]["accounts"]] == ["5000", "5100"]

    def test_profit_margin_without_revenue(self, db_session, chart):
        report = FinancialReportService(db_session).profit_and_loss()
        assert report["summary"]["profit_margin"] == Decimal("0.00")

    def test_account_balances_report(self, db_session, posted):
        report = FinancialReportService(db_session).account_balances_report()

        lines = {line["code"]: line for line in report["accounts"]}
        assert lines["1001"]["balance"] == Decimal("180.00")
        assert lines["2000"]["balance"] == Decimal("120.00")
        assert report["summary"]["total_debit"] == report["summary"]["total_credit"]
        assert report["totals_by_type"]["ASSET"]["total_balance"] == Decimal("400.00")

    def test_account_balances_by_type(self, db_session, posted):
        report = FinancialReportService(db_session).account_balances_report(account_type="liability")
        assert [line["code"] for line in report["accounts"]] == ["2000"]

    def test_unknown_account_type(self, db_session, chart):
        with pytest.raises(ValidationError):
            FinancialReportService(db_session).account_balances_report(account_type="income")

    def test_account_balance_signs(self, db_session, posted, chart):
        revenue = FinancialReportService(db_session).account_balance(chart["4000"].id)

        assert revenue["balance"] == Decimal("-350.00")
        assert revenue["normal_balance"] == Decimal("350.00")

    def test_trial_balance(self, db_session, posted):
        report = FinancialReportService(db_session).trial_balance()
        assert report["is_balanced"] is True
        assert report["totals"]["debit"] == Decimal("640.00")


# ===== TESTS DE API =====

class TestReportsAPI:
    """Endpoints /api/v1/reports"""

    def test_daily_summary_endpoint(self, client, busy_register):
        response = client.get(
            "/api/v1/reports/cash-registers/daily-summary",
            params={"date": datetime.utcnow().date().isoformat()}
        )
        assert response.status_code == 200
        body = response.json()
        assert body["summary"]["net_cash_flow"] == "35.00"
        assert body["totals"]["SALE"] == {"count": 1, "total": "50.00"}

    def test_user_status_endpoint(self, client, busy_register, user_id):
        response = client.get(
            "/api/v1/reports/cash-registers/user-status",
            headers={"X-User-Id": str(user_id)}
        )
        assert response.status_code == 200
        assert response.json()["expected_balance"] == "135.00"
        assert response.json()["cash_register"]["id"] == str(busy_register.id)

        response = client.get(f"/api/v1/reports/cash-registers/user-status/{uuid4()}")
        assert response.json()["has_open_register"] is False

    def test_profit_and_loss_endpoint(self, client, posted):
        response = client.get("/api/v1/reports/financial/profit-and-loss")
        assert response.status_code == 200
        assert response.json()["summary"]["net_profit"] == "280.00"

    def test_inverted_range(self, client, chart):
        response = client.get(
            "/api/v1/reports/financial/account-balances",
            params={"start_date": "2024-02-01", "end_date": "2024-01-01"}
        )
        assert response.status_code == 422
