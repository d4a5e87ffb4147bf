"""
Tests para el libro diario y las reglas de contabilización

- Validación de asientos sin escrituras parciales
- Reglas de venta, compra y devolución por medio de pago
- Idempotencia por evento de origen
- Saldos por cuenta y balance de comprobación
- Outbox de contabilizaciones fallidas y reintento
"""

import pytest
from datetime import datetime, date, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

from app.common.exceptions import (
    ConfigurationError, InvalidStateError, NotFoundError, ValidationError
)
from app.modules.journal.models import JournalEntry, OutboxStatus, PostingEventType, PostingOutbox
from app.modules.journal.posting import PostingRules, cash_account_code
from app.modules.journal.schemas import JournalFilters
from app.modules.journal.service import JournalService, to_amount


# ===== FIXTURES =====

@pytest.fixture
def journal(db_session):
    return JournalService(db_session)


@pytest.fixture
def rules(db_session):
    return PostingRules(db_session)


def entry_count(db_session):
    return db_session.query(JournalEntry).count()


# ===== TESTS DE ASIENTOS =====

class TestPostEntry:
    """Validaciones de post_entry; un fallo nunca deja filas escritas"""

    def test_post_entry(self, journal, chart, user_id):
        entry = journal.post_entry(
            None, "Aporte de capital", chart["1001"].id, chart["3000"].id, "150.005", user_id
        )

        assert entry.amount == Decimal("150.01")
        assert entry.debit_account_id == chart["1001"].id
        assert entry.credit_account_id == chart["3000"].id
        assert entry.source_type is None
        assert entry.date is not None

    @pytest.mark.parametrize("amount", [0, "-5", "abc"])
    def test_invalid_amount(self, journal, chart, user_id, db_session, amount):
        with pytest.raises(ValidationError):
            journal.post_entry(None, "x", chart["1001"].id, chart["3000"].id, amount, user_id)
        assert entry_count(db_session) == 0

    def test_same_account_both_sides(self, journal, chart, user_id, db_session):
        with pytest.raises(ValidationError):
            journal.post_entry(None, "x", chart["1001"].id, chart["1001"].id, 10, user_id)
        assert entry_count(db_session) == 0

    def test_missing_description(self, journal, chart, user_id):
        with pytest.raises(ValidationError):
            journal.post_entry(None, "  ", chart["1001"].id, chart["3000"].id, 10, user_id)

    def test_missing_account(self, journal, chart, user_id, db_session):
        with pytest.raises(ValidationError):
            journal.post_entry(None, "x", uuid4(), chart["3000"].id, 10, user_id)
        assert entry_count(db_session) == 0

    def test_inactive_account(self, journal, chart, user_id, db_session):
        chart["5100"].is_active = False
        db_session.commit()

        with pytest.raises(InvalidStateError):
            journal.post_entry(None, "x", chart["5100"].id, chart["1001"].id, 10, user_id)
        assert entry_count(db_session) == 0

    def test_get_missing_entry(self, journal):
        with pytest.raises(NotFoundError):
            journal.get_entry(uuid4())


# ===== TESTS DE REGLAS =====

class TestPostingRules:
    """Reglas de contabilización por evento"""

    def test_cash_sale(self, rules, chart, journal, user_id):
        entry = rules.post_sale_entry("S-1", Decimal("200"), "cash", user_id)

        assert entry.debit_account_id == chart["1001"].id
        assert entry.credit_account_id == chart["4000"].id
        assert entry.amount == Decimal("200.00")
        assert entry.source_type == PostingEventType.SALE
        assert entry.source_id == "S-1"

        assert journal.account_balance(chart["1001"].id)["debit"] == Decimal("200.00")
        assert journal.account_balance(chart["4000"].id)["credit"] == Decimal("200.00")

    @pytest.mark.parametrize("method,code", [
        ("card", "1002"),
        ("bank_transfer", "1002"),
        ("CHECK", "1003"),
        ("digital_wallet", "1004"),
        ("crypto", "1001"),
        (None, "1001"),
    ])
    def test_payment_method_account(self, rules, chart, user_id, method, code):
        assert cash_account_code(method) == code

        entry = rules.post_sale_entry(f"S-{code}-{method}", 10, method, user_id)
        assert entry.debit_account_id == chart[code].id

    def test_purchase(self, rules, chart, user_id):
        entry = rules.post_purchase_entry("P-1", Decimal("80"), user_id)

        assert entry.debit_account_id == chart["1200"].id
        assert entry.credit_account_id == chart["2000"].id
        assert entry.description == "Purchase transaction - P-1"

    def test_return_reverses_sale(self, rules, chart, journal, user_id):
        rules.post_sale_entry("S-1", 200, "card", user_id)
        entry = rules.post_return_entry("R-1", 50, "card", user_id)

        assert entry.debit_account_id == chart["4000"].id
        assert entry.credit_account_id == chart["1002"].id

        bank = journal.account_balance(chart["1002"].id)
        assert bank == {
            "debit": Decimal("200.00"),
            "credit": Decimal("50.00"),
            "balance": Decimal("150.00")
        }

    def test_missing_well_known_account(self, rules, db_session, user_id):
        with pytest.raises(ConfigurationError) as exc:
            rules.post_sale_entry("S-1", 10, "cash", user_id)
        assert "1001" in str(exc.value)
        assert entry_count(db_session) == 0

    def test_same_event_posted_once(self, rules, chart, user_id, db_session):
        first = rules.post_sale_entry("S-1", 200, "cash", user_id)
        second = rules.post_sale_entry("S-1", 200, "cash", user_id)

        assert first.id == second.id
        assert entry_count(db_session) == 1

    def test_same_id_different_event(self, rules, chart, user_id, db_session):
        rules.post_sale_entry("42", 10, "cash", user_id)
        rules.post_return_entry("42", 10, "cash", user_id)
        assert entry_count(db_session) == 2

    def test_concurrent_duplicate_resolves_to_existing(self, rules, chart, user_id, db_session, monkeypatch):
        winner_id = rules.post_sale_entry("S-1", 200, "cash", user_id).id

        # The first lookup misses, as if another worker committed in between
        real_find = rules.journal.find_by_source
        lookups = []

        def find_after_race(source_type, source_id):
            lookups.append(source_id)
            if len(lookups) == 1:
                return None
            return real_find(source_type, source_id)

        monkeypatch.setattr(rules.journal, "find_by_source", find_after_race)

        entry = rules.post_sale_entry("S-1", 200, "cash", user_id)

        assert entry.id == winner_id
        assert len(lookups) == 2
        assert entry_count(db_session) == 1


# ===== TESTS DE SALDOS =====

class TestBalances:
    """Saldos por cuenta, filtros y balance de comprobación"""

    def test_trial_balance_always_balances(self, rules, journal, chart, user_id):
        rules.post_sale_entry("S-1", 200, "cash", user_id)
        rules.post_sale_entry("S-2", "99.99", "card", user_id)
        rules.post_purchase_entry("P-1", 80, user_id)
        rules.post_return_entry("R-1", 50, "cash", user_id)

        result = journal.trial_balance()

        assert result["is_balanced"] is True
        assert result["totals"]["debit"] == result["totals"]["credit"] == Decimal("429.99")

        lines = {line["code"]: line for line in result["accounts"]}
        assert lines["1001"]["balance"] == Decimal("150.00")
        assert lines["4000"]["balance"] == Decimal("249.99")
        assert lines["2000"]["balance"] == Decimal("80.00")

    def test_empty_ledger(self, journal, chart):
        result = journal.trial_balance()
        assert result["is_balanced"] is True
        assert result["totals"]["debit"] == Decimal("0.00")

    def test_balance_of_missing_account(self, journal):
        with pytest.raises(NotFoundError):
            journal.account_balance(uuid4())

    def test_date_range_is_inclusive(self, journal, chart, user_id):
        for day in (1, 2, 3):
            journal.post_entry(
                datetime(2024, 1, day, 12, 0), f"Venta {day}",
                chart["1001"].id, chart["4000"].id, 10, user_id
            )

        balance = journal.account_balance(chart["1001"].id, date(2024, 1, 2), date(2024, 1, 3))
        assert balance["debit"] == Decimal("20.00")

        as_of = journal.trial_balance(date(2024, 1, 1))
        assert as_of["totals"]["debit"] == Decimal("10.00")

    def test_aware_date_stored_as_utc(self, journal, chart, user_id):
        bogota = timezone(timedelta(hours=-5))
        entry = journal.post_entry(
            datetime(2026, 1, 1, 23, 30, tzinfo=bogota), "Venta nocturna",
            chart["1001"].id, chart["4000"].id, 10, user_id
        )

        assert entry.date == datetime(2026, 1, 2, 4, 30)
        assert journal.trial_balance(date(2026, 1, 1))["totals"]["debit"] == Decimal("0.00")
        assert journal.account_balance(chart["1001"].id, date(2026, 1, 2), date(2026, 1, 2))["debit"] == Decimal("10.00")

    def test_bare_end_date_covers_whole_day(self, journal, chart, user_id):
        journal.post_entry(
            datetime(2026, 1, 1, 12, 0), "Venta", chart["1001"].id, chart["4000"].id, 10, user_id
        )

        listing = journal.list_entries(JournalFilters(start_date=date(2026, 1, 1), end_date=date(2026, 1, 1)))
        assert listing["total"] == 1
        assert journal.entries_summary(date(2026, 1, 1), date(2026, 1, 1))["count"] == 1

    def test_list_and_summary(self, rules, journal, chart, user_id, other_user_id):
        rules.post_sale_entry("S-1", 100, "cash", user_id)
        rules.post_sale_entry("S-2", 40, "cash", other_user_id)

        listing = journal.list_entries(JournalFilters(user_id=user_id))
        assert listing["total"] == 1
        assert listing["entries"][0].source_id == "S-1"

        listing = journal.list_entries(JournalFilters(search="S-2"))
        assert listing["total"] == 1

        assert journal.entries_summary() == {"count": 2, "total_amount": Decimal("140.00")}
        assert journal.entries_summary(user_id=other_user_id)["total_amount"] == Decimal("40.00")


# ===== TESTS DE OUTBOX =====

class TestPostingOutbox:
    """Contabilización de mejor esfuerzo con reintento"""

    def test_safe_post_success(self, rules, chart, user_id, db_session):
        entry = rules.safe_post_sale_entry("S-1", 25, "cash", user_id)
        assert entry is not None
        assert db_session.query(PostingOutbox).count() == 0

    def test_failure_is_queued_not_raised(self, rules, user_id, db_session):
        assert rules.safe_post_sale_entry("S-1", 25, "cash", user_id) is None

        row = db_session.query(PostingOutbox).one()
        assert row.status == OutboxStatus.PENDING
        assert row.attempts == 1
        assert row.event_type == PostingEventType.SALE
        assert "1001" in row.last_error
        assert entry_count(db_session) == 0

    def test_retry_recovers_once_accounts_exist(self, rules, user_id, db_session):
        from app.modules.accounts.seed_data import seed_chart_of_accounts

        rules.safe_post_purchase_entry("P-1", 80, user_id)
        seed_chart_of_accounts(db_session)

        result = rules.retry_pending_postings()

        assert result == {"processed": 1, "posted": 1, "failed": 0, "pending": 0}
        row = db_session.query(PostingOutbox).one()
        assert row.status == OutboxStatus.POSTED
        assert row.journal_entry_id is not None
        assert entry_count(db_session) == 1

    def test_retry_gives_up_after_max_attempts(self, rules, user_id, db_session):
        rules.safe_post_return_entry("R-1", 10, "cash", user_id)

        result = rules.retry_pending_postings(max_attempts=2)

        assert result["failed"] == 1
        failed = rules.list_failed_postings()
        assert len(failed) == 1
        assert failed[0].attempts == 2
        assert rules.retry_pending_postings(max_attempts=2)["processed"] == 0

    def test_celery_task_runs_retry(self, rules, user_id, db_session):
        from app.modules.accounts.seed_data import seed_chart_of_accounts
        from app.modules.journal.tasks import retry_pending_postings

        rules.safe_post_sale_entry("S-9", 12, "card", user_id)
        seed_chart_of_accounts(db_session)

        result = retry_pending_postings.apply().get()

        assert result["posted"] == 1
        db_session.expire_all()
        assert db_session.query(PostingOutbox).one().status == OutboxStatus.POSTED


def test_to_amount_rounds_half_up():
    assert to_amount("2.345") == Decimal("2.35")
    with pytest.raises(ValidationError):
        to_amount("NaN")


# ===== TESTS DE API =====

class TestJournalAPI:
    """Endpoints /api/v1/journal"""

    def test_post_sale(self, client, chart, user_id):
        response = client.post(
            "/api/v1/journal/postings/sales",
            json={"sale_id": "S-1", "total": "200.00", "payment_method": "cash"},
            headers={"X-User-Id": str(user_id)}
        )
        assert response.status_code == 201
        body = response.json()
        assert body["debit_account_id"] == str(chart["1001"].id)
        assert body["source_type"] == "sale"

        response = client.get("/api/v1/journal/trial-balance")
        assert response.status_code == 200
        assert response.json()["is_balanced"] is True

    def test_user_header_required(self, client, chart):
        response = client.post(
            "/api/v1/journal/postings/sales",
            json={"sale_id": "S-1", "total": "10"}
        )
        assert response.status_code == 422

    def test_malformed_user_header(self, client, chart):
        response = client.post(
            "/api/v1/journal/postings/sales",
            json={"sale_id": "S-1", "total": "10"},
            headers={"X-User-Id": "not-a-uuid"}
        )
        assert response.status_code == 400

    def test_manual_entry_validation_error(self, client, chart, user_id):
        response = client.post(
            "/api/v1/journal/entries",
            json={
                "description": "Mismo lado",
                "debit_account_id": str(chart["1001"].id),
                "credit_account_id": str(chart["1001"].id),
                "amount": "10"
            },
            headers={"X-User-Id": str(user_id)}
        )
        assert response.status_code == 422
        assert response.json()["error"] == "ValidationError"

    def test_list_and_summary_agree_on_bare_dates(self, client, journal, chart, user_id):
        journal.post_entry(
            datetime(2026, 1, 1, 12, 0), "Venta", chart["1001"].id, chart["4000"].id, 10, user_id
        )
        params = {"start_date": "2026-01-01", "end_date": "2026-01-01"}

        listing = client.get("/api/v1/journal/entries", params=params)
        assert listing.status_code == 200
        assert listing.json()["total"] == 1

        summary = client.get("/api/v1/journal/entries/summary", params=params)
        assert summary.json() == {"count": 1, "total_amount": "10.00"}

    def test_entry_with_offset_lands_on_utc_day(self, client, chart, user_id):
        response = client.post(
            "/api/v1/journal/entries",
            json={
                "date": "2026-01-01T23:30:00-05:00",
                "description": "Venta nocturna",
                "debit_account_id": str(chart["1001"].id),
                "credit_account_id": str(chart["4000"].id),
                "amount": "10"
            },
            headers={"X-User-Id": str(user_id)}
        )
        assert response.status_code == 201
        assert response.json()["date"] == "2026-01-02T04:30:00"

        response = client.get("/api/v1/journal/trial-balance", params={"as_of": "2026-01-01"})
        assert response.json()["totals"]["debit"] == "0.00"

    def test_missing_accounts_is_configuration_error(self, client, user_id):
        response = client.post(
            "/api/v1/journal/postings/purchases",
            json={"purchase_id": "P-1", "total": "10"},
            headers={"X-User-Id": str(user_id)}
        )
        assert response.status_code == 500
        assert response.json()["error"] == "ConfigurationError"
