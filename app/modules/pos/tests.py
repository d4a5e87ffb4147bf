"""
Tests para el módulo POS - Cajas registradoras

Cubre:
- Ciclo de vida apertura/cierre y arqueo
- Una sola caja abierta por usuario
- Movimientos: saldo nunca negativo, caja cerrada rechaza movimientos
- Saldo esperado recalculado vs saldo mantenido
- Endpoints REST
"""

import pytest
from decimal import Decimal
from uuid import uuid4

from sqlalchemy.orm import Session

from app.common.exceptions import (
    ConflictError, InvalidStateError, NotFoundError, ValidationError
)
from app.database.database import engine
from app.modules.pos.models import CashMovement, MovementType, replay_balance
from app.modules.pos.schemas import CashRegisterCreate
from app.modules.pos.services import CashRegisterService


# ===== FIXTURES =====

@pytest.fixture
def service(db_session):
    return CashRegisterService(db_session)


@pytest.fixture
def open_register(service, register, user_id):
    return service.open_register(register.id, Decimal("100"), user_id)


def movement_types(db_session, register_id):
    return [
        m.type for m in db_session.query(CashMovement)
        .filter(CashMovement.cash_register_id == register_id)
        .order_by(CashMovement.created_at).all()
    ]


# ===== TESTS DE CAJAS =====

class TestRegisters:
    """Alta y consulta de cajas"""

    def test_new_register_is_closed(self, register):
        assert register.is_open is False
        assert register.status == "CLOSED"
        assert register.current_balance == Decimal("0")

    def test_duplicate_name(self, service, register):
        with pytest.raises(ConflictError):
            service.create_register(CashRegisterCreate(name="Caja 1"))

    def test_missing_register(self, service):
        with pytest.raises(NotFoundError):
            service.get_register(uuid4())

    def test_list_by_state(self, service, open_register):
        service.create_register(CashRegisterCreate(name="Caja 2"))

        assert service.list_registers()["total"] == 2
        assert [r.name for r in service.list_registers(is_open=True)["cash_registers"]] == ["Caja 1"]

    def test_expected_balance_never_opened(self, service, register):
        assert service.expected_balance(register.id) == Decimal("0.00")


# ===== TESTS DE APERTURA =====

class TestOpen:
    """Apertura de caja"""

    def test_open_sets_balances(self, service, open_register, user_id, db_session):
        assert open_register.is_open is True
        assert open_register.opened_by_id == user_id
        assert open_register.opening_balance == Decimal("100.00")
        assert open_register.current_balance == Decimal("100.00")
        assert service.expected_balance(open_register.id) == Decimal("100.00")
        assert movement_types(db_session, open_register.id) == [MovementType.OPENING]

    def test_already_open(self, service, open_register, other_user_id):
        with pytest.raises(InvalidStateError):
            service.open_register(open_register.id, 10, other_user_id)

    def test_one_open_register_per_user(self, service, open_register, user_id):
        second = service.create_register(CashRegisterCreate(name="Caja 2"))
        with pytest.raises(InvalidStateError):
            service.open_register(second.id, 10, user_id)

        assert service.get_register(second.id).is_open is False

    def test_negative_opening_balance(self, service, register, user_id, db_session):
        with pytest.raises(ValidationError):
            service.open_register(register.id, "-1", user_id)
        assert movement_types(db_session, register.id) == []

    def test_reopen_starts_new_session(self, service, open_register, user_id):
        service.record_sale(open_register.id, 40, "S-1", user_id)
        service.close_register(open_register.id, 140, user_id)

        reopened = service.open_register(open_register.id, 20, user_id)

        assert reopened.closed_at is None
        assert reopened.current_balance == Decimal("20.00")
        assert service.expected_balance(reopened.id) == Decimal("20.00")


# ===== TESTS DE MOVIMIENTOS =====

class TestMovements:
    """Ventas, devoluciones, depósitos y retiros"""

    def test_inflows_and_outflows(self, service, open_register, user_id):
        service.record_sale(open_register.id, 50, "S-1", user_id)
        service.record_deposit(open_register.id, "25.50", None, user_id)
        service.record_return(open_register.id, 10, "R-1", user_id)
        withdrawal = service.record_withdrawal(open_register.id, 30, None, user_id, "Pago proveedor")

        assert withdrawal.description == "Pago proveedor"
        assert withdrawal.signed_amount == Decimal("-30.00")

        register = service.get_register(open_register.id)
        assert register.current_balance == Decimal("135.50")
        assert service.expected_balance(register.id) == register.current_balance

    def test_insufficient_balance(self, service, open_register, user_id, db_session):
        with pytest.raises(InvalidStateError) as exc:
            service.record_withdrawal(open_register.id, "100.01", None, user_id)

        assert "Insufficient" in str(exc.value)
        assert service.get_register(open_register.id).current_balance == Decimal("100.00")
        assert movement_types(db_session, open_register.id) == [MovementType.OPENING]

    def test_return_cannot_exceed_balance(self, service, open_register, user_id):
        with pytest.raises(InvalidStateError):
            service.record_return(open_register.id, 101, "R-1", user_id)

    def test_withdraw_everything(self, service, open_register, user_id):
        service.record_withdrawal(open_register.id, 100, None, user_id)
        assert service.get_register(open_register.id).current_balance == Decimal("0.00")

    @pytest.mark.parametrize("method", ["record_sale", "record_deposit", "record_withdrawal", "record_return"])
    def test_closed_register_rejects_movements(self, service, register, user_id, method):
        with pytest.raises(InvalidStateError):
            getattr(service, method)(register.id, 10, None, user_id)

    @pytest.mark.parametrize("amount", [0, "-3"])
    def test_non_positive_amount(self, service, open_register, user_id, amount):
        with pytest.raises(ValidationError):
            service.record_deposit(open_register.id, amount, None, user_id)

    def test_list_movements(self, service, open_register, user_id):
        service.record_sale(open_register.id, 5, "S-1", user_id)
        result = service.list_movements(open_register.id)

        assert result["total"] == 2
        assert result["movements"][1].reference == "S-1"


# ===== TESTS DE CIERRE =====

class TestClose:
    """Cierre con arqueo"""

    def test_balanced_close(self, service, open_register, user_id, db_session):
        service.record_sale(open_register.id, 50, "S-1", user_id)
        service.record_withdrawal(open_register.id, 30, None, user_id)

        result = service.close_register(open_register.id, Decimal("120"), user_id)

        assert result["opening_balance"] == Decimal("100.00")
        assert result["expected_balance"] == Decimal("120.00")
        assert result["actual_balance"] == Decimal("120.00")
        assert result["difference"] == Decimal("0.00")

        register = result["cash_register"]
        assert register.is_open is False
        assert register.closed_by_id == user_id
        assert register.current_balance == Decimal("120.00")

        closing = db_session.query(CashMovement).filter(
            CashMovement.type == MovementType.CLOSING
        ).one()
        assert closing.description == "Cash register closed. Expected: 120.00, Actual: 120.00"

    def test_shortage(self, service, open_register, user_id):
        result = service.close_register(open_register.id, "95.50", user_id)
        assert result["difference"] == Decimal("-4.50")

    def test_only_opener_closes(self, service, open_register, other_user_id):
        with pytest.raises(InvalidStateError):
            service.close_register(open_register.id, 100, other_user_id)
        assert service.get_register(open_register.id).is_open is True

    def test_close_closed_register(self, service, register, user_id):
        with pytest.raises(InvalidStateError):
            service.close_register(register.id, 0, user_id)

    def test_negative_actual_balance(self, service, open_register, user_id):
        with pytest.raises(ValidationError):
            service.close_register(open_register.id, -1, user_id)

    def test_user_can_open_another_after_close(self, service, open_register, user_id):
        service.close_register(open_register.id, 100, user_id)
        second = service.create_register(CashRegisterCreate(name="Caja 2"))

        assert service.open_register(second.id, 0, user_id).is_open is True


# ===== GUARDAS EN BASE DE DATOS =====

class TestStorageGuards:
    """La base de datos rechaza lo que una lectura desactualizada dejaría pasar"""

    def test_open_index_blocks_second_open_register(self, service, open_register, user_id, monkeypatch):
        second = service.create_register(CashRegisterCreate(name="Caja 2"))
        monkeypatch.setattr(service, "find_open_by_user", lambda _user_id: None)

        with pytest.raises(InvalidStateError) as exc:
            service.open_register(second.id, 10, user_id)

        assert "already has an open cash register" in str(exc.value)
        assert service.get_register(second.id).is_open is False
        assert movement_types(service.db, second.id) == []

    def test_stale_balance_cannot_overdraw(self, service, open_register, user_id):
        other_session = Session(bind=engine)
        try:
            CashRegisterService(other_session).record_withdrawal(open_register.id, 80, None, user_id)
        finally:
            other_session.close()

        # This session still sees the balance it read before the withdrawal
        assert open_register.current_balance == Decimal("100.00")

        with pytest.raises(InvalidStateError) as exc:
            service.record_withdrawal(open_register.id, 50, None, user_id)

        assert "Insufficient" in str(exc.value)
        assert service.get_register(open_register.id).current_balance == Decimal("20.00")
        assert movement_types(service.db, open_register.id) == [
            MovementType.OPENING, MovementType.WITHDRAWAL
        ]


def test_replay_balance_ignores_opening_and_closing():
    rows = [
        CashMovement(type=MovementType.OPENING, amount=Decimal("100")),
        CashMovement(type=MovementType.SALE, amount=Decimal("50")),
        CashMovement(type=MovementType.RETURN, amount=Decimal("5")),
        CashMovement(type=MovementType.CLOSING, amount=Decimal("999")),
    ]
    assert replay_balance(Decimal("100"), rows) == Decimal("145")


# ===== TESTS DE API =====

class TestCashRegistersAPI:
    """Endpoints /api/v1/cash-registers"""

    def test_full_session(self, client, user_id):
        headers = {"X-User-Id": str(user_id)}

        response = client.post("/api/v1/cash-registers/", json={"name": "Caja API"})
        assert response.status_code == 201
        register_id = response.json()["id"]

        response = client.post(f"/api/v1/cash-registers/{register_id}/open",
                               json={"opening_balance": "100"}, headers=headers)
        assert response.status_code == 200
        assert response.json()["status"] == "OPEN"

        response = client.post(f"/api/v1/cash-registers/{register_id}/sales",
                               json={"amount": "50", "reference": "S-1"}, headers=headers)
        assert response.status_code == 201
        assert response.json()["type"] == "SALE"

        response = client.post(f"/api/v1/cash-registers/{register_id}/withdrawals",
                               json={"amount": "30"}, headers=headers)
        assert response.status_code == 201

        response = client.get(f"/api/v1/cash-registers/{register_id}/expected-balance")
        assert response.json()["expected_balance"] == "120.00"
        assert response.json()["drift"] == "0.00"

        response = client.get("/api/v1/cash-registers/current", headers=headers)
        assert response.json()["id"] == register_id

        response = client.post(f"/api/v1/cash-registers/{register_id}/close",
                               json={"actual_balance": "120"}, headers=headers)
        assert response.status_code == 200
        assert response.json()["difference"] == "0.00"

        response = client.get(f"/api/v1/cash-registers/{register_id}/movements")
        assert [m["type"] for m in response.json()["movements"]] == [
            "OPENING", "SALE", "WITHDRAWAL", "CLOSING"
        ]

    def test_insufficient_balance_returns_409(self, client, user_id):
        headers = {"X-User-Id": str(user_id)}
        register_id = client.post("/api/v1/cash-registers/", json={"name": "Caja API"}).json()["id"]
        client.post(f"/api/v1/cash-registers/{register_id}/open",
                    json={"opening_balance": "10"}, headers=headers)

        response = client.post(f"/api/v1/cash-registers/{register_id}/withdrawals",
                               json={"amount": "11"}, headers=headers)
        assert response.status_code == 409
        assert response.json()["error"] == "InvalidStateError"

    def test_negative_opening_rejected_by_schema(self, client, user_id):
        register_id = client.post("/api/v1/cash-registers/", json={"name": "Caja API"}).json()["id"]
        response = client.post(f"/api/v1/cash-registers/{register_id}/open",
                               json={"opening_balance": "-5"},
                               headers={"X-User-Id": str(user_id)})
        assert response.status_code == 422
