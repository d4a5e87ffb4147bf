"""
Servicios de negocio para el módulo POS (Point of Sale)

CashRegisterService implementa:
- Alta y consulta de cajas registradoras
- Apertura/cierre con arqueo (balance esperado vs. contado)
- Registro de ventas, devoluciones, depósitos y retiros en efectivo
- Balance esperado recalculado desde la bitácora de movimientos

Los cambios de current_balance se aplican como UPDATE atómicos en la base de
datos (current_balance = current_balance ± monto); los egresos llevan la
condición current_balance >= monto en el mismo UPDATE.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.common.exceptions import (
    AppError, ConflictError, InvalidStateError, NotFoundError, ValidationError
)
from app.modules.journal.service import to_amount
from app.modules.pos.models import (
    CashMovement, CashRegister, MovementType, OUTFLOW_TYPES, replay_balance
)
from app.modules.pos.schemas import CashRegisterCreate

logger = logging.getLogger(__name__)


DEFAULT_DESCRIPTIONS = {
    MovementType.SALE: "Sale transaction",
    MovementType.RETURN: "Return transaction",
    MovementType.DEPOSIT: "Cash deposit",
    MovementType.WITHDRAWAL: "Cash withdrawal",
}


class CashRegisterService:
    """Servicio para gestión de cajas registradoras"""

    def __init__(self, db: Session):
        self.db = db

    # ===== CAJAS =====

    def create_register(self, data: CashRegisterCreate) -> CashRegister:
        """Crear caja registradora (inicia cerrada con saldo cero)"""
        try:
            existing = self.db.query(CashRegister).filter(CashRegister.name == data.name).first()
            if existing:
                raise ConflictError(f"Cash register '{data.name}' already exists")

            register = CashRegister(
                name=data.name,
                is_open=False,
                opening_balance=Decimal("0"),
                current_balance=Decimal("0")
            )
            self.db.add(register)
            self.db.commit()
            self.db.refresh(register)
            return register

        except AppError:
            raise
        except IntegrityError:
            self.db.rollback()
            raise ConflictError(f"Cash register '{data.name}' already exists")
        except Exception:
            self.db.rollback()
            raise

    def get_register(self, register_id: UUID) -> CashRegister:
        register = self.db.get(CashRegister, register_id)
        if not register:
            raise NotFoundError("Cash register not found")
        return register

    def list_registers(self, is_open: Optional[bool] = None,
                       limit: int = 100, offset: int = 0) -> Dict[str, Any]:
        query = self.db.query(CashRegister)
        if is_open is not None:
            query = query.filter(CashRegister.is_open == is_open)

        query = query.order_by(CashRegister.name)
        total = query.count()
        registers = query.offset(offset).limit(limit).all()

        return {
            "cash_registers": registers,
            "total": total,
            "limit": limit,
            "offset": offset
        }

    def find_open_by_user(self, user_id: UUID) -> Optional[CashRegister]:
        return self.db.query(CashRegister).filter(
            CashRegister.opened_by_id == user_id,
            CashRegister.is_open == True
        ).first()

    # ===== APERTURA / CIERRE =====

    def open_register(self, register_id: UUID, opening_balance, user_id: UUID) -> CashRegister:
        """Abrir caja: saldo inicial = saldo actual, más movimiento OPENING"""
        register = self.get_register(register_id)

        if register.is_open:
            raise InvalidStateError("Cash register is already open")

        open_register = self.find_open_by_user(user_id)
        if open_register and open_register.id != register.id:
            raise InvalidStateError("User already has an open cash register")

        opening_balance = to_amount(opening_balance)
        if opening_balance < 0:
            raise ValidationError("Opening balance cannot be negative")

        now = datetime.utcnow()
        try:
            result = self.db.execute(
                update(CashRegister)
                .where(CashRegister.id == register_id, CashRegister.is_open == False)
                .values(
                    is_open=True,
                    opening_balance=opening_balance,
                    current_balance=opening_balance,
                    opened_at=now,
                    opened_by_id=user_id,
                    closed_at=None,
                    closed_by_id=None,
                    updated_at=now
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                self.db.rollback()
                raise InvalidStateError("Cash register is already open")

            self.db.add(CashMovement(
                cash_register_id=register_id,
                type=MovementType.OPENING,
                amount=opening_balance,
                description="Cash register opened",
                user_id=user_id,
                created_at=now
            ))
            self.db.commit()

        except AppError:
            raise
        except IntegrityError:
            self.db.rollback()
            raise InvalidStateError("User already has an open cash register")
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(register)
        logger.info(f"Cash register {register.name} opened by {user_id} with {opening_balance}")
        return register

    def close_register(self, register_id: UUID, actual_balance, user_id: UUID) -> Dict[str, Any]:
        """
        Cerrar caja con arqueo.

        Retorna expected_balance (recalculado desde la bitácora), actual_balance
        (contado) y difference = actual - expected.
        """
        register = self.get_register(register_id)

        if not register.is_open:
            raise InvalidStateError("Cash register is not open")

        if register.opened_by_id != user_id:
            raise InvalidStateError("Only the user who opened the register can close it")

        actual_balance = to_amount(actual_balance)
        if actual_balance < 0:
            raise ValidationError("Actual balance cannot be negative")

        opening_balance = register.opening_balance
        expected_balance = self.expected_balance(register_id)
        difference = actual_balance - expected_balance

        now = datetime.utcnow()
        try:
            result = self.db.execute(
                update(CashRegister)
                .where(CashRegister.id == register_id, CashRegister.is_open == True)
                .values(
                    is_open=False,
                    current_balance=actual_balance,
                    closed_at=now,
                    closed_by_id=user_id,
                    updated_at=now
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                self.db.rollback()
                raise InvalidStateError("Cash register is not open")

            self.db.add(CashMovement(
                cash_register_id=register_id,
                type=MovementType.CLOSING,
                amount=actual_balance,
                description=(
                    f"Cash register closed. Expected: {expected_balance}, Actual: {actual_balance}"
                ),
                user_id=user_id,
                created_at=now
            ))
            self.db.commit()

        except AppError:
            raise
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(register)
        if difference != 0:
            logger.warning(
                f"Cash register {register.name} closed with difference {difference} "
                f"(expected {expected_balance}, counted {actual_balance})"
            )
        else:
            logger.info(f"Cash register {register.name} closed balanced at {actual_balance}")

        return {
            "cash_register": register,
            "opening_balance": opening_balance,
            "expected_balance": expected_balance,
            "actual_balance": actual_balance,
            "difference": difference
        }

    # ===== MOVIMIENTOS =====

    def record_deposit(self, register_id: UUID, amount, reference: Optional[str],
                       user_id: UUID, description: Optional[str] = None) -> CashMovement:
        return self._record_movement(register_id, MovementType.DEPOSIT, amount, reference, user_id, description)

    def record_withdrawal(self, register_id: UUID, amount, reference: Optional[str],
                          user_id: UUID, description: Optional[str] = None) -> CashMovement:
        return self._record_movement(register_id, MovementType.WITHDRAWAL, amount, reference, user_id, description)

    def record_sale(self, register_id: UUID, amount, reference: Optional[str],
                    user_id: UUID, description: Optional[str] = None) -> CashMovement:
        return self._record_movement(register_id, MovementType.SALE, amount, reference, user_id, description)

    def record_return(self, register_id: UUID, amount, reference: Optional[str],
                      user_id: UUID, description: Optional[str] = None) -> CashMovement:
        return self._record_movement(register_id, MovementType.RETURN, amount, reference, user_id, description)

    def list_movements(self, register_id: UUID, limit: int = 100, offset: int = 0) -> Dict[str, Any]:
        self.get_register(register_id)
        query = self.db.query(CashMovement).filter(
            CashMovement.cash_register_id == register_id
        ).order_by(CashMovement.created_at)

        total = query.count()
        movements = query.offset(offset).limit(limit).all()
        return {
            "movements": movements,
            "total": total,
            "limit": limit,
            "offset": offset
        }

    # ===== ARQUEO =====

    def session_movements(self, register: CashRegister, until: Optional[datetime] = None) -> List[CashMovement]:
        """Movimientos entre opened_at y until (por defecto ahora), en orden"""
        if register.opened_at is None:
            return []
        until = until or datetime.utcnow()
        return self.db.query(CashMovement).filter(
            CashMovement.cash_register_id == register.id,
            CashMovement.created_at >= register.opened_at,
            CashMovement.created_at <= until
        ).order_by(CashMovement.created_at).all()

    def expected_balance(self, register_id: UUID) -> Decimal:
        """
        Balance esperado recalculado desde la bitácora.

        OPENING es la base (ya está en opening_balance), SALE/DEPOSIT suman,
        RETURN/WITHDRAWAL restan, CLOSING no afecta. Es independiente de
        current_balance a propósito.
        """
        register = self.get_register(register_id)
        if register.opened_at is None:
            return Decimal("0.00")
        return to_amount(replay_balance(register.opening_balance, self.session_movements(register)))

    # ===== HELPERS =====

    def _record_movement(self, register_id: UUID, movement_type: MovementType, amount,
                         reference: Optional[str], user_id: UUID,
                         description: Optional[str]) -> CashMovement:
        register = self.get_register(register_id)
        if not register.is_open:
            raise InvalidStateError("Cash register is not open")

        amount = to_amount(amount)
        if amount <= 0:
            raise ValidationError(f"{movement_type.value.capitalize()} amount must be positive")

        is_outflow = movement_type in OUTFLOW_TYPES
        conditions = [CashRegister.id == register_id, CashRegister.is_open == True]
        if is_outflow:
            conditions.append(CashRegister.current_balance >= amount)
            new_balance = CashRegister.current_balance - amount
        else:
            new_balance = CashRegister.current_balance + amount

        now = datetime.utcnow()
        try:
            result = self.db.execute(
                update(CashRegister)
                .where(*conditions)
                .values(current_balance=new_balance, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                self.db.rollback()
                self.db.refresh(register)
                if not register.is_open:
                    raise InvalidStateError("Cash register is not open")
                raise InvalidStateError("Insufficient cash register balance")

            movement = CashMovement(
                cash_register_id=register_id,
                type=movement_type,
                amount=amount,
                description=description or DEFAULT_DESCRIPTIONS[movement_type],
                reference=reference,
                user_id=user_id,
                created_at=now
            )
            self.db.add(movement)
            self.db.commit()

        except AppError:
            raise
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(movement)
        logger.info(f"{movement_type.value} of {amount} recorded on cash register {register_id}")
        return movement
