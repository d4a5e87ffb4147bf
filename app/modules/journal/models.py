"""
Modelos SQLAlchemy para el libro diario (Journal)

- JournalEntry: asiento de partida doble (una cuenta débito, una cuenta crédito)
- PostingOutbox: contabilizaciones pendientes de eventos de negocio
  (ventas, compras, devoluciones) que fallaron y se reintentan en segundo plano

Los asientos son inmutables: no existen operaciones de edición ni borrado.
"""

from app.database.database import Base
from sqlalchemy import (
    Column, String, DateTime, ForeignKey, Numeric, Enum, Integer, Text, JSON,
    UniqueConstraint, CheckConstraint
)
from sqlalchemy.orm import relationship
from sqlalchemy.dialects.postgresql import UUID
from datetime import datetime
from uuid import uuid4
from app.common.mixins import TimestampMixin
import enum


# ===== ENUMS =====

class PostingEventType(enum.Enum):
    """Eventos de negocio que generan asientos automáticos"""
    SALE = "sale"
    PURCHASE = "purchase"
    RETURN = "return"


class OutboxStatus(enum.Enum):
    PENDING = "pending"   # Falló, pendiente de reintento
    POSTED = "posted"     # Asiento creado
    FAILED = "failed"     # Se agotaron los reintentos; requiere operador


# ===== MODELOS =====

class JournalEntry(Base, TimestampMixin):
    """
    Asiento contable de partida doble.

    Cada asiento aumenta exactamente un saldo débito y un saldo crédito por el
    mismo monto, por lo que la suma de débitos del libro siempre es igual a la
    suma de créditos.
    """
    __tablename__ = "journal_entries"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    date = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    description = Column(String(255), nullable=False)
    debit_account_id = Column(UUID(as_uuid=True), ForeignKey("accounts.id"), nullable=False, index=True)
    credit_account_id = Column(UUID(as_uuid=True), ForeignKey("accounts.id"), nullable=False, index=True)
    amount = Column(Numeric(15, 2), nullable=False)
    user_id = Column(UUID(as_uuid=True), nullable=False, index=True)

    # Evento de origen (solo asientos automáticos)
    source_type = Column(Enum(PostingEventType), nullable=True)
    source_id = Column(String(64), nullable=True)

    # Relationships
    debit_account = relationship("Account", foreign_keys=[debit_account_id])
    credit_account = relationship("Account", foreign_keys=[credit_account_id])

    __table_args__ = (
        UniqueConstraint("source_type", "source_id", name="uq_journal_entry_source"),
        CheckConstraint("amount > 0", name="ck_journal_entry_amount_positive"),
        CheckConstraint("debit_account_id <> credit_account_id", name="ck_journal_entry_distinct_accounts"),
    )


class PostingOutbox(Base, TimestampMixin):
    """
    Contabilizaciones de eventos de negocio que no pudieron registrarse.

    La venta/compra/devolución nunca se revierte por un fallo contable; en su
    lugar queda una fila PENDING que el worker reintenta.
    """
    __tablename__ = "posting_outbox"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    event_type = Column(Enum(PostingEventType), nullable=False, index=True)
    source_id = Column(String(64), nullable=False)
    payload = Column(JSON, nullable=False, default=dict)
    status = Column(Enum(OutboxStatus), nullable=False, default=OutboxStatus.PENDING, index=True)
    attempts = Column(Integer, nullable=False, default=0)
    last_error = Column(Text, nullable=True)
    journal_entry_id = Column(UUID(as_uuid=True), ForeignKey("journal_entries.id"), nullable=True)

    journal_entry = relationship("JournalEntry")

    __table_args__ = (
        UniqueConstraint("event_type", "source_id", name="uq_posting_outbox_event"),
    )
