"""
Common column mixins for ledger models
"""
from datetime import datetime

from sqlalchemy import Column, DateTime, Boolean


class TimestampMixin:
    """Mixin for models that need timestamp tracking.

    Timestamps are set on the Python side (UTC) so that time windows such as
    a register's opened_at compare consistently with row timestamps on every
    backend.
    """

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class ActiveMixin:
    """Mixin for soft-deactivation (rows stay referenced by history)"""

    is_active = Column(Boolean, default=True, nullable=False, index=True)

    def deactivate(self):
        self.is_active = False

    def restore(self):
        self.is_active = True
