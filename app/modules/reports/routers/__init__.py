"""
Routers package for Reports module

Exports all report router instances for easy importing.
"""

from .cash_registers import router as cash_registers_router
from .financial import router as financial_router

__all__ = [
    "cash_registers_router",
    "financial_router"
]
