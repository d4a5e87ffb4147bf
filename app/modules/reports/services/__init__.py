"""
Services package for Reports module
"""

from .base import BaseReportService
from .cash_registers import CashRegisterReportService
from .financial import FinancialReportService

__all__ = [
    "BaseReportService",
    "CashRegisterReportService",
    "FinancialReportService"
]
