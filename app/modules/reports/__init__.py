"""
Reports Module - POS Ledger

Reportes de conciliación de caja y estados financieros básicos.

Este módulo NO crea nuevas tablas: consulta el diario contable y los
movimientos de caja de los otros módulos.

Funcionalidades principales:
- Resumen diario de caja (totales por tipo de movimiento, flujo neto)
- Estado de la caja abierta de un usuario (saldo esperado vs actual)
- Balance de comprobación y saldos por cuenta
- Estado de resultados (ingresos vs gastos)

Architecture Pattern: Service Layer
- routers/ -> Define FastAPI endpoints
- services/ -> Lógica de negocio y consultas
- schemas/ -> Modelos Pydantic para responses
"""

from .routers import cash_registers_router, financial_router

__all__ = [
    "cash_registers_router",
    "financial_router"
]
