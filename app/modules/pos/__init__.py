"""
Módulo POS (Point of Sale) - Cajas registradoras

ENTIDADES PRINCIPALES:
- CashRegister: Cajas registradoras con apertura/cierre y arqueo
- CashMovement: Bitácora de movimientos (apertura, ventas, devoluciones,
  depósitos, retiros, cierre)

FUNCIONALIDADES:
- Una sola caja abierta por usuario
- Saldo actual mantenido de forma atómica, nunca negativo
- Saldo esperado recalculado desde la bitácora de la sesión
- Arqueo de cierre con diferencia contado - esperado
"""
