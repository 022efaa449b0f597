"""
Módulo POS (Point of Sale)

Este módulo maneja las operaciones de punto de venta con:

ENTIDADES PRINCIPALES:
- Order / OrderLine: Ventas con líneas por nivel de precio (1-5)
- Payment: Pagos al cobrar y abonos a crédito
- CashRegister: Cajas registradoras con apertura/cierre y arqueo
- CashMovement: Movimientos de caja (ventas, abonos, depósitos, retiros, gastos, ajustes)

FUNCIONALIDADES:
- Órdenes en captura en memoria (varias por cajero, id temporal)
- Precio por nivel o precio libre; productos por peso con tara
- Cobro en efectivo, tarjeta, transferencia, crédito o mixto
- Política de crédito con autorización administrativa para sobregiros
- Abonos a ventas pendientes y cancelación con devolución de stock

REGLAS DE NEGOCIO:
- total = suma de líneas - descuento, recalculado en cada cambio
- Estados: draft -> pending -> paid; draft/pending -> cancelled
- El stock se descuenta una sola vez, en el primer cobro, sin quedar negativo
- Todas las escrituras de un cobro se confirman en una sola transacción
"""
