"""
Módulo de Clientes

Clientes con límite de crédito, saldo pendiente y nivel de precio por
defecto para el punto de venta.
"""
