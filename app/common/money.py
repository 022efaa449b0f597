"""
Helpers de redondeo monetario
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Union

from app.core.config import settings

CENT = Decimal("0.01")
MILLI = Decimal("0.001")

Number = Union[Decimal, int, float, str]


def to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def money(value: Number) -> Decimal:
    """Redondea a centavos (ROUND_HALF_UP)."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def qty(value: Number) -> Decimal:
    """Cantidades a 3 decimales (gramos para productos por peso)."""
    return to_decimal(value).quantize(MILLI, rounding=ROUND_HALF_UP)


def tolerance() -> Decimal:
    return to_decimal(settings.MONEY_TOLERANCE)


def amounts_match(a: Number, b: Number) -> bool:
    """True si la diferencia es menor a la tolerancia (0.01 por defecto)."""
    return abs(to_decimal(a) - to_decimal(b)) < tolerance()
