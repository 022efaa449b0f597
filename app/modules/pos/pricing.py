"""
Resolución del precio unitario de una línea.
"""
from decimal import Decimal
from typing import Any, Optional

from app.common.exceptions import InvalidPriceLevel
from app.common.money import money, to_decimal
from app.modules.products.models import PRICE_LEVELS


def validate_price_level(price_level: Any) -> int:
    if isinstance(price_level, bool) or not isinstance(price_level, int):
        raise InvalidPriceLevel(price_level)
    if price_level not in PRICE_LEVELS:
        raise InvalidPriceLevel(price_level)
    return price_level


def resolve_price(product: Any, price_level: int, custom_price: Optional[Decimal] = None) -> Decimal:
    """
    Precio unitario efectivo.

    Un precio libre (custom_price > 0) tiene prioridad; si no, se usa
    ``product.price_for_level(nivel)``. El nivel debe ser un entero 1-5 aunque
    haya precio libre, porque la línea conserva su nivel.
    """
    level = validate_price_level(price_level)
    if custom_price is not None and to_decimal(custom_price) > 0:
        return money(custom_price)
    return money(product.price_for_level(level) or 0)
