"""
Cálculo de peso neto para productos que se venden por peso.

El cajero captura el peso bruto de la báscula, el tipo de caja (tara) y
cuántas cajas hay; el peso facturable es el bruto menos la tara total.
La verificación de stock aquí es solo un aviso: la definitiva ocurre al
cobrar la orden.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, List, Optional

from app.common.exceptions import NonPositiveNetWeight, InsufficientStock, InvalidQuantity, NotFound
from app.common.money import qty, to_decimal
from app.core.config import settings


@dataclass(frozen=True)
class TareOption:
    id: str
    name: str
    weight: Decimal  # kg por caja


def get_tare_options() -> List[TareOption]:
    return [
        TareOption(id=str(o["id"]), name=o["name"], weight=qty(o["weight"]))
        for o in settings.TARE_OPTIONS
    ]


def find_tare_option(option_id: str) -> TareOption:
    for option in get_tare_options():
        if option.id == str(option_id):
            return option
    raise NotFound("Tara", option_id)


def compute_net(
    tare_option: TareOption,
    box_count: int,
    gross_weight: Any,
    available_stock: Optional[Any] = None,
    product_id: Optional[Any] = None,
    product_name: str = "",
) -> Decimal:
    """
    net = bruto - tara.weight * cajas

    Lanza NonPositiveNetWeight si el neto es <= 0 e InsufficientStock si
    supera el stock disponible (cuando se proporciona).
    """
    if box_count < 0:
        raise InvalidQuantity(box_count, "El número de cajas no puede ser negativo")

    net_weight = qty(to_decimal(gross_weight) - tare_option.weight * box_count)
    if net_weight <= 0:
        raise NonPositiveNetWeight(net_weight)

    if available_stock is not None and net_weight > to_decimal(available_stock):
        raise InsufficientStock([{
            "product_id": str(product_id) if product_id else None,
            "product_name": product_name,
            "required": net_weight,
            "available": to_decimal(available_stock),
        }])
    return net_weight
