"""
Agregado de orden en captura.

Las operaciones son transformaciones puras: reciben una ``Order`` y
devuelven una nueva, sin tocar la original ni la base de datos. Si una
operación falla, la orden de entrada queda intacta. Persistir es un paso
aparte (ver ``services.POSOrderService``).

Política de fusión en ``add_item``: si ya existe una línea con el mismo
producto, nivel de precio y precio unitario, se suma la cantidad a esa
línea; si cambia cualquiera de los tres, se agrega una línea nueva.
"""
from copy import deepcopy
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, List, Optional
from uuid import uuid4
import logging

from app.common.exceptions import LineNotFound, InvalidQuantity, InvalidDiscount, InsufficientStock
from app.common.money import money, qty, to_decimal
from app.core.config import settings
from app.modules.pos.models import OrderStatus
from app.modules.pos.pricing import resolve_price, validate_price_level

logger = logging.getLogger(__name__)


@dataclass
class OrderLine:
    product_id: Any
    product_name: str
    quantity: Decimal
    unit_price: Decimal
    price_level: int
    unit: str = "PZA"
    id: str = field(default_factory=lambda: uuid4().hex[:12])

    @property
    def total(self) -> Decimal:
        return money(self.quantity * self.unit_price)


@dataclass
class Order:
    id: str
    cashier_id: str = "pos"
    client_id: Optional[Any] = None
    client_name: str = ""
    default_price_level: int = 1
    items: List[OrderLine] = field(default_factory=list)
    discount_total: Decimal = Decimal("0.00")
    status: OrderStatus = OrderStatus.DRAFT
    is_credit: bool = False

    @property
    def subtotal(self) -> Decimal:
        return money(sum((line.total for line in self.items), Decimal("0")))

    @property
    def total(self) -> Decimal:
        return money(self.subtotal - self.discount_total)

    @property
    def is_temporary(self) -> bool:
        return str(self.id).startswith(settings.TEMP_ORDER_PREFIX)

    def find_line(self, line_id: str) -> OrderLine:
        for line in self.items:
            if line.id == line_id:
                return line
        raise LineNotFound(line_id)

    def quantity_of(self, product_id: Any) -> Decimal:
        return sum((line.quantity for line in self.items if line.product_id == product_id), Decimal("0"))


def new_temp_id() -> str:
    return f"{settings.TEMP_ORDER_PREFIX}{uuid4().hex[:12]}"


def new_order(client: Any = None, cashier_id: str = "pos", order_id: Optional[str] = None) -> Order:
    """Orden vacía; sin cliente se usa el cliente general."""
    if client is not None:
        return Order(
            id=order_id or new_temp_id(),
            cashier_id=cashier_id,
            client_id=client.id,
            client_name=client.name,
            default_price_level=validate_price_level(client.default_price_level),
        )
    return Order(
        id=order_id or new_temp_id(),
        cashier_id=cashier_id,
        client_name=settings.DEFAULT_CLIENT_NAME,
    )


def set_client(order: Order, client: Any = None) -> Order:
    """Cambia el cliente; las líneas ya capturadas conservan su precio."""
    updated = deepcopy(order)
    if client is None:
        updated.client_id = None
        updated.client_name = settings.DEFAULT_CLIENT_NAME
        updated.default_price_level = 1
    else:
        updated.client_id = client.id
        updated.client_name = client.name
        updated.default_price_level = validate_price_level(client.default_price_level)
    return updated


def _check_stock(order: Order, product: Any, extra: Decimal = Decimal("0")) -> None:
    stock = getattr(product, "stock", None)
    if stock is None:
        return
    required = order.quantity_of(product.id) + extra
    if required > to_decimal(stock):
        raise InsufficientStock([{
            "product_id": str(product.id),
            "product_name": product.name,
            "required": required,
            "available": to_decimal(stock),
        }])


def add_item(
    order: Order,
    product: Any,
    quantity: Any,
    price_level: Optional[int] = None,
    unit_price_override: Optional[Any] = None,
) -> Order:
    quantity = qty(quantity)
    if quantity <= 0:
        raise InvalidQuantity(quantity)

    level = order.default_price_level if price_level is None else price_level
    unit_price = resolve_price(product, level, unit_price_override)
    _check_stock(order, product, quantity)

    updated = deepcopy(order)
    for line in updated.items:
        if line.product_id == product.id and line.price_level == level and line.unit_price == unit_price:
            line.quantity = qty(line.quantity + quantity)
            return updated

    updated.items.append(OrderLine(
        product_id=product.id,
        product_name=product.name,
        quantity=quantity,
        unit_price=unit_price,
        price_level=level,
        unit=getattr(product, "unit", None) or "PZA",
    ))
    return updated


def remove_item(order: Order, line_id: str) -> Order:
    order.find_line(line_id)
    updated = deepcopy(order)
    updated.items = [line for line in updated.items if line.id != line_id]
    # Un descuento nunca puede superar el nuevo subtotal
    if updated.discount_total > updated.subtotal:
        logger.info(f"Descuento de la orden {order.id} ajustado a {updated.subtotal}")
        updated.discount_total = updated.subtotal
    return updated


def update_quantity(order: Order, line_id: str, new_quantity: Any, product: Any = None) -> Order:
    """
    Cambia la cantidad de una línea. Para eliminarla usar ``remove_item``.

    Si se pasa el producto se valida contra su stock actual.
    """
    line = order.find_line(line_id)
    new_quantity = qty(new_quantity)
    if new_quantity <= 0:
        raise InvalidQuantity(new_quantity)
    if product is not None:
        _check_stock(order, product, new_quantity - line.quantity)

    updated = deepcopy(order)
    updated.find_line(line_id).quantity = new_quantity
    if updated.discount_total > updated.subtotal:
        updated.discount_total = updated.subtotal
    return updated


def update_item_price(
    order: Order,
    line_id: str,
    product: Any,
    price_level: int,
    custom_price: Optional[Any] = None,
) -> Order:
    order.find_line(line_id)
    unit_price = resolve_price(product, price_level, custom_price)

    updated = deepcopy(order)
    line = updated.find_line(line_id)
    line.price_level = price_level
    line.unit_price = unit_price
    if updated.discount_total > updated.subtotal:
        updated.discount_total = updated.subtotal
    return updated


def apply_discount(order: Order, discount_amount: Any) -> Order:
    discount = to_decimal(discount_amount)
    subtotal = order.subtotal
    if discount < 0 or discount > subtotal:
        raise InvalidDiscount(discount, subtotal)

    updated = deepcopy(order)
    updated.discount_total = money(discount)
    return updated
