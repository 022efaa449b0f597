"""
Acceso a datos del POS.

``DataAccess`` es el contrato que usan los servicios de venta; la
implementación SQLAlchemy trabaja sobre una sola ``Session`` y agrupa las
escrituras de un cobro (estado de la orden, pagos, stock, saldo del
cliente, movimiento de caja) en una transacción con ``transaction()``.
"""
from contextlib import contextmanager
from decimal import Decimal
from typing import Any, Iterator, List, Optional, Protocol, Tuple
from uuid import UUID
import logging

from sqlalchemy import update
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.exc import SQLAlchemyError

from app.common.exceptions import NotFound, InsufficientStock, DataAccessFailure
from app.common.money import money, qty
from app.modules.clients.models import Client
from app.modules.pos import models
from app.modules.pos.models import (
    OrderStatus, PaymentMethod, CashRegister, CashRegisterStatus, CashMovement, MovementType
)
from app.modules.pos.orders import Order
from app.modules.products.models import Product, InventoryMovement, MovementKind

logger = logging.getLogger(__name__)


class DataAccess(Protocol):
    def transaction(self, operation: str = "transaction") -> Iterator["DataAccess"]: ...

    def get_product(self, product_id: UUID, for_update: bool = False) -> Product: ...

    def list_products(self, product_ids: Optional[List[UUID]] = None) -> List[Product]: ...

    def update_product_stock(self, product_id: UUID, delta: Decimal, clamp_at_zero: bool = False) -> Decimal: ...

    def get_client(self, client_id: UUID, for_update: bool = False) -> Client: ...

    def update_client_balance(self, client_id: UUID, new_balance: Decimal) -> Client: ...

    def create_order(self, order: Order, cashier_name: Optional[str] = None,
                     notes: Optional[str] = None) -> models.Order: ...

    def update_order_status(self, order_id: UUID, status: OrderStatus, **fields: Any) -> models.Order: ...

    def get_order(self, order_id: UUID, for_update: bool = False) -> models.Order: ...

    def record_payment(self, order_id: UUID, amount: Decimal, method: PaymentMethod,
                       reference: Optional[str] = None, **fields: Any) -> models.Payment: ...

    def record_cash_movement(self, amount: Decimal, type: MovementType, description: str,
                             **fields: Any) -> CashMovement: ...


class SqlAlchemyDataAccess:
    """Implementación sobre una Session síncrona de SQLAlchemy"""

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def transaction(self, operation: str = "transaction") -> Iterator["SqlAlchemyDataAccess"]:
        """Unidad de trabajo: todo se confirma junto o se revierte junto."""
        try:
            yield self
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Rollback en '{operation}': {e}")
            raise DataAccessFailure(operation, e)
        except Exception:
            self.db.rollback()
            raise

    # ===== PRODUCTOS =====

    def get_product(self, product_id: UUID, for_update: bool = False) -> Product:
        query = self.db.query(Product).filter(Product.id == product_id)
        if for_update:
            query = query.with_for_update()
        product = query.first()
        if not product:
            raise NotFound("Producto", product_id)
        return product

    def list_products(self, product_ids: Optional[List[UUID]] = None) -> List[Product]:
        query = self.db.query(Product).filter(Product.is_active == True)
        if product_ids is not None:
            query = query.filter(Product.id.in_(product_ids))
        return query.order_by(Product.name).all()

    def update_product_stock(self, product_id: UUID, delta: Any, clamp_at_zero: bool = False) -> Decimal:
        """
        Suma ``delta`` al stock con un UPDATE condicionado y devuelve la
        cantidad realmente movida (siempre positiva).

        Una salida solo se aplica si el stock alcanza (``stock >= -delta``
        en la misma sentencia), así dos cajas no pueden dejarlo negativo.
        Con ``clamp_at_zero`` una salida que no alcanza deja el stock en 0
        y solo se descuenta lo que había.
        """
        delta = qty(delta)
        moved = abs(delta)
        if delta < 0:
            result = self.db.execute(
                update(Product)
                .where(Product.id == product_id, Product.stock >= -delta)
                .values(stock=Product.stock + delta)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                product = self.get_product(product_id)
                self.db.refresh(product)
                if not clamp_at_zero:
                    raise InsufficientStock([{
                        "product_id": str(product.id),
                        "product_name": product.name,
                        "required": -delta,
                        "available": product.stock,
                    }])
                moved = max(qty(product.stock), Decimal("0.000"))
                logger.warning(
                    f"Stock de {product.code} llevado a 0 por sobregiro autorizado "
                    f"(requerido {-delta}, descontado {moved})"
                )
                self.db.execute(
                    update(Product)
                    .where(Product.id == product_id)
                    .values(stock=0)
                    .execution_options(synchronize_session=False)
                )
        else:
            self.db.execute(
                update(Product)
                .where(Product.id == product_id)
                .values(stock=Product.stock + delta)
                .execution_options(synchronize_session=False)
            )

        self.db.refresh(self.get_product(product_id))
        return moved

    def record_inventory_movement(self, product: Product, kind: MovementKind, quantity: Any,
                                  reference: Optional[str] = None, notes: Optional[str] = None,
                                  user_name: Optional[str] = None) -> InventoryMovement:
        movement = InventoryMovement(
            product_id=product.id,
            product_name=product.name,
            kind=kind,
            quantity=qty(quantity),
            reference=reference,
            notes=notes,
            user_name=user_name
        )
        self.db.add(movement)
        return movement

    # ===== CLIENTES =====

    def get_client(self, client_id: UUID, for_update: bool = False) -> Client:
        query = self.db.query(Client).filter(Client.id == client_id)
        if for_update:
            query = query.with_for_update()
        client = query.first()
        if not client:
            raise NotFound("Cliente", client_id)
        return client

    def update_client_balance(self, client_id: UUID, new_balance: Any) -> Client:
        client = self.get_client(client_id, for_update=True)
        client.balance = max(money(new_balance), Decimal("0.00"))
        self.db.flush()
        return client

    # ===== ÓRDENES =====

    def create_order(self, order: Order, cashier_name: Optional[str] = None,
                     notes: Optional[str] = None) -> models.Order:
        """Persiste una orden en captura como borrador."""
        sale = models.Order(
            client_id=order.client_id,
            client_name=order.client_name,
            cashier_id=order.cashier_id,
            cashier_name=cashier_name,
            status=OrderStatus.DRAFT,
            is_credit=False,
            subtotal=order.subtotal,
            discount_total=order.discount_total,
            total=order.total,
            remaining_balance=Decimal("0.00"),
            change_given=Decimal("0.00"),
            stock_applied=False,
            notes=notes
        )
        for position, line in enumerate(order.items, start=1):
            sale.lines.append(models.OrderLine(
                position=position,
                product_id=line.product_id,
                product_name=line.product_name,
                quantity=line.quantity,
                unit_price=line.unit_price,
                price_level=line.price_level,
                total=line.total,
                stock_taken=Decimal("0.000")
            ))
        self.db.add(sale)
        self.db.flush()
        return sale

    def get_order(self, order_id: UUID, for_update: bool = False) -> models.Order:
        query = self.db.query(models.Order).options(
            selectinload(models.Order.lines),
            selectinload(models.Order.payments)
        ).filter(models.Order.id == order_id)
        if for_update:
            query = query.with_for_update()
        sale = query.first()
        if not sale:
            raise NotFound("Orden", order_id)
        return sale

    def list_orders(self, status: Optional[OrderStatus] = None, client_id: Optional[UUID] = None,
                    limit: int = 100, offset: int = 0) -> Tuple[List[models.Order], int]:
        query = self.db.query(models.Order)
        if status:
            query = query.filter(models.Order.status == status)
        if client_id:
            query = query.filter(models.Order.client_id == client_id)
        total = query.count()
        orders = query.order_by(models.Order.created_at.desc()).offset(offset).limit(limit).all()
        return orders, total

    def update_order_status(self, order_id: UUID, status: OrderStatus, **fields: Any) -> models.Order:
        sale = self.get_order(order_id)
        sale.status = status
        for name, value in fields.items():
            setattr(sale, name, value)
        self.db.flush()
        return sale

    def record_payment(self, order_id: UUID, amount: Any, method: PaymentMethod,
                       reference: Optional[str] = None, **fields: Any) -> models.Payment:
        payment = models.Payment(
            order_id=order_id,
            amount=money(amount),
            method=method,
            reference=reference,
            **fields
        )
        self.db.add(payment)
        return payment

    # ===== CAJA =====

    def current_cash_register(self) -> Optional[CashRegister]:
        return self.db.query(CashRegister).filter(
            CashRegister.status == CashRegisterStatus.OPEN
        ).first()

    def record_cash_movement(self, amount: Any, type: MovementType, description: str,
                             **fields: Any) -> CashMovement:
        """Registra el movimiento en la caja abierta (si hay una)."""
        register = self.current_cash_register()
        movement = CashMovement(
            cash_register_id=register.id if register else None,
            type=type,
            amount=money(amount),
            notes=description,
            **fields
        )
        self.db.add(movement)
        return movement
