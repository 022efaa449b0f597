"""
Servicios de negocio para el módulo POS (Point of Sale)

Implementa toda la lógica de negocio para:
- POSOrderService: Captura de órdenes, guardado, cobro, abonos y cancelación
- CashRegisterService: Apertura/cierre de cajas y arqueo
- CashMovementService: Registro de movimientos de caja

Integración con otros módulos:
- Products: Descuento de stock con movimiento de inventario por venta
- Clients: Saldo de crédito y límite con autorización administrativa
"""

from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import desc
from decimal import Decimal
from typing import List, Optional, Dict, Any
from uuid import UUID
from datetime import datetime, timezone
import logging

from app.common.exceptions import (
    POSError, EmptyOrder, InsufficientStock, AuthorizationDenied,
    CashRegisterConflict, NotFound, DataAccessFailure
)
from app.common.notifier import Notifier, NullNotifier
from app.core.config import settings
from app.dependencies.sessionDependencies import SessionContext
from app.modules.pos import orders
from app.modules.pos.credit import check_credit, available_credit, CreditDecision
from app.modules.pos.data_access import SqlAlchemyDataAccess
from app.modules.pos.models import (
    Order as SaleOrder, OrderStatus, PaymentMethod,
    CashRegister, CashMovement, CashRegisterStatus, MovementType
)
from app.modules.pos.schemas import (
    ItemAdd, WeighedItemAdd, PriceUpdate, SettleRequest, InstallmentCreate,
    OrderOut, SettlementOut, InstallmentOut, CreditCheckOut,
    CashRegisterOpen, CashRegisterClose, CashMovementCreate
)
from app.modules.pos.settlement import plan_settlement, apply_installment, ensure_transition, SettlementPlan
from app.modules.pos.tabs import TabRegistry, get_tab_registry
from app.modules.pos.tare import find_tare_option, compute_net
from app.modules.products.models import MovementKind

logger = logging.getLogger(__name__)


class POSOrderService:
    """Servicio para órdenes POS: captura en memoria y ventas persistidas"""

    def __init__(self, db: Session, session_ctx: SessionContext,
                 tabs: Optional[TabRegistry] = None, notifier: Optional[Notifier] = None):
        self.db = db
        self.dao = SqlAlchemyDataAccess(db)
        self.session_ctx = session_ctx
        self.tabs = tabs or get_tab_registry()
        self.notifier = notifier or NullNotifier()

    # ===== ÓRDENES EN CAPTURA =====

    def open_tab(self, client_id: Optional[UUID] = None) -> orders.Order:
        client = self.dao.get_client(client_id) if client_id else None
        return self.tabs.open(self.session_ctx.cashier_id, client)

    def get_tab(self, tab_id: str) -> orders.Order:
        return self.tabs.get(tab_id, self.session_ctx.cashier_id)

    def list_tabs(self) -> List[orders.Order]:
        return self.tabs.list(self.session_ctx.cashier_id)

    def abandon_tab(self, tab_id: str) -> None:
        self.get_tab(tab_id)
        self.tabs.discard(tab_id)
        logger.info(f"Orden {tab_id} abandonada por {self.session_ctx.cashier_name}")

    def set_tab_client(self, tab_id: str, client_id: Optional[UUID]) -> orders.Order:
        order = self.get_tab(tab_id)
        client = self.dao.get_client(client_id) if client_id else None
        return self.tabs.replace(orders.set_client(order, client))

    def add_item(self, tab_id: str, data: ItemAdd) -> orders.Order:
        order = self.get_tab(tab_id)
        product = self.dao.get_product(data.product_id)
        updated = orders.add_item(order, product, data.quantity, data.price_level, data.custom_price)
        return self.tabs.replace(updated)

    def add_weighed_item(self, tab_id: str, data: WeighedItemAdd) -> orders.Order:
        """Agrega el peso neto (bruto - tara) como cantidad de la línea."""
        order = self.get_tab(tab_id)
        product = self.dao.get_product(data.product_id)
        option = find_tare_option(data.tare_option_id)
        net_weight = compute_net(
            option,
            data.box_count,
            data.gross_weight,
            available_stock=product.stock - order.quantity_of(product.id),
            product_id=product.id,
            product_name=product.name
        )
        updated = orders.add_item(order, product, net_weight, data.price_level, data.custom_price)
        return self.tabs.replace(updated)

    def remove_item(self, tab_id: str, line_id: str) -> orders.Order:
        order = self.get_tab(tab_id)
        return self.tabs.replace(orders.remove_item(order, line_id))

    def update_quantity(self, tab_id: str, line_id: str, quantity: Decimal) -> orders.Order:
        order = self.get_tab(tab_id)
        line = order.find_line(line_id)
        product = self.dao.get_product(line.product_id)
        return self.tabs.replace(orders.update_quantity(order, line_id, quantity, product))

    def update_item_price(self, tab_id: str, line_id: str, data: PriceUpdate) -> orders.Order:
        order = self.get_tab(tab_id)
        line = order.find_line(line_id)
        product = self.dao.get_product(line.product_id)
        updated = orders.update_item_price(order, line_id, product, data.price_level, data.custom_price)
        return self.tabs.replace(updated)

    def apply_discount(self, tab_id: str, amount: Decimal) -> orders.Order:
        order = self.get_tab(tab_id)
        return self.tabs.replace(orders.apply_discount(order, amount))

    # ===== GUARDAR Y COBRAR =====

    def save_tab(self, tab_id: str, notes: Optional[str] = None) -> SaleOrder:
        """Persiste la orden como borrador: sin pagos, sin stock, sin saldo."""
        order = self.get_tab(tab_id)
        if not order.items:
            raise EmptyOrder(tab_id)

        with self.dao.transaction("save_order"):
            sale = self.dao.create_order(order, self.session_ctx.cashier_name, notes)

        self.tabs.discard(tab_id)
        logger.info(f"Orden {tab_id} guardada como {sale.folio} (total {sale.total})")
        self.notifier.publish("orders", [sale.id])
        return sale

    def settle_tab(self, tab_id: str, request: SettleRequest) -> SettlementOut:
        """Persiste y cobra la orden en captura en una sola transacción."""
        order = self.get_tab(tab_id)
        if not order.items:
            raise EmptyOrder(tab_id)

        with self.dao.transaction("settle_order"):
            sale = self.dao.create_order(order, self.session_ctx.cashier_name, request.notes)
            plan, stock_override = self._settle(sale, request)

        self.tabs.discard(tab_id)
        return self._settlement_result(sale, plan, stock_override)

    def settle_order(self, order_id: UUID, request: SettleRequest) -> SettlementOut:
        """Cobra una orden guardada como borrador."""
        with self.dao.transaction("settle_order"):
            sale = self.dao.get_order(order_id, for_update=True)
            if not sale.lines:
                raise EmptyOrder(order_id)
            plan, stock_override = self._settle(sale, request)

        return self._settlement_result(sale, plan, stock_override)

    def _settle(self, sale: SaleOrder, request: SettleRequest):
        cashier = self.session_ctx.cashier_name
        client = self.dao.get_client(sale.client_id, for_update=True) if sale.client_id else None

        plan = plan_settlement(
            sale.total,
            request.payment,
            sale.status,
            client=client,
            session_ctx=self.session_ctx,
            admin_password=request.admin_password
        )

        stock_override = False
        if not sale.stock_applied:
            stock_override = self._apply_stock(sale, request)

        self.dao.update_order_status(
            sale.id,
            plan.new_status,
            is_credit=plan.is_credit,
            payment_method=plan.method,
            remaining_balance=plan.remaining_balance,
            change_given=plan.change,
            settled_at=datetime.now(timezone.utc),
            notes=request.notes or sale.notes
        )

        for method, amount in plan.tenders:
            self.dao.record_payment(sale.id, amount, method, plan.reference, received_by=cashier)

        if plan.credit_amount > 0:
            self.dao.update_client_balance(client.id, client.balance + plan.credit_amount)

        if plan.cash_kept > 0:
            self.dao.record_cash_movement(
                plan.cash_kept,
                MovementType.SALE,
                f"Venta POS {sale.folio}",
                reference=sale.folio,
                order_id=sale.id,
                created_by=cashier
            )

        logger.info(
            f"Venta {sale.folio} cobrada ({plan.method}) por {cashier}: "
            f"total {sale.total}, estado {plan.new_status.value}, pendiente {plan.remaining_balance}"
        )
        return plan, stock_override

    def _apply_stock(self, sale: SaleOrder, request: SettleRequest) -> bool:
        """
        Descuenta el stock de todas las líneas (primer cobro).

        Devuelve True si faltaba stock y se vendió con autorización.
        """
        required: Dict[UUID, Decimal] = {}
        for line in sale.lines:
            required[line.product_id] = required.get(line.product_id, Decimal("0")) + line.quantity

        products = {}
        shortages = []
        for product_id, quantity in required.items():
            product = self.dao.get_product(product_id, for_update=True)
            products[product_id] = product
            if quantity > product.stock:
                shortages.append({
                    "product_id": str(product.id),
                    "product_name": product.name,
                    "required": quantity,
                    "available": product.stock,
                })

        override = False
        if shortages:
            if not request.stock_override or not settings.ALLOW_STOCK_OVERRIDE:
                raise InsufficientStock(shortages)
            if not self.session_ctx.authorize(request.admin_password):
                raise AuthorizationDenied()
            override = True
            logger.warning(
                f"Venta {sale.folio} autorizada sin stock suficiente por {self.session_ctx.cashier_name}: "
                f"{', '.join(s['product_name'] for s in shortages)}"
            )

        for product_id, quantity in required.items():
            taken = self.dao.update_product_stock(product_id, -quantity, clamp_at_zero=override)
            left = taken
            for line in sale.lines:
                if line.product_id == product_id:
                    line.stock_taken = min(line.quantity, left)
                    left -= line.stock_taken
            self.dao.record_inventory_movement(
                products[product_id],
                MovementKind.OUT,
                taken,
                reference=sale.folio,
                notes=f"Venta POS {sale.folio}",
                user_name=self.session_ctx.cashier_name
            )
        sale.stock_applied = True
        return override

    def _settlement_result(self, sale: SaleOrder, plan: SettlementPlan, stock_override: bool) -> SettlementOut:
        self.notifier.publish("orders", [sale.id])
        self.notifier.publish("products", [line.product_id for line in sale.lines])
        if plan.credit_amount > 0:
            self.notifier.publish("clients", [sale.client_id])
        if plan.cash_kept > 0:
            self.notifier.publish("cash", [sale.id])

        return SettlementOut(
            order=OrderOut.model_validate(sale),
            new_status=plan.new_status,
            remaining_balance=plan.remaining_balance,
            change=plan.change,
            credit_authorized=plan.credit_authorized,
            stock_override=stock_override
        )

    # ===== ABONOS Y CANCELACIÓN =====

    def register_installment(self, order_id: UUID, data: InstallmentCreate) -> InstallmentOut:
        """Abono contra una venta a crédito pendiente"""
        cashier = self.session_ctx.cashier_name
        with self.dao.transaction("register_installment"):
            sale = self.dao.get_order(order_id, for_update=True)
            result = apply_installment(sale.status, sale.remaining_balance, data.amount)

            self.dao.record_payment(
                sale.id, result.amount_applied, data.method, data.reference,
                is_installment=True, received_by=cashier
            )
            if sale.client_id:
                client = self.dao.get_client(sale.client_id, for_update=True)
                self.dao.update_client_balance(client.id, client.balance - result.amount_applied)
            if data.method == PaymentMethod.CASH:
                self.dao.record_cash_movement(
                    result.amount_applied,
                    MovementType.CREDIT_PAYMENT,
                    f"Abono a {sale.folio} - {sale.client_name}",
                    reference=sale.folio,
                    order_id=sale.id,
                    created_by=cashier
                )
            self.dao.update_order_status(sale.id, result.new_status, remaining_balance=result.remaining_balance)

        logger.info(
            f"Abono de {result.amount_applied} a {sale.folio}: pendiente {result.remaining_balance} "
            f"({result.new_status.value})"
        )
        self.notifier.publish("orders", [sale.id])
        if sale.client_id:
            self.notifier.publish("clients", [sale.client_id])
        if data.method == PaymentMethod.CASH:
            self.notifier.publish("cash", [sale.id])

        return InstallmentOut(
            order=OrderOut.model_validate(sale),
            amount_applied=result.amount_applied,
            remaining_balance=result.remaining_balance,
            new_status=result.new_status,
            payment_state=sale.payment_state
        )

    def cancel_order(self, order_id: UUID, reason: Optional[str] = None) -> SaleOrder:
        """
        Cancela una venta en borrador o pendiente.

        Si la venta ya había descontado stock, se devuelve al inventario; si
        tenía crédito pendiente, se descuenta del saldo del cliente.
        """
        with self.dao.transaction("cancel_order"):
            sale = self.dao.get_order(order_id, for_update=True)
            ensure_transition(sale.status, OrderStatus.CANCELLED)

            if sale.stock_applied:
                # Solo regresa lo que salió; una venta con sobregiro pudo descontar menos
                for line in sale.lines:
                    if not line.stock_taken:
                        continue
                    self.dao.update_product_stock(line.product_id, line.stock_taken)
                    self.dao.record_inventory_movement(
                        self.dao.get_product(line.product_id),
                        MovementKind.IN,
                        line.stock_taken,
                        reference=sale.folio,
                        notes=f"Cancelación de venta {sale.folio}",
                        user_name=self.session_ctx.cashier_name
                    )

            if sale.client_id and sale.status == OrderStatus.PENDING and sale.remaining_balance > 0:
                client = self.dao.get_client(sale.client_id, for_update=True)
                self.dao.update_client_balance(client.id, client.balance - sale.remaining_balance)

            self.dao.update_order_status(
                sale.id,
                OrderStatus.CANCELLED,
                remaining_balance=Decimal("0.00"),
                cancelled_at=datetime.now(timezone.utc),
                notes=reason or sale.notes
            )

        logger.info(f"Venta {sale.folio} cancelada por {self.session_ctx.cashier_name}")
        self.notifier.publish("orders", [sale.id])
        if sale.stock_applied:
            self.notifier.publish("products", [line.product_id for line in sale.lines])
        if sale.client_id:
            self.notifier.publish("clients", [sale.client_id])
        return sale

    # ===== CONSULTAS =====

    def get_order(self, order_id: UUID) -> SaleOrder:
        return self.dao.get_order(order_id)

    def list_orders(self, status: Optional[OrderStatus] = None, client_id: Optional[UUID] = None,
                    limit: int = 100, offset: int = 0) -> Dict[str, Any]:
        sales, total = self.dao.list_orders(status=status, client_id=client_id, limit=limit, offset=offset)
        return {
            "orders": sales,
            "total": total,
            "limit": limit,
            "offset": offset
        }

    def check_credit(self, client_id: UUID, amount: Decimal) -> CreditCheckOut:
        client = self.dao.get_client(client_id)
        decision = check_credit(client, amount)
        return CreditCheckOut(
            client_id=client.id,
            client_name=client.name,
            credit_limit=client.credit_limit,
            balance=client.balance,
            available_credit=available_credit(client),
            amount=amount,
            decision=decision.value,
            requires_authorization=decision == CreditDecision.REQUIRE_AUTHORIZATION
        )


class CashRegisterService:
    """Servicio para gestión de cajas registradoras"""

    def __init__(self, db: Session, notifier: Optional[Notifier] = None):
        self.db = db
        self.notifier = notifier or NullNotifier()

    def open_cash_register(self, register_data: CashRegisterOpen, cashier_name: str) -> CashRegister:
        """Abrir caja registradora"""
        try:
            existing_open = self.get_current_cash_register()
            if existing_open:
                raise CashRegisterConflict(f"Ya existe una caja abierta: '{existing_open.name}'")

            register_name = register_data.name or f"Caja {cashier_name} - {datetime.now().strftime('%Y%m%d')}"
            new_register = CashRegister(
                name=register_name,
                status=CashRegisterStatus.OPEN,
                opening_balance=register_data.opening_balance,
                opened_by=cashier_name,
                opened_at=datetime.now(timezone.utc),
                opening_notes=register_data.opening_notes
            )

            self.db.add(new_register)
            self.db.commit()
            self.db.refresh(new_register)

        except POSError:
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            raise DataAccessFailure("open_cash_register", e)

        logger.info(f"Caja '{new_register.name}' abierta por {cashier_name} con {new_register.opening_balance}")
        self.notifier.publish("cash", [new_register.id])
        return new_register

    def get_current_cash_register(self) -> Optional[CashRegister]:
        """Caja abierta actual; None si no hay."""
        return self.db.query(CashRegister).filter(
            CashRegister.status == CashRegisterStatus.OPEN
        ).first()

    def close_cash_register(self, register_id: UUID, close_data: CashRegisterClose,
                            cashier_name: str) -> CashRegister:
        """Cerrar caja registradora con arqueo"""
        try:
            register = self.db.query(CashRegister).filter(CashRegister.id == register_id).first()
            if not register:
                raise NotFound("Caja registradora", register_id)

            if register.status == CashRegisterStatus.CLOSED:
                raise CashRegisterConflict("La caja ya está cerrada")

            # Calcular balance real basado en movimientos
            difference = close_data.closing_balance - register.calculated_balance

            # Si hay diferencia, crear movimiento de ajuste con signo
            if difference != 0:
                register.movements.append(CashMovement(
                    type=MovementType.ADJUSTMENT,
                    amount=difference,
                    reference="ARQUEO",
                    notes=f"Ajuste por diferencia en arqueo: {'Sobrante' if difference > 0 else 'Faltante'} de ${abs(difference)}",
                    created_by=cashier_name
                ))

            register.status = CashRegisterStatus.CLOSED
            register.closing_balance = close_data.closing_balance
            register.closed_by = cashier_name
            register.closed_at = datetime.now(timezone.utc)
            register.closing_notes = close_data.closing_notes

            self.db.commit()
            self.db.refresh(register)

        except POSError:
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            raise DataAccessFailure("close_cash_register", e)

        logger.info(f"Caja '{register.name}' cerrada por {cashier_name}; diferencia {register.difference}")
        self.notifier.publish("cash", [register.id])
        return register


class CashMovementService:
    """Servicio para gestión de movimientos de caja"""

    def __init__(self, db: Session, notifier: Optional[Notifier] = None):
        self.db = db
        self.notifier = notifier or NullNotifier()

    def create_movement(self, movement_data: CashMovementCreate, cashier_name: str) -> CashMovement:
        """Crear movimiento manual en la caja abierta"""
        try:
            register = CashRegisterService(self.db).get_current_cash_register()
            if not register:
                raise CashRegisterConflict("La caja debe estar abierta para registrar movimientos")

            amount = movement_data.amount
            if movement_data.type != MovementType.ADJUSTMENT:
                amount = abs(amount)

            new_movement = CashMovement(
                cash_register_id=register.id,
                type=movement_data.type,
                amount=amount,
                reference=movement_data.reference,
                notes=movement_data.notes,
                created_by=cashier_name
            )

            self.db.add(new_movement)
            self.db.commit()
            self.db.refresh(new_movement)

        except POSError:
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            raise DataAccessFailure("create_cash_movement", e)

        self.notifier.publish("cash", [new_movement.id])
        return new_movement

    def get_movements(self, cash_register_id: Optional[UUID] = None,
                      limit: int = 100, offset: int = 0) -> Dict[str, Any]:
        """Obtener lista de movimientos de caja"""
        query = self.db.query(CashMovement)

        if cash_register_id:
            query = query.filter(CashMovement.cash_register_id == cash_register_id)

        # Ordenar por fecha de creación descendente
        query = query.order_by(desc(CashMovement.created_at))

        total = query.count()
        movements = query.offset(offset).limit(limit).all()

        return {
            "movements": movements,
            "summary": self._calculate_movements_summary(movements),
            "total": total,
            "limit": limit,
            "offset": offset
        }

    def _calculate_movements_summary(self, movements: List[CashMovement]) -> Dict[str, Decimal]:
        """Calcular resumen de movimientos"""
        summary = {
            "total_sales": Decimal("0"),
            "total_credit_payments": Decimal("0"),
            "total_deposits": Decimal("0"),
            "total_withdrawals": Decimal("0"),
            "total_expenses": Decimal("0"),
            "total_adjustments": Decimal("0")
        }
        keys = {
            MovementType.SALE: "total_sales",
            MovementType.CREDIT_PAYMENT: "total_credit_payments",
            MovementType.DEPOSIT: "total_deposits",
            MovementType.WITHDRAWAL: "total_withdrawals",
            MovementType.EXPENSE: "total_expenses",
        }

        for movement in movements:
            if movement.type == MovementType.ADJUSTMENT:
                summary["total_adjustments"] += movement.signed_amount
            else:
                summary[keys[movement.type]] += movement.amount

        return summary
