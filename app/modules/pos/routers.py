"""
Routers FastAPI para el módulo POS (Point of Sale)

Define todos los endpoints REST para:
- Tabs: Órdenes en captura (agregar, quitar, cantidad, precio, descuento)
- Orders: Ventas guardadas, cobro, abonos y cancelación
- Credit / Tare: Consulta de crédito y cálculo de peso neto
- CashRegisters / CashMovements: Cajas y movimientos de efectivo

El cajero se identifica con los headers ``X-Cashier-Id`` y ``X-Cashier-Name``.
"""

from fastapi import APIRouter, Depends, HTTPException, status, Query, Path
from sqlalchemy.orm import Session
from typing import Optional, List
from uuid import UUID

from app.common.money import to_decimal
from app.common.notifier import ChangeNotifier, get_notifier
from app.core.config import settings
from app.database.database import get_db
from app.dependencies.sessionDependencies import SessionContext, get_session_context
from app.modules.pos.models import OrderStatus
from app.modules.pos.services import POSOrderService, CashRegisterService, CashMovementService
from app.modules.pos.tabs import TabRegistry, get_tab_registry
from app.modules.pos.tare import get_tare_options, find_tare_option, compute_net
from app.modules.products.service import get_product_by_id
from app.modules.pos.schemas import (
    # Tab schemas
    TabOpen, TabClientUpdate, TabOut, TabList,
    ItemAdd, WeighedItemAdd, QuantityUpdate, PriceUpdate, DiscountApply,

    # Order schemas
    SettleRequest, SettlementOut, OrderOut, OrderList,
    InstallmentCreate, InstallmentOut, OrderCancel,

    # Credit / Tare schemas
    CreditCheckRequest, CreditCheckOut, TareOptionOut, TareComputeRequest, TareComputeOut,

    # CashRegister / CashMovement schemas
    CashRegisterOpen, CashRegisterClose, CashRegisterOut,
    CashMovementCreate, CashMovementOut, CashMovementList
)


def get_order_service(
    db: Session = Depends(get_db),
    session_ctx: SessionContext = Depends(get_session_context),
    tabs: TabRegistry = Depends(get_tab_registry),
    notifier: ChangeNotifier = Depends(get_notifier)
) -> POSOrderService:
    return POSOrderService(db, session_ctx, tabs, notifier)


# ===== TABS ROUTER =====

tabs_router = APIRouter(prefix="/pos/tabs", tags=["POS"])


@tabs_router.post("/", response_model=TabOut, status_code=status.HTTP_201_CREATED)
async def open_tab(
    data: TabOpen = TabOpen(),
    service: POSOrderService = Depends(get_order_service)
):
    """
    Abrir una orden en captura.

    - Con **client_id** la orden toma el nivel de precio por defecto del cliente
    - Sin cliente se usa el cliente general
    - Máximo de órdenes abiertas por cajero según configuración
    """
    return TabOut.model_validate(service.open_tab(data.client_id))


@tabs_router.get("/", response_model=TabList)
async def list_tabs(service: POSOrderService = Depends(get_order_service)):
    """Órdenes abiertas del cajero"""
    tabs = service.list_tabs()
    return {
        "tabs": [TabOut.model_validate(t) for t in tabs],
        "total": len(tabs),
        "max_open_tabs": settings.MAX_OPEN_TABS
    }


@tabs_router.get("/{tab_id}", response_model=TabOut)
async def get_tab(
    tab_id: str = Path(..., description="ID temporal de la orden"),
    service: POSOrderService = Depends(get_order_service)
):
    return TabOut.model_validate(service.get_tab(tab_id))


@tabs_router.delete("/{tab_id}", status_code=status.HTTP_204_NO_CONTENT)
async def abandon_tab(
    tab_id: str = Path(...),
    service: POSOrderService = Depends(get_order_service)
):
    """Abandonar la orden (no se persiste nada)"""
    service.abandon_tab(tab_id)


@tabs_router.put("/{tab_id}/client", response_model=TabOut)
async def set_tab_client(
    data: TabClientUpdate,
    tab_id: str = Path(...),
    service: POSOrderService = Depends(get_order_service)
):
    """Cambiar el cliente de la orden; las líneas existentes conservan su precio"""
    return TabOut.model_validate(service.set_tab_client(tab_id, data.client_id))


@tabs_router.post("/{tab_id}/items", response_model=TabOut)
async def add_item(
    data: ItemAdd,
    tab_id: str = Path(...),
    service: POSOrderService = Depends(get_order_service)
):
    """
    Agregar producto.

    Si ya existe una línea con el mismo producto, nivel y precio se suma la
    cantidad. Valida contra el stock actual (aviso, no reserva).
    """
    return TabOut.model_validate(service.add_item(tab_id, data))


@tabs_router.post("/{tab_id}/weighed-items", response_model=TabOut)
async def add_weighed_item(
    data: WeighedItemAdd,
    tab_id: str = Path(...),
    service: POSOrderService = Depends(get_order_service)
):
    """Agregar producto por peso: neto = bruto - tara x cajas"""
    return TabOut.model_validate(service.add_weighed_item(tab_id, data))


@tabs_router.delete("/{tab_id}/items/{line_id}", response_model=TabOut)
async def remove_item(
    tab_id: str = Path(...),
    line_id: str = Path(...),
    service: POSOrderService = Depends(get_order_service)
):
    return TabOut.model_validate(service.remove_item(tab_id, line_id))


@tabs_router.patch("/{tab_id}/items/{line_id}/quantity", response_model=TabOut)
async def update_quantity(
    data: QuantityUpdate,
    tab_id: str = Path(...),
    line_id: str = Path(...),
    service: POSOrderService = Depends(get_order_service)
):
    """Cambiar cantidad (> 0; para quitar la línea usar DELETE)"""
    return TabOut.model_validate(service.update_quantity(tab_id, line_id, data.quantity))


@tabs_router.patch("/{tab_id}/items/{line_id}/price", response_model=TabOut)
async def update_item_price(
    data: PriceUpdate,
    tab_id: str = Path(...),
    line_id: str = Path(...),
    service: POSOrderService = Depends(get_order_service)
):
    """Cambiar nivel de precio o asignar precio libre"""
    return TabOut.model_validate(service.update_item_price(tab_id, line_id, data))


@tabs_router.post("/{tab_id}/discount", response_model=TabOut)
async def apply_discount(
    data: DiscountApply,
    tab_id: str = Path(...),
    service: POSOrderService = Depends(get_order_service)
):
    """Descuento total en dinero (entre 0 y el subtotal)"""
    return TabOut.model_validate(service.apply_discount(tab_id, data.amount))


@tabs_router.post("/{tab_id}/save", response_model=OrderOut, status_code=status.HTTP_201_CREATED)
async def save_tab(
    tab_id: str = Path(...),
    service: POSOrderService = Depends(get_order_service)
):
    """Guardar como borrador sin cobrar"""
    return service.save_tab(tab_id)


@tabs_router.post("/{tab_id}/settle", response_model=SettlementOut)
async def settle_tab(
    data: SettleRequest,
    tab_id: str = Path(...),
    service: POSOrderService = Depends(get_order_service)
):
    """
    Cobrar la orden.

    Métodos (campo **payment.method**):
    - **cash**: requiere `received >= total`; devuelve el cambio
    - **card** / **transfer**: liquidan el total
    - **credit**: requiere cliente; queda pendiente y suma al saldo
    - **mixed**: el desglose debe sumar el total (tolerancia 0.01)

    Si el crédito excede el límite responde 409 con `requires_authorization`;
    reintentar con **admin_password**.
    """
    return service.settle_tab(tab_id, data)


# ===== ORDERS ROUTER =====

orders_router = APIRouter(prefix="/pos/orders", tags=["POS"])


@orders_router.get("/", response_model=OrderList)
async def list_orders(
    status_filter: Optional[OrderStatus] = Query(None, alias="status", description="Filtrar por estado"),
    client_id: Optional[UUID] = Query(None, description="Filtrar por cliente"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    service: POSOrderService = Depends(get_order_service)
):
    return service.list_orders(status=status_filter, client_id=client_id, limit=limit, offset=offset)


@orders_router.get("/{order_id}", response_model=OrderOut)
async def get_order(
    order_id: UUID = Path(...),
    service: POSOrderService = Depends(get_order_service)
):
    return service.get_order(order_id)


@orders_router.post("/{order_id}/settle", response_model=SettlementOut)
async def settle_order(
    data: SettleRequest,
    order_id: UUID = Path(...),
    service: POSOrderService = Depends(get_order_service)
):
    """Cobrar una orden guardada como borrador"""
    return service.settle_order(order_id, data)


@orders_router.post("/{order_id}/payments", response_model=InstallmentOut, status_code=status.HTTP_201_CREATED)
async def register_installment(
    data: InstallmentCreate,
    order_id: UUID = Path(...),
    service: POSOrderService = Depends(get_order_service)
):
    """
    Registrar abono a una venta pendiente.

    - El monto debe ser mayor a 0 y no exceder el saldo pendiente
    - Reduce el saldo del cliente
    - Los abonos en efectivo generan movimiento de caja
    """
    return service.register_installment(order_id, data)


@orders_router.post("/{order_id}/cancel", response_model=OrderOut)
async def cancel_order(
    data: OrderCancel = OrderCancel(),
    order_id: UUID = Path(...),
    service: POSOrderService = Depends(get_order_service)
):
    """Cancelar venta en borrador o pendiente (devuelve stock y crédito)"""
    return service.cancel_order(order_id, data.reason)


# ===== CREDIT / TARE ROUTER =====

pos_router = APIRouter(prefix="/pos", tags=["POS"])


@pos_router.post("/credit-check", response_model=CreditCheckOut)
async def check_credit(
    data: CreditCheckRequest,
    service: POSOrderService = Depends(get_order_service)
):
    """Indica si un monto cabe en el crédito del cliente o requiere autorización"""
    return service.check_credit(data.client_id, data.amount)


@pos_router.get("/tare-options", response_model=List[TareOptionOut])
async def list_tare_options():
    return get_tare_options()


@pos_router.post("/tare/compute", response_model=TareComputeOut)
async def compute_tare(data: TareComputeRequest, db: Session = Depends(get_db)):
    """Calcular peso neto; si se indica producto valida contra su stock"""
    option = find_tare_option(data.tare_option_id)
    product = get_product_by_id(db, data.product_id) if data.product_id else None
    net_weight = compute_net(
        option,
        data.box_count,
        data.gross_weight,
        available_stock=product.stock if product else None,
        product_id=product.id if product else None,
        product_name=product.name if product else ""
    )
    return TareComputeOut(
        tare_option=TareOptionOut.model_validate(option),
        box_count=data.box_count,
        gross_weight=to_decimal(data.gross_weight),
        tare_weight=option.weight * data.box_count,
        net_weight=net_weight
    )


# ===== CASH REGISTERS ROUTER =====

cash_registers_router = APIRouter(prefix="/pos/cash-registers", tags=["POS"])


@cash_registers_router.post("/open", response_model=CashRegisterOut, status_code=status.HTTP_201_CREATED)
async def open_cash_register(
    register_data: CashRegisterOpen,
    db: Session = Depends(get_db),
    session_ctx: SessionContext = Depends(get_session_context),
    notifier: ChangeNotifier = Depends(get_notifier)
):
    """
    Abrir caja registradora.

    - **opening_balance**: Saldo inicial de apertura
    - Solo una caja abierta simultáneamente
    """
    service = CashRegisterService(db, notifier)
    return service.open_cash_register(register_data, session_ctx.cashier_name)


@cash_registers_router.get("/current", response_model=CashRegisterOut)
async def get_current_cash_register(db: Session = Depends(get_db)):
    """Devuelve la caja abierta actual (404 si no hay)"""
    register = CashRegisterService(db).get_current_cash_register()
    if not register:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No hay caja abierta")
    return register


@cash_registers_router.post("/{register_id}/close", response_model=CashRegisterOut)
async def close_cash_register(
    close_data: CashRegisterClose,
    register_id: UUID = Path(..., description="ID de la caja registradora"),
    db: Session = Depends(get_db),
    session_ctx: SessionContext = Depends(get_session_context),
    notifier: ChangeNotifier = Depends(get_notifier)
):
    """
    Cerrar caja con arqueo.

    La diferencia entre el saldo declarado y el calculado se registra como
    movimiento de ajuste (sobrante o faltante).
    """
    service = CashRegisterService(db, notifier)
    return service.close_cash_register(register_id, close_data, session_ctx.cashier_name)


# ===== CASH MOVEMENTS ROUTER =====

cash_movements_router = APIRouter(prefix="/pos/cash-movements", tags=["POS"])


@cash_movements_router.post("/", response_model=CashMovementOut, status_code=status.HTTP_201_CREATED)
async def create_cash_movement(
    movement_data: CashMovementCreate,
    db: Session = Depends(get_db),
    session_ctx: SessionContext = Depends(get_session_context),
    notifier: ChangeNotifier = Depends(get_notifier)
):
    """
    Registrar movimiento manual (depósito, retiro, gasto o ajuste).

    Las ventas y abonos en efectivo se registran automáticamente.
    """
    service = CashMovementService(db, notifier)
    return service.create_movement(movement_data, session_ctx.cashier_name)


@cash_movements_router.get("/", response_model=CashMovementList)
async def get_cash_movements(
    cash_register_id: Optional[UUID] = Query(None, description="Filtrar por caja"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db)
):
    service = CashMovementService(db)
    return service.get_movements(cash_register_id=cash_register_id, limit=limit, offset=offset)
