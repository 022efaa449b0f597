"""
Esquemas Pydantic para el módulo POS (Point of Sale)

Define la validación de datos de entrada y salida para:
- Tabs: Órdenes en captura (en memoria, id temporal)
- Payments: Unión discriminada por ``method`` (cash/card/transfer/credit/mixed)
- Orders: Ventas persistidas, cobro, abonos y cancelación
- Credit / Tare: Consulta de crédito y cálculo de peso neto
- CashRegister / CashMovement: Cajas y movimientos de efectivo
"""

from pydantic import BaseModel, Field, field_validator, model_validator
from decimal import Decimal
from typing import Optional, List, Dict, Any, Union, Literal, Annotated
from uuid import UUID
from datetime import datetime

from app.modules.pos.models import (
    OrderStatus, PaymentMethod, PaymentState, CashRegisterStatus, MovementType
)


# ===== TAB SCHEMAS =====

class TabOpen(BaseModel):
    """Abrir una orden en captura"""
    client_id: Optional[UUID] = Field(None, description="Cliente (vacío = cliente general)")


class TabClientUpdate(BaseModel):
    client_id: Optional[UUID] = Field(None, description="Cliente (vacío = cliente general)")


class ItemAdd(BaseModel):
    """Agregar producto a la orden"""
    product_id: UUID
    quantity: Decimal = Field(..., description="Cantidad (fraccionaria para productos por peso)")
    price_level: Optional[int] = Field(None, description="Nivel 1-5; vacío = nivel de la orden")
    custom_price: Optional[Decimal] = Field(None, ge=0, description="Precio libre (> 0 sustituye al nivel)")


class WeighedItemAdd(BaseModel):
    """Agregar producto por peso usando tara"""
    product_id: UUID
    tare_option_id: str = Field(..., description="ID de la opción de tara")
    box_count: int = Field(default=1, ge=0, description="Número de cajas")
    gross_weight: Decimal = Field(..., description="Peso bruto de báscula (kg)")
    price_level: Optional[int] = None
    custom_price: Optional[Decimal] = Field(None, ge=0)


class QuantityUpdate(BaseModel):
    quantity: Decimal


class PriceUpdate(BaseModel):
    price_level: int
    custom_price: Optional[Decimal] = Field(None, ge=0)


class DiscountApply(BaseModel):
    amount: Decimal = Field(..., description="Descuento total en dinero")


class TabLineOut(BaseModel):
    id: str
    product_id: UUID
    product_name: str
    quantity: Decimal
    unit_price: Decimal
    price_level: int
    unit: str
    total: Decimal

    model_config = {"from_attributes": True}


class TabOut(BaseModel):
    """Orden en captura"""
    id: str
    cashier_id: str
    client_id: Optional[UUID] = None
    client_name: str
    default_price_level: int
    status: OrderStatus
    items: List[TabLineOut]
    subtotal: Decimal
    discount_total: Decimal
    total: Decimal

    model_config = {"from_attributes": True}


class TabList(BaseModel):
    tabs: List[TabOut]
    total: int
    max_open_tabs: int


# ===== PAYMENT SCHEMAS =====

class CashPayment(BaseModel):
    method: Literal["cash"] = "cash"
    received: Decimal = Field(..., ge=0, description="Efectivo recibido")


class CardPayment(BaseModel):
    method: Literal["card"] = "card"
    reference: Optional[str] = Field(None, max_length=100, description="Autorización de terminal")


class TransferPayment(BaseModel):
    method: Literal["transfer"] = "transfer"
    reference: Optional[str] = Field(None, max_length=100)


class CreditPayment(BaseModel):
    method: Literal["credit"] = "credit"


class PaymentBreakdown(BaseModel):
    """Desglose de un pago mixto"""
    cash: Decimal = Field(default=Decimal("0"), ge=0)
    card: Decimal = Field(default=Decimal("0"), ge=0)
    transfer: Decimal = Field(default=Decimal("0"), ge=0)
    credit: Decimal = Field(default=Decimal("0"), ge=0)

    @property
    def total(self) -> Decimal:
        return self.cash + self.card + self.transfer + self.credit


class MixedPayment(BaseModel):
    method: Literal["mixed"] = "mixed"
    breakdown: PaymentBreakdown
    reference: Optional[str] = Field(None, max_length=100)


PaymentIn = Annotated[
    Union[CashPayment, CardPayment, TransferPayment, CreditPayment, MixedPayment],
    Field(discriminator="method")
]


class SettleRequest(BaseModel):
    """Cobro de una orden"""
    payment: PaymentIn
    admin_password: Optional[str] = Field(None, description="Autoriza sobregiro de crédito o de stock")
    stock_override: bool = Field(default=False, description="Vender aunque no alcance el stock")
    notes: Optional[str] = Field(None, max_length=500)


# ===== ORDER SCHEMAS =====

class OrderLineOut(BaseModel):
    id: UUID
    position: int
    product_id: UUID
    product_name: str
    quantity: Decimal
    unit_price: Decimal
    price_level: int
    total: Decimal

    model_config = {"from_attributes": True}


class PaymentOut(BaseModel):
    id: UUID
    amount: Decimal
    method: PaymentMethod
    reference: Optional[str] = None
    is_installment: bool
    received_by: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class OrderOut(BaseModel):
    """Venta persistida"""
    id: UUID
    folio: str
    client_id: Optional[UUID] = None
    client_name: str
    cashier_id: str
    cashier_name: Optional[str] = None
    status: OrderStatus
    payment_state: PaymentState
    is_credit: bool
    payment_method: Optional[str] = None
    subtotal: Decimal
    discount_total: Decimal
    total: Decimal
    remaining_balance: Decimal
    change_given: Decimal
    settled_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: datetime
    lines: List[OrderLineOut] = []
    payments: List[PaymentOut] = []

    model_config = {"from_attributes": True}


class OrderList(BaseModel):
    orders: List[OrderOut]
    total: int
    limit: int
    offset: int


class SettlementOut(BaseModel):
    """Resultado de un cobro"""
    order: OrderOut
    new_status: OrderStatus
    remaining_balance: Decimal
    change: Decimal
    credit_authorized: bool = Field(description="El crédito pasó por autorización administrativa")
    stock_override: bool = Field(description="Se vendió sin stock suficiente con autorización")


class InstallmentCreate(BaseModel):
    """Abono a una venta a crédito"""
    amount: Decimal = Field(..., description="Monto del abono")
    method: PaymentMethod = Field(default=PaymentMethod.CASH)
    reference: Optional[str] = Field(None, max_length=100)


class InstallmentOut(BaseModel):
    order: OrderOut
    amount_applied: Decimal
    remaining_balance: Decimal
    new_status: OrderStatus
    payment_state: PaymentState


class OrderCancel(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


# ===== CREDIT / TARE SCHEMAS =====

class CreditCheckRequest(BaseModel):
    client_id: UUID
    amount: Decimal = Field(..., ge=0)


class CreditCheckOut(BaseModel):
    client_id: UUID
    client_name: str
    credit_limit: Decimal
    balance: Decimal
    available_credit: Decimal
    amount: Decimal
    decision: str
    requires_authorization: bool


class TareOptionOut(BaseModel):
    id: str
    name: str
    weight: Decimal

    model_config = {"from_attributes": True}


class TareComputeRequest(BaseModel):
    tare_option_id: str
    box_count: int = Field(default=1, ge=0)
    gross_weight: Decimal
    product_id: Optional[UUID] = Field(None, description="Si se indica, valida contra su stock")


class TareComputeOut(BaseModel):
    tare_option: TareOptionOut
    box_count: int
    gross_weight: Decimal
    tare_weight: Decimal
    net_weight: Decimal


# ===== CASH REGISTER SCHEMAS =====

class CashRegisterOpen(BaseModel):
    """Esquema para abrir caja registradora"""
    name: Optional[str] = Field(None, max_length=100, description="Nombre de la caja")
    opening_balance: Decimal = Field(..., ge=0, description="Saldo inicial de apertura")
    opening_notes: Optional[str] = Field(None, max_length=500, description="Notas de apertura")


class CashRegisterClose(BaseModel):
    """Esquema para cerrar caja registradora"""
    closing_balance: Decimal = Field(..., ge=0, description="Saldo final declarado")
    closing_notes: Optional[str] = Field(None, max_length=500, description="Notas de cierre")


class CashRegisterOut(BaseModel):
    """Esquema de salida para caja registradora"""
    id: UUID
    name: str
    status: CashRegisterStatus
    opening_balance: Decimal
    closing_balance: Optional[Decimal] = None
    calculated_balance: Decimal = Field(description="Balance calculado basado en movimientos")
    difference: Optional[Decimal] = Field(None, description="Diferencia entre declarado y calculado")
    opened_by: str
    closed_by: Optional[str] = None
    opened_at: datetime
    closed_at: Optional[datetime] = None
    opening_notes: Optional[str] = None
    closing_notes: Optional[str] = None

    model_config = {"from_attributes": True}


# ===== CASH MOVEMENT SCHEMAS =====

class CashMovementCreate(BaseModel):
    """Esquema para crear movimiento de caja"""
    type: MovementType = Field(..., description="Tipo de movimiento")
    amount: Decimal = Field(..., description="Monto (solo los ajustes pueden ser negativos)")
    reference: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator('type')
    @classmethod
    def validate_type(cls, v: MovementType) -> MovementType:
        if v in (MovementType.SALE, MovementType.CREDIT_PAYMENT):
            raise ValueError('Las ventas y abonos se registran automáticamente')
        return v

    @model_validator(mode='after')
    def validate_amount(self):
        if self.amount == 0:
            raise ValueError('El monto no puede ser cero')
        if self.amount < 0 and self.type != MovementType.ADJUSTMENT:
            raise ValueError('El monto debe ser mayor a cero')
        return self


class CashMovementOut(BaseModel):
    """Esquema de salida para movimiento de caja"""
    id: UUID
    cash_register_id: Optional[UUID] = None
    type: MovementType
    amount: Decimal
    signed_amount: Decimal
    reference: Optional[str] = None
    notes: Optional[str] = None
    order_id: Optional[UUID] = None
    created_by: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class CashMovementList(BaseModel):
    """Esquema para lista de movimientos de caja"""
    movements: List[CashMovementOut]
    summary: Dict[str, Any]
    total: int
    limit: int
    offset: int
