"""
Modelos SQLAlchemy para el módulo POS (Point of Sale)

Este módulo maneja las operaciones de punto de venta:
- Order: Venta POS (borrador, pendiente de cobro, pagada o cancelada)
- OrderLine: Líneas de la venta con nivel de precio
- Payment: Pagos recibidos (al cobrar y abonos a crédito)
- CashRegister: Cajas registradoras con apertura/cierre
- CashMovement: Movimientos de caja (ventas, depósitos, retiros, etc.)

Integración con inventario:
- Ventas cobradas → descuentan stock (solo en el primer cobro)
- Ventas en efectivo → registran movimiento de caja
"""

from app.database.database import Base
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Numeric, Enum, Text, Integer, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from uuid import uuid4
from app.common.mixins import TimestampMixin
import enum


# ===== ENUMS =====

class OrderStatus(enum.Enum):
    """Estados de una venta"""
    DRAFT = "draft"           # Guardada sin cobrar
    PENDING = "pending"       # Cobrada a crédito, pendiente de cobranza
    PAID = "paid"             # Liquidada (terminal)
    CANCELLED = "cancelled"   # Cancelada (terminal)


class PaymentMethod(enum.Enum):
    """Medios con los que se recibe dinero"""
    CASH = "cash"
    CARD = "card"
    TRANSFER = "transfer"


class CashRegisterStatus(enum.Enum):
    """Estados de caja registradora"""
    OPEN = "open"       # Caja abierta
    CLOSED = "closed"   # Caja cerrada


class MovementType(enum.Enum):
    """Tipos de movimiento de caja"""
    SALE = "sale"                       # Venta en efectivo
    DEPOSIT = "deposit"                 # Depósito (ingreso manual)
    WITHDRAWAL = "withdrawal"           # Retiro (egreso manual)
    EXPENSE = "expense"                 # Gasto (egreso manual)
    ADJUSTMENT = "adjustment"           # Ajuste (puede ser + o -)
    CREDIT_PAYMENT = "credit_payment"   # Abono de cliente en efectivo


class PaymentState(enum.Enum):
    """Estado de cobro derivado; separa 'pending' sin pagos de 'pending' con abonos"""
    UNPAID = "unpaid"
    PARTIAL = "partial"
    PAID = "paid"


INCOME_TYPES = (MovementType.SALE, MovementType.DEPOSIT, MovementType.CREDIT_PAYMENT)
OUTCOME_TYPES = (MovementType.WITHDRAWAL, MovementType.EXPENSE)


def derive_payment_state(status, total, remaining_balance):
    if status == OrderStatus.PAID:
        return PaymentState.PAID
    if status == OrderStatus.PENDING and remaining_balance < total:
        return PaymentState.PARTIAL
    return PaymentState.UNPAID


# ===== MODELOS =====

class Order(Base, TimestampMixin):
    """
    Venta POS persistida

    El total se calcula siempre a partir de las líneas al momento de
    guardar; ``remaining_balance`` es lo que falta por cobrar (crédito).
    """
    __tablename__ = "sales"

    id = Column(Uuid, primary_key=True, default=uuid4)
    client_id = Column(Uuid, ForeignKey("clients.id"), nullable=True, index=True)
    client_name = Column(String(150), nullable=False)

    cashier_id = Column(String(100), nullable=False, index=True)
    cashier_name = Column(String(100), nullable=True)

    status = Column(Enum(OrderStatus), nullable=False, default=OrderStatus.DRAFT, index=True)
    is_credit = Column(Boolean, nullable=False, default=False)
    payment_method = Column(String(20), nullable=True)  # cash, card, transfer, credit, mixed

    subtotal = Column(Numeric(15, 2), nullable=False, default=0)
    discount_total = Column(Numeric(15, 2), nullable=False, default=0)
    total = Column(Numeric(15, 2), nullable=False, default=0)
    remaining_balance = Column(Numeric(15, 2), nullable=False, default=0)
    change_given = Column(Numeric(15, 2), nullable=False, default=0)

    # El stock se descuenta una sola vez, en el primer cobro
    stock_applied = Column(Boolean, nullable=False, default=False)

    settled_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)

    # Relationships
    client = relationship("Client")
    lines = relationship("OrderLine", back_populates="order", cascade="all, delete-orphan",
                         order_by="OrderLine.position")
    payments = relationship("Payment", back_populates="order", cascade="all, delete-orphan",
                            order_by="Payment.created_at")

    @property
    def folio(self):
        return f"POS-{self.id.hex[:8].upper()}"

    @property
    def payment_state(self):
        return derive_payment_state(self.status, self.total, self.remaining_balance)


class OrderLine(Base):
    __tablename__ = "sale_lines"

    id = Column(Uuid, primary_key=True, default=uuid4)
    order_id = Column(Uuid, ForeignKey("sales.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False)  # Orden de captura
    product_id = Column(Uuid, ForeignKey("products.id"), nullable=False, index=True)
    product_name = Column(String(150), nullable=False)
    quantity = Column(Numeric(12, 3), nullable=False)
    unit_price = Column(Numeric(15, 2), nullable=False)
    price_level = Column(Integer, nullable=False, default=1)
    total = Column(Numeric(15, 2), nullable=False)
    stock_taken = Column(Numeric(12, 3), nullable=False, default=0)  # Lo que realmente salió del inventario

    order = relationship("Order", back_populates="lines")


class Payment(Base, TimestampMixin):
    """Pago recibido contra una venta (cobro inicial o abono)"""
    __tablename__ = "sale_payments"

    id = Column(Uuid, primary_key=True, default=uuid4)
    order_id = Column(Uuid, ForeignKey("sales.id"), nullable=False, index=True)
    amount = Column(Numeric(15, 2), nullable=False)
    method = Column(Enum(PaymentMethod), nullable=False)
    reference = Column(String(100), nullable=True)
    is_installment = Column(Boolean, nullable=False, default=False)
    received_by = Column(String(100), nullable=True)

    order = relationship("Order", back_populates="payments")


class CashRegister(Base, TimestampMixin):
    """
    Cajas registradoras del punto de venta

    Maneja la apertura/cierre de cajas con arqueo automático.
    Solo puede existir una caja abierta simultáneamente.
    """
    __tablename__ = "cash_registers"

    id = Column(Uuid, primary_key=True, default=uuid4)
    name = Column(String(100), nullable=False, index=True)
    status = Column(Enum(CashRegisterStatus), nullable=False, default=CashRegisterStatus.CLOSED, index=True)

    # Balances
    opening_balance = Column(Numeric(15, 2), nullable=False, default=0)
    closing_balance = Column(Numeric(15, 2), nullable=True)  # Solo se llena al cerrar

    # Control de apertura/cierre
    opened_by = Column(String(100), nullable=False)
    closed_by = Column(String(100), nullable=True)
    opened_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    closed_at = Column(DateTime(timezone=True), nullable=True)

    opening_notes = Column(Text, nullable=True)
    closing_notes = Column(Text, nullable=True)

    movements = relationship("CashMovement", back_populates="cash_register", cascade="all, delete-orphan")

    def balance_before_close(self):
        """Balance calculado sin contar el ajuste de arqueo"""
        return self.opening_balance + sum(
            (m.signed_amount for m in self.movements if m.reference != "ARQUEO"), 0
        )

    @property
    def calculated_balance(self):
        """Calcular balance actual basado en movimientos"""
        return self.opening_balance + sum((m.signed_amount for m in self.movements), 0)

    @property
    def difference(self):
        """Diferencia entre closing_balance y el balance esperado al cerrar"""
        if self.status == CashRegisterStatus.CLOSED and self.closing_balance is not None:
            return self.closing_balance - self.balance_before_close()
        return None


class CashMovement(Base, TimestampMixin):
    """
    Movimientos de caja

    - SALE: Generado automáticamente con ventas en efectivo
    - CREDIT_PAYMENT: Abonos de clientes en efectivo
    - DEPOSIT / WITHDRAWAL / EXPENSE: Movimientos manuales
    - ADJUSTMENT: Diferencias de arqueo (con signo)
    """
    __tablename__ = "cash_movements"

    id = Column(Uuid, primary_key=True, default=uuid4)
    cash_register_id = Column(Uuid, ForeignKey("cash_registers.id"), nullable=True, index=True)
    type = Column(Enum(MovementType), nullable=False, index=True)
    amount = Column(Numeric(15, 2), nullable=False)  # Valor absoluto salvo en ajustes
    reference = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)

    order_id = Column(Uuid, ForeignKey("sales.id"), nullable=True, index=True)
    created_by = Column(String(100), nullable=True)

    cash_register = relationship("CashRegister", back_populates="movements")

    @property
    def signed_amount(self):
        """Monto con signo según el tipo de movimiento"""
        if self.type in INCOME_TYPES:
            return abs(self.amount)
        elif self.type in OUTCOME_TYPES:
            return -abs(self.amount)
        else:  # ADJUSTMENT
            return self.amount
