"""
Motor de cobro.

Traduce un pago (unión discriminada de ``schemas``) en un plan de cobro:
estado resultante, saldo pendiente, cambio, montos recibidos por medio y
monto que va a crédito. No escribe nada; ``services.POSOrderService``
aplica el plan dentro de una sola transacción.

Máquina de estados::

    draft   -> pending | paid | cancelled
    pending -> paid | cancelled
    paid, cancelled: terminales
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, List, Optional, Tuple
import logging

from app.common.exceptions import InvalidStatusTransition, PaymentMismatch, NoClientForCredit
from app.common.money import money, amounts_match, tolerance, to_decimal
from app.modules.pos.credit import guard_credit
from app.modules.pos.models import OrderStatus, PaymentMethod
from app.modules.pos.schemas import (
    CashPayment, CardPayment, TransferPayment, CreditPayment, MixedPayment
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")

ALLOWED_TRANSITIONS = {
    OrderStatus.DRAFT: {OrderStatus.PENDING, OrderStatus.PAID, OrderStatus.CANCELLED},
    OrderStatus.PENDING: {OrderStatus.PAID, OrderStatus.CANCELLED},
    OrderStatus.PAID: set(),
    OrderStatus.CANCELLED: set(),
}


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, set())


def ensure_transition(current: OrderStatus, target: OrderStatus) -> None:
    if not can_transition(current, target):
        raise InvalidStatusTransition(current, target)


@dataclass
class SettlementPlan:
    method: str
    new_status: OrderStatus
    remaining_balance: Decimal
    change: Decimal = ZERO
    credit_amount: Decimal = ZERO
    cash_kept: Decimal = ZERO  # Efectivo que se queda en caja (sin cambio)
    tenders: List[Tuple[PaymentMethod, Decimal]] = field(default_factory=list)
    reference: Optional[str] = None
    credit_authorized: bool = False

    @property
    def is_credit(self) -> bool:
        return self.credit_amount > 0


def plan_settlement(
    total: Any,
    payment: Any,
    current_status: OrderStatus = OrderStatus.DRAFT,
    client: Any = None,
    session_ctx: Any = None,
    admin_password: Optional[str] = None,
) -> SettlementPlan:
    """
    Valida el pago contra el total y decide el resultado.

    Solo las órdenes en borrador se cobran completas; una orden pendiente
    se liquida con abonos (``apply_installment``).
    """
    total = money(total)
    if current_status != OrderStatus.DRAFT:
        raise InvalidStatusTransition(current_status, OrderStatus.PAID)

    if isinstance(payment, CashPayment):
        received = money(payment.received)
        if received < total:
            raise PaymentMismatch(
                f"Efectivo insuficiente: recibido {received}, total {total}",
                received=received,
                total=total,
            )
        plan = SettlementPlan(
            method="cash",
            new_status=OrderStatus.PAID,
            remaining_balance=ZERO,
            change=money(received - total),
            cash_kept=total,
            tenders=[(PaymentMethod.CASH, total)],
        )

    elif isinstance(payment, (CardPayment, TransferPayment)):
        method = PaymentMethod(payment.method)
        plan = SettlementPlan(
            method=payment.method,
            new_status=OrderStatus.PAID,
            remaining_balance=ZERO,
            tenders=[(method, total)],
            reference=payment.reference,
        )

    elif isinstance(payment, CreditPayment):
        if client is None:
            raise NoClientForCredit()
        plan = SettlementPlan(
            method="credit",
            new_status=OrderStatus.PENDING,
            remaining_balance=total,
            credit_amount=total,
        )
        plan.credit_authorized = guard_credit(client, total, session_ctx, admin_password)

    elif isinstance(payment, MixedPayment):
        breakdown = payment.breakdown
        if not amounts_match(breakdown.total, total):
            raise PaymentMismatch(
                f"El desglose ({money(breakdown.total)}) no coincide con el total ({total})",
                breakdown_total=money(breakdown.total),
                total=total,
            )
        credit = money(breakdown.credit)
        tenders = [
            (method, money(amount))
            for method, amount in (
                (PaymentMethod.CASH, breakdown.cash),
                (PaymentMethod.CARD, breakdown.card),
                (PaymentMethod.TRANSFER, breakdown.transfer),
            )
            if amount > 0
        ]
        plan = SettlementPlan(
            method="mixed",
            new_status=OrderStatus.PENDING if credit > 0 else OrderStatus.PAID,
            remaining_balance=credit,
            credit_amount=credit,
            cash_kept=money(breakdown.cash),
            tenders=tenders,
            reference=payment.reference,
        )
        if credit > 0:
            if client is None:
                raise NoClientForCredit()
            plan.credit_authorized = guard_credit(client, credit, session_ctx, admin_password)

    else:
        raise PaymentMismatch(f"Método de pago no soportado: {getattr(payment, 'method', payment)}")

    ensure_transition(current_status, plan.new_status)

    logger.debug(f"Plan de cobro {plan.method}: {plan.new_status.value}, pendiente {plan.remaining_balance}")
    return plan


@dataclass
class InstallmentResult:
    amount_applied: Decimal
    remaining_balance: Decimal
    new_status: OrderStatus


def apply_installment(current_status: OrderStatus, remaining_balance: Any, amount: Any) -> InstallmentResult:
    """
    Abono contra una orden pendiente.

    El monto debe ser > 0 y no exceder el saldo (con tolerancia de un
    centavo). La orden pasa a pagada cuando el saldo queda en <= 0.01;
    ese residuo se da por liquidado.
    """
    if current_status != OrderStatus.PENDING:
        raise InvalidStatusTransition(current_status, OrderStatus.PAID)

    remaining = money(remaining_balance)
    amount = money(to_decimal(amount))
    if amount <= 0:
        raise PaymentMismatch(f"El abono debe ser mayor a 0 (recibido {amount})", amount=amount)
    if amount > remaining + tolerance():
        raise PaymentMismatch(
            f"El abono ({amount}) excede el saldo pendiente ({remaining})",
            amount=amount,
            remaining_balance=remaining,
        )

    new_remaining = money(remaining - amount)
    if new_remaining <= tolerance():
        ensure_transition(current_status, OrderStatus.PAID)
        return InstallmentResult(amount_applied=remaining, remaining_balance=ZERO, new_status=OrderStatus.PAID)
    return InstallmentResult(amount_applied=amount, remaining_balance=new_remaining, new_status=OrderStatus.PENDING)
