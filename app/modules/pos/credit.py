"""
Política de crédito de clientes.

``check_credit`` solo decide si la venta cabe en el límite; nunca
autoriza. ``guard_credit`` es el paso que usa el cobro: exige la
contraseña administrativa cuando el límite se excede.
"""
from decimal import Decimal
from typing import Any, Optional
import enum
import logging

from app.common.exceptions import NoClientForCredit, CreditLimitExceeded, AuthorizationDenied
from app.common.money import money, to_decimal

logger = logging.getLogger(__name__)


class CreditDecision(str, enum.Enum):
    ALLOW = "allow"
    REQUIRE_AUTHORIZATION = "require_authorization"


def check_credit(client: Any, proposed_amount: Any) -> CreditDecision:
    """ALLOW si balance + monto <= límite; si no, REQUIRE_AUTHORIZATION."""
    if client is None:
        raise NoClientForCredit()
    exposure = to_decimal(client.balance) + to_decimal(proposed_amount)
    if exposure <= to_decimal(client.credit_limit):
        return CreditDecision.ALLOW
    return CreditDecision.REQUIRE_AUTHORIZATION


def available_credit(client: Any) -> Decimal:
    return money(to_decimal(client.credit_limit) - to_decimal(client.balance))


def guard_credit(client: Any, amount: Any, session_ctx: Any = None,
                 admin_password: Optional[str] = None) -> bool:
    """
    Aplica la política antes de cobrar a crédito.

    Devuelve True cuando la venta pasa gracias a una autorización
    administrativa. Sin contraseña lanza CreditLimitExceeded (el cliente
    puede reintentar con ella); con contraseña incorrecta lanza
    AuthorizationDenied.
    """
    decision = check_credit(client, amount)
    if decision == CreditDecision.ALLOW:
        return False

    if not admin_password or session_ctx is None:
        raise CreditLimitExceeded(client.name, to_decimal(client.balance), to_decimal(amount),
                                  to_decimal(client.credit_limit))
    if not session_ctx.authorize(admin_password):
        raise AuthorizationDenied()

    logger.warning(
        f"Sobregiro de crédito autorizado para {client.name} por {session_ctx.cashier_name}: "
        f"{client.balance} + {amount} > {client.credit_limit}"
    )
    return True
