"""
Errores de dominio del POS y su traducción a respuestas HTTP.

Cada error lleva un ``code`` estable que los clientes pueden usar para
decidir qué mostrar al operador. Los errores de validación nunca dejan
mutaciones parciales: la orden queda en su estado previo.
"""
from decimal import Decimal
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse


class POSError(Exception):
    """Base de todos los errores del POS."""

    code = "pos_error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, **extra: Any):
        self.message = message
        self.extra = extra
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        payload = {"detail": self.message, "error_type": self.code}
        payload.update({k: _jsonable(v) for k, v in self.extra.items()})
        return payload


def _jsonable(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, list):
        return [_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    return value


class InvalidPriceLevel(POSError):
    code = "invalid_price_level"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY

    def __init__(self, level: Any):
        super().__init__(f"Nivel de precio inválido: {level} (debe ser 1-5)", price_level=level)


class NonPositiveNetWeight(POSError):
    code = "non_positive_net_weight"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY

    def __init__(self, net_weight: Decimal):
        super().__init__(
            f"El peso neto debe ser mayor a 0 (calculado: {net_weight})",
            net_weight=net_weight,
        )


class InsufficientStock(POSError):
    code = "insufficient_stock"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, shortages: List[Dict[str, Any]]):
        names = ", ".join(
            f"{s['product_name']} (requerido {s['required']}, disponible {s['available']})"
            for s in shortages
        )
        super().__init__(f"Stock insuficiente: {names}", shortages=shortages)
        self.shortages = shortages


class LineNotFound(POSError):
    code = "line_not_found"
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, line_id: Any):
        super().__init__(f"Línea {line_id} no encontrada en la orden", line_id=str(line_id))


class InvalidQuantity(POSError):
    code = "invalid_quantity"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY

    def __init__(self, quantity: Any, message: Optional[str] = None):
        super().__init__(message or f"Cantidad inválida: {quantity} (debe ser mayor a 0)", quantity=quantity)


class InvalidDiscount(POSError):
    code = "invalid_discount"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY

    def __init__(self, discount: Decimal, subtotal: Decimal):
        super().__init__(
            f"Descuento inválido: {discount} (debe estar entre 0 y el subtotal {subtotal})",
            discount=discount,
            subtotal=subtotal,
        )


class PaymentMismatch(POSError):
    code = "payment_mismatch"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class EmptyOrder(POSError):
    code = "empty_order"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY

    def __init__(self, order_id: Any):
        super().__init__(f"La orden {order_id} no tiene productos", order_id=str(order_id))


class NoClientForCredit(POSError):
    code = "no_client_for_credit"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY

    def __init__(self):
        super().__init__("Las ventas a crédito requieren un cliente")


class CreditLimitExceeded(POSError):
    """Error suave: se resuelve con autorización administrativa."""

    code = "credit_limit_exceeded"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, client_name: str, balance: Decimal, amount: Decimal, credit_limit: Decimal):
        super().__init__(
            f"El crédito de {client_name} excede su límite: "
            f"{balance} + {amount} > {credit_limit}",
            requires_authorization=True,
            balance=balance,
            amount=amount,
            credit_limit=credit_limit,
        )


class AuthorizationDenied(POSError):
    code = "authorization_denied"
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self):
        super().__init__("Contraseña de administrador incorrecta")


class InvalidStatusTransition(POSError):
    code = "invalid_status_transition"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, current: Any, target: Any):
        current_value = getattr(current, "value", current)
        target_value = getattr(target, "value", target)
        super().__init__(
            f"Transición de estado no permitida: {current_value} -> {target_value}",
            current_status=current_value,
            target_status=target_value,
        )


class NotFound(POSError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(f"{entity} no encontrado: {entity_id}", entity=entity, entity_id=str(entity_id))


class TabLimitReached(POSError):
    code = "tab_limit_reached"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, limit: int):
        super().__init__(f"Máximo de {limit} órdenes abiertas por cajero", limit=limit)


class CashRegisterConflict(POSError):
    code = "cash_register_conflict"
    status_code = status.HTTP_409_CONFLICT


class DataAccessFailure(POSError):
    code = "data_access_failure"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        super().__init__(f"Error de acceso a datos durante '{operation}'", operation=operation)
        self.cause = cause


async def pos_error_handler(request: Request, exc: POSError) -> JSONResponse:
    """Map POSError subclasses to HTTP responses."""
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(POSError, pos_error_handler)
