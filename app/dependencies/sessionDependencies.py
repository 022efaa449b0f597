from dataclasses import dataclass
from typing import Annotated, Optional
from fastapi import Depends, Header

from app.common.security import AdminAuthorizer, get_admin_authorizer


@dataclass
class SessionContext:
    """Identidad del cajero y autorizador administrativo de la operación."""
    cashier_id: str
    cashier_name: str
    authorizer: AdminAuthorizer

    def authorize(self, password: Optional[str]) -> bool:
        return self.authorizer.verify(password)


def get_session_context(
    x_cashier_id: Optional[str] = Header(default=None, alias="X-Cashier-Id"),
    x_cashier_name: Optional[str] = Header(default=None, alias="X-Cashier-Name"),
    authorizer: AdminAuthorizer = Depends(get_admin_authorizer),
) -> SessionContext:
    cashier_id = x_cashier_id or "pos"
    return SessionContext(
        cashier_id=cashier_id,
        cashier_name=x_cashier_name or cashier_id,
        authorizer=authorizer,
    )


session_dependency = Annotated[SessionContext, Depends(get_session_context)]
