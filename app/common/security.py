from passlib.context import CryptContext
from typing import Optional
import logging

from app.core.config import settings

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    """Verify a hashed password against a plain password."""
    if not hashed:
        return False
    return pwd_context.verify(plain, hashed)


class AdminAuthorizer:
    """
    Verifica la credencial administrativa usada para autorizar
    sobregiros de crédito y ventas sin stock suficiente.
    """

    def __init__(self, password_hash: Optional[str] = None):
        self._hash = password_hash

    @classmethod
    def from_settings(cls) -> "AdminAuthorizer":
        if settings.ADMIN_OVERRIDE_PASSWORD_HASH:
            return cls(settings.ADMIN_OVERRIDE_PASSWORD_HASH)
        return cls(hash_password(settings.ADMIN_OVERRIDE_PASSWORD))

    def verify(self, password: Optional[str]) -> bool:
        if not password:
            return False
        ok = verify_password(password, self._hash)
        if not ok:
            logger.warning("Intento de autorización administrativa rechazado")
        return ok


_authorizer: Optional[AdminAuthorizer] = None


def get_admin_authorizer() -> AdminAuthorizer:
    global _authorizer
    if _authorizer is None:
        _authorizer = AdminAuthorizer.from_settings()
    return _authorizer
