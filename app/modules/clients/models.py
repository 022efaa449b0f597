"""
Modelo de Clientes con crédito

Un cliente puede comprar a crédito hasta su límite; el saldo (balance)
es el crédito pendiente de cobro. Solo una autorización administrativa
permite que una venta lleve el saldo por encima del límite.
"""

from app.database.database import Base
from sqlalchemy import Column, String, Integer, Numeric, CheckConstraint
from app.common.mixins import BaseMixin


class Client(Base, BaseMixin):
    __tablename__ = "clients"

    name = Column(String(150), nullable=False, index=True)
    rfc = Column(String(20), nullable=True)  # Registro fiscal
    zone = Column(String(80), nullable=True)
    phone = Column(String(40), nullable=True)

    credit_limit = Column(Numeric(15, 2), nullable=False, default=0)
    balance = Column(Numeric(15, 2), nullable=False, default=0)  # Crédito pendiente
    default_price_level = Column(Integer, nullable=False, default=1)  # 1-5

    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_client_balance_non_negative"),
        CheckConstraint("default_price_level BETWEEN 1 AND 5", name="ck_client_price_level"),
    )

    @property
    def available_credit(self):
        return self.credit_limit - self.balance
