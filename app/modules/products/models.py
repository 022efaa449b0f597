from app.database.database import Base
from sqlalchemy import Column, String, Boolean, ForeignKey, Numeric, Enum, Uuid, CheckConstraint, UniqueConstraint
from sqlalchemy.orm import relationship
from uuid import uuid4
from app.common.mixins import BaseMixin, TimestampMixin
import enum


PRICE_LEVELS = (1, 2, 3, 4, 5)


class Product(Base, BaseMixin):
    __tablename__ = "products"

    code = Column(String(50), nullable=False)
    name = Column(String(150), nullable=False)
    line = Column(String(80), nullable=True)  # Línea (ej. Granos)
    subline = Column(String(80), nullable=True)  # Sublínea
    unit = Column(String(20), nullable=False, default="PZA")  # PZA, KG, CAJA...
    sold_by_weight = Column(Boolean, default=False, nullable=False)  # Usa flujo de tara

    stock = Column(Numeric(12, 3), nullable=False, default=0)
    cost = Column(Numeric(15, 2), nullable=False, default=0)

    # Cinco niveles de precio (1 general ... 5 especial)
    price1 = Column(Numeric(15, 2), nullable=False, default=0)
    price2 = Column(Numeric(15, 2), nullable=False, default=0)
    price3 = Column(Numeric(15, 2), nullable=False, default=0)
    price4 = Column(Numeric(15, 2), nullable=False, default=0)
    price5 = Column(Numeric(15, 2), nullable=False, default=0)

    movements = relationship("InventoryMovement", back_populates="product")

    __table_args__ = (
        UniqueConstraint("code", name="uq_product_code"),
        CheckConstraint("stock >= 0", name="ck_product_stock_non_negative"),
    )

    def price_for_level(self, level: int):
        return getattr(self, f"price{level}")


class MovementKind(enum.Enum):
    """Tipos de movimiento de inventario"""
    IN = "entrada"        # Compras, devoluciones
    OUT = "salida"        # Ventas
    ADJUSTMENT = "ajuste"  # Conteo físico


class InventoryMovement(Base, TimestampMixin):
    __tablename__ = "inventory_movements"

    id = Column(Uuid, primary_key=True, default=uuid4)
    product_id = Column(Uuid, ForeignKey("products.id"), nullable=False, index=True)
    product_name = Column(String(150), nullable=False)

    kind = Column(Enum(MovementKind), nullable=False)
    quantity = Column(Numeric(12, 3), nullable=False)  # Siempre positivo; el tipo define el signo
    reference = Column(String(100), nullable=True)  # POS-xxxxxx, compra, etc.
    notes = Column(String(255), nullable=True)
    user_name = Column(String(100), nullable=True)

    product = relationship("Product", back_populates="movements")
