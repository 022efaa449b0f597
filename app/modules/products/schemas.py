from pydantic import BaseModel, Field, model_validator
from uuid import UUID
from typing import Optional, List, Literal
from decimal import Decimal
from datetime import datetime

from app.modules.products.models import MovementKind


class ProductBase(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=150)
    line: Optional[str] = Field(None, max_length=80)
    subline: Optional[str] = Field(None, max_length=80)
    unit: str = Field(default="PZA", max_length=20)
    sold_by_weight: bool = False
    cost: Decimal = Field(default=Decimal("0"), ge=0)
    price1: Decimal = Field(..., ge=0, description="Precio general")
    price2: Decimal = Field(default=Decimal("0"), ge=0)
    price3: Decimal = Field(default=Decimal("0"), ge=0)
    price4: Decimal = Field(default=Decimal("0"), ge=0)
    price5: Decimal = Field(default=Decimal("0"), ge=0, description="Precio especial")


class ProductCreate(ProductBase):
    """Schema para crear producto"""
    stock: Decimal = Field(default=Decimal("0"), ge=0)

    @model_validator(mode="after")
    def fill_missing_levels(self):
        # Niveles no capturados heredan el precio general
        for level in range(2, 6):
            if getattr(self, f"price{level}") == 0:
                setattr(self, f"price{level}", self.price1)
        return self


class ProductOut(ProductBase):
    id: UUID
    stock: Decimal
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ProductList(BaseModel):
    products: List[ProductOut]
    total: int
    limit: int
    offset: int


class StockAdjustment(BaseModel):
    """Movimiento de inventario manual"""
    kind: Literal["entrada", "salida", "ajuste"]
    quantity: Decimal = Field(..., ge=0, description="Cantidad (para 'ajuste' es el stock final contado)")
    reference: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = Field(None, max_length=255)


class InventoryMovementOut(BaseModel):
    id: UUID
    product_id: UUID
    product_name: str
    kind: MovementKind
    quantity: Decimal
    reference: Optional[str] = None
    notes: Optional[str] = None
    user_name: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
