"""
Esquemas Pydantic para el módulo de Clientes
"""

from pydantic import BaseModel, Field, field_validator
from decimal import Decimal
from typing import Optional, List
from uuid import UUID
from datetime import datetime


class ClientCreate(BaseModel):
    """Esquema para crear cliente"""
    name: str = Field(..., min_length=1, max_length=150, description="Nombre o razón social")
    rfc: Optional[str] = Field(None, max_length=20)
    zone: Optional[str] = Field(None, max_length=80)
    phone: Optional[str] = Field(None, max_length=40)
    credit_limit: Decimal = Field(default=Decimal("0"), ge=0, description="Límite de crédito")
    default_price_level: int = Field(default=1, ge=1, le=5, description="Nivel de precio por defecto")

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        cleaned = v.strip()
        if not cleaned:
            raise ValueError('El nombre no puede estar vacío')
        return cleaned


class ClientOut(BaseModel):
    id: UUID
    name: str
    rfc: Optional[str] = None
    zone: Optional[str] = None
    phone: Optional[str] = None
    credit_limit: Decimal
    balance: Decimal
    default_price_level: int
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class ClientList(BaseModel):
    clients: List[ClientOut]
    total: int
    limit: int
    offset: int


class ClientCreditStatus(BaseModel):
    """Resumen de crédito del cliente"""
    client_id: UUID
    name: str
    credit_limit: Decimal
    balance: Decimal
    available_credit: Decimal
    over_limit: bool
