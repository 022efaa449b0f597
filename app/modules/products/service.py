from typing import Optional
from uuid import UUID
from decimal import Decimal
import logging

from fastapi import HTTPException, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.common.exceptions import NotFound, InsufficientStock, InvalidQuantity, DataAccessFailure
from app.common.money import qty
from app.modules.products.models import Product, InventoryMovement, MovementKind
from app.modules.products.schemas import ProductCreate, StockAdjustment
from app.common.notifier import Notifier

logger = logging.getLogger(__name__)


def create_product(db: Session, data: ProductCreate, notifier: Optional[Notifier] = None) -> Product:
    """Crea un producto del catálogo con su stock inicial"""
    existing = db.query(Product).filter(Product.code == data.code).first()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Ya existe un producto con el código '{data.code}'"
        )

    product = Product(**data.model_dump())
    db.add(product)

    try:
        db.commit()
        db.refresh(product)
    except IntegrityError:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Ya existe un producto con el código '{data.code}'"
        )
    except SQLAlchemyError as e:
        db.rollback()
        raise DataAccessFailure("create_product", e)

    logger.info(f"Producto creado: {product.code} - {product.name}")
    if notifier:
        notifier.publish("products", [product.id])
    return product


def get_all_products(db: Session, **kwargs):
    """Lista productos activos con filtros opcionales"""
    query = db.query(Product).filter(Product.is_active == True)

    name = kwargs.get('name')
    line = kwargs.get('line')
    limit = kwargs.get('limit', 50)
    offset = kwargs.get('offset', 0)

    if name:
        query = query.filter(Product.name.ilike(f"%{name}%"))
    if line:
        query = query.filter(Product.line == line)

    total = query.count()
    products = query.order_by(Product.name).offset(offset).limit(limit).all()

    return {
        "products": products,
        "total": total,
        "limit": limit,
        "offset": offset
    }


def get_product_by_id(db: Session, product_id: UUID) -> Product:
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise NotFound("Producto", product_id)
    return product


def adjust_stock(
    db: Session,
    product_id: UUID,
    data: StockAdjustment,
    user_name: Optional[str] = None,
    notifier: Optional[Notifier] = None
) -> Product:
    """
    Registra un movimiento manual de inventario.

    - entrada: suma la cantidad al stock
    - salida: resta la cantidad (nunca por debajo de cero)
    - ajuste: fija el stock al valor contado y registra la diferencia
    """
    try:
        product = db.query(Product).filter(Product.id == product_id).with_for_update().first()
        if not product:
            raise NotFound("Producto", product_id)

        quantity = qty(data.quantity)
        current = Decimal(product.stock)

        if data.kind in ("entrada", "salida") and quantity <= 0:
            raise InvalidQuantity(quantity)

        if data.kind == "entrada":
            product.stock = current + quantity
            moved = quantity
        elif data.kind == "salida":
            if quantity > current:
                raise InsufficientStock([{
                    "product_id": str(product.id),
                    "product_name": product.name,
                    "required": quantity,
                    "available": current,
                }])
            product.stock = current - quantity
            moved = quantity
        else:
            product.stock = quantity
            moved = abs(quantity - current)

        db.add(InventoryMovement(
            product_id=product.id,
            product_name=product.name,
            kind=MovementKind(data.kind),
            quantity=moved,
            reference=data.reference,
            notes=data.notes,
            user_name=user_name
        ))
        db.commit()
        db.refresh(product)
    except SQLAlchemyError as e:
        db.rollback()
        raise DataAccessFailure("adjust_stock", e)

    logger.info(f"Movimiento de inventario '{data.kind}' en {product.code}: stock={product.stock}")
    if notifier:
        notifier.publish("products", [product.id])
    return product


def get_movements(db: Session, product_id: UUID, limit: int = 100):
    get_product_by_id(db, product_id)
    return db.query(InventoryMovement).filter(
        InventoryMovement.product_id == product_id
    ).order_by(InventoryMovement.created_at.desc()).limit(limit).all()
