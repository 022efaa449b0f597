from fastapi import APIRouter, status, Depends, Query, Path
from uuid import UUID
from typing import List, Optional
from app.dependencies.dbDependecies import db_dependency
from app.dependencies.sessionDependencies import session_dependency
from app.modules.products import service
from app.modules.products.schemas import (
    ProductCreate,
    ProductOut,
    ProductList,
    StockAdjustment,
    InventoryMovementOut
)
from app.common.notifier import ChangeNotifier, get_notifier

product_router = APIRouter(prefix="/products", tags=["Products"])


@product_router.post("/", response_model=ProductOut, status_code=status.HTTP_201_CREATED)
def create_product(
    data: ProductCreate,
    db: db_dependency,
    notifier: ChangeNotifier = Depends(get_notifier)
):
    """Create a new catalog product with its five price levels."""
    return service.create_product(db, data, notifier)


@product_router.get("/", response_model=ProductList)
def list_products(
    db: db_dependency,
    name: Optional[str] = Query(None, description="Filtrar por nombre"),
    line: Optional[str] = Query(None, description="Filtrar por línea"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0)
):
    return service.get_all_products(db, name=name, line=line, limit=limit, offset=offset)


@product_router.get("/{product_id}", response_model=ProductOut)
def get_product(db: db_dependency, product_id: UUID = Path(...)):
    return service.get_product_by_id(db, product_id)


@product_router.patch("/{product_id}/stock", response_model=ProductOut)
def adjust_product_stock(
    data: StockAdjustment,
    db: db_dependency,
    session_ctx: session_dependency,
    product_id: UUID = Path(...),
    notifier: ChangeNotifier = Depends(get_notifier)
):
    """
    Registrar movimiento de inventario manual.

    - **entrada**: suma al stock
    - **salida**: resta del stock (409 si no alcanza)
    - **ajuste**: fija el stock al conteo físico
    """
    return service.adjust_stock(db, product_id, data, session_ctx.cashier_name, notifier)


@product_router.get("/{product_id}/movements", response_model=List[InventoryMovementOut])
def get_product_movements(
    db: db_dependency,
    product_id: UUID = Path(...),
    limit: int = Query(100, ge=1, le=500)
):
    return service.get_movements(db, product_id, limit)
