"""
Router para el módulo de Clientes
"""

from fastapi import APIRouter, Depends, status, Query, Path
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from app.database.database import get_db
from app.modules.clients.service import ClientService
from app.modules.clients.schemas import ClientCreate, ClientOut, ClientList, ClientCreditStatus
from app.common.notifier import ChangeNotifier, get_notifier

router = APIRouter(
    prefix="/clients",
    tags=["Clients"],
    responses={404: {"description": "Not found"}}
)


@router.post("/", response_model=ClientOut, status_code=status.HTTP_201_CREATED)
def create_client(
    client_data: ClientCreate,
    db: Session = Depends(get_db),
    notifier: ChangeNotifier = Depends(get_notifier)
):
    """
    Crear un nuevo cliente

    - **credit_limit**: Límite de crédito (0 = sin crédito)
    - **default_price_level**: Nivel de precio 1-5 que se usa al abrir una orden
    """
    return ClientService(db, notifier).create_client(client_data)


@router.get("/", response_model=ClientList)
def get_clients(
    search: Optional[str] = Query(None, description="Búsqueda por nombre o RFC"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db)
):
    """Listar clientes activos"""
    return ClientService(db).get_clients(search=search, limit=limit, offset=offset)


@router.get("/{client_id}", response_model=ClientOut)
def get_client(
    client_id: UUID = Path(..., description="ID del cliente"),
    db: Session = Depends(get_db)
):
    return ClientService(db).get_client(client_id)


@router.get("/{client_id}/credit", response_model=ClientCreditStatus)
def get_client_credit(
    client_id: UUID = Path(..., description="ID del cliente"),
    db: Session = Depends(get_db)
):
    """Límite, saldo y crédito disponible del cliente"""
    return ClientService(db).get_credit_status(client_id)
