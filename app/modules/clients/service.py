"""
Servicios de negocio para el módulo de Clientes
"""

from fastapi import HTTPException, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy import or_
from typing import Optional, Dict, Any
from uuid import UUID
import logging

from app.common.exceptions import NotFound, DataAccessFailure
from app.modules.clients.models import Client
from app.modules.clients.schemas import ClientCreate, ClientCreditStatus
from app.common.notifier import Notifier

logger = logging.getLogger(__name__)


class ClientService:
    """Servicio para gestión de clientes"""

    def __init__(self, db: Session, notifier: Optional[Notifier] = None):
        self.db = db
        self.notifier = notifier

    def create_client(self, client_data: ClientCreate) -> Client:
        """Crear cliente"""
        if client_data.rfc:
            existing = self.db.query(Client).filter(
                Client.rfc == client_data.rfc,
                Client.is_active == True
            ).first()
            if existing:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail=f"Ya existe un cliente con el RFC {client_data.rfc}"
                )

        client = Client(**client_data.model_dump(), balance=0)
        try:
            self.db.add(client)
            self.db.commit()
            self.db.refresh(client)
        except IntegrityError:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Error de integridad al crear el cliente"
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            raise DataAccessFailure("create_client", e)

        logger.info(f"Cliente creado: {client.name} (límite {client.credit_limit})")
        if self.notifier:
            self.notifier.publish("clients", [client.id])
        return client

    def get_clients(self, search: Optional[str] = None,
                    limit: int = 100, offset: int = 0) -> Dict[str, Any]:
        """Obtener lista de clientes activos"""
        query = self.db.query(Client).filter(Client.is_active == True)

        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(Client.name.ilike(pattern), Client.rfc.ilike(pattern)))

        total = query.count()
        clients = query.order_by(Client.name).offset(offset).limit(limit).all()

        return {
            "clients": clients,
            "total": total,
            "limit": limit,
            "offset": offset
        }

    def get_client(self, client_id: UUID) -> Client:
        client = self.db.query(Client).filter(Client.id == client_id).first()
        if not client:
            raise NotFound("Cliente", client_id)
        return client

    def get_credit_status(self, client_id: UUID) -> ClientCreditStatus:
        client = self.get_client(client_id)
        return ClientCreditStatus(
            client_id=client.id,
            name=client.name,
            credit_limit=client.credit_limit,
            balance=client.balance,
            available_credit=client.available_credit,
            over_limit=client.balance > client.credit_limit
        )
