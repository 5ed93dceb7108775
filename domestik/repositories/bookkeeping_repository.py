"""Owner-scoped persistence for clients and services.

Every query takes the owner id and filters on it; a row owned by someone else
is indistinguishable from a missing row.
"""

from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy import and_, select
from sqlalchemy.orm import Session

from domestik.models.entities import Client, Service


class BookkeepingRepository:
    """Persistence operations used by the bookkeeping service."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # ---------- Clients ----------
    def list_clients(self, owner_id: UUID, *, include_archived: bool = False) -> list[Client]:
        conditions = [Client.user_id == owner_id]
        if not include_archived:
            conditions.append(Client.archived.is_(False))
        return self.db.scalars(
            select(Client)
            .where(and_(*conditions))
            .order_by(Client.name.asc(), Client.created_at.asc())
        ).all()

    def get_client(self, owner_id: UUID, client_id: UUID) -> Client | None:
        return self.db.scalar(
            select(Client).where(and_(Client.id == client_id, Client.user_id == owner_id))
        )

    def add_client(self, client: Client) -> Client:
        self.db.add(client)
        self.db.flush()
        return client

    # ---------- Services ----------
    def list_services(
        self,
        owner_id: UUID,
        *,
        client_id: UUID | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[Service]:
        conditions = [Service.user_id == owner_id]
        if client_id is not None:
            conditions.append(Service.client_id == client_id)
        if start_date is not None:
            conditions.append(Service.service_date >= start_date)
        if end_date is not None:
            conditions.append(Service.service_date <= end_date)
        return self.db.scalars(
            select(Service)
            .where(and_(*conditions))
            .order_by(Service.service_date.desc(), Service.created_at.desc())
        ).unique().all()

    def get_service(self, owner_id: UUID, service_id: UUID) -> Service | None:
        return self.db.scalar(
            select(Service).where(and_(Service.id == service_id, Service.user_id == owner_id))
        )

    def add_service(self, service: Service) -> Service:
        self.db.add(service)
        self.db.flush()
        return service

    def delete_service(self, service: Service) -> None:
        self.db.delete(service)
        self.db.flush()
