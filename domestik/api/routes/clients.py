"""Client management endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from domestik.core.auth import RequestUserContext, get_current_user_context
from domestik.db.dependencies import get_db_session
from domestik.services.bookkeeping_service import BookkeepingService

router = APIRouter(prefix="/clients", tags=["clients"])


class ClientCreatePayload(BaseModel):
    name: str | None = None
    color: str | None = None


class ClientUpdatePayload(BaseModel):
    name: str | None = None
    color: str | None = None


def _service(db: Session) -> BookkeepingService:
    return BookkeepingService(db)


@router.get("")
def list_clients(
    include_archived: bool = Query(default=False),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _service(db)
    items = service.list_clients(context=context, include_archived=include_archived)
    return {"items": [service.serialize_client(client) for client in items]}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_client(
    payload: ClientCreatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    client = service.create_client(context=context, data=payload.model_dump(exclude_none=True))
    return service.serialize_client(client)


@router.patch("/{client_id}")
def update_client(
    client_id: UUID,
    payload: ClientUpdatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    client = service.update_client(
        context=context,
        client_id=client_id,
        data=payload.model_dump(exclude_unset=True),
    )
    return service.serialize_client(client)


@router.post("/{client_id}/archive")
def archive_client(
    client_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    client = service.archive_client(context=context, client_id=client_id)
    return service.serialize_client(client)
