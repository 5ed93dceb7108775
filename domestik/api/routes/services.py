"""Service (work entry) endpoints."""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from domestik.core.auth import RequestUserContext, get_current_user_context
from domestik.db.dependencies import get_db_session
from domestik.services.bookkeeping_service import BookkeepingService
from domestik.services.records import ReportFilters

router = APIRouter(prefix="/services", tags=["services"])


class ServicePayload(BaseModel):
    """Raw form values; checked by the service validator, not here."""

    date: Any = None
    client_id: Any = None
    time_worked: Any = None
    hourly_rate: Any = None
    total: Any = None


def _service(db: Session) -> BookkeepingService:
    return BookkeepingService(db)


def period_filters(
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    min_value: float | None = Query(default=None, ge=0),
    max_value: float | None = Query(default=None, ge=0),
) -> ReportFilters:
    """Date and value bounds shared by the history list and every export."""

    return ReportFilters(
        start_date=start_date,
        end_date=end_date,
        min_value=min_value,
        max_value=max_value,
    )


def history_filters(
    client_id: str | None = Query(default=None),
    bounds: ReportFilters = Depends(period_filters),
) -> ReportFilters:
    return replace(bounds, client_id=client_id or None)


@router.get("")
def list_services(
    filters: ReportFilters = Depends(history_filters),
    sort_by: str = Query(default="date"),
    order: str = Query(default="desc", pattern="^(asc|desc)$"),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    items = service.list_services(
        context=context,
        filters=filters,
        sort_by=sort_by,
        descending=order == "desc",
    )
    return {
        "items": [service.serialize_service(item) for item in items],
        "total": round(sum(item.total for item in items), 2),
    }


@router.post("", status_code=status.HTTP_201_CREATED)
def create_service(
    payload: ServicePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    record = service.create_service(context=context, data=payload.model_dump(exclude_none=True))
    return service.serialize_service(record)


@router.get("/{service_id}")
def get_service(
    service_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    return service.serialize_service(service.get_service(context=context, service_id=service_id))


@router.patch("/{service_id}")
def update_service(
    service_id: UUID,
    payload: ServicePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    record = service.update_service(
        context=context,
        service_id=service_id,
        data=payload.model_dump(exclude_none=True),
    )
    return service.serialize_service(record)


@router.delete("/{service_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_service(
    service_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    service = _service(db)
    service.delete_service(context=context, service_id=service_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
