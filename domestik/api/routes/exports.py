"""Report export endpoints."""

from __future__ import annotations

from urllib.parse import quote
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from domestik.api.routes.services import history_filters, period_filters
from domestik.core.auth import RequestUserContext, get_current_user_context
from domestik.core.i18n import Locale
from domestik.db.dependencies import get_db_session
from domestik.services.bookkeeping_service import BookkeepingService, parse_month
from domestik.services.records import ReportFilters
from domestik.services.reports import ExportFilePayload

router = APIRouter(prefix="/exports", tags=["exports"])


def _service(db: Session) -> BookkeepingService:
    return BookkeepingService(db)


def content_disposition(filename: str) -> str:
    """Attachment header with an ASCII fallback for non-ASCII client names."""

    fallback = filename.encode("ascii", "replace").decode("ascii").replace("?", "_").replace('"', "_")
    if fallback == filename:
        return f'attachment; filename="{filename}"'
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename)}"


def _file_response(exported: ExportFilePayload) -> Response:
    return Response(
        content=exported.content,
        media_type=exported.media_type,
        headers={"Content-Disposition": content_disposition(exported.filename)},
    )


@router.get("/services")
def export_services(
    format: str = Query(default="csv"),
    locale: Locale | None = Query(default=None),
    month: str | None = Query(default=None, pattern=r"^\d{4}-\d{2}$"),
    sort_by: str = Query(default="date"),
    order: str = Query(default="desc", pattern="^(asc|desc)$"),
    filters: ReportFilters = Depends(history_filters),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    exported = _service(db).export_services(
        context=context,
        format_name=format,
        locale=locale,
        month_start=parse_month(month) if month else None,
        filters=filters,
        sort_by=sort_by,
        descending=order == "desc",
    )
    return _file_response(exported)


@router.get("/clients/{client_id}")
def export_client(
    client_id: UUID,
    format: str = Query(default="csv"),
    locale: Locale | None = Query(default=None),
    filters: ReportFilters = Depends(period_filters),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    exported = _service(db).export_client(
        context=context,
        client_id=client_id,
        format_name=format,
        locale=locale,
        filters=filters,
    )
    return _file_response(exported)
