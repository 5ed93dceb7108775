"""Dashboard endpoints for monthly stats and yearly evolution."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from domestik.core.auth import RequestUserContext, get_current_user_context
from domestik.core.i18n import Locale
from domestik.db.dependencies import get_db_session
from domestik.services.bookkeeping_service import BookkeepingService, parse_month

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


def _service(db: Session) -> BookkeepingService:
    return BookkeepingService(db)


@router.get("")
def get_month_dashboard(
    month: str | None = Query(default=None, pattern=r"^\d{4}-\d{2}$"),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    """Stats and per-client breakdown for one calendar month (default: current)."""

    month_start = parse_month(month) if month else date.today().replace(day=1)
    return _service(db).month_dashboard(context=context, month_start=month_start)


@router.get("/evolution")
def get_yearly_evolution(
    year: int | None = Query(default=None, ge=1900, le=9999),
    locale: Locale | None = Query(default=None),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    today = date.today()
    return _service(db).evolution(
        context=context,
        year=year or today.year,
        locale=locale,
        as_of=today,
    )
