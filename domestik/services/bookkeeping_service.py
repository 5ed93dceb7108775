"""Client, service, dashboard and export application service."""

from __future__ import annotations

import calendar
import logging
import math
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import date, datetime
from typing import Any
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from domestik.core.auth import RequestUserContext, ensure_can_write
from domestik.core.config import get_settings
from domestik.core.i18n import Locale, month_name, translate
from domestik.models.entities import Client, Service
from domestik.repositories.bookkeeping_repository import BookkeepingRepository
from domestik.services.aggregation import (
    dashboard_stats,
    filter_services,
    per_client_rollup,
    sort_services,
    yearly_evolution,
)
from domestik.services.records import (
    ClientRecord,
    ReportFilters,
    ServiceRecord,
    client_record_from_row,
    compute_service_total,
    quantize_amount,
    service_record_from_row,
    total_is_consistent,
)
from domestik.services.reports import (
    CSV_MEDIA_TYPE,
    HTML_MEDIA_TYPE,
    XLSX_MEDIA_TYPE,
    ExportFilePayload,
    build_client_document_export,
    build_client_tabular_export,
    build_document_export,
    build_tabular_export,
    build_tabular_workbook,
    export_filename,
)
from domestik.services.validation import validate_client, validate_service

logger = logging.getLogger(__name__)

NOT_FOUND_DETAIL = "Not found or access denied."
GENERIC_FAILURE_DETAIL = "An error occurred. Please try again."
TOTAL_MISMATCH_MESSAGE = "Total must equal hours multiplied by rate"

SERVICE_EXPORT_FORMATS = ("csv", "html", "xlsx")
CLIENT_EXPORT_FORMATS = ("csv", "html")


def parse_month(value: str) -> date:
    """``YYYY-MM`` to the first day of that month."""

    try:
        year_text, month_text = value.split("-")
        return date(int(year_text), int(month_text), 1)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="month must be formatted as YYYY-MM.",
        ) from None


def month_bounds(month_start: date) -> tuple[date, date]:
    last_day = calendar.monthrange(month_start.year, month_start.month)[1]
    return date(month_start.year, month_start.month, 1), date(month_start.year, month_start.month, last_day)


def period_label(month_start: date, locale: Locale) -> str:
    return f"{month_name(locale, month_start.month)} {month_start.year}"


def _validation_failure(errors: list[str]) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail={"message": "Validation failed.", "errors": errors},
    )


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND_DETAIL)


def _is_finite_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _parse_uuid(value: str | UUID) -> UUID | None:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return None


class BookkeepingService:
    """Owner-scoped bookkeeping operations behind the HTTP API."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = BookkeepingRepository(db)
        self.settings = get_settings()

    @contextmanager
    def _gateway(self, action: str) -> Iterator[None]:
        """Turn storage failures into a generic, retryable error."""

        try:
            yield
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Storage failure while trying to %s", action)
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail=GENERIC_FAILURE_DETAIL,
            ) from exc

    def resolve_locale(self, locale: Locale | None) -> Locale:
        return locale or Locale(self.settings.default_locale)

    # ---------- Serialization ----------
    @staticmethod
    def serialize_client(client: Client | ClientRecord) -> dict[str, object]:
        return {
            "id": str(client.id),
            "name": client.name,
            "color": client.color,
            "archived": client.archived,
            "created_at": client.created_at.isoformat() if client.created_at else None,
        }

    @classmethod
    def serialize_service(cls, record: ServiceRecord) -> dict[str, object]:
        return {
            "id": record.id,
            "date": record.date.isoformat(),
            "client_id": record.client_id,
            "time_worked": record.time_worked,
            "hourly_rate": record.hourly_rate,
            "total": record.total,
            "created_at": record.created_at.isoformat() if record.created_at else None,
            "client": cls.serialize_client(record.client) if record.client is not None else None,
        }

    # ---------- Records ----------
    @staticmethod
    def _to_records(rows: list[Service]) -> list[ServiceRecord]:
        records: list[ServiceRecord] = []
        for row in rows:
            record = service_record_from_row(row)
            if not total_is_consistent(record.time_worked, record.hourly_rate, record.total):
                logger.warning(
                    "Service %s stores total %.2f but hours x rate is %.2f",
                    record.id,
                    record.total,
                    compute_service_total(record.time_worked, record.hourly_rate),
                )
            records.append(record)
        return records

    def _all_client_records(self, context: RequestUserContext) -> list[ClientRecord]:
        rows = self.repo.list_clients(context.user_id, include_archived=True)
        return [client_record_from_row(row) for row in rows]

    def _get_owned_client(self, context: RequestUserContext, client_id: str | UUID) -> Client:
        parsed = _parse_uuid(client_id)
        client = self.repo.get_client(context.user_id, parsed) if parsed is not None else None
        if client is None:
            raise _not_found()
        return client

    def _get_owned_service(self, context: RequestUserContext, service_id: UUID) -> Service:
        service = self.repo.get_service(context.user_id, service_id)
        if service is None:
            raise _not_found()
        return service

    # ---------- Clients ----------
    def list_clients(self, *, context: RequestUserContext, include_archived: bool = False) -> list[Client]:
        with self._gateway("list clients"):
            return self.repo.list_clients(context.user_id, include_archived=include_archived)

    def create_client(self, *, context: RequestUserContext, data: dict[str, Any]) -> Client:
        ensure_can_write(context)
        result = validate_client(data)
        if not result.success:
            raise _validation_failure(result.errors)

        with self._gateway("create a client"):
            client = Client(
                user_id=context.user_id,
                name=result.data["name"],
                color=result.data["color"],
                archived=result.data["archived"],
                created_at=datetime.utcnow(),
            )
            self.repo.add_client(client)
            self.db.commit()
            self.db.refresh(client)
        logger.info("Client %s created for user %s", client.id, context.user_id)
        return client

    def update_client(self, *, context: RequestUserContext, client_id: UUID, data: dict[str, Any]) -> Client:
        ensure_can_write(context)
        with self._gateway("update a client"):
            client = self._get_owned_client(context, client_id)

            merged = {"name": client.name, "color": client.color, "archived": client.archived}
            for key in ("name", "color"):
                if data.get(key) is not None:
                    merged[key] = data[key]
            result = validate_client(merged)
            if not result.success:
                raise _validation_failure(result.errors)

            client.name = result.data["name"]
            client.color = result.data["color"]
            self.db.commit()
            self.db.refresh(client)
        return client

    def archive_client(self, *, context: RequestUserContext, client_id: UUID) -> Client:
        """Hide a client from active lists; its services stay untouched."""

        ensure_can_write(context)
        with self._gateway("archive a client"):
            client = self._get_owned_client(context, client_id)
            if not client.archived:
                client.archived = True
                self.db.commit()
                self.db.refresh(client)
                logger.info("Client %s archived", client.id)
        return client

    # ---------- Services ----------
    def list_services(
        self,
        *,
        context: RequestUserContext,
        filters: ReportFilters,
        sort_by: str = "date",
        descending: bool = True,
    ) -> list[ServiceRecord]:
        client_uuid = None
        if filters.client_id is not None:
            client_uuid = _parse_uuid(filters.client_id)
            if client_uuid is None:
                return []
            filters = replace(filters, client_id=str(client_uuid))

        with self._gateway("list services"):
            rows = self.repo.list_services(
                context.user_id,
                client_id=client_uuid,
                start_date=filters.start_date,
                end_date=filters.end_date,
            )
            clients = self._all_client_records(context)

        records = filter_services(self._to_records(rows), filters)
        try:
            return sort_services(records, clients, sort_by=sort_by, descending=descending)
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc

    def get_service(self, *, context: RequestUserContext, service_id: UUID) -> ServiceRecord:
        with self._gateway("load a service"):
            row = self._get_owned_service(context, service_id)
            return self._to_records([row])[0]

    @staticmethod
    def _prepare_service_input(data: dict[str, Any]) -> dict[str, Any]:
        """Round hours and rate to storage precision and fill in a missing ``total``.

        Range checks then run against the values that will actually be stored.
        """

        prepared = dict(data)
        for key in ("time_worked", "hourly_rate"):
            value = prepared.get(key)
            if _is_finite_number(value):
                prepared[key] = quantize_amount(value)
        numeric = all(_is_finite_number(prepared.get(key)) for key in ("time_worked", "hourly_rate"))
        if prepared.get("total") is None and numeric:
            prepared["total"] = compute_service_total(prepared["time_worked"], prepared["hourly_rate"])
        return prepared

    def _validated_service(self, data: dict[str, Any]) -> dict[str, Any]:
        result = validate_service(self._prepare_service_input(data))
        if not result.success:
            raise _validation_failure(result.errors)
        values = result.data
        if not total_is_consistent(values["time_worked"], values["hourly_rate"], values["total"]):
            raise _validation_failure([TOTAL_MISMATCH_MESSAGE])
        return values

    def create_service(self, *, context: RequestUserContext, data: dict[str, Any]) -> ServiceRecord:
        ensure_can_write(context)
        values = self._validated_service(data)

        with self._gateway("create a service"):
            client = self._get_owned_client(context, values["client_id"])
            if client.archived:
                raise _not_found()

            service = Service(
                user_id=context.user_id,
                client_id=client.id,
                service_date=date.fromisoformat(values["date"]),
                time_worked=values["time_worked"],
                hourly_rate=values["hourly_rate"],
                total=compute_service_total(values["time_worked"], values["hourly_rate"]),
                created_at=datetime.utcnow(),
            )
            self.repo.add_service(service)
            self.db.commit()
            self.db.refresh(service)
            record = self._to_records([service])[0]
        logger.info("Service %s created for client %s", record.id, record.client_id)
        return record

    def update_service(
        self,
        *,
        context: RequestUserContext,
        service_id: UUID,
        data: dict[str, Any],
    ) -> ServiceRecord:
        ensure_can_write(context)
        with self._gateway("update a service"):
            service = self._get_owned_service(context, service_id)

            merged: dict[str, Any] = {
                "date": service.service_date.isoformat(),
                "client_id": str(service.client_id),
                "time_worked": float(service.time_worked),
                "hourly_rate": float(service.hourly_rate),
            }
            for key in ("date", "client_id", "time_worked", "hourly_rate", "total"):
                if data.get(key) is not None:
                    merged[key] = data[key]
            values = self._validated_service(merged)

            if values["client_id"] != str(service.client_id):
                client = self._get_owned_client(context, values["client_id"])
                if client.archived:
                    raise _not_found()
                service.client_id = client.id

            service.service_date = date.fromisoformat(values["date"])
            service.time_worked = values["time_worked"]
            service.hourly_rate = values["hourly_rate"]
            service.total = compute_service_total(values["time_worked"], values["hourly_rate"])
            self.db.commit()
            self.db.refresh(service)
            return self._to_records([service])[0]

    def delete_service(self, *, context: RequestUserContext, service_id: UUID) -> None:
        ensure_can_write(context)
        with self._gateway("delete a service"):
            service = self._get_owned_service(context, service_id)
            self.repo.delete_service(service)
            self.db.commit()
        logger.info("Service %s deleted", service_id)

    # ---------- Dashboard ----------
    def month_dashboard(self, *, context: RequestUserContext, month_start: date) -> dict[str, object]:
        start, end = month_bounds(month_start)
        with self._gateway("load the dashboard"):
            rows = self.repo.list_services(context.user_id, start_date=start, end_date=end)
            active_clients = [client_record_from_row(row) for row in self.repo.list_clients(context.user_id)]

        records = self._to_records(rows)
        stats = dashboard_stats(records)
        rollups = per_client_rollup(records, active_clients)
        names = {client.id: client for client in active_clients}
        for record in records:
            if record.client is not None:
                names.setdefault(record.client_id, record.client)

        return {
            "month": start.strftime("%Y-%m"),
            "stats": {
                "monthly_earnings": round(stats.monthly_earnings, 2),
                "total_hours": round(stats.total_hours, 2),
                "service_count": stats.service_count,
            },
            "clients": [
                {
                    "client_id": client_id,
                    "name": names[client_id].name if client_id in names else None,
                    "color": names[client_id].color if client_id in names else None,
                    "total": round(rollup.total, 2),
                    "hours": round(rollup.hours, 2),
                    "count": rollup.count,
                }
                for client_id, rollup in rollups.items()
            ],
        }

    def evolution(
        self,
        *,
        context: RequestUserContext,
        year: int,
        locale: Locale | None,
        as_of: date | None = None,
    ) -> dict[str, object]:
        resolved = self.resolve_locale(locale)
        with self._gateway("load the yearly evolution"):
            rows = self.repo.list_services(
                context.user_id,
                start_date=date(year - 1, 1, 1),
                end_date=date(year, 12, 31),
            )
        series = yearly_evolution(
            self._to_records(rows),
            year=year,
            as_of=as_of or date.today(),
            locale=resolved,
        )
        return {
            "year": series.year,
            "locale": resolved.value,
            "labels": series.labels,
            "current_year": [round(value, 2) for value in series.current_year],
            "previous_year": [round(value, 2) for value in series.previous_year],
            "month_over_month": [round(value, 2) for value in series.month_over_month],
            "legend": {
                "title": translate(resolved, "chart.monthlyEvolution"),
                "current_year": translate(resolved, "chart.thisYear"),
                "previous_year": translate(resolved, "chart.lastYear"),
                "month_over_month": translate(resolved, "chart.momChange"),
            },
        }

    # ---------- Exports ----------
    @staticmethod
    def _check_format(format_name: str, allowed: tuple[str, ...]) -> str:
        normalized = format_name.strip().lower()
        if normalized not in allowed:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"format must be one of: {', '.join(allowed)}.",
            )
        return normalized

    def export_services(
        self,
        *,
        context: RequestUserContext,
        format_name: str,
        locale: Locale | None,
        month_start: date | None,
        filters: ReportFilters,
        sort_by: str = "date",
        descending: bool = True,
        generated_at: datetime | None = None,
    ) -> ExportFilePayload:
        normalized_format = self._check_format(format_name, SERVICE_EXPORT_FORMATS)
        resolved = self.resolve_locale(locale)

        period = month_start or filters.start_date or date.today()
        # shown in the document: only bounds the caller set, clamped to the month
        shown_filters = filters
        if month_start is not None:
            start, end = month_bounds(month_start)
            shown_filters = replace(
                filters,
                start_date=max(start, filters.start_date) if filters.start_date else None,
                end_date=min(end, filters.end_date) if filters.end_date else None,
            )
            filters = replace(
                shown_filters,
                start_date=shown_filters.start_date or start,
                end_date=shown_filters.end_date or end,
            )

        services = self.list_services(context=context, filters=filters, sort_by=sort_by, descending=descending)
        with self._gateway("export services"):
            clients = self._all_client_records(context)

        # filenames always use English month names
        base_label = period_label(period, Locale.EN)
        if normalized_format == "csv":
            return ExportFilePayload(
                media_type=CSV_MEDIA_TYPE,
                filename=export_filename(self.settings.app_name, base_label, "csv"),
                content=build_tabular_export(services, clients, resolved).encode("utf-8"),
            )
        if normalized_format == "xlsx":
            return ExportFilePayload(
                media_type=XLSX_MEDIA_TYPE,
                filename=export_filename(self.settings.app_name, base_label, "xlsx"),
                content=build_tabular_workbook(services, clients, resolved),
            )
        document = build_document_export(
            services,
            clients,
            resolved,
            filters=shown_filters,
            period_label=period_label(period, resolved),
            generated_at=generated_at or datetime.now(),
        )
        return ExportFilePayload(
            media_type=HTML_MEDIA_TYPE,
            filename=export_filename(self.settings.app_name, base_label, "html"),
            content=document.encode("utf-8"),
        )

    def export_client(
        self,
        *,
        context: RequestUserContext,
        client_id: UUID,
        format_name: str,
        locale: Locale | None,
        filters: ReportFilters,
        generated_at: datetime | None = None,
    ) -> ExportFilePayload:
        normalized_format = self._check_format(format_name, CLIENT_EXPORT_FORMATS)
        resolved = self.resolve_locale(locale)

        with self._gateway("export a client report"):
            client = client_record_from_row(self._get_owned_client(context, client_id))
        scoped = ReportFilters(
            client_id=client.id,
            start_date=filters.start_date,
            end_date=filters.end_date,
            min_value=filters.min_value,
            max_value=filters.max_value,
        )
        services = self.list_services(context=context, filters=scoped)

        if normalized_format == "csv":
            return ExportFilePayload(
                media_type=CSV_MEDIA_TYPE,
                filename=export_filename(self.settings.app_name, client.name, "csv"),
                content=build_client_tabular_export(client, services, resolved).encode("utf-8"),
            )
        document = build_client_document_export(
            client,
            services,
            resolved,
            filters=scoped,
            generated_at=generated_at or datetime.now(),
        )
        return ExportFilePayload(
            media_type=HTML_MEDIA_TYPE,
            filename=export_filename(self.settings.app_name, client.name, "html"),
            content=document.encode("utf-8"),
        )
