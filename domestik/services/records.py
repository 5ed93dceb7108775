"""Plain records consumed by the aggregation engine and report generator."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal

from domestik.models.entities import Client, Service

TOTAL_TOLERANCE = 0.005
CENT = Decimal("0.01")


@dataclass(slots=True, frozen=True)
class ClientRecord:
    id: str
    name: str
    color: str
    archived: bool = False
    created_at: datetime | None = None


@dataclass(slots=True, frozen=True)
class ServiceRecord:
    id: str
    date: date
    client_id: str
    time_worked: float
    hourly_rate: float
    total: float
    created_at: datetime | None = None
    client: ClientRecord | None = None


@dataclass(slots=True, frozen=True)
class ReportFilters:
    """History filters applied before export; ``None`` means not set."""

    client_id: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    min_value: float | None = None
    max_value: float | None = None

    @property
    def is_empty(self) -> bool:
        return all(
            value is None
            for value in (self.client_id, self.start_date, self.end_date, self.min_value, self.max_value)
        )


def quantize_amount(value: float | Decimal) -> float:
    """Round to the two decimals hours, rates and totals are stored with."""

    return float(Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP))


def compute_service_total(time_worked: float | Decimal, hourly_rate: float | Decimal) -> float:
    """Single source of truth for the stored ``total`` of a service.

    Inputs are taken at storage precision first, so the product always matches
    what a later read of the row recomputes.
    """

    product = Decimal(str(quantize_amount(time_worked))) * Decimal(str(quantize_amount(hourly_rate)))
    return float(product.quantize(CENT, rounding=ROUND_HALF_UP))


def total_is_consistent(time_worked: float, hourly_rate: float, total: float) -> bool:
    return abs(compute_service_total(time_worked, hourly_rate) - total) <= TOTAL_TOLERANCE


def client_record_from_row(row: Client) -> ClientRecord:
    return ClientRecord(
        id=str(row.id),
        name=row.name,
        color=row.color,
        archived=row.archived,
        created_at=row.created_at,
    )


def service_record_from_row(row: Service) -> ServiceRecord:
    return ServiceRecord(
        id=str(row.id),
        date=row.service_date,
        client_id=str(row.client_id),
        time_worked=float(row.time_worked),
        hourly_rate=float(row.hourly_rate),
        total=float(row.total),
        created_at=row.created_at,
        client=client_record_from_row(row.client) if row.client is not None else None,
    )
