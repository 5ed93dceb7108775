"""Read-only summaries derived from service records.

Every function here is pure: no I/O, no shared state, and the same input list
always yields the same output. Callers do any date scoping (for example "the
selected month") before handing records in. Sums use plain float addition;
rounding to cents happens only when values are rendered.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date

from domestik.core.i18n import Locale, month_name
from domestik.services.records import ClientRecord, ReportFilters, ServiceRecord

MONTHS_PER_YEAR = 12

SORT_KEYS = {"date", "value", "client"}


@dataclass(slots=True, frozen=True)
class DashboardStats:
    monthly_earnings: float
    total_hours: float
    service_count: int


@dataclass(slots=True)
class ClientRollup:
    total: float = 0.0
    hours: float = 0.0
    count: int = 0


@dataclass(slots=True, frozen=True)
class YearlyEvolution:
    year: int
    labels: list[str]
    current_year: list[float]
    previous_year: list[float]
    month_over_month: list[float]


def monthly_totals(services: Iterable[ServiceRecord], year: int) -> list[float]:
    totals = [0.0] * MONTHS_PER_YEAR
    for service in services:
        if service.date.year == year:
            totals[service.date.month - 1] += service.total
    return totals


def _current_month_index(year: int, as_of: date) -> int:
    """Index of the last month of ``year`` that is not in the future."""

    if year < as_of.year:
        return MONTHS_PER_YEAR - 1
    if year > as_of.year:
        return -1
    return as_of.month - 1


def month_over_month_delta(
    totals: Sequence[float],
    *,
    year: int | None = None,
    as_of: date | None = None,
) -> list[float]:
    """Change of each month against the previous one; January is always 0.

    With ``year`` and ``as_of`` supplied, months still in the future that have
    no activity report 0 instead of a drop to zero. Past months with a zero
    total keep their real (negative) delta.
    """

    if len(totals) != MONTHS_PER_YEAR:
        raise ValueError("monthly totals must contain exactly 12 values")

    last_index = MONTHS_PER_YEAR - 1
    if year is not None and as_of is not None:
        last_index = _current_month_index(year, as_of)

    deltas = [0.0] * MONTHS_PER_YEAR
    for index in range(1, MONTHS_PER_YEAR):
        if index > last_index and totals[index] == 0:
            continue
        deltas[index] = totals[index] - totals[index - 1]
    return deltas


def dashboard_stats(services: Iterable[ServiceRecord]) -> DashboardStats:
    earnings = 0.0
    hours = 0.0
    count = 0
    for service in services:
        earnings += service.total
        hours += service.time_worked
        count += 1
    return DashboardStats(monthly_earnings=earnings, total_hours=hours, service_count=count)


def per_client_rollup(
    services: Iterable[ServiceRecord],
    clients: Iterable[ClientRecord],
) -> dict[str, ClientRollup]:
    rollups: dict[str, ClientRollup] = {client.id: ClientRollup() for client in clients}
    for service in services:
        bucket = rollups.setdefault(service.client_id, ClientRollup())
        bucket.total += service.total
        bucket.hours += service.time_worked
        bucket.count += 1
    return rollups


def month_labels(locale: Locale) -> list[str]:
    return [month_name(locale, month) for month in range(1, MONTHS_PER_YEAR + 1)]


def yearly_evolution(
    services: Sequence[ServiceRecord],
    *,
    year: int,
    as_of: date,
    locale: Locale,
) -> YearlyEvolution:
    """Chart series comparing ``year`` with the year before it."""

    current = monthly_totals(services, year)
    previous = monthly_totals(services, year - 1)
    return YearlyEvolution(
        year=year,
        labels=month_labels(locale),
        current_year=current,
        previous_year=previous,
        month_over_month=month_over_month_delta(current, year=year, as_of=as_of),
    )


def filter_services(services: Iterable[ServiceRecord], filters: ReportFilters) -> list[ServiceRecord]:
    selected: list[ServiceRecord] = []
    for service in services:
        if filters.client_id is not None and service.client_id != filters.client_id:
            continue
        if filters.start_date is not None and service.date < filters.start_date:
            continue
        if filters.end_date is not None and service.date > filters.end_date:
            continue
        if filters.min_value is not None and service.total < filters.min_value:
            continue
        if filters.max_value is not None and service.total > filters.max_value:
            continue
        selected.append(service)
    return selected


def _client_name(service: ServiceRecord, names: dict[str, str]) -> str:
    if service.client is not None:
        return service.client.name
    return names.get(service.client_id, "")


def sort_services(
    services: Iterable[ServiceRecord],
    clients: Iterable[ClientRecord],
    *,
    sort_by: str = "date",
    descending: bool = True,
) -> list[ServiceRecord]:
    """Order records for the history list; ties fall back to date then id."""

    if sort_by not in SORT_KEYS:
        raise ValueError(f"sort_by must be one of: {', '.join(sorted(SORT_KEYS))}.")

    names = {client.id: client.name for client in clients}
    rows = list(services)
    # stable sorts: secondary key first
    rows.sort(key=lambda row: (row.date, row.id), reverse=descending)
    if sort_by == "value":
        rows.sort(key=lambda row: row.total, reverse=descending)
    elif sort_by == "client":
        rows.sort(key=lambda row: _client_name(row, names).casefold(), reverse=descending)
    return rows
