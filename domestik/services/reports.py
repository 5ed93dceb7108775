"""Export artifacts built from an already filtered and sorted service list.

Builders are pure: they take records and return text or bytes. Delivering the
artifact (download, print dialog) is left to the caller.
"""

from __future__ import annotations

import csv
import html
import io
import re
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from domestik.core.i18n import Locale, currency_symbol, format_money, translate
from domestik.services.records import ClientRecord, ReportFilters, ServiceRecord

CSV_MEDIA_TYPE = "text/csv; charset=utf-8"
HTML_MEDIA_TYPE = "text/html; charset=utf-8"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

_WHITESPACE = re.compile(r"\s+")

_BASE_STYLE = """
    body { font-family: Arial, sans-serif; padding: 40px; color: #333; }
    h1 { color: #2F4F4F; border-bottom: 3px solid #2F4F4F; padding-bottom: 10px; }
    h2 { color: #555; margin-top: 30px; }
    table { width: 100%; border-collapse: collapse; margin-top: 20px; }
    th { background: {accent}; color: white; padding: 12px; text-align: left; }
    td { padding: 10px; border-bottom: 1px solid #ddd; }
    tr:nth-child(even) { background: #f9f9f9; }
    .total-row { background: #E8F4F8 !important; font-weight: bold; }
    .summary { margin-top: 30px; padding: 20px; background: #F8F9FA; border-radius: 8px; }
    .summary-item { display: flex; justify-content: space-between; padding: 8px 0; }
    .filter-info { margin-bottom: 20px; padding: 15px; background: #F0F9FF; border-radius: 8px; border-left: 4px solid #3B82F6; }
    .filter-info h3 { margin-top: 0; color: #1E40AF; }
    .filter-info ul { margin: 10px 0; padding-left: 20px; }
    .filter-info li { margin: 5px 0; }
    .client-header { margin-top: 20px; padding: 15px; background: #F8F9FA; border-radius: 8px; border-left: 5px solid {accent}; }
    .footer { margin-top: 40px; color: #999; font-size: 12px; text-align: center; }
"""

DEFAULT_ACCENT = "#2F4F4F"


@dataclass(slots=True)
class ExportFilePayload:
    media_type: str
    filename: str
    content: bytes


def plain_number(value: float) -> str:
    """Render hours/rates without a trailing ``.0`` (``4`` and ``4.5``)."""

    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def export_filename(app_name: str, label: str, extension: str) -> str:
    return f"{app_name}_{_WHITESPACE.sub('_', label.strip())}_Report.{extension}"


def _client_names(clients: Sequence[ClientRecord]) -> dict[str, str]:
    return {client.id: client.name for client in clients}


def resolve_client_name(service: ServiceRecord, names: dict[str, str], locale: Locale) -> str:
    name = names.get(service.client_id)
    if name is None and service.client is not None:
        name = service.client.name
    return name if name is not None else translate(locale, "report.unknownClient")


def _grand_total(services: Sequence[ServiceRecord]) -> float:
    return sum((service.total for service in services), 0.0)


def _total_hours(services: Sequence[ServiceRecord]) -> float:
    return sum((service.time_worked for service in services), 0.0)


def _header(locale: Locale, *, with_client: bool) -> list[str]:
    keys = ["column.date", "column.client", "column.hours", "column.rate", "column.total"]
    if not with_client:
        keys.remove("column.client")
    return [translate(locale, key) for key in keys]


def tabular_rows(
    services: Sequence[ServiceRecord],
    clients: Sequence[ClientRecord],
    locale: Locale,
) -> list[list[str]]:
    names = _client_names(clients)
    rows = [_header(locale, with_client=True)]
    for service in services:
        rows.append(
            [
                service.date.isoformat(),
                resolve_client_name(service, names, locale),
                plain_number(service.time_worked),
                plain_number(service.hourly_rate),
                format_money(locale, service.total),
            ]
        )
    rows.append(["", "", "", translate(locale, "report.totalRow"), format_money(locale, _grand_total(services))])
    return rows


def _to_csv(rows: list[list[str]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerows(rows)
    return buffer.getvalue().rstrip("\n")


def build_tabular_export(
    services: Sequence[ServiceRecord],
    clients: Sequence[ClientRecord],
    locale: Locale,
) -> str:
    """CSV with a localized header, one row per service and a total row."""

    return _to_csv(tabular_rows(services, clients, locale))


def build_client_tabular_export(
    client: ClientRecord,
    services: Sequence[ServiceRecord],
    locale: Locale,
) -> str:
    grand_total = format_money(locale, _grand_total(services))
    rows: list[list[str]] = [
        [translate(locale, "report.clientTitle")],
        [f"{translate(locale, 'column.client')}: {client.name}"],
        [""],
        _header(locale, with_client=False),
    ]
    for service in services:
        rows.append(
            [
                service.date.isoformat(),
                plain_number(service.time_worked),
                plain_number(service.hourly_rate),
                format_money(locale, service.total),
            ]
        )
    rows.append(["", translate(locale, "report.totalRow"), "", grand_total])
    rows.append([translate(locale, "report.summaryPrefix"), "", "", ""])
    rows.append([translate(locale, "report.services"), str(len(services)), "", ""])
    rows.append([translate(locale, "report.totalHours"), f"{_total_hours(services):.1f}h", "", ""])
    rows.append([translate(locale, "report.totalValue"), "", "", grand_total])
    return _to_csv(rows)


def build_tabular_workbook(
    services: Sequence[ServiceRecord],
    clients: Sequence[ClientRecord],
    locale: Locale,
) -> bytes:
    """Spreadsheet rendition of the tabular export with numeric cells."""

    from openpyxl import Workbook

    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "report"

    names = _client_names(clients)
    sheet.append(_header(locale, with_client=True))
    for service in services:
        sheet.append(
            [
                service.date,
                resolve_client_name(service, names, locale),
                service.time_worked,
                service.hourly_rate,
                round(service.total, 2),
            ]
        )
    sheet.append([None, None, None, translate(locale, "report.totalRow"), round(_grand_total(services), 2)])

    output = io.BytesIO()
    workbook.save(output)
    return output.getvalue()


def filter_summary(
    filters: ReportFilters | None,
    clients: Sequence[ClientRecord],
    locale: Locale,
) -> list[str]:
    """Human-readable lines for the filters that are set, in display order."""

    if filters is None:
        return []
    lines: list[str] = []
    if filters.client_id is not None:
        name = _client_names(clients).get(filters.client_id, translate(locale, "report.unknownClient"))
        lines.append(f"{translate(locale, 'report.filterClient')}: {name}")
    if filters.start_date is not None:
        lines.append(f"{translate(locale, 'report.filterFrom')}: {filters.start_date.isoformat()}")
    if filters.end_date is not None:
        lines.append(f"{translate(locale, 'report.filterTo')}: {filters.end_date.isoformat()}")
    if filters.min_value is not None:
        lines.append(f"{translate(locale, 'report.filterMinValue')}: {format_money(locale, filters.min_value)}")
    if filters.max_value is not None:
        lines.append(f"{translate(locale, 'report.filterMaxValue')}: {format_money(locale, filters.max_value)}")
    return lines


def _style(accent: str) -> str:
    return _BASE_STYLE.replace("{accent}", html.escape(accent))


def _filter_block(lines: list[str], locale: Locale) -> str:
    if not lines:
        return ""
    items = "".join(f"<li>{html.escape(line)}</li>" for line in lines)
    return (
        '<div class="filter-info">'
        f"<h3>{html.escape(translate(locale, 'report.appliedFilters'))}</h3>"
        f"<ul>{items}</ul>"
        "</div>"
    )


def _summary_block(items: list[tuple[str, str]]) -> str:
    body = "".join(
        f'<div class="summary-item"><span>{html.escape(label)}:</span><span>{html.escape(value)}</span></div>'
        for label, value in items
    )
    return f'<div class="summary">{body}</div>'


def _document(*, title: str, accent: str, body: str, locale: Locale, generated_at: datetime) -> str:
    footer = f"{translate(locale, 'report.generatedBy')} - {generated_at.strftime('%Y-%m-%d %H:%M')}"
    return (
        "<!DOCTYPE html>\n"
        f'<html lang="{locale.value}">\n'
        "<head>\n"
        '<meta charset="utf-8">\n'
        f"<title>{html.escape(title)}</title>\n"
        f"<style>{_style(accent)}</style>\n"
        "</head>\n"
        "<body>\n"
        f"{body}\n"
        f'<p class="footer">{html.escape(footer)}</p>\n'
        "</body>\n"
        "</html>\n"
    )


def build_document_export(
    services: Sequence[ServiceRecord],
    clients: Sequence[ClientRecord],
    locale: Locale,
    *,
    filters: ReportFilters | None = None,
    period_label: str,
    generated_at: datetime,
) -> str:
    """Standalone HTML report: filter summary, totals and the itemized table."""

    names = _client_names(clients)
    symbol = currency_symbol(locale)
    grand_total = _grand_total(services)
    title = f"{translate(locale, 'report.monthlyTitle')} - {period_label}"

    summary = _summary_block(
        [
            (translate(locale, "report.services"), str(len(services))),
            (translate(locale, "report.totalHours"), f"{_total_hours(services):.1f}h"),
            (translate(locale, "report.grandTotal"), f"{symbol}{grand_total:.2f}"),
        ]
    )

    header_cells = "".join(f"<th>{html.escape(label)}</th>" for label in _header(locale, with_client=True))
    body_rows = "".join(
        "<tr>"
        f"<td>{service.date.isoformat()}</td>"
        f"<td>{html.escape(resolve_client_name(service, names, locale))}</td>"
        f"<td>{plain_number(service.time_worked)}</td>"
        f"<td>{html.escape(format_money(locale, service.hourly_rate))}</td>"
        f"<td>{html.escape(format_money(locale, service.total))}</td>"
        "</tr>"
        for service in services
    )
    total_row = (
        '<tr class="total-row">'
        f'<td colspan="4">{html.escape(translate(locale, "report.grandTotalRow"))}</td>'
        f"<td>{html.escape(format_money(locale, grand_total))}</td>"
        "</tr>"
    )

    body = (
        f"<h1>{html.escape(title)}</h1>\n"
        f"{_filter_block(filter_summary(filters, clients, locale), locale)}\n"
        f"<h2>{html.escape(translate(locale, 'report.summary'))}</h2>\n"
        f"{summary}\n"
        f"<h2>{html.escape(translate(locale, 'report.serviceDetails'))}</h2>\n"
        f"<table><thead><tr>{header_cells}</tr></thead><tbody>{body_rows}{total_row}</tbody></table>"
    )
    return _document(title=title, accent=DEFAULT_ACCENT, body=body, locale=locale, generated_at=generated_at)


def build_client_document_export(
    client: ClientRecord,
    services: Sequence[ServiceRecord],
    locale: Locale,
    *,
    filters: ReportFilters | None = None,
    generated_at: datetime,
) -> str:
    """Per-client HTML report using the client's color as accent."""

    title = translate(locale, "report.clientTitle")
    grand_total = _grand_total(services)

    # the client itself is already the subject of the report
    date_filters = None
    if filters is not None:
        date_filters = ReportFilters(
            start_date=filters.start_date,
            end_date=filters.end_date,
            min_value=filters.min_value,
            max_value=filters.max_value,
        )

    summary = _summary_block(
        [
            (translate(locale, "report.totalServices"), str(len(services))),
            (translate(locale, "report.totalHours"), f"{_total_hours(services):.1f}h"),
            (translate(locale, "report.totalValue"), format_money(locale, grand_total)),
        ]
    )

    header_cells = "".join(f"<th>{html.escape(label)}</th>" for label in _header(locale, with_client=False))
    body_rows = "".join(
        "<tr>"
        f"<td>{service.date.isoformat()}</td>"
        f"<td>{plain_number(service.time_worked)}</td>"
        f"<td>{html.escape(format_money(locale, service.hourly_rate))}</td>"
        f"<td>{html.escape(format_money(locale, service.total))}</td>"
        "</tr>"
        for service in services
    )
    total_row = (
        '<tr class="total-row">'
        f'<td colspan="3">{html.escape(translate(locale, "report.totalRow"))}</td>'
        f"<td>{html.escape(format_money(locale, grand_total))}</td>"
        "</tr>"
    )

    accent = html.escape(client.color)
    body = (
        f"<h1>{html.escape(title)}</h1>\n"
        '<div class="client-header">'
        f'<h2 style="margin: 0; color: {accent};">{html.escape(client.name)}</h2>'
        "</div>\n"
        f"{_filter_block(filter_summary(date_filters, [], locale), locale)}\n"
        f"{summary}\n"
        f"<h2>{html.escape(translate(locale, 'report.serviceHistory'))}</h2>\n"
        f"<table><thead><tr>{header_cells}</tr></thead><tbody>{body_rows}{total_row}</tbody></table>"
    )
    return _document(title=title, accent=client.color, body=body, locale=locale, generated_at=generated_at)
