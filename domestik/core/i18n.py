"""Static message catalogs for the two supported display locales.

Locales only affect presentation (labels, month names, currency glyph);
stored values are never converted. The catalogs are checked for identical
key sets when this module is imported, so a missing translation fails at
start-up instead of at render time.
"""

from __future__ import annotations

from enum import Enum


class Locale(str, Enum):
    EN = "en"
    PT = "pt"


CURRENCY_SYMBOLS: dict[Locale, str] = {
    Locale.EN: "$",
    Locale.PT: "€",
}

MONTH_NAMES: dict[Locale, tuple[str, ...]] = {
    Locale.EN: (
        "January",
        "February",
        "March",
        "April",
        "May",
        "June",
        "July",
        "August",
        "September",
        "October",
        "November",
        "December",
    ),
    Locale.PT: (
        "Janeiro",
        "Fevereiro",
        "Março",
        "Abril",
        "Maio",
        "Junho",
        "Julho",
        "Agosto",
        "Setembro",
        "Outubro",
        "Novembro",
        "Dezembro",
    ),
}

MESSAGES: dict[Locale, dict[str, str]] = {
    Locale.EN: {
        "column.date": "Date",
        "column.client": "Client",
        "column.hours": "Hours",
        "column.rate": "Rate/Hr",
        "column.total": "Total",
        "report.totalRow": "TOTAL",
        "report.grandTotalRow": "GRAND TOTAL",
        "report.unknownClient": "Unknown",
        "report.monthlyTitle": "Monthly Report",
        "report.clientTitle": "Client Report",
        "report.appliedFilters": "Applied Filters",
        "report.filterClient": "Client",
        "report.filterFrom": "From",
        "report.filterTo": "To",
        "report.filterMinValue": "Min Value",
        "report.filterMaxValue": "Max Value",
        "report.summary": "Summary",
        "report.summaryPrefix": "Summary:",
        "report.services": "Services",
        "report.totalServices": "Total Services",
        "report.totalHours": "Total Hours",
        "report.grandTotal": "Grand Total",
        "report.totalValue": "Total Value",
        "report.serviceDetails": "Service Details",
        "report.serviceHistory": "Service History",
        "report.generatedBy": "Generated by Domestik",
        "chart.thisYear": "This Year",
        "chart.lastYear": "Last Year",
        "chart.monthlyEvolution": "Monthly Evolution",
        "chart.momChange": "Month-over-Month Change",
    },
    Locale.PT: {
        "column.date": "Data",
        "column.client": "Cliente",
        "column.hours": "Horas",
        "column.rate": "Taxa/Hora",
        "column.total": "Total",
        "report.totalRow": "TOTAL",
        "report.grandTotalRow": "TOTAL GERAL",
        "report.unknownClient": "Desconhecido",
        "report.monthlyTitle": "Relatório Mensal",
        "report.clientTitle": "Relatório de Cliente",
        "report.appliedFilters": "Filtros Aplicados",
        "report.filterClient": "Cliente",
        "report.filterFrom": "De",
        "report.filterTo": "Até",
        "report.filterMinValue": "Valor Mín.",
        "report.filterMaxValue": "Valor Máx.",
        "report.summary": "Resumo",
        "report.summaryPrefix": "Resumo:",
        "report.services": "Serviços",
        "report.totalServices": "Total de Serviços",
        "report.totalHours": "Horas Totais",
        "report.grandTotal": "Total Geral",
        "report.totalValue": "Valor Total",
        "report.serviceDetails": "Detalhes dos Serviços",
        "report.serviceHistory": "Histórico de Serviços",
        "report.generatedBy": "Gerado por Domestik",
        "chart.thisYear": "Este Ano",
        "chart.lastYear": "Ano Passado",
        "chart.monthlyEvolution": "Evolução Mensal",
        "chart.momChange": "Variação Mensal (MoM)",
    },
}


def validate_catalogs() -> None:
    """Raise ``RuntimeError`` unless every locale defines the same keys."""

    reference = set(MESSAGES[Locale.EN])
    for locale in Locale:
        if locale not in MESSAGES or locale not in MONTH_NAMES or locale not in CURRENCY_SYMBOLS:
            raise RuntimeError(f"Locale {locale.value!r} is not fully configured.")
        keys = set(MESSAGES[locale])
        missing = sorted(reference - keys)
        extra = sorted(keys - reference)
        if missing or extra:
            raise RuntimeError(
                f"Locale {locale.value!r} catalog mismatch: missing={missing} extra={extra}"
            )
        if len(MONTH_NAMES[locale]) != 12:
            raise RuntimeError(f"Locale {locale.value!r} must define 12 month names.")


def translate(locale: Locale, key: str) -> str:
    return MESSAGES[locale][key]


def currency_symbol(locale: Locale) -> str:
    return CURRENCY_SYMBOLS[locale]


def month_name(locale: Locale, month: int) -> str:
    """Month name for a 1-based month number."""

    return MONTH_NAMES[locale][month - 1]


def format_money(locale: Locale, value: float) -> str:
    return f"{CURRENCY_SYMBOLS[locale]}{value:.2f}"


validate_catalogs()
