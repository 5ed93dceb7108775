from __future__ import annotations

import pytest

from domestik.core.i18n import MESSAGES, Locale, format_money, month_name, translate, validate_catalogs


def test_catalogs_share_the_same_keys() -> None:
    validate_catalogs()

    assert set(MESSAGES[Locale.EN]) == set(MESSAGES[Locale.PT])


def test_translate_and_month_names() -> None:
    assert translate(Locale.EN, "report.totalRow") == "TOTAL"
    assert translate(Locale.PT, "report.unknownClient") == "Desconhecido"
    assert translate(Locale.PT, "report.totalHours") == "Horas Totais"
    assert month_name(Locale.EN, 3) == "March"
    assert month_name(Locale.PT, 3) == "Março"


def test_format_money_uses_locale_symbol_and_two_decimals() -> None:
    assert format_money(Locale.EN, 37.5) == "$37.50"
    assert format_money(Locale.PT, 0) == "€0.00"


def test_unknown_key_raises() -> None:
    with pytest.raises(KeyError):
        translate(Locale.EN, "missing.key")
