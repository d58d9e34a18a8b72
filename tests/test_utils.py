from datetime import date, datetime
from decimal import Decimal

import pytest

from amort_calc.utils import (
    add_months,
    coerce_decimal,
    coerce_int,
    first_of_month,
    parse_date,
    parse_year_month,
    round_money,
)


def test_add_months_clamps_to_month_end():
    assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
    assert add_months(date(2025, 1, 31), 1) == date(2025, 2, 28)
    assert add_months(date(2025, 11, 15), 3) == date(2026, 2, 15)


def test_parse_date_formats():
    assert parse_date("2025-07-14") == date(2025, 7, 14)
    assert parse_date("2025-07") == date(2025, 7, 1)
    assert parse_date(date(2025, 7, 14)) == date(2025, 7, 14)
    assert parse_date(datetime(2025, 7, 14, 9, 30)) == date(2025, 7, 14)


@pytest.mark.parametrize("value", ["", "07/14/2025", "2025-13-01", "soon"])
def test_parse_date_rejects_garbage(value):
    with pytest.raises(ValueError):
        parse_date(value)


def test_parse_year_month_rejects_missing_month():
    with pytest.raises(ValueError):
        parse_year_month("2025")


def test_first_of_month():
    assert first_of_month(date(2025, 3, 15)) == date(2025, 3, 1)


@pytest.mark.parametrize(
    "value, expected",
    [
        ("1,250.50", Decimal("1250.50")),
        (" 42 ", Decimal("42")),
        (3, Decimal("3")),
        (0.1, Decimal("0.1")),
        (Decimal("7.5"), Decimal("7.5")),
        (None, None),
        ("", None),
        ("abc", None),
        (True, None),
        (float("inf"), None),
        ("NaN", None),
    ],
)
def test_coerce_decimal(value, expected):
    assert coerce_decimal(value) == expected


def test_coerce_int():
    assert coerce_int("12") == 12
    assert coerce_int("12.0") == 12
    assert coerce_int("12.5") is None
    assert coerce_int("twelve") is None


def test_round_money_rounds_half_up():
    assert round_money(Decimal("2.675")) == Decimal("2.68")
    assert round_money(Decimal("2.665")) == Decimal("2.67")
    assert round_money(Decimal("99.5505")) == Decimal("99.55")
