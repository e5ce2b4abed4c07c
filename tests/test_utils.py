from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from ciushr.utils import (
    format_money,
    format_plain_decimal,
    format_price,
    format_quantity,
    number_from_text,
    parse_iso_date,
)


def test_fixed_precision_rendering():
    assert format_money("15") == "15.00"
    assert format_money("14.995") == "15.00"
    assert format_quantity(1) == "1.000"
    assert format_price("100") == "100.000000"
    assert format_money("n/a") == "n/a"


def test_large_amounts_are_rendered_in_full():
    assert format_money("1e30") == "1000000000000000000000000000000.00"
    assert format_money(Decimal("123456789012345678901234567890.125")) == (
        "123456789012345678901234567890.13"
    )
    assert format_price("1E+40") == "1" + "0" * 40 + ".000000"
    assert format_plain_decimal("1e30") == "1" + "0" * 30


def test_negative_zero_is_rendered_unsigned():
    assert format_money("-0") == "0.00"
    assert format_money("-0.001") == "0.00"
    assert format_quantity(Decimal("-0.0")) == "0.000"
    assert format_plain_decimal("-0") == "0"


def test_plain_decimal_rendering():
    assert format_plain_decimal(25) == "25"
    assert format_plain_decimal("12.50") == "12.5"
    assert format_plain_decimal(Decimal("0.10")) == "0.1"


def test_number_from_text():
    assert number_from_text("25") == 25
    assert number_from_text("12.50") == 12.5
    assert number_from_text("abc") == "abc"


def test_parse_iso_date_accepts_extended_format_only():
    assert parse_iso_date("2025-05-01") == date(2025, 5, 1)
    assert parse_iso_date(" 2025-05-01 ") == date(2025, 5, 1)
    assert parse_iso_date(datetime(2025, 5, 1, 10, 0)) == date(2025, 5, 1)
    assert parse_iso_date("20250501") is None
    assert parse_iso_date("2025-W18-4") is None
    assert parse_iso_date("2025-5-1") is None
    assert parse_iso_date("2025-02-30") is None
    assert parse_iso_date(20250501) is None
