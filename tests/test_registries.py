from __future__ import annotations

from enum import Enum

import pytest

from ciushr.registries import (
    ALLOWANCE_REASON_CODE,
    BUSINESS_PROCESS,
    CHARGE_REASON_CODE,
    CURRENCY,
    INVOICE_TYPE_CODE,
    MIME_CODE,
    REGISTRIES,
    TAX_CATEGORY,
    UNIT_CODE,
    format_choices,
    is_exempt_category,
)


@pytest.mark.parametrize("registry", list(REGISTRIES.values()), ids=lambda r: r.name)
def test_every_symbol_maps_back_to_itself(registry):
    for symbol in registry.values():
        code = registry.code(symbol)
        assert code is not None
        assert registry.symbol(code) == symbol


@pytest.mark.parametrize("registry", list(REGISTRIES.values()), ids=lambda r: r.name)
def test_default_is_a_member(registry):
    assert registry.is_valid(registry.default())
    assert registry.code(registry.default()) == registry.default_code()


def test_lookups_accept_symbols_and_codes():
    assert TAX_CATEGORY.code("standard_rate") == "S"
    assert TAX_CATEGORY.code("S") == "S"
    assert TAX_CATEGORY.symbol("AE") == "reverse_charge"
    assert TAX_CATEGORY.is_valid("zero_rate")
    assert INVOICE_TYPE_CODE.code(381) == "381"


def test_unknown_values_return_none_without_raising():
    assert TAX_CATEGORY.code("nope") is None
    assert TAX_CATEGORY.symbol(None) is None
    assert TAX_CATEGORY.symbol(True) is None
    assert TAX_CATEGORY.symbol(3.5) is None
    assert not UNIT_CODE.is_valid("")


def test_enum_members_are_resolved():
    class Category(Enum):
        standard_rate = "standard_rate"

    assert TAX_CATEGORY.code(Category.standard_rate) == "S"


def test_billing_alias_resolves_to_p1():
    assert BUSINESS_PROCESS.symbol("billing") == "p1"
    assert BUSINESS_PROCESS.code("billing") == "P1"
    assert "billing" not in BUSINESS_PROCESS.values()


def test_business_process_descriptions():
    assert BUSINESS_PROCESS.description("P4") == "Payment in advance (Prepayment)"
    assert BUSINESS_PROCESS.description("unknown") is None


def test_reason_code_tables_do_not_share_codes():
    assert not set(ALLOWANCE_REASON_CODE.codes()) & set(CHARGE_REASON_CODE.codes())


def test_consolidated_tables_include_richer_entries():
    assert INVOICE_TYPE_CODE.code("debit_note") == "383"
    assert INVOICE_TYPE_CODE.code("prepayment_invoice") == "386"
    assert UNIT_CODE.default() == "piece"
    assert UNIT_CODE.code("kilogram") == "KGM"


def test_exempt_categories():
    assert is_exempt_category("E")
    assert is_exempt_category("reverse_charge")
    assert is_exempt_category("outside_scope")
    assert not is_exempt_category("standard_rate")
    assert not is_exempt_category(None)


def test_symbol_or_passthrough_keeps_unknown_codes():
    assert UNIT_CODE.symbol_or_passthrough("H87") == "piece"
    assert UNIT_CODE.symbol_or_passthrough("XYZ") == "XYZ"


def test_format_choices_lists_codes():
    assert format_choices(CURRENCY) == "EUR"
    assert "application/pdf" in format_choices(MIME_CODE)


def test_registry_tables_are_read_only():
    with pytest.raises(TypeError):
        TAX_CATEGORY.codes_by_symbol["new"] = "N"  # type: ignore[index]
