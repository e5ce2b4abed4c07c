"""Validation of document-level and line-level allowances and charges.

Document-level entries (directly under ``Invoice``) change the taxable base
of a whole VAT breakdown and must therefore name a tax category.  Line-level
entries inherit the line's category; a ``tax_category`` supplied on them is
handled according to :attr:`Settings.line_tax_category_policy`.

Failures are reported as an ordered list of messages; list wrappers prefix
them with ``allowance_charge[n]:`` (1-based).
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Mapping

from .config import Settings, get_settings
from .errors import Result
from .models import AllowanceCharge, TaxCategory
from .registries import (
    ALLOWANCE_REASON_CODE,
    CHARGE_REASON_CODE,
    TAX_CATEGORY,
    TAX_EXEMPTION_REASON_CODE,
    TAX_SCHEME,
    is_exempt_category,
)
from .utils import is_number, normalize_keys, parse_decimal

LOGGER = logging.getLogger("ciushr.allowance_charge")

DOCUMENT_LEVEL = "document"
LINE_LEVEL = "line"

_MISSING = object()


def validate_document_level(
    data: Any, *, settings: Settings | None = None
) -> Result[AllowanceCharge]:
    """Validate a document-level allowance/charge (TaxCategory required)."""

    return _validate(data, DOCUMENT_LEVEL, get_settings(settings))


def validate_line_level(data: Any, *, settings: Settings | None = None) -> Result[AllowanceCharge]:
    """Validate a line-level allowance/charge (TaxCategory not carried)."""

    return _validate(data, LINE_LEVEL, get_settings(settings))


def validate_document_level_list(
    items: Any, *, settings: Settings | None = None
) -> Result[tuple[AllowanceCharge, ...]]:
    return _validate_list(items, DOCUMENT_LEVEL, get_settings(settings))


def validate_line_level_list(
    items: Any, *, settings: Settings | None = None
) -> Result[tuple[AllowanceCharge, ...]]:
    return _validate_list(items, LINE_LEVEL, get_settings(settings))


def is_charge(entry: AllowanceCharge | Mapping[str, Any]) -> bool:
    if isinstance(entry, AllowanceCharge):
        return entry.charge_indicator is True
    return isinstance(entry, Mapping) and entry.get("charge_indicator") is True


def is_allowance(entry: AllowanceCharge | Mapping[str, Any]) -> bool:
    if isinstance(entry, AllowanceCharge):
        return entry.charge_indicator is False
    return isinstance(entry, Mapping) and entry.get("charge_indicator") is False


def _validate_list(items: Any, level: str, settings: Settings) -> Result[tuple[AllowanceCharge, ...]]:
    if items is None or (isinstance(items, (list, tuple)) and not items):
        return Result.success(())
    if not isinstance(items, (list, tuple)):
        return Result.failure(["allowance_charges must be a list"])

    errors: list[str] = []
    warnings: list[str] = []
    validated: list[AllowanceCharge] = []
    for index, item in enumerate(items, start=1):
        result = _validate(item, level, settings)
        warnings.extend(f"allowance_charge[{index}]: {warning}" for warning in result.warnings)
        if result.ok:
            validated.append(result.value)  # type: ignore[arg-type]
        else:
            errors.extend(f"allowance_charge[{index}]: {message}" for message in result.error)

    if errors:
        return Result.failure(errors, warnings)
    return Result.success(tuple(validated), warnings)


def _validate(data: Any, level: str, settings: Settings) -> Result[AllowanceCharge]:
    if not isinstance(data, Mapping):
        return Result.failure(["allowance_charge must be a map"])

    entry = normalize_keys(data)
    errors: list[str] = []
    warnings: list[str] = []

    indicator = entry.get("charge_indicator", _MISSING)
    if indicator is _MISSING or indicator is None:
        errors.append("charge_indicator is required")
    elif not isinstance(indicator, bool):
        errors.append("charge_indicator must be a boolean (true for charge, false for allowance)")

    errors.extend(_check_decimal_string(entry, "amount", required=True))
    reason_code = _check_reason_code(entry, indicator, errors)
    errors.extend(_check_reason(entry))
    errors.extend(_check_multiplier(entry))
    errors.extend(_check_decimal_string(entry, "base_amount", required=False))

    tax_category: TaxCategory | None = None
    raw_category = entry.get("tax_category")
    if level == DOCUMENT_LEVEL:
        if raw_category is None:
            errors.append("tax_category is required for document-level allowance/charge")
        elif not isinstance(raw_category, Mapping):
            errors.append("tax_category must be a map")
        else:
            category_errors, category_warnings, tax_category = _check_tax_category(
                normalize_keys(raw_category), settings
            )
            errors.extend(category_errors)
            warnings.extend(category_warnings)
    elif raw_category is not None:
        if settings.line_tax_category_policy == "reject":
            errors.append("tax_category is not allowed on line-level allowance/charge")
        else:
            message = "tax_category ignored on line-level allowance/charge"
            LOGGER.warning("%s (the line's classified tax category applies)", message)
            warnings.append(message)

    if errors:
        return Result.failure(errors, warnings)

    return Result.success(
        AllowanceCharge(
            charge_indicator=indicator,  # type: ignore[arg-type]
            amount=parse_decimal(entry["amount"]),  # type: ignore[arg-type]
            allowance_charge_reason_code=reason_code,
            allowance_charge_reason=entry.get("allowance_charge_reason"),
            multiplier_factor_numeric=parse_decimal(entry.get("multiplier_factor_numeric")),
            base_amount=parse_decimal(entry.get("base_amount")),
            tax_category=tax_category,
        ),
        warnings,
    )


def _check_decimal_string(entry: Mapping[str, Any], name: str, *, required: bool) -> list[str]:
    value = entry.get(name, _MISSING)
    if value is _MISSING or value is None:
        return [f"{name} is required"] if required else []
    if not isinstance(value, (str, Decimal)):
        return [f"{name} must be a string"]
    number = parse_decimal(value)
    if number is None or number < 0:
        return [f"{name} must be a valid decimal string"]
    return []


def _check_reason_code(entry: Mapping[str, Any], indicator: Any, errors: list[str]) -> str | None:
    code = entry.get("allowance_charge_reason_code")
    if code is None or not isinstance(indicator, bool):
        return None
    if indicator:
        symbol = CHARGE_REASON_CODE.symbol(code)
        if symbol is None:
            errors.append(
                f"allowance_charge_reason_code '{code}' is not a valid charge reason code (UNTDID 7161)"
            )
        return symbol
    symbol = ALLOWANCE_REASON_CODE.symbol(code)
    if symbol is None:
        errors.append(
            f"allowance_charge_reason_code '{code}' is not a valid allowance reason code (UNTDID 5189)"
        )
    return symbol


def _check_reason(entry: Mapping[str, Any]) -> list[str]:
    if "allowance_charge_reason" not in entry or entry["allowance_charge_reason"] is None:
        return []
    reason = entry["allowance_charge_reason"]
    if reason == "":
        return ["allowance_charge_reason cannot be empty"]
    if not isinstance(reason, str):
        return ["allowance_charge_reason must be a non-empty string"]
    return []


def _check_multiplier(entry: Mapping[str, Any]) -> list[str]:
    value = entry.get("multiplier_factor_numeric")
    if value is None:
        return []
    if not is_number(value) or parse_decimal(value) is None or parse_decimal(value) < 0:
        return ["multiplier_factor_numeric must be a non-negative number"]
    return []


def _check_tax_category(
    category: Mapping[str, Any], settings: Settings
) -> tuple[list[str], list[str], TaxCategory | None]:
    errors: list[str] = []
    warnings: list[str] = []

    category_id = category.get("id")
    symbol = TAX_CATEGORY.symbol(category_id)
    if category_id is None:
        errors.append("tax_category.id is required")
    elif symbol is None:
        errors.append(f"tax_category.id '{category_id}' is not a valid tax category")

    percent = category.get("percent")
    if percent is None:
        errors.append("tax_category.percent is required")
    elif not is_number(percent) or parse_decimal(percent) is None or parse_decimal(percent) < 0:
        errors.append("tax_category.percent must be a non-negative number")

    scheme = category.get("tax_scheme_id")
    scheme_symbol = TAX_SCHEME.symbol(scheme)
    if scheme is None:
        errors.append("tax_category.tax_scheme_id is required")
    elif scheme_symbol is None:
        errors.append(f"tax_category.tax_scheme_id '{scheme}' is not a valid tax scheme")

    reason = category.get("tax_exemption_reason")
    reason_code = category.get("tax_exemption_reason_code")
    reason_code_symbol = None
    if reason_code is not None:
        reason_code_symbol = TAX_EXEMPTION_REASON_CODE.symbol(reason_code)
        if reason_code_symbol is None:
            errors.append(
                f"tax_category.tax_exemption_reason_code '{reason_code}' "
                "is not a valid tax exemption reason code"
            )

    if symbol is not None and is_exempt_category(symbol):
        if reason == "":
            errors.append("tax_category.tax_exemption_reason cannot be empty")
        elif reason is not None and not isinstance(reason, str):
            errors.append("tax_category.tax_exemption_reason must be a string")
        elif reason is None and reason_code is None:
            message = (
                f"tax_category.tax_exemption_reason should be provided for tax category "
                f"'{TAX_CATEGORY.code(symbol)}'"
            )
            if settings.strict_exemption_reason:
                errors.append(message.replace("should be provided", "is required"))
            else:
                LOGGER.warning(message)
                warnings.append(message)

    if errors:
        return errors, warnings, None

    return (
        errors,
        warnings,
        TaxCategory(
            id=symbol,  # type: ignore[arg-type]
            percent=parse_decimal(percent),  # type: ignore[arg-type]
            tax_scheme_id=scheme_symbol,  # type: ignore[arg-type]
            tax_exemption_reason=reason or None,
            tax_exemption_reason_code=reason_code_symbol,
        ),
    )


__all__ = [
    "DOCUMENT_LEVEL",
    "LINE_LEVEL",
    "validate_document_level",
    "validate_line_level",
    "validate_document_level_list",
    "validate_line_level_list",
    "is_charge",
    "is_allowance",
]
