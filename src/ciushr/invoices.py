"""High level entry points for generating, validating and parsing invoices."""

from __future__ import annotations

from importlib import metadata
from typing import Any, Mapping

from . import params
from .builder import build_xml
from .config import Settings
from .errors import ErrorCollector, Result
from .models import InvoiceModel
from .parser import parse
from .registries import CURRENCY

DISTRIBUTION_NAME = "ciushr"
UBL_VERSION = "2.1"
CROATIAN_CIUS = "2025"

MANDATORY_FEATURES = (
    "operator_notes",
    "croatian_date_format",
    "ubl_extensions",
    "party_tax_schemes",
)
OPTIONAL_FEATURES = (
    "payment_means",
    "due_dates",
    "contact_information",
    "commodity_classification",
    "user_notes",
)


def _not_a_map() -> Result[Any]:
    return Result.failure(ErrorCollector.single("input", "must be a map"))


def validate_invoice(data: Any, *, settings: Settings | None = None) -> Result[InvoiceModel]:
    """Validate ``data`` and return the typed model."""

    if not isinstance(data, Mapping):
        return _not_a_map()
    return params.new(data, settings=settings)


def generate_invoice(data: Any, *, settings: Settings | None = None) -> Result[str]:
    """Validate ``data`` and serialise it to UBL XML."""

    validated = validate_invoice(data, settings=settings)
    if not validated.ok:
        return Result.failure(validated.error, validated.warnings)
    return Result.success(build_xml(validated.value), validated.warnings)


def parse_invoice(xml: Any) -> Result[dict[str, Any]]:
    """Parse a UBL invoice document into an input dictionary."""

    if not isinstance(xml, (str, bytes)):
        return Result.failure("Input must be an XML string")
    return parse(xml)


def round_trip_test(
    data: Any, *, settings: Settings | None = None
) -> Result[tuple[str, dict[str, Any]]]:
    """Generate XML from ``data`` and parse it back.

    Returns the generated document together with the parsed parameters so
    that callers can compare them with ``InvoiceModel.to_params()``.
    """

    if not isinstance(data, Mapping):
        return Result.failure("Input must be a map")
    generated = generate_invoice(data, settings=settings)
    if not generated.ok:
        return Result.failure(generated.error, generated.warnings)
    parsed = parse_invoice(generated.value)
    if not parsed.ok:
        return Result.failure(parsed.error, generated.warnings)
    return Result.success((generated.value, parsed.value), generated.warnings)


def version() -> str:
    try:
        return metadata.version(DISTRIBUTION_NAME)
    except metadata.PackageNotFoundError:
        return "unknown"


def info() -> dict[str, Any]:
    """Describe the supported profile and features."""

    return {
        "library_version": version(),
        "ubl_version": UBL_VERSION,
        "croatian_cius": CROATIAN_CIUS,
        "supported_currencies": list(CURRENCY.codes()),
        "mandatory_features": list(MANDATORY_FEATURES),
        "optional_features": list(OPTIONAL_FEATURES),
    }


__all__ = [
    "MANDATORY_FEATURES",
    "OPTIONAL_FEATURES",
    "validate_invoice",
    "generate_invoice",
    "parse_invoice",
    "round_trip_test",
    "version",
    "info",
]
