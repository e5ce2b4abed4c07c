"""Croatian CIUS-2025 UBL 2.1 e-invoice generation and parsing.

The public API lives in :mod:`ciushr.invoices`; the most common entry points
are re-exported here.
"""

from __future__ import annotations

from .errors import (
    CiusError,
    ConfigError,
    InvoiceParseError,
    InvoiceValidationError,
    Result,
)
from .invoices import (
    generate_invoice,
    info,
    parse_invoice,
    round_trip_test,
    validate_invoice,
    version,
)

__all__ = [
    "CiusError",
    "ConfigError",
    "InvoiceParseError",
    "InvoiceValidationError",
    "Result",
    "generate_invoice",
    "info",
    "parse_invoice",
    "round_trip_test",
    "validate_invoice",
    "version",
]
