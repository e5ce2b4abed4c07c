"""Utility helpers shared across the invoice modules."""

from __future__ import annotations

import base64
import binascii
import decimal
import re
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any, Iterator, Mapping

from lxml import etree

NS_INVOICE = "urn:oasis:names:specification:ubl:schema:xsd:Invoice-2"
NS_CAC = "urn:oasis:names:specification:ubl:schema:xsd:CommonAggregateComponents-2"
NS_CBC = "urn:oasis:names:specification:ubl:schema:xsd:CommonBasicComponents-2"
NS_CCT = "urn:un:unece:uncefact:data:specification:CoreComponentTypeSchemaModule:2"
NS_EXT = "urn:oasis:names:specification:ubl:schema:xsd:CommonExtensionComponents-2"
NS_HREXTAC = "urn:mfin.gov.hr:schema:xsd:HRExtensionAggregateComponents-1"
NS_P3 = "urn:oasis:names:specification:ubl:schema:xsd:UnqualifiedDataTypes-2"
NS_SAC = "urn:oasis:names:specification:ubl:schema:xsd:SignatureAggregateComponents-2"
NS_SIG = "urn:oasis:names:specification:ubl:schema:xsd:CommonSignatureComponents-2"
NS_XSI = "http://www.w3.org/2001/XMLSchema-instance"

NSMAP: dict[str | None, str] = {
    None: NS_INVOICE,
    "cac": NS_CAC,
    "cbc": NS_CBC,
    "cct": NS_CCT,
    "ext": NS_EXT,
    "hrextac": NS_HREXTAC,
    "p3": NS_P3,
    "sac": NS_SAC,
    "sig": NS_SIG,
    "xsi": NS_XSI,
}

NS_DEFAULT = NS_INVOICE

MONEY_PLACES = Decimal("0.01")
QUANTITY_PLACES = Decimal("0.001")
PRICE_PLACES = Decimal("0.000001")

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def detect_namespace(root: etree._Element) -> str:
    """Return the XML namespace detected for the document root."""

    tag = getattr(root, "tag", "")
    if isinstance(tag, str) and tag.startswith("{") and "}" in tag:
        return tag.split("}", 1)[0][1:]
    return NS_DEFAULT


def parse_decimal(value: Any, *, default: Decimal | None = None) -> Decimal | None:
    """Convert ``value`` to :class:`~decimal.Decimal`.

    Empty strings, booleans and anything that does not parse as a finite
    number return ``default``.
    """

    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, Decimal):
        return value if value.is_finite() else default
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        result = Decimal(repr(value))
        return result if result.is_finite() else default

    text = str(value).strip()
    if not text:
        return default

    try:
        result = Decimal(text)
    except (InvalidOperation, ValueError):
        return default
    return result if result.is_finite() else default


def is_number(value: Any) -> bool:
    """``True`` for ints, floats and decimals; booleans are excluded."""

    if isinstance(value, bool):
        return False
    return isinstance(value, (int, float, Decimal))


def _round(number: Decimal, places: Decimal) -> Decimal:
    # quantize needs room for every integer digit plus the fraction digits
    with decimal.localcontext() as ctx:
        ctx.prec = max(ctx.prec, number.adjusted() + 10)
        result = number.quantize(places, rounding=ROUND_HALF_UP)
    if result.is_zero():
        return abs(result)
    return result


def _quantize(value: Any, places: Decimal) -> str:
    number = parse_decimal(value)
    if number is None:
        return str(value)
    return str(_round(number, places))


def format_money(value: Any) -> str:
    """Render an amount with two decimals (``"15"`` -> ``"15.00"``)."""

    return _quantize(value, MONEY_PLACES)


def format_quantity(value: Any) -> str:
    """Render a quantity with three decimals (``1`` -> ``"1.000"``)."""

    return _quantize(value, QUANTITY_PLACES)


def format_price(value: Any) -> str:
    """Render a unit price with six decimals (``"100"`` -> ``"100.000000"``)."""

    return _quantize(value, PRICE_PLACES)


def format_plain_decimal(value: Any) -> str:
    """Shortest plain rendering: ``25`` -> ``"25"``, ``12.50`` -> ``"12.5"``."""

    number = parse_decimal(value)
    if number is None:
        return str(value)
    if number == number.to_integral_value():
        return str(_round(number, Decimal(1)))
    return format(number, "f").rstrip("0")


def number_from_text(text: str) -> int | float | str:
    """Parse ``text`` to ``int`` when integral, ``float`` otherwise.

    Values that are not numeric are returned unchanged.
    """

    number = parse_decimal(text)
    if number is None:
        return text
    if number == number.to_integral_value():
        return int(number)
    return float(number)


def format_croatian_datetime(moment: datetime) -> str:
    """Render ``moment`` as ``DD. MM. YYYY. u HH:MM``."""

    return moment.strftime("%d. %m. %Y. u %H:%M")


def parse_iso_date(value: Any) -> date | None:
    """Return a :class:`date` for ``date`` objects or ``YYYY-MM-DD`` strings."""

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not _ISO_DATE_RE.match(text):
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        return None


def is_valid_base64(value: str) -> bool:
    try:
        base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        return False
    return True


def localname(element: etree._Element) -> str:
    """Return the tag name of ``element`` without namespace."""

    return etree.QName(element).localname


def iter_children(element: etree._Element | None, name: str) -> Iterator[etree._Element]:
    """Yield direct children of ``element`` whose local name is ``name``."""

    if element is None:
        return
    for child in element:
        if isinstance(child.tag, str) and localname(child) == name:
            yield child


def find_child(element: etree._Element | None, *path: str) -> etree._Element | None:
    """Follow ``path`` through direct children by local name."""

    current = element
    for name in path:
        current = next(iter_children(current, name), None)
        if current is None:
            return None
    return current


def child_text(element: etree._Element | None, *path: str) -> str | None:
    """Stripped text of the element at ``path`` or ``None`` when empty."""

    node = find_child(element, *path)
    if node is None or node.text is None:
        return None
    text = node.text.strip()
    return text or None


def child_attribute(element: etree._Element | None, attribute: str, *path: str) -> str | None:
    node = find_child(element, *path)
    if node is None:
        return None
    value = (node.get(attribute) or "").strip()
    return value or None


def canonical_key(key: Any) -> str:
    """Return the string form used for a mapping key (``Enum`` members by name)."""

    if isinstance(key, str):
        return key
    if isinstance(key, Enum):
        return key.name
    return str(key)


def normalize_keys(data: Mapping[Any, Any]) -> dict[str, Any]:
    """Shallow copy of ``data`` with canonical string keys."""

    return {canonical_key(key): value for key, value in data.items()}


def compact(mapping: dict[str, Any]) -> dict[str, Any]:
    """Drop keys whose value is ``None``, ``""`` or an empty container."""

    return {
        key: value
        for key, value in mapping.items()
        if value is not None and value != "" and value != [] and value != {}
    }


__all__ = [
    "NS_INVOICE",
    "NS_CAC",
    "NS_CBC",
    "NS_CCT",
    "NS_EXT",
    "NS_HREXTAC",
    "NS_P3",
    "NS_SAC",
    "NS_SIG",
    "NS_XSI",
    "NSMAP",
    "NS_DEFAULT",
    "detect_namespace",
    "parse_decimal",
    "is_number",
    "format_money",
    "format_quantity",
    "format_price",
    "format_plain_decimal",
    "number_from_text",
    "format_croatian_datetime",
    "parse_iso_date",
    "is_valid_base64",
    "localname",
    "iter_children",
    "find_child",
    "child_text",
    "child_attribute",
    "canonical_key",
    "normalize_keys",
    "compact",
]
