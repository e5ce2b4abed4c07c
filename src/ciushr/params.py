"""Validation and normalisation of invoice input data.

:func:`new` is the single boundary between loosely typed input (nested
mappings with string or enum keys, symbols or wire codes, strings or typed
dates) and the immutable :class:`~ciushr.models.InvoiceModel`.  Processing
runs in four steps:

1. :func:`normalize` converts keys of every known nested structure;
2. :func:`apply_defaults` fills in business process, invoice type and
   currency;
3. :func:`split_issue_datetime` turns ``issue_datetime`` into separate
   ``issue_date`` and ``issue_time`` values;
4. :func:`validate` runs every section validator and either assembles the
   model or returns the aggregated error tree.

Nothing in this module raises for bad input; errors from every section are
collected so that callers see all problems at once.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any, Callable, Mapping, Sequence

from . import billing_reference as billing_reference_module
from . import order_reference as order_reference_module
from .allowance_charge import validate_document_level_list, validate_line_level_list
from .config import Settings, get_settings
from .errors import ErrorCollector, ErrorLeaf, ErrorMap, ErrorNode, IndexedErrors, Result, is_blank
from .models import (
    Attachment,
    CommodityClassification,
    Contact,
    InvoiceLine,
    InvoiceModel,
    InvoicePeriod,
    Item,
    MonetaryTotal,
    Party,
    PartyTaxScheme,
    PaymentMethod,
    PostalAddress,
    Price,
    SellerContact,
    TaxCategory,
    TaxSubtotal,
    TaxTotal,
)
from .registries import (
    BUSINESS_PROCESS,
    CURRENCY,
    INVOICE_TYPE_CODE,
    MIME_CODE,
    TAX_CATEGORY,
    TAX_EXEMPTION_REASON_CODE,
    TAX_SCHEME,
    UNIT_CODE,
    Registry,
    format_choices,
    is_exempt_category,
)
from .utils import (
    canonical_key,
    is_number,
    is_valid_base64,
    parse_decimal,
    parse_iso_date,
)

LOGGER = logging.getLogger("ciushr.params")

REQUIRED_FIELDS = (
    "id",
    "issue_datetime",
    "currency_code",
    "supplier",
    "customer",
    "tax_total",
    "legal_monetary_total",
    "invoice_lines",
)
REQUIRED_SUPPLIER_FIELDS = (
    "oib",
    "registration_name",
    "postal_address",
    "party_tax_scheme",
    "seller_contact",
)
REQUIRED_CUSTOMER_FIELDS = ("oib", "registration_name", "postal_address", "party_tax_scheme")
REQUIRED_SELLER_CONTACT_FIELDS = ("id", "name")
REQUIRED_ADDRESS_FIELDS = ("street_name", "city_name", "postal_zone", "country_code")
REQUIRED_TAX_SCHEME_FIELDS = ("company_id", "tax_scheme_id")
REQUIRED_MONETARY_FIELDS = (
    "line_extension_amount",
    "tax_exclusive_amount",
    "tax_inclusive_amount",
    "payable_amount",
)
OPTIONAL_MONETARY_FIELDS = ("allowance_total_amount", "charge_total_amount", "prepaid_amount")
REQUIRED_TAX_TOTAL_FIELDS = ("tax_amount", "tax_subtotals")
REQUIRED_TAX_SUBTOTAL_FIELDS = ("taxable_amount", "tax_amount", "tax_category")
REQUIRED_TAX_CATEGORY_FIELDS = ("id", "percent", "tax_scheme_id")
REQUIRED_LINE_FIELDS = ("id", "quantity", "unit_code", "line_extension_amount", "item", "price")
REQUIRED_ITEM_FIELDS = ("name", "classified_tax_category", "commodity_classification")
REQUIRED_PRICE_FIELDS = ("price_amount",)
REQUIRED_PAYMENT_MEANS_FIELDS = ("payment_means_code", "payee_financial_account_id")
REQUIRED_ATTACHMENT_FIELDS = ("id", "filename", "mime_code", "content")

CROATIAN_LIST_ID = "CG"

_OIB_RE = re.compile(r"^\d{11}$")
_TIMESTAMP_RE = re.compile(r"^\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}")
_COUNTRY_RE = re.compile(r"^[A-Z]{2}$")
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_PAYMENT_MEANS_RE = re.compile(r"^\d{1,3}$")

MSG_NON_EMPTY = "must be a non-empty string"
MSG_OIB = "must be an 11-digit OIB number"
MSG_COUNTRY = "must be a 2-letter ISO 3166-1 alpha-2 country code"
MSG_PERCENT = "must be a number between 0 and 100"
MSG_DECIMAL = "must be a valid decimal string"
MSG_AMOUNT_TYPE = "must be a non-negative number or decimal string"
MSG_POSITIVE = "must be a positive number"
MSG_DATETIME = "must be a valid ISO 8601 datetime (e.g., 2025-05-01T12:00:00)"
MSG_DATE = "must be a valid date (YYYY-MM-DD or date object)"
MSG_LIST_ID = "must be 'CG' for Croatian CIUS compliance"
MSG_EMAIL = "must be a valid email address"
MSG_MIME = "must be a valid MIME type (e.g., application/pdf, image/png)"
MSG_BASE64 = "must be valid base64-encoded content"
MSG_MAP = "must be a map"


# ---------------------------------------------------------------------------
# Step 1: key normalisation
# ---------------------------------------------------------------------------

_TAX_CATEGORY_SHAPE: dict[str, Any] = {}
_ALLOWANCE_CHARGE_SHAPE: dict[str, Any] = {"tax_category": _TAX_CATEGORY_SHAPE}
_PARTY_SHAPE: dict[str, Any] = {
    "postal_address": {},
    "party_tax_scheme": {},
    "contact": {},
    "seller_contact": {},
    "party_identification": {},
}
INPUT_SHAPE: dict[str, Any] = {
    "supplier": _PARTY_SHAPE,
    "customer": _PARTY_SHAPE,
    "tax_total": {"tax_subtotals": [{"tax_category": _TAX_CATEGORY_SHAPE}]},
    "legal_monetary_total": {},
    "payment_method": {},
    "invoice_lines": [
        {
            "item": {"classified_tax_category": _TAX_CATEGORY_SHAPE, "commodity_classification": {}},
            "price": {},
            "allowance_charges": [_ALLOWANCE_CHARGE_SHAPE],
        }
    ],
    "attachments": [{}],
    "allowance_charges": [_ALLOWANCE_CHARGE_SHAPE],
    "billing_reference": {"invoice_document_reference": {}},
    "order_reference": {},
    "invoice_period": {},
}


def _normalize_value(value: Any, shape: Any) -> Any:
    if isinstance(shape, list):
        if isinstance(value, (list, tuple)):
            return [_normalize_value(item, shape[0]) for item in value]
        return value
    if not isinstance(value, Mapping):
        return value
    normalized = {canonical_key(key): item for key, item in value.items()}
    for key, nested in shape.items():
        if key in normalized:
            normalized[key] = _normalize_value(normalized[key], nested)
    return normalized


def normalize(data: Mapping[Any, Any]) -> dict[str, Any]:
    """Return a copy of ``data`` with canonical string keys at every level."""

    params = _normalize_value(data, INPUT_SHAPE)
    for line in params.get("invoice_lines") or []:
        price = line.get("price") if isinstance(line, dict) else None
        # ``unit_code`` was accepted on prices before the dedicated key existed.
        if isinstance(price, dict) and "unit_code" in price:
            price.setdefault("base_quantity_unit_code", price.pop("unit_code"))
    return params


# ---------------------------------------------------------------------------
# Steps 2 and 3: defaults and issue date/time
# ---------------------------------------------------------------------------


def apply_defaults(params: Mapping[str, Any]) -> dict[str, Any]:
    """Fill in business process, invoice type and currency when omitted."""

    result = dict(params)
    if result.get("business_process") is None:
        result["business_process"] = BUSINESS_PROCESS.default()
    if result.get("invoice_type_code") is None:
        result["invoice_type_code"] = INVOICE_TYPE_CODE.default()
    if result.get("currency_code") is None:
        result["currency_code"] = CURRENCY.default_code()
    return result


def _parse_timestamp(text: str) -> datetime | None:
    value = text.strip()
    if not _TIMESTAMP_RE.match(value):
        return None
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


def _parse_time(value: Any) -> time | None:
    if isinstance(value, time):
        return value
    if isinstance(value, str):
        try:
            return time.fromisoformat(value.strip())
        except ValueError:
            return None
    return None


def split_issue_datetime(
    params: Mapping[str, Any], *, settings: Settings | None = None
) -> dict[str, Any]:
    """Set ``issue_date``/``issue_time`` from ``issue_datetime``.

    Offset-aware values are converted to the configured timezone, or to UTC
    when none is set, before the offset is dropped.  Values that
    cannot be parsed are left untouched for :func:`validate` to reject.
    """

    result = dict(params)
    value = result.get("issue_datetime")

    moment: datetime | None = None
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, str):
        moment = _parse_timestamp(value)
    elif value is None and "issue_date" in result and "issue_time" in result:
        issue_date = parse_iso_date(result["issue_date"])
        issue_time = _parse_time(result["issue_time"])
        if issue_date is not None and issue_time is not None:
            moment = datetime.combine(issue_date, issue_time)
            result["issue_datetime"] = moment

    if moment is None:
        return result

    if moment.tzinfo is not None:
        zone = get_settings(settings).tzinfo() or timezone.utc
        moment = moment.astimezone(zone).replace(tzinfo=None)

    result["issue_date"] = moment.date()
    result["issue_time"] = moment.time().replace(microsecond=0)
    return result


def new(data: Any, *, settings: Settings | None = None) -> Result[InvoiceModel]:
    """Normalise, default and validate ``data``."""

    if not isinstance(data, Mapping):
        return Result.failure(ErrorCollector.single("input", MSG_MAP))

    active = get_settings(settings)
    params = normalize(data)
    params = apply_defaults(params)
    params = split_issue_datetime(params, settings=active)
    return validate(params, settings=active)


# ---------------------------------------------------------------------------
# Step 4: validation
# ---------------------------------------------------------------------------


@dataclass
class _Context:
    settings: Settings
    warnings: list[str] = field(default_factory=list)

    def warn(self, path: str, message: str) -> None:
        LOGGER.warning("%s: %s", path, message)
        self.warnings.append(f"{path}: {message}")


Outcome = tuple[Any, "ErrorNode | str | None"]


def validate(params: Mapping[str, Any], *, settings: Settings | None = None) -> Result[InvoiceModel]:
    """Validate already normalised ``params`` and build the model."""

    if not isinstance(params, Mapping):
        return Result.failure(ErrorCollector.single("input", MSG_MAP))

    ctx = _Context(get_settings(settings))
    errors = ErrorCollector()

    for name in REQUIRED_FIELDS:
        if name == "issue_datetime" and params.get("issue_date") and params.get("issue_time"):
            continue
        if is_blank(params.get(name)):
            errors.add(name, "is required")

    models: dict[str, Any] = {}

    def run(name: str, validator: Callable[..., Outcome], *args: Any, optional: bool = False) -> None:
        if name in errors:
            return
        value = params.get(name)
        if optional and value is None:
            return
        model, error = validator(value, *args)
        if error is not None:
            errors.add(name, error)
        else:
            models[name] = model

    run("id", _validate_id)
    if "issue_datetime" not in errors:
        if isinstance(params.get("issue_date"), date) and isinstance(params.get("issue_time"), time):
            models["issue_date"] = params["issue_date"]
            models["issue_time"] = params["issue_time"]
        else:
            errors.add("issue_datetime", MSG_DATETIME)
    run("due_date", _validate_date, optional=True)
    run("currency_code", _validate_currency)
    run("invoice_type_code", _validate_registry_value, INVOICE_TYPE_CODE, "must be a valid invoice type code string")
    run("business_process", _validate_registry_value, BUSINESS_PROCESS, MSG_NON_EMPTY)
    run("supplier", _validate_party, REQUIRED_SUPPLIER_FIELDS, ctx)
    run("customer", _validate_party, REQUIRED_CUSTOMER_FIELDS, ctx)
    run("tax_total", _validate_tax_total, ctx)
    run("legal_monetary_total", _validate_monetary_total)
    run("payment_method", _validate_payment_method, optional=True)
    run("invoice_lines", _validate_invoice_lines, ctx)
    run("notes", _validate_notes, optional=True)
    run("allowance_charges", _validate_document_allowance_charges, ctx, optional=True)
    run("billing_reference", _validate_billing_reference, optional=True)
    run("order_reference", _validate_order_reference, optional=True)
    run("invoice_period", _validate_invoice_period, optional=True)
    run("delivery_date", _validate_date, optional=True)
    run("vat_cash_accounting", _validate_cash_accounting, optional=True)

    attachments = params.get("attachments")
    if attachments is not None:
        attachment_models, attachment_errors = _validate_attachments(attachments)
        errors.merge(attachment_errors)
        if attachment_errors is None:
            models["attachments"] = attachment_models

    _check_billing_reference_rule(params, models, errors)

    built = errors.build()
    if built is not None:
        return Result.failure(built, ctx.warnings)

    return Result.success(_assemble(models), ctx.warnings)


def _check_billing_reference_rule(
    params: Mapping[str, Any], models: Mapping[str, Any], errors: ErrorCollector
) -> None:
    invoice_type = models.get("invoice_type_code")
    if invoice_type is None or "billing_reference" in errors:
        return
    if billing_reference_module.required_for_invoice_type(invoice_type) and params.get(
        "billing_reference"
    ) is None:
        code = INVOICE_TYPE_CODE.code(invoice_type)
        errors.add("billing_reference", f"is required for invoice type {code}")


def _assemble(models: Mapping[str, Any]) -> InvoiceModel:
    return InvoiceModel(
        id=models["id"],
        issue_date=models["issue_date"],
        issue_time=models["issue_time"],
        currency_code=models["currency_code"],
        business_process=models["business_process"],
        invoice_type_code=models["invoice_type_code"],
        supplier=models["supplier"],
        customer=models["customer"],
        tax_total=models["tax_total"],
        legal_monetary_total=models["legal_monetary_total"],
        invoice_lines=models["invoice_lines"],
        due_date=models.get("due_date"),
        payment_method=models.get("payment_method"),
        notes=models.get("notes", ()),
        attachments=models.get("attachments", ()),
        allowance_charges=models.get("allowance_charges", ()),
        billing_reference=models.get("billing_reference"),
        order_reference=models.get("order_reference"),
        invoice_period=models.get("invoice_period"),
        delivery_date=models.get("delivery_date"),
        vat_cash_accounting=models.get("vat_cash_accounting"),
    )


# -- scalar checks -----------------------------------------------------------


def _is_non_empty_string(value: Any) -> bool:
    return isinstance(value, str) and value != ""


def _validate_id(value: Any) -> Outcome:
    if _is_non_empty_string(value):
        return value, None
    return None, MSG_NON_EMPTY


def _validate_date(value: Any) -> Outcome:
    parsed = parse_iso_date(value)
    if parsed is None:
        return None, MSG_DATE
    return parsed, None


def _validate_currency(value: Any) -> Outcome:
    if not isinstance(value, str):
        return None, f"must be {CURRENCY.default_code()}"
    code = CURRENCY.code(value)
    if code is None:
        return None, f"only {format_choices(CURRENCY)} is supported"
    return code, None


def _validate_registry_value(value: Any, registry: Registry, type_message: str) -> Outcome:
    symbol = registry.symbol(value)
    if symbol is not None:
        return symbol, None
    if not isinstance(value, str):
        return None, type_message
    return None, f"must be one of: {format_choices(registry)}"


def _validate_amount(value: Any) -> Outcome:
    if isinstance(value, str):
        number = parse_decimal(value)
        if number is None or number < 0:
            return None, MSG_DECIMAL
        return number, None
    if is_number(value):
        number = parse_decimal(value)
        if number is not None and number >= 0:
            return number, None
    return None, MSG_AMOUNT_TYPE


def _validate_percent(value: Any) -> Outcome:
    if is_number(value):
        number = parse_decimal(value)
        if number is not None and Decimal(0) <= number <= Decimal(100):
            return number, None
    return None, MSG_PERCENT


def _validate_positive(value: Any) -> Outcome:
    if is_number(value):
        number = parse_decimal(value)
        if number is not None and number > 0:
            return number, None
    return None, MSG_POSITIVE


def _validate_oib(value: Any) -> str | None:
    if isinstance(value, str) and _OIB_RE.match(value):
        return None
    return MSG_OIB


def _validate_optional_string(value: Any) -> str | None:
    if value is None or _is_non_empty_string(value):
        return None
    if value == "":
        return "must be a non-empty string if provided"
    return "must be a string"


def _check_fields(
    data: Mapping[str, Any],
    errors: ErrorCollector,
    checks: Sequence[tuple[str, Callable[[Any], Outcome]]],
) -> dict[str, Any]:
    """Run ``checks`` for fields not already reported and return the values."""

    values: dict[str, Any] = {}
    for name, check in checks:
        if name in errors:
            continue
        value, error = check(data.get(name))
        if error is not None:
            errors.add(name, error)
        else:
            values[name] = value
    return values


def _non_empty(value: Any) -> Outcome:
    if _is_non_empty_string(value):
        return value, None
    return None, MSG_NON_EMPTY


# -- parties -----------------------------------------------------------------


def _validate_party(value: Any, required: tuple[str, ...], ctx: _Context) -> Outcome:
    if not isinstance(value, Mapping):
        return None, MSG_MAP

    errors = ErrorCollector()
    errors.require(value, required)

    def oib(item: Any) -> Outcome:
        error = _validate_oib(item)
        return (item, None) if error is None else (None, error)

    values = _check_fields(
        value,
        errors,
        (
            ("oib", oib),
            ("registration_name", _non_empty),
            ("postal_address", _validate_postal_address),
            ("party_tax_scheme", _validate_party_tax_scheme),
        ),
    )

    party_identification = None
    if value.get("party_identification") is not None:
        party_identification, error = _validate_party_identification(value["party_identification"])
        errors.add("party_identification", error)

    contact = None
    if value.get("contact") is not None:
        contact, error = _validate_contact(value["contact"])
        errors.add("contact", error)

    seller_contact = None
    if "seller_contact" in required and "seller_contact" not in errors:
        seller_contact, error = _validate_seller_contact(value.get("seller_contact"))
        errors.add("seller_contact", error)

    built = errors.build()
    if built is not None:
        return None, built

    return (
        Party(
            oib=values["oib"],
            registration_name=values["registration_name"],
            postal_address=values["postal_address"],
            party_tax_scheme=values["party_tax_scheme"],
            contact=contact,
            party_identification=party_identification,
            seller_contact=seller_contact,
        ),
        None,
    )


def _validate_postal_address(value: Any) -> Outcome:
    if not isinstance(value, Mapping):
        return None, MSG_MAP
    errors = ErrorCollector()
    errors.require(value, REQUIRED_ADDRESS_FIELDS)

    def country(item: Any) -> Outcome:
        if isinstance(item, str) and _COUNTRY_RE.match(item):
            return item, None
        return None, MSG_COUNTRY

    values = _check_fields(
        value,
        errors,
        (
            ("street_name", _non_empty),
            ("city_name", _non_empty),
            ("postal_zone", _non_empty),
            ("country_code", country),
        ),
    )
    built = errors.build()
    if built is not None:
        return None, built
    return PostalAddress(**values), None


def _validate_party_tax_scheme(value: Any) -> Outcome:
    if not isinstance(value, Mapping):
        return None, MSG_MAP
    errors = ErrorCollector()
    errors.require(value, REQUIRED_TAX_SCHEME_FIELDS)

    def company_id(item: Any) -> Outcome:
        if _is_non_empty_string(item):
            return item, None
        return None, "must be a non-empty string (e.g., HR12345678901)"

    def scheme(item: Any) -> Outcome:
        return _validate_registry_value(item, TAX_SCHEME, "must be a valid tax scheme ID string")

    values = _check_fields(value, errors, (("company_id", company_id), ("tax_scheme_id", scheme)))
    built = errors.build()
    if built is not None:
        return None, built
    return PartyTaxScheme(**values), None


def _validate_party_identification(value: Any) -> Outcome:
    if not isinstance(value, Mapping):
        return None, "must be a map with an id field"
    identifier = value.get("id")
    if _is_non_empty_string(identifier):
        return identifier, None
    return None, ErrorCollector.single("id", MSG_NON_EMPTY)


def _validate_contact(value: Any) -> Outcome:
    if not isinstance(value, Mapping):
        return None, MSG_MAP
    errors = ErrorCollector()
    errors.add("name", _validate_optional_string(value.get("name")))
    email = value.get("electronic_mail")
    if email is not None:
        if not isinstance(email, str):
            errors.add("electronic_mail", "must be a string")
        elif not _EMAIL_RE.match(email):
            errors.add("electronic_mail", MSG_EMAIL)
    errors.add("telephone", _validate_optional_string(value.get("telephone")))
    built = errors.build()
    if built is not None:
        return None, built
    return (
        Contact(
            name=value.get("name"),
            electronic_mail=email,
            telephone=value.get("telephone"),
        ),
        None,
    )


def _validate_seller_contact(value: Any) -> Outcome:
    if not isinstance(value, Mapping):
        return None, "must be a map with id (operator OIB) and name (operator name)"
    errors = ErrorCollector()
    errors.require(value, REQUIRED_SELLER_CONTACT_FIELDS)
    if "id" not in errors:
        errors.add("id", _validate_oib(value["id"]))
    if "name" not in errors and not _is_non_empty_string(value["name"]):
        errors.add("name", MSG_NON_EMPTY)
    built = errors.build()
    if built is not None:
        return None, built
    return SellerContact(id=value["id"], name=value["name"]), None


# -- taxes -------------------------------------------------------------------


def _validate_tax_category(
    value: Any, ctx: _Context, path: str, *, allow_name: bool = False
) -> Outcome:
    if not isinstance(value, Mapping):
        return None, MSG_MAP
    errors = ErrorCollector()
    errors.require(value, REQUIRED_TAX_CATEGORY_FIELDS)

    def category(item: Any) -> Outcome:
        return _validate_registry_value(item, TAX_CATEGORY, "must be a valid tax category ID string")

    def scheme(item: Any) -> Outcome:
        return _validate_registry_value(item, TAX_SCHEME, "must be a valid tax scheme ID string")

    values = _check_fields(
        value,
        errors,
        (("id", category), ("percent", _validate_percent), ("tax_scheme_id", scheme)),
    )

    name = value.get("name") if allow_name else None
    if allow_name:
        errors.add("name", _validate_optional_string(name))

    reason = value.get("tax_exemption_reason")
    errors.add("tax_exemption_reason", _validate_optional_string(reason))

    reason_code = value.get("tax_exemption_reason_code")
    reason_code_symbol = None
    if reason_code is not None:
        reason_code_symbol, error = _validate_registry_value(
            reason_code, TAX_EXEMPTION_REASON_CODE, "must be a valid tax exemption reason code"
        )
        errors.add("tax_exemption_reason_code", error)

    symbol = values.get("id")
    if symbol is not None and is_exempt_category(symbol) and not reason and reason_code is None:
        message = (
            "should carry tax_exemption_reason for tax category "
            f"{TAX_CATEGORY.code(symbol)}"
        )
        if ctx.settings.strict_exemption_reason:
            errors.add("tax_exemption_reason", "is required for exempt tax categories")
        else:
            ctx.warn(path, message)

    built = errors.build()
    if built is not None:
        return None, built
    return (
        TaxCategory(
            id=values["id"],
            percent=values["percent"],
            tax_scheme_id=values["tax_scheme_id"],
            name=name or None,
            tax_exemption_reason=reason or None,
            tax_exemption_reason_code=reason_code_symbol,
        ),
        None,
    )


def _validate_tax_total(value: Any, ctx: _Context) -> Outcome:
    if not isinstance(value, Mapping):
        return None, MSG_MAP
    errors = ErrorCollector()
    errors.require(value, REQUIRED_TAX_TOTAL_FIELDS)
    values = _check_fields(value, errors, (("tax_amount", _validate_amount),))

    subtotals: tuple[TaxSubtotal, ...] = ()
    if "tax_subtotals" not in errors:
        raw = value["tax_subtotals"]
        if not isinstance(raw, (list, tuple)) or not raw:
            errors.add("tax_subtotals", "must be a non-empty list")
        else:
            subtotals, error = _validate_indexed(
                raw,
                "subtotal",
                lambda item, index: _validate_tax_subtotal(item, ctx, f"tax_total.subtotal_{index}"),
            )
            errors.add("tax_subtotals", error)

    built = errors.build()
    if built is not None:
        return None, built
    return TaxTotal(tax_amount=values["tax_amount"], tax_subtotals=subtotals), None


def _validate_tax_subtotal(value: Any, ctx: _Context, path: str) -> Outcome:
    if not isinstance(value, Mapping):
        return None, MSG_MAP
    errors = ErrorCollector()
    errors.require(value, REQUIRED_TAX_SUBTOTAL_FIELDS)

    def category(item: Any) -> Outcome:
        return _validate_tax_category(item, ctx, f"{path}.tax_category")

    values = _check_fields(
        value,
        errors,
        (
            ("taxable_amount", _validate_amount),
            ("tax_amount", _validate_amount),
            ("tax_category", category),
        ),
    )
    built = errors.build()
    if built is not None:
        return None, built
    return TaxSubtotal(**values), None


def _validate_indexed(
    items: Sequence[Any], prefix: str, validator: Callable[[Any, int], Outcome]
) -> tuple[tuple[Any, ...], IndexedErrors | None]:
    models: list[Any] = []
    failures: dict[int, ErrorNode] = {}
    for index, item in enumerate(items, start=1):
        model, error = validator(item, index)
        if error is not None:
            failures[index] = ErrorLeaf(error) if isinstance(error, str) else error
        else:
            models.append(model)
    if failures:
        return (), IndexedErrors(prefix, failures)
    return tuple(models), None


# -- totals and payment ------------------------------------------------------


def _validate_monetary_total(value: Any) -> Outcome:
    if not isinstance(value, Mapping):
        return None, MSG_MAP
    errors = ErrorCollector()
    errors.require(value, REQUIRED_MONETARY_FIELDS)
    values = _check_fields(
        value, errors, [(name, _validate_amount) for name in REQUIRED_MONETARY_FIELDS]
    )
    optional = [
        (name, _validate_amount) for name in OPTIONAL_MONETARY_FIELDS if value.get(name) is not None
    ]
    values.update(_check_fields(value, errors, optional))
    built = errors.build()
    if built is not None:
        return None, built
    return MonetaryTotal(**values), None


def _validate_payment_method(value: Any) -> Outcome:
    if not isinstance(value, Mapping):
        return None, MSG_MAP
    errors = ErrorCollector()
    errors.require(value, REQUIRED_PAYMENT_MEANS_FIELDS)

    def means_code(item: Any) -> Outcome:
        if not isinstance(item, str):
            return None, "must be a numeric code string"
        if not _PAYMENT_MEANS_RE.match(item):
            return None, "must be a numeric code (1-3 digits)"
        return item, None

    def iban(item: Any) -> Outcome:
        if _is_non_empty_string(item):
            return item, None
        return None, "must be a non-empty string (IBAN)"

    values = _check_fields(
        value, errors, (("payment_means_code", means_code), ("payee_financial_account_id", iban))
    )
    errors.add("instruction_note", _validate_optional_string(value.get("instruction_note")))
    errors.add("payment_id", _validate_optional_string(value.get("payment_id")))
    built = errors.build()
    if built is not None:
        return None, built
    return (
        PaymentMethod(
            payment_means_code=values["payment_means_code"],
            payee_financial_account_id=values["payee_financial_account_id"],
            instruction_note=value.get("instruction_note"),
            payment_id=value.get("payment_id"),
        ),
        None,
    )


# -- invoice lines -----------------------------------------------------------


def _validate_invoice_lines(value: Any, ctx: _Context) -> Outcome:
    if not isinstance(value, (list, tuple)) or not value:
        return None, "must be a non-empty list"
    lines, error = _validate_indexed(
        value, "line", lambda item, index: _validate_invoice_line(item, ctx, index)
    )
    return lines, error


def _validate_line_id(value: Any) -> Outcome:
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value), None
    if _is_non_empty_string(value):
        return value, None
    return None, "must be a non-empty string or integer"


def _validate_unit_code(value: Any) -> Outcome:
    symbol = UNIT_CODE.symbol(value)
    if symbol is not None:
        return symbol, None
    if not isinstance(value, str):
        return None, f"must be {UNIT_CODE.default_code()}"
    return None, f"must be one of: {format_choices(UNIT_CODE)}"


def _validate_invoice_line(value: Any, ctx: _Context, index: int) -> Outcome:
    if not isinstance(value, Mapping):
        return None, MSG_MAP
    errors = ErrorCollector()
    errors.require(value, REQUIRED_LINE_FIELDS)
    path = f"invoice_lines.line_{index}"

    values = _check_fields(
        value,
        errors,
        (
            ("id", _validate_line_id),
            ("quantity", _validate_positive),
            ("unit_code", _validate_unit_code),
            ("line_extension_amount", _validate_amount),
            ("item", lambda item: _validate_item(item, ctx, path)),
            ("price", _validate_price),
        ),
    )

    allowance_charges: tuple[Any, ...] = ()
    if value.get("allowance_charges") is not None:
        result = validate_line_level_list(value["allowance_charges"], settings=ctx.settings)
        ctx.warnings.extend(f"{path}: {warning}" for warning in result.warnings)
        if result.ok:
            allowance_charges = result.value  # type: ignore[assignment]
        else:
            errors.add("allowance_charges", _messages_to_node(result.error))

    built = errors.build()
    if built is not None:
        return None, built
    return InvoiceLine(allowance_charges=allowance_charges, **values), None


def _validate_item(value: Any, ctx: _Context, path: str) -> Outcome:
    if not isinstance(value, Mapping):
        return None, MSG_MAP
    errors = ErrorCollector()
    errors.require(value, REQUIRED_ITEM_FIELDS)

    def category(item: Any) -> Outcome:
        return _validate_tax_category(
            item, ctx, f"{path}.item.classified_tax_category", allow_name=True
        )

    values = _check_fields(
        value,
        errors,
        (
            ("name", _non_empty),
            ("classified_tax_category", category),
            ("commodity_classification", _validate_commodity_classification),
        ),
    )
    built = errors.build()
    if built is not None:
        return None, built
    return Item(**values), None


def _validate_commodity_classification(value: Any) -> Outcome:
    if not isinstance(value, Mapping):
        return None, "must be a map with item_classification_code and list_id"
    errors = ErrorCollector()
    code = value.get("item_classification_code")
    if not _is_non_empty_string(code):
        errors.add("item_classification_code", MSG_NON_EMPTY)
    if value.get("list_id") != CROATIAN_LIST_ID:
        errors.add("list_id", MSG_LIST_ID)
    built = errors.build()
    if built is not None:
        return None, built
    return CommodityClassification(item_classification_code=code), None


def _validate_price(value: Any) -> Outcome:
    if not isinstance(value, Mapping):
        return None, MSG_MAP
    errors = ErrorCollector()
    errors.require(value, REQUIRED_PRICE_FIELDS)
    values = _check_fields(value, errors, (("price_amount", _validate_amount),))

    base_quantity = None
    if value.get("base_quantity") is not None:
        base_quantity, error = _validate_positive(value["base_quantity"])
        errors.add("base_quantity", error)

    unit_code = None
    if value.get("base_quantity_unit_code") is not None:
        unit_code, error = _validate_unit_code(value["base_quantity_unit_code"])
        errors.add("base_quantity_unit_code", error)

    built = errors.build()
    if built is not None:
        return None, built
    if base_quantity is None:
        # A unit without a quantity has no place in the document.
        unit_code = None
    return (
        Price(
            price_amount=values["price_amount"],
            base_quantity=base_quantity,
            base_quantity_unit_code=unit_code,
        ),
        None,
    )


# -- optional sections -------------------------------------------------------


def _messages_to_node(messages: Sequence[str]) -> ErrorNode:
    """Group ``allowance_charge[n]: message`` strings per entry."""

    grouped: dict[str, list[str]] = {}
    for message in messages:
        key, _, text = message.partition(": ")
        if not text:
            key, text = "allowance_charges", message
        grouped.setdefault(key, []).append(text)
    return ErrorMap({key: ErrorLeaf("; ".join(texts)) for key, texts in grouped.items()})


def _validate_document_allowance_charges(value: Any, ctx: _Context) -> Outcome:
    result = validate_document_level_list(value, settings=ctx.settings)
    ctx.warnings.extend(f"allowance_charges: {warning}" for warning in result.warnings)
    if result.ok:
        return result.value, None
    return None, _messages_to_node(result.error)


def _validate_notes(value: Any) -> Outcome:
    if not isinstance(value, (list, tuple)):
        return None, "must be a list of strings"
    if all(_is_non_empty_string(note) for note in value):
        return tuple(value), None
    return None, "must be a list of non-empty strings"


def _validate_attachments(value: Any) -> tuple[tuple[Attachment, ...], ErrorMap | None]:
    if not isinstance(value, (list, tuple)):
        return (), ErrorCollector.single("attachments", "must be a list of attachment maps")

    errors = ErrorCollector()
    attachments: list[Attachment] = []
    for index, item in enumerate(value, start=1):
        prefix = f"attachments[{index}]"
        if not isinstance(item, Mapping):
            errors.add(prefix, MSG_MAP)
            continue
        missing = [name for name in REQUIRED_ATTACHMENT_FIELDS if item.get(name) is None]
        if missing:
            for name in missing:
                errors.add(f"{prefix}.{name}", "is required")
            continue

        failed = False
        for name in ("id", "filename"):
            if not _is_non_empty_string(item[name]):
                errors.add(f"{prefix}.{name}", MSG_NON_EMPTY)
                failed = True

        mime = item["mime_code"]
        if not isinstance(mime, str):
            errors.add(f"{prefix}.mime_code", "must be a string")
            failed = True
        elif MIME_CODE.code(mime) is None:
            errors.add(f"{prefix}.mime_code", MSG_MIME)
            failed = True
        else:
            mime = MIME_CODE.code(mime)

        content = item["content"]
        if not _is_non_empty_string(content):
            errors.add(f"{prefix}.content", "must be a non-empty base64-encoded string")
            failed = True
        elif not is_valid_base64(content):
            errors.add(f"{prefix}.content", MSG_BASE64)
            failed = True

        if not failed:
            attachments.append(
                Attachment(
                    id=item["id"], filename=item["filename"], mime_code=mime, content=content
                )
            )

    return tuple(attachments), errors.build()


def _unwrap(error: ErrorMap, name: str) -> ErrorNode:
    """Avoid repeating the section name when the error is about the section itself."""

    if list(error.entries) == [name]:
        return error.entries[name]
    return error


def _validate_billing_reference(value: Any) -> Outcome:
    result = billing_reference_module.new(value)
    if result.ok:
        return result.value, None
    return None, _unwrap(result.error, "billing_reference")


def _validate_order_reference(value: Any) -> Outcome:
    result = order_reference_module.new(value)
    if result.ok:
        return result.value, None
    return None, _unwrap(result.error, "order_reference")


def _validate_invoice_period(value: Any) -> Outcome:
    if not isinstance(value, Mapping):
        return None, MSG_MAP
    errors = ErrorCollector()
    start = end = None
    if value.get("start_date") is None and value.get("end_date") is None:
        return None, "must contain start_date or end_date"
    if value.get("start_date") is not None:
        start = parse_iso_date(value["start_date"])
        if start is None:
            errors.add("start_date", MSG_DATE)
    if value.get("end_date") is not None:
        end = parse_iso_date(value["end_date"])
        if end is None:
            errors.add("end_date", MSG_DATE)
    if start and end and end < start:
        errors.add("end_date", "must not be before start_date")
    built = errors.build()
    if built is not None:
        return None, built
    return InvoicePeriod(start_date=start, end_date=end), None


def _validate_cash_accounting(value: Any) -> Outcome:
    if isinstance(value, bool):
        return value, None
    if _is_non_empty_string(value):
        return value, None
    return None, "must be a boolean or a non-empty string"


__all__ = [
    "REQUIRED_FIELDS",
    "INPUT_SHAPE",
    "normalize",
    "apply_defaults",
    "split_issue_datetime",
    "new",
    "validate",
]
