"""Preceding invoice reference (BG-3) for credit notes and corrections."""

from __future__ import annotations

from typing import Any, Mapping

from .errors import ErrorCollector, Result
from .models import BillingReference
from .registries import BUSINESS_PROCESS, INVOICE_TYPE_CODE
from .utils import normalize_keys, parse_iso_date

#: Invoice types that must point at the document they correct or credit.
REFERENCE_INVOICE_TYPES = frozenset({"credit_note", "corrected_invoice", "debit_note"})

#: Business processes dealing with credit notes and corrective invoices.
REFERENCE_BUSINESS_PROCESSES = frozenset({"p9", "p10"})


def new(data: Any) -> Result[BillingReference]:
    """Validate ``data`` and return a :class:`BillingReference`.

    Accepts either ``{"invoice_document_reference": {"id": ..., "issue_date": ...}}``
    or the flat form ``{"id": ..., "issue_date": ...}``.
    """

    if not isinstance(data, Mapping):
        return Result.failure(ErrorCollector.single("billing_reference", "must be a map"))

    payload = normalize_keys(data)
    reference = payload.get("invoice_document_reference")
    if reference is None and "id" in payload:
        reference = payload

    errors = ErrorCollector()
    if reference is None or (isinstance(reference, Mapping) and not reference):
        errors.add("invoice_document_reference", "is required")
        return Result.failure(errors.build())
    if not isinstance(reference, Mapping):
        errors.add("invoice_document_reference", "must be a map")
        return Result.failure(errors.build())

    reference = normalize_keys(reference)
    reference_id = reference.get("id")
    if reference_id is None or reference_id == "":
        errors.add("invoice_document_reference_id", "is required")
    elif not isinstance(reference_id, str):
        errors.add("invoice_document_reference_id", "must be a non-empty string")

    raw_date = reference.get("issue_date")
    issue_date = None
    if raw_date is not None:
        issue_date = parse_iso_date(raw_date)
        if issue_date is None:
            errors.add(
                "invoice_document_reference_issue_date",
                "must be a valid ISO 8601 date (YYYY-MM-DD)",
            )

    if errors:
        return Result.failure(errors.build())
    return Result.success(
        BillingReference(invoice_document_reference_id=reference_id, issue_date=issue_date)
    )


def validate(data: Any) -> Result[None]:
    result = new(data)
    if result.ok:
        return Result.success(None)
    return Result.failure(result.error)


def to_dict(reference: BillingReference) -> dict[str, Any]:
    return reference.to_params()


def required_for_invoice_type(value: Any) -> bool:
    """``True`` when documents of this type need a billing reference."""

    return INVOICE_TYPE_CODE.symbol(value) in REFERENCE_INVOICE_TYPES


def required_for_business_process(value: Any) -> bool:
    return BUSINESS_PROCESS.symbol(value) in REFERENCE_BUSINESS_PROCESSES


__all__ = [
    "REFERENCE_INVOICE_TYPES",
    "REFERENCE_BUSINESS_PROCESSES",
    "new",
    "validate",
    "to_dict",
    "required_for_invoice_type",
    "required_for_business_process",
]
