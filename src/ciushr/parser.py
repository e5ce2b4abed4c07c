"""Reconstruct invoice parameters from UBL 2.1 XML documents.

Navigation matches elements by local name only, so documents using other
prefixes (or none at all) parse the same way.  The result has the shape
accepted by :func:`ciushr.params.new`; wire codes are mapped back to symbols
and unknown codes are passed through unchanged.
"""

from __future__ import annotations

import logging
import math
from typing import Any

from lxml import etree

from .builder import ISSUE_TIME_NOTE_PREFIX, OPERATOR_ID_NOTE_PREFIX, OPERATOR_NOTE_PREFIX
from .errors import Result
from .models import DEFAULT_ENDPOINT_SCHEME, VAT_CASH_ACCOUNTING_TEXT
from .registries import (
    ALLOWANCE_REASON_CODE,
    BUSINESS_PROCESS,
    CHARGE_REASON_CODE,
    INVOICE_TYPE_CODE,
    TAX_CATEGORY,
    TAX_EXEMPTION_REASON_CODE,
    TAX_SCHEME,
    UNIT_CODE,
    Registry,
)
from .utils import (
    child_attribute,
    child_text,
    compact,
    find_child,
    iter_children,
    number_from_text,
)

LOGGER = logging.getLogger("ciushr.parser")

SYNTHETIC_NOTE_PREFIXES = (OPERATOR_NOTE_PREFIX, OPERATOR_ID_NOTE_PREFIX, ISSUE_TIME_NOTE_PREFIX)


def _xml_parser() -> etree.XMLParser:
    # lxml parsers must not be shared between threads.
    return etree.XMLParser(resolve_entities=False, no_network=True, remove_blank_text=True)


def load_document(xml: Any) -> Result[etree._Element]:
    """Parse ``xml`` (text or bytes) and return the root element."""

    if isinstance(xml, str):
        payload = xml.encode("utf-8")
    elif isinstance(xml, bytes):
        payload = xml
    else:
        return Result.failure("Invalid input: expected XML string")

    try:
        root = etree.fromstring(payload, _xml_parser())
    except etree.XMLSyntaxError as exc:
        LOGGER.debug("XML parsing failed: %s", exc)
        return Result.failure(f"XML parsing failed: {exc}")
    return Result.success(root)


def parse(xml: Any) -> Result[dict[str, Any]]:
    """Parse ``xml`` (text or bytes) into an invoice parameter dictionary."""

    loaded = load_document(xml)
    if not loaded.ok:
        return Result.failure(loaded.error)
    root = loaded.value
    LOGGER.debug("Parsing invoice document <%s>", etree.QName(root).localname)
    return Result.success(parse_tree(root))


def parse_tree(root: etree._Element) -> dict[str, Any]:
    """Extract invoice parameters from an already parsed ``Invoice`` element."""

    notes = [note.text.strip() for note in iter_children(root, "Note") if note.text and note.text.strip()]
    supplier_element = find_child(root, "AccountingSupplierParty")

    params: dict[str, Any] = {
        "id": child_text(root, "ID"),
        "issue_datetime": _issue_datetime(root),
        "due_date": child_text(root, "DueDate"),
        "currency_code": child_text(root, "DocumentCurrencyCode"),
        "business_process": _symbol(BUSINESS_PROCESS, child_text(root, "ProfileID")),
        "invoice_type_code": _symbol(INVOICE_TYPE_CODE, child_text(root, "InvoiceTypeCode")),
        "operator_name": _operator_name(supplier_element, notes),
        "supplier": _party(supplier_element, with_seller_contact=True),
        "customer": _party(find_child(root, "AccountingCustomerParty")),
        "payment_method": _payment_method(find_child(root, "PaymentMeans")),
        "tax_total": _tax_total(find_child(root, "TaxTotal")),
        "legal_monetary_total": _monetary_total(find_child(root, "LegalMonetaryTotal")),
        "invoice_lines": [_invoice_line(line) for line in iter_children(root, "InvoiceLine")],
        "notes": [note for note in notes if not note.startswith(SYNTHETIC_NOTE_PREFIXES)],
        "attachments": _attachments(root),
        "allowance_charges": [
            _allowance_charge(element) for element in iter_children(root, "AllowanceCharge")
        ],
        "billing_reference": _billing_reference(root),
        "order_reference": _order_reference(root),
        "invoice_period": _invoice_period(root),
        "delivery_date": child_text(root, "Delivery", "ActualDeliveryDate"),
        "vat_cash_accounting": _cash_accounting(root),
    }
    return compact(params)


def _symbol(registry: Registry, code: str | None) -> str | None:
    if code is None:
        return None
    return registry.symbol_or_passthrough(code)


def _number(text: str | None) -> int | float | str | None:
    if text is None:
        return None
    return number_from_text(text)


def _float(text: str | None) -> float | str | None:
    if text is None:
        return None
    try:
        number = float(text)
    except ValueError:
        return text
    if not math.isfinite(number):
        return text
    # folds -0.0 into 0.0
    return number + 0.0


def _issue_datetime(root: etree._Element) -> str | None:
    issue_date = child_text(root, "IssueDate")
    if issue_date is None:
        return None
    issue_time = child_text(root, "IssueTime")
    if issue_time is None:
        return issue_date
    return f"{issue_date}T{issue_time}"


def _operator_name(supplier: etree._Element | None, notes: list[str]) -> str | None:
    name = child_text(supplier, "SellerContact", "Name")
    if name is not None:
        return name
    for note in notes:
        if note.startswith(OPERATOR_NOTE_PREFIX):
            return note[len(OPERATOR_NOTE_PREFIX) :].strip() or None
    return None


def _party(wrapper: etree._Element | None, *, with_seller_contact: bool = False) -> dict[str, Any] | None:
    party = find_child(wrapper, "Party")
    if party is None:
        return None

    oib = child_text(party, "EndpointID")
    identification = child_text(party, "PartyIdentification", "ID")
    if identification is not None and identification == f"{DEFAULT_ENDPOINT_SCHEME}:{oib}":
        identification = None

    address = find_child(party, "PostalAddress")
    tax_scheme = find_child(party, "PartyTaxScheme")
    contact = find_child(party, "Contact")

    result = {
        "oib": oib,
        "registration_name": child_text(party, "PartyLegalEntity", "RegistrationName"),
        "postal_address": compact(
            {
                "street_name": child_text(address, "StreetName"),
                "city_name": child_text(address, "CityName"),
                "postal_zone": child_text(address, "PostalZone"),
                "country_code": child_text(address, "Country", "IdentificationCode"),
            }
        ),
        "party_tax_scheme": compact(
            {
                "company_id": child_text(tax_scheme, "CompanyID"),
                "tax_scheme_id": _symbol(TAX_SCHEME, child_text(tax_scheme, "TaxScheme", "ID")),
            }
        ),
        "contact": compact(
            {
                "name": child_text(contact, "Name"),
                "electronic_mail": child_text(contact, "ElectronicMail"),
                "telephone": child_text(contact, "Telephone"),
            }
        ),
        "party_identification": {"id": identification} if identification else None,
    }

    if with_seller_contact:
        seller = find_child(wrapper, "SellerContact")
        result["seller_contact"] = compact(
            {"id": child_text(seller, "ID"), "name": child_text(seller, "Name")}
        )

    return compact(result)


def _payment_method(element: etree._Element | None) -> dict[str, Any] | None:
    if element is None:
        return None
    return compact(
        {
            "payment_means_code": child_text(element, "PaymentMeansCode"),
            "instruction_note": child_text(element, "InstructionNote"),
            "payment_id": child_text(element, "PaymentID"),
            "payee_financial_account_id": child_text(element, "PayeeFinancialAccount", "ID"),
        }
    )


def _tax_category(element: etree._Element | None, *, with_name: bool = False) -> dict[str, Any] | None:
    if element is None:
        return None
    category = {
        "id": _symbol(TAX_CATEGORY, child_text(element, "ID")),
        "name": child_text(element, "Name") if with_name else None,
        "percent": _number(child_text(element, "Percent")),
        "tax_scheme_id": _symbol(TAX_SCHEME, child_text(element, "TaxScheme", "ID")),
        "tax_exemption_reason": child_text(element, "TaxExemptionReason"),
        "tax_exemption_reason_code": _symbol(
            TAX_EXEMPTION_REASON_CODE, child_text(element, "TaxExemptionReasonCode")
        ),
    }
    return compact(category)


def _tax_total(element: etree._Element | None) -> dict[str, Any] | None:
    if element is None:
        return None
    subtotals = [
        compact(
            {
                "taxable_amount": child_text(subtotal, "TaxableAmount"),
                "tax_amount": child_text(subtotal, "TaxAmount"),
                "tax_category": _tax_category(find_child(subtotal, "TaxCategory")),
            }
        )
        for subtotal in iter_children(element, "TaxSubtotal")
    ]
    return compact({"tax_amount": child_text(element, "TaxAmount"), "tax_subtotals": subtotals})


def _monetary_total(element: etree._Element | None) -> dict[str, Any] | None:
    if element is None:
        return None
    return compact(
        {
            "line_extension_amount": child_text(element, "LineExtensionAmount"),
            "tax_exclusive_amount": child_text(element, "TaxExclusiveAmount"),
            "tax_inclusive_amount": child_text(element, "TaxInclusiveAmount"),
            "allowance_total_amount": child_text(element, "AllowanceTotalAmount"),
            "charge_total_amount": child_text(element, "ChargeTotalAmount"),
            "prepaid_amount": child_text(element, "PrepaidAmount"),
            "payable_amount": child_text(element, "PayableAmount"),
        }
    )


def _allowance_charge(element: etree._Element) -> dict[str, Any]:
    indicator_text = (child_text(element, "ChargeIndicator") or "").lower()
    indicator = {"true": True, "false": False}.get(indicator_text)
    registry = CHARGE_REASON_CODE if indicator else ALLOWANCE_REASON_CODE
    return compact(
        {
            "charge_indicator": indicator,
            "allowance_charge_reason_code": _symbol(
                registry, child_text(element, "AllowanceChargeReasonCode")
            ),
            "allowance_charge_reason": child_text(element, "AllowanceChargeReason"),
            "multiplier_factor_numeric": _number(child_text(element, "MultiplierFactorNumeric")),
            "amount": child_text(element, "Amount"),
            "base_amount": child_text(element, "BaseAmount"),
            "tax_category": _tax_category(find_child(element, "TaxCategory")),
        }
    )


def _invoice_line(element: etree._Element) -> dict[str, Any]:
    item = find_child(element, "Item")
    price = find_child(element, "Price")

    item_params = None
    if item is not None:
        item_params = compact(
            {
                "name": child_text(item, "Name"),
                "commodity_classification": compact(
                    {
                        "item_classification_code": child_text(
                            item, "CommodityClassification", "ItemClassificationCode"
                        ),
                        "list_id": child_attribute(
                            item, "listID", "CommodityClassification", "ItemClassificationCode"
                        ),
                    }
                ),
                "classified_tax_category": _tax_category(
                    find_child(item, "ClassifiedTaxCategory"), with_name=True
                ),
            }
        )

    price_params = None
    if price is not None:
        price_params = compact(
            {
                "price_amount": child_text(price, "PriceAmount"),
                "base_quantity": _float(child_text(price, "BaseQuantity")),
                "base_quantity_unit_code": _symbol(
                    UNIT_CODE, child_attribute(price, "unitCode", "BaseQuantity")
                ),
            }
        )

    return compact(
        {
            "id": child_text(element, "ID"),
            "quantity": _float(child_text(element, "InvoicedQuantity")),
            "unit_code": _symbol(UNIT_CODE, child_attribute(element, "unitCode", "InvoicedQuantity")),
            "line_extension_amount": child_text(element, "LineExtensionAmount"),
            "item": item_params,
            "price": price_params,
            "allowance_charges": [
                _allowance_charge(entry) for entry in iter_children(element, "AllowanceCharge")
            ],
        }
    )


def _attachments(root: etree._Element) -> list[dict[str, Any]]:
    attachments = []
    for reference in iter_children(root, "AdditionalDocumentReference"):
        binary = find_child(reference, "Attachment", "EmbeddedDocumentBinaryObject")
        if binary is None:
            continue
        attachments.append(
            compact(
                {
                    "id": child_text(reference, "ID"),
                    "filename": binary.get("filename"),
                    "mime_code": binary.get("mimeCode"),
                    "content": (binary.text or "").strip(),
                }
            )
        )
    return attachments


def _billing_reference(root: etree._Element) -> dict[str, Any] | None:
    reference = find_child(root, "BillingReference", "InvoiceDocumentReference")
    if reference is None:
        return None
    document = compact(
        {"id": child_text(reference, "ID"), "issue_date": child_text(reference, "IssueDate")}
    )
    if not document:
        return None
    return {"invoice_document_reference": document}


def _order_reference(root: etree._Element) -> dict[str, Any] | None:
    reference = find_child(root, "OrderReference")
    if reference is None:
        return None
    return compact(
        {
            "buyer_reference": child_text(reference, "ID"),
            "sales_order_id": child_text(reference, "SalesOrderID"),
        }
    )


def _invoice_period(root: etree._Element) -> dict[str, Any] | None:
    period = find_child(root, "InvoicePeriod")
    if period is None:
        return None
    return compact(
        {"start_date": child_text(period, "StartDate"), "end_date": child_text(period, "EndDate")}
    )


def _cash_accounting(root: etree._Element) -> bool | str | None:
    markers = root.xpath(
        "./*[local-name()='UBLExtensions']//*[local-name()='HRObracunPDVPoNaplati']"
    )
    if not markers:
        return None
    text = (markers[0].text or "").strip()
    if not text:
        return None
    if text == VAT_CASH_ACCOUNTING_TEXT:
        return True
    return text


__all__ = ["SYNTHETIC_NOTE_PREFIXES", "load_document", "parse", "parse_tree"]
