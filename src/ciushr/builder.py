"""Build UBL 2.1 invoice documents (Croatian CIUS-2025) from validated models.

The builder only accepts :class:`~ciushr.models.InvoiceModel` instances
produced by :func:`ciushr.params.new`; it performs no validation of its own.
Elements are appended in schema order and optional elements are omitted
entirely when their value is absent.
"""

from __future__ import annotations

import logging
from typing import Iterable

from lxml import etree

from .models import (
    DEFAULT_ENDPOINT_SCHEME,
    AllowanceCharge,
    Attachment,
    InvoiceLine,
    InvoiceModel,
    MonetaryTotal,
    Party,
    PaymentMethod,
    TaxCategory,
    TaxTotal,
)
from .registries import (
    ALLOWANCE_REASON_CODE,
    BUSINESS_PROCESS,
    CHARGE_REASON_CODE,
    INVOICE_TYPE_CODE,
    TAX_CATEGORY,
    TAX_EXEMPTION_REASON_CODE,
    TAX_SCHEME,
    UNIT_CODE,
)
from .utils import (
    NS_CAC,
    NS_CBC,
    NS_EXT,
    NS_HREXTAC,
    NS_INVOICE,
    NS_SAC,
    NS_SIG,
    NS_XSI,
    NSMAP,
    format_croatian_datetime,
    format_money,
    format_plain_decimal,
    format_price,
    format_quantity,
)

LOGGER = logging.getLogger("ciushr.builder")

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>\n'

CUSTOMIZATION_ID = (
    "urn:cen.eu:en16931:2017#compliant#urn:mfin.gov.hr:cius-2025:1.0"
    "#conformant#urn:mfin.gov.hr:ext-2025:1.0"
)
SCHEMA_LOCATION = (
    "urn:oasis:names:specification:ubl:schema:xsd:Invoice-2 "
    "../xsd/ubl/maindoc/UBL-Invoice-2.1.xsd "
)

OPERATOR_NOTE_PREFIX = "Operater: "
ISSUE_TIME_NOTE_PREFIX = "Vrijeme izdavanja: "
OPERATOR_ID_NOTE_PREFIX = "OIB operatera: "
COMMODITY_LIST_ID = "CG"


def _tag(namespace: str, name: str) -> str:
    return f"{{{namespace}}}{name}"


def _cac(parent: etree._Element, name: str) -> etree._Element:
    return etree.SubElement(parent, _tag(NS_CAC, name))


def _cbc(
    parent: etree._Element, name: str, text: str | None, **attributes: str
) -> etree._Element | None:
    """Append ``cbc:<name>`` unless ``text`` is empty."""

    if text is None or text == "":
        return None
    element = etree.SubElement(parent, _tag(NS_CBC, name), **attributes)
    element.text = text
    return element


def build_tree(model: InvoiceModel) -> etree._Element:
    """Return the ``Invoice`` root element for ``model``."""

    LOGGER.debug("Building invoice %s (%d lines)", model.id, len(model.invoice_lines))

    root = etree.Element(_tag(NS_INVOICE, "Invoice"), nsmap=NSMAP)
    root.set(_tag(NS_XSI, "schemaLocation"), SCHEMA_LOCATION)

    _add_extensions(root, model)
    _cbc(root, "CustomizationID", CUSTOMIZATION_ID)
    _cbc(root, "ProfileID", BUSINESS_PROCESS.code(model.business_process))
    _cbc(root, "ID", model.id)
    _cbc(root, "IssueDate", model.issue_date.isoformat())
    _cbc(root, "IssueTime", model.issue_time.isoformat(timespec="seconds"))
    if model.due_date is not None:
        _cbc(root, "DueDate", model.due_date.isoformat())
    _cbc(root, "InvoiceTypeCode", INVOICE_TYPE_CODE.code(model.invoice_type_code))
    for note in operator_notes(model):
        _cbc(root, "Note", note)
    for note in model.notes:
        _cbc(root, "Note", note)
    _cbc(root, "DocumentCurrencyCode", model.currency_code)

    _add_invoice_period(root, model)
    _add_order_reference(root, model)
    _add_billing_reference(root, model)
    for attachment in model.attachments:
        _add_attachment(root, attachment)

    supplier = _cac(root, "AccountingSupplierParty")
    _add_party(supplier, model.supplier)
    if model.supplier.seller_contact is not None:
        seller = _cac(supplier, "SellerContact")
        _cbc(seller, "ID", model.supplier.seller_contact.id)
        _cbc(seller, "Name", model.supplier.seller_contact.name)

    customer = _cac(root, "AccountingCustomerParty")
    _add_party(customer, model.customer)

    if model.delivery_date is not None:
        delivery = _cac(root, "Delivery")
        _cbc(delivery, "ActualDeliveryDate", model.delivery_date.isoformat())

    if model.payment_method is not None:
        _add_payment_means(root, model.payment_method)

    for entry in model.allowance_charges:
        _add_allowance_charge(root, entry, model.currency_code)

    _add_tax_total(root, model.tax_total, model.currency_code)
    _add_monetary_total(root, model.legal_monetary_total, model.currency_code)
    for line in model.invoice_lines:
        _add_invoice_line(root, line, model.currency_code)

    return root


def build_xml(model: InvoiceModel) -> str:
    """Serialise ``model`` to XML text with a UTF-8 declaration."""

    root = build_tree(model)
    body = etree.tostring(root, encoding="UTF-8", pretty_print=True).decode("utf-8")
    return XML_DECLARATION + body


def operator_notes(model: InvoiceModel) -> list[str]:
    """The two notes identifying the operator and the moment of issue."""

    operator = model.operator
    name = operator.name if operator is not None else ""
    return [
        f"{OPERATOR_NOTE_PREFIX}{name}",
        f"{ISSUE_TIME_NOTE_PREFIX}{format_croatian_datetime(model.issue_datetime)}",
    ]


def _add_extensions(root: etree._Element, model: InvoiceModel) -> None:
    extensions = etree.SubElement(root, _tag(NS_EXT, "UBLExtensions"))

    text = model.vat_cash_accounting_text
    if text is not None:
        extension = etree.SubElement(extensions, _tag(NS_EXT, "UBLExtension"))
        content = etree.SubElement(extension, _tag(NS_EXT, "ExtensionContent"))
        data = etree.SubElement(content, _tag(NS_HREXTAC, "HRFISK20Data"))
        marker = etree.SubElement(data, _tag(NS_HREXTAC, "HRObracunPDVPoNaplati"))
        marker.text = text

    # Placeholder filled in by the signing service.
    extension = etree.SubElement(extensions, _tag(NS_EXT, "UBLExtension"))
    content = etree.SubElement(extension, _tag(NS_EXT, "ExtensionContent"))
    signatures = etree.SubElement(content, _tag(NS_SIG, "UBLDocumentSignatures"))
    etree.SubElement(signatures, _tag(NS_SAC, "SignatureInformation"))


def _add_invoice_period(root: etree._Element, model: InvoiceModel) -> None:
    period = model.invoice_period
    if period is None:
        return
    element = _cac(root, "InvoicePeriod")
    if period.start_date is not None:
        _cbc(element, "StartDate", period.start_date.isoformat())
    if period.end_date is not None:
        _cbc(element, "EndDate", period.end_date.isoformat())


def _add_order_reference(root: etree._Element, model: InvoiceModel) -> None:
    reference = model.order_reference
    if reference is None:
        return
    element = _cac(root, "OrderReference")
    _cbc(element, "ID", reference.buyer_reference)
    _cbc(element, "SalesOrderID", reference.sales_order_id)


def _add_billing_reference(root: etree._Element, model: InvoiceModel) -> None:
    reference = model.billing_reference
    if reference is None:
        return
    element = _cac(_cac(root, "BillingReference"), "InvoiceDocumentReference")
    _cbc(element, "ID", reference.invoice_document_reference_id)
    if reference.issue_date is not None:
        _cbc(element, "IssueDate", reference.issue_date.isoformat())


def _add_attachment(root: etree._Element, attachment: Attachment) -> None:
    reference = _cac(root, "AdditionalDocumentReference")
    _cbc(reference, "ID", attachment.id)
    container = _cac(reference, "Attachment")
    _cbc(
        container,
        "EmbeddedDocumentBinaryObject",
        attachment.content,
        filename=attachment.filename,
        mimeCode=attachment.mime_code,
    )


def _add_party(parent: etree._Element, party: Party) -> None:
    element = _cac(parent, "Party")
    _cbc(element, "EndpointID", party.oib, schemeID=DEFAULT_ENDPOINT_SCHEME)

    identification = _cac(element, "PartyIdentification")
    _cbc(identification, "ID", party.identification)

    address = _cac(element, "PostalAddress")
    _cbc(address, "StreetName", party.postal_address.street_name)
    _cbc(address, "CityName", party.postal_address.city_name)
    _cbc(address, "PostalZone", party.postal_address.postal_zone)
    country = _cac(address, "Country")
    _cbc(country, "IdentificationCode", party.postal_address.country_code)

    tax_scheme = _cac(element, "PartyTaxScheme")
    _cbc(tax_scheme, "CompanyID", party.party_tax_scheme.company_id)
    scheme = _cac(tax_scheme, "TaxScheme")
    _cbc(scheme, "ID", TAX_SCHEME.code(party.party_tax_scheme.tax_scheme_id))

    legal_entity = _cac(element, "PartyLegalEntity")
    _cbc(legal_entity, "RegistrationName", party.registration_name)

    contact = party.contact
    if contact is not None and (contact.name or contact.telephone or contact.electronic_mail):
        contact_element = _cac(element, "Contact")
        _cbc(contact_element, "Name", contact.name)
        _cbc(contact_element, "Telephone", contact.telephone)
        _cbc(contact_element, "ElectronicMail", contact.electronic_mail)


def _add_payment_means(root: etree._Element, payment: PaymentMethod) -> None:
    element = _cac(root, "PaymentMeans")
    _cbc(element, "PaymentMeansCode", payment.payment_means_code)
    _cbc(element, "InstructionNote", payment.instruction_note)
    _cbc(element, "PaymentID", payment.payment_id)
    account = _cac(element, "PayeeFinancialAccount")
    _cbc(account, "ID", payment.payee_financial_account_id)


def _add_tax_category(
    parent: etree._Element, name: str, category: TaxCategory, *, with_name: bool = False
) -> None:
    element = _cac(parent, name)
    _cbc(element, "ID", TAX_CATEGORY.code(category.id))
    if with_name:
        _cbc(element, "Name", category.display_name)
    _cbc(element, "Percent", format_plain_decimal(category.percent))
    if category.tax_exemption_reason_code is not None:
        _cbc(
            element,
            "TaxExemptionReasonCode",
            TAX_EXEMPTION_REASON_CODE.code(category.tax_exemption_reason_code),
        )
    _cbc(element, "TaxExemptionReason", category.tax_exemption_reason)
    scheme = _cac(element, "TaxScheme")
    _cbc(scheme, "ID", TAX_SCHEME.code(category.tax_scheme_id))


def _add_allowance_charge(
    parent: etree._Element, entry: AllowanceCharge, currency: str
) -> None:
    element = _cac(parent, "AllowanceCharge")
    _cbc(element, "ChargeIndicator", "true" if entry.charge_indicator else "false")
    if entry.allowance_charge_reason_code is not None:
        registry = CHARGE_REASON_CODE if entry.charge_indicator else ALLOWANCE_REASON_CODE
        _cbc(element, "AllowanceChargeReasonCode", registry.code(entry.allowance_charge_reason_code))
    _cbc(element, "AllowanceChargeReason", entry.allowance_charge_reason)
    if entry.multiplier_factor_numeric is not None:
        _cbc(element, "MultiplierFactorNumeric", format_plain_decimal(entry.multiplier_factor_numeric))
    _cbc(element, "Amount", format_money(entry.amount), currencyID=currency)
    if entry.base_amount is not None:
        _cbc(element, "BaseAmount", format_money(entry.base_amount), currencyID=currency)
    if entry.tax_category is not None:
        _add_tax_category(element, "TaxCategory", entry.tax_category)


def _add_tax_total(root: etree._Element, tax_total: TaxTotal, currency: str) -> None:
    element = _cac(root, "TaxTotal")
    _cbc(element, "TaxAmount", format_money(tax_total.tax_amount), currencyID=currency)
    for subtotal in tax_total.tax_subtotals:
        sub = _cac(element, "TaxSubtotal")
        _cbc(sub, "TaxableAmount", format_money(subtotal.taxable_amount), currencyID=currency)
        _cbc(sub, "TaxAmount", format_money(subtotal.tax_amount), currencyID=currency)
        _add_tax_category(sub, "TaxCategory", subtotal.tax_category)


def _monetary_fields(totals: MonetaryTotal) -> Iterable[tuple[str, object]]:
    return (
        ("LineExtensionAmount", totals.line_extension_amount),
        ("TaxExclusiveAmount", totals.tax_exclusive_amount),
        ("TaxInclusiveAmount", totals.tax_inclusive_amount),
        ("AllowanceTotalAmount", totals.allowance_total_amount),
        ("ChargeTotalAmount", totals.charge_total_amount),
        ("PrepaidAmount", totals.prepaid_amount),
        ("PayableAmount", totals.payable_amount),
    )


def _add_monetary_total(root: etree._Element, totals: MonetaryTotal, currency: str) -> None:
    element = _cac(root, "LegalMonetaryTotal")
    for name, value in _monetary_fields(totals):
        if value is not None:
            _cbc(element, name, format_money(value), currencyID=currency)


def _add_invoice_line(root: etree._Element, line: InvoiceLine, currency: str) -> None:
    element = _cac(root, "InvoiceLine")
    _cbc(element, "ID", line.id)
    _cbc(
        element,
        "InvoicedQuantity",
        format_quantity(line.quantity),
        unitCode=UNIT_CODE.code(line.unit_code) or UNIT_CODE.default_code(),
    )
    _cbc(element, "LineExtensionAmount", format_money(line.line_extension_amount), currencyID=currency)
    for entry in line.allowance_charges:
        _add_allowance_charge(element, entry, currency)

    item = _cac(element, "Item")
    _cbc(item, "Name", line.item.name)
    classification = _cac(item, "CommodityClassification")
    _cbc(
        classification,
        "ItemClassificationCode",
        line.item.commodity_classification.item_classification_code,
        listID=COMMODITY_LIST_ID,
    )
    _add_tax_category(item, "ClassifiedTaxCategory", line.item.classified_tax_category, with_name=True)

    price = _cac(element, "Price")
    _cbc(price, "PriceAmount", format_price(line.price.price_amount), currencyID=currency)
    if line.price.base_quantity is not None:
        unit = UNIT_CODE.code(line.price.base_quantity_unit_code) or UNIT_CODE.default_code()
        _cbc(price, "BaseQuantity", format_quantity(line.price.base_quantity), unitCode=unit)


__all__ = [
    "XML_DECLARATION",
    "CUSTOMIZATION_ID",
    "SCHEMA_LOCATION",
    "OPERATOR_NOTE_PREFIX",
    "ISSUE_TIME_NOTE_PREFIX",
    "OPERATOR_ID_NOTE_PREFIX",
    "build_tree",
    "build_xml",
    "operator_notes",
]
