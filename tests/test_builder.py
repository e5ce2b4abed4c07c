from __future__ import annotations

from lxml import etree

from ciushr.builder import CUSTOMIZATION_ID, build_tree, build_xml, operator_notes
from ciushr.config import Settings
from ciushr.params import new
from ciushr.utils import NS_CAC, NS_CBC, NS_EXT, NS_HREXTAC, NS_INVOICE

from invoice_samples import PDF_CONTENT, full_invoice, sample_invoice

NS = {"inv": NS_INVOICE, "cac": NS_CAC, "cbc": NS_CBC, "ext": NS_EXT, "hrextac": NS_HREXTAC}


def _model(data):
    return new(data, settings=Settings()).unwrap()


def _build(data):
    return build_tree(_model(data))


def _text(root, path):
    return root.xpath(f"string({path})", namespaces=NS)


def _children(element):
    return [etree.QName(child).localname for child in element]


def test_build_xml_has_declaration_and_root():
    xml = build_xml(_model(sample_invoice()))

    assert xml.startswith('<?xml version="1.0" encoding="UTF-8"?>\n<Invoice')
    root = etree.fromstring(xml.encode("utf-8"))
    assert root.tag == f"{{{NS_INVOICE}}}Invoice"
    assert root.nsmap["cac"] == NS_CAC
    assert root.nsmap["cbc"] == NS_CBC


def test_header_elements_are_in_schema_order():
    root = _build(full_invoice())

    names = _children(root)
    assert names[:8] == [
        "UBLExtensions",
        "CustomizationID",
        "ProfileID",
        "ID",
        "IssueDate",
        "IssueTime",
        "DueDate",
        "InvoiceTypeCode",
    ]
    tail = [name for name in names if name not in {"Note", "InvoiceLine"}][8:]
    assert tail == [
        "DocumentCurrencyCode",
        "InvoicePeriod",
        "OrderReference",
        "AdditionalDocumentReference",
        "AccountingSupplierParty",
        "AccountingCustomerParty",
        "Delivery",
        "PaymentMeans",
        "AllowanceCharge",
        "TaxTotal",
        "LegalMonetaryTotal",
    ]
    assert names[-1] == "InvoiceLine"


def test_header_values():
    root = _build(sample_invoice())

    assert _text(root, "cbc:CustomizationID") == CUSTOMIZATION_ID
    assert _text(root, "cbc:ProfileID") == "P1"
    assert _text(root, "cbc:ID") == "INV-001"
    assert _text(root, "cbc:IssueDate") == "2025-05-01"
    assert _text(root, "cbc:IssueTime") == "12:00:00"
    assert _text(root, "cbc:InvoiceTypeCode") == "380"
    assert _text(root, "cbc:DocumentCurrencyCode") == "EUR"


def test_operator_notes_come_first():
    root = _build(full_invoice())

    notes = [note.text for note in root.findall(f"{{{NS_CBC}}}Note")]
    assert notes == [
        "Operater: Operator1",
        "Vrijeme izdavanja: 01. 05. 2025. u 12:00",
        "Napomena o računu",
        "Hvala na povjerenju",
    ]


def test_operator_notes_helper():
    notes = operator_notes(_model(sample_invoice(issue_datetime="2025-12-24T08:05:00")))

    assert notes == ["Operater: Operator1", "Vrijeme izdavanja: 24. 12. 2025. u 08:05"]


def test_optional_elements_are_omitted():
    root = _build(sample_invoice())

    for name in (
        "DueDate",
        "InvoicePeriod",
        "OrderReference",
        "BillingReference",
        "AdditionalDocumentReference",
        "Delivery",
        "PaymentMeans",
        "AllowanceCharge",
    ):
        assert name not in _children(root)
    assert root.xpath("//cac:Contact", namespaces=NS) == []
    assert root.xpath("//cbc:BaseQuantity", namespaces=NS) == []
    assert root.xpath("//cbc:AllowanceTotalAmount", namespaces=NS) == []


def test_signature_placeholder_is_always_present():
    root = _build(sample_invoice())

    extensions = root.xpath("ext:UBLExtensions/ext:UBLExtension", namespaces=NS)
    assert len(extensions) == 1
    assert root.xpath("//hrextac:HRObracunPDVPoNaplati", namespaces=NS) == []
    content = extensions[0].find(f"{{{NS_EXT}}}ExtensionContent")
    assert _children(content) == ["UBLDocumentSignatures"]


def test_cash_accounting_extension():
    root = _build(full_invoice())

    extensions = root.xpath("ext:UBLExtensions/ext:UBLExtension", namespaces=NS)
    assert len(extensions) == 2
    assert _text(root, "//hrextac:HRFISK20Data/hrextac:HRObracunPDVPoNaplati") == (
        "Obračun po naplaćenoj naknadi"
    )


def test_party_structure():
    root = _build(full_invoice())

    party = root.xpath("cac:AccountingSupplierParty/cac:Party", namespaces=NS)[0]
    assert _children(party) == [
        "EndpointID",
        "PartyIdentification",
        "PostalAddress",
        "PartyTaxScheme",
        "PartyLegalEntity",
        "Contact",
    ]
    endpoint = party.find(f"{{{NS_CBC}}}EndpointID")
    assert endpoint.text == "12345678901"
    assert endpoint.get("schemeID") == "9934"
    assert _text(party, "cac:PartyIdentification/cbc:ID") == "9934:12345678901"
    assert _text(party, "cac:PostalAddress/cac:Country/cbc:IdentificationCode") == "HR"
    assert _text(party, "cac:PartyTaxScheme/cac:TaxScheme/cbc:ID") == "VAT"
    assert _text(party, "cac:Contact/cbc:ElectronicMail") == "ivan@example.hr"

    seller = root.xpath("cac:AccountingSupplierParty/cac:SellerContact", namespaces=NS)[0]
    assert _text(seller, "cbc:ID") == "12345678901"
    assert _text(seller, "cbc:Name") == "Operator1"

    assert root.xpath("cac:AccountingCustomerParty/cac:SellerContact", namespaces=NS) == []


def test_amounts_use_fixed_precision():
    data = sample_invoice()
    data["legal_monetary_total"]["payable_amount"] = "125"
    data["tax_total"]["tax_amount"] = 25

    root = _build(data)

    assert _text(root, "cac:TaxTotal/cbc:TaxAmount") == "25.00"
    assert root.xpath("string(cac:TaxTotal/cbc:TaxAmount/@currencyID)", namespaces=NS) == "EUR"
    assert _text(root, "cac:LegalMonetaryTotal/cbc:PayableAmount") == "125.00"
    line = root.xpath("cac:InvoiceLine", namespaces=NS)[0]
    assert _text(line, "cbc:InvoicedQuantity") == "1.000"
    assert line.find(f"{{{NS_CBC}}}InvoicedQuantity").get("unitCode") == "H87"
    assert _text(line, "cac:Price/cbc:PriceAmount") == "100.000000"


def test_rounding_is_half_up():
    data = sample_invoice()
    data["invoice_lines"][0]["line_extension_amount"] = "14.995"

    root = _build(data)

    assert _text(root, "cac:InvoiceLine/cbc:LineExtensionAmount") == "15.00"


def test_tax_category_names_are_derived_from_percent():
    for percent, expected in ((0, "HR:Z"), (5, "HR:PDV5"), (13, "HR:PDV13"), (25, "HR:PDV25")):
        data = sample_invoice()
        data["invoice_lines"][0]["item"]["classified_tax_category"]["percent"] = percent

        root = _build(data)

        category = "cac:InvoiceLine/cac:Item/cac:ClassifiedTaxCategory"
        assert _text(root, f"{category}/cbc:Name") == expected
        assert _text(root, f"{category}/cbc:Percent") == str(percent)


def test_explicit_tax_category_name_wins():
    data = sample_invoice()
    data["invoice_lines"][0]["item"]["classified_tax_category"]["name"] = "Posebna stopa"

    root = _build(data)

    assert _text(root, "//cac:ClassifiedTaxCategory/cbc:Name") == "Posebna stopa"


def test_unknown_percent_has_no_name():
    data = sample_invoice()
    data["invoice_lines"][0]["item"]["classified_tax_category"]["percent"] = 10

    root = _build(data)

    assert root.xpath("//cac:ClassifiedTaxCategory/cbc:Name", namespaces=NS) == []


def test_subtotal_tax_category_has_no_name():
    root = _build(sample_invoice())

    category = root.xpath("cac:TaxTotal/cac:TaxSubtotal/cac:TaxCategory", namespaces=NS)[0]
    assert _children(category) == ["ID", "Percent", "TaxScheme"]
    assert _text(category, "cbc:ID") == "S"


def test_exemption_reason_is_written():
    data = sample_invoice()
    data["tax_total"]["tax_subtotals"][0]["tax_category"] = {
        "id": "exempt",
        "percent": 0,
        "tax_scheme_id": "vat",
        "tax_exemption_reason": "Oslobođeno prema čl. 40",
        "tax_exemption_reason_code": "exempt_general",
    }

    root = _build(data)

    category = root.xpath("cac:TaxTotal/cac:TaxSubtotal/cac:TaxCategory", namespaces=NS)[0]
    assert _children(category) == [
        "ID",
        "Percent",
        "TaxExemptionReasonCode",
        "TaxExemptionReason",
        "TaxScheme",
    ]
    assert _text(category, "cbc:ID") == "E"
    assert _text(category, "cbc:TaxExemptionReasonCode") == "vatex-eu-e"


def test_document_allowance_charge():
    root = _build(full_invoice())

    element = root.xpath("cac:AllowanceCharge", namespaces=NS)[0]
    assert _children(element) == [
        "ChargeIndicator",
        "AllowanceChargeReasonCode",
        "AllowanceChargeReason",
        "MultiplierFactorNumeric",
        "Amount",
        "BaseAmount",
        "TaxCategory",
    ]
    assert _text(element, "cbc:ChargeIndicator") == "false"
    assert _text(element, "cbc:AllowanceChargeReasonCode") == "95"
    assert _text(element, "cbc:MultiplierFactorNumeric") == "10"
    assert _text(element, "cbc:Amount") == "10.00"
    assert _text(element, "cac:TaxCategory/cbc:ID") == "S"


def test_line_allowance_charge_has_no_tax_category():
    root = _build(full_invoice())

    line = root.xpath("cac:InvoiceLine", namespaces=NS)[0]
    assert _children(line) == [
        "ID",
        "InvoicedQuantity",
        "LineExtensionAmount",
        "AllowanceCharge",
        "Item",
        "Price",
    ]
    charge = line.find(f"{{{NS_CAC}}}AllowanceCharge")
    assert _text(charge, "cbc:ChargeIndicator") == "true"
    assert _text(charge, "cbc:AllowanceChargeReasonCode") == "ABK"
    assert _text(charge, "cbc:Amount") == "2.50"
    assert charge.find(f"{{{NS_CAC}}}TaxCategory") is None


def test_price_base_quantity():
    root = _build(full_invoice())

    base = root.xpath("//cac:Price/cbc:BaseQuantity", namespaces=NS)[0]
    assert base.text == "1.000"
    assert base.get("unitCode") == "H87"


def test_commodity_classification():
    root = _build(sample_invoice())

    code = root.xpath("//cac:CommodityClassification/cbc:ItemClassificationCode", namespaces=NS)[0]
    assert code.text == "73211200"
    assert code.get("listID") == "CG"


def test_attachment_is_embedded():
    root = _build(full_invoice())

    reference = root.xpath("cac:AdditionalDocumentReference", namespaces=NS)[0]
    assert _text(reference, "cbc:ID") == "ATT-1"
    binary = reference.find(f"{{{NS_CAC}}}Attachment/{{{NS_CBC}}}EmbeddedDocumentBinaryObject")
    assert binary.text == PDF_CONTENT
    assert binary.get("filename") == "racun.pdf"
    assert binary.get("mimeCode") == "application/pdf"


def test_references_period_and_delivery():
    root = _build(full_invoice())

    assert _text(root, "cac:InvoicePeriod/cbc:StartDate") == "2025-04-01"
    assert _text(root, "cac:InvoicePeriod/cbc:EndDate") == "2025-04-30"
    assert _text(root, "cac:OrderReference/cbc:ID") == "PO-2025-001"
    assert _text(root, "cac:OrderReference/cbc:SalesOrderID") == "SO-77"
    assert _text(root, "cac:Delivery/cbc:ActualDeliveryDate") == "2025-04-30"
    assert _text(root, "cac:PaymentMeans/cac:PayeeFinancialAccount/cbc:ID") == (
        "HR1210010051863000160"
    )


def test_billing_reference_for_credit_note():
    data = sample_invoice(
        invoice_type_code="credit_note",
        billing_reference={"invoice_document_reference": {"id": "INV-000", "issue_date": "2025-04-01"}},
    )

    root = _build(data)

    assert _text(root, "cbc:InvoiceTypeCode") == "381"
    reference = "cac:BillingReference/cac:InvoiceDocumentReference"
    assert _text(root, f"{reference}/cbc:ID") == "INV-000"
    assert _text(root, f"{reference}/cbc:IssueDate") == "2025-04-01"
