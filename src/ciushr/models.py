"""Typed invoice model produced by :mod:`ciushr.params`.

Instances are immutable and only ever created by the validators.  Symbols
(``"standard_rate"``, ``"piece"``) are stored in canonical form; amounts are
kept as :class:`~decimal.Decimal` and rendered to fixed precision by the
builder.  :meth:`InvoiceModel.to_params` returns the model in the same
plain-dictionary shape that :func:`ciushr.parser.parse` produces.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any

from .utils import (
    compact,
    format_money,
    format_plain_decimal,
    format_price,
    format_quantity,
    number_from_text,
)

#: Text written for the Croatian "cash accounting" extension.
VAT_CASH_ACCOUNTING_TEXT = "Obračun po naplaćenoj naknadi"

#: Tax category names derived from the VAT percentage.
CROATIAN_TAX_NAMES = {
    Decimal("0"): "HR:Z",
    Decimal("5"): "HR:PDV5",
    Decimal("13"): "HR:PDV13",
    Decimal("25"): "HR:PDV25",
}

DEFAULT_ENDPOINT_SCHEME = "9934"


def croatian_tax_name(percent: Decimal) -> str | None:
    return CROATIAN_TAX_NAMES.get(percent)


@dataclass(frozen=True)
class PostalAddress:
    street_name: str
    city_name: str
    postal_zone: str
    country_code: str

    def to_params(self) -> dict[str, Any]:
        return {
            "street_name": self.street_name,
            "city_name": self.city_name,
            "postal_zone": self.postal_zone,
            "country_code": self.country_code,
        }


@dataclass(frozen=True)
class PartyTaxScheme:
    company_id: str
    tax_scheme_id: str

    def to_params(self) -> dict[str, Any]:
        return {"company_id": self.company_id, "tax_scheme_id": self.tax_scheme_id}


@dataclass(frozen=True)
class Contact:
    name: str | None = None
    electronic_mail: str | None = None
    telephone: str | None = None

    def to_params(self) -> dict[str, Any]:
        return compact(
            {
                "name": self.name,
                "electronic_mail": self.electronic_mail,
                "telephone": self.telephone,
            }
        )


@dataclass(frozen=True)
class SellerContact:
    """Operator issuing the invoice (HR-BT-4 name, HR-BT-5 OIB)."""

    id: str
    name: str

    def to_params(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name}


@dataclass(frozen=True)
class Party:
    oib: str
    registration_name: str
    postal_address: PostalAddress
    party_tax_scheme: PartyTaxScheme
    contact: Contact | None = None
    party_identification: str | None = None
    seller_contact: SellerContact | None = None

    @property
    def identification(self) -> str:
        """Value of ``PartyIdentification/ID`` written to the document."""

        return self.party_identification or self.identification_default

    def to_params(self) -> dict[str, Any]:
        params: dict[str, Any] = {
            "oib": self.oib,
            "registration_name": self.registration_name,
            "postal_address": self.postal_address.to_params(),
            "party_tax_scheme": self.party_tax_scheme.to_params(),
        }
        if self.contact is not None and self.contact.to_params():
            params["contact"] = self.contact.to_params()
        if self.party_identification and self.party_identification != self.identification_default:
            params["party_identification"] = {"id": self.party_identification}
        if self.seller_contact is not None:
            params["seller_contact"] = self.seller_contact.to_params()
        return params

    @property
    def identification_default(self) -> str:
        return f"{DEFAULT_ENDPOINT_SCHEME}:{self.oib}"


@dataclass(frozen=True)
class TaxCategory:
    id: str
    percent: Decimal
    tax_scheme_id: str
    name: str | None = None
    tax_exemption_reason: str | None = None
    tax_exemption_reason_code: str | None = None

    @property
    def display_name(self) -> str | None:
        """Explicit name or the one derived from the percentage."""

        return self.name or croatian_tax_name(self.percent)

    def to_params(self, *, with_name: bool = False) -> dict[str, Any]:
        params: dict[str, Any] = {"id": self.id}
        if with_name and self.display_name:
            params["name"] = self.display_name
        params["percent"] = number_from_text(format_plain_decimal(self.percent))
        params["tax_scheme_id"] = self.tax_scheme_id
        if self.tax_exemption_reason:
            params["tax_exemption_reason"] = self.tax_exemption_reason
        if self.tax_exemption_reason_code:
            params["tax_exemption_reason_code"] = self.tax_exemption_reason_code
        return params


@dataclass(frozen=True)
class TaxSubtotal:
    taxable_amount: Decimal
    tax_amount: Decimal
    tax_category: TaxCategory

    def to_params(self) -> dict[str, Any]:
        return {
            "taxable_amount": format_money(self.taxable_amount),
            "tax_amount": format_money(self.tax_amount),
            "tax_category": self.tax_category.to_params(),
        }


@dataclass(frozen=True)
class TaxTotal:
    tax_amount: Decimal
    tax_subtotals: tuple[TaxSubtotal, ...]

    def to_params(self) -> dict[str, Any]:
        return {
            "tax_amount": format_money(self.tax_amount),
            "tax_subtotals": [subtotal.to_params() for subtotal in self.tax_subtotals],
        }


@dataclass(frozen=True)
class MonetaryTotal:
    line_extension_amount: Decimal
    tax_exclusive_amount: Decimal
    tax_inclusive_amount: Decimal
    payable_amount: Decimal
    allowance_total_amount: Decimal | None = None
    charge_total_amount: Decimal | None = None
    prepaid_amount: Decimal | None = None

    def to_params(self) -> dict[str, Any]:
        params = {
            "line_extension_amount": self.line_extension_amount,
            "tax_exclusive_amount": self.tax_exclusive_amount,
            "tax_inclusive_amount": self.tax_inclusive_amount,
            "allowance_total_amount": self.allowance_total_amount,
            "charge_total_amount": self.charge_total_amount,
            "prepaid_amount": self.prepaid_amount,
            "payable_amount": self.payable_amount,
        }
        return {key: format_money(value) for key, value in params.items() if value is not None}


@dataclass(frozen=True)
class CommodityClassification:
    item_classification_code: str
    list_id: str = "CG"

    def to_params(self) -> dict[str, Any]:
        return {"item_classification_code": self.item_classification_code, "list_id": self.list_id}


@dataclass(frozen=True)
class Item:
    name: str
    classified_tax_category: TaxCategory
    commodity_classification: CommodityClassification

    def to_params(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "commodity_classification": self.commodity_classification.to_params(),
            "classified_tax_category": self.classified_tax_category.to_params(with_name=True),
        }


@dataclass(frozen=True)
class Price:
    price_amount: Decimal
    base_quantity: Decimal | None = None
    base_quantity_unit_code: str | None = None

    def to_params(self) -> dict[str, Any]:
        params: dict[str, Any] = {"price_amount": format_price(self.price_amount)}
        if self.base_quantity is not None:
            params["base_quantity"] = float(format_quantity(self.base_quantity))
            params["base_quantity_unit_code"] = self.base_quantity_unit_code or "piece"
        return params


@dataclass(frozen=True)
class AllowanceCharge:
    """Discount (``charge_indicator=False``) or surcharge on a document or line."""

    charge_indicator: bool
    amount: Decimal
    allowance_charge_reason_code: str | None = None
    allowance_charge_reason: str | None = None
    multiplier_factor_numeric: Decimal | None = None
    base_amount: Decimal | None = None
    tax_category: TaxCategory | None = None

    @property
    def is_charge(self) -> bool:
        return self.charge_indicator

    @property
    def is_allowance(self) -> bool:
        return not self.charge_indicator

    def to_params(self) -> dict[str, Any]:
        params: dict[str, Any] = {
            "charge_indicator": self.charge_indicator,
            "allowance_charge_reason_code": self.allowance_charge_reason_code,
            "allowance_charge_reason": self.allowance_charge_reason,
            "amount": format_money(self.amount),
        }
        if self.multiplier_factor_numeric is not None:
            params["multiplier_factor_numeric"] = number_from_text(
                format_plain_decimal(self.multiplier_factor_numeric)
            )
        if self.base_amount is not None:
            params["base_amount"] = format_money(self.base_amount)
        if self.tax_category is not None:
            params["tax_category"] = self.tax_category.to_params()
        return compact(params)


@dataclass(frozen=True)
class InvoiceLine:
    id: str
    quantity: Decimal
    unit_code: str
    line_extension_amount: Decimal
    item: Item
    price: Price
    allowance_charges: tuple[AllowanceCharge, ...] = ()

    def to_params(self) -> dict[str, Any]:
        params: dict[str, Any] = {
            "id": self.id,
            "quantity": float(format_quantity(self.quantity)),
            "unit_code": self.unit_code,
            "line_extension_amount": format_money(self.line_extension_amount),
            "item": self.item.to_params(),
            "price": self.price.to_params(),
        }
        if self.allowance_charges:
            params["allowance_charges"] = [ac.to_params() for ac in self.allowance_charges]
        return params


@dataclass(frozen=True)
class PaymentMethod:
    payment_means_code: str
    payee_financial_account_id: str
    instruction_note: str | None = None
    payment_id: str | None = None

    def to_params(self) -> dict[str, Any]:
        return compact(
            {
                "payment_means_code": self.payment_means_code,
                "instruction_note": self.instruction_note,
                "payment_id": self.payment_id,
                "payee_financial_account_id": self.payee_financial_account_id,
            }
        )


@dataclass(frozen=True)
class Attachment:
    id: str
    filename: str
    mime_code: str
    content: str

    def to_params(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "filename": self.filename,
            "mime_code": self.mime_code,
            "content": self.content,
        }


@dataclass(frozen=True)
class BillingReference:
    """Reference to the invoice corrected or credited by this document."""

    invoice_document_reference_id: str
    issue_date: date | None = None

    def to_params(self) -> dict[str, Any]:
        reference: dict[str, Any] = {"id": self.invoice_document_reference_id}
        if self.issue_date is not None:
            reference["issue_date"] = self.issue_date.isoformat()
        return {"invoice_document_reference": reference}


@dataclass(frozen=True)
class OrderReference:
    """Purchase order (BT-13) and sales order (BT-14) references."""

    buyer_reference: str | None = None
    sales_order_id: str | None = None

    def to_params(self) -> dict[str, Any]:
        return compact(
            {"buyer_reference": self.buyer_reference, "sales_order_id": self.sales_order_id}
        )


@dataclass(frozen=True)
class InvoicePeriod:
    start_date: date | None = None
    end_date: date | None = None

    def to_params(self) -> dict[str, Any]:
        return compact(
            {
                "start_date": self.start_date.isoformat() if self.start_date else None,
                "end_date": self.end_date.isoformat() if self.end_date else None,
            }
        )


@dataclass(frozen=True)
class InvoiceModel:
    id: str
    issue_date: date
    issue_time: time
    currency_code: str
    business_process: str
    invoice_type_code: str
    supplier: Party
    customer: Party
    tax_total: TaxTotal
    legal_monetary_total: MonetaryTotal
    invoice_lines: tuple[InvoiceLine, ...]
    due_date: date | None = None
    payment_method: PaymentMethod | None = None
    notes: tuple[str, ...] = ()
    attachments: tuple[Attachment, ...] = ()
    allowance_charges: tuple[AllowanceCharge, ...] = ()
    billing_reference: BillingReference | None = None
    order_reference: OrderReference | None = None
    invoice_period: InvoicePeriod | None = None
    delivery_date: date | None = None
    vat_cash_accounting: bool | str | None = None

    @property
    def issue_datetime(self) -> datetime:
        return datetime.combine(self.issue_date, self.issue_time)

    @property
    def operator(self) -> SellerContact | None:
        return self.supplier.seller_contact

    @property
    def vat_cash_accounting_text(self) -> str | None:
        """Text for the cash accounting extension or ``None`` when not used."""

        value = self.vat_cash_accounting
        if value is True:
            return VAT_CASH_ACCOUNTING_TEXT
        if isinstance(value, str) and value:
            return VAT_CASH_ACCOUNTING_TEXT if value == "true" else value
        return None

    def to_params(self) -> dict[str, Any]:
        """Return the model in the shape produced by the XML parser."""

        params: dict[str, Any] = {
            "id": self.id,
            "issue_datetime": self.issue_datetime.replace(microsecond=0).isoformat(),
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "currency_code": self.currency_code,
            "business_process": self.business_process,
            "invoice_type_code": self.invoice_type_code,
            "operator_name": self.operator.name if self.operator else None,
            "supplier": self.supplier.to_params(),
            "customer": self.customer.to_params(),
            "payment_method": self.payment_method.to_params() if self.payment_method else None,
            "tax_total": self.tax_total.to_params(),
            "legal_monetary_total": self.legal_monetary_total.to_params(),
            "invoice_lines": [line.to_params() for line in self.invoice_lines],
            "notes": list(self.notes),
            "attachments": [attachment.to_params() for attachment in self.attachments],
            "allowance_charges": [ac.to_params() for ac in self.allowance_charges],
            "billing_reference": (
                self.billing_reference.to_params() if self.billing_reference else None
            ),
            "order_reference": self.order_reference.to_params() if self.order_reference else None,
            "invoice_period": self.invoice_period.to_params() if self.invoice_period else None,
            "delivery_date": self.delivery_date.isoformat() if self.delivery_date else None,
            "vat_cash_accounting": _cash_accounting_param(self.vat_cash_accounting_text),
        }
        return compact(params)


def _cash_accounting_param(text: str | None) -> bool | str | None:
    if text is None:
        return None
    if text == VAT_CASH_ACCOUNTING_TEXT:
        return True
    return text


__all__ = [
    "VAT_CASH_ACCOUNTING_TEXT",
    "CROATIAN_TAX_NAMES",
    "DEFAULT_ENDPOINT_SCHEME",
    "croatian_tax_name",
    "PostalAddress",
    "PartyTaxScheme",
    "Contact",
    "SellerContact",
    "Party",
    "TaxCategory",
    "TaxSubtotal",
    "TaxTotal",
    "MonetaryTotal",
    "CommodityClassification",
    "Item",
    "Price",
    "AllowanceCharge",
    "InvoiceLine",
    "PaymentMethod",
    "Attachment",
    "BillingReference",
    "OrderReference",
    "InvoicePeriod",
    "InvoiceModel",
]
