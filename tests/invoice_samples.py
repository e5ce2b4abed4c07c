"""Sample invoice payloads shared by the test modules."""

from __future__ import annotations

import base64
import copy
from typing import Any

PDF_CONTENT = base64.b64encode(b"%PDF-1.4 sample").decode("ascii")

_BASE_INVOICE: dict[str, Any] = {
    "id": "INV-001",
    "issue_datetime": "2025-05-01T12:00:00",
    "currency_code": "EUR",
    "supplier": {
        "oib": "12345678901",
        "registration_name": "Company d.o.o.",
        "postal_address": {
            "street_name": "Ulica 1",
            "city_name": "ZAGREB",
            "postal_zone": "10000",
            "country_code": "HR",
        },
        "party_tax_scheme": {
            "company_id": "HR12345678901",
            "tax_scheme_id": "vat",
        },
        "seller_contact": {
            "id": "12345678901",
            "name": "Operator1",
        },
    },
    "customer": {
        "oib": "11111111119",
        "registration_name": "Kupac d.o.o.",
        "postal_address": {
            "street_name": "Ulica 2",
            "city_name": "RIJEKA",
            "postal_zone": "51000",
            "country_code": "HR",
        },
        "party_tax_scheme": {
            "company_id": "HR11111111119",
            "tax_scheme_id": "vat",
        },
    },
    "tax_total": {
        "tax_amount": "25.00",
        "tax_subtotals": [
            {
                "taxable_amount": "100.00",
                "tax_amount": "25.00",
                "tax_category": {
                    "id": "standard_rate",
                    "percent": 25,
                    "tax_scheme_id": "vat",
                },
            }
        ],
    },
    "legal_monetary_total": {
        "line_extension_amount": "100.00",
        "tax_exclusive_amount": "100.00",
        "tax_inclusive_amount": "125.00",
        "payable_amount": "125.00",
    },
    "invoice_lines": [
        {
            "id": "1",
            "quantity": 1.0,
            "unit_code": "piece",
            "line_extension_amount": "100.00",
            "item": {
                "name": "Proizvod",
                "classified_tax_category": {
                    "id": "standard_rate",
                    "percent": 25,
                    "tax_scheme_id": "vat",
                },
                "commodity_classification": {
                    "item_classification_code": "73211200",
                    "list_id": "CG",
                },
            },
            "price": {"price_amount": "100.00"},
        }
    ],
}


def sample_invoice(**overrides: Any) -> dict[str, Any]:
    """Return a fresh copy of a minimal valid invoice with ``overrides`` applied."""

    data = copy.deepcopy(_BASE_INVOICE)
    data.update(copy.deepcopy(overrides))
    return data


def full_invoice() -> dict[str, Any]:
    """An invoice that uses every optional section."""

    data = sample_invoice(
        due_date="2025-05-31",
        business_process="p1",
        invoice_type_code="commercial_invoice",
        notes=["Napomena o računu", "Hvala na povjerenju"],
        payment_method={
            "payment_means_code": "30",
            "instruction_note": "Opis plaćanja",
            "payment_id": "HR00 123456",
            "payee_financial_account_id": "HR1210010051863000160",
        },
        attachments=[
            {
                "id": "ATT-1",
                "filename": "racun.pdf",
                "mime_code": "application/pdf",
                "content": PDF_CONTENT,
            }
        ],
        allowance_charges=[
            {
                "charge_indicator": False,
                "allowance_charge_reason_code": "discount",
                "allowance_charge_reason": "Popust",
                "multiplier_factor_numeric": 10,
                "amount": "10.00",
                "base_amount": "100.00",
                "tax_category": {
                    "id": "standard_rate",
                    "percent": 25,
                    "tax_scheme_id": "vat",
                },
            }
        ],
        order_reference={"buyer_reference": "PO-2025-001", "sales_order_id": "SO-77"},
        invoice_period={"start_date": "2025-04-01", "end_date": "2025-04-30"},
        delivery_date="2025-04-30",
        vat_cash_accounting=True,
    )
    data["supplier"]["contact"] = {
        "name": "Ivan Horvat",
        "electronic_mail": "ivan@example.hr",
        "telephone": "+385 1 2345 678",
    }
    data["legal_monetary_total"]["allowance_total_amount"] = "10.00"
    line = data["invoice_lines"][0]
    line["price"] = {
        "price_amount": "100",
        "base_quantity": 1,
        "base_quantity_unit_code": "piece",
    }
    line["allowance_charges"] = [
        {
            "charge_indicator": True,
            "allowance_charge_reason_code": "packing",
            "amount": "2.50",
        }
    ]
    return data


__all__ = ["PDF_CONTENT", "sample_invoice", "full_invoice"]
