"""Closed code tables shared by the validator, the builder and the parser.

Each table maps a symbolic identifier (``"standard_rate"``) to the wire code
written in the XML document (``"S"``).  Lookups accept either form and never
raise; unknown values simply yield ``None``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterable, Mapping


@dataclass(frozen=True)
class Registry:
    """Immutable bidirectional table between symbols and wire codes."""

    name: str
    codes_by_symbol: Mapping[str, str]
    default_symbol: str
    aliases: Mapping[str, str] = field(default_factory=dict)
    descriptions: Mapping[str, str] = field(default_factory=dict)
    _symbols_by_code: Mapping[str, str] = field(
        init=False, repr=False, compare=False, default_factory=dict
    )

    def __post_init__(self) -> None:
        if self.default_symbol not in self.codes_by_symbol:
            raise ValueError(f"{self.name}: default {self.default_symbol!r} is not a symbol")
        for alias, target in self.aliases.items():
            if target not in self.codes_by_symbol:
                raise ValueError(f"{self.name}: alias {alias!r} points to unknown {target!r}")

        symbols_by_code: dict[str, str] = {}
        for symbol, code in self.codes_by_symbol.items():
            symbols_by_code.setdefault(code, symbol)

        object.__setattr__(self, "codes_by_symbol", MappingProxyType(dict(self.codes_by_symbol)))
        object.__setattr__(self, "aliases", MappingProxyType(dict(self.aliases)))
        object.__setattr__(self, "descriptions", MappingProxyType(dict(self.descriptions)))
        object.__setattr__(self, "_symbols_by_code", MappingProxyType(symbols_by_code))

    def symbol(self, value: Any) -> str | None:
        """Return the canonical symbol for ``value`` (symbol, alias or code)."""

        key = _as_key(value)
        if key is None:
            return None
        if key in self.codes_by_symbol:
            return key
        if key in self.aliases:
            return self.aliases[key]
        return self._symbols_by_code.get(key)

    def code(self, value: Any) -> str | None:
        """Return the wire code for ``value`` or ``None`` when unknown."""

        symbol = self.symbol(value)
        if symbol is None:
            return None
        return self.codes_by_symbol[symbol]

    def is_valid(self, value: Any) -> bool:
        return self.symbol(value) is not None

    def values(self) -> tuple[str, ...]:
        """Canonical symbols, in declaration order, aliases excluded."""

        return tuple(self.codes_by_symbol)

    def codes(self) -> tuple[str, ...]:
        return tuple(self._symbols_by_code)

    def default(self) -> str:
        return self.default_symbol

    def default_code(self) -> str:
        return self.codes_by_symbol[self.default_symbol]

    def description(self, value: Any) -> str | None:
        symbol = self.symbol(value)
        if symbol is None:
            return None
        return self.descriptions.get(symbol)

    def symbol_or_passthrough(self, code: str) -> str:
        """Return the symbol for ``code`` or ``code`` itself when unknown."""

        symbol = self.symbol(code)
        return symbol if symbol is not None else code


def _as_key(value: Any) -> str | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, Enum):
        value = value.value if isinstance(value.value, str) else value.name
    if isinstance(value, int):
        value = str(value)
    if not isinstance(value, str):
        return None
    text = value.strip()
    return text or None


TAX_CATEGORY = Registry(
    name="tax_category",
    codes_by_symbol={
        "standard_rate": "S",
        "zero_rate": "Z",
        "exempt": "E",
        "reverse_charge": "AE",
        "intra_community": "K",
        "export": "G",
        "outside_scope": "O",
    },
    default_symbol="standard_rate",
    descriptions={
        "standard_rate": "Standard rate",
        "zero_rate": "Zero rated goods",
        "exempt": "Exempt from tax",
        "reverse_charge": "VAT reverse charge",
        "intra_community": "VAT exempt for EEA intra-community supply",
        "export": "Free export item, tax not charged",
        "outside_scope": "Services outside scope of tax",
    },
)

#: Tax categories that should carry an exemption reason.
EXEMPT_TAX_CATEGORIES = frozenset({"exempt", "reverse_charge", "outside_scope"})

TAX_SCHEME = Registry(
    name="tax_scheme",
    codes_by_symbol={"vat": "VAT", "fre": "FRE"},
    default_symbol="vat",
)

CURRENCY = Registry(
    name="currency",
    codes_by_symbol={"eur": "EUR"},
    default_symbol="eur",
)

INVOICE_TYPE_CODE = Registry(
    name="invoice_type_code",
    codes_by_symbol={
        "commercial_invoice": "380",
        "credit_note": "381",
        "debit_note": "383",
        "corrected_invoice": "384",
        "prepayment_invoice": "386",
        "self_billed_invoice": "389",
        "invoice_information": "751",
    },
    default_symbol="commercial_invoice",
)

UNIT_CODE = Registry(
    name="unit_code",
    codes_by_symbol={
        "piece": "H87",
        "each": "EA",
        "unit": "C62",
        "set": "SET",
        "pair": "PR",
        "dozen": "DZN",
        "package": "PK",
        "box": "BX",
        "carton": "CT",
        "pallet": "PF",
        "roll": "RO",
        "sheet": "ST",
        "bottle": "BO",
        "lump_sum": "LS",
        "gram": "GRM",
        "kilogram": "KGM",
        "tonne": "TNE",
        "millimetre": "MMT",
        "centimetre": "CMT",
        "metre": "MTR",
        "kilometre": "KMT",
        "square_metre": "MTK",
        "cubic_metre": "MTQ",
        "millilitre": "MLT",
        "litre": "LTR",
        "second": "SEC",
        "minute": "MIN",
        "hour": "HUR",
        "day": "DAY",
        "week": "WEE",
        "month": "MON",
        "year": "ANN",
        "kilowatt_hour": "KWH",
    },
    default_symbol="piece",
)

_P1_DESCRIPTION = (
    "Issuing invoices for supplies of goods and services according to purchase "
    "orders, based on a contract"
)

BUSINESS_PROCESS = Registry(
    name="business_process",
    codes_by_symbol={
        "p1": "P1",
        "p2": "P2",
        "p3": "P3",
        "p4": "P4",
        "p5": "P5",
        "p6": "P6",
        "p7": "P7",
        "p8": "P8",
        "p9": "P9",
        "p10": "P10",
        "p11": "P11",
        "p12": "P12",
        "p99": "P99",
    },
    default_symbol="p1",
    # ``billing`` predates the P1..P12 naming and is kept for older callers.
    aliases={"billing": "p1"},
    descriptions={
        "p1": _P1_DESCRIPTION,
        "p2": "Periodic Invoicing for Supplies of Goods and Services on the Basis of a Contract",
        "p3": "Issuance of invoices for delivery according to a separate purchase order",
        "p4": "Payment in advance (Prepayment)",
        "p5": "Payment on the spot (Spot payment)",
        "p6": "Payment before delivery, based on purchase order",
        "p7": "Issuing invoices with references to the delivery note",
        "p8": "Issuing invoices with references to the delivery note and receipt",
        "p9": "Credit notes or invoices with negative amounts (including return of empty packaging)",
        "p10": "Issuance of a corrective invoice (Cancellation/Correction)",
        "p11": "Issuance of partial and final invoices",
        "p12": "Self-issuance of invoices",
        "p99": "Customer-defined process",
    },
)

# UNTDID 5189
ALLOWANCE_REASON_CODE = Registry(
    name="allowance_reason_code",
    codes_by_symbol={
        "bonus_for_works_ahead_of_schedule": "41",
        "other_bonus": "42",
        "manufacturer_consumer_discount": "60",
        "due_to_military_status": "62",
        "due_to_work_accident": "63",
        "special_agreement": "64",
        "production_error_discount": "65",
        "new_outlet_discount": "66",
        "sample_discount": "67",
        "end_of_range_discount": "68",
        "incoterm_discount": "70",
        "point_of_sales_threshold_allowance": "71",
        "material_surcharge_deduction": "88",
        "discount": "95",
        "special_rebate": "100",
        "fixed_long_term": "102",
        "temporary": "103",
        "standard": "104",
        "yearly_turnover": "105",
    },
    default_symbol="discount",
)

# UNTDID 7161
CHARGE_REASON_CODE = Registry(
    name="charge_reason_code",
    codes_by_symbol={
        "advertising": "AA",
        "telecommunication": "AAA",
        "technical_modification": "AAC",
        "job_order_administration": "AAD",
        "warehousing": "AAF",
        "engineering_change": "AAH",
        "acceptance": "AAI",
        "packing": "ABK",
        "miscellaneous": "ABL",
        "additional_packaging": "ABN",
        "inspection": "ABO",
        "security": "ABZ",
        "freight_service": "ACA",
        "installation": "ACF",
        "lighting": "ACV",
        "cleaning": "ADC",
        "marking_labelling": "ADI",
        "certificate_of_origin": "ADQ",
        "testing": "ADS",
        "transportation": "ADT",
        "handling": "ADW",
        "customs_duties": "CAC",
        "cash_discount": "CAD",
        "cash_on_delivery": "CAE",
        "insurance": "CAI",
        "transfer": "CAJ",
        "loading": "CAL",
        "packaging": "CAM",
        "dangerous_goods_fee": "DAD",
        "delivery": "DL",
        "environmental_protection": "EAA",
        "fixed_special_allowance": "FC",
        "freight": "FI",
        "financing": "FN",
        "handling_commission": "HD",
        "in_transit": "IN",
        "invoice_entry_support": "IS",
        "minimum_order_minimum_billing": "MAC",
        "pick_up": "NAA",
        "pre_carriage": "PC",
        "discount": "RAA",
        "special_handling": "SH",
        "export_packing": "TAB",
        "reclamation_fee": "TAC",
        "deposit_fee": "ABB",
        "recycling_fee": "ABF",
        "return_handling": "RAH",
    },
    default_symbol="miscellaneous",
)

TAX_EXEMPTION_REASON_CODE = Registry(
    name="tax_exemption_reason_code",
    codes_by_symbol={
        "reverse_charge_construction": "vatex-eu-ae-construction",
        "reverse_charge_waste": "vatex-eu-ae-waste",
        "reverse_charge_gold": "vatex-eu-ae-gold",
        "reverse_charge_greenhouse": "vatex-eu-ae-greenhouse",
        "reverse_charge_general": "vatex-eu-ae",
        "intra_community_supply": "vatex-eu-ic",
        "export": "vatex-eu-g",
        "exempt_insurance": "vatex-eu-e-insurance",
        "exempt_financial": "vatex-eu-e-financial",
        "exempt_medical": "vatex-eu-e-medical",
        "exempt_education": "vatex-eu-e-education",
        "exempt_cultural": "vatex-eu-e-cultural",
        "exempt_sports": "vatex-eu-e-sports",
        "exempt_postal": "vatex-eu-e-postal",
        "exempt_immovable": "vatex-eu-e-immovable",
        "exempt_general": "vatex-eu-e",
        "outside_scope": "vatex-eu-o",
        "outside_scope_article_15": "vatex-eu-o-15",
        "hr_small_business": "HR:OssObv",
        "hr_margin_scheme": "HR:MarginScheme",
        "hr_travel_agents": "HR:TravelAgents",
        "hr_second_hand": "HR:SecondHand",
        "hr_art_objects": "HR:ArtObjects",
        "hr_antiques": "HR:Antiques",
    },
    default_symbol="exempt_general",
)

MIME_CODE = Registry(
    name="mime_code",
    codes_by_symbol={
        "pdf": "application/pdf",
        "png": "image/png",
        "jpeg": "image/jpeg",
        "gif": "image/gif",
        "csv": "text/csv",
        "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        "ods": "application/vnd.oasis.opendocument.spreadsheet",
        "xml": "application/xml",
        "text_xml": "text/xml",
    },
    default_symbol="pdf",
)

REGISTRIES: Mapping[str, Registry] = MappingProxyType(
    {
        registry.name: registry
        for registry in (
            TAX_CATEGORY,
            TAX_SCHEME,
            CURRENCY,
            INVOICE_TYPE_CODE,
            UNIT_CODE,
            BUSINESS_PROCESS,
            ALLOWANCE_REASON_CODE,
            CHARGE_REASON_CODE,
            TAX_EXEMPTION_REASON_CODE,
            MIME_CODE,
        )
    }
)


def is_exempt_category(value: Any) -> bool:
    """Return ``True`` for exempt, reverse-charge and out-of-scope categories."""

    return TAX_CATEGORY.symbol(value) in EXEMPT_TAX_CATEGORIES


def format_choices(registry: Registry, *, codes: bool = True) -> str:
    """Comma separated listing used in validation messages."""

    items: Iterable[str] = registry.codes() if codes else registry.values()
    return ", ".join(items)


__all__ = [
    "Registry",
    "TAX_CATEGORY",
    "EXEMPT_TAX_CATEGORIES",
    "TAX_SCHEME",
    "CURRENCY",
    "INVOICE_TYPE_CODE",
    "UNIT_CODE",
    "BUSINESS_PROCESS",
    "ALLOWANCE_REASON_CODE",
    "CHARGE_REASON_CODE",
    "TAX_EXEMPTION_REASON_CODE",
    "MIME_CODE",
    "REGISTRIES",
    "is_exempt_category",
    "format_choices",
]
