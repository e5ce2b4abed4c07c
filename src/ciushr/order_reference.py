"""Buyer purchase order (BT-13) and seller sales order (BT-14) references."""

from __future__ import annotations

from typing import Any, Mapping

from .errors import ErrorCollector, Result
from .models import OrderReference
from .utils import normalize_keys

_AT_LEAST_ONE = "at least one of buyer_reference (BT-13) or sales_order_id (BT-14) is required"


def _has_value(value: Any) -> bool:
    return isinstance(value, str) and value != ""


def new(data: Any) -> Result[OrderReference]:
    if not isinstance(data, Mapping):
        return Result.failure(ErrorCollector.single("order_reference", "must be a map"))

    payload = normalize_keys(data)
    buyer_reference = payload.get("buyer_reference")
    sales_order_id = payload.get("sales_order_id")

    if not (_has_value(buyer_reference) or _has_value(sales_order_id)):
        return Result.failure(ErrorCollector.single("order_reference", _AT_LEAST_ONE))

    errors = ErrorCollector()
    for name, value in (("buyer_reference", buyer_reference), ("sales_order_id", sales_order_id)):
        if value is not None and not isinstance(value, str):
            errors.add(name, "must be a non-empty string")
    if errors:
        return Result.failure(errors.build())

    return Result.success(
        OrderReference(
            buyer_reference=buyer_reference or None,
            sales_order_id=sales_order_id or None,
        )
    )


def should_generate(data: Any) -> bool:
    """``True`` when ``data`` carries at least one order number."""

    if isinstance(data, OrderReference):
        return bool(data.buyer_reference or data.sales_order_id)
    if not isinstance(data, Mapping) or not data:
        return False
    payload = normalize_keys(data)
    return _has_value(payload.get("buyer_reference")) or _has_value(payload.get("sales_order_id"))


__all__ = ["new", "should_generate"]
