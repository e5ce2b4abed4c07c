"""Check that an invoice survives generation and parsing unchanged."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any, Sequence

from ..errors import CiusError
from ..invoices import round_trip_test, validate_invoice
from ..schema import load_invoice_data
from ..validator import issues_from_errors


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ciushr roundtrip",
        description="Build the invoice, parse it back and compare the results.",
    )
    parser.add_argument("input", type=Path, help="JSON file with the invoice data")
    return parser


def differences(expected: dict[str, Any], actual: dict[str, Any]) -> list[str]:
    """Top-level keys whose values differ between ``expected`` and ``actual``."""

    keys = sorted(set(expected) | set(actual))
    return [key for key in keys if expected.get(key) != actual.get(key)]


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.input.exists():
        print(f"[ERROR] File not found: {args.input}", file=sys.stderr)
        return 2

    try:
        data = load_invoice_data(args.input)
    except CiusError as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        return 1

    result = round_trip_test(data)
    if not result.ok:
        for issue in issues_from_errors(result.error):
            print(issue, file=sys.stderr)
        return 1

    _, parsed = result.value
    expected = validate_invoice(data).value.to_params()
    changed = differences(expected, parsed)
    if changed:
        for key in changed:
            print(f"[DIFF] {key}: {expected.get(key)!r} != {parsed.get(key)!r}")
        return 1

    print(f"[OK] {args.input} round-trips without loss")
    return 0


__all__ = ["build_parser", "differences", "main"]


if __name__ == "__main__":  # pragma: no cover - direct execution
    raise SystemExit(main())
