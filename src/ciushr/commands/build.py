"""Generate a UBL invoice document from a JSON invoice description."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Sequence

from ..errors import CiusError
from ..invoices import generate_invoice
from ..schema import load_invoice_data
from ..validator import issues_from_errors


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ciushr build",
        description="Build a Croatian CIUS-2025 UBL 2.1 invoice from JSON input.",
    )
    parser.add_argument("input", type=Path, help="JSON file with the invoice data")
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        help="Destination XML file (standard output when omitted)",
    )
    return parser


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

    result = generate_invoice(data)
    for warning in result.warnings:
        print(f"[WARNING] {warning}", file=sys.stderr)
    if not result.ok:
        for issue in issues_from_errors(result.error):
            print(issue, file=sys.stderr)
        return 1

    if args.output is None:
        sys.stdout.write(result.value)
        return 0

    args.output.parent.mkdir(parents=True, exist_ok=True)
    args.output.write_text(result.value, encoding="utf-8")
    print(f"[INFO] Invoice written to: {args.output}")
    return 0


__all__ = ["build_parser", "main"]


if __name__ == "__main__":  # pragma: no cover - direct execution
    raise SystemExit(main())
