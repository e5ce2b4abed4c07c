"""Validate JSON invoice descriptions and optionally export an Excel report."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Sequence

from ..errors import CiusError
from ..validator import ValidationIssue, export_report, has_errors, validate_file


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ciushr validate",
        description="Validate invoice input data against the Croatian CIUS-2025 rules.",
    )
    parser.add_argument("inputs", nargs="+", type=Path, help="JSON files with invoice data")
    parser.add_argument(
        "--report",
        type=Path,
        help="Write the detected issues to this Excel workbook",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    missing = [path for path in args.inputs if not path.exists()]
    for path in missing:
        print(f"[ERROR] File not found: {path}", file=sys.stderr)
    if missing:
        return 2

    exit_code = 0
    results: dict[str, list[ValidationIssue]] = {}
    for path in args.inputs:
        try:
            issues = validate_file(path)
        except CiusError as exc:
            print(f"[ERROR] {path}: {exc}", file=sys.stderr)
            issues = [ValidationIssue(str(exc))]
        results[str(path)] = issues

        for issue in issues:
            print(issue)
        if has_errors(issues):
            exit_code = 1
        else:
            print(f"[OK] {path} is valid")

    if args.report is not None:
        destination = export_report(results, args.report)
        print(f"[INFO] Report written to: {destination}")

    return exit_code


__all__ = ["build_parser", "main"]


if __name__ == "__main__":  # pragma: no cover - direct execution
    raise SystemExit(main())
