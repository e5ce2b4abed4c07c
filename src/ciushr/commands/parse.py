"""Extract invoice data from a UBL document and print it as JSON."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Sequence

from ..errors import CiusError
from ..parser import parse_tree
from ..schema import load_invoice_document

LOGGER = logging.getLogger("ciushr.commands.parse")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ciushr parse",
        description="Parse a UBL 2.1 invoice document into JSON invoice data.",
    )
    parser.add_argument("xml", type=Path, help="Invoice XML file")
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        help="Destination JSON file (standard output when omitted)",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.xml.exists():
        print(f"[ERROR] File not found: {args.xml}", file=sys.stderr)
        return 2

    try:
        _, root, namespace = load_invoice_document(args.xml)
    except CiusError as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        return 1

    LOGGER.debug("Document namespace: %s", namespace)
    text = json.dumps(parse_tree(root), indent=2, ensure_ascii=False)

    if args.output is None:
        print(text)
        return 0

    args.output.parent.mkdir(parents=True, exist_ok=True)
    args.output.write_text(text + "\n", encoding="utf-8")
    print(f"[INFO] Data written to: {args.output}")
    return 0


__all__ = ["build_parser", "main"]


if __name__ == "__main__":  # pragma: no cover - direct execution
    raise SystemExit(main())
