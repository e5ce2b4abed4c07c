"""Print library and profile information."""

from __future__ import annotations

import argparse
import json
from typing import Sequence

from ..invoices import info


def build_parser() -> argparse.ArgumentParser:
    return argparse.ArgumentParser(
        prog="ciushr info",
        description="Show the supported UBL version, CIUS profile and features.",
    )


def main(argv: Sequence[str] | None = None) -> int:
    build_parser().parse_args(argv)
    print(json.dumps(info(), indent=2))
    return 0


__all__ = ["build_parser", "main"]


if __name__ == "__main__":  # pragma: no cover - direct execution
    raise SystemExit(main())
