"""Sub-commands exposed by :mod:`ciushr.cli`."""

from __future__ import annotations

__all__ = ["build", "info", "parse", "roundtrip", "validate"]
