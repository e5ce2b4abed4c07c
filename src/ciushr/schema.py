"""Loading invoice input files and XML documents from disk."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Tuple

from lxml import etree

from .errors import CiusError
from .utils import detect_namespace


def load_invoice_data(path: Path) -> dict[str, Any]:
    """Read a JSON invoice description from ``path``.

    Raises :class:`CiusError` when the file is not valid JSON or does not
    contain an object at the top level.
    """

    try:
        with Path(path).open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except json.JSONDecodeError as exc:
        raise CiusError(f"{path}: invalid JSON ({exc})") from exc

    if not isinstance(data, dict):
        raise CiusError(f"{path}: expected a JSON object at the top level")
    return data


def load_invoice_document(path: Path) -> Tuple[etree._ElementTree, etree._Element, str]:
    """Load *path* and return the parsed tree, root element and namespace."""

    try:
        tree = etree.parse(str(path), etree.XMLParser(resolve_entities=False, no_network=True))
    except etree.XMLSyntaxError as exc:
        raise CiusError(f"{path}: XML parsing failed: {exc}") from exc
    root = tree.getroot()
    return tree, root, detect_namespace(root)


__all__ = ["load_invoice_data", "load_invoice_document"]
