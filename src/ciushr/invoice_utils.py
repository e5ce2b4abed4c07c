"""Helpers for inspecting received invoice documents."""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Any

from lxml import etree

from .errors import Result
from .parser import load_document
from .utils import child_text, find_child

LOGGER = logging.getLogger("ciushr.invoice_utils")

_SIGNATURE_VALUE_XPATH = (
    "//*[local-name()='UBLDocumentSignatures']"
    "//*[local-name()='Signature']/*[local-name()='SignatureValue']"
)


def is_signed(xml: Any) -> Result[bool]:
    """``True`` when the document carries a non-empty ``SignatureValue``."""

    loaded = load_document(xml)
    if not loaded.ok:
        return Result.failure(loaded.error)
    values = loaded.value.xpath(_SIGNATURE_VALUE_XPATH)
    signed = any((value.text or "").strip() for value in values)
    return Result.success(signed)


def extract_attachments(xml: Any) -> Result[list[dict[str, Any]]]:
    """Return embedded and external attachments of the document.

    Embedded objects are decoded from base64; entries whose payload does not
    decode are skipped.  References carrying neither an embedded object nor
    an external URI are ignored.
    """

    loaded = load_document(xml)
    if not loaded.ok:
        return Result.failure(loaded.error)

    attachments = []
    for reference in loaded.value.xpath("//*[local-name()='AdditionalDocumentReference']"):
        entry = _attachment(reference)
        if entry is not None:
            attachments.append(entry)
    return Result.success(attachments)


def _attachment(reference: etree._Element) -> dict[str, Any] | None:
    identifier = child_text(reference, "ID")
    embedded = find_child(reference, "Attachment", "EmbeddedDocumentBinaryObject")

    if embedded is None:
        uri = child_text(reference, "Attachment", "ExternalReference", "URI")
        if uri is None:
            return None
        return {
            "id": identifier,
            "type": "external",
            "uri": uri,
            "description": child_text(reference, "DocumentDescription"),
        }

    payload = "".join((embedded.text or "").split())
    try:
        content = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        LOGGER.warning("Skipping attachment %s: content is not valid base64", identifier)
        return None

    return {
        "id": identifier,
        "type": "embedded",
        "filename": (embedded.get("filename") or "").strip() or None,
        "mime_type": (embedded.get("mimeCode") or "").strip() or None,
        "content": content,
    }


__all__ = ["is_signed", "extract_attachments"]
