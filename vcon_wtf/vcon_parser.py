"""Validate and normalize incoming vCon documents.

Validation is done in two passes: the bundled ``vcon`` JSON schema checks
structure and formats, then a handful of cross-field rules the schema cannot
express with a readable message are checked in Python.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .audio import is_audio_dialog
from .schema import SchemaValidator, get_default_validator

logger = logging.getLogger(__name__)

INVALID_VCON = "Invalid VCON format"

_EXCLUSIVE_KEYS = ("group", "redacted", "appended")
_INLINE_CONTENT_TYPES = ("recording", "text")

MEDIATYPE_REQUIRED = "mediatype is required when body is present for recording/text"
NOT_AN_OBJECT = "vCon document must be a JSON object"


@dataclass(slots=True)
class AudioDialog:
    """An audio-bearing dialog together with its position in the document."""

    index: int
    dialog: dict[str, Any]


@dataclass
class ParseSuccess:
    vcon: dict[str, Any]
    audio_dialogs: list[AudioDialog] = field(default_factory=list)
    success: bool = field(default=True, init=False)


@dataclass
class ParseFailure:
    """Structural validation failure with one ``{path, message}`` per problem."""

    details: list[dict[str, str]]
    error: str = INVALID_VCON
    success: bool = field(default=False, init=False)

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.error, "details": self.details}


ParseResult = ParseSuccess | ParseFailure


def cross_field_errors(document: Mapping[str, Any]) -> list[dict[str, str]]:
    """Check the rules that span several fields of a document."""
    errors: list[dict[str, str]] = []

    present = [key for key in _EXCLUSIVE_KEYS if document.get(key) is not None]
    if len(present) > 1:
        errors.append(
            {"path": "", "message": "group, redacted, and appended are mutually exclusive"}
        )

    dialogs = document.get("dialog")
    if isinstance(dialogs, list):
        for i, dialog in enumerate(dialogs):
            if (
                isinstance(dialog, Mapping)
                and dialog.get("type") in _INLINE_CONTENT_TYPES
                and dialog.get("body")
                and not dialog.get("mediatype")
            ):
                errors.append({"path": f"dialog.{i}", "message": MEDIATYPE_REQUIRED})
    return errors


def validate_vcon(raw: Any, validator: SchemaValidator | None = None) -> list[dict[str, str]]:
    """Return every structural problem with ``raw``; empty when it is a valid vCon."""
    if not isinstance(raw, Mapping):
        return [{"path": "", "message": NOT_AN_OBJECT}]
    validator = validator or get_default_validator()
    errors = validator.validate_and_get_errors(dict(raw), "vcon")
    errors.extend(cross_field_errors(raw))
    return sorted(errors, key=lambda e: e["path"])


def normalize_vcon(document: Mapping[str, Any]) -> dict[str, Any]:
    """
    Return a copy of ``document`` with ``dialog``, ``analysis`` and
    ``attachments`` always present as lists.

    The input is left untouched and normalizing twice gives an equal result.
    """
    normalized = dict(document)
    for key in ("dialog", "analysis", "attachments"):
        normalized[key] = list(document.get(key) or [])
    return normalized


def find_audio_dialogs(document: Mapping[str, Any]) -> list[AudioDialog]:
    return [
        AudioDialog(index=i, dialog=dialog)
        for i, dialog in enumerate(document.get("dialog") or [])
        if is_audio_dialog(dialog)
    ]


def parse_vcon(raw: Any, validator: SchemaValidator | None = None) -> ParseResult:
    """
    Validate and normalize a raw vCon document.

    Args:
        raw: Decoded JSON value received from a client
        validator: Schema validator to use (default: the bundled schemas)

    Returns:
        ParseSuccess with the normalized document and its audio dialogs, or
        ParseFailure listing every validation problem.
    """
    errors = validate_vcon(raw, validator)
    if errors:
        logger.warning(
            "VCON validation failed with %d error(s)",
            len(errors),
            extra={"validation_errors": errors},
        )
        return ParseFailure(details=errors)

    vcon = normalize_vcon(raw)
    audio_dialogs = find_audio_dialogs(vcon)

    logger.info(
        "VCON %s parsed: %d dialog(s), %d with audio",
        vcon["uuid"],
        len(vcon["dialog"]),
        len(audio_dialogs),
        extra={
            "uuid": vcon["uuid"],
            "total_dialogs": len(vcon["dialog"]),
            "audio_dialogs": len(audio_dialogs),
            "parties": len(vcon["parties"]),
        },
    )
    return ParseSuccess(vcon=vcon, audio_dialogs=audio_dialogs)


def format_validation_errors(details: list[dict[str, str]]) -> str:
    """Render parse failure details as indented ``path: message`` lines."""
    return SchemaValidator.format_errors(details)
