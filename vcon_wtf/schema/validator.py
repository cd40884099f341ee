"""JSON schema validation for vCon documents and WTF records.

Wraps ``jsonschema.Draft7Validator`` with a format checker covering the
formats the bundled schemas use (``uuid``, ``date-time``, ``email``,
``uri``) and renders errors as ``{"path": "a.b.0", "message": ...}``.
"""

from __future__ import annotations

import json
import re
from datetime import datetime
from typing import Any

from jsonschema import Draft7Validator, FormatChecker

from .exceptions import SchemaError, SchemaValidationError
from .registry import SchemaRegistry, get_default_registry

_UUID_RE = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)
_DATETIME_RE = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})[Tt](\d{2}):(\d{2}):(\d{2})(\.\d+)?([Zz]|[+-]\d{2}:\d{2})$"
)
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_URI_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*:\S+$")
_REQUIRED_RE = re.compile(r"^'(.+)' is a required property$")

FORMAT_CHECKER = FormatChecker(formats=())


@FORMAT_CHECKER.checks("uuid")
def _is_uuid(instance: object) -> bool:
    return not isinstance(instance, str) or bool(_UUID_RE.match(instance))


@FORMAT_CHECKER.checks("date-time")
def _is_rfc3339(instance: object) -> bool:
    if not isinstance(instance, str):
        return True
    match = _DATETIME_RE.match(instance)
    if not match:
        return False
    year, month, day, hour, minute, second = (int(g) for g in match.groups()[:6])
    try:
        # Leap seconds are legal in RFC3339
        datetime(year, month, day, hour, minute, min(second, 59))
    except ValueError:
        return False
    return second <= 60


@FORMAT_CHECKER.checks("email")
def _is_email(instance: object) -> bool:
    return not isinstance(instance, str) or bool(_EMAIL_RE.match(instance))


@FORMAT_CHECKER.checks("uri")
def _is_uri(instance: object) -> bool:
    return not isinstance(instance, str) or bool(_URI_RE.match(instance))


def error_path(error: Any) -> str:
    """Dot-joined location of a jsonschema error.

    ``required`` errors point at the missing property rather than its parent.
    """
    parts = [str(p) for p in error.absolute_path]
    if error.validator == "required":
        match = _REQUIRED_RE.match(error.message)
        if match:
            parts.append(match.group(1))
    return ".".join(parts)


class SchemaValidator:
    """Validates data against schemas held by a :class:`SchemaRegistry`.

    Compiled validators are cached per schema name.

    Example:
        >>> validator = SchemaValidator()
        >>> validator.validate_and_get_errors({"vcon": "0.0.1"}, "vcon")[0]["path"]
        'created_at'
    """

    def __init__(self, registry: SchemaRegistry | None = None) -> None:
        self._registry = registry or get_default_registry()
        self._validators: dict[str, Draft7Validator] = {}

    def _validator(self, schema_name: str) -> Draft7Validator:
        validator = self._validators.get(schema_name)
        if validator is None:
            content = self._registry.get_schema(schema_name).content
            validator = Draft7Validator(content, format_checker=FORMAT_CHECKER)
            self._validators[schema_name] = validator
        return validator

    def validate_and_get_errors(
        self, data: dict[str, Any] | str, schema_name: str
    ) -> list[dict[str, str]]:
        """Validate data and return every error, sorted by path.

        Raises:
            SchemaNotFoundError: If the schema does not exist.
            SchemaError: If ``data`` is a string that is not valid JSON.
        """
        if isinstance(data, str):
            try:
                data = json.loads(data)
            except json.JSONDecodeError as e:
                raise SchemaError(f"Failed to parse data as JSON: {e}") from e

        errors = [
            {"path": error_path(error), "message": error.message}
            for error in self._validator(schema_name).iter_errors(data)
        ]
        return sorted(errors, key=lambda e: e["path"])

    def validate(
        self,
        data: dict[str, Any] | str,
        schema_name: str,
        raise_on_error: bool = True,
    ) -> bool:
        """Validate data against a schema.

        Returns:
            True when valid, False when invalid and ``raise_on_error`` is False.

        Raises:
            SchemaValidationError: If validation fails and ``raise_on_error`` is True.
        """
        errors = self.validate_and_get_errors(data, schema_name)
        if errors:
            if raise_on_error:
                raise SchemaValidationError(schema_name, errors)
            return False
        return True

    @staticmethod
    def format_errors(errors: list[dict[str, str]]) -> str:
        """Render errors one per line as ``path: message``."""
        lines = []
        for error in errors:
            path = error.get("path") or "(root)"
            lines.append(f"  {path}: {error.get('message', '')}")
        return "\n".join(lines)


_default_validator: SchemaValidator | None = None


def get_default_validator() -> SchemaValidator:
    global _default_validator
    if _default_validator is None:
        _default_validator = SchemaValidator()
    return _default_validator


def validate_wtf_transcription(record: dict[str, Any]) -> list[dict[str, str]]:
    """
    Check a WTF transcription record.

    Runs the ``wtf`` JSON schema and then the ordering rule that every
    segment ends no earlier than it starts.

    Returns:
        List of ``{"path", "message"}`` errors; empty when the record is valid.
    """
    errors = get_default_validator().validate_and_get_errors(record, "wtf")
    segments = record.get("segments") if isinstance(record, dict) else None
    if isinstance(segments, list):
        for i, segment in enumerate(segments):
            if not isinstance(segment, dict):
                continue
            start, end = segment.get("start"), segment.get("end")
            if isinstance(start, (int, float)) and isinstance(end, (int, float)) and end < start:
                errors.append(
                    {"path": f"segments.{i}", "message": "end time must be >= start time"}
                )
    return errors
