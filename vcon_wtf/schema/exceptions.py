"""Exceptions raised by schema loading and validation."""

from __future__ import annotations

from typing import Any

from ..exceptions import WtfServerError


class SchemaError(WtfServerError):
    """Base exception for all schema-related errors."""


class SchemaNotFoundError(SchemaError):
    """Raised when a requested schema file cannot be found.

    Attributes:
        schema_name: The name of the schema that was not found.
    """

    def __init__(self, schema_name: str) -> None:
        self.schema_name = schema_name
        super().__init__(f"Schema not found: {schema_name}")


class SchemaValidationError(SchemaError):
    """Raised when data fails validation against a schema.

    Attributes:
        schema_name: The name of the schema used for validation.
        errors: List of ``{"path", "message"}`` error details.
    """

    def __init__(self, schema_name: str, errors: list[dict[str, Any]] | None = None) -> None:
        self.schema_name = schema_name
        self.errors = errors or []
        super().__init__(
            f"Validation failed for schema '{schema_name}': {len(self.errors)} error(s)"
        )


class SchemaRegistryError(SchemaError):
    """Raised when a schema file cannot be read or parsed."""
