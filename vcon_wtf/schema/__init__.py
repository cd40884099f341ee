"""Bundled JSON schemas for vCon documents and WTF transcription records."""

from .exceptions import (
    SchemaError,
    SchemaNotFoundError,
    SchemaRegistryError,
    SchemaValidationError,
)
from .registry import SchemaInfo, SchemaRegistry, get_default_registry
from .validator import (
    SchemaValidator,
    get_default_validator,
    validate_wtf_transcription,
)

__all__ = [
    "SchemaError",
    "SchemaInfo",
    "SchemaNotFoundError",
    "SchemaRegistry",
    "SchemaRegistryError",
    "SchemaValidationError",
    "SchemaValidator",
    "get_default_registry",
    "get_default_validator",
    "validate_wtf_transcription",
]
