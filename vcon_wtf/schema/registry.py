"""Schema registry for the bundled JSON schemas.

Schemas live next to this module in ``schemas/<name>.schema.json``. Each one
is read once, hashed for change detection, and cached.
"""

from __future__ import annotations

import hashlib
import json
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .exceptions import SchemaNotFoundError, SchemaRegistryError


@dataclass
class SchemaInfo:
    """Metadata about a registered schema.

    Attributes:
        name: The schema name (e.g., "vcon").
        version: Value of the schema's top-level ``version`` keyword.
        path: Filesystem path to the schema JSON file.
        hash: SHA256 hash of the schema content.
        content: The loaded schema dictionary.
    """

    name: str
    version: str
    path: Path
    hash: str
    content: dict[str, Any]


class SchemaRegistry:
    """Loads and caches JSON schemas from a directory.

    Example:
        >>> registry = SchemaRegistry()
        >>> info = registry.get_schema("wtf")
        >>> info.version
        '1.0'
    """

    DEFAULT_SCHEMAS_DIR = Path(__file__).parent / "schemas"

    def __init__(self, schemas_dir: Path | str | None = None) -> None:
        self._schemas_dir = Path(schemas_dir) if schemas_dir else self.DEFAULT_SCHEMAS_DIR
        if not self._schemas_dir.is_dir():
            raise SchemaRegistryError(f"Schemas directory does not exist: {self._schemas_dir}")
        self._cache: dict[str, SchemaInfo] = {}
        self._lock = threading.Lock()

    @property
    def schemas_dir(self) -> Path:
        return self._schemas_dir

    @staticmethod
    def compute_hash(content: dict[str, Any] | str | bytes) -> str:
        """Compute the SHA256 hash of schema content.

        Dicts are serialized with sorted keys so equal schemas hash equally.
        """
        if isinstance(content, dict):
            content_bytes = json.dumps(content, sort_keys=True, separators=(",", ":")).encode(
                "utf-8"
            )
        elif isinstance(content, str):
            content_bytes = content.encode("utf-8")
        else:
            content_bytes = content
        return hashlib.sha256(content_bytes).hexdigest()

    def get_schema(self, name: str) -> SchemaInfo:
        """Get a schema by name, loading and caching it on first use.

        Raises:
            SchemaNotFoundError: If ``<name>.schema.json`` does not exist.
            SchemaRegistryError: If the file cannot be read or parsed.
        """
        cached = self._cache.get(name)
        if cached is not None:
            return cached

        schema_path = self._schemas_dir / f"{name}.schema.json"
        if not schema_path.exists():
            raise SchemaNotFoundError(name)

        try:
            with open(schema_path, encoding="utf-8") as f:
                content = json.load(f)
        except json.JSONDecodeError as e:
            raise SchemaRegistryError(f"Failed to parse schema file {schema_path}: {e}") from e
        except OSError as e:
            raise SchemaRegistryError(f"Failed to read schema file {schema_path}: {e}") from e

        info = SchemaInfo(
            name=name,
            version=str(content.get("version", "")),
            path=schema_path,
            hash=self.compute_hash(content),
            content=content,
        )
        with self._lock:
            return self._cache.setdefault(name, info)

    def list_schemas(self) -> list[str]:
        """Names of every schema file in the directory."""
        suffix = ".schema.json"
        return sorted(p.name[: -len(suffix)] for p in self._schemas_dir.glob(f"*{suffix}"))

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()


_default_registry: SchemaRegistry | None = None


def get_default_registry() -> SchemaRegistry:
    """Return the process-wide registry for the bundled schemas."""
    global _default_registry
    if _default_registry is None:
        _default_registry = SchemaRegistry()
    return _default_registry
