"""
JSON Schema resolution with compiled-validator caching.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable, Mapping

import yaml
from jsonschema import Draft202012Validator, FormatChecker
from jsonschema.exceptions import SchemaError as JSONSchemaError
from jsonschema.validators import validator_for

from vc_toolkit.errors import (
    ConfigurationError,
    SchemaError,
    SchemaNotFoundError,
    SchemaValidationError,
)

logger = logging.getLogger(__name__)


def _json_pointer(path: Iterable[Any]) -> str:
    return "".join(
        "/" + str(part).replace("~", "~0").replace("/", "~1") for part in path
    )


class CompiledSchema:
    """A checked schema bound to a validator instance."""

    def __init__(self, schema_id: str, schema: dict[str, Any]) -> None:
        self.schema_id = schema_id
        self.schema = schema
        cls = validator_for(schema, default=Draft202012Validator)
        try:
            cls.check_schema(schema)
        except JSONSchemaError as e:
            raise SchemaValidationError(
                f"Invalid schema {schema_id}: {e.message}",
                [SchemaError(_json_pointer(e.absolute_path), e.message)],
            ) from e
        self._validator = cls(schema, format_checker=FormatChecker())

    def validate(self, instance: Any) -> list[SchemaError]:
        """Validate an instance.

        Returns:
            Every violation with its JSON Pointer instance path
            (empty if valid).
        """
        errors = [
            SchemaError(_json_pointer(e.absolute_path), e.message)
            for e in self._validator.iter_errors(instance)
        ]
        return sorted(errors, key=lambda e: e.instance_path)

    def is_valid(self, instance: Any) -> bool:
        return self._validator.is_valid(instance)


class SchemaResolver:
    """Resolves schemas by id and caches their compiled form."""

    def __init__(
        self,
        schemas: Mapping[str, dict[str, Any]] | Iterable[tuple[str, dict[str, Any]]] | None = None,
    ) -> None:
        self._schemas: dict[str, dict[str, Any]] = {}
        self._compiled: dict[str, CompiledSchema] = {}
        if schemas:
            items = schemas.items() if isinstance(schemas, Mapping) else schemas
            for schema_id, schema in items:
                self.add_schema(schema_id, schema)

    def add_schema(self, schema_id: str, schema: dict[str, Any]) -> None:
        """Store a schema, forcing recompilation on next resolution."""
        self._schemas[schema_id] = schema
        if self._compiled.pop(schema_id, None) is not None:
            logger.debug("Evicted compiled schema %s", schema_id)

    def has_schema(self, schema_id: str) -> bool:
        return schema_id in self._schemas

    def resolve_schema(self, schema_id: str) -> CompiledSchema:
        """Get the compiled validator for a schema id.

        Raises:
            SchemaNotFoundError: If no schema is stored under the id.
            SchemaValidationError: If the stored schema is itself invalid.
        """
        compiled = self._compiled.get(schema_id)
        if compiled is not None:
            logger.debug("Schema cache hit for %s", schema_id)
            return compiled

        schema = self._schemas.get(schema_id)
        if schema is None:
            raise SchemaNotFoundError(f"Schema not found for id: {schema_id}")

        compiled = self.compile(schema_id, schema)
        self._compiled[schema_id] = compiled
        return compiled

    def compile(self, schema_id: str, schema: dict[str, Any]) -> CompiledSchema:
        logger.debug("Compiling schema %s", schema_id)
        return CompiledSchema(schema_id, schema)


def load_schema_file(path: str | Path) -> dict[str, Any]:
    """Load a JSON Schema from a YAML or JSON file.

    Raises:
        ConfigurationError: If the file is missing or not a mapping.
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigurationError(f"Schema file not found: {path}")
    try:
        with path.open(encoding="utf-8") as f:
            schema = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Could not read schema file {path}: {e}") from e
    if not isinstance(schema, dict):
        raise ConfigurationError(f"Schema file {path} must contain a mapping")
    return schema
