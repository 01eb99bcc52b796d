"""Tests for schema resolution and validation."""

import json

import pytest

from vc_toolkit.errors import ConfigurationError, SchemaNotFoundError, SchemaValidationError
from vc_toolkit.schema_resolver import SchemaResolver, load_schema_file

SCHEMA_ID = "https://example.com/schemas/a.json"
SIMPLE_SCHEMA = {"required": ["a"], "properties": {"a": {"type": "string"}}}


class TestSchemaResolver:
    """Tests for SchemaResolver."""

    def test_accepts_valid(self):
        resolver = SchemaResolver({SCHEMA_ID: SIMPLE_SCHEMA})
        assert resolver.resolve_schema(SCHEMA_ID).validate({"a": "x"}) == []

    def test_rejects_with_path(self):
        """Errors reference the failing instance path."""
        resolver = SchemaResolver({SCHEMA_ID: SIMPLE_SCHEMA})
        errors = resolver.resolve_schema(SCHEMA_ID).validate({"a": 1})

        assert len(errors) == 1
        assert errors[0].instance_path == "/a"
        assert "string" in errors[0].message

    def test_missing_required_at_root(self):
        resolver = SchemaResolver({SCHEMA_ID: SIMPLE_SCHEMA})
        errors = resolver.resolve_schema(SCHEMA_ID).validate({})

        assert [e.instance_path for e in errors] == [""]
        assert str(errors[0]).startswith("(root)")

    def test_collects_all_errors(self):
        schema = {
            "properties": {
                "a": {"type": "string"},
                "items": {"type": "array", "items": {"type": "integer"}},
            }
        }
        resolver = SchemaResolver({SCHEMA_ID: schema})
        errors = resolver.resolve_schema(SCHEMA_ID).validate({"a": 1, "items": [1, "x", 3, "y"]})

        assert [e.instance_path for e in errors] == ["/a", "/items/1", "/items/3"]

    def test_compiled_schema_is_cached(self):
        """A second resolution returns the same compiled validator."""
        resolver = SchemaResolver({SCHEMA_ID: SIMPLE_SCHEMA})
        assert resolver.resolve_schema(SCHEMA_ID) is resolver.resolve_schema(SCHEMA_ID)

    def test_compiles_once(self, monkeypatch):
        resolver = SchemaResolver({SCHEMA_ID: SIMPLE_SCHEMA})
        calls = []
        original = resolver.compile

        def counting_compile(schema_id, schema):
            calls.append(schema_id)
            return original(schema_id, schema)

        monkeypatch.setattr(resolver, "compile", counting_compile)
        resolver.resolve_schema(SCHEMA_ID)
        resolver.resolve_schema(SCHEMA_ID)

        assert calls == [SCHEMA_ID]

    def test_add_schema_invalidates_cache(self):
        """Replacing a schema under the same id forces recompilation."""
        resolver = SchemaResolver({SCHEMA_ID: SIMPLE_SCHEMA})
        first = resolver.resolve_schema(SCHEMA_ID)
        assert first.validate({"a": 1}) != []

        resolver.add_schema(SCHEMA_ID, {"properties": {"a": {"type": "integer"}}})
        second = resolver.resolve_schema(SCHEMA_ID)

        assert second is not first
        assert second.validate({"a": 1}) == []

    def test_unknown_schema(self):
        with pytest.raises(SchemaNotFoundError):
            SchemaResolver().resolve_schema(SCHEMA_ID)

    def test_invalid_schema(self):
        resolver = SchemaResolver({SCHEMA_ID: {"type": "not-a-type"}})
        with pytest.raises(SchemaValidationError):
            resolver.resolve_schema(SCHEMA_ID)

    def test_unknown_keywords_allowed(self):
        """Non-standard keywords such as example are ignored."""
        schema = {"properties": {"a": {"type": "string", "example": "x"}}}
        resolver = SchemaResolver({SCHEMA_ID: schema})
        assert resolver.resolve_schema(SCHEMA_ID).validate({"a": "y"}) == []


class TestFormats:
    """Tests for string format checking."""

    @pytest.fixture
    def compiled(self):
        schema = {
            "properties": {
                "validFrom": {"type": "string", "format": "date-time"},
                "id": {"type": "string", "format": "uri"},
            }
        }
        return SchemaResolver({SCHEMA_ID: schema}).resolve_schema(SCHEMA_ID)

    def test_valid_formats(self, compiled):
        instance = {"validFrom": "2025-01-01T00:00:00Z", "id": "https://example.com/vc/1"}
        assert compiled.validate(instance) == []

    def test_invalid_date_time(self, compiled):
        errors = compiled.validate({"validFrom": "yesterday"})
        assert [e.instance_path for e in errors] == ["/validFrom"]

    def test_invalid_uri(self, compiled):
        errors = compiled.validate({"id": "not a uri"})
        assert [e.instance_path for e in errors] == ["/id"]


class TestLoadSchemaFile:
    """Tests for loading schema files."""

    def test_yaml(self, tmp_path):
        path = tmp_path / "schema.yaml"
        path.write_text("required:\n  - a\nproperties:\n  a:\n    type: string\n")
        assert load_schema_file(path) == SIMPLE_SCHEMA

    def test_json(self, tmp_path):
        path = tmp_path / "schema.json"
        path.write_text(json.dumps(SIMPLE_SCHEMA))
        assert load_schema_file(path) == SIMPLE_SCHEMA

    def test_missing(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_schema_file(tmp_path / "missing.yaml")

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "schema.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigurationError):
            load_schema_file(path)
