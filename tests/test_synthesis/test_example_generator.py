"""Tests for src.synthesis.example_generator."""
from __future__ import annotations

import base64
import copy
import ipaddress
import random
import re
import uuid

import pytest

from src.shared.constants import UUID_PATTERN
from src.shared.errors import (
    CyclicReferenceError,
    RecursiveReferenceError,
    SchemaError,
    UnknownEndpointError,
    UnresolvedReferenceError,
)
from src.shared.models.contracts import GenerationOptions
from src.synthesis.example_generator import (
    ExampleGenerator,
    first_content_schema,
    generate_example,
    lookup_status,
)

SEEDS = range(40)
UUID_RE = re.compile(UUID_PATTERN)
DATE_TIME_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$")


def _recursive_document() -> dict:
    return {
        "components": {
            "schemas": {
                "LinkedNode": {
                    "type": "object",
                    "required": ["value"],
                    "properties": {
                        "value": {"type": "integer"},
                        "next": {"$ref": "#/components/schemas/LinkedNode"},
                    },
                },
                "Category": {
                    "type": "object",
                    "required": ["name"],
                    "properties": {
                        "name": {"type": "string"},
                        "children": {
                            "type": "array",
                            "items": {"$ref": "#/components/schemas/Category"},
                        },
                    },
                },
                "Strict": {
                    "type": "object",
                    "required": ["self"],
                    "properties": {"self": {"$ref": "#/components/schemas/Strict"}},
                },
                "A": {"$ref": "#/components/schemas/B"},
                "B": {"$ref": "#/components/schemas/A"},
            },
        },
    }


# ---------------------------------------------------------------------------
# Objects
# ---------------------------------------------------------------------------


class TestObjects:
    def test_required_keys_always_present(self, asset_document):
        for seed in SEEDS:
            gen = ExampleGenerator(asset_document, seed=seed)
            asset = gen.generate({"$ref": "#/components/schemas/Asset"})
            assert {"id", "name", "status"} <= set(asset)

    def test_no_undeclared_keys(self, generator):
        asset = generator.generate({"$ref": "#/components/schemas/Asset"})
        assert set(asset) <= {"id", "name", "status", "value", "owner", "tags"}

    def test_optional_keys_are_sometimes_omitted(self):
        schema = {
            "type": "object",
            "required": ["id"],
            "properties": {
                "id": {"type": "string", "format": "uuid"},
                "name": {"type": "string"},
            },
        }
        seen = {"name" in generate_example(schema, seed=seed) for seed in SEEDS}
        assert seen == {True, False}

    def test_object_without_properties(self, generator):
        assert generator.generate({"type": "object"}) == {}

    def test_nested_refs_are_followed(self, generator):
        for _ in range(20):
            asset = generator.generate({"$ref": "#/components/schemas/Asset"})
            if "owner" in asset:
                assert "@" in asset["owner"]["email"]

    def test_uuid_end_to_end(self):
        schema = {
            "type": "object",
            "required": ["id"],
            "properties": {
                "id": {"type": "string", "format": "uuid"},
                "name": {"type": "string"},
            },
        }
        for seed in SEEDS:
            example = generate_example(schema, seed=seed)
            assert UUID_RE.match(example["id"])
            assert set(example) <= {"id", "name"}


# ---------------------------------------------------------------------------
# Enums and arrays
# ---------------------------------------------------------------------------


class TestEnumsAndArrays:
    def test_enum_values_are_members(self, generator):
        values = ["active", "retired", "maintenance"]
        for _ in range(30):
            assert generator.generate({"$ref": "#/components/schemas/AssetStatus"}) in values

    def test_enum_of_integers(self, generator):
        for _ in range(10):
            assert generator.generate({"type": "integer", "enum": [2, 4, 8]}) in (2, 4, 8)

    def test_array_length_within_default_bounds(self, generator):
        for _ in range(30):
            items = generator.generate({"type": "array", "items": {"type": "integer"}})
            assert 1 <= len(items) <= 3
            assert all(isinstance(i, int) for i in items)

    def test_array_length_within_custom_bounds(self, generator):
        options = GenerationOptions(array_min=4, array_max=6)
        for _ in range(30):
            items = generator.generate({"type": "array", "items": {"type": "boolean"}}, options)
            assert 4 <= len(items) <= 6

    def test_options_apply_to_nested_arrays(self, generator):
        options = GenerationOptions(array_min=2, array_max=2)
        schema = {"type": "array", "items": {"type": "array", "items": {"type": "null"}}}
        assert generator.generate(schema, options) == [[None, None], [None, None]]

    def test_constructor_options_are_default(self, asset_document):
        gen = ExampleGenerator(asset_document, options=GenerationOptions(array_min=0, array_max=0))
        assert gen.generate({"type": "array", "items": {"type": "string"}}) == []

    def test_array_without_items_is_empty(self, generator):
        assert generator.generate({"type": "array"}) == []

    def test_inverted_options_are_rejected(self):
        with pytest.raises(ValueError):
            GenerationOptions(array_min=5, array_max=2)


# ---------------------------------------------------------------------------
# Strings
# ---------------------------------------------------------------------------


class TestStrings:
    @pytest.mark.parametrize("min_length,max_length", [(1, 100), (5, 8), (50, 50), (0, 3), (20, 200)])
    def test_fallback_length_bounds(self, min_length, max_length):
        schema = {"type": "string", "minLength": min_length, "maxLength": max_length}
        for seed in SEEDS:
            value = generate_example(schema, seed=seed)
            assert min_length <= len(value) <= max_length

    def test_single_length_bound(self, generator):
        assert len(generator.generate({"type": "string", "maxLength": 0})) == 0
        assert len(generator.generate({"type": "string", "minLength": 150})) >= 150

    def test_contradicting_length_bounds(self, generator):
        with pytest.raises(SchemaError):
            generator.generate({"type": "string", "minLength": 10, "maxLength": 2})

    def test_uuid_format(self, generator):
        value = generator.generate({"type": "string", "format": "uuid"})
        assert str(uuid.UUID(value)) == value

    def test_uuid_pattern_is_implicit_uuid(self, generator):
        value = generator.generate({"type": "string", "pattern": UUID_PATTERN})
        assert UUID_RE.match(value)

    def test_date_time_format(self, generator):
        value = generator.generate({"type": "string", "format": "date-time"})
        assert DATE_TIME_RE.match(value)
        assert value[:10] in ("2023-12-31", "2024-01-01")

    def test_date_and_time_formats(self, generator):
        assert generator.generate({"type": "string", "format": "date"}) in ("2023-12-31", "2024-01-01")
        assert re.match(r"^\d{2}:\d{2}:\d{2}$", generator.generate({"type": "string", "format": "time"}))

    def test_email_format(self, generator):
        value = generator.generate({"type": "string", "format": "email"})
        local, _, domain = value.partition("@")
        assert local and "." in domain

    def test_ip_formats(self, generator):
        ipaddress.IPv4Address(generator.generate({"type": "string", "format": "ipv4"}))
        ipaddress.IPv6Address(generator.generate({"type": "string", "format": "ipv6"}))

    def test_uri_and_hostname(self, generator):
        assert generator.generate({"type": "string", "format": "uri"}).startswith("http")
        assert "." in generator.generate({"type": "string", "format": "hostname"})

    def test_password_length(self, generator):
        assert len(generator.generate({"type": "string", "format": "password"})) == 12

    def test_binary_is_data_uri(self, generator):
        value = generator.generate({"type": "string", "format": "binary"})
        prefix = "data:application/octet-stream;base64,"
        assert value.startswith(prefix)
        assert len(base64.b64decode(value[len(prefix):])) == 48

    def test_unknown_format_falls_back(self, generator):
        value = generator.generate({"type": "string", "format": "color", "maxLength": 10})
        assert 1 <= len(value) <= 10


# ---------------------------------------------------------------------------
# Numbers and scalars
# ---------------------------------------------------------------------------


class TestNumbers:
    def test_integer_within_bounds(self, generator):
        for _ in range(50):
            value = generator.generate({"type": "integer", "minimum": 10, "maximum": 20})
            assert isinstance(value, int)
            assert 10 <= value <= 20

    def test_integer_default_range(self, generator):
        for _ in range(50):
            assert 1 <= generator.generate({"type": "integer"}) <= 1000

    def test_number_is_rounded(self, generator):
        for _ in range(50):
            value = generator.generate({"type": "number", "minimum": 0, "maximum": 5})
            assert 0 <= value <= 5
            assert round(value, 2) == value

    def test_integer_multiple_of(self, generator):
        for _ in range(50):
            value = generator.generate({"type": "integer", "minimum": 0, "maximum": 100, "multipleOf": 5})
            assert value % 5 == 0

    def test_integer_multiple_of_given_as_float(self, generator):
        for _ in range(50):
            value = generator.generate({"type": "integer", "minimum": 0, "maximum": 100, "multipleOf": 2.0})
            assert isinstance(value, int)
            assert value % 2 == 0

    def test_fractional_multiple_of_on_integer_raises(self, generator):
        with pytest.raises(SchemaError):
            generator.generate({"type": "integer", "multipleOf": 0.5})

    def test_only_minimum_shifts_range_up(self, generator):
        for _ in range(50):
            assert 5000 <= generator.generate({"type": "integer", "minimum": 5000}) <= 5999

    def test_only_maximum_shifts_range_down(self, generator):
        for _ in range(50):
            assert -1049 <= generator.generate({"type": "integer", "maximum": -50}) <= -50

    def test_exclusive_bounds_are_nudged(self, generator):
        schema = {
            "type": "integer", "minimum": 1, "maximum": 3,
            "exclusiveMinimum": True, "exclusiveMaximum": True,
        }
        for _ in range(30):
            assert generator.generate(schema) == 2

    def test_numeric_exclusive_bounds(self, generator):
        for _ in range(30):
            assert generator.generate({"type": "integer", "exclusiveMinimum": 0, "exclusiveMaximum": 2}) == 1

    def test_minimum_above_maximum(self, generator):
        with pytest.raises(SchemaError):
            generator.generate({"type": "integer", "minimum": 10, "maximum": 1})

    def test_no_integer_in_range(self, generator):
        with pytest.raises(SchemaError):
            generator.generate({"type": "integer", "minimum": 0.2, "maximum": 0.8})

    def test_boolean_null_and_unknown(self, generator):
        assert isinstance(generator.generate({"type": "boolean"}), bool)
        assert generator.generate({"type": "null"}) is None
        assert isinstance(generator.generate({"type": "file"}), str)

    def test_empty_schema_is_string(self, generator):
        assert isinstance(generator.generate({}), str)
        assert isinstance(generator.generate(True), str)


# ---------------------------------------------------------------------------
# References and cycles
# ---------------------------------------------------------------------------


class TestReferences:
    def test_optional_self_reference_is_omitted(self):
        gen = ExampleGenerator(_recursive_document())
        for _ in range(30):
            node = gen.generate({"$ref": "#/components/schemas/LinkedNode"})
            assert isinstance(node["value"], int)
            assert "next" not in node

    def test_recursive_array_property_is_omitted(self):
        gen = ExampleGenerator(_recursive_document())
        for _ in range(30):
            category = gen.generate({"$ref": "#/components/schemas/Category"})
            assert "children" not in category

    def test_required_self_reference_raises(self):
        gen = ExampleGenerator(_recursive_document())
        with pytest.raises(CyclicReferenceError) as exc_info:
            gen.generate({"$ref": "#/components/schemas/Strict"})
        assert exc_info.value.pointer == "#/components/schemas/Strict"

    def test_mutual_alias_cycle_raises(self):
        gen = ExampleGenerator(_recursive_document())
        with pytest.raises(CyclicReferenceError):
            gen.generate({"$ref": "#/components/schemas/A"})

    def test_alias_cycle_under_optional_property_is_not_omitted(self):
        schema = {"type": "object", "properties": {"alias": {"$ref": "#/components/schemas/A"}}}
        raised = 0
        for seed in SEEDS:
            gen = ExampleGenerator(_recursive_document(), seed=seed)
            try:
                value = gen.generate(schema)
            except CyclicReferenceError as exc:
                assert not isinstance(exc, RecursiveReferenceError)
                raised += 1
            else:
                # Only the coin flip may leave the property out.
                assert value == {}
        assert raised > 0

    def test_missing_reference_raises(self, generator):
        with pytest.raises(UnresolvedReferenceError):
            generator.generate({"$ref": "#/components/schemas/Nope"})

    def test_document_is_not_mutated(self, asset_document):
        before = copy.deepcopy(asset_document)
        gen = ExampleGenerator(asset_document)
        for code in ("200", "404"):
            gen.generate_for_endpoint("/assets/{id}", "get", code)
        gen.generate_request_body("/assets", "post")
        assert asset_document == before


# ---------------------------------------------------------------------------
# Determinism
# ---------------------------------------------------------------------------


class TestDeterminism:
    def _sequence(self, gen: ExampleGenerator) -> list:
        return [
            gen.generate({"$ref": "#/components/schemas/Asset"}),
            gen.generate({"type": "string", "format": "date-time"}),
            gen.generate({"type": "string", "format": "email"}),
            gen.generate_for_endpoint("/assets", "get"),
        ]

    def test_same_seed_same_sequence(self, asset_document):
        first = self._sequence(ExampleGenerator(asset_document, seed=7))
        second = self._sequence(ExampleGenerator(asset_document, seed=7))
        assert first == second

    def test_explicit_rng_is_reproducible(self, asset_document):
        first = self._sequence(ExampleGenerator(asset_document, rng=random.Random(99)))
        second = self._sequence(ExampleGenerator(asset_document, rng=random.Random(99)))
        assert first == second

    def test_generators_are_independent(self, asset_document):
        reference = self._sequence(ExampleGenerator(asset_document, seed=3))
        gen = ExampleGenerator(asset_document, seed=3)
        other = ExampleGenerator(asset_document, seed=3)
        other.generate({"type": "array", "items": {"type": "string"}})
        assert self._sequence(gen) == reference

    def test_different_seeds_differ(self, asset_document):
        first = self._sequence(ExampleGenerator(asset_document, seed=1))
        second = self._sequence(ExampleGenerator(asset_document, seed=2))
        assert first != second


# ---------------------------------------------------------------------------
# Endpoint lookups
# ---------------------------------------------------------------------------


class TestGenerateForEndpoint:
    def test_single_object_response(self, generator):
        asset = generator.generate_for_endpoint("/assets/{id}", "get", "200")
        assert {"id", "name", "status"} <= set(asset)

    def test_array_response(self, generator):
        assets = generator.generate_for_endpoint("/assets", "get")
        assert 1 <= len(assets) <= 3
        assert all("id" in asset for asset in assets)

    def test_response_without_schema_is_none(self, generator):
        assert generator.generate_for_endpoint("/assets/{id}", "get", "404") is None
        assert generator.generate_for_endpoint("/assets/{id}", "delete", "204") is None

    def test_referenced_response(self, generator):
        error = generator.generate_for_endpoint("/assets", "post", "400")
        assert 400 <= error["code"] <= 599
        assert isinstance(error["message"], str)

    def test_integer_status_and_upper_case_method(self, generator):
        assert "id" in generator.generate_for_endpoint("/assets/{id}", "GET", 200)

    def test_yaml_integer_response_keys(self, asset_document):
        responses = asset_document["paths"]["/assets/{id}"]["get"]["responses"]
        responses[200] = responses.pop("200")
        gen = ExampleGenerator(asset_document)
        assert "id" in gen.generate_for_endpoint("/assets/{id}", "get", "200")

    def test_unknown_path(self, generator):
        with pytest.raises(UnknownEndpointError) as exc_info:
            generator.generate_for_endpoint("/missing", "get")
        assert exc_info.value.status_code == 404

    def test_unknown_method(self, generator):
        with pytest.raises(UnknownEndpointError):
            generator.generate_for_endpoint("/assets/{id}", "patch")

    def test_unknown_response_code(self, generator):
        with pytest.raises(UnknownEndpointError) as exc_info:
            generator.generate_for_endpoint("/assets/{id}", "get", "500")
        assert exc_info.value.response_code == "500"
        assert "Response code 500" in exc_info.value.detail

    def test_request_body(self, generator):
        body = generator.generate_request_body("/assets", "post")
        assert "name" in body
        assert len(body["name"]) <= 40

    def test_operation_without_request_body(self, generator):
        assert generator.generate_request_body("/assets/{id}", "get") is None


# ---------------------------------------------------------------------------
# Module helpers
# ---------------------------------------------------------------------------


def test_lookup_status_accepts_both_key_types():
    assert lookup_status({"200": "a"}, 200) == "a"
    assert lookup_status({201: "b"}, "201") == "b"
    assert lookup_status({"default": "c"}, "default") == "c"
    assert lookup_status({"200": "a"}, "404") is None
    assert lookup_status({"200": "a", 2: "b"}, "\u00b2") is None


def test_first_content_schema():
    message = {
        "content": {
            "application/json": {"schema": {"type": "integer"}},
            "text/plain": {"schema": {"type": "string"}},
        },
    }
    assert first_content_schema(message) == {"type": "integer"}
    assert first_content_schema({"description": "none"}) is None
    assert first_content_schema({"content": {}}) is None
    assert first_content_schema(None) is None


def test_generate_example_is_seeded():
    schema = {"type": "array", "items": {"type": "string", "format": "uuid"}}
    assert generate_example(schema, seed=11) == generate_example(schema, seed=11)
