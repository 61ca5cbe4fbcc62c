"""Closed set of schema node variants parsed from raw OpenAPI mappings.

A raw schema is a plain ``dict`` pulled from the document.  The variants are
structurally distinguished, so :func:`parse_schema_node` decides the variant
once and the synthesizer dispatches on the resulting class instead of
probing fields:

* ``{"$ref": ...}``            -> :class:`RefNode`
* ``{"type": "object", ...}``  -> :class:`ObjectSchema`
* ``{"type": "array", ...}``   -> :class:`ArraySchema`
* ``{"enum": [...]}``          -> :class:`EnumSchema`
* anything else                -> :class:`PrimitiveSchema`
"""
from __future__ import annotations

import numbers
from dataclasses import dataclass, field
from typing import Any

from src.shared.constants import REF_KEY
from src.shared.errors import SchemaError


@dataclass
class RefNode:
    """A node that only points elsewhere in the document."""
    pointer: str


@dataclass
class ObjectSchema:
    properties: dict[str, Any] = field(default_factory=dict)
    required: frozenset[str] = frozenset()


@dataclass
class ArraySchema:
    items: Any = None


@dataclass
class EnumSchema:
    values: list[Any] = field(default_factory=list)


@dataclass
class PrimitiveSchema:
    """A scalar schema together with every constraint the synthesizer honours."""
    type: str = "string"
    format: str | None = None
    pattern: str | None = None
    min_length: int | None = None
    max_length: int | None = None
    minimum: float | None = None
    maximum: float | None = None
    exclusive_minimum: bool = False
    exclusive_maximum: bool = False
    multiple_of: float | None = None


SchemaNode = RefNode | ObjectSchema | ArraySchema | EnumSchema | PrimitiveSchema


def parse_schema_node(raw: Any) -> SchemaNode:
    """Classify *raw* into one of the schema node variants.

    Precedence follows the generation dispatch order: ``$ref`` first, then
    object, array, enum (regardless of ``type``) and finally primitive.

    Raises:
        SchemaError: When *raw* cannot describe any value, e.g. ``False``,
            a non-mapping node, or an ``enum`` that is not a non-empty list.
    """
    if raw is True or raw is None:
        # An empty / "anything goes" schema is synthesized as a string.
        return PrimitiveSchema()
    if not isinstance(raw, dict):
        raise SchemaError(f"Schema node must be a mapping, got {type(raw).__name__}")

    if REF_KEY in raw:
        pointer = raw[REF_KEY]
        if not isinstance(pointer, str):
            raise SchemaError(f"$ref must be a string, got {type(pointer).__name__}")
        return RefNode(pointer=pointer)

    schema_type = _schema_type(raw)

    if schema_type == "object":
        properties = raw.get("properties") or {}
        if not isinstance(properties, dict):
            raise SchemaError("'properties' must be a mapping")
        required = raw.get("required") or []
        if not isinstance(required, list):
            # Swagger 2 style per-property `required: true` carries no names.
            required = []
        return ObjectSchema(properties=properties, required=frozenset(required))

    if schema_type == "array":
        return ArraySchema(items=raw.get("items"))

    if "enum" in raw:
        values = raw["enum"]
        if not isinstance(values, list) or not values:
            raise SchemaError("'enum' must be a non-empty list")
        return EnumSchema(values=list(values))

    return _parse_primitive(raw, schema_type or "string")


# ======================================================================
# Internal helpers
# ======================================================================


def _schema_type(raw: dict[str, Any]) -> str | None:
    """Return the declared type, picking the first non-null entry of a type list."""
    schema_type = raw.get("type")
    if isinstance(schema_type, list):
        non_null = [t for t in schema_type if t != "null"]
        if non_null:
            return non_null[0]
        return "null" if schema_type else None
    return schema_type


def _parse_primitive(raw: dict[str, Any], schema_type: str) -> PrimitiveSchema:
    minimum = _number_or_none(raw, "minimum")
    maximum = _number_or_none(raw, "maximum")
    exclusive_minimum = raw.get("exclusiveMinimum", False)
    exclusive_maximum = raw.get("exclusiveMaximum", False)

    # OpenAPI 3.1 spells exclusive bounds as numbers instead of flags.
    if _is_number(exclusive_minimum):
        if minimum is None or exclusive_minimum >= minimum:
            minimum = exclusive_minimum
        exclusive_minimum = True
    if _is_number(exclusive_maximum):
        if maximum is None or exclusive_maximum <= maximum:
            maximum = exclusive_maximum
        exclusive_maximum = True

    multiple_of = _number_or_none(raw, "multipleOf")
    if multiple_of is not None and multiple_of <= 0:
        raise SchemaError(f"'multipleOf' must be positive, got {multiple_of}")

    return PrimitiveSchema(
        type=schema_type,
        format=raw.get("format"),
        pattern=raw.get("pattern"),
        min_length=_length_or_none(raw, "minLength"),
        max_length=_length_or_none(raw, "maxLength"),
        minimum=minimum,
        maximum=maximum,
        exclusive_minimum=bool(exclusive_minimum),
        exclusive_maximum=bool(exclusive_maximum),
        multiple_of=multiple_of,
    )


def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def _number_or_none(raw: dict[str, Any], key: str) -> float | None:
    value = raw.get(key)
    if value is None:
        return None
    if not _is_number(value):
        raise SchemaError(f"'{key}' must be a number, got {value!r}")
    return value


def _length_or_none(raw: dict[str, Any], key: str) -> int | None:
    value = raw.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise SchemaError(f"'{key}' must be a non-negative integer, got {value!r}")
    return value
