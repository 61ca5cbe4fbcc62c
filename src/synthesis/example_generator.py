"""Schema-driven example synthesis.

Walks a (possibly ``$ref``-bearing, possibly self-referential) schema node
from an OpenAPI document and produces a concrete example value honouring
type, format, enum, numeric bounds and required/optional constraints.

Every generator owns its pseudo-random source.  Faker is bound to the same
``random.Random`` instance, so two generators built with the same seed (or
handed equally seeded ``rng`` objects) produce identical example sequences
for identical call sequences.  A single generator shared across threads
must be serialised by the caller.

.. rubric:: Cycles

References are dereferenced lazily, one node at a time, and the pointers on
the active descent path are tracked.  Re-entering a pointer raises
:class:`RecursiveReferenceError`, except below an optional property, which is
then simply left out of the generated object.  Alias cycles found by the
resolver (`A -> B -> A`) always propagate as :class:`CyclicReferenceError`.
"""
from __future__ import annotations

import base64
import logging
import math
import random
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from faker import Faker

from src.shared.constants import (
    DEFAULT_FLOAT_RANGE,
    DEFAULT_INT_RANGE,
    DEFAULT_MAX_LENGTH,
    DEFAULT_MIN_LENGTH,
    DEFAULT_SEED,
    PASSWORD_LENGTH,
    STRING_PAD_CHAR,
    UUID_PATTERN,
)
from src.shared.errors import RecursiveReferenceError, SchemaError, UnknownEndpointError
from src.shared.models.contracts import GenerationOptions
from src.synthesis.reference_resolver import ReferenceResolver, is_reference
from src.synthesis.schema_nodes import (
    ArraySchema,
    EnumSchema,
    ObjectSchema,
    PrimitiveSchema,
    RefNode,
    parse_schema_node,
)

logger = logging.getLogger(__name__)

# Date-time formats are drawn from the day before this instant so that
# output does not depend on the wall clock.
REFERENCE_TIME: datetime = datetime(2024, 1, 1, tzinfo=timezone.utc)
RECENT_WINDOW: timedelta = timedelta(days=1)

_BINARY_LENGTH = 48


class ExampleGenerator:
    """Generates example values for schema nodes of one OpenAPI document.

    Parameters
    ----------
    document:
        The fully assembled OpenAPI document.  Only read, never mutated.
    seed:
        Seed for the generator's own random source.  Ignored when *rng* is
        given.
    rng:
        An explicit random source to draw from.
    options:
        Default :class:`GenerationOptions` for :meth:`generate` calls that
        pass none.
    reference_time:
        Upper end of the window ``date-time``/``date``/``time`` values are
        drawn from.
    """

    def __init__(
        self,
        document: dict[str, Any] | None = None,
        seed: int = DEFAULT_SEED,
        rng: random.Random | None = None,
        options: GenerationOptions | None = None,
        reference_time: datetime | None = None,
    ) -> None:
        self._document: dict[str, Any] = document if document is not None else {}
        self._resolver = ReferenceResolver(self._document)
        self._rng = rng if rng is not None else random.Random(seed)
        self._faker = Faker()
        self._faker.seed_instance(seed)
        self._faker.random = self._rng
        self._options = options or GenerationOptions()
        self._reference_time = reference_time or REFERENCE_TIME

        self._format_generators: dict[str, Callable[[], str]] = {
            "date-time": self._date_time,
            "date": lambda: self._date_time().split("T")[0],
            "time": lambda: self._date_time().split("T")[1].split(".")[0],
            "email": self._faker.email,
            "hostname": self._faker.domain_name,
            "ipv4": self._faker.ipv4,
            "ipv6": self._faker.ipv6,
            "uri": self._faker.url,
            "uuid": self._faker.uuid4,
            "password": lambda: self._faker.password(length=PASSWORD_LENGTH),
            "binary": self._data_uri,
        }

    @property
    def document(self) -> dict[str, Any]:
        return self._document

    @property
    def resolver(self) -> ReferenceResolver:
        return self._resolver

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def generate(
        self, schema: Any, options: GenerationOptions | None = None
    ) -> Any:
        """Generate an example value for *schema*.

        Raises:
            UnresolvedReferenceError: A ``$ref`` cannot be dereferenced.
            CyclicReferenceError: A required part of the schema refers back
                to one of its ancestors, or an alias chain loops.
            SchemaError: The schema contradicts itself (e.g. ``minimum``
                above ``maximum``).
        """
        return self._generate(schema, options or self._options, ())

    def generate_for_endpoint(
        self, path: str, method: str, response_code: str = "200"
    ) -> Any:
        """Generate the body of the *response_code* response of an operation.

        Returns ``None`` when the response declares no schema.

        Raises:
            UnknownEndpointError: The path, method or response code does not
                exist in the document.
        """
        operation = self._find_operation(path, method)
        responses = operation.get("responses") or {}
        response = lookup_status(responses, response_code)
        if response is None:
            raise UnknownEndpointError(path, method, response_code)
        if is_reference(response):
            response = self._resolver.resolve(response)

        schema = first_content_schema(response)
        if schema is None:
            logger.debug(
                "No schema for %s %s %s", method.upper(), path, response_code
            )
            return None
        return self.generate(schema)

    def generate_request_body(self, path: str, method: str) -> Any:
        """Generate a request payload for an operation, or ``None`` without one."""
        operation = self._find_operation(path, method)
        request_body = operation.get("requestBody")
        if request_body is None:
            return None
        if is_reference(request_body):
            request_body = self._resolver.resolve(request_body)

        schema = first_content_schema(request_body)
        if schema is None:
            return None
        return self.generate(schema)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _generate(
        self, raw: Any, options: GenerationOptions, active: tuple[str, ...]
    ) -> Any:
        node = parse_schema_node(raw)

        if isinstance(node, RefNode):
            if node.pointer in active:
                raise RecursiveReferenceError(node.pointer)
            resolved = self._resolver.resolve(raw)
            return self._generate(resolved, options, active + (node.pointer,))
        if isinstance(node, ObjectSchema):
            return self._generate_object(node, options, active)
        if isinstance(node, ArraySchema):
            return self._generate_array(node, options, active)
        if isinstance(node, EnumSchema):
            return self._rng.choice(node.values)
        return self._generate_primitive(node)

    def _generate_object(
        self, node: ObjectSchema, options: GenerationOptions, active: tuple[str, ...]
    ) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for name, prop_schema in node.properties.items():
            required = name in node.required
            # Optional properties are skipped on a coin flip.
            if not required and self._faker.boolean():
                continue
            try:
                result[name] = self._generate(prop_schema, options, active)
            except RecursiveReferenceError as exc:
                if required:
                    raise
                logger.debug(
                    "Omitting optional property '%s': recursive reference %s",
                    name,
                    exc.pointer,
                )
        return result

    def _generate_array(
        self, node: ArraySchema, options: GenerationOptions, active: tuple[str, ...]
    ) -> list[Any]:
        if node.items is None:
            return []
        length = self._rng.randint(options.array_min, options.array_max)
        return [self._generate(node.items, options, active) for _ in range(length)]

    def _generate_primitive(self, node: PrimitiveSchema) -> Any:
        if node.type == "string":
            return self._generate_string(node)
        if node.type in ("number", "integer"):
            return self._generate_number(node)
        if node.type == "boolean":
            return self._faker.boolean()
        if node.type == "null":
            return None
        return self._faker.word()

    # ------------------------------------------------------------------
    # Strings
    # ------------------------------------------------------------------

    def _generate_string(self, node: PrimitiveSchema) -> str:
        formatter = self._format_generators.get(node.format or "")
        if formatter is not None:
            return formatter()
        if node.pattern == UUID_PATTERN:
            return self._faker.uuid4()

        min_length, max_length = node.min_length, node.max_length
        # A default never contradicts the one explicit length bound.
        if min_length is None:
            min_length = DEFAULT_MIN_LENGTH if max_length is None else min(DEFAULT_MIN_LENGTH, max_length)
        if max_length is None:
            max_length = max(DEFAULT_MAX_LENGTH, min_length)
        if min_length > max_length:
            raise SchemaError(
                f"minLength ({min_length}) exceeds maxLength ({max_length})"
            )

        words = self._faker.words(nb=self._rng.randint(1, 5))
        return " ".join(words)[:max_length].ljust(min_length, STRING_PAD_CHAR)

    def _date_time(self) -> str:
        value = self._faker.date_time_between_dates(
            datetime_start=self._reference_time - RECENT_WINDOW,
            datetime_end=self._reference_time,
            tzinfo=timezone.utc,
        )
        return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")

    def _data_uri(self) -> str:
        payload = base64.b64encode(self._rng.randbytes(_BINARY_LENGTH)).decode("ascii")
        return f"data:application/octet-stream;base64,{payload}"

    # ------------------------------------------------------------------
    # Numbers
    # ------------------------------------------------------------------

    def _generate_number(self, node: PrimitiveSchema) -> int | float:
        """Draw a number within the declared bounds.

        ``multipleOf`` floors the draw to the next lower multiple, and the
        exclusive bounds are only nudged (by 1 or 0.1) when the draw still
        sits on or beyond them.  Neither step re-checks the opposite bound,
        so e.g. a floored value can fall below ``minimum``.
        """
        is_integer = node.type == "integer"
        low, high = _numeric_bounds(node, is_integer)

        if is_integer:
            int_low, int_high = math.ceil(low), math.floor(high)
            if int_low > int_high:
                raise SchemaError(f"No integer between {low} and {high}")
            value: int | float = self._rng.randint(int_low, int_high)
        else:
            value = round(self._rng.uniform(low, high), 2)

        multiple_of = node.multiple_of
        if is_integer and multiple_of is not None:
            if not float(multiple_of).is_integer():
                raise SchemaError(
                    f"multipleOf ({multiple_of}) must be a whole number for integer schemas"
                )
            multiple_of = int(multiple_of)
        if multiple_of is not None and multiple_of != 1:
            value = math.floor(value / multiple_of) * multiple_of

        step = 1 if is_integer else 0.1
        if node.exclusive_minimum and node.minimum is not None and value <= node.minimum:
            value = node.minimum + step
        if node.exclusive_maximum and node.maximum is not None and value >= node.maximum:
            value = node.maximum - step

        return value

    # ------------------------------------------------------------------
    # Document lookups
    # ------------------------------------------------------------------

    def _find_operation(self, path: str, method: str) -> dict[str, Any]:
        path_item = (self._document.get("paths") or {}).get(path)
        if is_reference(path_item):
            path_item = self._resolver.resolve(path_item)
        if not isinstance(path_item, dict):
            raise UnknownEndpointError(path, method)

        operation = path_item.get(method.lower())
        if is_reference(operation):
            operation = self._resolver.resolve(operation)
        if not isinstance(operation, dict):
            raise UnknownEndpointError(path, method)
        return operation


# ======================================================================
# Module helpers
# ======================================================================


def _numeric_bounds(node: PrimitiveSchema, is_integer: bool) -> tuple[float, float]:
    """Return the draw range, shifting a default bound away from an explicit one."""
    default_low, default_high = DEFAULT_INT_RANGE if is_integer else DEFAULT_FLOAT_RANGE
    span = default_high - default_low
    low, high = node.minimum, node.maximum

    if low is not None and high is not None:
        if low > high:
            raise SchemaError(f"minimum ({low}) exceeds maximum ({high})")
        return low, high
    if low is not None:
        return low, max(default_high, low + span)
    if high is not None:
        return min(default_low, high - span), high
    return default_low, default_high


def lookup_status(responses: dict[Any, Any], response_code: str | int) -> Any:
    """Return the response declared for *response_code* (string or YAML int key)."""
    code = str(response_code)
    if code in responses:
        return responses[code]
    if code.isascii() and code.isdecimal():
        return responses.get(int(code))
    return None


def first_content_schema(message: dict[str, Any] | None) -> Any:
    """Return the schema of the first declared content type, or ``None``."""
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    if not isinstance(content, dict) or not content:
        return None
    media = next(iter(content.values()))
    if not isinstance(media, dict):
        return None
    return media.get("schema")


def generate_example(
    schema: Any,
    document: dict[str, Any] | None = None,
    options: GenerationOptions | None = None,
    seed: int = DEFAULT_SEED,
) -> Any:
    """Generate one example for *schema* with a freshly seeded generator."""
    return ExampleGenerator(document, seed=seed).generate(schema, options)
