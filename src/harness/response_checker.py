"""Contract conformance checks for recorded API responses.

Checks a response the caller already obtained (from a mock or a live
deployment) against the document: the status code must be declared,
declared headers must be present and match their schemas, and the body must
validate against the response schema.

Schema validation is delegated to ``jsonschema``.  Response schemas keep
their ``$ref`` pointers; the document's ``components`` are embedded next to
the schema so that ``#/components/...`` pointers resolve inside the
validator, which also copes with recursive schemas.
"""
from __future__ import annotations

import logging
from typing import Any

import jsonschema

from src.shared.constants import REF_KEY
from src.shared.errors import UnknownEndpointError
from src.shared.models.contracts import ConformanceResult, ConformanceViolation, Severity
from src.synthesis.example_generator import first_content_schema
from src.synthesis.reference_resolver import ReferenceResolver, is_reference

logger = logging.getLogger(__name__)


class ResponseChecker:
    """Validates recorded responses against one OpenAPI document."""

    def __init__(self, document: dict[str, Any]) -> None:
        self._document = document
        self._resolver = ReferenceResolver(document)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def check(
        self,
        path: str,
        method: str,
        status_code: int | str,
        headers: dict[str, str] | None = None,
        body: Any = None,
    ) -> ConformanceResult:
        """Check one recorded response.

        Parameters
        ----------
        path:
            The templated path as declared in the document, e.g.
            ``"/assets/{id}"``.
        method:
            HTTP method, any case.
        status_code:
            Status code the server answered with.
        headers:
            Response headers (matched case-insensitively).
        body:
            The decoded response body, ``None`` when there was none.

        Raises
        ------
        UnknownEndpointError
            When *path* / *method* is not declared in the document.
        """
        code = str(status_code)
        operation = self._find_operation(path, method)
        violations: list[ConformanceViolation] = []

        response = self._match_response(operation.get("responses") or {}, code)
        if response is None:
            violations.append(ConformanceViolation(
                field="status",
                expected=f"one of {sorted(str(c) for c in (operation.get('responses') or {}))}",
                actual=code,
            ))
        else:
            if is_reference(response):
                response = self._resolver.resolve(response)
            violations.extend(self._check_headers(response, headers or {}))
            violations.extend(self._check_body(response, body))

        compliant = not any(v.severity == Severity.ERROR for v in violations)
        logger.debug(
            "Checked %s %s %s: %d violations",
            method.upper(), path, code, len(violations),
        )
        return ConformanceResult(
            endpoint_path=path,
            method=method.upper(),
            status_code=code,
            compliant=compliant,
            violations=violations,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _find_operation(self, path: str, method: str) -> dict[str, Any]:
        path_item = (self._document.get("paths") or {}).get(path)
        if is_reference(path_item):
            path_item = self._resolver.resolve(path_item)
        operation = path_item.get(method.lower()) if isinstance(path_item, dict) else None
        if is_reference(operation):
            operation = self._resolver.resolve(operation)
        if not isinstance(operation, dict):
            raise UnknownEndpointError(path, method)
        return operation

    @staticmethod
    def _match_response(responses: dict[Any, Any], code: str) -> Any:
        """Exact code first, then ``NXX`` ranges, then ``default``."""
        by_code = {str(key).upper(): value for key, value in responses.items()}
        for candidate in (code, f"{code[:1]}XX", "DEFAULT"):
            if candidate in by_code:
                return by_code[candidate]
        return None

    def _check_headers(
        self, response: dict[str, Any], headers: dict[str, str]
    ) -> list[ConformanceViolation]:
        violations: list[ConformanceViolation] = []
        received = {name.lower(): value for name, value in headers.items()}

        for name, header in (response.get("headers") or {}).items():
            if is_reference(header):
                header = self._resolver.resolve(header)
            header = header or {}
            field = f"headers.{name}"
            value = received.get(name.lower())

            if value is None:
                if header.get("required", False):
                    violations.append(ConformanceViolation(
                        field=field, expected="present (required)", actual="missing",
                    ))
                else:
                    violations.append(ConformanceViolation(
                        field=field, expected="present", actual="missing",
                        severity=Severity.INFO,
                    ))
                continue

            schema = header.get("schema")
            if schema is not None:
                violations.extend(
                    self._validate(_coerce_header(value, schema, self._resolver), schema, prefix=field)
                )
        return violations

    def _check_body(self, response: dict[str, Any], body: Any) -> list[ConformanceViolation]:
        schema = first_content_schema(response)
        if schema is None:
            if body not in (None, "", b""):
                return [ConformanceViolation(
                    field="body",
                    expected="no body",
                    actual=type(body).__name__,
                    severity=Severity.WARNING,
                )]
            return []
        return self._validate(body, schema, prefix="body")

    def _validate(self, instance: Any, schema: Any, prefix: str) -> list[ConformanceViolation]:
        validator = jsonschema.Draft202012Validator(
            self._embed_components(schema),
            format_checker=jsonschema.FormatChecker(),
        )
        violations: list[ConformanceViolation] = []
        for error in sorted(validator.iter_errors(instance), key=lambda e: [str(p) for p in e.absolute_path]):
            location = "".join(
                f"[{p}]" if isinstance(p, int) else f".{p}" for p in error.absolute_path
            )
            violations.append(ConformanceViolation(
                field=f"{prefix}{location}",
                expected=f"{error.validator}: {error.validator_value!r}",
                actual=error.message,
            ))
        return violations

    def _embed_components(self, schema: Any) -> Any:
        if not isinstance(schema, dict):
            return schema
        return {**schema, "components": self._document.get("components") or {}}


def _coerce_header(value: str, schema: dict[str, Any], resolver: ReferenceResolver) -> Any:
    """Convert a raw header string to the scalar type its schema declares."""
    if isinstance(schema, dict) and REF_KEY in schema:
        schema = resolver.resolve(schema)
    schema_type = schema.get("type") if isinstance(schema, dict) else None
    try:
        if schema_type == "integer":
            return int(value)
        if schema_type == "number":
            return float(value)
    except ValueError:
        return value
    if schema_type == "boolean" and value.lower() in ("true", "false"):
        return value.lower() == "true"
    return value
