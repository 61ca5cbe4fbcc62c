"""Style and consistency rules for OpenAPI documents.

Structural validity is covered by :mod:`src.harness.openapi_validator`; the
rules here check the conventions the harness expects on top of that:
descriptive operations, naming, security scheme shape and resolvable
response schemas.  Each rule is a plain function yielding
:class:`LintIssue` objects, registered in ``_RULES``.
"""
from __future__ import annotations

import logging
import re
from typing import Any, Callable, Iterator

from src.shared.constants import HTTP_METHODS, NO_CONTENT_STATUS
from src.shared.errors import CyclicReferenceError, UnresolvedReferenceError
from src.shared.models.contracts import LintIssue, LintReport, Severity
from src.synthesis.reference_resolver import ReferenceResolver, is_reference

logger = logging.getLogger(__name__)

_OPERATION_ID_RE = re.compile(r"^[a-zA-Z0-9.\-_]+$")
_PARAMETER_NAME_RE = re.compile(r"^[a-z][a-zA-Z0-9]*$|^[a-z][a-z0-9]*(_[a-z0-9]+)*$")
_PATH_TEMPLATE_RE = re.compile(r"\{([^}]+)\}")
_PARAMETER_LOCATIONS = ("query", "header", "path", "cookie")
_API_KEY_LOCATIONS = ("header", "query", "cookie")

Rule = Callable[[dict[str, Any], ReferenceResolver], Iterator[LintIssue]]


def lint_document(
    document: dict[str, Any],
    strict: bool = True,
    ignored_rules: list[str] | None = None,
) -> LintReport:
    """Run every registered rule over *document*.

    Args:
        document: The assembled OpenAPI document.
        strict: When ``True`` the report fails on warnings too.
        ignored_rules: Rule or issue names to skip, e.g. ``"parameter_naming"``.

    Returns:
        LintReport holding every issue found.
    """
    ignored = set(ignored_rules or ())
    resolver = ReferenceResolver(document)
    issues: list[LintIssue] = []

    for name, rule in _RULES.items():
        if name in ignored:
            logger.debug("Skipping ignored lint rule %s", name)
            continue
        issues.extend(issue for issue in rule(document, resolver) if issue.rule not in ignored)

    logger.info("Lint found %d issues", len(issues))
    return LintReport(issues=issues, strict=strict)


# ======================================================================
# Rules
# ======================================================================


def _required_top_level(document: dict[str, Any], resolver: ReferenceResolver) -> Iterator[LintIssue]:
    for field in ("info", "paths"):
        if field not in document:
            yield _issue("required_top_level", "#", f"Missing top-level field '{field}'")


def _info_fields(document: dict[str, Any], resolver: ReferenceResolver) -> Iterator[LintIssue]:
    info = document.get("info")
    if not isinstance(info, dict):
        return
    for field in ("title", "version", "description"):
        if not _non_empty_string(info.get(field)):
            yield _issue("info_fields", "#/info", f"info.{field} must be a non-empty string")


def _path_format(document: dict[str, Any], resolver: ReferenceResolver) -> Iterator[LintIssue]:
    for path in _paths(document):
        if not str(path).startswith("/"):
            yield _issue("path_format", f"#/paths/{path}", f"Path '{path}' should start with a forward slash")


def _operation_fields(document: dict[str, Any], resolver: ReferenceResolver) -> Iterator[LintIssue]:
    for path, method, operation in _operations(document, resolver):
        location = f"{method.upper()} {path}"
        for field in ("summary", "description"):
            if not _non_empty_string(operation.get(field)):
                yield _issue("operation_fields", location, f"Operation must have a non-empty '{field}'")
        responses = operation.get("responses")
        if not isinstance(responses, dict) or not responses:
            yield _issue("operation_fields", location, "Operation must declare at least one response")

        operation_id = operation.get("operationId")
        if operation_id is not None and not _OPERATION_ID_RE.match(str(operation_id)):
            yield _issue(
                "operation_id",
                location,
                f"operationId '{operation_id}' should be alphanumeric with dots, hyphens, or underscores",
            )

        tags = operation.get("tags")
        if tags is not None:
            if not isinstance(tags, list) or not tags:
                yield _issue("tags", location, "tags must be a non-empty list", Severity.WARNING)
            elif not all(_non_empty_string(tag) for tag in tags):
                yield _issue("tags", location, "Every tag must be a non-empty string", Severity.WARNING)


def _parameters(document: dict[str, Any], resolver: ReferenceResolver) -> Iterator[LintIssue]:
    for path, method, operation in _operations(document, resolver):
        location = f"{method.upper()} {path}"
        declared_path_params: set[str] = set()

        for param in _operation_parameters(document, path, operation, resolver):
            name = param.get("name")
            if not _non_empty_string(name):
                yield _issue("parameter_shape", location, "Parameter is missing its 'name'")
                continue
            where = param.get("in")
            if where not in _PARAMETER_LOCATIONS:
                yield _issue("parameter_shape", location, f"Parameter '{name}' has invalid location {where!r}")
            if "schema" not in param and "content" not in param:
                yield _issue("parameter_shape", location, f"Parameter '{name}' must have either schema or content")
            if not _PARAMETER_NAME_RE.match(name) and where != "header":
                yield _issue(
                    "parameter_naming",
                    location,
                    f"Parameter name '{name}' should be in camelCase or snake_case",
                    Severity.WARNING,
                )
            if where == "path":
                declared_path_params.add(name)
                if param.get("required") is not True:
                    yield _issue("path_parameters_required", location, f"Path parameter '{name}' must be required")

        for template_name in _PATH_TEMPLATE_RE.findall(str(path)):
            if template_name not in declared_path_params:
                yield _issue(
                    "path_parameters_required",
                    location,
                    f"Path template '{{{template_name}}}' has no matching path parameter",
                )


def _security_schemes(document: dict[str, Any], resolver: ReferenceResolver) -> Iterator[LintIssue]:
    schemes = (document.get("components") or {}).get("securitySchemes") or {}
    for name, scheme in schemes.items():
        location = f"#/components/securitySchemes/{name}"
        try:
            scheme = _deref(scheme, resolver)
        except (UnresolvedReferenceError, CyclicReferenceError) as exc:
            yield _issue("security_schemes", location, exc.detail)
            continue
        scheme_type = scheme.get("type") if isinstance(scheme, dict) else None
        if not _non_empty_string(scheme_type):
            yield _issue("security_schemes", location, "Security scheme must declare a 'type'")
            continue
        if scheme_type == "http" and not _non_empty_string(scheme.get("scheme")):
            yield _issue("security_schemes", location, "http security scheme must declare 'scheme'")
        elif scheme_type == "oauth2" and not (isinstance(scheme.get("flows"), dict) and scheme["flows"]):
            yield _issue("security_schemes", location, "oauth2 security scheme must declare 'flows'")
        elif scheme_type == "apiKey":
            if not _non_empty_string(scheme.get("name")):
                yield _issue("security_schemes", location, "apiKey security scheme must declare 'name'")
            if scheme.get("in") not in _API_KEY_LOCATIONS:
                yield _issue("security_schemes", location, "apiKey security scheme 'in' must be header, query or cookie")


def _security_requirements(document: dict[str, Any], resolver: ReferenceResolver) -> Iterator[LintIssue]:
    schemes = (document.get("components") or {}).get("securitySchemes") or {}

    requirements: list[tuple[str, Any]] = [("#/security", document.get("security"))]
    for path, method, operation in _operations(document, resolver):
        requirements.append((f"{method.upper()} {path}", operation.get("security")))

    for location, security in requirements:
        for requirement in security or []:
            if not isinstance(requirement, dict):
                continue
            for scheme_name, scopes in requirement.items():
                try:
                    scheme = _deref(schemes.get(scheme_name), resolver)
                except (UnresolvedReferenceError, CyclicReferenceError):
                    # Reported by the security_schemes rule.
                    continue
                if not isinstance(scheme, dict):
                    yield _issue(
                        "no_undefined_security_schemes",
                        location,
                        f"Security scheme '{scheme_name}' is not defined",
                    )
                    continue
                if scheme.get("type") == "oauth2":
                    defined = _oauth2_scopes(scheme)
                    for scope in scopes or []:
                        if scope not in defined:
                            yield _issue(
                                "security_scopes",
                                location,
                                f"Scope '{scope}' is not defined in security scheme '{scheme_name}'",
                            )


def _response_schema_refs(document: dict[str, Any], resolver: ReferenceResolver) -> Iterator[LintIssue]:
    for path, method, operation in _operations(document, resolver):
        for status_code, response in (operation.get("responses") or {}).items():
            if str(status_code) == NO_CONTENT_STATUS:
                continue
            location = f"{method.upper()} {path} {status_code}"
            try:
                response = _deref(response, resolver)
            except (UnresolvedReferenceError, CyclicReferenceError) as exc:
                yield _issue("response_schema_refs", location, exc.detail)
                continue
            media = ((response or {}).get("content") or {}).get("application/json")
            if not isinstance(media, dict):
                continue
            schema = media.get("schema")
            if schema is None:
                yield _issue("response_schema_refs", location, f"Response schema for {status_code} should be defined")
                continue
            if is_reference(schema):
                try:
                    resolver.resolve(schema)
                except (UnresolvedReferenceError, CyclicReferenceError) as exc:
                    yield _issue("response_schema_refs", location, exc.detail)


_RULES: dict[str, Rule] = {
    "required_top_level": _required_top_level,
    "info_fields": _info_fields,
    "path_format": _path_format,
    "operation_fields": _operation_fields,
    "parameters": _parameters,
    "security_schemes": _security_schemes,
    "security_requirements": _security_requirements,
    "response_schema_refs": _response_schema_refs,
}


# ======================================================================
# Internal helpers
# ======================================================================


def _issue(rule: str, location: str, message: str, severity: Severity = Severity.ERROR) -> LintIssue:
    return LintIssue(rule=rule, location=location, message=message, severity=severity)


def _non_empty_string(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _paths(document: dict[str, Any]) -> dict[str, Any]:
    paths = document.get("paths")
    return paths if isinstance(paths, dict) else {}


def _deref(node: Any, resolver: ReferenceResolver) -> Any:
    return resolver.resolve(node) if is_reference(node) else node


def _operations(
    document: dict[str, Any], resolver: ReferenceResolver
) -> Iterator[tuple[str, str, dict[str, Any]]]:
    """Yield ``(path, method, operation)`` for every well-formed operation.

    Path items or operations whose ``$ref`` cannot be resolved are skipped
    here; the validator reports broken references.
    """
    for path, path_item in _paths(document).items():
        try:
            path_item = _deref(path_item, resolver)
        except (UnresolvedReferenceError, CyclicReferenceError):
            continue
        if not isinstance(path_item, dict):
            continue
        for method in HTTP_METHODS:
            operation = path_item.get(method)
            try:
                operation = _deref(operation, resolver)
            except (UnresolvedReferenceError, CyclicReferenceError):
                continue
            if isinstance(operation, dict):
                yield str(path), method, operation


def _operation_parameters(
    document: dict[str, Any],
    path: str,
    operation: dict[str, Any],
    resolver: ReferenceResolver,
) -> Iterator[dict[str, Any]]:
    """Yield path-level then operation-level parameters, dereferenced."""
    try:
        path_item = _deref(_paths(document).get(path), resolver)
    except (UnresolvedReferenceError, CyclicReferenceError):
        path_item = None
    path_level = path_item.get("parameters") if isinstance(path_item, dict) else None
    for param in list(path_level or []) + list(operation.get("parameters") or []):
        try:
            param = _deref(param, resolver)
        except (UnresolvedReferenceError, CyclicReferenceError):
            continue
        if isinstance(param, dict):
            yield param


def _oauth2_scopes(scheme: dict[str, Any]) -> set[str]:
    scopes: set[str] = set()
    for flow in (scheme.get("flows") or {}).values():
        if isinstance(flow, dict):
            scopes.update((flow.get("scopes") or {}).keys())
    return scopes
