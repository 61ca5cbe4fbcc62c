"""OpenAPI document validator.

Validates OpenAPI 3.0.x and 3.1.x documents using openapi-spec-validator
for structural validation and the harness reference resolver for a sweep of
every local ``$ref`` pointer.
"""
from __future__ import annotations

import logging
from typing import Any, Iterator

from openapi_spec_validator import OpenAPIV30SpecValidator, OpenAPIV31SpecValidator

from src.shared.constants import REF_KEY
from src.shared.errors import CyclicReferenceError, UnresolvedReferenceError
from src.shared.models.contracts import ValidationResult
from src.synthesis.reference_resolver import ReferenceResolver

logger = logging.getLogger(__name__)


def validate_openapi(spec: dict[str, Any]) -> ValidationResult:
    """Validate an assembled OpenAPI document.

    Args:
        spec: A dictionary representing the OpenAPI document.

    Returns:
        ValidationResult with valid=True/False, errors list, and warnings list.
    """
    errors: list[str] = []
    warnings: list[str] = []

    # ------------------------------------------------------------------
    # 1. Basic structural pre-checks
    # ------------------------------------------------------------------
    if not isinstance(spec, dict):
        return ValidationResult(
            valid=False,
            errors=["Spec must be a JSON object (dict), got " + type(spec).__name__],
            warnings=warnings,
        )

    if not spec:
        return ValidationResult(
            valid=False,
            errors=["Spec is an empty object"],
            warnings=warnings,
        )

    openapi_version_raw = spec.get("openapi")
    if openapi_version_raw is None:
        return ValidationResult(
            valid=False,
            errors=["Missing required 'openapi' key in specification"],
            warnings=warnings,
        )

    # ------------------------------------------------------------------
    # 2. Version string validation
    # ------------------------------------------------------------------
    if not isinstance(openapi_version_raw, str):
        return ValidationResult(
            valid=False,
            errors=[
                f"'openapi' key must be a string, got {type(openapi_version_raw).__name__}"
            ],
            warnings=warnings,
        )

    openapi_version: str = openapi_version_raw.strip()

    if not (openapi_version.startswith("3.0") or openapi_version.startswith("3.1")):
        return ValidationResult(
            valid=False,
            errors=[
                f"Unsupported OpenAPI version '{openapi_version}'. "
                "Only 3.0.x and 3.1.x are supported."
            ],
            warnings=warnings,
        )

    # ------------------------------------------------------------------
    # 3. $ref sweep via the reference resolver
    # ------------------------------------------------------------------
    external = _check_references(spec, errors, warnings)

    # ------------------------------------------------------------------
    # 4. Structural validation via openapi-spec-validator
    # ------------------------------------------------------------------
    if errors:
        # The structural validator dereferences pointers itself and cannot
        # run over a document with broken ones.
        warnings.append("Structural validation skipped: unresolved references")
    elif external:
        warnings.append("Structural validation skipped: external references")
    else:
        _run_spec_validator(spec, openapi_version, errors)

    logger.info(
        "Validated OpenAPI %s document: %d errors, %d warnings",
        openapi_version,
        len(errors),
        len(warnings),
    )
    return ValidationResult(
        valid=len(errors) == 0,
        errors=errors,
        warnings=warnings,
    )


# ======================================================================
# Internal helpers
# ======================================================================


def _run_spec_validator(
    spec: dict[str, Any],
    openapi_version: str,
    errors: list[str],
) -> None:
    """Run openapi-spec-validator against the spec, appending to *errors*."""
    try:
        if openapi_version.startswith("3.1"):
            validator_cls = OpenAPIV31SpecValidator
        else:
            validator_cls = OpenAPIV30SpecValidator

        # iter_errors yields every validation error instead of raising on
        # the first one, giving the caller a complete picture.
        validator = validator_cls(spec)
        for error in validator.iter_errors():
            path_str = " -> ".join(str(p) for p in error.absolute_path) if error.absolute_path else ""
            if path_str:
                errors.append(f"{error.message} (at {path_str})")
            else:
                errors.append(str(error.message))
    except (ValueError, KeyError, TypeError) as exc:
        errors.append(f"Unexpected error during spec validation: {exc}")


def _check_references(
    spec: dict[str, Any],
    errors: list[str],
    warnings: list[str],
) -> int:
    """Dereference every ``$ref`` in the document once.

    Broken and alias-cyclic local pointers are errors.  External references
    (other files or URLs) are not followed and only produce a warning.
    Returns the number of external references seen.
    """
    resolver = ReferenceResolver(spec)
    checked: set[str] = set()
    external = 0

    for location, pointer in iter_references(spec):
        if pointer in checked:
            continue
        checked.add(pointer)

        if not pointer.startswith("#"):
            warnings.append(f"External reference not checked: {pointer} (at {location})")
            external += 1
            continue
        try:
            resolver.resolve({REF_KEY: pointer})
        except (UnresolvedReferenceError, CyclicReferenceError) as exc:
            errors.append(f"{exc.detail} (at {location})")
    return external


def iter_references(node: Any, location: str = "#") -> Iterator[tuple[str, str]]:
    """Yield ``(location, pointer)`` for every string ``$ref`` below *node*."""
    if isinstance(node, dict):
        ref = node.get(REF_KEY)
        if isinstance(ref, str):
            yield location, ref
        for key, value in node.items():
            if key == REF_KEY:
                continue
            segment = str(key).replace("~", "~0").replace("/", "~1")
            yield from iter_references(value, f"{location}/{segment}")
    elif isinstance(node, list):
        for index, item in enumerate(node):
            yield from iter_references(item, f"{location}/{index}")
