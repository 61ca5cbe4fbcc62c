"""Custom exception classes for the harness."""
from __future__ import annotations


class AppError(Exception):
    """Base application error."""

    def __init__(self, detail: str, status_code: int = 500) -> None:
        self.detail = detail
        self.status_code = status_code
        super().__init__(detail)


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(self, detail: str = "Resource not found") -> None:
        super().__init__(detail=detail, status_code=404)


class ParsingError(AppError):
    """Parsing error (400)."""

    def __init__(self, detail: str = "Parsing error") -> None:
        super().__init__(detail=detail, status_code=400)


class SchemaError(AppError):
    """Schema error (422)."""

    def __init__(self, detail: str = "Schema error") -> None:
        super().__init__(detail=detail, status_code=422)


class UnresolvedReferenceError(AppError):
    """A ``$ref`` pointer cannot be dereferenced against the document."""

    def __init__(self, pointer: str, segment: str | None = None) -> None:
        self.pointer = pointer
        self.segment = segment
        detail = f"Invalid reference: {pointer}"
        if segment is not None:
            detail += f" (segment '{segment}' not found)"
        super().__init__(detail=detail, status_code=422)


class CyclicReferenceError(AppError):
    """A ``$ref`` chain revisits a pointer that is already being resolved."""

    def __init__(self, pointer: str) -> None:
        self.pointer = pointer
        super().__init__(
            detail=f"Cyclic reference: {pointer}", status_code=422
        )


class RecursiveReferenceError(CyclicReferenceError):
    """A schema refers back to one of its own ancestors during generation."""


class UnknownEndpointError(NotFoundError):
    """A path / method / response code triple is absent from the document."""

    def __init__(
        self, path: str, method: str, response_code: str | None = None
    ) -> None:
        self.path = path
        self.method = method
        self.response_code = response_code
        if response_code is None:
            detail = f"Endpoint {method.upper()} {path} not found in the OpenAPI spec"
        else:
            detail = (
                f"Response code {response_code} not found for "
                f"{method.upper()} {path}"
            )
        super().__init__(detail=detail)


class SpecLoadError(ParsingError):
    """The root document or one of its fragment files cannot be loaded."""

    def __init__(self, detail: str = "Failed to load OpenAPI specification") -> None:
        super().__init__(detail=detail)
