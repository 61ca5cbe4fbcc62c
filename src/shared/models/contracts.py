"""Harness Pydantic v2 data models."""
from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, model_validator

from src.shared.constants import DEFAULT_ARRAY_MAX, DEFAULT_ARRAY_MIN


class Severity(str, Enum):
    """Severity of a lint issue or conformance violation."""
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class GenerationOptions(BaseModel):
    """Immutable options consulted at every recursive generation step."""
    array_min: int = Field(default=DEFAULT_ARRAY_MIN, ge=0)
    array_max: int = Field(default=DEFAULT_ARRAY_MAX, ge=0)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def check_bounds(self) -> GenerationOptions:
        if self.array_min > self.array_max:
            raise ValueError(
                f"array_min ({self.array_min}) must not exceed array_max ({self.array_max})"
            )
        return self


class ValidationResult(BaseModel):
    """Result of validating an OpenAPI document."""
    valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class LintIssue(BaseModel):
    """A single style rule violation found in a document."""
    rule: str
    location: str
    message: str
    severity: Severity = Severity.ERROR

    model_config = {"from_attributes": True}


class LintReport(BaseModel):
    """All lint issues found in a document."""
    issues: list[LintIssue] = Field(default_factory=list)
    strict: bool = True

    model_config = {"from_attributes": True}

    @property
    def errors(self) -> list[LintIssue]:
        return [i for i in self.issues if i.severity == Severity.ERROR]

    @property
    def warnings(self) -> list[LintIssue]:
        return [i for i in self.issues if i.severity == Severity.WARNING]

    @property
    def passed(self) -> bool:
        """Strict mode fails on warnings as well as errors."""
        if self.strict:
            return not self.errors and not self.warnings
        return not self.errors


class ConformanceViolation(BaseModel):
    """A contract violation found in a recorded response."""
    field: str
    expected: str
    actual: str
    severity: Severity = Severity.ERROR

    model_config = {"from_attributes": True}


class ConformanceResult(BaseModel):
    """Result of checking one recorded response against the document."""
    endpoint_path: str
    method: str
    status_code: str
    compliant: bool
    violations: list[ConformanceViolation] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class ExportFailure(BaseModel):
    """A test case that could not be generated during export."""
    case: str
    error: str


class ExportSummary(BaseModel):
    """Outcome of a test data export run."""
    output_dir: str
    format: str = Field(default="json", pattern=r"^(json|yaml)$")
    cases: dict[str, Any] = Field(default_factory=dict)
    files: list[str] = Field(default_factory=list)
    failures: list[ExportFailure] = Field(default_factory=list)

    @property
    def case_count(self) -> int:
        return len(self.cases)
