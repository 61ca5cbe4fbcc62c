"""Command-line entry point for the API test harness.

Commands::

    api-harness validate [SPEC]
    api-harness lint [SPEC] [--strict/--no-strict]
    api-harness generate PATH METHOD [--status 200] [--request] [--spec SPEC]
    api-harness export [--spec SPEC] [--out DIR] [--format json|yaml]
    api-harness check PATH METHOD STATUS [--body FILE] [--header NAME:VALUE]

``SPEC`` defaults to ``OPENAPI_SPEC_PATH``; every other default comes from
the environment through :mod:`src.shared.config`.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, List, Optional

import typer

from src.harness import display
from src.harness.example_exporter import ExampleExporter
from src.harness.openapi_validator import validate_openapi
from src.harness.response_checker import ResponseChecker
from src.harness.spec_linter import lint_document
from src.harness.spec_loader import load_document
from src.shared.config import SharedConfig, SynthesisConfig, ValidationConfig
from src.shared.constants import HARNESS_SERVICE_NAME
from src.shared.errors import AppError
from src.shared.logging import run_context, setup_logging
from src.shared.models.contracts import GenerationOptions
from src.synthesis.example_generator import ExampleGenerator

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="api-harness",
    help="Validate OpenAPI documents and synthesize test data from their schemas.",
    no_args_is_help=True,
)


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override LOG_LEVEL."),
) -> None:
    """Configure structured logging before any command runs."""
    level = log_level or SharedConfig().log_level
    setup_logging(HARNESS_SERVICE_NAME, level)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command()
def validate(
    spec: Optional[Path] = typer.Argument(None, help="Root OpenAPI file."),
) -> None:
    """Validate the assembled document structurally."""
    spec_path = _spec_path(spec)
    with run_context():
        document = _load(spec_path)
        result = validate_openapi(document)

    display.print_validation_result(result, source=str(spec_path))
    if not result.valid:
        raise typer.Exit(code=1)


@app.command()
def lint(
    spec: Optional[Path] = typer.Argument(None, help="Root OpenAPI file."),
    strict: Optional[bool] = typer.Option(
        None, "--strict/--no-strict", help="Fail on warnings (default: VALIDATION_STRICT)."
    ),
) -> None:
    """Check naming, descriptions, security schemes and response schemas."""
    config = ValidationConfig()
    with run_context():
        document = _load(_spec_path(spec))
        report = lint_document(
            document,
            strict=config.strict if strict is None else strict,
            ignored_rules=config.ignored_rules,
        )

    display.print_lint_report(report)
    if not report.passed:
        raise typer.Exit(code=1)


@app.command()
def generate(
    path: str = typer.Argument(..., help="Templated path, e.g. /assets/{id}."),
    method: str = typer.Argument(..., help="HTTP method."),
    status: str = typer.Option("200", "--status", help="Response code to synthesize."),
    request: bool = typer.Option(False, "--request", help="Synthesize the request body instead."),
    spec: Optional[Path] = typer.Option(None, "--spec", help="Root OpenAPI file."),
    seed: Optional[int] = typer.Option(None, "--seed", help="Override TEST_DATA_SEED."),
) -> None:
    """Print one synthesized example for an operation."""
    config = SynthesisConfig()
    with run_context():
        document = _load(_spec_path(spec))
        generator = _generator(document, config, seed)
        try:
            if request:
                data = generator.generate_request_body(path, method)
            else:
                data = generator.generate_for_endpoint(path, method, status)
        except AppError as exc:
            display.print_error_panel(exc.detail)
            raise typer.Exit(code=1)

    display.print_example(data)


@app.command("export")
def export_data(
    spec: Optional[Path] = typer.Option(None, "--spec", help="Root OpenAPI file."),
    out: Optional[Path] = typer.Option(None, "--out", help="Override TEST_DATA_DIR."),
    fmt: str = typer.Option("json", "--format", help="json or yaml."),
    seed: Optional[int] = typer.Option(None, "--seed", help="Override TEST_DATA_SEED."),
) -> None:
    """Write examples for every response of every operation."""
    config = SynthesisConfig()
    if fmt not in ("json", "yaml"):
        display.print_error_panel(f"Unsupported format: {fmt}")
        raise typer.Exit(code=2)

    with run_context():
        document = _load(_spec_path(spec))
        exporter = ExampleExporter(
            _generator(document, config, seed),
            out or Path(config.test_data_dir),
        )
        summary = exporter.export_all(fmt=fmt)

    display.print_export_summary(summary)


@app.command()
def check(
    path: str = typer.Argument(..., help="Templated path, e.g. /assets/{id}."),
    method: str = typer.Argument(..., help="HTTP method."),
    status: str = typer.Argument(..., help="Status code the server answered with."),
    body: Optional[Path] = typer.Option(None, "--body", help="JSON file with the response body."),
    header: List[str] = typer.Option([], "--header", help="Response header as NAME:VALUE."),
    spec: Optional[Path] = typer.Option(None, "--spec", help="Root OpenAPI file."),
) -> None:
    """Check a recorded response against the document."""
    headers: dict[str, str] = {}
    for item in header:
        name, _, value = item.partition(":")
        headers[name.strip()] = value.strip()

    payload: Any = None
    if body is not None:
        try:
            payload = json.loads(body.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            display.print_error_panel(f"Cannot read response body {body}: {exc}")
            raise typer.Exit(code=2)

    with run_context():
        document = _load(_spec_path(spec))
        try:
            result = ResponseChecker(document).check(path, method, status, headers, payload)
        except AppError as exc:
            display.print_error_panel(exc.detail)
            raise typer.Exit(code=1)

    display.print_conformance_result(result)
    if not result.compliant:
        raise typer.Exit(code=1)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _spec_path(spec: Path | None) -> Path:
    return spec if spec is not None else Path(SharedConfig().spec_path)


def _load(spec_path: Path) -> dict[str, Any]:
    try:
        return load_document(spec_path)
    except AppError as exc:
        display.print_error_panel(exc.detail)
        raise typer.Exit(code=1)


def _generator(
    document: dict[str, Any], config: SynthesisConfig, seed: int | None
) -> ExampleGenerator:
    try:
        options = GenerationOptions(array_min=config.array_min, array_max=config.array_max)
    except ValueError as exc:
        display.print_error_panel(f"Invalid array bounds: {exc}")
        raise typer.Exit(code=2)
    return ExampleGenerator(
        document,
        seed=config.seed if seed is None else seed,
        options=options,
    )


if __name__ == "__main__":
    app()
