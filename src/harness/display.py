"""Rich-based terminal display for harness results.

Uses a module-level :class:`~rich.console.Console` singleton so that every
command shares the same output settings.
"""

from __future__ import annotations

import json
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from src.shared.models.contracts import (
    ConformanceResult,
    ExportSummary,
    LintReport,
    Severity,
    ValidationResult,
)

# ---------------------------------------------------------------------------
# Module-level Console singleton
# ---------------------------------------------------------------------------

_console = Console()

_SEVERITY_STYLES: dict[Severity, str] = {
    Severity.ERROR: "red",
    Severity.WARNING: "yellow",
    Severity.INFO: "dim",
}


# ---------------------------------------------------------------------------
# Display functions
# ---------------------------------------------------------------------------


def print_validation_result(result: ValidationResult, source: str = "") -> None:
    """Print a panel with the outcome of structural validation."""
    style = "green" if result.valid else "red"
    content = Text()
    content.append(f"Valid: {'YES' if result.valid else 'NO'}\n", style=f"bold {style}")
    if source:
        content.append("Spec: ", style="bold")
        content.append(f"{source}\n", style="cyan")
    for error in result.errors:
        content.append(f"  error: {error}\n", style="red")
    for warning in result.warnings:
        content.append(f"  warning: {warning}\n", style="yellow")

    _console.print(
        Panel(
            content,
            title="[bold]OpenAPI Validation[/bold]",
            border_style=style,
            expand=False,
        )
    )


def print_lint_report(report: LintReport) -> None:
    """Print a table with one row per lint issue."""
    if not report.issues:
        _console.print("[green]No lint issues found.[/green]")
        return

    table = Table(title="Lint Issues", show_header=True, header_style="bold magenta")
    table.add_column("Severity", justify="center", min_width=8)
    table.add_column("Rule", style="cyan", min_width=20)
    table.add_column("Location", min_width=20)
    table.add_column("Message")

    for issue in report.issues:
        style = _SEVERITY_STYLES.get(issue.severity, "")
        table.add_row(
            f"[{style}]{issue.severity.value.upper()}[/{style}]",
            issue.rule,
            issue.location,
            issue.message,
        )

    _console.print(table)
    verdict = "[green]PASSED[/green]" if report.passed else "[red]FAILED[/red]"
    _console.print(
        f"{verdict} ({len(report.errors)} errors, {len(report.warnings)} warnings,"
        f" strict={report.strict})"
    )


def print_conformance_result(result: ConformanceResult) -> None:
    """Print violations of one recorded response."""
    header = f"{result.method} {result.endpoint_path} -> {result.status_code}"
    if result.compliant and not result.violations:
        _console.print(f"[green]COMPLIANT[/green] {header}")
        return

    table = Table(title=header, show_header=True, header_style="bold magenta")
    table.add_column("Field", style="cyan")
    table.add_column("Expected")
    table.add_column("Actual")
    table.add_column("Severity", justify="center")
    for violation in result.violations:
        style = _SEVERITY_STYLES.get(violation.severity, "")
        table.add_row(
            violation.field,
            violation.expected,
            violation.actual,
            f"[{style}]{violation.severity.value}[/{style}]",
        )
    _console.print(table)


def print_example(data: Any) -> None:
    """Print a generated example as highlighted JSON."""
    _console.print_json(json.dumps(data))


def print_export_summary(summary: ExportSummary) -> None:
    """Print how many cases were exported and which failed."""
    style = "green" if not summary.failures else "yellow"
    content = Text()
    content.append(f"Test cases: {summary.case_count}\n", style=f"bold {style}")
    content.append(f"Files written: {len(summary.files)}\n")
    content.append("Output: ", style="bold")
    content.append(f"{summary.output_dir}\n", style="cyan")
    for failure in summary.failures:
        content.append(f"  {failure.case}: {failure.error}\n", style="red")

    _console.print(
        Panel(
            content,
            title="[bold]Test Data Export[/bold]",
            border_style=style,
            expand=False,
        )
    )


def print_error_panel(error: str | Exception) -> None:
    """Print an error message in a red Rich panel."""
    _console.print(
        Panel(
            Text(str(error), style="bold white"),
            title="[bold red]Error[/bold red]",
            border_style="red",
            expand=False,
        )
    )
