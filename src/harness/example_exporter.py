"""Export of synthesized response examples as test data files.

For every operation (``get``/``post``/``put``/``delete``/``patch``) and every
declared response code except ``204`` an example body is generated.  Each
case is written to ``testdata_<operationId>_<code>.<fmt>`` and all cases
together to ``all_test_data.<fmt>``.

A case that fails to generate (broken reference, unsatisfiable schema) is
logged and recorded in the summary; the remaining cases are still exported.
"""
from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any

import yaml

from src.shared.constants import EXPORT_METHODS, NO_CONTENT_STATUS
from src.shared.errors import AppError
from src.shared.models.contracts import ExportFailure, ExportSummary
from src.synthesis.example_generator import ExampleGenerator

logger = logging.getLogger(__name__)

_PATH_CHARS_RE = re.compile(r"[{}/\-]")
_AGGREGATE_NAME = "all_test_data"


class ExampleExporter:
    """Writes generated examples for a whole document to *output_dir*."""

    def __init__(self, generator: ExampleGenerator, output_dir: Path | str) -> None:
        self._generator = generator
        self._output_dir = Path(output_dir)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def export_all(self, fmt: str = "json") -> ExportSummary:
        """Generate and save examples for every response in the document."""
        if fmt not in ("json", "yaml"):
            raise ValueError(f"Unsupported export format: {fmt}")

        summary = ExportSummary(output_dir=str(self._output_dir), format=fmt)
        paths = self._generator.document.get("paths") or {}

        for path, path_item in paths.items():
            if not isinstance(path_item, dict):
                continue
            for method, operation in path_item.items():
                if method not in EXPORT_METHODS or not isinstance(operation, dict):
                    continue
                self._export_operation(str(path), method, operation, summary)

        if summary.cases:
            summary.files.append(self.save(_AGGREGATE_NAME, summary.cases, fmt))

        logger.info(
            "Generated test data for %d test cases (%d failures)",
            summary.case_count,
            len(summary.failures),
        )
        return summary

    def save(self, filename: str, data: Any, fmt: str = "json") -> str:
        """Write *data* to ``<output_dir>/<filename>.<fmt>`` and return the path."""
        self._output_dir.mkdir(parents=True, exist_ok=True)
        file_path = self._output_dir / f"{filename}.{fmt}"

        if fmt == "yaml":
            content = yaml.safe_dump(data, sort_keys=False, allow_unicode=True, indent=2)
        else:
            content = json.dumps(data, indent=2)

        file_path.write_text(content, encoding="utf-8")
        logger.debug("Test data saved to %s", file_path)
        return str(file_path)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _export_operation(
        self,
        path: str,
        method: str,
        operation: dict[str, Any],
        summary: ExportSummary,
    ) -> None:
        operation_id = operation.get("operationId") or fallback_operation_id(path, method)

        for response_code in operation.get("responses") or {}:
            code = str(response_code)
            if code == NO_CONTENT_STATUS:
                continue

            case = f"{operation_id}_{code}"
            try:
                data = self._generator.generate_for_endpoint(path, method, code)
            except AppError as exc:
                logger.error(
                    "Error generating test data for %s %s (%s): %s",
                    method.upper(), path, code, exc.detail,
                )
                summary.failures.append(ExportFailure(case=case, error=exc.detail))
                continue

            if data is None:
                continue
            summary.cases[case] = data
            summary.files.append(self.save(f"testdata_{case}", data, summary.format))


def fallback_operation_id(path: str, method: str) -> str:
    """Build ``GET__assets__id_`` style ids for operations without one."""
    return f"{method.upper()}_{_PATH_CHARS_RE.sub('_', path)}"
