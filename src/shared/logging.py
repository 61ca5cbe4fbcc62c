"""Structured JSON logging with run_id support."""
from __future__ import annotations

import contextlib
import contextvars
import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Iterator

# Context variable for the current harness run
run_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "run_id", default=""
)


class JSONFormatter(logging.Formatter):
    """Custom JSON log formatter."""

    def __init__(self, service_name: str = "unknown") -> None:
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "service_name": self.service_name,
            "run_id": run_id_var.get(""),
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = str(record.exc_info[1])
        return json.dumps(log_entry)


def setup_logging(service_name: str, level: str = "INFO") -> logging.Logger:
    """Configure structured JSON logging for the harness.

    The handler is attached to the ``src`` package logger so that every
    module-level ``logging.getLogger(__name__)`` logger inherits it.

    Args:
        service_name: Name of the service for log entries.
        level: Log level string (e.g. "INFO", "DEBUG").

    Returns:
        Configured logger instance.
    """
    logger = logging.getLogger("src")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Remove existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter(service_name=service_name))
    logger.addHandler(handler)

    return logger


@contextlib.contextmanager
def run_context(run_id: str | None = None) -> Iterator[str]:
    """Set a run_id for every log entry emitted inside the block."""
    token = run_id_var.set(run_id or str(uuid.uuid4()))
    try:
        yield run_id_var.get()
    finally:
        run_id_var.reset(token)
