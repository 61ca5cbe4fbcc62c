"""Shared constants used across the harness."""
from __future__ import annotations

# Application version
VERSION: str = "1.0.0"

# Service name used for structured log entries
HARNESS_SERVICE_NAME: str = "api-test-harness"

# HTTP methods that may appear as operations under a path item
HTTP_METHODS: list[str] = [
    "get", "post", "put", "delete", "patch", "head", "options", "trace",
]

# Methods for which test data is exported
EXPORT_METHODS: list[str] = ["get", "post", "put", "delete", "patch"]

# JSON Reference key
REF_KEY: str = "$ref"

# Pattern that is treated as an implicit ``format: uuid``
UUID_PATTERN: str = (
    "^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)

# Example synthesis defaults
DEFAULT_SEED: int = 42
DEFAULT_ARRAY_MIN: int = 1
DEFAULT_ARRAY_MAX: int = 3
DEFAULT_MIN_LENGTH: int = 1
DEFAULT_MAX_LENGTH: int = 100
DEFAULT_INT_RANGE: tuple[int, int] = (1, 1000)
DEFAULT_FLOAT_RANGE: tuple[float, float] = (0.1, 1000.0)
PASSWORD_LENGTH: int = 12
STRING_PAD_CHAR: str = "x"

# Responses that never carry a body
NO_CONTENT_STATUS: str = "204"
