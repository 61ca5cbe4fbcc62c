"""Harness configuration management using pydantic-settings."""
from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings

from src.shared.constants import DEFAULT_ARRAY_MAX, DEFAULT_ARRAY_MIN, DEFAULT_SEED


class SharedConfig(BaseSettings):
    """Base configuration shared across harness entry points."""
    log_level: str = Field(default="info", validation_alias="LOG_LEVEL")
    spec_path: str = Field(
        default="./api-docs/openapi.yaml", validation_alias="OPENAPI_SPEC_PATH"
    )

    model_config = {
        "populate_by_name": True,
        "extra": "ignore",
    }


class SynthesisConfig(SharedConfig):
    """Configuration for example synthesis and test data export."""
    test_data_dir: str = Field(default="./test/data", validation_alias="TEST_DATA_DIR")
    seed: int = Field(default=DEFAULT_SEED, validation_alias="TEST_DATA_SEED")
    array_min: int = Field(
        default=DEFAULT_ARRAY_MIN, ge=0, validation_alias="TEST_DATA_ARRAY_MIN"
    )
    array_max: int = Field(
        default=DEFAULT_ARRAY_MAX, ge=0, validation_alias="TEST_DATA_ARRAY_MAX"
    )


class ValidationConfig(SharedConfig):
    """Configuration for document validation and linting."""
    strict: bool = Field(default=True, validation_alias="VALIDATION_STRICT")
    ignored_rules: list[str] = Field(
        default_factory=list, validation_alias="VALIDATION_IGNORE"
    )
