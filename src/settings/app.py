"""Application settings powered by Pydantic BaseSettings."""

import logging
from typing import Annotated, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.export.constants import METRICS_RESERVOIR_SIZE


LogLevelName = Literal["DEBUG", "INFO", "WARNING", "ERROR"]


class ExportSettings(BaseSettings):
    """Centralized environment configuration for the export stage."""

    model_config = SettingsConfigDict(
        env_prefix="HTTP_EXPORT_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: LogLevelName = "INFO"
    json_logs: bool = True
    metrics_reservoir_size: Annotated[int, Field(ge=1, le=1_000_000)] = (
        METRICS_RESERVOIR_SIZE
    )

    @property
    def log_level_value(self) -> int:
        """Return the numeric logging level."""
        return logging.getLevelNamesMapping()[self.log_level]


def get_settings() -> ExportSettings:
    """Get a settings instance."""
    return ExportSettings()
