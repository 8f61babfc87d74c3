"""Observability module for logging."""

from src.observability.logging import (
    bind_pipeline_context,
    clear_pipeline_context,
    configure_logging,
    get_logger,
)


__all__ = [
    "bind_pipeline_context",
    "clear_pipeline_context",
    "configure_logging",
    "get_logger",
]
