"""Application settings loading."""

from .app import ExportSettings, get_settings


__all__ = ["ExportSettings", "get_settings"]
