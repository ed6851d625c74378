"""Logging setup with JSON output, file rotation and per-file context."""

from tracks_swapper.logging.config import configure_logging
from tracks_swapper.logging.context import (
    FileContextFilter,
    file_context,
    format_file_id,
    get_file_context,
)
from tracks_swapper.logging.handlers import JSONFormatter

__all__ = [
    "FileContextFilter",
    "JSONFormatter",
    "configure_logging",
    "file_context",
    "format_file_id",
    "get_file_context",
]
