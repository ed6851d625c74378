"""Core utilities shared across MKV Tracks Swapper modules."""

from tracks_swapper.core.process_runner import (
    CANCELLED_MESSAGE,
    TIMEOUT_MESSAGE,
    CompletionCell,
    ProcessRunner,
    RunResult,
    resolve_program,
)

__all__ = [
    "CANCELLED_MESSAGE",
    "TIMEOUT_MESSAGE",
    "CompletionCell",
    "ProcessRunner",
    "RunResult",
    "resolve_program",
]
