"""Batch orchestration of the swap workflow."""

from tracks_swapper.workflow.processor import (
    BatchSummary,
    FileProcessor,
    FileResult,
    discover_files,
    get_max_workers,
    resolve_worker_count,
    run_batch,
)
from tracks_swapper.workflow.progress import ProgressTracker

__all__ = [
    "BatchSummary",
    "FileProcessor",
    "FileResult",
    "ProgressTracker",
    "discover_files",
    "get_max_workers",
    "resolve_worker_count",
    "run_batch",
]
