"""Remux executors."""

from tracks_swapper.executor.interface import ExecutorResult, SwapSettings
from tracks_swapper.executor.mkvmerge import MkvmergeExecutor, create_output_path

__all__ = [
    "ExecutorResult",
    "MkvmergeExecutor",
    "SwapSettings",
    "create_output_path",
]
