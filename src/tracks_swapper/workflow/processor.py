"""Per-file swap workflow and parallel batch execution.

Each file runs through inspect (mkvinfo), parse, decide and remux
(mkvmerge) as one task on a thread pool. Failures are reported per file
and never stop sibling tasks; one shared threading.Event cancels the
batch and kills running children.
"""

from __future__ import annotations

import logging
import os
import threading
import time
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Protocol

from tracks_swapper.config.models import SwapperConfig
from tracks_swapper.core.process_runner import CANCELLED_MESSAGE
from tracks_swapper.domain.enums import RunStatus
from tracks_swapper.executor.interface import SwapSettings
from tracks_swapper.executor.mkvmerge import MkvmergeExecutor
from tracks_swapper.introspector.mkvinfo import MkvinfoIntrospector
from tracks_swapper.logging.context import file_context, format_file_id

module_logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS: tuple[str, ...] = (".mkv",)


@dataclass(frozen=True)
class FileResult:
    """Outcome of processing one file."""

    file_path: Path
    success: bool
    message: str = ""
    status: RunStatus | None = None
    """How the last external tool invocation resolved, if one ran."""

    tracks_found: int = 0
    output_path: Path | None = None
    swaps: tuple[str, ...] = ()
    duration_seconds: float = 0.0
    warnings: tuple[str, ...] = ()


@dataclass
class BatchSummary:
    """Results of a batch, in completion order."""

    results: list[FileResult] = field(default_factory=list)
    interrupted: bool = False
    duration_seconds: float = 0.0

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def fail_count(self) -> int:
        return sum(1 for r in self.results if not r.success)


class ProgressListener(Protocol):
    def start_file(self) -> None: ...

    def complete_file(self) -> None: ...


# =============================================================================
# Discovery and worker count
# =============================================================================


def discover_files(
    paths: Iterable[Path], extensions: Sequence[str] = DEFAULT_EXTENSIONS
) -> list[Path]:
    """Collect container files from files and directories.

    Files are kept when their extension matches (case-insensitive);
    directories are searched recursively. Missing paths are logged and
    skipped.

    Returns:
        Resolved, de-duplicated and sorted file paths.
    """
    wanted = {ext.casefold() for ext in extensions}
    files: set[Path] = set()

    for path in paths:
        path = Path(path).expanduser().resolve()
        if path.is_file():
            if path.suffix.casefold() in wanted:
                files.add(path)
            else:
                module_logger.info("Skipping %s: unsupported extension", path)
        elif path.is_dir():
            files.update(
                p
                for p in path.rglob("*")
                if p.is_file() and p.suffix.casefold() in wanted
            )
        else:
            module_logger.warning("Path does not exist: %s", path)

    return sorted(files)


def get_max_workers() -> int:
    """Maximum worker count: the number of CPU cores (minimum 1)."""
    return max(1, os.cpu_count() or 1)


def resolve_worker_count(requested: int | None, default: int) -> int:
    """Resolve effective worker count with capping.

    Args:
        requested: Worker count from CLI (None if not specified).
        default: Default worker count from configuration.
    """
    max_workers = get_max_workers()
    effective = requested if requested is not None else default

    if effective > max_workers:
        module_logger.warning(
            "Requested %d workers exceeds cap of %d CPU cores. Using %d.",
            effective,
            max_workers,
            max_workers,
        )
        return max_workers

    return max(1, effective)


# =============================================================================
# Per-file processing
# =============================================================================


class FileProcessor:
    """Inspect one file and put the preferred tracks first."""

    def __init__(
        self,
        introspector: MkvinfoIntrospector,
        executor: MkvmergeExecutor,
        logger: logging.Logger | None = None,
    ) -> None:
        self._introspector = introspector
        self._executor = executor
        self._logger = logger or module_logger

    @classmethod
    def from_config(
        cls, config: SwapperConfig, settings: SwapSettings
    ) -> FileProcessor:
        """Build a processor wired to the configured tools and timeouts."""
        use_embedded = config.tools.use_embedded_programs
        introspector = MkvinfoIntrospector(
            tool_path=config.tools.mkvinfo,
            timeout=config.timeouts.inspect_seconds,
            use_embedded_program=use_embedded,
        )
        executor = MkvmergeExecutor(
            settings,
            tool_path=config.tools.mkvmerge,
            timeout=config.timeouts.remux_seconds,
            use_embedded_program=use_embedded,
        )
        return cls(introspector, executor)

    def process_file(
        self, path: Path, cancel_event: threading.Event | None = None
    ) -> FileResult:
        """Process one file. Never raises; failures come back in the result."""
        start = time.monotonic()
        try:
            result = self._process(path, cancel_event)
        except Exception as e:
            self._logger.exception("Unexpected error processing %s", path)
            result = FileResult(
                file_path=path, success=False, message=f"Unexpected error: {e}"
            )

        duration = time.monotonic() - start
        result = replace(result, duration_seconds=duration)

        if result.success:
            self._logger.info("%s: %s (%.1fs)", path.name, result.message, duration)
        else:
            self._logger.error("%s: %s", path.name, result.message)
        return result

    def _process(self, path: Path, cancel_event: threading.Event | None) -> FileResult:
        if cancel_event is not None and cancel_event.is_set():
            return FileResult(
                file_path=path,
                success=False,
                message=CANCELLED_MESSAGE,
                status=RunStatus.CANCELLED,
            )

        inspection = self._introspector.read_tracks(path, cancel_event)
        for warning in inspection.warnings:
            self._logger.warning("%s: %s", path.name, warning)
        warnings = tuple(inspection.warnings)

        if not inspection.success or inspection.handle is None:
            return FileResult(
                file_path=path,
                success=False,
                message=inspection.error or "Unable to read tracks",
                status=inspection.status,
                warnings=warnings,
            )

        handle = inspection.handle
        outcome = self._executor.put_tracks_first(handle, cancel_event)
        return FileResult(
            file_path=path,
            success=outcome.success,
            message=outcome.message,
            status=outcome.status or inspection.status,
            tracks_found=len(handle.tracks),
            output_path=outcome.output_path,
            swaps=outcome.swaps,
            warnings=warnings,
        )


# =============================================================================
# Batch execution
# =============================================================================


def _run_one(
    processor: FileProcessor,
    path: Path,
    file_id: str,
    cancel_event: threading.Event,
    progress: ProgressListener | None,
) -> FileResult:
    if cancel_event.is_set():
        return FileResult(
            file_path=path,
            success=False,
            message=CANCELLED_MESSAGE,
            status=RunStatus.CANCELLED,
        )

    with file_context(file_id, path):
        # File mapping line so the full path can be found by file_id
        module_logger.info("=== FILE %s: %s", file_id, path)
        if progress is not None:
            progress.start_file()
        try:
            return processor.process_file(path, cancel_event)
        finally:
            if progress is not None:
                progress.complete_file()


def run_batch(
    paths: Sequence[Path],
    processor: FileProcessor,
    workers: int = 1,
    cancel_event: threading.Event | None = None,
    on_result: Callable[[FileResult], None] | None = None,
    progress: ProgressListener | None = None,
) -> BatchSummary:
    """Process files in parallel.

    Args:
        paths: Files to process.
        processor: Per-file processor shared by all workers.
        workers: Thread pool size.
        cancel_event: Shared cancellation signal; created if None.
        on_result: Called on the calling thread for each finished file.
        progress: Optional start/complete listener.

    Returns:
        BatchSummary. On Ctrl-C pending files are dropped, running ones are
        cancelled (their children killed) and ``interrupted`` is set.
    """
    cancel_event = cancel_event or threading.Event()
    summary = BatchSummary()
    reported: set[Future[FileResult]] = set()
    start = time.monotonic()

    def report(future: Future[FileResult], path: Path) -> None:
        reported.add(future)
        try:
            result = future.result()
        except Exception as e:
            module_logger.exception("Unexpected error for %s: %s", path, e)
            result = FileResult(
                file_path=path, success=False, message=f"Unexpected error: {e}"
            )
        summary.results.append(result)
        if on_result is not None:
            on_result(result)

    width = max(2, len(str(len(paths))))
    executor = ThreadPoolExecutor(max_workers=max(1, workers))
    with executor:
        futures = {
            executor.submit(
                _run_one,
                processor,
                path,
                format_file_id(index, width),
                cancel_event,
                progress,
            ): path
            for index, path in enumerate(paths, start=1)
        }

        try:
            for future in as_completed(futures):
                report(future, futures[future])
        except KeyboardInterrupt:
            module_logger.warning("Interrupted, cancelling remaining files")
            cancel_event.set()
            for f in futures:
                f.cancel()
            # Running tasks see cancel_event and kill their child process.
            executor.shutdown(wait=True, cancel_futures=True)
            for future, path in futures.items():
                if future not in reported and future.done() and not future.cancelled():
                    report(future, path)

    summary.interrupted = cancel_event.is_set()
    summary.duration_seconds = time.monotonic() - start
    return summary
