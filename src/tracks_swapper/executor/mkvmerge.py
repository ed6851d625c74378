"""MKV track reordering executor using mkvmerge.

The executor renders the swap plan as ``--default-track`` and
``--track-order`` options and remuxes the container (no re-encoding).
Output goes to a ``<stem>_swapped<ext>`` sibling, or in overwrite mode to a
temp file in the same directory that atomically replaces the original.
"""

from __future__ import annotations

import logging
import tempfile
import threading
from pathlib import Path

from tracks_swapper.core.process_runner import ProcessRunner
from tracks_swapper.domain.models import ContainerHandle
from tracks_swapper.executor.interface import ExecutorResult, SwapSettings
from tracks_swapper.policy.swap import SwapPlan, plan_swaps, track_order

module_logger = logging.getLogger(__name__)

OUTPUT_SUFFIX = "_swapped"


def create_output_path(source: Path) -> Path:
    """Pick a free sibling path for the remuxed file.

    ``movie.mkv`` gives ``movie_swapped.mkv``; when that exists,
    ``movie_swapped_1.mkv``, ``movie_swapped_2.mkv`` and so on.
    """
    candidate = source.with_name(f"{source.stem}{OUTPUT_SUFFIX}{source.suffix}")
    index = 1
    while candidate.exists():
        candidate = source.with_name(
            f"{source.stem}{OUTPUT_SUFFIX}_{index}{source.suffix}"
        )
        index += 1
    return candidate


class MkvmergeExecutor:
    """Put the preferred audio/subtitle tracks first using mkvmerge.

    One executor can be shared by worker threads: every call spawns its own
    ProcessRunner and keeps no per-file state on the instance.
    """

    DEFAULT_TIMEOUT: float | None = None

    def __init__(
        self,
        settings: SwapSettings,
        tool_path: Path | str | None = None,
        timeout: float | None = DEFAULT_TIMEOUT,
        use_embedded_program: bool = True,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the executor.

        Args:
            settings: Language preferences and output behavior.
            tool_path: mkvmerge path or name. None looks up "mkvmerge".
            timeout: Seconds allowed per remux. None disables the limit.
            use_embedded_program: Prefer an mkvmerge shipped next to the binary.
            logger: Logger for diagnostics. Defaults to this module's logger.
        """
        self._settings = settings
        self._tool = str(tool_path or "mkvmerge")
        self._timeout = timeout
        self._use_embedded_program = use_embedded_program
        self._logger = logger or module_logger

    @property
    def settings(self) -> SwapSettings:
        return self._settings

    def build_command(
        self, handle: ContainerHandle, plan: SwapPlan, output_path: Path
    ) -> list[str]:
        """Build the mkvmerge command for an already-applied plan.

        Raises:
            ValueError: If a track number is missing, invalid or duplicated.
        """
        order = track_order(handle.tracks)

        cmd = [self._tool, "--output", str(output_path)]
        for decision in plan.decisions:
            # --default-track TID:yes, TID being mkvmerge's 0-based id
            cmd.extend(["--default-track", f"{decision.default_index}:yes"])
            if self._settings.clear_other_defaults:
                for index in decision.cleared_indices:
                    cmd.extend(["--default-track", f"{index}:no"])

        # Format: --track-order 0:idx1,0:idx2,... (0: the only input file)
        cmd.extend(["--track-order", ",".join(order)])
        cmd.append(str(handle.path))
        return cmd

    def put_tracks_first(
        self,
        handle: ContainerHandle,
        cancel_event: threading.Event | None = None,
    ) -> ExecutorResult:
        """Swap the preferred tracks to the front and remux the container.

        Args:
            handle: Container and the tracks read from it. Track numbers
                are rewritten in place by the swap.
            cancel_event: Shared cancellation signal.

        Returns:
            ExecutorResult describing the outcome. Never raises for
            tool or filesystem failures.
        """
        source = handle.path
        if not handle.tracks:
            return ExecutorResult(
                success=False,
                message=f"No track has been found, nothing to do for {source}",
            )

        plan = plan_swaps(handle.tracks, self._settings.preferences)
        swaps = tuple(
            f"{d.track_type.value}:{d.wanted.language}" for d in plan.decisions
        )
        if plan.is_empty:
            self._logger.info("No track to swap in %s", source)
            if self._settings.skip_unchanged:
                return ExecutorResult(success=True, message="No changes to apply")

        # Validate numbers before creating any file.
        try:
            track_order(handle.tracks)
        except ValueError as e:
            return ExecutorResult(success=False, message=f"{source}: {e}")

        try:
            output_path = self._prepare_output(source)
        except OSError as e:
            return ExecutorResult(
                success=False, message=f"Cannot create output file for {source}: {e}"
            )

        cmd = self.build_command(handle, plan, output_path)

        self._logger.info("Remuxing %s", source)
        with ProcessRunner(
            self._tool,
            timeout=self._timeout,
            on_output_line=self._log_output_line,
            use_embedded_program=self._use_embedded_program,
            logger=self._logger,
        ) as runner:
            successful = runner.run(cmd[1:], cancel_event)
            status = runner.result.status if runner.result else None
            error = runner.error

        if not successful:
            output_path.unlink(missing_ok=True)
            detail = error or (status.value if status else "unknown error")
            return ExecutorResult(
                success=False,
                message=f"mkvmerge failed for {source}: {detail}",
                status=status,
                swaps=swaps,
            )

        if self._settings.overwrite:
            # Atomic move: temp file to the original path
            try:
                output_path.replace(source)
            except OSError as e:
                output_path.unlink(missing_ok=True)
                return ExecutorResult(
                    success=False,
                    message=f"Failed to replace {source}: {e}",
                    status=status,
                    swaps=swaps,
                )
            output_path = source

        message = f"Applied {len(plan.decisions)} swap(s) via remux"
        return ExecutorResult(
            success=True,
            message=message,
            output_path=output_path,
            status=status,
            swaps=swaps,
        )

    def _prepare_output(self, source: Path) -> Path:
        if not self._settings.overwrite:
            return create_output_path(source)

        with tempfile.NamedTemporaryFile(
            prefix=f".{source.stem}.",
            suffix=source.suffix or ".mkv",
            delete=False,
            dir=source.parent,
        ) as tmp:
            return Path(tmp.name)

    def _log_output_line(self, line: str | None) -> None:
        if line:
            self._logger.debug("mkvmerge: %s", line)
