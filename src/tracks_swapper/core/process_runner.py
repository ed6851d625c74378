"""Lifecycle management for one external tool invocation.

A ProcessRunner starts mkvinfo or mkvmerge, streams its output line by line
on reader threads, and resolves the invocation to exactly one RunStatus:
whichever of natural exit, timeout, cancellation or spawn failure happens
first. Later triggers are ignored.

Example:
    >>> lines = []
    >>> with ProcessRunner("mkvinfo", timeout=8, on_output_line=lines.append) as r:
    ...     ok = r.run(["movie.mkv"])
    >>> if not ok:
    ...     print(r.result.status, r.error)
"""

from __future__ import annotations

import logging
import shutil
import subprocess  # nosec B404 - subprocess is required for mkvtoolnix invocation
import sys
import threading
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

from tracks_swapper.domain.enums import RunStatus

module_logger = logging.getLogger(__name__)

# Receives each stdout line without its terminator, then None at end of stream.
OutputCallback = Callable[[str | None], None]

TIMEOUT_MESSAGE = "Process timed out after {timeout:g} seconds"
CANCELLED_MESSAGE = "Process was cancelled"

# mkvtoolnix reports fatal errors on stdout, not stderr.
DEFAULT_ERROR_PREFIXES: tuple[str, ...] = ("Error:",)


@dataclass(frozen=True)
class RunResult:
    """Resolved outcome of one invocation."""

    status: RunStatus
    returncode: int | None = None

    @property
    def success(self) -> bool:
        return self.status == RunStatus.SUCCESS


class CompletionCell:
    """Single-assignment cell holding a RunResult.

    The first call to set() wins and wakes every waiter; later calls
    return False and leave the stored value untouched.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._done = threading.Event()
        self._value: RunResult | None = None

    def set(self, value: RunResult) -> bool:
        """Store value if the cell is empty.

        Returns:
            True if this call stored the value, False if already resolved.
        """
        with self._lock:
            if self._value is not None:
                return False
            self._value = value
        self._done.set()
        return True

    def is_set(self) -> bool:
        return self._done.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until resolved or timeout elapses; return is_set()."""
        return self._done.wait(timeout)

    @property
    def value(self) -> RunResult | None:
        return self._value


def embedded_program_dir() -> Path | None:
    """Directory of the running binary (frozen executable or entry script).

    None when there is no script file, as under ``python -c`` or a REPL.
    """
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent
    script = sys.argv[0] if sys.argv else ""
    if not script or not Path(script).is_file():
        return None
    return Path(script).resolve().parent


def resolve_program(program: str | Path, use_embedded_program: bool = True) -> str:
    """Resolve a tool name or path to the executable to launch.

    Bare names are looked up first next to the running binary (when
    use_embedded_program is set), then on PATH. Explicit paths are used
    as given. An unresolvable name is returned unchanged so that the
    spawn itself reports the failure.

    Args:
        program: Tool name (e.g. "mkvinfo") or path to an executable.
        use_embedded_program: Prefer a copy shipped next to the binary.

    Returns:
        Executable to pass to subprocess.
    """
    name = str(program)
    is_bare_name = Path(name).name == name

    if is_bare_name and use_embedded_program:
        program_dir = embedded_program_dir()
        embedded = program_dir and shutil.which(name, path=str(program_dir))
        if embedded:
            return embedded

    if not is_bare_name:
        return str(Path(name).expanduser())

    return shutil.which(name) or name


class ProcessRunner:
    """Run one external program invocation to completion.

    The runner is single-use: call run() once, then dispose() (or use it
    as a context manager). stderr is always captured into the error
    buffer; stdout is only read when on_output_line is given.

    On timeout or cancellation the child is killed, the error buffer is
    replaced by a fixed message and no further output is delivered.
    """

    POLL_INTERVAL: float = 0.05  # Seconds between timeout/cancel checks
    DRAIN_TIMEOUT: float = 5.0  # Max wait for reader threads after exit

    def __init__(
        self,
        program: str | Path,
        timeout: float | None = None,
        on_output_line: OutputCallback | None = None,
        use_embedded_program: bool = True,
        error_prefixes: Sequence[str] = DEFAULT_ERROR_PREFIXES,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the runner.

        Args:
            program: Tool name or path, see resolve_program().
            timeout: Seconds before the invocation is abandoned. None = no limit.
            on_output_line: Callback for stdout lines; None leaves stdout unread.
            use_embedded_program: Prefer a tool shipped next to the binary.
            error_prefixes: stdout prefixes also copied to the error buffer.
            logger: Logger for diagnostics. Defaults to this module's logger.

        Raises:
            ValueError: If timeout is not positive.
        """
        if timeout is not None and timeout <= 0:
            raise ValueError(f"timeout must be positive, got {timeout}")

        self._program = resolve_program(program, use_embedded_program)
        self._timeout = timeout
        self._on_output_line = on_output_line
        self._error_prefixes = tuple(error_prefixes)
        self._logger = logger or module_logger

        self._completion = CompletionCell()
        self._errors: list[str] = []
        self._errors_lock = threading.Lock()
        self._stop_reading = threading.Event()

        self._process: subprocess.Popen[str] | None = None
        self._readers: list[threading.Thread] = []
        self._watcher: threading.Thread | None = None
        self._started = False
        self._disposed = False

        self.is_running = False
        self.warnings: list[str] = []

    def __enter__(self) -> ProcessRunner:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.dispose()

    @property
    def program(self) -> str:
        """Resolved executable."""
        return self._program

    @property
    def error(self) -> str:
        """Accumulated diagnostics, one captured line per line."""
        with self._errors_lock:
            return "\n".join(self._errors)

    @property
    def result(self) -> RunResult | None:
        """Resolved outcome, or None before the invocation completes."""
        return self._completion.value

    @property
    def has_ran(self) -> bool:
        return self._completion.is_set()

    @property
    def successful(self) -> bool:
        result = self._completion.value
        return result is not None and result.success

    def run(
        self,
        args: Sequence[str | Path] = (),
        cancel_event: threading.Event | None = None,
    ) -> bool:
        """Run the program with args and wait for the outcome.

        Args:
            args: Arguments after the program name. Paths are stringified.
            cancel_event: Shared signal; once set, the child is killed.

        Returns:
            True iff the process ran to completion and exited with code 0.

        Raises:
            RuntimeError: If the runner was already used or disposed.
        """
        if self._started:
            raise RuntimeError("ProcessRunner is single-use; create a new instance")
        if self._disposed:
            raise RuntimeError("ProcessRunner has been disposed")
        self._started = True

        cmd = [self._program, *(str(arg) for arg in args)]
        command_name = Path(self._program).name

        if cancel_event is not None and cancel_event.is_set():
            self._interrupt(RunStatus.CANCELLED, CANCELLED_MESSAGE)
            self._logger.info("Skipped %s: cancellation already requested", command_name)
            return False

        self._logger.debug(
            "Executing command: %s",
            " ".join(cmd),
            extra={"command": command_name, "arg_count": len(cmd)},
        )
        start_time = time.monotonic()

        try:
            self._process = subprocess.Popen(  # nosec B603 - args are built, not shell
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE if self._on_output_line else subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except (OSError, ValueError, subprocess.SubprocessError) as e:
            self._append_error(str(e))
            self._completion.set(RunResult(RunStatus.SPAWN_FAILURE))
            self._logger.error(
                "Failed to start %s: %s",
                command_name,
                e,
                extra={"command": command_name},
            )
            return False

        self.is_running = True
        self._start_threads()
        self._wait_for_completion(cancel_event)
        self.is_running = False

        result = self._completion.value
        assert result is not None
        self._logger.debug(
            "Command completed",
            extra={
                "command": command_name,
                "status": result.status.value,
                "returncode": result.returncode,
                "elapsed_seconds": round(time.monotonic() - start_time, 3),
            },
        )
        return result.success

    def dispose(self) -> None:
        """Release the process handle and helper threads.

        Kills the child if it is still running. Idempotent, and safe to
        call whether or not run() ever started a process.
        """
        if self._disposed:
            return
        self._disposed = True

        process = self._process
        if process is None:
            return

        if process.poll() is None:
            self._interrupt(RunStatus.CANCELLED, CANCELLED_MESSAGE)
            self._kill()
        try:
            process.wait(timeout=self.DRAIN_TIMEOUT)
        except subprocess.TimeoutExpired:
            self._logger.warning("Process %s did not exit after kill", process.pid)

        threads = list(self._readers)
        if self._watcher is not None:
            threads.append(self._watcher)
        for thread in threads:
            thread.join(timeout=self.DRAIN_TIMEOUT)
            if thread.is_alive():
                self._logger.error(
                    "%s failed to terminate; thread will be abandoned", thread.name
                )

        for stream in (process.stdout, process.stderr):
            if stream is not None:
                try:
                    stream.close()
                except OSError as e:
                    self._logger.debug("Error closing pipe: %s", e)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _start_threads(self) -> None:
        process = self._process
        assert process is not None

        if process.stdout is not None:
            self._readers.append(
                threading.Thread(
                    target=self._read_stdout, name="stdout-reader", daemon=True
                )
            )
        self._readers.append(
            threading.Thread(target=self._read_stderr, name="stderr-reader", daemon=True)
        )
        self._watcher = threading.Thread(
            target=self._watch_exit, name="exit-watcher", daemon=True
        )
        for thread in self._readers:
            thread.start()
        self._watcher.start()

    def _wait_for_completion(self, cancel_event: threading.Event | None) -> None:
        deadline = None if self._timeout is None else time.monotonic() + self._timeout
        while not self._completion.wait(self.POLL_INTERVAL):
            if cancel_event is not None and cancel_event.is_set():
                self._interrupt(RunStatus.CANCELLED, CANCELLED_MESSAGE)
            elif deadline is not None and time.monotonic() >= deadline:
                self._interrupt(
                    RunStatus.TIMEOUT, TIMEOUT_MESSAGE.format(timeout=self._timeout)
                )

    def _interrupt(self, status: RunStatus, message: str) -> bool:
        """Resolve with status, replace diagnostics and kill the child.

        Returns:
            False if the invocation was already resolved (nothing changes).
        """
        if not self._completion.set(RunResult(status)):
            return False
        with self._errors_lock:
            self._stop_reading.set()
            self._errors = [message]
        self._kill()
        return True

    def _kill(self) -> None:
        process = self._process
        if process is None or process.poll() is not None:
            return
        try:
            process.kill()
        except OSError as e:
            self._logger.debug("Failed to kill process %s: %s", process.pid, e)

    def _watch_exit(self) -> None:
        process = self._process
        assert process is not None
        returncode = process.wait()

        # Every line is delivered before natural completion is signalled.
        for reader in self._readers:
            reader.join(timeout=self.DRAIN_TIMEOUT)

        status = RunStatus.SUCCESS if returncode == 0 else RunStatus.NON_ZERO_EXIT
        if not self._completion.set(RunResult(status, returncode)):
            self._logger.debug(
                "Exit code %s ignored; invocation already resolved", returncode
            )

    def _read_stdout(self) -> None:
        process = self._process
        assert process is not None and process.stdout is not None
        try:
            for raw_line in process.stdout:
                if self._stop_reading.is_set():
                    break
                line = raw_line.rstrip("\r\n")
                if self._error_prefixes and line.startswith(self._error_prefixes):
                    self._append_error(line)
                self._deliver(line)
            else:
                if not self._stop_reading.is_set():
                    self._deliver(None)
        except (ValueError, OSError) as e:
            # Pipe closed under us after kill/dispose
            self._logger.debug("stdout reader stopped: %s", e)

    def _read_stderr(self) -> None:
        process = self._process
        assert process is not None and process.stderr is not None
        try:
            for raw_line in process.stderr:
                if self._stop_reading.is_set():
                    break
                self._append_error(raw_line.rstrip("\r\n"))
        except (ValueError, OSError) as e:
            self._logger.debug("stderr reader stopped: %s", e)

    def _deliver(self, line: str | None) -> None:
        assert self._on_output_line is not None
        try:
            self._on_output_line(line)
        except Exception as e:
            self._logger.warning("Output callback error: %s", e)
            self.warnings.append(f"Output callback error: {e}")

    def _append_error(self, line: str) -> None:
        with self._errors_lock:
            if self._stop_reading.is_set():
                return
            self._errors.append(line)
