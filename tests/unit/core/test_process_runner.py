"""Tests for core/process_runner.py."""

import sys
import threading
import time
from pathlib import Path
from unittest.mock import patch

import pytest

from tracks_swapper.core.process_runner import (
    CANCELLED_MESSAGE,
    CompletionCell,
    ProcessRunner,
    RunResult,
    embedded_program_dir,
    resolve_program,
)
from tracks_swapper.domain.enums import RunStatus

PYTHON = sys.executable


def python_args(code: str) -> list[str]:
    return ["-c", code]


class TestCompletionCell:
    """Tests for the single-assignment completion cell."""

    def test_first_set_wins(self) -> None:
        cell = CompletionCell()
        assert cell.set(RunResult(RunStatus.TIMEOUT)) is True
        assert cell.set(RunResult(RunStatus.SUCCESS, 0)) is False
        assert cell.value == RunResult(RunStatus.TIMEOUT)

    def test_wait_returns_after_set(self) -> None:
        cell = CompletionCell()
        assert cell.wait(0.01) is False
        cell.set(RunResult(RunStatus.SUCCESS, 0))
        assert cell.wait(0.01) is True
        assert cell.is_set()

    def test_concurrent_setters_resolve_once(self) -> None:
        """Exactly one of many racing setters stores its value."""
        cell = CompletionCell()
        barrier = threading.Barrier(8)
        wins: list[bool] = []
        lock = threading.Lock()

        def setter(status: RunStatus) -> None:
            barrier.wait()
            won = cell.set(RunResult(status))
            with lock:
                wins.append(won)

        statuses = [RunStatus.SUCCESS, RunStatus.TIMEOUT, RunStatus.CANCELLED] * 3
        threads = [
            threading.Thread(target=setter, args=(s,)) for s in statuses[:8]
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert wins.count(True) == 1
        assert cell.value is not None


class TestResolveProgram:
    """Tests for tool lookup."""

    def test_explicit_path_used_as_given(self, temp_dir: Path) -> None:
        tool = temp_dir / "mkvinfo"
        assert resolve_program(tool) == str(tool)

    def test_embedded_program_preferred(self, temp_dir: Path) -> None:
        with (
            patch(
                "tracks_swapper.core.process_runner.embedded_program_dir",
                return_value=temp_dir,
            ),
            patch(
                "tracks_swapper.core.process_runner.shutil.which",
                side_effect=lambda name, path=None: (
                    str(temp_dir / name) if path == str(temp_dir) else None
                ),
            ),
        ):
            assert resolve_program("mkvmerge") == str(temp_dir / "mkvmerge")

    def test_embedded_lookup_disabled(self, temp_dir: Path) -> None:
        with patch(
            "tracks_swapper.core.process_runner.shutil.which",
            side_effect=lambda name, path=None: (
                None if path is not None else "/usr/bin/mkvmerge"
            ),
        ):
            assert (
                resolve_program("mkvmerge", use_embedded_program=False)
                == "/usr/bin/mkvmerge"
            )

    def test_no_script_skips_embedded_lookup(self) -> None:
        """Under ``python -c`` the cwd is not treated as the binary's directory."""
        with (
            patch.object(sys, "argv", ["-c"]),
            patch(
                "tracks_swapper.core.process_runner.shutil.which",
                side_effect=lambda name, path=None: (
                    "/cwd/mkvmerge" if path is not None else "/usr/bin/mkvmerge"
                ),
            ) as which,
        ):
            assert embedded_program_dir() is None
            assert resolve_program("mkvmerge") == "/usr/bin/mkvmerge"

        which.assert_called_once_with("mkvmerge")

    def test_script_directory_is_embedded_dir(self, temp_dir: Path) -> None:
        script = temp_dir / "bin" / "tracks-swapper"
        script.parent.mkdir()
        script.touch()

        with patch.object(sys, "argv", [str(script), "swap"]):
            assert embedded_program_dir() == script.parent.resolve()

        with patch.object(sys, "argv", [""]):
            assert embedded_program_dir() is None

    def test_unknown_name_returned_unchanged(self) -> None:
        with patch("tracks_swapper.core.process_runner.shutil.which", return_value=None):
            assert resolve_program("no-such-tool") == "no-such-tool"


class TestProcessRunner:
    """Tests for ProcessRunner lifecycle and outcome resolution."""

    def test_exit_zero_is_success(self) -> None:
        lines: list[str | None] = []
        with ProcessRunner(PYTHON, timeout=10, on_output_line=lines.append) as runner:
            assert runner.run(python_args("print('a'); print('b')")) is True
            assert runner.result == RunResult(RunStatus.SUCCESS, 0)
            assert runner.successful
            assert runner.has_ran

        assert lines == ["a", "b", None]

    def test_sentinel_delivered_once_after_last_line(self) -> None:
        lines: list[str | None] = []
        with ProcessRunner(PYTHON, timeout=10, on_output_line=lines.append) as runner:
            runner.run(python_args("import sys; sys.stdout.write('no newline')"))

        assert lines == ["no newline", None]
        assert lines.count(None) == 1

    def test_non_zero_exit_collects_stderr(self) -> None:
        code = "import sys; sys.stderr.write('bad input\\n'); sys.exit(3)"
        with ProcessRunner(PYTHON, timeout=10) as runner:
            assert runner.run(python_args(code)) is False
            assert runner.result == RunResult(RunStatus.NON_ZERO_EXIT, 3)
            assert runner.error == "bad input"

    def test_error_prefixed_stdout_lines_reach_error_buffer(self) -> None:
        code = "print('Progress: 5%'); print('Error: broken'); raise SystemExit(2)"
        lines: list[str | None] = []
        with ProcessRunner(PYTHON, timeout=10, on_output_line=lines.append) as runner:
            assert runner.run(python_args(code)) is False
            assert runner.error == "Error: broken"

        assert "Progress: 5%" in lines

    def test_stdout_not_read_without_callback(self) -> None:
        with ProcessRunner(PYTHON, timeout=10) as runner:
            assert runner.run(python_args("print('Error: ignored')")) is True
            assert runner.error == ""

    def test_timeout_kills_process(self) -> None:
        start = time.monotonic()
        with ProcessRunner(PYTHON, timeout=0.5) as runner:
            assert runner.run(python_args("import time; time.sleep(30)")) is False
            assert runner.result.status == RunStatus.TIMEOUT
            assert runner.error == "Process timed out after 0.5 seconds"

        assert time.monotonic() - start < 10

    def test_timeout_replaces_collected_errors(self) -> None:
        code = (
            "import sys, time; sys.stderr.write('partial\\n'); sys.stderr.flush(); "
            "time.sleep(30)"
        )
        with ProcessRunner(PYTHON, timeout=0.5) as runner:
            runner.run(python_args(code))
            assert runner.error == "Process timed out after 0.5 seconds"

    def test_cancel_during_run(self) -> None:
        cancel = threading.Event()
        timer = threading.Timer(0.3, cancel.set)
        timer.start()
        try:
            with ProcessRunner(PYTHON, timeout=30) as runner:
                ok = runner.run(python_args("import time; time.sleep(30)"), cancel)
                assert ok is False
                assert runner.result.status == RunStatus.CANCELLED
                assert runner.error == CANCELLED_MESSAGE
        finally:
            timer.cancel()

    def test_cancel_before_run_does_not_spawn(self) -> None:
        cancel = threading.Event()
        cancel.set()
        with patch("tracks_swapper.core.process_runner.subprocess.Popen") as popen:
            with ProcessRunner(PYTHON) as runner:
                assert runner.run(python_args("print(1)"), cancel) is False
                assert runner.result.status == RunStatus.CANCELLED

        popen.assert_not_called()

    def test_no_output_after_cancellation(self) -> None:
        """Lines printed after the cancel are never delivered."""
        code = (
            "import time\n"
            "print('first', flush=True)\n"
            "time.sleep(1)\n"
            "print('late', flush=True)\n"
        )
        cancel = threading.Event()
        lines: list[str | None] = []

        def on_line(line: str | None) -> None:
            lines.append(line)
            if line == "first":
                cancel.set()

        with ProcessRunner(PYTHON, timeout=30, on_output_line=on_line) as runner:
            runner.run(python_args(code), cancel)

        assert "late" not in lines
        assert None not in lines

    def test_spawn_failure(self, temp_dir: Path) -> None:
        with ProcessRunner(temp_dir / "missing-tool", timeout=5) as runner:
            assert runner.run(["x"]) is False
            assert runner.result.status == RunStatus.SPAWN_FAILURE
            assert runner.error

    def test_callback_error_recorded_as_warning(self) -> None:
        def on_line(line: str | None) -> None:
            if line == "boom":
                raise RuntimeError("callback failed")

        with ProcessRunner(PYTHON, timeout=10, on_output_line=on_line) as runner:
            assert runner.run(python_args("print('boom')")) is True
            assert runner.warnings == ["Output callback error: callback failed"]

    def test_single_use(self) -> None:
        with ProcessRunner(PYTHON, timeout=10) as runner:
            runner.run(python_args("pass"))
            with pytest.raises(RuntimeError):
                runner.run(python_args("pass"))

    def test_run_after_dispose_raises(self) -> None:
        runner = ProcessRunner(PYTHON)
        runner.dispose()
        with pytest.raises(RuntimeError):
            runner.run(python_args("pass"))

    def test_dispose_is_idempotent(self) -> None:
        runner = ProcessRunner(PYTHON, timeout=10)
        runner.run(python_args("pass"))
        runner.dispose()
        runner.dispose()

    def test_dispose_without_run(self) -> None:
        ProcessRunner(PYTHON).dispose()

    @pytest.mark.parametrize("timeout", [0, -1])
    def test_rejects_non_positive_timeout(self, timeout: float) -> None:
        with pytest.raises(ValueError):
            ProcessRunner(PYTHON, timeout=timeout)

    def test_paths_are_stringified(self, temp_dir: Path) -> None:
        target = temp_dir / "out.txt"
        code = "import sys; open(sys.argv[1], 'w').write('ok')"
        with ProcessRunner(PYTHON, timeout=10) as runner:
            assert runner.run([*python_args(code), target]) is True

        assert target.read_text() == "ok"
