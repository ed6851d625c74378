"""Shared test fixtures for MKV Tracks Swapper."""

import logging
import os
import shutil
import stat
import sys
import tempfile
import textwrap
from pathlib import Path

import pytest

from tracks_swapper.config import clear_config_cache

# Prints the input file itself: test containers hold their mkvinfo report.
FAKE_MKVINFO = """\
import sys

with open(sys.argv[1], encoding="utf-8") as f:
    report = f.read()
if "FAIL_INSPECT" in report:
    print("Error: not a Matroska file")
    sys.exit(2)
sys.stdout.write(report)
"""

# Writes its argument vector to --output so tests can check the command.
FAKE_MKVMERGE = """\
import json
import sys

args = sys.argv[1:]
output = args[args.index("--output") + 1]
source = args[-1]
with open(source, encoding="utf-8") as f:
    report = f.read()
if "FAIL_REMUX" in report:
    print("Progress: 10%")
    print("Error: The file could not be written")
    sys.exit(2)
with open(output, "w", encoding="utf-8") as f:
    json.dump({"args": args, "report": report}, f)
print("Progress: 100%")
"""


def write_script(directory: Path, name: str, body: str) -> Path:
    """Write an executable Python script run by the current interpreter."""
    path = directory / name
    path.write_text(f"#!{sys.executable}\n{textwrap.dedent(body)}", encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test isolation."""
    dir_path = tempfile.mkdtemp()
    yield Path(dir_path)
    shutil.rmtree(dir_path, ignore_errors=True)


@pytest.fixture
def fake_tools(temp_dir: Path) -> dict[str, Path]:
    """Fake mkvinfo/mkvmerge executables."""
    if sys.platform == "win32":
        pytest.skip("shebang scripts require a POSIX platform")
    bin_dir = temp_dir / "bin"
    bin_dir.mkdir()
    return {
        "mkvinfo": write_script(bin_dir, "mkvinfo", FAKE_MKVINFO),
        "mkvmerge": write_script(bin_dir, "mkvmerge", FAKE_MKVMERGE),
    }


@pytest.fixture
def media_dir(temp_dir: Path) -> Path:
    """Directory holding fake containers (their content is the mkvinfo report)."""
    path = temp_dir / "media"
    path.mkdir()
    return path


FIXTURES_DIR = Path(__file__).parent / "fixtures" / "mkvinfo"


def load_mkvinfo_fixture(name: str) -> str:
    """Load an mkvinfo report fixture by name (without .txt extension)."""
    return (FIXTURES_DIR / f"{name}.txt").read_text(encoding="utf-8")


@pytest.fixture
def mkvinfo_report():
    """Return the loader for mkvinfo report fixtures."""
    return load_mkvinfo_fixture


@pytest.fixture
def three_track_report() -> str:
    """One video track, audio jpn (default), audio eng."""
    return load_mkvinfo_fixture("three_tracks")


@pytest.fixture
def three_track_file(media_dir: Path, three_track_report: str) -> Path:
    path = media_dir / "episode.mkv"
    path.write_text(three_track_report, encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch: pytest.MonkeyPatch, temp_dir: Path):
    """Keep tests away from the user's config, profiles and environment."""
    for name in list(os.environ):
        if name.startswith("TRACKS_SWAPPER_"):
            monkeypatch.delenv(name)
    monkeypatch.setenv("HOME", str(temp_dir / "home"))
    monkeypatch.setenv("TRACKS_SWAPPER_CONFIG_PATH", str(temp_dir / "config.toml"))
    clear_config_cache()
    yield
    clear_config_cache()


@pytest.fixture(autouse=True)
def reset_root_logger():
    """Save and restore root logger state between tests."""
    root = logging.getLogger()
    original_handlers = root.handlers[:]
    original_level = root.level
    yield
    root.handlers[:] = original_handlers
    root.setLevel(original_level)


@pytest.fixture
def worker_cap(monkeypatch: pytest.MonkeyPatch):
    """Pin the CPU-based worker cap so batch output is host independent.

    Returns a setter for tests that need a specific cap.
    """

    def set_cap(cores: int) -> None:
        monkeypatch.setattr(
            "tracks_swapper.workflow.processor.get_max_workers", lambda: cores
        )

    set_cap(8)
    return set_cap
