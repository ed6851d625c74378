"""End-to-end swap runs through the CLI with fake mkvinfo/mkvmerge tools."""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from tracks_swapper.cli import main
from tracks_swapper.cli.exit_codes import ExitCode

pytestmark = [pytest.mark.integration, pytest.mark.usefixtures("worker_cap")]


@pytest.fixture
def configured(fake_tools: dict, temp_dir: Path) -> Path:
    """Point the config file at the fake tools; return the config path."""
    config = temp_dir / "config.toml"
    config.write_text(
        "[tools]\n"
        f'mkvinfo = "{fake_tools["mkvinfo"]}"\n'
        f'mkvmerge = "{fake_tools["mkvmerge"]}"\n'
        "use_embedded_programs = false\n"
        "\n"
        "[processing]\n"
        "workers = 2\n",
        encoding="utf-8",
    )
    return config


def recorded_args(path: Path) -> list[str]:
    return json.loads(path.read_text(encoding="utf-8"))["args"]


class TestSwapWorkflow:
    """Full inspect, decide and remux runs."""

    def test_swap_audio_writes_sibling(
        self, configured: Path, three_track_file: Path
    ) -> None:
        result = CliRunner().invoke(main, ["swap", "-a", "eng", str(three_track_file)])

        assert result.exit_code == 0, result.output
        output = three_track_file.with_name("episode_swapped.mkv")
        args = recorded_args(output)
        assert args[args.index("--default-track") + 1] == "2:yes"
        assert args[args.index("--track-order") + 1] == "0:0,0:2,0:1"
        assert "1 ok, 0 failed" in result.output

    def test_overwrite_replaces_original(
        self, configured: Path, three_track_file: Path
    ) -> None:
        result = CliRunner().invoke(
            main, ["swap", "-a", "eng", "-f", str(three_track_file)]
        )

        assert result.exit_code == 0, result.output
        assert "--track-order" in recorded_args(three_track_file)
        assert [p.name for p in three_track_file.parent.iterdir()] == ["episode.mkv"]

    def test_directory_batch_with_failure(
        self, configured: Path, media_dir: Path, mkvinfo_report
    ) -> None:
        report = mkvinfo_report("anime_episode")
        (media_dir / "s01").mkdir()
        for name in ("e01.mkv", "e02.mkv"):
            (media_dir / "s01" / name).write_text(report, encoding="utf-8")
        (media_dir / "s01" / "e03.mkv").write_text(
            report + "FAIL_REMUX\n", encoding="utf-8"
        )

        result = CliRunner().invoke(
            main, ["swap", "-a", "eng", "-s", "eng", "--json", str(media_dir)]
        )

        assert result.exit_code == ExitCode.OPERATION_FAILED
        data = json.loads(result.stdout)
        assert data["summary"]["total"] == 3
        assert data["summary"]["success"] == 2
        assert data["summary"]["failed"] == 1
        failed = [r for r in data["results"] if not r["success"]]
        assert failed[0]["file"].endswith("e03.mkv")
        assert "The file could not be written" in failed[0]["message"]
        assert not (media_dir / "s01" / "e03_swapped.mkv").exists()

        output = json.loads((media_dir / "s01" / "e01_swapped.mkv").read_text())
        order = output["args"][output["args"].index("--track-order") + 1]
        # Audio 3 (no language, reads as eng) and subtitles 5 (eng) move up
        assert order == "0:0,0:2,0:1,0:4,0:3"

    def test_environment_overrides_config(
        self,
        configured: Path,
        three_track_file: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("TRACKS_SWAPPER_AUDIO", "eng")
        monkeypatch.setenv("TRACKS_SWAPPER_OVERWRITE", "true")

        result = CliRunner().invoke(main, ["swap", str(three_track_file)])

        assert result.exit_code == 0, result.output
        assert "--track-order" in recorded_args(three_track_file)

    def test_log_file_receives_file_context(
        self, configured: Path, three_track_file: Path, temp_dir: Path
    ) -> None:
        log_file = temp_dir / "logs" / "swap.log"

        result = CliRunner().invoke(
            main,
            ["--log-file", str(log_file), "--log-level", "info",
             "swap", "-a", "eng", str(three_track_file)],
        )

        assert result.exit_code == 0, result.output
        text = log_file.read_text(encoding="utf-8")
        assert "[F01]" in text
        assert "=== FILE F01" in text
