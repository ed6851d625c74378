"""Tests for MkvinfoIntrospector using a fake mkvinfo executable."""

import threading
from pathlib import Path
from unittest.mock import patch

from tracks_swapper.domain.enums import RunStatus, TrackType
from tracks_swapper.introspector import MkvinfoIntrospector


class TestMkvinfoIntrospector:
    """Tests for MkvinfoIntrospector.read_tracks()."""

    def test_reads_tracks(self, fake_tools: dict, three_track_file: Path) -> None:
        introspector = MkvinfoIntrospector(tool_path=fake_tools["mkvinfo"])
        result = introspector.read_tracks(three_track_file)

        assert result.success
        assert result.status == RunStatus.SUCCESS
        assert result.handle.path == three_track_file
        assert [t.type for t in result.tracks] == [
            TrackType.VIDEO,
            TrackType.AUDIO,
            TrackType.AUDIO,
        ]

    def test_missing_file_fails_without_spawning(self, temp_dir: Path) -> None:
        introspector = MkvinfoIntrospector(tool_path="mkvinfo")
        with patch("tracks_swapper.introspector.mkvinfo.ProcessRunner") as runner:
            result = introspector.read_tracks(temp_dir / "nope.mkv")

        runner.assert_not_called()
        assert not result.success
        assert result.error.startswith("File not found")
        assert result.tracks == []

    def test_tool_error_reported(self, fake_tools: dict, media_dir: Path) -> None:
        broken = media_dir / "broken.mkv"
        broken.write_text("FAIL_INSPECT", encoding="utf-8")

        result = MkvinfoIntrospector(tool_path=fake_tools["mkvinfo"]).read_tracks(
            broken
        )

        assert not result.success
        assert result.status == RunStatus.NON_ZERO_EXIT
        assert "Error: not a Matroska file" in result.error
        assert result.handle is None

    def test_missing_tool_is_spawn_failure(
        self, temp_dir: Path, three_track_file: Path
    ) -> None:
        introspector = MkvinfoIntrospector(tool_path=temp_dir / "bin" / "absent")
        result = introspector.read_tracks(three_track_file)

        assert not result.success
        assert result.status == RunStatus.SPAWN_FAILURE

    def test_cancelled_before_start(
        self, fake_tools: dict, three_track_file: Path
    ) -> None:
        cancel = threading.Event()
        cancel.set()

        result = MkvinfoIntrospector(tool_path=fake_tools["mkvinfo"]).read_tracks(
            three_track_file, cancel
        )

        assert not result.success
        assert result.status == RunStatus.CANCELLED

    def test_parser_warnings_returned(self, fake_tools: dict, media_dir: Path) -> None:
        path = media_dir / "odd.mkv"
        path.write_text(
            "|+ Tracks\n| + Track\n|  + Track number: x\n|  + Track type: audio\n",
            encoding="utf-8",
        )

        result = MkvinfoIntrospector(tool_path=fake_tools["mkvinfo"]).read_tracks(path)

        assert result.success
        assert len(result.tracks) == 1
        assert result.warnings == ["Invalid track number: 'x'"]
