"""Tests for config/models.py."""

from pathlib import Path

import pytest

from tracks_swapper.config.models import (
    LoggingConfig,
    ProcessingConfig,
    SwapConfig,
    SwapperConfig,
    TimeoutsConfig,
    ToolPathsConfig,
)
from tracks_swapper.domain.enums import LanguageMatch


class TestToolPathsConfig:
    """Tests for ToolPathsConfig."""

    def test_defaults(self) -> None:
        config = ToolPathsConfig()
        assert config.mkvinfo is None
        assert config.mkvmerge is None
        assert config.use_embedded_programs is True


class TestTimeoutsConfig:
    """Tests for TimeoutsConfig."""

    def test_defaults(self) -> None:
        config = TimeoutsConfig()
        assert config.inspect_seconds == 8.0
        assert config.remux_seconds is None

    def test_zero_disables_limit(self) -> None:
        assert TimeoutsConfig(inspect_seconds=0).inspect_seconds is None

    def test_negative_rejected(self) -> None:
        with pytest.raises(ValueError, match="remux_seconds"):
            TimeoutsConfig(remux_seconds=-1)


class TestProcessingConfig:
    """Tests for ProcessingConfig."""

    def test_defaults(self) -> None:
        config = ProcessingConfig()
        assert config.workers == 2
        assert config.extensions == (".mkv",)

    def test_workers_must_be_positive(self) -> None:
        with pytest.raises(ValueError, match="workers"):
            ProcessingConfig(workers=0)

    def test_extensions_normalized(self) -> None:
        config = ProcessingConfig(extensions=("MKV", ".Mka", " mk3d "))
        assert config.extensions == (".mkv", ".mka", ".mk3d")

    def test_empty_extension_rejected(self) -> None:
        with pytest.raises(ValueError):
            ProcessingConfig(extensions=("mkv", " "))

    def test_no_extensions_rejected(self) -> None:
        with pytest.raises(ValueError):
            ProcessingConfig(extensions=())


class TestSwapConfig:
    """Tests for SwapConfig."""

    def test_defaults(self) -> None:
        config = SwapConfig()
        assert config.audio_language is None
        assert config.subtitles_language is None
        assert config.language_match == LanguageMatch.PREFIX
        assert not config.overwrite

    def test_language_match_from_string(self) -> None:
        assert SwapConfig(language_match="EXACT").language_match == LanguageMatch.EXACT

    def test_invalid_language_match(self) -> None:
        with pytest.raises(ValueError, match="language_match must be one of"):
            SwapConfig(language_match="fuzzy")

    def test_blank_languages_unset(self) -> None:
        config = SwapConfig(audio_language="", subtitles_language="  ")
        assert config.audio_language is None
        assert config.subtitles_language is None


class TestLoggingConfig:
    """Tests for LoggingConfig."""

    def test_defaults(self) -> None:
        config = LoggingConfig()
        assert config.level == "warning"
        assert config.file is None
        assert config.format == "text"
        assert config.max_bytes == 10_485_760
        assert config.backup_count == 5

    def test_level_case_insensitive(self) -> None:
        LoggingConfig(level="DEBUG")

    def test_invalid_level(self) -> None:
        with pytest.raises(ValueError, match="level"):
            LoggingConfig(level="verbose")

    def test_invalid_format(self) -> None:
        with pytest.raises(ValueError, match="format"):
            LoggingConfig(format="xml")

    def test_invalid_rotation(self) -> None:
        with pytest.raises(ValueError):
            LoggingConfig(max_bytes=0)
        with pytest.raises(ValueError):
            LoggingConfig(backup_count=-1)

    def test_file_path(self, temp_dir: Path) -> None:
        assert LoggingConfig(file=temp_dir / "x.log").file == temp_dir / "x.log"


class TestSwapperConfig:
    """Tests for SwapperConfig."""

    def test_sections_are_independent(self) -> None:
        first, second = SwapperConfig(), SwapperConfig()
        first.swap.audio_language = "eng"
        assert second.swap.audio_language is None
