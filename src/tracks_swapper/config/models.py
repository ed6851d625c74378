"""Configuration data models for MKV Tracks Swapper.

This module defines dataclasses for the configuration sections read from
``config.toml``, the environment and the command line.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from tracks_swapper.domain.enums import LanguageMatch

VALID_LOG_LEVELS = frozenset({"debug", "info", "warning", "error"})
VALID_LOG_FORMATS = frozenset({"text", "json"})


@dataclass
class ToolPathsConfig:
    """Configuration for external tool paths.

    All paths are optional. If not specified, tools are looked up next to
    the running binary (when use_embedded_programs is set), then in PATH.
    """

    mkvinfo: Path | None = None
    mkvmerge: Path | None = None
    use_embedded_programs: bool = True


@dataclass
class TimeoutsConfig:
    """Per-invocation time limits in seconds (None = no limit)."""

    inspect_seconds: float | None = 8.0
    remux_seconds: float | None = None

    def __post_init__(self) -> None:
        """Validate configuration. A value of 0 disables the limit."""
        for name in ("inspect_seconds", "remux_seconds"):
            value = getattr(self, name)
            if value is None:
                continue
            if value < 0:
                raise ValueError(f"{name} must not be negative, got {value}")
            if value == 0:
                setattr(self, name, None)


@dataclass
class ProcessingConfig:
    """Configuration for batch processing behavior."""

    workers: int = 2
    """Number of parallel workers for batch processing (1 = sequential)."""

    extensions: tuple[str, ...] = (".mkv",)
    """File extensions accepted by discovery, compared case-insensitively."""

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.workers < 1:
            raise ValueError(f"workers must be at least 1, got {self.workers}")
        normalized = []
        for ext in self.extensions:
            ext = ext.strip().lower()
            if not ext:
                raise ValueError("extensions must not contain empty values")
            normalized.append(ext if ext.startswith(".") else f".{ext}")
        if not normalized:
            raise ValueError("extensions must not be empty")
        self.extensions = tuple(normalized)


@dataclass
class SwapConfig:
    """Default swap behavior, overridable by profiles and CLI flags."""

    audio_language: str | None = None
    subtitles_language: str | None = None
    overwrite: bool = False
    language_match: LanguageMatch = LanguageMatch.PREFIX
    clear_other_defaults: bool = False
    skip_unchanged: bool = False

    def __post_init__(self) -> None:
        """Validate configuration."""
        if isinstance(self.language_match, str):
            try:
                self.language_match = LanguageMatch(self.language_match.lower())
            except ValueError:
                valid = sorted(m.value for m in LanguageMatch)
                raise ValueError(
                    f"language_match must be one of {valid}, "
                    f"got {self.language_match}"
                ) from None
        for name in ("audio_language", "subtitles_language"):
            value = getattr(self, name)
            if value is not None and not value.strip():
                setattr(self, name, None)


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    # Log level: debug, info, warning, error
    level: str = "warning"

    # Log file path (None = stderr only)
    file: Path | None = None

    # Log format: text or json
    format: str = "text"

    # Also log to stderr when file is set
    include_stderr: bool = False

    # Rotation threshold in bytes (default 10MB)
    max_bytes: int = 10_485_760

    # Number of rotated files to keep
    backup_count: int = 5

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.level.lower() not in VALID_LOG_LEVELS:
            raise ValueError(
                f"level must be one of {sorted(VALID_LOG_LEVELS)}, got {self.level}"
            )
        if self.format.lower() not in VALID_LOG_FORMATS:
            raise ValueError(
                f"format must be one of {sorted(VALID_LOG_FORMATS)}, "
                f"got {self.format}"
            )
        if self.max_bytes < 1:
            raise ValueError(f"max_bytes must be positive, got {self.max_bytes}")
        if self.backup_count < 0:
            raise ValueError(
                f"backup_count must not be negative, got {self.backup_count}"
            )


@dataclass
class SwapperConfig:
    """Main configuration container."""

    tools: ToolPathsConfig = field(default_factory=ToolPathsConfig)
    timeouts: TimeoutsConfig = field(default_factory=TimeoutsConfig)
    processing: ProcessingConfig = field(default_factory=ProcessingConfig)
    swap: SwapConfig = field(default_factory=SwapConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
