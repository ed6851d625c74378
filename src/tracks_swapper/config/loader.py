"""Configuration loader with precedence handling.

Configuration is loaded with the following precedence (highest to lowest):
1. CLI arguments (applied by the caller on the returned config)
2. Environment variables (TRACKS_SWAPPER_*)
3. Config file (~/.tracks-swapper/config.toml)
4. Default values

Environment variables:
- TRACKS_SWAPPER_CONFIG_PATH: Path to config file (overrides default location)
- TRACKS_SWAPPER_MKVINFO_PATH / TRACKS_SWAPPER_MKVMERGE_PATH: Tool paths
- TRACKS_SWAPPER_USE_EMBEDDED_PROGRAMS: Prefer tools next to the binary
- TRACKS_SWAPPER_INSPECT_TIMEOUT / TRACKS_SWAPPER_REMUX_TIMEOUT: Seconds
- TRACKS_SWAPPER_WORKERS: Parallel workers
- TRACKS_SWAPPER_EXTENSIONS: Comma-separated file extensions
- TRACKS_SWAPPER_AUDIO / TRACKS_SWAPPER_SUBTITLES: Preferred languages
- TRACKS_SWAPPER_OVERWRITE: Replace original files
- TRACKS_SWAPPER_LANGUAGE_MATCH: "prefix" or "exact"
- TRACKS_SWAPPER_LOG_LEVEL / TRACKS_SWAPPER_LOG_FILE / TRACKS_SWAPPER_LOG_FORMAT
"""

from __future__ import annotations

import logging
import sys
import threading
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from tracks_swapper.config.env import EnvReader
from tracks_swapper.config.models import (
    LoggingConfig,
    ProcessingConfig,
    SwapConfig,
    SwapperConfig,
    TimeoutsConfig,
    ToolPathsConfig,
)

logger = logging.getLogger(__name__)

ENV_PREFIX = "TRACKS_SWAPPER_"

# Default config location
DEFAULT_CONFIG_DIR = Path.home() / ".tracks-swapper"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.toml"

# Cache for loaded config files (path -> (parsed dict, mtime))
_config_cache: dict[Path, tuple[dict, float]] = {}
_config_cache_lock = threading.Lock()


class ConfigError(Exception):
    """Configuration file or value is invalid."""


@dataclass
class ConfigSource:
    """Configuration values from a single source.

    None values indicate "not specified in this source" and do not
    override values from lower-precedence sources.
    """

    # Tools
    mkvinfo_path: Path | None = None
    mkvmerge_path: Path | None = None
    use_embedded_programs: bool | None = None

    # Timeouts
    inspect_seconds: float | None = None
    remux_seconds: float | None = None

    # Processing
    workers: int | None = None
    extensions: tuple[str, ...] | None = None

    # Swap
    audio_language: str | None = None
    subtitles_language: str | None = None
    overwrite: bool | None = None
    language_match: str | None = None
    clear_other_defaults: bool | None = None
    skip_unchanged: bool | None = None

    # Logging
    logging_level: str | None = None
    logging_file: Path | None = None
    logging_format: str | None = None
    logging_include_stderr: bool | None = None
    logging_max_bytes: int | None = None
    logging_backup_count: int | None = None


class ConfigBuilder:
    """Builds SwapperConfig by layering ConfigSources.

    Later sources override earlier ones for non-None values.
    """

    def __init__(self) -> None:
        self._values: dict[str, Any] = {}

    def apply(self, source: ConfigSource) -> None:
        for field_obj in fields(source):
            value = getattr(source, field_obj.name)
            if value is not None:
                self._values[field_obj.name] = value

    def _get(self, key: str, default: Any) -> Any:
        return self._values.get(key, default)

    def build(self) -> SwapperConfig:
        """Build the final config with defaults for unset values.

        Raises:
            ValueError: If a value fails section validation.
        """
        tools = ToolPathsConfig(
            mkvinfo=self._get("mkvinfo_path", None),
            mkvmerge=self._get("mkvmerge_path", None),
            use_embedded_programs=self._get("use_embedded_programs", True),
        )
        timeouts = TimeoutsConfig(
            inspect_seconds=self._get("inspect_seconds", 8.0),
            remux_seconds=self._get("remux_seconds", None),
        )
        processing = ProcessingConfig(
            workers=self._get("workers", 2),
            extensions=self._get("extensions", (".mkv",)),
        )
        swap = SwapConfig(
            audio_language=self._get("audio_language", None),
            subtitles_language=self._get("subtitles_language", None),
            overwrite=self._get("overwrite", False),
            language_match=self._get("language_match", "prefix"),
            clear_other_defaults=self._get("clear_other_defaults", False),
            skip_unchanged=self._get("skip_unchanged", False),
        )
        logging_config = LoggingConfig(
            level=self._get("logging_level", "warning"),
            file=self._get("logging_file", None),
            format=self._get("logging_format", "text"),
            include_stderr=self._get("logging_include_stderr", False),
            max_bytes=self._get("logging_max_bytes", 10_485_760),
            backup_count=self._get("logging_backup_count", 5),
        )
        return SwapperConfig(
            tools=tools,
            timeouts=timeouts,
            processing=processing,
            swap=swap,
            logging=logging_config,
        )


def get_default_config_path(env_reader: EnvReader | None = None) -> Path:
    """Get the config file path, honoring TRACKS_SWAPPER_CONFIG_PATH."""
    reader = env_reader or EnvReader()
    return reader.get_path(f"{ENV_PREFIX}CONFIG_PATH", DEFAULT_CONFIG_FILE)


def load_toml_file(path: Path, *, strict: bool = False) -> dict[str, Any]:
    """Load and parse a TOML file.

    Returns:
        Parsed dictionary; empty if the file doesn't exist, or (when not
        strict) if it cannot be read or parsed.

    Raises:
        ConfigError: When strict and the file cannot be read or parsed.
    """
    if not path.exists():
        logger.debug("Config file not found: %s", path)
        return {}

    try:
        with open(path, "rb") as f:
            config = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        if strict:
            raise ConfigError(f"Failed to load config file {path}: {e}") from e
        logger.warning("Failed to load config file %s: %s", path, e)
        return {}

    logger.debug("Loaded config from %s", path)
    return config


def load_config_file(path: Path | None = None, *, strict: bool = False) -> dict:
    """Load configuration from a TOML file, cached by path and mtime.

    Thread-safe. Use clear_config_cache() to force a reload.
    """
    if path is None:
        path = get_default_config_path()

    try:
        current_mtime = path.stat().st_mtime
    except FileNotFoundError:
        current_mtime = 0.0

    with _config_cache_lock:
        cached = _config_cache.get(path)
        if cached is not None and cached[1] == current_mtime:
            return cached[0]

        result = load_toml_file(path, strict=strict)
        _config_cache[path] = (result, current_mtime)
        return result


def clear_config_cache() -> None:
    """Clear the config file cache. Primarily useful for testing."""
    with _config_cache_lock:
        _config_cache.clear()


def _as_path(value: Any) -> Path | None:
    return Path(str(value)).expanduser() if value else None


def source_from_file(file_config: dict[str, Any]) -> ConfigSource:
    """Create a ConfigSource from parsed TOML sections."""
    tools = file_config.get("tools", {})
    timeouts = file_config.get("timeouts", {})
    processing = file_config.get("processing", {})
    swap = file_config.get("swap", {})
    log = file_config.get("logging", {})

    extensions = processing.get("extensions")
    return ConfigSource(
        mkvinfo_path=_as_path(tools.get("mkvinfo")),
        mkvmerge_path=_as_path(tools.get("mkvmerge")),
        use_embedded_programs=tools.get("use_embedded_programs"),
        inspect_seconds=timeouts.get("inspect_seconds"),
        remux_seconds=timeouts.get("remux_seconds"),
        workers=processing.get("workers"),
        extensions=tuple(extensions) if extensions is not None else None,
        audio_language=swap.get("audio_language"),
        subtitles_language=swap.get("subtitles_language"),
        overwrite=swap.get("overwrite"),
        language_match=swap.get("language_match"),
        clear_other_defaults=swap.get("clear_other_defaults"),
        skip_unchanged=swap.get("skip_unchanged"),
        logging_level=log.get("level"),
        logging_file=_as_path(log.get("file")),
        logging_format=log.get("format"),
        logging_include_stderr=log.get("include_stderr"),
        logging_max_bytes=log.get("max_bytes"),
        logging_backup_count=log.get("backup_count"),
    )


def source_from_env(reader: EnvReader) -> ConfigSource:
    """Create a ConfigSource from TRACKS_SWAPPER_* environment variables."""
    extensions = reader.get_list(f"{ENV_PREFIX}EXTENSIONS")
    return ConfigSource(
        mkvinfo_path=reader.get_path(f"{ENV_PREFIX}MKVINFO_PATH"),
        mkvmerge_path=reader.get_path(f"{ENV_PREFIX}MKVMERGE_PATH"),
        use_embedded_programs=reader.get_bool(f"{ENV_PREFIX}USE_EMBEDDED_PROGRAMS"),
        inspect_seconds=reader.get_float(f"{ENV_PREFIX}INSPECT_TIMEOUT"),
        remux_seconds=reader.get_float(f"{ENV_PREFIX}REMUX_TIMEOUT"),
        workers=reader.get_int(f"{ENV_PREFIX}WORKERS"),
        extensions=tuple(extensions) if extensions else None,
        audio_language=reader.get_str(f"{ENV_PREFIX}AUDIO"),
        subtitles_language=reader.get_str(f"{ENV_PREFIX}SUBTITLES"),
        overwrite=reader.get_bool(f"{ENV_PREFIX}OVERWRITE"),
        language_match=reader.get_str(f"{ENV_PREFIX}LANGUAGE_MATCH"),
        logging_level=reader.get_str(f"{ENV_PREFIX}LOG_LEVEL"),
        logging_file=reader.get_path(f"{ENV_PREFIX}LOG_FILE"),
        logging_format=reader.get_str(f"{ENV_PREFIX}LOG_FORMAT"),
    )


def get_config(
    config_path: Path | None = None,
    env: EnvReader | None = None,
    *,
    strict: bool = False,
) -> SwapperConfig:
    """Get configuration with full precedence handling.

    Args:
        config_path: Path to config file (overrides TRACKS_SWAPPER_CONFIG_PATH).
        env: Optional EnvReader for testing (uses os.environ if None).
        strict: Raise ConfigError on config file parse failures instead of
            falling back to defaults.

    Returns:
        SwapperConfig with merged configuration.

    Raises:
        ConfigError: If a configured value is invalid, or when strict and
            the config file cannot be parsed.
    """
    reader = env or EnvReader()
    path = config_path or get_default_config_path(reader)
    file_config = load_config_file(path, strict=strict)

    builder = ConfigBuilder()
    builder.apply(source_from_file(file_config))
    builder.apply(source_from_env(reader))
    try:
        return builder.build()
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
