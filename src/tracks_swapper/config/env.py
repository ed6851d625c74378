"""Environment variable reader with dependency injection support."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

logger = logging.getLogger(__name__)

_TRUE_VALUES = ("true", "1", "yes", "on")


class EnvReader:
    """Typed access to TRACKS_SWAPPER_* environment variables.

    Invalid numeric values are logged and replaced by the default. Pass
    ``env`` to read from a mapping instead of os.environ.

    Example:
        reader = EnvReader(env={"TRACKS_SWAPPER_WORKERS": "4"})
        reader.get_int("TRACKS_SWAPPER_WORKERS", 2)  # 4
    """

    def __init__(self, env: Mapping[str, str] | None = None) -> None:
        self._env: Mapping[str, str] = env if env is not None else os.environ

    def get_str(self, var: str, default: str | None = None) -> str | None:
        value = self._env.get(var)
        return default if value is None else value

    def get_int(self, var: str, default: int | None = None) -> int | None:
        value = self._env.get(var)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError:
            logger.warning("Invalid integer value for %s: %s", var, value)
            return default

    def get_float(self, var: str, default: float | None = None) -> float | None:
        value = self._env.get(var)
        if value is None:
            return default
        try:
            return float(value)
        except ValueError:
            logger.warning("Invalid float value for %s: %s", var, value)
            return default

    def get_bool(self, var: str, default: bool | None = None) -> bool | None:
        """Read a boolean; "true", "1", "yes" and "on" are true."""
        value = self._env.get(var)
        if value is None:
            return default
        return value.strip().lower() in _TRUE_VALUES

    def get_path(self, var: str, default: Path | None = None) -> Path | None:
        """Read a path with tilde expansion. Existence is not checked."""
        value = self._env.get(var)
        if not value:
            return default
        return Path(value).expanduser()

    def get_list(
        self, var: str, separator: str = ",", default: list[str] | None = None
    ) -> list[str] | None:
        """Read a separator-delimited list, dropping empty entries."""
        value = self._env.get(var)
        if value is None:
            return default
        return [part.strip() for part in value.split(separator) if part.strip()]
