"""Named swap profiles.

Profiles store language preferences for different libraries (anime,
foreign films, ...) in ``~/.tracks-swapper/profiles/<name>.yaml`` and are
applied with ``--profile``::

    description: Japanese audio with English subtitles
    audio: jpn
    subtitles: eng
    language_match: exact
"""

from __future__ import annotations

import re
from dataclasses import replace
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from tracks_swapper.config.models import SwapConfig
from tracks_swapper.domain.enums import LanguageMatch

PROFILE_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")
LANGUAGE_CODE_PATTERN = re.compile(r"^[a-z]{2,3}$")


class ProfileError(Exception):
    """Error loading or validating a profile."""


class ProfileNotFoundError(ProfileError):
    """Profile does not exist."""


class ProfileModel(BaseModel):
    """Pydantic model for a profile file."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    description: str | None = None
    audio: str | None = None
    subtitles: str | None = None
    overwrite: bool | None = None
    language_match: LanguageMatch | None = None
    clear_other_defaults: bool | None = None
    skip_unchanged: bool | None = None

    @field_validator("audio", "subtitles")
    @classmethod
    def validate_language(cls, v: str | None) -> str | None:
        """Validate language codes (2-3 lowercase letters)."""
        if v is not None and not LANGUAGE_CODE_PATTERN.match(v):
            raise ValueError(
                f"Invalid language code '{v}'. Use 2-3 lowercase letters (e.g., 'eng')."
            )
        return v


def get_profiles_directory() -> Path:
    """Get the profiles directory path (~/.tracks-swapper/profiles/)."""
    return Path.home() / ".tracks-swapper" / "profiles"


def list_profiles(profiles_dir: Path | None = None) -> list[str]:
    """List available profile names (without .yaml extension), sorted."""
    profiles_dir = profiles_dir or get_profiles_directory()
    if not profiles_dir.exists():
        return []

    return sorted(
        p.stem
        for p in profiles_dir.glob("*.yaml")
        if p.is_file() and not p.name.startswith(".")
    )


def _format_validation_error(error: ValidationError) -> str:
    messages = []
    for err in error.errors():
        location = ".".join(str(part) for part in err["loc"]) or "profile"
        messages.append(f"{location}: {err['msg']}")
    return "; ".join(messages)


def load_profile(name: str, profiles_dir: Path | None = None) -> ProfileModel:
    """Load a profile by name.

    Args:
        name: Profile name (without .yaml extension).
        profiles_dir: Directory to look in. Defaults to get_profiles_directory().

    Returns:
        Validated profile.

    Raises:
        ProfileNotFoundError: If profile doesn't exist.
        ProfileError: If profile is invalid.
    """
    if not PROFILE_NAME_PATTERN.match(name):
        raise ProfileError(f"Profile name must be alphanumeric (with - or _): {name}")

    profiles_dir = profiles_dir or get_profiles_directory()
    profile_path = profiles_dir / f"{name}.yaml"

    if not profile_path.exists():
        raise ProfileNotFoundError(f"Profile not found: {name}")

    try:
        with open(profile_path, encoding="utf-8") as f:
            data: Any = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ProfileError(f"Invalid YAML in profile {name}: {e}") from e

    if not isinstance(data, dict):
        raise ProfileError(f"Profile {name} must be a YAML mapping")

    try:
        return ProfileModel.model_validate(data)
    except ValidationError as e:
        raise ProfileError(
            f"Invalid profile {name}: {_format_validation_error(e)}"
        ) from e


def merge_profile_with_config(profile: ProfileModel, config: SwapConfig) -> SwapConfig:
    """Merge profile settings into a base swap config.

    Precedence (highest wins): CLI flags (applied later), profile, base
    config, defaults. Unset profile values keep the base value.
    """
    overrides: dict[str, Any] = {}
    if profile.audio is not None:
        overrides["audio_language"] = profile.audio
    if profile.subtitles is not None:
        overrides["subtitles_language"] = profile.subtitles
    for name in (
        "overwrite",
        "language_match",
        "clear_other_defaults",
        "skip_unchanged",
    ):
        value = getattr(profile, name)
        if value is not None:
            overrides[name] = value

    return replace(config, **overrides)
