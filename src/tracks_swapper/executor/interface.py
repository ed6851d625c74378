"""Executor result and settings types."""

from dataclasses import dataclass
from pathlib import Path

from tracks_swapper.domain.enums import RunStatus
from tracks_swapper.policy.swap import LanguagePreferences


@dataclass(frozen=True)
class ExecutorResult:
    """Result of an executor operation."""

    success: bool
    """True if the operation succeeded."""

    message: str = ""
    """Human-readable message describing the result."""

    output_path: Path | None = None
    """File holding the reordered tracks (the original path when overwritten)."""

    status: RunStatus | None = None
    """How the mkvmerge invocation resolved, if it was started."""

    swaps: tuple[str, ...] = ()
    """Applied swaps as "<type>:<language>" entries."""


@dataclass(frozen=True)
class SwapSettings:
    """What to do with each container."""

    preferences: LanguagePreferences
    overwrite: bool = False
    """Replace the original file instead of writing a *_swapped sibling."""

    clear_other_defaults: bool = False
    """Also clear the default flag of other tracks of a swapped type."""

    skip_unchanged: bool = False
    """Skip the remux when no swap applies."""
