"""Track swap decisions.

For each requested (track type, language) pair the first track of that
type trades its track number with the first track of that type in the
requested language. mkvmerge then receives the tracks in discovery order
with their swapped numbers as ``--track-order``, which moves the wanted
track to the front of its group, and a ``--default-track`` directive for
the wanted track.

Everything here is pure computation on Track records; nothing is spawned.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from tracks_swapper.domain.enums import LanguageMatch, TrackType
from tracks_swapper.domain.models import Track


@dataclass(frozen=True)
class LanguagePreferences:
    """Requested first-track language per track type."""

    audio: str | None = None
    subtitles: str | None = None
    match: LanguageMatch = LanguageMatch.PREFIX

    def __post_init__(self) -> None:
        """Validate that requested languages are not blank."""
        for name in ("audio", "subtitles"):
            value = getattr(self, name)
            if value is not None and not value.strip():
                raise ValueError(f"{name} language must not be empty")

    @property
    def is_empty(self) -> bool:
        return self.audio is None and self.subtitles is None

    def requests(self) -> list[tuple[TrackType, str]]:
        """Requested (type, language) pairs, audio first."""
        pairs = []
        if self.audio is not None:
            pairs.append((TrackType.AUDIO, self.audio))
        if self.subtitles is not None:
            pairs.append((TrackType.SUBTITLES, self.subtitles))
        return pairs


@dataclass(frozen=True)
class SwapDecision:
    """One swap to apply for a track type."""

    track_type: TrackType
    language: str
    first: Track
    wanted: Track
    default_index: int
    """mkvmerge track id of the wanted track (its original number - 1)."""

    cleared_indices: tuple[int, ...] = ()
    """mkvmerge ids of other tracks of the type that were flagged default."""


@dataclass(frozen=True)
class SwapPlan:
    """All swaps applied to one container."""

    decisions: tuple[SwapDecision, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.decisions

    def decision_for(self, track_type: TrackType) -> SwapDecision | None:
        return next((d for d in self.decisions if d.track_type == track_type), None)


def language_matches(
    track_language: str,
    requested: str,
    match: LanguageMatch = LanguageMatch.PREFIX,
) -> bool:
    """Check whether a track language satisfies a requested language.

    Comparison is case-insensitive. With PREFIX, the requested language
    only has to start the track language ("en" matches "eng").
    """
    track = track_language.casefold()
    wanted = requested.strip().casefold()
    if match == LanguageMatch.PREFIX:
        return track.startswith(wanted)
    return track == wanted


def find_swap(
    tracks: Sequence[Track],
    track_type: TrackType,
    language: str,
    match: LanguageMatch = LanguageMatch.PREFIX,
) -> SwapDecision | None:
    """Decide the swap for one track type without mutating anything.

    Returns:
        None when the type has no track, no track matches the language,
        or the first track of the type already matches.
    """
    of_type = [t for t in tracks if t.type == track_type]
    if not of_type:
        return None

    first = of_type[0]
    wanted = next(
        (t for t in of_type if language_matches(t.language, language, match)), None
    )
    # Identity, not uid equality: uids may be empty in damaged files.
    if wanted is None or wanted is first:
        return None

    return SwapDecision(
        track_type=track_type,
        language=language,
        first=first,
        wanted=wanted,
        default_index=wanted.remux_index,
        cleared_indices=tuple(
            t.remux_index for t in of_type if t.is_default and t is not wanted
        ),
    )


def apply_swap(tracks: Sequence[Track], decision: SwapDecision) -> None:
    """Exchange track numbers and move the default flag to the wanted track."""
    first, wanted = decision.first, decision.wanted
    first.number, wanted.number = wanted.number, first.number

    for track in tracks:
        if track.type == decision.track_type:
            track.is_default = track is wanted


def plan_swaps(tracks: Sequence[Track], preferences: LanguagePreferences) -> SwapPlan:
    """Decide and apply swaps for every requested type.

    Each type is handled independently; types without a request keep
    their numbers and flags.
    """
    decisions = []
    for track_type, language in preferences.requests():
        decision = find_swap(tracks, track_type, language, preferences.match)
        if decision is None:
            continue
        apply_swap(tracks, decision)
        decisions.append(decision)
    return SwapPlan(decisions=tuple(decisions))


def track_order(tracks: Iterable[Track], file_index: int = 0) -> list[str]:
    """Render ``--track-order`` entries for tracks in discovery order.

    mkvinfo numbers tracks from 1 while mkvmerge ids start at 0, so each
    entry is ``"<file_index>:<number - 1>"``.

    Raises:
        ValueError: If a track number is missing/invalid or duplicated.
    """
    tracks = list(tracks)
    for track in tracks:
        if track.number < 1:
            raise ValueError(
                f"Invalid track number {track.number} for track uid {track.uid!r}"
            )

    counts = Counter(t.number for t in tracks)
    duplicates = [number for number, count in counts.items() if count > 1]
    if duplicates:
        raise ValueError(f"Duplicate track numbers: {sorted(duplicates)}")

    return [f"{file_index}:{track.remux_index}" for track in tracks]
