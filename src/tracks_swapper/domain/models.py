"""Domain models for MKV Tracks Swapper.

These models describe what mkvinfo reports about a container and are
independent of how the report is obtained.
"""

from dataclasses import dataclass, field
from pathlib import Path

from tracks_swapper.domain.enums import RunStatus, TrackType

# Sentinel for a track number that could not be parsed (int32 minimum).
UNKNOWN_TRACK_NUMBER = -(2**31)

# Matroska's default language when a track carries no Language element.
DEFAULT_LANGUAGE = "eng"

# Matroska's FlagDefault when a track carries no "Default track flag" element.
DEFAULT_TRACK_FLAG = True


@dataclass(eq=False)
class Track:
    """One track of a Matroska container.

    Equality and hashing use ``uid`` only; mkvinfo guarantees UIDs are
    unique within one container. ``number`` is the 1-based number mkvinfo
    prints and is the only field the swap step rewrites.
    """

    number: int = UNKNOWN_TRACK_NUMBER
    uid: str = ""
    type: TrackType = TrackType.UNKNOWN
    language: str = DEFAULT_LANGUAGE
    is_default: bool = False

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Track):
            return NotImplemented
        return self.uid == other.uid

    def __hash__(self) -> int:
        return hash(self.uid)

    @property
    def remux_index(self) -> int:
        """Zero-based track id used by mkvmerge (mkvinfo numbers from 1)."""
        return self.number - 1


@dataclass
class ContainerHandle:
    """A container file together with the tracks read from it."""

    path: Path
    tracks: list[Track] = field(default_factory=list)

    def tracks_of_type(self, track_type: TrackType) -> list[Track]:
        """Return tracks of the given type, in discovery order."""
        return [t for t in self.tracks if t.type == track_type]


@dataclass
class IntrospectionResult:
    """Result of reading a container's tracks with mkvinfo."""

    file_path: Path
    handle: ContainerHandle | None = None
    status: RunStatus | None = None
    error: str | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """Return True if the tracks were read without a fatal error."""
        return self.error is None and self.handle is not None

    @property
    def tracks(self) -> list[Track]:
        """Return the tracks read, or an empty list on failure."""
        return self.handle.tracks if self.handle is not None else []
