"""Domain enums for MKV Tracks Swapper.

This module contains enums shared by the process runner, the mkvinfo reader
and the mkvmerge executor.
"""

from enum import Enum


class TrackType(Enum):
    """Type of an elementary stream inside a Matroska container.

    Values match the lowercase spelling mkvinfo prints after ``Track type:``.
    """

    VIDEO = "video"
    AUDIO = "audio"
    SUBTITLES = "subtitles"
    UNKNOWN = "unknown"  # buttons, complex, or an unparseable value

    @classmethod
    def from_mkvinfo(cls, value: str) -> "TrackType":
        """Map an mkvinfo type token to a TrackType (case-insensitive).

        Returns UNKNOWN for anything that is not video, audio or subtitles.
        """
        try:
            return cls(value.casefold())
        except ValueError:
            return cls.UNKNOWN


class RunStatus(Enum):
    """How one external process invocation was resolved.

    Exactly one status is assigned per invocation.
    """

    SUCCESS = "success"  # Exited on its own with code 0
    NON_ZERO_EXIT = "non_zero_exit"  # Exited on its own with another code
    TIMEOUT = "timeout"  # Timeout fired before the process exited
    CANCELLED = "cancelled"  # Cancellation signal observed before exit
    SPAWN_FAILURE = "spawn_failure"  # Executable missing or not startable


class LanguageMatch(Enum):
    """How a requested language is compared against a track language."""

    PREFIX = "prefix"  # "en" matches "eng"
    EXACT = "exact"  # "en" matches only "en"
