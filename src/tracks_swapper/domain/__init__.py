"""Domain models for MKV Tracks Swapper."""

from tracks_swapper.domain.enums import LanguageMatch, RunStatus, TrackType
from tracks_swapper.domain.models import (
    DEFAULT_LANGUAGE,
    DEFAULT_TRACK_FLAG,
    UNKNOWN_TRACK_NUMBER,
    ContainerHandle,
    IntrospectionResult,
    Track,
)

__all__ = [
    "DEFAULT_LANGUAGE",
    "DEFAULT_TRACK_FLAG",
    "UNKNOWN_TRACK_NUMBER",
    "ContainerHandle",
    "IntrospectionResult",
    "LanguageMatch",
    "RunStatus",
    "Track",
    "TrackType",
]
