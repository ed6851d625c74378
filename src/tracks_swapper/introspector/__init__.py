"""Track introspection via mkvinfo."""

from tracks_swapper.introspector.mkvinfo import (
    MkvinfoIntrospector,
    MkvinfoParser,
    get_property_value,
)

__all__ = [
    "MkvinfoIntrospector",
    "MkvinfoParser",
    "get_property_value",
]
