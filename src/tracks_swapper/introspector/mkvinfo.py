"""mkvinfo-based track introspection.

mkvinfo prints an indented tree. The parts this module reads look like::

    |+ Tracks
    | + Track
    |  + Track number: 1 (track ID for mkvmerge & mkvextract: 0)
    |  + Track UID: 1234567890
    |  + Track type: video
    |  + Default track flag: 0
    |  + Language: jpn

Lines arrive one at a time from the process runner, so the parser keeps a
single in-progress track and appends it when the next track starts, when
another top-level section starts, or when the stream ends.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from tracks_swapper.core.process_runner import ProcessRunner
from tracks_swapper.domain.enums import RunStatus, TrackType
from tracks_swapper.domain.models import (
    DEFAULT_TRACK_FLAG,
    UNKNOWN_TRACK_NUMBER,
    ContainerHandle,
    IntrospectionResult,
    Track,
)

module_logger = logging.getLogger(__name__)

TRACK_MARKER = "| + Track"
SEGMENT_ELEMENT_PREFIX = "|+ "
TRACKS_SECTION = "|+ Tracks"

NUMBER_PREFIX = "|  + Track number:"
UID_PREFIX = "|  + Track UID:"
TYPE_PREFIX = "|  + Track type:"
LANGUAGE_PREFIX = "|  + Language:"
DEFAULT_FLAG_PREFIX = "|  + Default track flag:"

# Types mkvinfo knows about that this tool never reorders.
_UNSUPPORTED_TYPES = frozenset({"buttons", "complex"})

_TRUE_FLAGS = frozenset({"1", "yes", "true"})
_FALSE_FLAGS = frozenset({"0", "no", "false"})


def get_property_value(line: str) -> str:
    """Return the first whitespace-delimited token after the first colon.

    ``"|  + Track number: 2 (track ID ...: 1)"`` gives ``"2"``; a line with
    nothing after the colon gives an empty string.
    """
    _, _, rest = line.partition(":")
    tokens = rest.split()
    return tokens[0] if tokens else ""


class MkvinfoParser:
    """Assemble Track records from mkvinfo output lines.

    Feed lines in order with feed(), then call finish() once the stream has
    ended. Malformed values never abort parsing: the field gets a sentinel
    and a message is added to ``warnings``.
    """

    def __init__(self) -> None:
        self._tracks: list[Track] = []
        self._current: Track | None = None
        self.warnings: list[str] = []

    @property
    def tracks(self) -> list[Track]:
        """Tracks completed so far (excludes the in-progress one)."""
        return self._tracks

    def feed(self, line: str) -> None:
        """Consume one line of mkvinfo output (without line terminator)."""
        line = line.rstrip()

        if line == TRACK_MARKER:
            self._flush()
            self._current = Track(is_default=DEFAULT_TRACK_FLAG)
            return

        if line.startswith(SEGMENT_ELEMENT_PREFIX):
            if line != TRACKS_SECTION:
                self._flush()
            return

        if self._current is None:
            return

        if line.startswith(NUMBER_PREFIX):
            self._current.number = self._parse_number(get_property_value(line))
        elif line.startswith(UID_PREFIX):
            self._current.uid = get_property_value(line)
        elif line.startswith(TYPE_PREFIX):
            self._current.type = self._parse_type(get_property_value(line))
        elif line.startswith(LANGUAGE_PREFIX):
            self._current.language = get_property_value(line).casefold()
        elif line.startswith(DEFAULT_FLAG_PREFIX):
            self._current.is_default = self._parse_flag(get_property_value(line))

    def finish(self) -> list[Track]:
        """Flush the pending track and return every track read.

        Safe to call more than once.
        """
        self._flush()
        return self._tracks

    def _flush(self) -> None:
        if self._current is not None:
            self._tracks.append(self._current)
            self._current = None

    def _parse_number(self, value: str) -> int:
        try:
            return int(value)
        except ValueError:
            self.warnings.append(f"Invalid track number: {value!r}")
            return UNKNOWN_TRACK_NUMBER

    def _parse_type(self, value: str) -> TrackType:
        track_type = TrackType.from_mkvinfo(value)
        if (
            track_type == TrackType.UNKNOWN
            and value.casefold() not in _UNSUPPORTED_TYPES
        ):
            self.warnings.append(f"Invalid track type: {value!r}")
        return track_type

    def _parse_flag(self, value: str) -> bool:
        folded = value.casefold()
        if folded in _TRUE_FLAGS:
            return True
        if folded not in _FALSE_FLAGS:
            self.warnings.append(f"Invalid default track flag: {value!r}")
        return False


class MkvinfoIntrospector:
    """Read a container's tracks by streaming mkvinfo output."""

    DEFAULT_TIMEOUT: float = 8.0

    def __init__(
        self,
        tool_path: Path | str | None = None,
        timeout: float | None = DEFAULT_TIMEOUT,
        use_embedded_program: bool = True,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the introspector.

        Args:
            tool_path: mkvinfo path or name. None looks up "mkvinfo".
            timeout: Seconds allowed per file. None disables the limit.
            use_embedded_program: Prefer an mkvinfo shipped next to the binary.
            logger: Logger for diagnostics. Defaults to this module's logger.
        """
        self._tool = tool_path or "mkvinfo"
        self._timeout = timeout
        self._use_embedded_program = use_embedded_program
        self._logger = logger or module_logger

    def read_tracks(
        self,
        path: Path,
        cancel_event: threading.Event | None = None,
    ) -> IntrospectionResult:
        """Run mkvinfo on path and collect its tracks.

        Args:
            path: Container file to read.
            cancel_event: Shared cancellation signal.

        Returns:
            IntrospectionResult with a ContainerHandle on success, or the
            run status and error text of the failed invocation.
        """
        if not path.exists():
            return IntrospectionResult(file_path=path, error=f"File not found: {path}")

        parser = MkvinfoParser()

        def on_line(line: str | None) -> None:
            if line is None:
                parser.finish()
            else:
                parser.feed(line)

        self._logger.info("Reading tracks of %s", path)
        with ProcessRunner(
            self._tool,
            timeout=self._timeout,
            on_output_line=on_line,
            use_embedded_program=self._use_embedded_program,
            logger=self._logger,
        ) as runner:
            successful = runner.run([path], cancel_event)
            status = runner.result.status if runner.result else None
            error = runner.error
            warnings = [*parser.warnings, *runner.warnings]

        if not successful:
            message = f"mkvinfo failed for {path}: {error or _describe(status)}"
            self._logger.error("%s", message, extra={"file_path": str(path)})
            return IntrospectionResult(
                file_path=path, status=status, error=message, warnings=warnings
            )

        # The end-of-stream sentinel already flushed; finish() is idempotent.
        tracks = parser.finish()
        self._logger.debug(
            "Read %d tracks", len(tracks), extra={"file_path": str(path)}
        )
        return IntrospectionResult(
            file_path=path,
            handle=ContainerHandle(path=path, tracks=tracks),
            status=status,
            warnings=warnings,
        )


def _describe(status: RunStatus | None) -> str:
    if status == RunStatus.NON_ZERO_EXIT:
        return "non-zero exit code"
    return status.value if status else "unknown error"
