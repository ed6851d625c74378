"""Per-file logging context.

Each file task runs inside file_context(), which stores a short file tag
and the file path in contextvars so that every record logged by that task
(including from the process runner) carries them.
"""

from __future__ import annotations

import contextvars
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

_file_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "file_id", default=None
)
_file_path: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "file_path", default=None
)


def format_file_id(index: int, width: int = 2) -> str:
    """Tag for the index-th file of a batch (1-based): 3 gives "F03"."""
    return f"F{index:0{width}d}"


@contextmanager
def file_context(file_id: str, file_path: Path | str | None = None) -> Iterator[None]:
    """Tag log records emitted in this context with a file id and path.

    The previous context is restored on exit, so contexts nest.

    Example:
        with file_context("F03", "/media/movie.mkv"):
            logger.info("Reading tracks")  # "... - [F03] tracks_swapper..."
    """
    id_token = _file_id.set(file_id)
    path_token = _file_path.set(str(file_path) if file_path is not None else None)
    try:
        yield
    finally:
        _file_path.reset(path_token)
        _file_id.reset(id_token)


def get_file_context() -> tuple[str | None, str | None]:
    """Return the current (file_id, file_path); either may be None."""
    return _file_id.get(), _file_path.get()


class FileContextFilter(logging.Filter):
    """Inject file_id, file_path and a text-format file_tag into records.

    Never drops a record. An explicit ``extra={"file_path": ...}`` on the
    logging call wins over the context value.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        file_id, file_path = get_file_context()
        record.file_id = file_id
        if getattr(record, "file_path", None) is None:
            record.file_path = file_path
        record.file_tag = f"[{file_id}] " if file_id else ""
        return True
