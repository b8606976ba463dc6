"""Logging utilities for dtreepy.

dtreepy logs through loguru and, as loguru recommends for libraries, disables
its own messages on import.  ``enable_logging()`` adds a sink that only
receives dtreepy records and re-enables them; the returned handle removes the
sink again, either explicitly or as a context manager.

Levels used by the package:

- DEBUG: one line per node built (split dimension, kind, gain, children).
- INFO: one summary line per fitted estimator.
- WARNING: degenerate input that is accepted but probably unintended.
"""

from __future__ import annotations

import contextlib
import sys
import threading
from typing import TYPE_CHECKING, ClassVar, Final, Literal

from loguru import logger

if TYPE_CHECKING:
    from types import TracebackType

    from loguru import Record

PACKAGE_NAME: Final[str] = __name__.split(".")[0]

LogLevel = Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

_FORMAT: Final[str] = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - "
    "<level>{message}</level>"
)

logger.disable(PACKAGE_NAME)


class LoggingHandle:
    """Handle for a sink added by :func:`enable_logging`.

    Examples:
        >>> with enable_logging(level="DEBUG"):  # doctest: +SKIP
        ...     TreeClassifier().fit(X, y)
    """

    _active_ids: ClassVar[set[int]] = set()
    _lock: ClassVar[threading.Lock] = threading.Lock()

    def __init__(self, handler_id: int) -> None:
        self.handler_id: int | None = handler_id
        with LoggingHandle._lock:
            LoggingHandle._active_ids.add(handler_id)

    def disable(self) -> None:
        """Remove the sink; the last handle to go also disables dtreepy logging."""
        with LoggingHandle._lock:
            if self.handler_id is None:
                return
            LoggingHandle._active_ids.discard(self.handler_id)
            with contextlib.suppress(ValueError):
                logger.remove(self.handler_id)
            self.handler_id = None
            if not LoggingHandle._active_ids:
                logger.disable(PACKAGE_NAME)

    def __enter__(self) -> LoggingHandle:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.disable()

    @classmethod
    def get_active_handle_count(cls) -> int:
        with cls._lock:
            return len(cls._active_ids)


def enable_logging(*, level: LogLevel = "INFO", sink=sys.stderr) -> LoggingHandle:
    """Send dtreepy log records at or above ``level`` to ``sink``.

    Args:
        level (LogLevel): Minimum level to emit. Use "DEBUG" to see every
            split decision made while a tree is built.
        sink: Any loguru sink (stream, file path, callable). Defaults to
            ``sys.stderr``.

    Returns:
        LoggingHandle: Handle that removes the sink when disabled.
    """
    logger.enable(PACKAGE_NAME)
    handler_id = logger.add(sink, level=level, filter=_is_package_record, format=_FORMAT)
    return LoggingHandle(handler_id)


def _is_package_record(record: Record) -> bool:
    name = record["name"]
    return name is not None and name.startswith(PACKAGE_NAME)
