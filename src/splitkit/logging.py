"""Opt-in loguru output for the split search.

splitkit logs through loguru but keeps its records disabled until
`enable_logging()` is called. Records are emitted at these levels:

- SEARCH (15): one record per strategy run on a variable.
- DEBUG: the score of each computed candidate, and row partitioning.
- INFO: the split selected for a node, or that none was selected.
- WARNING: candidates skipped during selection because their score is NaN.
"""

from __future__ import annotations

import contextlib
import sys
import threading
import warnings
from typing import TYPE_CHECKING, ClassVar, Final, Literal

from loguru import logger

if TYPE_CHECKING:
    from types import TracebackType

    from loguru import Record

PACKAGE_NAME: Final[str] = __name__.split(".")[0]

# Drop loguru's default stderr sink (ID 0) so enabled records are not printed twice.
with contextlib.suppress(ValueError):
    logger.remove(0)

SEARCH_LEVEL: Final[str] = "SEARCH"
SEARCH_LEVEL_NUMBER: Final[int] = 15

type LogLevel = Literal["TRACE", "DEBUG", "SEARCH", "INFO", "WARNING", "ERROR", "CRITICAL"]
type LogFormat = Literal["short", "full"]

_LOCATION_FORMATS: Final[dict[str, str]] = {
    "short": "<cyan>{function}</cyan>",
    "full": "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan>",
}


def _register_search_level() -> None:
    """Add the SEARCH level to loguru, warning if a different SEARCH level exists."""
    try:
        existing_level = logger.level(SEARCH_LEVEL)
    except ValueError:
        logger.level(SEARCH_LEVEL, no=SEARCH_LEVEL_NUMBER, icon="🌳")
        return
    if existing_level.no != SEARCH_LEVEL_NUMBER:
        warnings.warn(
            f"SEARCH level already registered with numeric value {existing_level.no},"
            f" expected {SEARCH_LEVEL_NUMBER}",
            stacklevel=2,
        )


_register_search_level()


class LoggingHandle:
    """Owns one stderr sink added by `enable_logging`.

    Handles are counted across the process: splitkit records stay enabled
    until the last open handle is disabled. A handle is also a context
    manager that disables itself on exit.
    """

    _active_ids: ClassVar[set[int]] = set()
    _lock: ClassVar[threading.Lock] = threading.Lock()

    def __init__(self, handler_id: int) -> None:
        self.handler_id: int | None = handler_id
        with LoggingHandle._lock:
            LoggingHandle._active_ids.add(handler_id)

    def disable(self) -> None:
        """Remove this handle's sink; safe to call more than once."""
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
        """Return how many handles have not been disabled yet."""
        with cls._lock:
            return len(cls._active_ids)


def enable_logging(
    *,
    level: LogLevel = SEARCH_LEVEL,
    log_format: LogFormat = "short",
) -> LoggingHandle:
    """Print splitkit records at or above `level` to stderr.

    Args:
        level (LogLevel): Minimum level shown. The default "SEARCH" lists every
            strategy run; "DEBUG" adds candidate scores; "INFO" shows only the
            split chosen for each node.
        log_format (LogFormat): "short" prefixes records with the emitting
            function; "full" uses module:function:line.

    Returns:
        LoggingHandle: Handle that removes the sink again.

    Examples:
        >>> with enable_logging(level="DEBUG"):  # doctest: +SKIP
        ...     find_best_split(frame, "species", config=SplitConfig.cart())
    """
    logger.enable(PACKAGE_NAME)
    format_str = (
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
        "<level>{level: <8}</level> | "  # noqa: RUF027 - loguru format string
        f"{_LOCATION_FORMATS[log_format]} - "
        "<level>{message}</level> {extra}"
    )
    handler_id = logger.add(sys.stderr, level=level, filter=_is_splitkit_record, format=format_str)
    return LoggingHandle(handler_id)


def _is_splitkit_record(record: Record) -> bool:
    name = record["name"]
    return name is not None and name.startswith(PACKAGE_NAME)
