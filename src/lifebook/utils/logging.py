"""Logging setup for Lifebook.

Library modules only create child loggers of ``lifebook``; the CLI calls
``setup_logging`` once to attach handlers. Console output goes to stderr
through Rich so it never mixes with command output. A log file, when asked
for, gets plain lines with a timestamp and the logger name.

Example:
    >>> from lifebook.utils.logging import log_duration, setup_logging
    >>> setup_logging("DEBUG")
    >>> with log_duration("Generating pack for 2024-03"):
    ...     ...
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "lifebook"

# SDK and transport loggers that chatter at INFO
THIRD_PARTY_LOGGERS = ("google.api_core", "google.generativeai", "grpc", "urllib3", "keyring")

LOG_FILE_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"


def resolve_level(level: str | int) -> int:
    """Turn a level name such as ``"debug"`` into its numeric value.

    Raises:
        ValueError: The name is not a standard logging level.
    """
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.strip().upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return value


def _console_handler(level: int) -> logging.Handler:
    return RichHandler(
        console=Console(stderr=True),
        show_time=False,
        show_path=level <= logging.DEBUG,
        rich_tracebacks=True,
        markup=False,
    )


def _file_handler(path: Path) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FILE_FORMAT))
    return handler


def setup_logging(
    level: str | int = "INFO",
    log_file: Path | None = None,
    quiet_third_party: bool = True,
) -> logging.Logger:
    """Attach console and optional file handlers to the ``lifebook`` logger.

    Calling it again replaces the handlers of the previous call, closing
    any open log file.

    Args:
        level: Level name or number.
        log_file: File to append plain-text records to; parents are created.
        quiet_third_party: Hold SDK loggers at WARNING.

    Returns:
        The configured package logger.
    """
    numeric = resolve_level(level)
    package_logger = logging.getLogger(ROOT_LOGGER)

    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    package_logger.setLevel(numeric)
    package_logger.propagate = False
    package_logger.addHandler(_console_handler(numeric))
    if log_file is not None:
        package_logger.addHandler(_file_handler(Path(log_file)))

    if quiet_third_party:
        for name in THIRD_PARTY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    package_logger.debug(f"Logging at {logging.getLevelName(numeric)}, file={log_file}")
    return package_logger


@dataclass
class Timing:
    """Wall-clock duration of a ``log_duration`` block, filled in on exit."""

    elapsed: float = 0.0


@contextmanager
def log_duration(
    message: str,
    logger: logging.Logger | None = None,
    level: int = logging.INFO,
) -> Iterator[Timing]:
    """Log the start and end of an operation with how long it took.

    A failure is logged at ERROR with the exception type and re-raised.
    """
    log = logger or logging.getLogger(ROOT_LOGGER)
    timing = Timing()
    start = time.perf_counter()
    log.log(level, f"{message}...")
    try:
        yield timing
    except Exception as e:
        timing.elapsed = time.perf_counter() - start
        log.error(f"{message} failed after {timing.elapsed:.2f}s ({type(e).__name__}: {e})")
        raise
    timing.elapsed = time.perf_counter() - start
    log.log(level, f"{message} done in {timing.elapsed:.2f}s")
