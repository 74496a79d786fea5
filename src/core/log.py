"""
Logging setup shared by the contest query engine and its CLI.

Loggers returned by :func:`get_logger` write colored records to stdout and,
once :func:`configure_logging` has been given a path, a plain-text copy to
that file. ``LOG_LEVEL`` and ``LOG_FILE`` are read from the environment.
"""

import logging
import os
import re
import sys
import time
from contextlib import contextmanager
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Iterator, Optional, Union

from colorama import Back, Fore, Style, init

init(autoreset=True)

TRACE = logging.DEBUG - 5
logging.addLevelName(TRACE, "TRACE")


def _trace(self: logging.Logger, message, *args, **kwargs):
    if self.isEnabledFor(TRACE):
        self._log(TRACE, message, args, **kwargs)


if not hasattr(logging.Logger, "trace"):
    logging.Logger.trace = _trace  # type: ignore[attr-defined]


class LogLevel(StrEnum):
    TRACE = "TRACE"
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    @property
    def level(self) -> int:
        return logging.getLevelNamesMapping()[self.value]

    @classmethod
    def from_env(cls) -> "LogLevel":
        """Level named by ``LOG_LEVEL``; unknown names fall back to INFO."""
        requested = os.getenv("LOG_LEVEL", "INFO").strip().upper()
        if requested in cls.__members__:
            return cls(requested)
        sys.stdout.write(
            f"{Fore.YELLOW}WARNING{Style.RESET_ALL}: "
            f"ignoring unknown LOG_LEVEL {requested!r}, using INFO\n"
        )
        return cls.INFO


_LEVEL_COLORS = {
    TRACE: Fore.MAGENTA,
    logging.DEBUG: Fore.CYAN,
    logging.INFO: Fore.GREEN,
    logging.WARNING: Fore.YELLOW,
    logging.ERROR: Fore.RED,
    logging.CRITICAL: Fore.RED + Back.WHITE,
}


class ColoredFormatter(logging.Formatter):
    """Highlights the level name; the record itself is left untouched."""

    def format(self, record: logging.LogRecord) -> str:
        color = _LEVEL_COLORS.get(record.levelno, Fore.WHITE)
        shadow = logging.makeLogRecord(record.__dict__)
        shadow.levelname = f"{color}{Style.BRIGHT}{record.levelname}{Style.RESET_ALL}"
        return super().format(shadow)


RECORD_FORMAT = (
    f"{Fore.BLUE}%(asctime)s.%(msecs)03d{Style.RESET_ALL} "
    f"[%(levelname)s] "
    f"{Fore.BLUE}%(name)s:%(lineno)d{Style.RESET_ALL} "
    f"%(message)s"
)
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_ANSI = re.compile(r"\x1b\[[0-9;]*m")


@dataclass(frozen=True)
class _Formats:
    record: str
    date: str


# Loggers created without explicit handlers; configure_logging rewires them.
_registry: dict[str, _Formats] = {}
_file_target: Optional[Path] = (
    Path(os.environ["LOG_FILE"]).expanduser() if os.getenv("LOG_FILE") else None
)


def _handlers_for(level: int, formats: _Formats) -> list[logging.Handler]:
    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(ColoredFormatter(formats.record, datefmt=formats.date))
    result: list[logging.Handler] = [console]

    if _file_target is not None:
        _file_target.parent.mkdir(parents=True, exist_ok=True)
        to_file = logging.FileHandler(_file_target, mode="a", encoding="utf-8")
        to_file.setFormatter(
            logging.Formatter(_ANSI.sub("", formats.record), datefmt=formats.date)
        )
        result.append(to_file)

    for handler in result:
        handler.setLevel(level)
    return result


def _attach(logger: logging.Logger, handlers: list[logging.Handler]) -> None:
    while logger.handlers:
        stale = logger.handlers.pop()
        stale.close()
    for handler in handlers:
        logger.addHandler(handler)


def configure_logging(log_file_path: Optional[Union[str, os.PathLike[str]]] = None):
    """Send every registered logger to stdout plus ``log_file_path`` if given."""
    global _file_target

    _file_target = Path(log_file_path).expanduser() if log_file_path else None
    for name, formats in _registry.items():
        logger = logging.getLogger(name)
        _attach(logger, _handlers_for(logger.level or logging.INFO, formats))


def get_logger(
    name: str,
    log_format: Optional[str] = None,
    date_format: Optional[str] = None,
    handlers: Optional[list[logging.Handler]] = None,
) -> logging.Logger:
    """Return the logger ``name`` at the level given by ``LOG_LEVEL``.

    Parameters
    ----------
    name: str
        Logger name, normally the caller's ``__name__``.
    log_format: Optional[str]
        Record format; :data:`RECORD_FORMAT` when omitted.
    date_format: Optional[str]
        Timestamp format; :data:`DATE_FORMAT` when omitted.
    handlers: Optional[list[logging.Handler]]
        Handlers to use verbatim. Loggers built this way are not touched by
        :func:`configure_logging`.
    """
    level = LogLevel.from_env().level
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if handlers is not None:
        _registry.pop(name, None)
        _attach(logger, handlers)
        return logger

    formats = _Formats(log_format or RECORD_FORMAT, date_format or DATE_FORMAT)
    _registry[name] = formats
    _attach(logger, _handlers_for(level, formats))
    return logger


@contextmanager
def log_duration(logger: logging.Logger, label: str) -> Iterator[None]:
    """Log how long the block took at DEBUG, whether or not it raised."""
    started = time.perf_counter()
    try:
        yield
    finally:
        logger.debug(f"{label} took {(time.perf_counter() - started) * 1000:.1f}ms")
