"""Levelled application logging through one shared logger."""

from __future__ import annotations

import sys
import threading
from dataclasses import dataclass
from datetime import datetime
from io import StringIO
from typing import Callable, Optional, TextIO

DEBUG_LEVEL = 1
INFO_LEVEL = 2
WARN_LEVEL = 3
DEFAULT_LEVEL = 5


@dataclass(frozen=True)
class LogContext:
    """Names the application that owns the log output."""

    app: str


class AppLogger:
    """Writes prefixed, optionally timestamped lines to a stream."""

    def __init__(
        self,
        prefix: str = "",
        level: int = DEFAULT_LEVEL,
        verbose: bool = False,
        timestamps: bool = True,
        stream: Optional[TextIO] = None,
    ) -> None:
        self.prefix = prefix
        self.level = level
        self.verbose = verbose
        self.timestamps = timestamps
        self._stream = stream
        self._lock = threading.Lock()

    @property
    def output(self) -> TextIO:
        """The stream lines currently go to; standard error unless redirected."""
        return self._stream if self._stream is not None else sys.stderr

    def set_output(self, stream: Optional[TextIO]) -> None:
        """Redirect output to ``stream``; ``None`` means standard error."""
        self._stream = stream

    def _println(self, text: str) -> None:
        stamp = datetime.now().strftime("%Y/%m/%d %H:%M:%S ") if self.timestamps else ""
        line = f"{self.prefix}{stamp}{text}\n"
        with self._lock:
            out = self.output
            out.write(line)
            out.flush()


_instance: Optional[AppLogger] = None
_instance_lock = threading.Lock()


def create_instance(context: LogContext, level: int, verbose: bool) -> None:
    """Create the shared logger; calls after the first have no effect."""
    global _instance
    with _instance_lock:
        if _instance is None:
            _instance = AppLogger(prefix=context.app + ":", level=level, verbose=verbose)


def get_logger() -> AppLogger:
    """Return the shared logger."""
    if _instance is None:
        create_instance(LogContext(app="test"), DEFAULT_LEVEL, False)
    assert _instance is not None
    return _instance


def set_app_name(name: str) -> None:
    """Set the prefix written before every log line."""
    get_logger().prefix = name + " "


def _emit(tag: str, function: str, msg: str, threshold: Optional[int]) -> None:
    logger = get_logger()
    if threshold is not None and not (logger.verbose and logger.level <= threshold):
        return
    logger._println("".join((f" [{tag}] ", function, " ", msg)))


def debug(function: str, msg: str) -> None:
    """Log a debug line when verbose and the level allows it."""
    _emit("DEBUG", function, msg, DEBUG_LEVEL)


def info(function: str, msg: str) -> None:
    """Log an informational line when verbose and the level allows it."""
    _emit("INFO", function, msg, INFO_LEVEL)


def warn(function: str, msg: str) -> None:
    """Log a warning when verbose and the level allows it."""
    _emit("WARN", function, msg, WARN_LEVEL)


def error(function: str, msg: str) -> None:
    """Log an error line unconditionally."""
    _emit("ERROR", function, msg, None)


def capture_output(func: Callable[[], object], logger: AppLogger) -> str:
    """Run ``func`` while collecting what ``logger`` writes, and return it."""
    buffer = StringIO()
    previous = logger._stream
    logger.set_output(buffer)
    try:
        func()
    finally:
        logger.set_output(previous)
    return buffer.getvalue()


create_instance(LogContext(app="test"), DEFAULT_LEVEL, False)