"""
Queue-based logging setup.

Log records are handed to a background thread so console and file I/O
never stall the event loop between observations.
"""

import logging
import sys
from datetime import datetime
from logging.handlers import QueueHandler, QueueListener
from pathlib import Path
from queue import Queue

from dexarb.config.constants import LOG_DATE_FORMAT, LOG_FORMAT, MAX_LOG_QUEUE_SIZE


PACKAGE_LOGGER = "dexarb"

# Chatty libraries capped at WARNING
QUIET_LOGGERS = ("aiohttp", "asyncio")


class MicrosecondFormatter(logging.Formatter):
    """Formatter with microsecond precision timestamps."""

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        created = datetime.fromtimestamp(record.created)
        return f"{created.strftime(datefmt or LOG_DATE_FORMAT)}.{created.microsecond:06d}"


def _console_handler(level: int, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    handler.setLevel(level)
    return handler


def _file_handler(path: Path, formatter: logging.Formatter) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setFormatter(formatter)
    handler.setLevel(logging.DEBUG)
    return handler


class AsyncLogger:
    """
    Owns the queue listener behind the package logger.

    Every ``logging.getLogger(__name__)`` in the package propagates to
    the ``dexarb`` logger, whose only handler is a QueueHandler. The
    console gets ``level`` and above; the optional file gets everything.
    """

    def __init__(
        self,
        name: str = PACKAGE_LOGGER,
        level: int = logging.INFO,
        log_file: Path | None = None,
    ) -> None:
        self._level = level
        self._log_file = log_file
        self._logger = logging.getLogger(name)
        self._queue_handler = QueueHandler(Queue(maxsize=MAX_LOG_QUEUE_SIZE))
        self._listener: QueueListener | None = None

    def start(self) -> None:
        """Attach the queue handler and start the writer thread. Idempotent."""
        if self._listener is not None:
            return

        formatter = MicrosecondFormatter(LOG_FORMAT, LOG_DATE_FORMAT)
        sinks = [_console_handler(self._level, formatter)]
        if self._log_file is not None:
            sinks.append(_file_handler(self._log_file, formatter))

        self._logger.setLevel(logging.DEBUG if self._log_file else self._level)
        self._logger.addHandler(self._queue_handler)

        self._listener = QueueListener(
            self._queue_handler.queue, *sinks, respect_handler_level=True
        )
        self._listener.start()

    def stop(self) -> None:
        """Flush pending records, close the sinks and detach."""
        self._logger.removeHandler(self._queue_handler)
        if self._listener is None:
            return
        self._listener.stop()
        for sink in self._listener.handlers:
            sink.close()
        self._listener = None

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def __enter__(self) -> "AsyncLogger":
        self.start()
        return self

    def __exit__(self, *args: object) -> None:
        self.stop()


def setup_logging(
    level: str = "INFO",
    log_file: Path | None = None,
) -> AsyncLogger:
    """
    Set up package-wide logging.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR).
        log_file: Optional log file path.

    Returns:
        Started AsyncLogger; call ``stop()`` on shutdown.
    """
    async_logger = AsyncLogger(
        level=logging.getLevelNamesMapping().get(level.upper(), logging.INFO),
        log_file=log_file,
    )
    async_logger.start()

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return async_logger
