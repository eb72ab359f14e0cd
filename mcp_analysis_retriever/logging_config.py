"""Async logging configuration using QueueHandler

Offloads logging to a background thread so request handling never blocks
on stderr or the log file. All modules should use get_logger() instead of
logging.getLogger() directly.
"""

import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from queue import Queue

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y/%m/%d %H:%M:%S"

# Third-party loggers held at INFO even when we run at DEBUG
NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn.access", "mcp.server")


class MillisecondFormatter(logging.Formatter):
    """Timestamps as 2024/01/31 12:00:00:0123 (UTC, 4-digit fraction)"""

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:  # noqa: N802
        ct = datetime.fromtimestamp(record.created, tz=timezone.utc)
        s = ct.strftime(datefmt or DATE_FORMAT)
        fraction = int((record.created % 1) * 10000)
        return f"{s}:{fraction:04d}"


def resolve_level(level: int | str) -> int:
    """Accept logging.DEBUG or "debug"; unknown names fall back to INFO"""
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    return resolved if isinstance(resolved, int) else logging.INFO


class AsyncLoggingManager:
    """Manages async logging state without using global variables"""

    def __init__(self) -> None:
        self.log_queue: Queue[logging.LogRecord] = Queue(-1)
        self.queue_handler: logging.handlers.QueueHandler | None = None
        self.listener: logging.handlers.QueueListener | None = None

    def setup(self, log_file: Path | None = None, level: int | str = logging.INFO) -> None:
        """Set up async logging with QueueHandler and QueueListener

        Call once at startup. Calling again replaces the previous listener.

        Args:
            log_file: Optional path to log file. If None, only logs to stderr.
            level: Logging level or level name (default: INFO)
        """
        self.shutdown()
        numeric_level = resolve_level(level)
        formatter = MillisecondFormatter(LOG_FORMAT, datefmt=DATE_FORMAT)

        # stderr: stdout belongs to the stdio transport
        handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
        if log_file is not None:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(log_file))
        for handler in handlers:
            handler.setFormatter(formatter)

        self.listener = logging.handlers.QueueListener(
            self.log_queue, *handlers, respect_handler_level=True
        )
        self.listener.start()
        self.queue_handler = logging.handlers.QueueHandler(self.log_queue)

        root = logging.getLogger()
        root.setLevel(numeric_level)
        root.handlers.clear()
        root.addHandler(self.queue_handler)

        if numeric_level < logging.INFO:
            for name in NOISY_LOGGERS:
                logging.getLogger(name).setLevel(logging.INFO)

    def shutdown(self) -> None:
        """Flush queued records and stop the background listener"""
        if self.listener is not None:
            self.listener.stop()
            self.listener = None


# Singleton instance
_manager = AsyncLoggingManager()


def setup_async_logging(log_file: Path | None = None, level: int | str = logging.INFO) -> None:
    """Set up async logging - convenience wrapper around manager.setup()"""
    _manager.setup(log_file, level)


def shutdown_async_logging() -> None:
    """Shut down async logging - convenience wrapper around manager.shutdown()"""
    _manager.shutdown()


def get_logger(name: str) -> logging.Logger:
    """Get a logger configured for async logging

    Args:
        name: Logger name (usually __name__)
    """
    return logging.getLogger(name)
