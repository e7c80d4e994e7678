"""Logging configuration for the story world engine.

Every record carries a correlation id naming the unit of work it belongs
to: ``turn-N`` for a player turn, or the id the pipeline captured when a
batch was queued. Ids are tracked per thread, so concurrent submitters
never see each other's ids.

Usage:
    from storyworld.utils.logging_config import log_context, setup_logging

    setup_logging(level="DEBUG")
    with log_context("turn-3"):
        logger.info("Committing batch")
"""

import json
import logging
import sys
import threading
import time
import uuid
from collections.abc import Generator
from contextlib import contextmanager
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

DEFAULT_LOG_FILE = Path(__file__).parent.parent.parent / "logs" / "storyworld.log"

LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(correlation_id)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_MAX_BYTES = 10 * 1024 * 1024
LOG_BACKUP_COUNT = 5

# Third-party loggers kept at WARNING
NOISY_LOGGERS = ("httpx", "httpcore", "ollama")

# Record attributes copied into JSON lines when present
JSON_EXTRA_FIELDS = ("duration_ms", "operation", "kind", "entity_id")


class ContextFilter(logging.Filter):
    """Stamp records with the calling thread's innermost correlation id."""

    def __init__(self) -> None:
        super().__init__()
        self._local = threading.local()

    def _stack(self) -> list[str]:
        stack = getattr(self._local, "stack", None)
        if stack is None:
            stack = []
            self._local.stack = stack
        return stack

    @property
    def correlation_id(self) -> str | None:
        stack = self._stack()
        return stack[-1] if stack else None

    @correlation_id.setter
    def correlation_id(self, value: str | None) -> None:
        stack = self._stack()
        stack.clear()
        if value is not None:
            stack.append(value)

    def push(self, correlation_id: str) -> None:
        self._stack().append(correlation_id)

    def pop(self) -> None:
        stack = self._stack()
        if stack:
            stack.pop()

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = self.correlation_id or "-"
        return True


class JSONFormatter(logging.Formatter):
    """Emit each record as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, UTC).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "correlationId": getattr(record, "correlation_id", "-"),
            "message": record.getMessage(),
        }
        for key in JSON_EXTRA_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                entry[key] = value
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class FlushingRotatingFileHandler(RotatingFileHandler):
    """RotatingFileHandler that flushes immediately after each log."""

    def emit(self, record: logging.LogRecord) -> None:
        super().emit(record)
        self.flush()


_context_filter = ContextFilter()


def get_correlation_id() -> str | None:
    """Return the calling thread's innermost correlation id, if any."""
    return _context_filter.correlation_id


def _resolve_log_path(log_file: str | Path | None) -> Path | None:
    if log_file == "default":
        return DEFAULT_LOG_FILE
    if log_file:
        return Path(log_file)
    return None


def setup_logging(
    level: str = "INFO",
    log_file: str | Path | None = "default",
    json_format: bool = False,
) -> None:
    """Configure root logging for the engine.

    Replaces any handlers already on the root logger, so repeated calls
    do not duplicate output.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR). Unknown names use INFO.
        log_file: "default" writes logs/storyworld.log, None disables file logging,
            anything else is used as the path.
        json_format: Write one JSON object per line instead of plain text.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    formatter: logging.Formatter = (
        JSONFormatter() if json_format else logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT)
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    log_path = _resolve_log_path(log_file)
    if log_path:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            FlushingRotatingFileHandler(
                log_path,
                maxBytes=LOG_MAX_BYTES,
                backupCount=LOG_BACKUP_COUNT,
                encoding="utf-8",
            )
        )

    # Filter must be on HANDLERS, not logger, for child logger records
    for handler in handlers:
        handler.setLevel(log_level)
        handler.setFormatter(formatter)
        handler.addFilter(_context_filter)
        root_logger.addHandler(handler)

    if log_path:
        root_logger.info(
            f"Logging to file: {log_path} "
            f"(max {LOG_MAX_BYTES // (1024 * 1024)}MB, {LOG_BACKUP_COUNT} backups)"
        )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


@contextmanager
def log_context(correlation_id: str | None = None) -> Generator[str]:
    """Run a block under a correlation id, restoring the outer id afterwards.

    Args:
        correlation_id: Id to use. A short random id is generated if omitted.

    Yields:
        The correlation id in effect inside the block.
    """
    if correlation_id is None:
        correlation_id = uuid.uuid4().hex[:8]
    _context_filter.push(correlation_id)
    try:
        yield correlation_id
    finally:
        _context_filter.pop()


@contextmanager
def log_performance(logger: logging.Logger, operation: str) -> Generator[None]:
    """Log how long a block took; failures are logged and re-raised.

    Records carry ``operation`` and ``duration_ms`` for the JSON formatter.
    """
    start = time.perf_counter()
    logger.debug(f"{operation}: Starting")
    try:
        yield
    except Exception as e:
        duration = time.perf_counter() - start
        logger.error(
            f"{operation}: Failed after {duration:.2f}s - {e}",
            extra={"operation": operation, "duration_ms": round(duration * 1000)},
        )
        raise
    duration = time.perf_counter() - start
    logger.info(
        f"{operation}: Completed in {duration:.2f}s",
        extra={"operation": operation, "duration_ms": round(duration * 1000)},
    )
