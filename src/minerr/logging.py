"""Logging configuration for Minerr.

Records carry ``event`` and ``container_id`` extras (see
``minerr.logging_schema``). The text format is meant for local runs, the
json format for log aggregation.
"""

import logging
import sys
import time
from datetime import datetime, timezone
from typing import Any

from pythonjsonlogger import json as jsonlogger

from minerr.config import LoggingConfig

# Loggers that would otherwise install their own handlers
_SERVER_LOGGERS = ("uvicorn", "uvicorn.error")
_QUIET_LOGGERS = ("httpx", "httpcore")


class RateLimitFilter(logging.Filter):
    """Drop repeats of the same warning for the same server.

    Every log subscriber polls its container several times a second, so a
    container that stopped answering produces the same warning on every
    poll. Records are keyed by ``event`` and ``container_id`` when the
    caller supplied them, so messages whose text embeds a changing Docker
    error still collapse into one. Records without an event fall back to
    logger, line and rendered message.

    The first record let through after a quiet window carries a
    ``suppressed`` attribute with the number of records dropped since the
    previous one.

    Args:
        rate_limit_seconds: Minimum seconds between records with one key.
        max_cache_size: Number of keys tracked before the oldest are evicted.
    """

    def __init__(
        self,
        rate_limit_seconds: float = 5.0,
        max_cache_size: int = 1000,
        name: str = "",
    ) -> None:
        super().__init__(name)
        self._rate_limit = rate_limit_seconds
        self._max_cache = max_cache_size
        self._last_log: dict[tuple[str, ...], float] = {}
        self._suppressed: dict[tuple[str, ...], int] = {}

    @staticmethod
    def key_for(record: logging.LogRecord) -> tuple[str, ...]:
        event = getattr(record, "event", None)
        if event is not None:
            container_id = getattr(record, "container_id", None) or ""
            return (str(event), container_id)
        return (record.name, str(record.lineno), record.getMessage())

    def filter(self, record: logging.LogRecord) -> bool:
        # ERROR and above always pass through
        if record.levelno >= logging.ERROR:
            return True

        key = self.key_for(record)
        now = time.monotonic()
        last_time = self._last_log.get(key)

        if last_time is not None and now - last_time < self._rate_limit:
            self._suppressed[key] = self._suppressed.get(key, 0) + 1
            return False

        dropped = self._suppressed.pop(key, 0)
        if dropped:
            record.suppressed = dropped
        self._last_log[key] = now

        if len(self._last_log) > self._max_cache:
            self._evict()
        return True

    def _evict(self) -> None:
        excess = len(self._last_log) - self._max_cache
        oldest = sorted(self._last_log, key=self._last_log.__getitem__)[: max(excess, 100)]
        for key in oldest:
            del self._last_log[key]
            self._suppressed.pop(key, None)


class MinerrJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter with the fields log queries filter on.

    Adds timestamp, level, logger, service and pid. ``event`` is written
    as its plain string value and ``container_id`` is always present so
    per-server queries do not have to handle a missing key.
    """

    def __init__(self, config: LoggingConfig, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._service = config.service_name

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = datetime.fromtimestamp(
            record.created, tz=timezone.utc
        ).isoformat()
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["service"] = self._service
        log_record["pid"] = record.process

        event = getattr(record, "event", None)
        if event is not None:
            log_record["event"] = str(event)
        log_record.setdefault("container_id", None)

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)

        # uvicorn duplicates the message with ANSI codes
        log_record.pop("color_message", None)


def build_handler(config: LoggingConfig) -> logging.Handler:
    """Create the stdout handler shared by application and server loggers."""
    if config.format == "json":
        formatter: logging.Formatter = MinerrJsonFormatter(config)
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    handler.addFilter(
        RateLimitFilter(
            rate_limit_seconds=config.rate_limit_seconds,
            max_cache_size=config.rate_limit_cache,
        )
    )
    return handler


def setup_logging(config: LoggingConfig) -> None:
    """Configure logging for the application.

    Args:
        config: Logging configuration settings.
    """
    level = getattr(logging, config.level.upper(), logging.INFO)
    handler = build_handler(config)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in _SERVER_LOGGERS:
        server_logger = logging.getLogger(name)
        server_logger.handlers.clear()
        server_logger.propagate = False
        server_logger.addHandler(handler)

    # Log streams hit the API ten times a second per subscriber
    logging.getLogger("uvicorn.access").disabled = True

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
