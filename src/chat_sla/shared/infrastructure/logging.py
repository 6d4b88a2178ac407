"""
Structured Logging
==================

One JSON object per log line, built on python-json-logger.

Recalculation runs log through get_context_logger(), so every record of a
run carries the same run_id and can be pulled out of an aggregated stream.

Usage:
    from chat_sla.shared.infrastructure.logging import get_logger

    logger = get_logger(__name__)
    logger.info("Chat recalculated", extra={"chat_id": "chat-001"})
"""

import logging
import sys
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator

from pythonjsonlogger import jsonlogger

from chat_sla.config import settings

_REDACTED = "***REDACTED***"
_SECRET_MARKERS = ("password", "database_url")


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JsonFormatter that stamps timestamp, environment and run_id and masks secrets."""

    def __init__(self, *args: Any, environment: str = "unknown", **kwargs: Any):
        self.environment = environment
        super().__init__(*args, **kwargs)

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
        log_record["environment"] = getattr(record, "environment", self.environment)

        run_id = getattr(record, "run_id", None) or message_dict.get("run_id")
        if run_id:
            log_record["run_id"] = run_id

        for key, value in list(log_record.items()):
            if isinstance(value, str) and any(marker in key.lower() for marker in _SECRET_MARKERS):
                log_record[key] = _REDACTED


def setup_logging(level: str | None = None, environment: str | None = None) -> None:
    """
    Route the root logger to stdout as JSON.

    Args:
        level: DEBUG, INFO, WARNING or ERROR; settings.log_level when omitted
        environment: Value of the environment field; settings.environment when omitted
    """
    numeric_level = getattr(logging, (level or settings.log_level).upper())

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)
    handler.setFormatter(
        CustomJsonFormatter(
            "%(asctime)s %(name)s %(levelname)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
            environment=environment or settings.environment,
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(numeric_level)

    # SQL echo and event loop chatter stay quiet unless they warn
    for noisy in ("sqlalchemy.engine", "aiosqlite", "asyncio"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class ContextLoggerAdapter(logging.LoggerAdapter):
    """LoggerAdapter that merges its context into per-call extra instead of replacing it."""

    def process(self, msg: Any, kwargs: Any) -> tuple[Any, Any]:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def get_context_logger(name: str, run_id: str | None = None) -> logging.Logger:
    """
    Logger whose records all carry run_id.

    Without a run_id the plain module logger is returned.
    """
    logger = get_logger(name)
    if run_id:
        return ContextLoggerAdapter(logger, {"run_id": run_id})
    return logger


@contextmanager
def log_latency(logger: logging.Logger, operation: str, **extra_context: Any) -> Iterator[None]:
    """
    Log "<operation> completed" with latency_ms once the block exits, even on error.

        with log_latency(run_logger, "process_batch", batch=3):
            await self._process_batch(...)
    """
    started = time.perf_counter()
    try:
        yield
    finally:
        logger.info(
            f"{operation} completed",
            extra={
                "operation": operation,
                "latency_ms": round((time.perf_counter() - started) * 1000, 2),
                **extra_context,
            },
        )
