"""
Structured logging for Queuejack.

Provides a pre-configured logger that emits JSON-structured log records
with messaging context (service, operation, queue, topic, message id) for
easy filtering in log aggregation tools.
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any

_CONTEXT_FIELDS = ("request_id", "service", "operation", "queue", "topic", "message_id")


class StructuredFormatter(logging.Formatter):
    """Emit log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        # Attach any extras injected via QueuejackLogger.log_operation
        for key in _CONTEXT_FIELDS:
            val = getattr(record, key, None)
            if val is not None:
                log_entry[key] = val
        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = str(record.exc_info[1])
        return json.dumps(log_entry)


class QueuejackLogger:
    """Convenience wrapper around :mod:`logging` for messaging operations."""

    def __init__(self, name: str = "queuejack") -> None:
        self.logger = logging.getLogger(name)
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(StructuredFormatter())
            self.logger.addHandler(handler)
            self.logger.setLevel(logging.INFO)

    def log_operation(
        self,
        level: int,
        message: str,
        *,
        service: str | None = None,
        operation: str | None = None,
        queue: str | None = None,
        topic: str | None = None,
        message_id: str | None = None,
        request_id: str | None = None,
        exc_info: bool = False,
    ) -> None:
        """Emit a structured log record with messaging context.

        Args:
            level: Logging level (e.g. logging.INFO).
            message: Human-readable message.
            service: Transport service ('sqs' or 'sns').
            operation: Operation name (e.g. 'dequeue').
            queue: Logical queue name, if any.
            topic: Topic name, if any.
            message_id: Provider message ID, if any.
            request_id: Optional correlation ID; auto-generated if omitted.
            exc_info: Whether to include exception info.
        """
        extra = {
            "service": service,
            "operation": operation,
            "queue": queue,
            "topic": topic,
            "message_id": message_id,
            "request_id": request_id or uuid.uuid4().hex[:12],
        }
        self.logger.log(level, message, extra=extra, exc_info=exc_info)

    def info(self, message: str, **kwargs: Any) -> None:
        self.log_operation(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self.log_operation(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self.log_operation(logging.ERROR, message, **kwargs)

    def debug(self, message: str, **kwargs: Any) -> None:
        self.log_operation(logging.DEBUG, message, **kwargs)


# Module-level singleton
qj_logger = QueuejackLogger()
