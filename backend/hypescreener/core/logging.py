"""
Centralized logging system with structured JSON output.
"""
from __future__ import annotations

import json
import logging
import logging.handlers
import queue
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional


class StructuredFormatter(logging.Formatter):
    """
    Custom formatter that outputs structured JSON logs.
    """

    def format(self, record: logging.LogRecord) -> str:
        """
        Format log record as structured JSON.

        Args:
            record: Log record to format

        Returns:
            JSON formatted log string
        """
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": getattr(record, 'module', record.name),
        }

        trace_id = getattr(record, 'trace_id', None)
        if trace_id is not None:
            log_data["trace_id"] = trace_id

        # Context fields for token pipeline operations
        context_fields = ['token_address', 'channel', 'source', 'state']
        for field in context_fields:
            value = getattr(record, field, None)
            if value is not None:
                log_data[field] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra_data = getattr(record, 'extra_data', None)
        if extra_data is not None and isinstance(extra_data, dict):
            filtered_extra = {
                k: self._redact_sensitive(k, v)
                for k, v in extra_data.items()
            }
            log_data.update(filtered_extra)

        return json.dumps(log_data, default=str, separators=(',', ':'))

    def _redact_sensitive(self, key: str, value: Any) -> Any:
        """
        Redact sensitive information from log values.

        Args:
            key: Field name
            value: Field value

        Returns:
            Redacted value if sensitive, original value otherwise
        """
        sensitive_patterns = ['api_key', 'secret', 'password', 'redis_url']

        if any(pattern in key.lower() for pattern in sensitive_patterns):
            return "[REDACTED]"

        return value


_queue_listener: Optional[logging.handlers.QueueListener] = None


def setup_logging(
    log_level: str = "INFO",
    debug: bool = False,
    log_to_file: bool = False,
    logs_dir: Path = Path("data/logs"),
    retention_days: int = 30,
) -> None:
    """
    Set up centralized logging with structured JSON output.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        debug: Use a human readable console format instead of JSON
        log_to_file: Also write rotating app/error JSONL files
        logs_dir: Directory for log files
        retention_days: Number of daily files to keep
    """
    global _queue_listener

    cleanup_logging()

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    formatter = StructuredFormatter()

    console_handler = logging.StreamHandler()
    if debug:
        console_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        ))
    else:
        console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_to_file:
        logs_dir.mkdir(parents=True, exist_ok=True)

        app_handler = logging.handlers.TimedRotatingFileHandler(
            filename=str(logs_dir / "app.jsonl"),
            when='midnight',
            backupCount=retention_days,
            encoding='utf-8',
            utc=True
        )
        app_handler.setFormatter(formatter)
        app_handler.setLevel(logging.DEBUG)

        error_handler = logging.handlers.TimedRotatingFileHandler(
            filename=str(logs_dir / "errors.jsonl"),
            when='midnight',
            backupCount=retention_days,
            encoding='utf-8',
            utc=True
        )
        error_handler.setFormatter(formatter)
        error_handler.setLevel(logging.ERROR)

        # File writes happen off the event loop
        log_queue: queue.Queue = queue.Queue(-1)
        root_logger.addHandler(logging.handlers.QueueHandler(log_queue))
        _queue_listener = logging.handlers.QueueListener(
            log_queue, app_handler, error_handler, respect_handler_level=True
        )
        _queue_listener.start()

    logging.getLogger(__name__).info("Logging system initialized", extra={
        'extra_data': {
            'log_level': log_level,
            'debug': debug,
            'log_to_file': log_to_file,
        }
    })


def cleanup_logging() -> None:
    """
    Clean up logging system on shutdown.
    """
    global _queue_listener

    if _queue_listener is not None:
        _queue_listener.stop()
        _queue_listener = None


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with the specified name.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)
