"""Structured logging configuration.

Log records are rendered either as one JSON object per line (production) or
as plain text (development). Patient bundles are never logged; lookup records
carry the trial-search endpoint, trial counts and error types instead, passed
as ``extra`` on the logging call:

    logger.info("Trial search returned", extra={"endpoint": url, "trial_count": 3})
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

# Record attributes copied into the JSON document when a call sets them
CONTEXT_FIELDS = ("request_id", "endpoint", "trial_count", "error_type", "cache_hit")

# Third-party loggers kept at WARNING unless the lookup itself runs at DEBUG
NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn", "uvicorn.access")


class StructuredFormatter(logging.Formatter):
    """JSON formatter for lookup log records.

    Parameters:
        service: Service name stamped on every record
    """

    def __init__(self, service: Optional[str] = None):
        super().__init__()
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if self.service:
            log_data["service"] = self.service

        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                log_data[name] = value

        # Free-form context passed as extra={"extra_fields": {...}}
        extra_fields = getattr(record, "extra_fields", None)
        if isinstance(extra_fields, dict):
            log_data.update(extra_fields)

        if record.levelno >= logging.WARNING:
            log_data["location"] = f"{record.module}.{record.funcName}:{record.lineno}"
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(use_json: bool = False, log_level: str = "INFO", service: Optional[str] = None):
    """Configure the root logger for the lookup.

    Parameters:
        use_json: Emit JSON documents instead of plain text
        log_level: Logging level name (DEBUG, INFO, WARNING, ...)
        service: Service name added to JSON records
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    if use_json:
        handler.setFormatter(StructuredFormatter(service=service))
    else:
        handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        ))
    root_logger.addHandler(handler)

    noisy_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(noisy_level)
