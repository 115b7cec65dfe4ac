"""
Centralized logging configuration for the design review backend.

JSON lines on stderr by default (LOG_FORMAT=json), or plain text for local
development (LOG_FORMAT=standard). Call setup_logging() once at startup,
before the other app modules are imported.

Workflow services pass identifiers through ``extra=`` so that every
upload, transition and freeze toggle can be traced per project/category:

    logger.info("[Approval] ...", extra={"project_id": 4, "design_file_id": 12})
"""

import json
import logging
import logging.config
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from app.config import settings

# Attributes copied from ``extra=`` into the JSON payload when present
CONTEXT_FIELDS = ("project_id", "design_file_id", "category", "user_id", "batch_index")

# Third-party loggers that are noisy at INFO
QUIET_LOGGERS = ("uvicorn", "uvicorn.access", "botocore", "boto3", "s3transfer", "asyncpg")


class JSONFormatter(logging.Formatter):
    """Single-line JSON records carrying the workflow context fields."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "function": record.funcName,
            "line": record.lineno,
        }
        log_entry.update({
            name: getattr(record, name)
            for name in CONTEXT_FIELDS
            if getattr(record, name, None) is not None
        })
        if record.exc_info and record.exc_info[0]:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, ensure_ascii=False, default=str)


def build_logging_config(level: str = "INFO", fmt: str = "json") -> Dict[str, Any]:
    """dictConfig for the given root level and formatter name."""
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {"()": JSONFormatter},
            "standard": {"format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s"},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": fmt if fmt in ("json", "standard") else "json",
                "stream": "ext://sys.stderr",
            },
        },
        "root": {"level": level.upper(), "handlers": ["console"]},
        "loggers": {
            "app": {"level": level.upper()},
            **{name: {"level": "WARNING"} for name in QUIET_LOGGERS},
        },
    }


def setup_logging(level: Optional[str] = None, fmt: Optional[str] = None) -> None:
    """Apply the logging configuration (defaults from settings)."""
    logging.config.dictConfig(build_logging_config(level or settings.LOG_LEVEL, fmt or settings.LOG_FORMAT))
