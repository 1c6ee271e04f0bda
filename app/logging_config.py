import logging
import logging.config
import os
import sys
import time
import uuid
from typing import Dict, Optional

import structlog

# Third-party loggers that are chatty at INFO (job submissions, request lines)
QUIET_LOGGERS = ("apscheduler", "werkzeug", "urllib3")

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5


def _shared_processors():
    return [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def build_logging_config(log_level: str, log_file: Optional[str] = None) -> Dict:
    """dictConfig for stdout (plus an optional rotating JSON file)."""
    handlers = {
        "console": {
            "class": "logging.StreamHandler",
            "level": log_level,
            "formatter": "plain",
            "stream": sys.stdout,
        }
    }
    if log_file:
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": log_level,
            "formatter": "json",
            "filename": log_file,
            "maxBytes": LOG_FILE_MAX_BYTES,
            "backupCount": LOG_FILE_BACKUPS,
        }

    handler_names = list(handlers)
    loggers = {
        "": {"level": log_level, "handlers": handler_names, "propagate": False},
        "app": {"level": log_level, "handlers": handler_names, "propagate": False},
    }
    for name in QUIET_LOGGERS:
        loggers[name] = {"level": "WARNING"}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "plain": {"format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"},
            "json": {
                "()": "structlog.stdlib.ProcessorFormatter",
                "processor": structlog.processors.JSONRenderer(),
            },
        },
        "handlers": handlers,
        "loggers": loggers,
    }


def configure_logging(log_level: str = "INFO", log_file: Optional[str] = None):
    """
    Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional log file path. If None, logs to stdout only.
    """
    log_level = (log_level or "INFO").upper()

    structlog.configure(
        processors=_shared_processors() + [structlog.processors.JSONRenderer()],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    if log_file and os.path.dirname(log_file):
        os.makedirs(os.path.dirname(log_file), exist_ok=True)

    logging.config.dictConfig(build_logging_config(log_level, log_file))

    structlog.get_logger("app").info("Logging configured", level=log_level, file=log_file)


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


class MaintenanceRunContext:
    """
    Wraps one month-initialization or expiry run.

    Every line logged through ``run.logger`` carries the run's operation id,
    so the start, the counts the tracker logs on ``run.logger`` and the
    outcome of one run can be pulled out of the log together.
    """

    def __init__(self, operation_type: str, operation_id: Optional[str] = None, **context):
        self.operation_type = operation_type
        self.operation_id = operation_id or uuid.uuid4().hex[:8]
        self.logger = get_logger("app.maintenance.runs").bind(
            operation_type=operation_type,
            operation_id=self.operation_id,
            **context
        )
        self._started = None

    def __enter__(self):
        self._started = time.monotonic()
        self.logger.info("Maintenance run started")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration = round(time.monotonic() - self._started, 3)

        if exc_type is None:
            self.logger.info("Maintenance run completed", duration_seconds=duration, status="success")
        else:
            self.logger.error(
                "Maintenance run failed",
                duration_seconds=duration,
                status="error",
                error_type=exc_type.__name__,
                error_message=str(exc_val),
            )

        return False  # Don't suppress exceptions
