"""
Structured logging configuration

JSON (or plain text in development) application logs, plus a separate
``audit`` logger for business events such as job creation and override
changes.

Usage:
    from app.logging_config import get_logger, audit_log

    logger = get_logger(__name__)
    logger.info("Projection computed", extra={"company_id": 3, "rows": 12})

    audit_log("JOB_CREATED", user_id=1, company_id=3, resource_type="job", resource_id=42)
"""
import json
import logging
import logging.handlers
import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from app.core.config import settings

_RESERVED_ATTRS = {
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "pathname", "process", "processName", "relativeCreated",
    "stack_info", "exc_info", "exc_text", "thread", "threadName",
    "taskName", "message",
}


def _extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    return {k: v for k, v in record.__dict__.items() if k not in _RESERVED_ATTRS}


class JSONFormatter(logging.Formatter):
    """Formats log records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.levelno >= logging.ERROR:
            log_data["location"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in _extra_fields(record).items():
            try:
                json.dumps(value)
                log_data[key] = value
            except (TypeError, ValueError):
                log_data[key] = str(value)

        return json.dumps(log_data)


class TextFormatter(logging.Formatter):
    """
    Human-readable format for development:

    2026-01-01 12:00:00 [INFO] app.services.job_service: Job created job_id=42
    """

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        base_msg = f"{timestamp} [{record.levelname}] {record.name}: {record.getMessage()}"

        extras = [f"{key}={value}" for key, value in _extra_fields(record).items()]
        if extras:
            base_msg += " " + " ".join(extras)

        if record.exc_info:
            base_msg += "\n" + self.formatException(record.exc_info)

        return base_msg


class AuditFormatter(logging.Formatter):
    """Audit records as JSON, with unset fields dropped."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event": getattr(record, "event", record.getMessage()),
            "user_id": getattr(record, "user_id", None),
            "company_id": getattr(record, "company_id", None),
            "resource_type": getattr(record, "resource_type", None),
            "resource_id": getattr(record, "resource_id", None),
            "details": getattr(record, "details", {}),
        }
        log_data = {k: v for k, v in log_data.items() if v is not None}
        return json.dumps(log_data, default=str)


def setup_logging() -> None:
    """
    Configure application logging based on settings.

    Call this once at application startup.
    """
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    if settings.LOG_FORMAT.lower() == "json":
        formatter = JSONFormatter()
    else:
        formatter = TextFormatter()

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(log_level)
    root_logger.addHandler(console_handler)

    if settings.LOG_FILE:
        os.makedirs(os.path.dirname(settings.LOG_FILE) or ".", exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            settings.LOG_FILE,
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=5,
        )
        file_handler.setFormatter(formatter)
        file_handler.setLevel(log_level)
        root_logger.addHandler(file_handler)

    setup_audit_logging()

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def setup_audit_logging() -> None:
    """Configure the separate audit logger for business events."""
    audit_logger = logging.getLogger("audit")
    audit_logger.setLevel(logging.INFO)
    audit_logger.handlers.clear()
    audit_logger.propagate = False

    if settings.AUDIT_LOG_FILE:
        os.makedirs(os.path.dirname(settings.AUDIT_LOG_FILE) or ".", exist_ok=True)
        audit_handler = logging.handlers.RotatingFileHandler(
            settings.AUDIT_LOG_FILE,
            maxBytes=50 * 1024 * 1024,  # 50 MB
            backupCount=10,
        )
        audit_handler.setFormatter(AuditFormatter())
        audit_logger.addHandler(audit_handler)
    else:
        audit_logger.addHandler(logging.NullHandler())


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def audit_log(
    event: str,
    *,
    user_id: Optional[int] = None,
    company_id: Optional[int] = None,
    resource_type: Optional[str] = None,
    resource_id: Optional[Any] = None,
    details: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Record a business event in the audit log.

    Args:
        event: Event name (e.g., "JOB_CREATED", "QUANTITY_OVERRIDE_SET")
        user_id: ID of the user who triggered the event
        company_id: Company the event belongs to
        resource_type: Type of resource affected (e.g., "job")
        resource_id: ID of the affected resource
        details: Additional event-specific data
    """
    logging.getLogger("audit").info(
        event,
        extra={
            "event": event,
            "user_id": user_id,
            "company_id": company_id,
            "resource_type": resource_type,
            "resource_id": resource_id,
            "details": details or {},
        },
    )
