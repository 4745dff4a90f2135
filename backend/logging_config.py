"""
Member Store - Structured JSON Logging

One JSON object per line. Tenant and request context is held in
ContextVars, so concurrent tasks each log their own tenant.

Repository calls attach member context with ``extra=``:

    logger.info("Created member", extra={"member_id": mid, "tenant_id": tid})

Those keys, plus any context set with set_log_context(), are emitted
under "context"; other extras land under "extra".
"""

import logging
import json
import sys
import os
import traceback
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from config import Settings, get_settings

CONTEXT_FIELDS = ("request_id", "tenant_id", "member_id")

_request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
_tenant_id: ContextVar[Optional[str]] = ContextVar("tenant_id", default=None)

_RESERVED_RECORD_FIELDS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message", "asctime", "taskName",
}


class JSONFormatter(logging.Formatter):
    """Formats a record as a JSON line tagged with the service name."""

    def __init__(self, service_name: str = "member-store"):
        super().__init__()
        self.service_name = service_name
        self.environment = os.environ.get("ENVIRONMENT", "development")

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
            "environment": self.environment,
            "location": {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            },
        }

        context = {}
        extra = {}
        for key, value in record.__dict__.items():
            if key in _RESERVED_RECORD_FIELDS or value is None:
                continue
            if key in CONTEXT_FIELDS:
                context[key] = value
            else:
                extra[key] = value
        if context:
            log_data["context"] = context
        if extra:
            log_data["extra"] = extra

        if record.exc_info and record.exc_info[0]:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": traceback.format_exception(*record.exc_info),
            }

        return json.dumps(log_data, default=str)


class LogContextFilter(logging.Filter):
    """
    Copies the current task's request and tenant context onto records.

    Values passed explicitly through ``extra=`` win over the context.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = _request_id.get()
        if getattr(record, "tenant_id", None) is None:
            record.tenant_id = _tenant_id.get()
        return True


def set_log_context(request_id: Optional[str] = None, tenant_id: Optional[str] = None):
    """Set context for log records emitted by the current task."""
    _request_id.set(request_id)
    _tenant_id.set(tenant_id)


def clear_log_context():
    _request_id.set(None)
    _tenant_id.set(None)


def setup_logging(settings: Optional[Settings] = None) -> logging.Logger:
    """
    Configure the root logger from LOG_LEVEL, LOG_JSON and SERVICE_NAME.

    Replaces any existing root handlers with a single stdout handler.
    """
    settings = settings or get_settings()
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    if settings.LOG_JSON:
        handler.setFormatter(JSONFormatter(service_name=settings.SERVICE_NAME))
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - [tenant=%(tenant_id)s] %(message)s"
        ))
    handler.addFilter(LogContextFilter())
    root_logger.addHandler(handler)

    # Statement logging is controlled by DB_ECHO, not the root level
    logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    return root_logger
