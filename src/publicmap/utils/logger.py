"""
Logging Configuration

structlog setup shared by the API, the refresh DAG and the scripts.

Precise coordinates and resident contact fields are masked before rendering;
only public coordinates may appear in log output.
"""
import logging
import sys
import uuid
from typing import Any, Optional

import structlog
from structlog.types import EventDict, Processor

from config.settings import settings

SERVICE_NAME = "publicmap"

# Event keys whose values never reach a log sink
REDACTED_KEYS = frozenset({
    "lat", "lng", "accuracy_m",
    "doc_id", "phone", "email", "address", "full_name",
    "api_key", "key",
})
REDACTED = "[redacted]"

NOISY_LOGGERS = ("uvicorn.access", "urllib3", "sqlalchemy.engine")


def add_app_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Stamp every entry with environment and service name."""
    event_dict["environment"] = settings.environment
    event_dict["service"] = SERVICE_NAME
    return event_dict


def redact_sensitive(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    for key in REDACTED_KEYS.intersection(event_dict):
        event_dict[key] = REDACTED
    return event_dict


def setup_logging() -> structlog.BoundLogger:
    """
    Configure structlog and the stdlib root logger.

    Uses settings.log_format ("json" or "console") and settings.log_level.

    Returns:
        Configured structlog logger instance
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    if not settings.database_echo:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(max(level, logging.WARNING))

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_app_context,
        redact_sensitive,
    ]

    if settings.log_format == "json":
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors += [structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    return structlog.get_logger()


def bind_request_context(
    method: str,
    path: str,
    request_id: Optional[str] = None
) -> str:
    """
    Bind per-request fields to every log entry emitted while handling it.

    Returns:
        The request id (generated when the caller sent none)
    """
    request_id = request_id or uuid.uuid4().hex
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id, method=method, path=path)
    return request_id


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()


def get_logger(name: str = None) -> structlog.BoundLogger:
    """
    Get a logger instance for a specific module.

    Args:
        name: Logger name (typically __name__)
    """
    if name:
        return structlog.get_logger(name)
    return structlog.get_logger()
