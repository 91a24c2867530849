"""Structured logging with structlog.

Every event carries the request id and, once the tenant has been authorized,
the tenant id. Upstream API keys travel in query strings (Calendarific,
Meteosource), so URLs and key-like fields are redacted before rendering and
the HTTP client libraries are kept at WARNING.
"""

import logging
import re
from collections.abc import MutableMapping
from contextvars import ContextVar
from typing import Any

import structlog

from app.core.config import get_settings

request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)
tenant_id_ctx: ContextVar[str | None] = ContextVar("tenant_id", default=None)

REDACTED = "***"
SECRET_FIELDS = frozenset({"api_key", "apikey", "key", "authorization", "llm_api_key"})
NOISY_LOGGERS = ("httpx", "httpcore", "openai")

_SECRET_QUERY = re.compile(r"((?:api_?key|key)=)[^&\s]+", re.IGNORECASE)


def add_request_context(
    _logger: structlog.types.WrappedLogger,
    _method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Add request_id and tenant_id from context to log events."""
    request_id = request_id_ctx.get()
    if request_id:
        event_dict["request_id"] = request_id
    tenant_id = tenant_id_ctx.get()
    if tenant_id and "tenant_id" not in event_dict:
        event_dict["tenant_id"] = tenant_id
    return event_dict


def redact_secrets(
    _logger: structlog.types.WrappedLogger,
    _method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Mask key-like fields and ``key=`` query parameters in string values."""
    for field, value in event_dict.items():
        if field.lower() in SECRET_FIELDS and value:
            event_dict[field] = REDACTED
        elif isinstance(value, str) and "key=" in value.lower():
            event_dict[field] = _SECRET_QUERY.sub(rf"\1{REDACTED}", value)
    return event_dict


def configure_logging() -> None:
    """Configure structlog and quiet third-party HTTP loggers."""
    settings = get_settings()
    level = getattr(logging, settings.log_level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    processors: list[structlog.types.Processor] = [
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_request_context,
        redact_secrets,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    if settings.log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=not settings.is_production))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.typing.FilteringBoundLogger:
    """Get a logger bound to ``name`` (usually ``__name__``)."""
    logger: structlog.typing.FilteringBoundLogger = structlog.get_logger(name)
    return logger
