"""Ambient infrastructure shared by every feature.

Settings, the async database session, structlog configuration with
request/tenant context, request correlation, and RFC 7807 error handling.
"""

from app.core.config import Settings, get_settings
from app.core.database import Base, get_db
from app.core.exceptions import DemandSignalError
from app.core.logging import get_logger, request_id_ctx, tenant_id_ctx

__all__ = [
    "Base",
    "DemandSignalError",
    "Settings",
    "get_db",
    "get_logger",
    "get_settings",
    "request_id_ctx",
    "tenant_id_ctx",
]
