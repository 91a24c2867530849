"""Request dependencies for the forecast endpoints.

Authentication happens upstream; the gateway forwards the caller's user id in
``X-User-ID``. Every tenant-scoped endpoint resolves the tenant through
``get_authorized_tenant`` before reading any tenant data.
"""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

import structlog
from fastapi import Depends, Header, Path
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.exceptions import AccessDeniedError
from app.core.logging import tenant_id_ctx
from app.features.data_platform.models import Business
from app.features.demand.repository import SalesRepository

logger = structlog.get_logger()


def get_sales_repository(db: Annotated[AsyncSession, Depends(get_db)]) -> SalesRepository:
    """Build a repository over the request's session."""
    return SalesRepository(db)


async def get_authorized_tenant(
    tenant_id: Annotated[UUID, Path(description="Tenant (business) id")],
    repository: Annotated[SalesRepository, Depends(get_sales_repository)],
    user_id: Annotated[str | None, Header(alias="X-User-ID")] = None,
) -> Business:
    """Resolve the tenant and check the caller owns it.

    Binds ``tenant_id`` into the logging context for the rest of the request.

    Args:
        tenant_id: Tenant id from the path.
        repository: Tenant-scoped reads.
        user_id: Caller identity from the gateway.

    Returns:
        The Business row.

    Raises:
        AccessDeniedError: If the caller is anonymous, the tenant does not
            exist, or it belongs to someone else.
    """
    business = await repository.get_business(str(tenant_id))
    if user_id is None or business is None or str(business.user_id) != user_id.strip().lower():
        logger.warning(
            "demand.access_denied",
            tenant_id=str(tenant_id),
            has_user=user_id is not None,
            tenant_found=business is not None,
        )
        raise AccessDeniedError()

    tenant_id_ctx.set(business.id)
    return business
