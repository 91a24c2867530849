"""Tenant-scoped reads over the merchandising tables.

Every query filters on ``business_id``; nothing here writes.
"""

from __future__ import annotations

from collections.abc import Collection
from datetime import datetime

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.data_platform.models import Business, Product, SalesOrder, SalesOrderItem
from app.features.demand.series import LineItem, ProductInfo

logger = structlog.get_logger()


class SalesRepository:
    """Read access to one database session's view of tenant sales."""

    def __init__(self, db: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            db: Async database session.
        """
        self.db = db

    async def get_business(self, tenant_id: str) -> Business | None:
        """Fetch a tenant row by id."""
        result = await self.db.execute(select(Business).where(Business.id == tenant_id))
        return result.scalar_one_or_none()

    async def list_orders(
        self,
        tenant_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> dict[int, datetime | None]:
        """List order ids and dates for a tenant.

        Args:
            tenant_id: Tenant id.
            start: Inclusive lower bound on order_date.
            end: Inclusive upper bound on order_date.

        Returns:
            Order id -> order date (None when the order is undated).
        """
        stmt = select(SalesOrder.sales_order_id, SalesOrder.order_date).where(
            SalesOrder.business_id == tenant_id
        )
        if start is not None:
            stmt = stmt.where(SalesOrder.order_date >= start)
        if end is not None:
            stmt = stmt.where(SalesOrder.order_date <= end)

        result = await self.db.execute(stmt)
        orders = {row.sales_order_id: row.order_date for row in result}
        logger.debug("demand.orders_loaded", tenant_id=tenant_id, count=len(orders))
        return orders

    async def list_line_items(
        self,
        tenant_id: str,
        order_ids: Collection[int] | None = None,
    ) -> list[LineItem]:
        """List line items for a tenant, optionally restricted to some orders.

        Args:
            tenant_id: Tenant id.
            order_ids: Orders to include (None means all).

        Returns:
            Line items in storage order.
        """
        if order_ids is not None and not order_ids:
            return []

        stmt = select(
            SalesOrderItem.sales_order_id,
            SalesOrderItem.product_id,
            SalesOrderItem.line_total,
        ).where(SalesOrderItem.business_id == tenant_id)
        if order_ids is not None:
            stmt = stmt.where(SalesOrderItem.sales_order_id.in_(order_ids))

        result = await self.db.execute(stmt)
        return [
            LineItem(
                order_id=row.sales_order_id,
                product_id=row.product_id,
                line_total=row.line_total,
            )
            for row in result
        ]

    async def list_products(
        self,
        tenant_id: str,
        product_ids: Collection[str] | None = None,
    ) -> list[ProductInfo]:
        """List catalogue entries for a tenant.

        Args:
            tenant_id: Tenant id.
            product_ids: Products to include (None means the whole catalogue).

        Returns:
            Product info; null or zero prices become 0.
        """
        if product_ids is not None and not product_ids:
            return []

        stmt = select(Product.product_id, Product.product_name, Product.selling_price).where(
            Product.business_id == tenant_id
        )
        if product_ids is not None:
            stmt = stmt.where(Product.product_id.in_(product_ids))

        result = await self.db.execute(stmt)
        return [
            ProductInfo(
                product_id=row.product_id,
                name=row.product_name,
                price=float(row.selling_price) if row.selling_price else 0.0,
            )
            for row in result
        ]
