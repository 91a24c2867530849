"""Tenant-scoped ORM models read by the forecasting core.

Tables mirror the merchandising schema of the operations app:
- ``businesses``: one row per tenant, owned by a user
- ``product``: catalogue with selling price
- ``sales_order`` / ``sales_order_items``: transactions

The core never writes to these tables. There is no quantity column on line
items, so demand is estimated from ``line_total / selling_price``.
"""

import datetime
from decimal import Decimal

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base


class Business(Base):
    """Tenant table.

    Attributes:
        id: Tenant UUID (path parameter of every forecast endpoint).
        name: Display name.
        description: Free-text description.
        user_id: Owning user; ownership is checked before any tenant read.
    """

    __tablename__ = "businesses"

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True)
    name: Mapped[str] = mapped_column(String(100))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    user_id: Mapped[str] = mapped_column(Uuid(as_uuid=False), index=True)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    products: Mapped[list["Product"]] = relationship(back_populates="business")
    sales_orders: Mapped[list["SalesOrder"]] = relationship(back_populates="business")


class Product(Base):
    """Product catalogue row.

    Attributes:
        product_id: Tenant-assigned product code (primary key).
        business_id: Owning tenant.
        product_name: Display name (may repeat across ids).
        selling_price: Current unit price; null or zero means unknown.
        category_id: Optional category reference.
        brand_id: Optional brand reference.
    """

    __tablename__ = "product"

    product_id: Mapped[str] = mapped_column(String(100), primary_key=True)
    business_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("businesses.id"), index=True
    )
    product_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    selling_price: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    category_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    brand_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    business: Mapped[Business] = relationship(back_populates="products")


class SalesOrder(Base):
    """Sales order header.

    Attributes:
        sales_order_id: Primary key.
        business_id: Owning tenant.
        order_date: Order timestamp; null rows are treated as incomplete data.
        status: Free-text order status.
        total_amount: Order total.
    """

    __tablename__ = "sales_order"

    sales_order_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    business_id: Mapped[str] = mapped_column(Uuid(as_uuid=False), ForeignKey("businesses.id"))
    order_date: Mapped[datetime.datetime | None] = mapped_column(DateTime, nullable=True)
    status: Mapped[str | None] = mapped_column(String(100), nullable=True)
    total_amount: Mapped[Decimal | None] = mapped_column(Numeric(15, 2), nullable=True)

    business: Mapped[Business] = relationship(back_populates="sales_orders")
    items: Mapped[list["SalesOrderItem"]] = relationship(back_populates="sales_order")

    __table_args__ = (Index("ix_sales_order_business_date", "business_id", "order_date"),)


class SalesOrderItem(Base):
    """Sales order line item, keyed by (sales_order_id, product_id).

    Attributes:
        sales_order_id: Parent order.
        business_id: Owning tenant (denormalised for tenant-scoped reads).
        product_id: Product sold.
        line_total: Monetary total of the line.
    """

    __tablename__ = "sales_order_items"

    sales_order_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("sales_order.sales_order_id"), primary_key=True
    )
    product_id: Mapped[str] = mapped_column(
        String(100), ForeignKey("product.product_id"), primary_key=True
    )
    business_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("businesses.id"), index=True
    )
    line_total: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)

    sales_order: Mapped[SalesOrder] = relationship(back_populates="items")
