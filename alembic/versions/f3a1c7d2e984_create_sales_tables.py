"""create_sales_tables

Revision ID: f3a1c7d2e984
Revises:
Create Date: 2025-11-01 09:00:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "f3a1c7d2e984"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Apply migration - create businesses, product, and sales order tables."""
    op.create_table(
        "businesses",
        sa.Column("id", sa.Uuid(as_uuid=False), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("user_id", sa.Uuid(as_uuid=False), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_businesses_user_id"), "businesses", ["user_id"], unique=False)

    op.create_table(
        "product",
        sa.Column("product_id", sa.String(length=100), nullable=False),
        sa.Column("business_id", sa.Uuid(as_uuid=False), nullable=False),
        sa.Column("product_name", sa.String(length=255), nullable=True),
        sa.Column("selling_price", sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column("category_id", sa.Integer(), nullable=True),
        sa.Column("brand_id", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(["business_id"], ["businesses.id"]),
        sa.PrimaryKeyConstraint("product_id"),
    )
    op.create_index(op.f("ix_product_business_id"), "product", ["business_id"], unique=False)

    op.create_table(
        "sales_order",
        sa.Column("sales_order_id", sa.Integer(), nullable=False),
        sa.Column("business_id", sa.Uuid(as_uuid=False), nullable=False),
        sa.Column("order_date", sa.DateTime(), nullable=True),
        sa.Column("status", sa.String(length=100), nullable=True),
        sa.Column("total_amount", sa.Numeric(precision=15, scale=2), nullable=True),
        sa.ForeignKeyConstraint(["business_id"], ["businesses.id"]),
        sa.PrimaryKeyConstraint("sales_order_id"),
    )
    op.create_index(
        "ix_sales_order_business_date",
        "sales_order",
        ["business_id", "order_date"],
        unique=False,
    )

    op.create_table(
        "sales_order_items",
        sa.Column("sales_order_id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.String(length=100), nullable=False),
        sa.Column("business_id", sa.Uuid(as_uuid=False), nullable=False),
        sa.Column("line_total", sa.Numeric(precision=10, scale=2), nullable=True),
        sa.ForeignKeyConstraint(["sales_order_id"], ["sales_order.sales_order_id"]),
        sa.ForeignKeyConstraint(["product_id"], ["product.product_id"]),
        sa.ForeignKeyConstraint(["business_id"], ["businesses.id"]),
        sa.PrimaryKeyConstraint("sales_order_id", "product_id"),
    )
    op.create_index(
        op.f("ix_sales_order_items_business_id"),
        "sales_order_items",
        ["business_id"],
        unique=False,
    )


def downgrade() -> None:
    """Revert migration - drop sales tables."""
    op.drop_index(op.f("ix_sales_order_items_business_id"), table_name="sales_order_items")
    op.drop_table("sales_order_items")
    op.drop_index("ix_sales_order_business_date", table_name="sales_order")
    op.drop_table("sales_order")
    op.drop_index(op.f("ix_product_business_id"), table_name="product")
    op.drop_table("product")
    op.drop_index(op.f("ix_businesses_user_id"), table_name="businesses")
    op.drop_table("businesses")
