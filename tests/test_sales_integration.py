"""Integration tests for tenant-scoped sales reads against PostgreSQL."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from app.features.data_platform.models import Business, Product, SalesOrder, SalesOrderItem
from app.features.demand.repository import SalesRepository
from app.features.demand.yoy import YearOverYearComparator

TENANT_ID = "7d3c1a52-0f4e-4b8e-9a61-2c5d8e9f0a11"
OTHER_TENANT_ID = "3e2d1c0b-9a87-4654-b321-0fedcba98765"
OWNER_ID = "0b5e7c9a-3d21-4f6a-8e44-1a2b3c4d5e6f"

pytestmark = pytest.mark.integration


@pytest.fixture
async def seeded_session(db_session):
    """Two tenants; the first sold rice a year before 2025-11-06."""
    db_session.add_all(
        [
            Business(id=TENANT_ID, name="Corner Shop", user_id=OWNER_ID),
            Business(id=OTHER_TENANT_ID, name="Other Shop", user_id=OWNER_ID),
        ]
    )
    await db_session.flush()
    db_session.add_all(
        [
            Product(
                product_id="P-RICE",
                business_id=TENANT_ID,
                product_name="Miniket Rice 5kg",
                selling_price=Decimal("25.00"),
            ),
            Product(
                product_id="P-SALT",
                business_id=OTHER_TENANT_ID,
                product_name="Salt 1kg",
                selling_price=None,
            ),
            SalesOrder(
                sales_order_id=1, business_id=TENANT_ID, order_date=datetime(2024, 11, 6, 10)
            ),
            SalesOrder(sales_order_id=2, business_id=TENANT_ID, order_date=datetime(2024, 12, 30)),
            SalesOrder(sales_order_id=3, business_id=TENANT_ID, order_date=None),
            SalesOrder(
                sales_order_id=4, business_id=OTHER_TENANT_ID, order_date=datetime(2024, 11, 6)
            ),
        ]
    )
    await db_session.flush()
    db_session.add_all(
        [
            SalesOrderItem(
                sales_order_id=1,
                product_id="P-RICE",
                business_id=TENANT_ID,
                line_total=Decimal("100.00"),
            ),
            SalesOrderItem(
                sales_order_id=2,
                product_id="P-RICE",
                business_id=TENANT_ID,
                line_total=Decimal("50.00"),
            ),
            SalesOrderItem(
                sales_order_id=4,
                product_id="P-SALT",
                business_id=OTHER_TENANT_ID,
                line_total=Decimal("30.00"),
            ),
        ]
    )
    await db_session.flush()
    return db_session


class TestSalesRepository:
    """Tests for SalesRepository against real tables."""

    @pytest.mark.asyncio
    async def test_orders_are_tenant_scoped(self, seeded_session):
        """Test that orders of another tenant are never returned."""
        repository = SalesRepository(seeded_session)

        orders = await repository.list_orders(TENANT_ID)

        assert set(orders) == {1, 2, 3}
        assert orders[3] is None

    @pytest.mark.asyncio
    async def test_date_bounds_exclude_undated_orders(self, seeded_session):
        """Test that a bounded read skips orders outside the range and undated ones."""
        repository = SalesRepository(seeded_session)

        orders = await repository.list_orders(
            TENANT_ID, start=datetime(2024, 10, 30), end=datetime(2024, 11, 13, 23, 59, 59)
        )

        assert set(orders) == {1}

    @pytest.mark.asyncio
    async def test_line_items_for_orders(self, seeded_session):
        """Test that line items can be restricted to a set of orders."""
        repository = SalesRepository(seeded_session)

        items = await repository.list_line_items(TENANT_ID, order_ids=[1])

        assert [(i.order_id, i.product_id, i.line_total) for i in items] == [
            (1, "P-RICE", Decimal("100.00"))
        ]
        assert await repository.list_line_items(TENANT_ID, order_ids=[]) == []

    @pytest.mark.asyncio
    async def test_null_price_reads_as_zero(self, seeded_session):
        """Test that a product without a price is reported with price 0."""
        repository = SalesRepository(seeded_session)

        products = await repository.list_products(OTHER_TENANT_ID)

        assert [(p.product_id, p.price) for p in products] == [("P-SALT", 0.0)]

    @pytest.mark.asyncio
    async def test_year_over_year_from_database(self, seeded_session):
        """Test the year-ago comparison end to end over real rows."""
        comparator = YearOverYearComparator(SalesRepository(seeded_session))

        comparison = await comparator.compare(TENANT_ID, date(2025, 11, 6))

        assert comparison.message is None
        assert [(t.product_id, t.units_estimate) for t in comparison.trending] == [("P-RICE", 4)]


class TestHistoricalEndpoint:
    """Tests for the historical endpoint over the database."""

    @pytest.mark.asyncio
    async def test_historical_over_database(self, client, seeded_session):
        """Test that the endpoint reads the tenant's year-ago sales."""
        response = await client.get(
            f"/forecast/historical/{TENANT_ID}",
            params={"today": "2025-11-06"},
            headers={"X-User-ID": OWNER_ID},
        )

        assert response.status_code == 200
        assert response.json()["historicalTrending"] == [
            {
                "productId": "P-RICE",
                "productName": "Miniket Rice 5kg",
                "unitsSoldLastYear": 4,
                "sellingPrice": 25.0,
            }
        ]
