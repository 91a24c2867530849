"""Test fixtures for demand module."""

from collections.abc import Collection
from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient

from app.features.data_platform.models import Business
from app.features.demand.llm import CompletionClient, LLMBridge, reset_llm_bridge
from app.features.demand.series import LineItem, ProductInfo
from app.features.demand.service import DemandService
from app.features.signals.cache import TTLCache, reset_signal_cache
from app.features.signals.providers import HolidayProvider, WeatherProvider
from app.features.signals.schemas import HolidayRecord, WeatherRecord
from app.features.signals.service import SignalService, reset_signal_service
from app.main import app

TENANT_ID = "7d3c1a52-0f4e-4b8e-9a61-2c5d8e9f0a11"
OWNER_ID = "0b5e7c9a-3d21-4f6a-8e44-1a2b3c4d5e6f"
OTHER_USER_ID = "9f8e7d6c-5b4a-4321-8765-0fedcba98765"
TODAY = date(2025, 11, 6)

# =============================================================================
# In-memory Repository
# =============================================================================


class InMemorySalesRepository:
    """Dict-backed stand-in for SalesRepository with the same read API."""

    def __init__(self) -> None:
        self.businesses: dict[str, Business] = {}
        self.orders: dict[int, tuple[str, datetime | None]] = {}
        self.items: list[tuple[str, LineItem]] = []
        self.products: dict[str, tuple[str, ProductInfo]] = {}

    def add_business(self, business_id: str, user_id: str, name: str = "Corner Shop") -> Business:
        business = Business(id=business_id, user_id=user_id, name=name)
        self.businesses[business_id] = business
        return business

    def add_product(
        self, product_id: str, name: str | None, price: float, tenant_id: str = TENANT_ID
    ) -> None:
        self.products[product_id] = (tenant_id, ProductInfo(product_id, name, price))

    def add_order(
        self,
        order_id: int,
        order_date: datetime | None,
        lines: dict[str, str | None],
        tenant_id: str = TENANT_ID,
    ) -> None:
        self.orders[order_id] = (tenant_id, order_date)
        for product_id, total in lines.items():
            line_total = Decimal(total) if total is not None else None
            self.items.append((tenant_id, LineItem(order_id, product_id, line_total)))

    async def get_business(self, tenant_id: str) -> Business | None:
        return self.businesses.get(tenant_id)

    async def list_orders(
        self,
        tenant_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> dict[int, datetime | None]:
        result = {}
        for order_id, (owner, order_date) in self.orders.items():
            if owner != tenant_id:
                continue
            if (start is not None or end is not None) and order_date is None:
                continue
            if start is not None and order_date < start:
                continue
            if end is not None and order_date > end:
                continue
            result[order_id] = order_date
        return result

    async def list_line_items(
        self, tenant_id: str, order_ids: Collection[int] | None = None
    ) -> list[LineItem]:
        return [
            item
            for owner, item in self.items
            if owner == tenant_id and (order_ids is None or item.order_id in order_ids)
        ]

    async def list_products(
        self, tenant_id: str, product_ids: Collection[str] | None = None
    ) -> list[ProductInfo]:
        return [
            info
            for owner, info in self.products.values()
            if owner == tenant_id and (product_ids is None or info.product_id in product_ids)
        ]


@pytest.fixture
def repository() -> InMemorySalesRepository:
    """Empty repository with one tenant owned by OWNER_ID."""
    repo = InMemorySalesRepository()
    repo.add_business(TENANT_ID, OWNER_ID)
    return repo


@pytest.fixture
def business(repository: InMemorySalesRepository) -> Business:
    """The tenant row."""
    return repository.businesses[TENANT_ID]


@pytest.fixture
def seeded_repository(repository: InMemorySalesRepository) -> InMemorySalesRepository:
    """Repository with three months of sales for two products plus recent orders."""
    repository.add_product("P-RICE", "Miniket Rice 5kg", 25.0)
    repository.add_product("P-OIL", "Soybean Oil 1L", 0.0)
    repository.add_product("P-TEA", "  ", 10.0)

    # Rice: 10 units per month for three months
    repository.add_order(1, datetime(2025, 8, 3, 10, 0), {"P-RICE": "250.00"})
    repository.add_order(2, datetime(2025, 9, 14, 12, 30), {"P-RICE": "250.00"})
    repository.add_order(3, datetime(2025, 10, 20, 18, 5), {"P-RICE": "250.00", "P-OIL": "80.00"})
    # Recent orders inside the trending lookback
    repository.add_order(4, datetime(2025, 11, 2, 9, 0), {"P-RICE": "125.00", "P-TEA": "30.00"})
    repository.add_order(5, datetime(2025, 11, 5, 9, 0), {"P-OIL": "55.00"})
    # Undated order is ignored by the monthly aggregation
    repository.add_order(6, None, {"P-RICE": "1000.00"})
    return repository


# =============================================================================
# Signals and Completion Stubs
# =============================================================================


class FixedHolidayProvider(HolidayProvider):
    """Holidays on Nov 12 and Nov 13 of every year."""

    async def fetch_year(self, region: str, year: int) -> list[HolidayRecord]:
        return [
            HolidayRecord(date=date(year, 11, 12), name="Festival Eve", is_public=True),
            HolidayRecord(date=date(year, 11, 13), name="Festival Day", is_public=True),
            HolidayRecord(date=date(year, 12, 16), name="Victory Day", is_public=True),
        ]


class FixedWeatherProvider(WeatherProvider):
    """Sunny every day in range."""

    async def fetch_daily(self, place_id: str, start: date, end: date) -> list[WeatherRecord]:
        return [
            WeatherRecord(date=start + timedelta(days=i), summary="Sunny")
            for i in range((end - start).days + 1)
        ]


class StubCompletionClient(CompletionClient):
    """Completion client returning a canned answer and recording prompts."""

    def __init__(self, answer: str = "") -> None:
        self.answer = answer
        self.prompts: list[tuple[str, str]] = []

    async def complete(self, system: str, prompt: str) -> str:
        self.prompts.append((system, prompt))
        return self.answer


VALID_ANSWER = """{
  "heads_up": [
    {
      "product_id": "P-RICE",
      "product_name": "Miniket Rice 5kg",
      "demand_level": "high",
      "anomaly": false,
      "rationale": "Sold well last year around this festival and is trending now."
    }
  ],
  "window": "7",
  "notes": ["Festival on 2025-11-12 drives staples."]
}"""


@pytest.fixture
def completion_client() -> StubCompletionClient:
    """Completion client answering with a valid insights payload."""
    return StubCompletionClient(VALID_ANSWER)


@pytest.fixture
def signal_service() -> SignalService:
    """Signal service over fixed providers and a private cache."""
    return SignalService(
        cache=TTLCache(),
        holiday_provider=FixedHolidayProvider(),
        weather_provider=FixedWeatherProvider(),
    )


@pytest.fixture
def demand_service(signal_service, completion_client) -> DemandService:
    """Demand service pinned to TODAY."""
    return DemandService(
        signals=signal_service,
        bridge=LLMBridge(client=completion_client),
        clock=lambda: TODAY,
    )


# =============================================================================
# Identifiers
# =============================================================================


@pytest.fixture
def today() -> date:
    """Reference request day."""
    return TODAY


@pytest.fixture
def tenant_id() -> str:
    """Tenant id owned by ``owner_id``."""
    return TENANT_ID


@pytest.fixture
def owner_id() -> str:
    """User owning the tenant."""
    return OWNER_ID


@pytest.fixture
def other_user_id() -> str:
    """User who does not own the tenant."""
    return OTHER_USER_ID


# =============================================================================
# Application
# =============================================================================


@pytest.fixture(autouse=True)
def reset_singletons():
    """Give every test a fresh signal cache, signal service, and LLM bridge."""
    reset_signal_cache()
    reset_signal_service()
    reset_llm_bridge()
    yield
    app.dependency_overrides.clear()
    reset_signal_cache()
    reset_signal_service()
    reset_llm_bridge()


@pytest.fixture
async def client():
    """Create async HTTP client for testing FastAPI endpoints."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
