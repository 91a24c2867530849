"""Test fixtures for core module."""

import pytest
from httpx import ASGITransport, AsyncClient

from app.features.signals.cache import reset_signal_cache
from app.main import app


@pytest.fixture(autouse=True)
def fresh_signal_cache():
    """Give every test an empty signal cache."""
    reset_signal_cache()
    yield
    reset_signal_cache()


@pytest.fixture
async def client():
    """Create async HTTP client for testing FastAPI endpoints."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
