import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from portfolio_api.core.context import get_portfolio_service
from portfolio_api.core.errors import UpstreamAuthError, UpstreamError
from portfolio_api.main import app
from portfolio_api.services.portfolio_service import PortfolioService

from fakes import FakeBalanceSource, FakeMarketSource


@pytest.fixture
def balance_down():
    return FakeBalanceSource(error=UpstreamAuthError("coincheck", "API credentials not configured"))


@pytest.fixture
def market_down():
    return FakeMarketSource(error=UpstreamError("coingecko", "429 Too Many Requests"))


@pytest.fixture
def use_service():
    """Routes requests through a PortfolioService built from fake sources."""
    def _use(service: PortfolioService):
        app.dependency_overrides[get_portfolio_service] = lambda: service
        return service

    yield _use
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def async_client():
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
