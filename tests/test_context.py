import pytest

from portfolio_api.core.config import Settings
from portfolio_api.core.context import ServiceContext
from portfolio_api.sources.coincheck import CoincheckClient, SandboxBalanceSource


def test_development_without_credentials_uses_sandbox_balance():
    context = ServiceContext(Settings(ENVIRONMENT="development"))
    assert isinstance(context.balance_source, SandboxBalanceSource)


def test_production_uses_coincheck_client():
    context = ServiceContext(Settings(ENVIRONMENT="production", COINCHECK_API_KEY="k", COINCHECK_SECRET_KEY="s"))
    assert isinstance(context.balance_source, CoincheckClient)
    assert context.balance_source.has_credentials


def test_service_uses_configured_currency_map():
    context = ServiceContext(Settings(CURRENCY_MAP={"BTC": "bitcoin", "sol": "solana"}, REPORTING_CURRENCY="USD"))
    service = context.portfolio_service()
    assert service.currency_map == {"btc": "bitcoin", "sol": "solana"}
    assert service.reporting_currency == "usd"
    assert service.market_source.cache is context.cache


@pytest.mark.asyncio
async def test_shutdown_releases_clients():
    context = ServiceContext(Settings())
    context.portfolio_service()
    context.cache.set("k", 1)

    await context.shutdown()

    assert context._coincheck is None
    assert context.cache.size() == 0


def test_retry_attempts_reach_both_clients():
    context = ServiceContext(Settings(RETRY_ATTEMPTS=5))
    assert context.coincheck.retry_attempts == 5
    assert context.market_source.retry_attempts == 5
