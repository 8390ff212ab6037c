from typing import Dict, List
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache

class Settings(BaseSettings):
    PROJECT_NAME: str = "portfolio-api"
    ENVIRONMENT: str = "production"
    LOG_LEVEL: str = "INFO"

    # Coincheck (balance source)
    COINCHECK_API_KEY: str = ""
    COINCHECK_SECRET_KEY: str = ""
    COINCHECK_BASE_URL: str = "https://coincheck.com"

    # CoinGecko (market source)
    COINGECKO_API_KEY: str = ""

    REPORTING_CURRENCY: str = "jpy"
    # Balance currency code -> CoinGecko coin id. Override with a JSON object.
    CURRENCY_MAP: Dict[str, str] = {
        "btc": "bitcoin",
        "eth": "ethereum",
        "ada": "cardano",
        "dot": "polkadot",
        "link": "chainlink",
    }
    HISTORY_DAYS: int = 7

    MARKET_CACHE_TTL_SECONDS: float = 120
    CACHE_DEFAULT_TTL_SECONDS: float = 300
    REQUEST_TIMEOUT_SECONDS: float = 10
    RETRY_ATTEMPTS: int = 3

    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_REQUESTS: int = 100
    RATE_LIMIT_WINDOW_SECONDS: float = 3600
    TRUST_FORWARDED_FOR: bool = False

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env",
        extra="ignore"
    )

    @property
    def coincheck_configured(self) -> bool:
        return bool(self.COINCHECK_API_KEY and self.COINCHECK_SECRET_KEY)

@lru_cache()
def get_settings():
    return Settings()
