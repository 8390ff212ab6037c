"""
Coincheck exchange client.

Private endpoints are authenticated with an HMAC-SHA256 signature of
`nonce + full URL + body`, sent in the ACCESS-KEY / ACCESS-NONCE / ACCESS-SIGNATURE headers.
"""
import hashlib
import hmac
import time
from typing import Any, Dict, Optional

import httpx
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from portfolio_api.core.errors import UpstreamAuthError, UpstreamResponseError
from portfolio_api.core.logging_config import get_logger
from portfolio_api.schemas.upstream import RawBalance

logger = get_logger("source_coincheck")

BALANCE_PATH = "/api/accounts/balance"
RATE_PATH = "/api/exchange/orders/rate"
EXPECTED_BALANCE_FIELDS = ("success", "jpy", "btc", "eth")


def sign(message: str, secret: str) -> str:
    return hmac.new(secret.encode(), message.encode(), hashlib.sha256).hexdigest()


def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status == 429 or status >= 500
    return False


class CoincheckClient:
    name = "coincheck"

    def __init__(
        self,
        access_key: str = "",
        secret_key: str = "",
        base_url: str = "https://coincheck.com",
        timeout: float = 10,
        retry_attempts: int = 3,
        retry_wait=None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.access_key = access_key
        self.secret_key = secret_key
        self.retry_attempts = retry_attempts
        self.retry_wait = retry_wait or wait_exponential(multiplier=1, min=1, max=8)
        self.base_url = base_url.rstrip("/")
        self.client = client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            headers={"Content-Type": "application/json"},
        )

    @property
    def has_credentials(self) -> bool:
        return bool(self.access_key and self.secret_key)

    def auth_headers(self, nonce: int, path: str, body: str = "") -> Dict[str, str]:
        message = f"{nonce}{self.base_url}{path}{body}"
        return {
            "ACCESS-KEY": self.access_key,
            "ACCESS-NONCE": str(nonce),
            "ACCESS-SIGNATURE": sign(message, self.secret_key),
        }

    async def _request(self, path: str, signed: bool, params: Optional[Dict[str, Any]]) -> Any:
        headers = {}
        if signed:
            request_path = path
            if params:
                request_path = f"{path}?{httpx.QueryParams(params)}"
            headers = self.auth_headers(int(time.time() * 1000), request_path)

        logger.debug("api_request", source=self.name, path=path)
        response = await self.client.get(path, params=params, headers=headers)
        response.raise_for_status()
        return response.json()

    async def _get(self, path: str, signed: bool = False, params: Optional[Dict[str, Any]] = None) -> Any:
        # 429 and 5xx are retried with backoff; 4xx auth errors are final.
        # Each attempt signs with a fresh nonce.
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.retry_attempts),
            wait=self.retry_wait,
            retry=retry_if_exception(_is_retryable),
            reraise=True,
        ):
            with attempt:
                return await self._request(path, signed, params)

    async def get_balance(self) -> RawBalance:
        if not self.has_credentials:
            raise UpstreamAuthError(self.name, "API credentials not configured")

        try:
            payload = await self._get(BALANCE_PATH, signed=True)
        except httpx.HTTPStatusError as e:
            if e.response.status_code in (401, 403):
                raise UpstreamAuthError(self.name, f"credentials rejected ({e.response.status_code})") from e
            raise

        if not isinstance(payload, dict):
            raise UpstreamResponseError(self.name, "invalid balance payload")
        if payload.get("success") is False:
            raise UpstreamResponseError(self.name, str(payload.get("error", "request unsuccessful")))

        missing = [field for field in EXPECTED_BALANCE_FIELDS if field not in payload]
        if missing:
            logger.warning("balance_fields_missing", source=self.name, missing=missing)

        balance = RawBalance.from_payload(payload)
        logger.info("fetched_balance", source=self.name, currencies=len(balance.holdings))
        return balance

    async def get_rate(self, pair: str = "btc_jpy") -> Dict[str, Any]:
        return await self._get(RATE_PATH, params={"pair": pair})

    async def test_connection(self) -> bool:
        try:
            await self.get_rate()
            return True
        except Exception as e:
            logger.error("connection_test_failed", source=self.name, error=str(e))
            return False

    async def aclose(self):
        await self.client.aclose()


SANDBOX_BALANCE = {
    "success": True,
    "jpy": "100000",
    "btc": "0.5",
    "eth": "2.0",
    "etc": "0",
    "xrp": "0",
    "ltc": "0",
    "bch": "0",
}


class SandboxBalanceSource:
    """
    Static balance for local development when no Coincheck credentials are configured.
    Connection tests still go to Coincheck's public rate endpoint.
    """

    name = "coincheck"

    def __init__(self, public_client: CoincheckClient, payload: Optional[Dict[str, Any]] = None):
        self.public_client = public_client
        self.payload = payload or SANDBOX_BALANCE

    async def get_balance(self) -> RawBalance:
        logger.info("sandbox_balance", source=self.name)
        return RawBalance.from_payload(self.payload)

    async def test_connection(self) -> bool:
        return await self.public_client.test_connection()
