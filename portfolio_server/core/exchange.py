"""
MEXC Futures REST Client
========================
Read-only client for the MEXC contract API.

Features:
- HMAC-SHA256 signed requests for private account endpoints
- Unsigned requests for public market data
- Rate limiting between requests
- Retry with exponential backoff on 429, 5xx and connection errors

The client never places or cancels orders.
"""

import asyncio
import hashlib
import hmac
import time
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import aiohttp
from loguru import logger

from portfolio_server.core.errors import ExchangeError, TransientExchangeError
from portfolio_server.utils.utils import retry_async, timestamp_ms


ASSETS_ENDPOINT = "/api/v1/private/account/assets"
POSITIONS_ENDPOINT = "/api/v1/private/position/open_positions"
HISTORY_ENDPOINT = "/api/v1/private/order/list/history_orders"
TICKER_ENDPOINT = "/api/v1/contract/ticker"
CONTRACT_DETAILS_ENDPOINT = "/api/v1/contract/detail"


def create_signature(api_key: str, secret_key: str, timestamp: str, params: str = "") -> str:
    """Sign `api_key + timestamp + params` with the secret key (hex HMAC-SHA256)."""
    payload = f"{api_key}{timestamp}{params}"
    return hmac.new(secret_key.encode(), payload.encode(), hashlib.sha256).hexdigest()


def encode_params(params: Optional[Dict[str, Any]]) -> str:
    """Query string in sorted key order, the form the signature is computed over."""
    if not params:
        return ""
    return urlencode(sorted((k, v) for k, v in params.items() if v is not None))


class MexcFuturesClient:
    """
    MEXC contract API client.

    Usage:
        async with MexcFuturesClient(config) as client:
            assets = await client.get_assets()
    """

    def __init__(self, config):
        self.config = config
        self._base_url = config.network.base_url.rstrip("/")
        self._api_key = config.credentials.api_key
        self._secret_key = config.credentials.secret_key

        self._session: Optional[aiohttp.ClientSession] = None

        # Rate limiting
        self._last_request = 0.0
        self._min_interval = config.network.min_request_interval
        self._rate_lock = asyncio.Lock()

    async def connect(self) -> None:
        """Open the HTTP session."""
        if self._session is not None and not self._session.closed:
            return
        timeout = aiohttp.ClientTimeout(total=self.config.network.request_timeout)
        self._session = aiohttp.ClientSession(timeout=timeout)
        logger.info(f"Exchange client connected to {self._base_url}")

    async def disconnect(self) -> None:
        """Close the HTTP session."""
        if self._session is not None:
            await self._session.close()
            self._session = None
            logger.info("Exchange client disconnected")

    async def __aenter__(self) -> "MexcFuturesClient":
        await self.connect()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.disconnect()

    @property
    def is_connected(self) -> bool:
        return self._session is not None and not self._session.closed

    # =========================================================================
    # Account (signed)
    # =========================================================================

    async def get_assets(self) -> List[Dict[str, Any]]:
        """Balances per currency."""
        return await self._request("GET", ASSETS_ENDPOINT, signed=True)

    async def get_open_positions(self) -> List[Dict[str, Any]]:
        """Currently open positions."""
        return await self._request("GET", POSITIONS_ENDPOINT, signed=True)

    async def get_history_orders(self, page_size: int = 200) -> List[Dict[str, Any]]:
        """Most recent historical orders, newest first."""
        return await self._request(
            "GET", HISTORY_ENDPOINT, params={"page_size": page_size}, signed=True
        )

    # =========================================================================
    # Market data (public)
    # =========================================================================

    async def get_tickers(self) -> List[Dict[str, Any]]:
        """Tickers for every contract."""
        return await self._request("GET", TICKER_ENDPOINT)

    async def get_contract_details(self) -> List[Dict[str, Any]]:
        """Contract specifications for every contract."""
        return await self._request("GET", CONTRACT_DETAILS_ENDPOINT)

    # =========================================================================
    # Transport
    # =========================================================================

    def _signed_headers(self, query: str) -> Dict[str, str]:
        """Authentication headers for a private request."""
        request_time = str(timestamp_ms())
        return {
            "Content-Type": "application/json",
            "ApiKey": self._api_key,
            "Request-Time": request_time,
            "Signature": create_signature(self._api_key, self._secret_key, request_time, query),
        }

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        signed: bool = False,
    ) -> List[Dict[str, Any]]:
        """Send a request with retries and return the envelope's data as a list."""
        if not self.is_connected:
            raise RuntimeError("Exchange client not connected")

        if signed and not (self._api_key and self._secret_key):
            raise ExchangeError("API credentials are not configured", endpoint=endpoint)

        payload = await retry_async(
            lambda: self._request_once(method, endpoint, params, signed),
            max_retries=self.config.network.max_retries,
            delay=self.config.network.retry_delay,
            exceptions=(TransientExchangeError,),
        )
        return self._unwrap(endpoint, payload)

    async def _request_once(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]],
        signed: bool,
    ) -> Dict[str, Any]:
        await self._rate_limit()

        query = encode_params(params)
        url = f"{self._base_url}{endpoint}{'?' + query if query else ''}"
        headers = self._signed_headers(query) if signed else {}

        try:
            async with self._session.request(method, url, headers=headers) as resp:
                try:
                    body = await resp.json(content_type=None)
                except ValueError:
                    body = None

                if resp.status == 429 or resp.status >= 500:
                    raise TransientExchangeError(
                        f"{endpoint} failed with status {resp.status}",
                        endpoint=endpoint,
                        status=resp.status,
                    )

                if resp.status >= 400:
                    message = None
                    if isinstance(body, dict):
                        message = body.get("msg") or body.get("message")
                    raise ExchangeError(
                        message or f"Request failed with status {resp.status}",
                        endpoint=endpoint,
                        status=resp.status,
                    )

                if not isinstance(body, dict):
                    raise ExchangeError(
                        f"{endpoint} returned an invalid JSON body",
                        endpoint=endpoint,
                        status=resp.status,
                    )

                return body

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransientExchangeError(
                f"{endpoint} request error: {str(e) or type(e).__name__}",
                endpoint=endpoint,
            ) from e

    @staticmethod
    def _unwrap(endpoint: str, payload: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Check the success flag and normalise `data` to a list of dicts."""
        if not payload.get("success", False):
            code = payload.get("code")
            message = payload.get("message") or payload.get("msg") or "unsuccessful response"
            logger.warning(f"{endpoint} unsuccessful: code={code} {message}")
            raise ExchangeError(
                f"{endpoint} unsuccessful: {message}",
                endpoint=endpoint,
                status=200,
                code=code,
            )

        data = payload.get("data")
        if data is None:
            return []
        if isinstance(data, dict):
            return [data]
        if isinstance(data, list):
            return [item for item in data if isinstance(item, dict)]

        raise ExchangeError(
            f"{endpoint} returned unexpected data of type {type(data).__name__}",
            endpoint=endpoint,
            status=200,
        )

    async def _rate_limit(self) -> None:
        """Apply rate limiting."""
        async with self._rate_lock:
            now = time.monotonic()
            elapsed = now - self._last_request
            if elapsed < self._min_interval:
                await asyncio.sleep(self._min_interval - elapsed)
            self._last_request = time.monotonic()
