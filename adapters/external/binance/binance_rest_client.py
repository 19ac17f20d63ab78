import hashlib
import hmac
import logging
import time
from typing import Any, Callable, Dict, Optional
from urllib.parse import urlencode

import httpx

from config.settings import settings  # type: ignore
from core.domain.entities.market_entities import ExchangeCredentials
from core.domain.exceptions import ExchangeError


def sign_query(query: str, secret_key: str) -> str:
    """hex(HMAC-SHA256(query, secret_key)), as Binance expects in `signature`."""
    return hmac.new(
        secret_key.encode("utf-8"), query.encode("utf-8"), hashlib.sha256
    ).hexdigest()


class BinanceRestClient:
    """
    Minimal async REST transport for Binance spot.

    Supports:
      - public GETs (ticker price, exchange info)
      - signed requests (account, order): params + timestamp -> HMAC-SHA256 signature,
        API key in the X-MBX-APIKEY header.

    Design:
      - Uses a shared httpx.AsyncClient with a bounded timeout.
      - Does NOT retry. Every failure becomes an ExchangeError; retry policy belongs to the caller.
    """

    API_KEY_HEADER = "X-MBX-APIKEY"

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        recv_window_ms: int | None = None,
        clock_ms: Optional[Callable[[], int]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        :param base_url: Binance REST base URL including the /api prefix (default from settings).
        :param timeout: Request timeout in seconds.
        :param recv_window_ms: Optional recvWindow for signed calls (0/None = exchange default).
        :param clock_ms: Timestamp source for signed calls (tests).
        :param transport: Optional httpx transport (tests).
        """
        self._logger = logging.getLogger(self.__class__.__name__)
        self._base_url = (base_url or settings.BINANCE_REST_BASE_URL).rstrip("/")
        self._timeout = timeout if timeout is not None else settings.BINANCE_TIMEOUT_SEC
        self._recv_window_ms = (
            recv_window_ms if recv_window_ms is not None else settings.BINANCE_RECV_WINDOW_MS
        )
        self._clock_ms = clock_ms or (lambda: int(time.time() * 1000))

        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    async def aclose(self) -> None:
        """
        Close the underlying HTTP client.
        """
        try:
            await self._client.aclose()
        except Exception as exc:  # noqa: BLE001
            self._logger.warning("Error closing BinanceRestClient: %s", exc)

    async def public_get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Unsigned GET, e.g. /v3/ticker/price or /v3/exchangeInfo.
        """
        query = urlencode(params or {})
        url = f"{path}?{query}" if query else path
        return await self._send("GET", url, headers=None)

    async def signed_request(
        self,
        method: str,
        path: str,
        credentials: ExchangeCredentials,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Signed call. The signature covers the exact query string that is sent,
        so the query is built here and passed verbatim in the URL.
        """
        payload: Dict[str, Any] = dict(params or {})
        if self._recv_window_ms:
            payload["recvWindow"] = int(self._recv_window_ms)
        payload["timestamp"] = self._clock_ms()

        query = urlencode(payload)
        signature = sign_query(query, credentials.secret_key)
        url = f"{path}?{query}&signature={signature}"

        return await self._send(
            method.upper(),
            url,
            headers={self.API_KEY_HEADER: credentials.api_key},
        )

    async def _send(self, method: str, url: str, headers: Optional[Dict[str, str]]) -> Any:
        try:
            resp = await self._client.request(method, url, headers=headers)
        except httpx.TimeoutException as exc:
            self._logger.warning("Binance %s %s timeout: %s", method, url.split("?")[0], exc)
            raise ExchangeError(f"Binance request timed out: {method} {url.split('?')[0]}") from exc
        except httpx.HTTPError as exc:
            self._logger.warning("Binance %s %s transport error: %s", method, url.split("?")[0], exc)
            raise ExchangeError(f"Binance request failed: {exc}") from exc

        if resp.status_code >= 400:
            code, msg = self._parse_error(resp)
            self._logger.error(
                "Binance HTTP %s on %s %s: code=%s msg=%s",
                resp.status_code,
                method,
                url.split("?")[0],
                code,
                msg,
            )
            raise ExchangeError(
                f"Binance HTTP {resp.status_code}: {msg}",
                status_code=resp.status_code,
                exchange_code=code,
            )

        try:
            return resp.json()
        except ValueError as exc:
            raise ExchangeError(
                f"Binance returned a non-JSON body for {url.split('?')[0]}",
                status_code=resp.status_code,
            ) from exc

    @staticmethod
    def _parse_error(resp: httpx.Response) -> tuple[Optional[int], str]:
        # Binance errors look like {"code": -1121, "msg": "Invalid symbol."}
        try:
            data = resp.json()
        except ValueError:
            return None, resp.text or resp.reason_phrase
        if isinstance(data, dict):
            code = data.get("code")
            return (int(code) if isinstance(code, int) else None), str(data.get("msg") or data)
        return None, str(data)
