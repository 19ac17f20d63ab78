import logging
import time
from typing import Callable, Dict, List, Optional, Sequence

from core.domain.entities.market_entities import PriceQuote
from core.domain.exceptions import ExchangeError, PriceUnavailableError
from core.gateways.exchange_gateway import PriceSource


class PriceOracle:
    """
    Spot prices with a short in-memory cache.

    - get_price: cache hit if the entry is younger than ttl_ms, otherwise one upstream call.
    - get_prices: every stale/missing symbol is refreshed with a single bulk call.

    The cache belongs to this instance. Concurrent misses for the same symbol are
    not coalesced; callers run sequentially today.
    """

    def __init__(
        self,
        source: PriceSource,
        ttl_ms: int = 5000,
        clock_ms: Optional[Callable[[], int]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._source = source
        self._ttl_ms = int(ttl_ms)
        self._clock_ms = clock_ms or (lambda: int(time.time() * 1000))
        self._logger = logger or logging.getLogger(self.__class__.__name__)
        self._cache: Dict[str, PriceQuote] = {}

    @property
    def ttl_ms(self) -> int:
        return self._ttl_ms

    def _fresh(self, symbol: str, now: int) -> Optional[PriceQuote]:
        cached = self._cache.get(symbol)
        if cached is not None and now - cached.timestamp < self._ttl_ms:
            return cached
        return None

    async def get_price(self, symbol: str) -> PriceQuote:
        symbol = symbol.upper()
        now = self._clock_ms()
        cached = self._fresh(symbol, now)
        if cached is not None:
            return cached

        try:
            fetched = await self._source.get_ticker_price(symbol)
        except PriceUnavailableError:
            raise
        except ExchangeError as exc:
            raise PriceUnavailableError(
                f"Failed to fetch price for {symbol}: {exc}",
                status_code=exc.status_code,
                exchange_code=exc.exchange_code,
            ) from exc

        if not fetched.is_available:
            raise PriceUnavailableError(f"Exchange returned no usable price for {symbol}")

        quote = PriceQuote(symbol=symbol, price=fetched.price, timestamp=now)
        self._cache[symbol] = quote
        return quote

    async def get_prices(self, symbols: Sequence[str]) -> List[PriceQuote]:
        wanted = [s.upper() for s in symbols]
        now = self._clock_ms()
        stale = {s for s in wanted if self._fresh(s, now) is None}

        if stale:
            try:
                fetched = await self._source.get_ticker_prices()
            except ExchangeError as exc:
                raise PriceUnavailableError(f"Failed to fetch prices: {exc}") from exc
            for q in fetched:
                if q.symbol in stale and q.is_available:
                    self._cache[q.symbol] = PriceQuote(symbol=q.symbol, price=q.price, timestamp=now)

        out: List[PriceQuote] = []
        for s in wanted:
            cached = self._cache.get(s)
            if cached is None:
                # Zero price never reaches sizing: QuantitySizer rejects price <= 0.
                self._logger.warning("No price available for %s; returning price=0", s)
                out.append(PriceQuote(symbol=s, price=0.0, timestamp=0))
            else:
                out.append(cached)
        return out

    def invalidate(self, symbol: Optional[str] = None) -> None:
        if symbol is None:
            self._cache.clear()
        else:
            self._cache.pop(symbol.upper(), None)
