from abc import ABC, abstractmethod
from typing import List

from core.domain.entities.market_entities import (
    Balance,
    MarketConstraints,
    OrderRequest,
    OrderResult,
    PriceQuote,
)


class PriceSource(ABC):
    """
    Upstream spot price feed consumed by PriceOracle.
    """

    @abstractmethod
    async def get_ticker_price(self, symbol: str) -> PriceQuote:
        raise NotImplementedError

    @abstractmethod
    async def get_ticker_prices(self) -> List[PriceQuote]:
        """All symbols the exchange quotes, in one call."""
        raise NotImplementedError


class ExchangeGateway(PriceSource):
    """
    Capability set every exchange variant implements.

    Private calls resolve the user's credentials themselves; callers pass only user ids.
    Implementations never retry. Failures surface as ExchangeError / MissingAccountError.
    """

    name: str = ""

    @abstractmethod
    async def get_market_constraints(self, symbol: str) -> MarketConstraints:
        raise NotImplementedError

    @abstractmethod
    async def get_balance(self, user_id: str, asset: str) -> Balance:
        raise NotImplementedError

    @abstractmethod
    async def place_order(self, user_id: str, order: OrderRequest) -> OrderResult:
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release transport resources, if any."""
        return None
