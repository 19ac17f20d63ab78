import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from core.domain.entities.market_entities import (
    Balance,
    ExchangeCredentials,
    MarketConstraints,
    OrderRequest,
    OrderResult,
    PriceQuote,
)
from core.domain.enums.dca_enums import ExchangeName, OrderType
from core.domain.exceptions import ExchangeError, MissingAccountError, PriceUnavailableError
from core.gateways.exchange_gateway import ExchangeGateway
from core.repositories.exchange_account_repository import ExchangeAccountRepository

from .binance_rest_client import BinanceRestClient


def _to_decimal(value: Any) -> Decimal:
    if value in (None, ""):
        return Decimal("0")
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ExchangeError(f"Unexpected numeric value from Binance: {value!r}") from exc


def _to_float(value: Any) -> float:
    if value in (None, ""):
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ExchangeError(f"Unexpected numeric value from Binance: {value!r}") from exc


def _fmt(value: Decimal) -> str:
    # Binance rejects exponent notation such as 1E-7
    return format(value.normalize(), "f")


class BinanceExchangeGateway(ExchangeGateway):
    """
    Binance spot implementation of the exchange capability set.

    Endpoints (relative to the /api base URL):
      - GET  /v3/ticker/price   (public)
      - GET  /v3/exchangeInfo   (public)
      - GET  /v3/account        (signed)
      - POST /v3/order          (signed)
    """

    name = ExchangeName.BINANCE.value

    def __init__(
        self,
        rest_client: BinanceRestClient,
        account_repo: ExchangeAccountRepository,
        logger: Optional[logging.Logger] = None,
    ):
        self._rest = rest_client
        self._accounts = account_repo
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    async def aclose(self) -> None:
        await self._rest.aclose()

    async def _credentials(self, user_id: str) -> ExchangeCredentials:
        creds = await self._accounts.get_active_credentials(user_id, self.name)
        if creds is None:
            raise MissingAccountError(user_id, self.name)
        return creds

    # ---------- prices ----------

    async def get_ticker_price(self, symbol: str) -> PriceQuote:
        symbol = symbol.upper()
        data = await self._rest.public_get("/v3/ticker/price", {"symbol": symbol})
        if not isinstance(data, dict) or not data.get("price"):
            raise PriceUnavailableError(f"Failed to get price for {symbol}")
        return PriceQuote(
            symbol=str(data.get("symbol") or symbol),
            price=_to_float(data["price"]),
            timestamp=int(datetime.now(timezone.utc).timestamp() * 1000),
        )

    async def get_ticker_prices(self) -> List[PriceQuote]:
        data = await self._rest.public_get("/v3/ticker/price")
        if not isinstance(data, list):
            raise PriceUnavailableError("Failed to get prices: unexpected payload")
        ts = int(datetime.now(timezone.utc).timestamp() * 1000)
        out: List[PriceQuote] = []
        for item in data:
            if not isinstance(item, dict) or "symbol" not in item:
                continue
            out.append(PriceQuote(symbol=item["symbol"], price=_to_float(item.get("price")), timestamp=ts))
        return out

    # ---------- market info ----------

    async def get_market_constraints(self, symbol: str) -> MarketConstraints:
        symbol = symbol.upper()
        data = await self._rest.public_get("/v3/exchangeInfo", {"symbol": symbol})

        symbols = data.get("symbols") if isinstance(data, dict) else None
        if not symbols:
            raise ExchangeError(f"Symbol {symbol} not found")
        info: Dict[str, Any] = symbols[0]

        filters = {f.get("filterType"): f for f in info.get("filters") or [] if isinstance(f, dict)}
        lot = filters.get("LOT_SIZE") or {}
        price_filter = filters.get("PRICE_FILTER") or {}
        # Binance migrated MIN_NOTIONAL -> NOTIONAL on most spot pairs
        notional = filters.get("MIN_NOTIONAL") or filters.get("NOTIONAL") or {}

        return MarketConstraints(
            symbol=str(info.get("symbol") or symbol),
            base_asset=info.get("baseAsset"),
            quote_asset=info.get("quoteAsset"),
            min_notional=_to_decimal(notional.get("minNotional")),
            min_quantity=_to_decimal(lot.get("minQty")),
            step_size=_to_decimal(lot.get("stepSize")),
            tick_size=_to_decimal(price_filter.get("tickSize")),
        )

    # ---------- account ----------

    async def get_balance(self, user_id: str, asset: str) -> Balance:
        creds = await self._credentials(user_id)
        data = await self._rest.signed_request("GET", "/v3/account", creds)

        asset = asset.upper()
        balances = data.get("balances") if isinstance(data, dict) else None
        for b in balances or []:
            if b.get("asset") == asset:
                free = _to_float(b.get("free"))
                locked = _to_float(b.get("locked"))
                return Balance(asset=asset, free=free, locked=locked, total=free + locked)

        raise ExchangeError(f"Balance for {asset} not found")

    # ---------- orders ----------

    async def place_order(self, user_id: str, order: OrderRequest) -> OrderResult:
        creds = await self._credentials(user_id)

        params: Dict[str, Any] = {
            "symbol": order.symbol.upper(),
            "side": order.side,
            "type": order.type,
            "quantity": _fmt(order.quantity),
        }
        if order.price is not None:
            params["price"] = _fmt(order.price)
        if order.time_in_force:
            params["timeInForce"] = order.time_in_force
        elif order.type == OrderType.LIMIT.value:
            params["timeInForce"] = "GTC"
        if order.client_order_id:
            params["newClientOrderId"] = order.client_order_id

        self._logger.info(
            "Placing %s %s %s qty=%s for user %s",
            order.type,
            order.side,
            params["symbol"],
            params["quantity"],
            user_id,
        )
        data = await self._rest.signed_request("POST", "/v3/order", creds, params)
        if not isinstance(data, dict) or "orderId" not in data:
            raise ExchangeError(f"Unexpected order response for {params['symbol']}: {data!r}")

        transact_time = data.get("transactTime")
        return OrderResult(
            order_id=str(data["orderId"]),
            client_order_id=data.get("clientOrderId"),
            symbol=str(data.get("symbol") or params["symbol"]),
            status=str(data.get("status") or ""),
            price=_to_float(data.get("price")),
            orig_qty=_to_float(data.get("origQty")),
            executed_qty=_to_float(data.get("executedQty")),
            cummulative_quote_qty=_to_float(data.get("cummulativeQuoteQty")),
            transact_time=(
                datetime.fromtimestamp(int(transact_time) / 1000, tz=timezone.utc)
                if transact_time
                else None
            ),
        )
