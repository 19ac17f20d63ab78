"""Tests for BinanceExchangeGateway: payload mapping over the REST transport."""

from __future__ import annotations

from decimal import Decimal

import pytest
import respx
from httpx import Response

from adapters.external.binance.binance_exchange_gateway import BinanceExchangeGateway
from adapters.external.binance.binance_rest_client import BinanceRestClient
from adapters.external.exchange_factory import build_exchange_gateway
from core.domain.entities.market_entities import OrderRequest
from core.domain.exceptions import (
    ExchangeError,
    MissingAccountError,
    PriceUnavailableError,
    UnsupportedExchangeError,
)

BASE = "https://api.test/api"

EXCHANGE_INFO = {
    "symbols": [
        {
            "symbol": "BTCUSDT",
            "baseAsset": "BTC",
            "quoteAsset": "USDT",
            "filters": [
                {"filterType": "PRICE_FILTER", "minPrice": "0.01", "maxPrice": "1000000.00", "tickSize": "0.01000000"},
                {"filterType": "LOT_SIZE", "minQty": "0.00001000", "maxQty": "9000.00000000", "stepSize": "0.00001000"},
                {"filterType": "MIN_NOTIONAL", "minNotional": "10.00000000"},
            ],
        }
    ]
}


@pytest.fixture()
def gw(account_repo) -> BinanceExchangeGateway:
    rest = BinanceRestClient(base_url=BASE, clock_ms=lambda: 1_700_000_000_000)
    return BinanceExchangeGateway(rest_client=rest, account_repo=account_repo)


class TestMarketConstraints:
    @pytest.mark.asyncio
    @respx.mock
    async def test_parses_filters(self, gw: BinanceExchangeGateway) -> None:
        route = respx.get(f"{BASE}/v3/exchangeInfo").mock(return_value=Response(200, json=EXCHANGE_INFO))

        c = await gw.get_market_constraints("btcusdt")

        assert route.calls.last.request.url.params["symbol"] == "BTCUSDT"
        assert c.symbol == "BTCUSDT"
        assert c.base_asset == "BTC"
        assert c.step_size == Decimal("0.00001")
        assert c.min_quantity == Decimal("0.00001")
        assert c.min_notional == Decimal("10")
        assert c.tick_size == Decimal("0.01")

    @pytest.mark.asyncio
    @respx.mock
    async def test_notional_filter_and_missing_filters_default_to_zero(self, gw: BinanceExchangeGateway) -> None:
        payload = {"symbols": [{"symbol": "ETHUSDT", "filters": [{"filterType": "NOTIONAL", "minNotional": "5.0"}]}]}
        respx.get(f"{BASE}/v3/exchangeInfo").mock(return_value=Response(200, json=payload))

        c = await gw.get_market_constraints("ETHUSDT")

        assert c.min_notional == Decimal("5.0")
        assert c.step_size == Decimal("0")
        assert c.min_quantity == Decimal("0")

    @pytest.mark.asyncio
    @respx.mock
    async def test_unknown_symbol(self, gw: BinanceExchangeGateway) -> None:
        respx.get(f"{BASE}/v3/exchangeInfo").mock(return_value=Response(200, json={"symbols": []}))

        with pytest.raises(ExchangeError, match="not found"):
            await gw.get_market_constraints("NOPEUSDT")


class TestPrices:
    @pytest.mark.asyncio
    @respx.mock
    async def test_single_ticker(self, gw: BinanceExchangeGateway) -> None:
        respx.get(f"{BASE}/v3/ticker/price").mock(
            return_value=Response(200, json={"symbol": "BTCUSDT", "price": "50123.45000000"})
        )

        q = await gw.get_ticker_price("BTCUSDT")

        assert q.symbol == "BTCUSDT"
        assert q.price == 50123.45

    @pytest.mark.asyncio
    @respx.mock
    async def test_single_ticker_without_price(self, gw: BinanceExchangeGateway) -> None:
        respx.get(f"{BASE}/v3/ticker/price").mock(return_value=Response(200, json={"symbol": "BTCUSDT"}))

        with pytest.raises(PriceUnavailableError):
            await gw.get_ticker_price("BTCUSDT")

    @pytest.mark.asyncio
    @respx.mock
    async def test_all_tickers(self, gw: BinanceExchangeGateway) -> None:
        route = respx.get(f"{BASE}/v3/ticker/price").mock(
            return_value=Response(
                200,
                json=[{"symbol": "BTCUSDT", "price": "50000.0"}, {"symbol": "ETHUSDT", "price": "2500.0"}],
            )
        )

        quotes = await gw.get_ticker_prices()

        assert "symbol" not in route.calls.last.request.url.params
        assert {q.symbol: q.price for q in quotes} == {"BTCUSDT": 50000.0, "ETHUSDT": 2500.0}


class TestSignedCalls:
    @pytest.mark.asyncio
    @respx.mock
    async def test_balance(self, gw: BinanceExchangeGateway) -> None:
        route = respx.get(f"{BASE}/v3/account").mock(
            return_value=Response(
                200,
                json={"balances": [{"asset": "USDT", "free": "120.5", "locked": "4.5"}]},
            )
        )

        b = await gw.get_balance("u1", "usdt")

        assert (b.asset, b.free, b.locked, b.total) == ("USDT", 120.5, 4.5, 125.0)
        request = route.calls.last.request
        assert request.headers["X-MBX-APIKEY"] == "test-api-key"
        assert "signature" in request.url.params

    @pytest.mark.asyncio
    @respx.mock
    async def test_balance_unknown_asset(self, gw: BinanceExchangeGateway) -> None:
        respx.get(f"{BASE}/v3/account").mock(return_value=Response(200, json={"balances": []}))

        with pytest.raises(ExchangeError, match="Balance for DOGE not found"):
            await gw.get_balance("u1", "DOGE")

    @pytest.mark.asyncio
    @respx.mock(assert_all_called=False)
    async def test_missing_account_makes_no_request(self, gw: BinanceExchangeGateway) -> None:
        route = respx.post(f"{BASE}/v3/order")
        order = OrderRequest(symbol="BTCUSDT", side="BUY", type="MARKET", quantity=Decimal("0.002"))

        with pytest.raises(MissingAccountError):
            await gw.place_order("nobody", order)

        assert route.call_count == 0

    @pytest.mark.asyncio
    @respx.mock
    async def test_place_market_order(self, gw: BinanceExchangeGateway) -> None:
        route = respx.post(f"{BASE}/v3/order").mock(
            return_value=Response(
                200,
                json={
                    "symbol": "BTCUSDT",
                    "orderId": 28,
                    "clientOrderId": "dca-abc",
                    "transactTime": 1507725176595,
                    "price": "0.00000000",
                    "origQty": "0.00200000",
                    "executedQty": "0.00200000",
                    "cummulativeQuoteQty": "100.00000000",
                    "status": "FILLED",
                },
            )
        )
        order = OrderRequest(
            symbol="BTCUSDT",
            side="BUY",
            type="MARKET",
            quantity=Decimal("0.00200"),
            client_order_id="dca-abc",
        )

        result = await gw.place_order("u1", order)

        params = route.calls.last.request.url.params
        assert params["symbol"] == "BTCUSDT"
        assert params["side"] == "BUY"
        assert params["type"] == "MARKET"
        assert params["quantity"] == "0.002"
        assert params["newClientOrderId"] == "dca-abc"
        assert "timeInForce" not in params
        assert result.order_id == "28"
        assert result.status == "FILLED"
        assert result.executed_qty == 0.002
        assert result.cummulative_quote_qty == 100.0
        assert result.transact_time is not None

    @pytest.mark.asyncio
    @respx.mock
    async def test_limit_order_defaults_to_gtc_and_plain_decimals(self, gw: BinanceExchangeGateway) -> None:
        route = respx.post(f"{BASE}/v3/order").mock(
            return_value=Response(200, json={"orderId": 7, "symbol": "BTCUSDT", "status": "NEW"})
        )
        order = OrderRequest(
            symbol="BTCUSDT",
            side="BUY",
            type="LIMIT",
            quantity=Decimal("1E-7"),
            price=Decimal("42000.10"),
        )

        await gw.place_order("u1", order)

        params = route.calls.last.request.url.params
        assert params["timeInForce"] == "GTC"
        assert params["quantity"] == "0.0000001"
        assert params["price"] == "42000.1"

    @pytest.mark.asyncio
    @respx.mock
    async def test_rejected_order_raises(self, gw: BinanceExchangeGateway) -> None:
        respx.post(f"{BASE}/v3/order").mock(
            return_value=Response(400, json={"code": -2010, "msg": "Account has insufficient balance for requested action."})
        )
        order = OrderRequest(symbol="BTCUSDT", side="BUY", type="MARKET", quantity=Decimal("1"))

        with pytest.raises(ExchangeError) as exc_info:
            await gw.place_order("u1", order)

        assert exc_info.value.exchange_code == -2010


class TestFactory:
    def test_builds_binance_by_name(self, account_repo) -> None:
        gw = build_exchange_gateway("binance", account_repo, base_url=BASE)
        assert isinstance(gw, BinanceExchangeGateway)

    def test_unknown_exchange(self, account_repo) -> None:
        with pytest.raises(UnsupportedExchangeError):
            build_exchange_gateway("KRAKEN", account_repo)
