"""Shared fakes and fixtures for the DCA engine tests."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

import pytest

from core.domain.entities.execution_log_entity import ExecutionLogEntity
from core.domain.entities.market_entities import (
    Balance,
    ExchangeCredentials,
    MarketConstraints,
    OrderRequest,
    OrderResult,
    PriceQuote,
)
from core.domain.entities.strategy_entity import DcaStrategyEntity
from core.domain.exceptions import ExchangeError, MissingAccountError
from core.gateways.exchange_gateway import ExchangeGateway
from core.repositories.exchange_account_repository import ExchangeAccountRepository
from core.repositories.execution_log_repository import ExecutionLogRepository
from core.repositories.strategy_repository import StrategyRepository

NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


# ── Fakes ───────────────────────────────────────────────────────


class InMemoryStrategyRepository(StrategyRepository):
    """find_due returns every stored strategy; the resolver does the filtering."""

    def __init__(self) -> None:
        self.items: Dict[str, DcaStrategyEntity] = {}
        self.mark_calls: List[tuple[str, datetime]] = []
        self.fail_find_due: Optional[Exception] = None
        self.fail_mark_executed: Optional[Exception] = None
        self._seq = 0

    async def ensure_indexes(self) -> None:
        return None

    async def create(self, strategy: DcaStrategyEntity) -> DcaStrategyEntity:
        self._seq += 1
        stored = strategy.model_copy(update={"id": strategy.id or f"s{self._seq}"})
        self.items[stored.id] = stored
        return stored

    def add(self, strategy: DcaStrategyEntity) -> DcaStrategyEntity:
        self.items[strategy.id] = strategy
        return strategy

    async def get_by_id(self, strategy_id: str) -> Optional[DcaStrategyEntity]:
        return self.items.get(strategy_id)

    async def list_by_user(self, user_id: str) -> List[DcaStrategyEntity]:
        return [s for s in self.items.values() if s.user_id == user_id]

    async def set_active(self, strategy_id: str, is_active: bool) -> Optional[DcaStrategyEntity]:
        current = self.items.get(strategy_id)
        if current is None:
            return None
        self.items[strategy_id] = current.model_copy(update={"is_active": is_active})
        return self.items[strategy_id]

    async def find_due(self, now: datetime) -> List[DcaStrategyEntity]:
        if self.fail_find_due is not None:
            raise self.fail_find_due
        return list(self.items.values())

    async def mark_executed(self, strategy_id: str, executed_at: datetime) -> None:
        if self.fail_mark_executed is not None:
            raise self.fail_mark_executed
        self.mark_calls.append((strategy_id, executed_at))
        self.items[strategy_id] = self.items[strategy_id].model_copy(
            update={"last_executed": executed_at}
        )


class InMemoryExecutionLogRepository(ExecutionLogRepository):
    def __init__(self) -> None:
        self.entries: List[ExecutionLogEntity] = []

    async def ensure_indexes(self) -> None:
        return None

    async def append(self, entry: ExecutionLogEntity) -> ExecutionLogEntity:
        stored = entry.model_copy(update={"id": f"log{len(self.entries) + 1}"})
        self.entries.append(stored)
        return stored

    async def list_by_strategy(
        self, strategy_id: str, limit: int = 50, offset: int = 0
    ) -> List[ExecutionLogEntity]:
        rows = [e for e in reversed(self.entries) if e.strategy_id == strategy_id]
        return rows[offset : offset + limit]

    async def list_by_user(
        self, user_id: str, limit: int = 50, offset: int = 0
    ) -> List[ExecutionLogEntity]:
        rows = [e for e in reversed(self.entries) if e.user_id == user_id]
        return rows[offset : offset + limit]


class InMemoryAccountRepository(ExchangeAccountRepository):
    def __init__(self, accounts: Optional[Dict[tuple[str, str], ExchangeCredentials]] = None):
        self.accounts = accounts or {}

    async def get_active_credentials(
        self, user_id: str, exchange: str
    ) -> Optional[ExchangeCredentials]:
        return self.accounts.get((user_id, exchange.upper()))


class FakeGateway(ExchangeGateway):
    """
    Scripted exchange. `order_errors` maps user_id -> exception raised by place_order.
    Users without an account in `accounts` get MissingAccountError.
    """

    name = "BINANCE"

    def __init__(self) -> None:
        self.prices: Dict[str, float] = {"BTCUSDT": 50000.0, "ETHUSDT": 2500.0}
        self.constraints: Dict[str, MarketConstraints] = {
            "BTCUSDT": MarketConstraints(
                symbol="BTCUSDT",
                min_notional=Decimal("10"),
                min_quantity=Decimal("0.00001"),
                step_size=Decimal("0.00001"),
                tick_size=Decimal("0.01"),
            ),
            "ETHUSDT": MarketConstraints(
                symbol="ETHUSDT",
                min_notional=Decimal("5"),
                min_quantity=Decimal("0.0001"),
                step_size=Decimal("0.0001"),
                tick_size=Decimal("0.01"),
            ),
        }
        self.accounts: set[str] = {"u1", "u2", "u3"}
        self.order_errors: Dict[str, Exception] = {}
        self.orders: List[tuple[str, OrderRequest]] = []
        self.ticker_calls = 0
        self.bulk_calls = 0
        self.order_gate: Any = None  # optional asyncio.Event awaited inside place_order

    async def get_ticker_price(self, symbol: str) -> PriceQuote:
        self.ticker_calls += 1
        if symbol not in self.prices:
            raise ExchangeError(f"Binance HTTP 400: Invalid symbol. ({symbol})", status_code=400)
        return PriceQuote(symbol=symbol, price=self.prices[symbol], timestamp=0)

    async def get_ticker_prices(self) -> List[PriceQuote]:
        self.bulk_calls += 1
        return [PriceQuote(symbol=s, price=p, timestamp=0) for s, p in self.prices.items()]

    async def get_market_constraints(self, symbol: str) -> MarketConstraints:
        if symbol not in self.constraints:
            raise ExchangeError(f"Symbol {symbol} not found")
        return self.constraints[symbol]

    async def get_balance(self, user_id: str, asset: str) -> Balance:
        if user_id not in self.accounts:
            raise MissingAccountError(user_id, self.name)
        return Balance(asset=asset, free=100.0, locked=0.0, total=100.0)

    async def place_order(self, user_id: str, order: OrderRequest) -> OrderResult:
        if user_id not in self.accounts:
            raise MissingAccountError(user_id, self.name)
        if self.order_gate is not None:
            await self.order_gate.wait()
        if user_id in self.order_errors:
            raise self.order_errors[user_id]
        self.orders.append((user_id, order))
        return OrderResult(
            order_id=str(1000 + len(self.orders)),
            client_order_id=order.client_order_id,
            symbol=order.symbol,
            status="FILLED",
            orig_qty=float(order.quantity),
            executed_qty=float(order.quantity),
        )


# ── Fixtures ────────────────────────────────────────────────────


@pytest.fixture()
def strategy_repo() -> InMemoryStrategyRepository:
    return InMemoryStrategyRepository()


@pytest.fixture()
def log_repo() -> InMemoryExecutionLogRepository:
    return InMemoryExecutionLogRepository()


@pytest.fixture()
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture()
def make_strategy():
    def _make(**overrides: Any) -> DcaStrategyEntity:
        data: Dict[str, Any] = {
            "id": "s1",
            "user_id": "u1",
            "name": "btc_daily",
            "symbol": "BTCUSDT",
            "amount": 100.0,
            "interval": "DAILY",
            "is_active": True,
            "start_date": datetime(2024, 1, 1, tzinfo=timezone.utc),
            "last_executed": None,
        }
        data.update(overrides)
        return DcaStrategyEntity(**data)

    return _make


@pytest.fixture()
def account_repo() -> InMemoryAccountRepository:
    return InMemoryAccountRepository(
        {("u1", "BINANCE"): ExchangeCredentials(api_key="test-api-key", secret_key="test-secret")}
    )
