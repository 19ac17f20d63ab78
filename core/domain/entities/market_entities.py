# core/domain/entities/market_entities.py
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict

from ..enums.dca_enums import OrderSide, OrderType


class MarketConstraints(BaseModel):
    """Exchange filters for one symbol. 0 means the exchange imposes no such limit."""

    symbol: str
    base_asset: Optional[str] = None
    quote_asset: Optional[str] = None
    min_notional: Decimal = Decimal("0")
    min_quantity: Decimal = Decimal("0")
    step_size: Decimal = Decimal("0")
    tick_size: Decimal = Decimal("0")

    model_config = ConfigDict(frozen=True)


class PriceQuote(BaseModel):
    symbol: str
    price: float
    timestamp: int  # ms

    model_config = ConfigDict(frozen=True)

    @property
    def is_available(self) -> bool:
        return self.price > 0


class Balance(BaseModel):
    asset: str
    free: float
    locked: float
    total: float

    model_config = ConfigDict(frozen=True)


class ExchangeCredentials(BaseModel):
    api_key: str
    secret_key: str

    model_config = ConfigDict(frozen=True)

    def __repr__(self) -> str:
        return f"ExchangeCredentials(api_key={self.api_key[:4]}***)"

    __str__ = __repr__


class OrderRequest(BaseModel):
    symbol: str
    side: OrderSide
    type: OrderType
    quantity: Decimal
    price: Optional[Decimal] = None
    time_in_force: Optional[str] = None
    client_order_id: Optional[str] = None

    model_config = ConfigDict(frozen=True, use_enum_values=True)


class OrderResult(BaseModel):
    order_id: str
    client_order_id: Optional[str] = None
    symbol: str
    status: str
    price: float = 0.0
    orig_qty: float = 0.0
    executed_qty: float = 0.0
    cummulative_quote_qty: float = 0.0
    transact_time: Optional[datetime] = None

    model_config = ConfigDict(frozen=True)
