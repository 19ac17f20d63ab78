import logging
from decimal import ROUND_FLOOR, Decimal
from typing import Optional, Union

from core.domain.entities.market_entities import MarketConstraints
from core.domain.exceptions import (
    InsufficientNotionalError,
    InsufficientQuantityError,
    InvalidPriceError,
)

Number = Union[Decimal, float, int, str]


def _dec(value: Number) -> Decimal:
    # str() first so 0.1 stays 0.1 instead of its binary expansion
    return value if isinstance(value, Decimal) else Decimal(str(value))


def floor_to_step(quantity: Decimal, step: Decimal) -> Decimal:
    """
    Largest multiple of `step` that is <= quantity.
    step <= 0 leaves the quantity untouched.
    """
    if step <= 0:
        return quantity
    steps = (quantity / step).to_integral_value(rounding=ROUND_FLOOR)
    return (steps * step).quantize(step)


class QuantitySizer:
    """
    Converts a quote notional into an order quantity that the market accepts.

    Always rounds down so the order never spends more than the requested amount.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    def size(self, amount: Number, price: Number, constraints: MarketConstraints) -> Decimal:
        amount_d = _dec(amount)
        price_d = _dec(price)
        if price_d <= 0:
            raise InvalidPriceError(f"Invalid price {price_d} for {constraints.symbol}")

        raw = amount_d / price_d

        if constraints.step_size <= 0:
            self._logger.warning(
                "step_size=%s for %s; sending unquantized quantity %s",
                constraints.step_size,
                constraints.symbol,
                raw,
            )
            quantity = raw
        else:
            quantity = floor_to_step(raw, constraints.step_size)

        if quantity <= 0 or quantity < constraints.min_quantity:
            raise InsufficientQuantityError(
                f"Calculated quantity {quantity} is less than minimum quantity "
                f"{constraints.min_quantity} for {constraints.symbol}"
            )

        notional = quantity * price_d
        if notional < constraints.min_notional:
            raise InsufficientNotionalError(
                f"Order notional {notional} is less than minimum notional "
                f"{constraints.min_notional} for {constraints.symbol}"
            )

        return quantity
