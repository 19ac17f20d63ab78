"""Exception hierarchy for the DCA execution engine."""

from typing import Optional


class DcaEngineError(Exception):
    """Base exception for all engine errors."""


class ExchangeError(DcaEngineError):
    """Network, HTTP or payload failure talking to an exchange."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        exchange_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.exchange_code = exchange_code


class PriceUnavailableError(ExchangeError):
    """No usable price could be obtained for a symbol."""


class UnsupportedExchangeError(ExchangeError):
    """No gateway implementation is registered under the requested name."""


class MissingAccountError(DcaEngineError):
    """The user has no active account on the exchange."""

    def __init__(self, user_id: str, exchange: str) -> None:
        super().__init__(f"No active {exchange} account found for user {user_id}")
        self.user_id = user_id
        self.exchange = exchange


class SizingError(DcaEngineError):
    """Raised when an order quantity cannot be derived from the notional."""


class InvalidPriceError(SizingError):
    """Price is zero or negative."""


class InsufficientQuantityError(SizingError):
    """Quantized quantity is below the market minimum quantity."""


class InsufficientNotionalError(SizingError):
    """Quantized order value is below the market minimum notional."""


class PassExecutionError(DcaEngineError):
    """An execution pass could not run (e.g. the due-set query failed)."""
