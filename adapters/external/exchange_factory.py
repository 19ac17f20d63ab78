from typing import Optional

from adapters.external.binance.binance_exchange_gateway import BinanceExchangeGateway
from adapters.external.binance.binance_rest_client import BinanceRestClient
from config.settings import settings
from core.domain.enums.dca_enums import ExchangeName
from core.domain.exceptions import UnsupportedExchangeError
from core.gateways.exchange_gateway import ExchangeGateway
from core.repositories.exchange_account_repository import ExchangeAccountRepository


def build_exchange_gateway(
    name: str,
    account_repo: ExchangeAccountRepository,
    base_url: Optional[str] = None,
    timeout: Optional[float] = None,
) -> ExchangeGateway:
    """
    Pick the gateway implementation by exchange name (case-insensitive).
    New exchanges register here; the coordinator only sees ExchangeGateway.
    """
    key = (name or "").strip().upper()

    if key == ExchangeName.BINANCE.value:
        rest = BinanceRestClient(
            base_url=base_url or settings.BINANCE_REST_BASE_URL,
            timeout=timeout,
        )
        return BinanceExchangeGateway(rest_client=rest, account_repo=account_repo)

    raise UnsupportedExchangeError(f"Unsupported exchange: {name}")
