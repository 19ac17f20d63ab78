from abc import ABC, abstractmethod
from typing import Optional

from core.domain.entities.market_entities import ExchangeCredentials


class ExchangeAccountRepository(ABC):
    """
    Read access to users' exchange API credentials (owned by the account service).
    """

    @abstractmethod
    async def get_active_credentials(
        self, user_id: str, exchange: str
    ) -> Optional[ExchangeCredentials]:
        """Credentials of the user's active account on `exchange`, or None."""
        raise NotImplementedError
