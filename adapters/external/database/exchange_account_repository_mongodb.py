from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from core.domain.entities.market_entities import ExchangeCredentials
from core.repositories.exchange_account_repository import ExchangeAccountRepository


class ExchangeAccountRepositoryMongoDB(ExchangeAccountRepository):
    """
    Read-only view over the `exchange_accounts` collection.

    Documents: {user_id, name, exchange, is_active, credentials: {api_key, secret_key}}.
    """

    COLLECTION = "exchange_accounts"

    def __init__(self, db: AsyncIOMotorDatabase):
        self._col = db[self.COLLECTION]

    async def ensure_indexes(self) -> None:
        await self._col.create_index(
            [("user_id", 1), ("exchange", 1), ("is_active", 1)],
            name="ix_user_exchange_active",
        )

    async def get_active_credentials(
        self, user_id: str, exchange: str
    ) -> Optional[ExchangeCredentials]:
        doc = await self._col.find_one(
            {"user_id": user_id, "exchange": exchange.upper(), "is_active": True},
            projection={"credentials": 1},
        )
        creds = (doc or {}).get("credentials") or {}
        if not creds.get("api_key") or not creds.get("secret_key"):
            return None
        return ExchangeCredentials(api_key=creds["api_key"], secret_key=creds["secret_key"])
