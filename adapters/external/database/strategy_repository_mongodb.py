import logging
from datetime import datetime, timedelta
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import ValidationError
from pymongo import ReturnDocument

from core.common.utils import now_iso, now_ms
from core.domain.entities.strategy_entity import DcaStrategyEntity
from core.repositories.strategy_repository import StrategyRepository
from core.services.due_set_resolver import INTERVAL_SECONDS

from .object_id import as_object_id


class StrategyRepositoryMongoDB(StrategyRepository):
    """
    Mongo implementation for DCA strategies.
    """

    COLLECTION = "dca_strategies"

    def __init__(self, db: AsyncIOMotorDatabase, logger: Optional[logging.Logger] = None):
        self._col = db[self.COLLECTION]
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    async def ensure_indexes(self) -> None:
        await self._col.create_index(
            [("is_active", 1), ("interval", 1), ("last_executed", 1)],
            name="ix_active_interval_last_executed",
        )
        await self._col.create_index([("user_id", 1)], name="ix_user")

    async def create(self, strategy: DcaStrategyEntity) -> DcaStrategyEntity:
        ts_ms = now_ms()
        ts_iso = now_iso()
        doc = {
            **strategy.to_mongo(),
            "created_at": ts_ms,
            "created_at_iso": ts_iso,
            "updated_at": ts_ms,
            "updated_at_iso": ts_iso,
        }
        res = await self._col.insert_one(doc)
        found = await self._col.find_one({"_id": res.inserted_id})
        return DcaStrategyEntity.from_mongo(found)

    async def get_by_id(self, strategy_id: str) -> Optional[DcaStrategyEntity]:
        oid = as_object_id(strategy_id)
        if oid is None:
            return None
        doc = await self._col.find_one({"_id": oid})
        return DcaStrategyEntity.from_mongo(doc)

    async def list_by_user(self, user_id: str) -> List[DcaStrategyEntity]:
        cursor = self._col.find({"user_id": user_id}, sort=[("created_at", -1)])
        docs = await cursor.to_list(length=None)
        return [DcaStrategyEntity.from_mongo(d) for d in docs if d]

    async def set_active(self, strategy_id: str, is_active: bool) -> Optional[DcaStrategyEntity]:
        oid = as_object_id(strategy_id)
        if oid is None:
            return None
        doc = await self._col.find_one_and_update(
            {"_id": oid},
            {"$set": {"is_active": bool(is_active), "updated_at": now_ms(), "updated_at_iso": now_iso()}},
            return_document=ReturnDocument.AFTER,
        )
        return DcaStrategyEntity.from_mongo(doc)

    async def find_due(self, now: datetime) -> List[DcaStrategyEntity]:
        # One branch per interval: last_executed older than that interval.
        # Boundary is inclusive (>= one interval elapsed).
        # {"last_executed": None} also matches a missing field.
        branches = [{"last_executed": None}]
        for interval, seconds in INTERVAL_SECONDS.items():
            cutoff = now - timedelta(seconds=seconds)
            branches.append({"interval": interval.value, "last_executed": {"$lte": cutoff}})

        cursor = self._col.find(
            {
                "is_active": True,
                "start_date": {"$lte": now},
                "$or": branches,
            }
        )
        docs = await cursor.to_list(length=None)

        due: List[DcaStrategyEntity] = []
        for doc in docs:
            try:
                entity = DcaStrategyEntity.from_mongo(doc)
            except ValidationError as exc:
                self._logger.warning(
                    "Skipping invalid strategy document %s: %s",
                    doc.get("_id"),
                    exc.errors(include_url=False),
                )
                continue
            if entity is not None:
                due.append(entity)
        return due

    async def mark_executed(self, strategy_id: str, executed_at: datetime) -> None:
        oid = as_object_id(strategy_id)
        if oid is None:
            raise ValueError(f"Invalid strategy id: {strategy_id}")
        await self._col.update_one(
            {"_id": oid},
            {"$set": {"last_executed": executed_at, "updated_at": now_ms(), "updated_at_iso": now_iso()}},
        )
