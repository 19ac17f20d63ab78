from typing import List

from motor.motor_asyncio import AsyncIOMotorDatabase

from core.common.utils import now_iso, now_ms
from core.domain.entities.execution_log_entity import ExecutionLogEntity
from core.repositories.execution_log_repository import ExecutionLogRepository


class ExecutionLogRepositoryMongoDB(ExecutionLogRepository):
    """
    Mongo implementation for execution logs (insert-only).
    """

    COLLECTION = "execution_logs"

    def __init__(self, db: AsyncIOMotorDatabase):
        self._col = db[self.COLLECTION]

    async def ensure_indexes(self) -> None:
        await self._col.create_index([("executed_at", -1)], name="ix_executed_at")
        await self._col.create_index(
            [("user_id", 1), ("executed_at", -1)], name="ix_user_executed_at"
        )
        await self._col.create_index(
            [("strategy_id", 1), ("executed_at", -1)], name="ix_strategy_executed_at"
        )

    async def append(self, entry: ExecutionLogEntity) -> ExecutionLogEntity:
        doc = {
            **entry.to_mongo(),
            "created_at": now_ms(),
            "created_at_iso": now_iso(),
        }
        res = await self._col.insert_one(doc)
        return entry.model_copy(update={"id": str(res.inserted_id)})

    async def list_by_strategy(
        self, strategy_id: str, limit: int = 50, offset: int = 0
    ) -> List[ExecutionLogEntity]:
        cursor = self._col.find(
            {"strategy_id": strategy_id},
            sort=[("executed_at", -1)],
            skip=max(0, offset),
            limit=limit,
        )
        docs = await cursor.to_list(length=limit)
        return [ExecutionLogEntity.from_mongo(d) for d in docs if d]

    async def list_by_user(
        self, user_id: str, limit: int = 50, offset: int = 0
    ) -> List[ExecutionLogEntity]:
        cursor = self._col.find(
            {"user_id": user_id},
            sort=[("executed_at", -1)],
            skip=max(0, offset),
            limit=limit,
        )
        docs = await cursor.to_list(length=limit)
        return [ExecutionLogEntity.from_mongo(d) for d in docs if d]
