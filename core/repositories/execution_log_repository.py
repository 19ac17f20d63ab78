from abc import ABC, abstractmethod
from typing import List

from core.domain.entities.execution_log_entity import ExecutionLogEntity


class ExecutionLogRepository(ABC):
    """
    Append-only store for execution attempts.
    """

    @abstractmethod
    async def ensure_indexes(self) -> None:
        raise NotImplementedError

    @abstractmethod
    async def append(self, entry: ExecutionLogEntity) -> ExecutionLogEntity:
        raise NotImplementedError

    @abstractmethod
    async def list_by_strategy(
        self, strategy_id: str, limit: int = 50, offset: int = 0
    ) -> List[ExecutionLogEntity]:
        """Newest first."""
        raise NotImplementedError

    @abstractmethod
    async def list_by_user(
        self, user_id: str, limit: int = 50, offset: int = 0
    ) -> List[ExecutionLogEntity]:
        """Newest first."""
        raise NotImplementedError
