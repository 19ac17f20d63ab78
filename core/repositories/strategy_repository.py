from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from core.domain.entities.strategy_entity import DcaStrategyEntity


class StrategyRepository(ABC):
    """
    Repository interface for DCA strategies.
    """

    @abstractmethod
    async def ensure_indexes(self) -> None:
        """Indexes for due-set and per-user lookups."""
        raise NotImplementedError

    @abstractmethod
    async def create(self, strategy: DcaStrategyEntity) -> DcaStrategyEntity:
        """Insert a new strategy and return it with its id."""
        raise NotImplementedError

    @abstractmethod
    async def get_by_id(self, strategy_id: str) -> Optional[DcaStrategyEntity]:
        raise NotImplementedError

    @abstractmethod
    async def list_by_user(self, user_id: str) -> List[DcaStrategyEntity]:
        raise NotImplementedError

    @abstractmethod
    async def set_active(self, strategy_id: str, is_active: bool) -> Optional[DcaStrategyEntity]:
        """Toggle the active flag. Returns None when the strategy does not exist."""
        raise NotImplementedError

    @abstractmethod
    async def find_due(self, now: datetime) -> List[DcaStrategyEntity]:
        """
        Candidate strategies for execution at `now`: active, started, and either
        never executed or executed at least one interval ago.
        """
        raise NotImplementedError

    @abstractmethod
    async def mark_executed(self, strategy_id: str, executed_at: datetime) -> None:
        """Persist `last_executed`. Only called after a successful order."""
        raise NotImplementedError
