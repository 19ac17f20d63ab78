import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from core.common.utils import ensure_utc
from core.domain.entities.strategy_entity import DcaStrategyEntity
from core.domain.enums.dca_enums import DcaInterval
from core.repositories.strategy_repository import StrategyRepository

# Fixed durations. MONTHLY is 30 days, not a calendar month.
INTERVAL_SECONDS: Dict[DcaInterval, int] = {
    DcaInterval.HOURLY: 3600,
    DcaInterval.DAILY: 86400,
    DcaInterval.WEEKLY: 604800,
    DcaInterval.MONTHLY: 2_592_000,
}


def interval_duration(interval) -> timedelta:
    """Raises ValueError for anything outside DcaInterval."""
    return timedelta(seconds=INTERVAL_SECONDS[DcaInterval(interval)])


def is_due(strategy: DcaStrategyEntity, now: datetime) -> bool:
    if not strategy.is_active:
        return False
    now = ensure_utc(now)
    if strategy.start_date > now:
        return False
    if strategy.last_executed is None:
        return True
    return now - strategy.last_executed >= interval_duration(strategy.interval)


class DueSetResolver:
    """
    Picks the strategies to execute at `now`.

    The store query is a prefilter; `is_due` is applied again on every candidate so
    a loose or stale index never lets an ineligible strategy through.
    Order is whatever the store returns. Candidates arrive already validated; the
    repository drops stored documents that are not valid strategies.
    """

    def __init__(
        self,
        strategy_repo: StrategyRepository,
        logger: Optional[logging.Logger] = None,
    ):
        self._strategies = strategy_repo
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    async def resolve(self, now: datetime) -> List[DcaStrategyEntity]:
        candidates = await self._strategies.find_due(now)
        due = [s for s in candidates if is_due(s, now)]
        if len(due) != len(candidates):
            self._logger.debug(
                "Store returned %s candidates, %s due at %s", len(candidates), len(due), now
            )
        return due
