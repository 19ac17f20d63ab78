# core/services/client_order_id_service.py

import hashlib
import json
from datetime import datetime

from core.common.utils import to_iso
from core.domain.entities.strategy_entity import DcaStrategyEntity


class ClientOrderIdService:
    """
    Builds deterministic client order ids (Binance `newClientOrderId`).

    Idea:
      - Same (strategy_id, scheduled slot) => same id, so two submissions for the
        same slot are recognizable on the exchange side.
      - Slot = last_executed (or start_date when never executed); it only moves
        after a success, so retries of a failed slot reuse the id.
      - Binance accepts at most 36 chars from [.A-Za-z0-9:/_-].
    """

    PREFIX = "dca-"
    MAX_LEN = 36

    def build_for_strategy(self, strategy: DcaStrategyEntity, attempt_at: datetime) -> str:
        """
        :param strategy: Strategy about to be executed (must have an id).
        :param attempt_at: Execution time; only used when the strategy has no slot anchor.
        """
        anchor = strategy.last_executed or strategy.start_date or attempt_at
        base = {
            "strategy_id": strategy.id,
            "slot": to_iso(anchor),
            "interval": strategy.interval,
        }
        raw = json.dumps(base, sort_keys=True, ensure_ascii=False, default=str)
        digest = hashlib.sha256(raw.encode("utf-8")).hexdigest()
        return (self.PREFIX + digest)[: self.MAX_LEN]
