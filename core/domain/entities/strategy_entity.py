# core/domain/entities/strategy_entity.py
from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator, model_validator

from core.common.utils import ensure_utc
from ..enums.dca_enums import DcaInterval
from .base_entity import MongoEntity


class DcaStrategyEntity(MongoEntity):
    """
    Recurring "buy `amount` of quote currency worth of `symbol`" plan.

    `last_executed` only moves forward when an execution succeeds.
    """

    user_id: str
    name: str
    symbol: str
    amount: float = Field(..., gt=0)
    interval: DcaInterval
    is_active: bool = True
    start_date: datetime
    last_executed: Optional[datetime] = None

    @field_validator("symbol")
    @classmethod
    def _upper_symbol(cls, v: str) -> str:
        v = (v or "").strip().upper()
        if not v:
            raise ValueError("symbol is required")
        return v

    @field_validator("start_date", "last_executed")
    @classmethod
    def _utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v) if v is not None else None

    @model_validator(mode="after")
    def _last_executed_after_start(self) -> "DcaStrategyEntity":
        if self.last_executed is not None and self.last_executed < self.start_date:
            raise ValueError("last_executed must not be earlier than start_date")
        return self
