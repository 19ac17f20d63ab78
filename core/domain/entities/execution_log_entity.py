# core/domain/entities/execution_log_entity.py
from datetime import datetime
from typing import Optional

from pydantic import ConfigDict, Field

from ..enums.dca_enums import ExecutionStatus
from .base_entity import MongoEntity


class ExecutionLogEntity(MongoEntity):
    """
    Append-only audit record, one per execution attempt.
    FAILED entries carry price=0, quantity=0 and order_id="0".
    """

    strategy_id: str
    user_id: str
    symbol: str
    amount: float = Field(..., ge=0)
    price: float = Field(0.0, ge=0)
    quantity: float = Field(0.0, ge=0)
    order_id: str = "0"
    client_order_id: Optional[str] = None
    order_status: Optional[str] = None
    status: ExecutionStatus
    error: Optional[str] = None
    executed_at: datetime

    model_config = ConfigDict(frozen=True, use_enum_values=True, extra="ignore")
