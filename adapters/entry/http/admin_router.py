from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field, ValidationError, field_validator

from core.common.utils import utc_now
from core.domain.entities.execution_log_entity import ExecutionLogEntity
from core.domain.entities.strategy_entity import DcaStrategyEntity
from core.domain.enums.dca_enums import DcaInterval
from core.repositories.execution_log_repository import ExecutionLogRepository
from core.repositories.strategy_repository import StrategyRepository

from .deps import get_log_repo, get_strategy_repo, require_api_key

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_api_key)])

# =========================
# Strategies
# =========================

class StrategyCreateDTO(BaseModel):
    user_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, examples=["btc_weekly"])
    symbol: str = Field(..., min_length=1, examples=["BTCUSDT"])
    amount: float = Field(..., gt=0, description="Quote amount spent per execution")
    interval: DcaInterval
    start_date: Optional[datetime] = Field(None, description="Defaults to now")
    is_active: bool = True

    @field_validator("symbol", "name")
    @classmethod
    def _strip(cls, v: str) -> str:
        return v.strip()

    @field_validator("symbol")
    @classmethod
    def upper_symbol(cls, v: str) -> str:
        return v.upper()


class StrategyActiveDTO(BaseModel):
    is_active: bool


class StrategyOutDTO(BaseModel):
    id: str
    user_id: str
    name: str
    symbol: str
    amount: float
    interval: str
    is_active: bool
    start_date: datetime
    last_executed: Optional[datetime] = None
    created_at: Optional[int] = None
    updated_at: Optional[int] = None


class ExecutionLogOutDTO(BaseModel):
    id: Optional[str] = None
    strategy_id: str
    user_id: str
    symbol: str
    amount: float
    price: float
    quantity: float
    order_id: str
    client_order_id: Optional[str] = None
    order_status: Optional[str] = None
    status: str
    error: Optional[str] = None
    executed_at: datetime


def _strategy_out(s: DcaStrategyEntity) -> StrategyOutDTO:
    return StrategyOutDTO.model_validate(s.model_dump())


def _log_out(e: ExecutionLogEntity) -> ExecutionLogOutDTO:
    return ExecutionLogOutDTO.model_validate(e.model_dump())


@router.post("/strategies", response_model=StrategyOutDTO, status_code=201)
async def create_strategy(
    dto: StrategyCreateDTO,
    repo: StrategyRepository = Depends(get_strategy_repo),
):
    """
    Create a DCA strategy. Invalid amount/interval never reach the engine (422).
    """
    try:
        entity = DcaStrategyEntity(
            user_id=dto.user_id,
            name=dto.name,
            symbol=dto.symbol,
            amount=dto.amount,
            interval=dto.interval,
            is_active=dto.is_active,
            start_date=dto.start_date or utc_now(),
        )
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    stored = await repo.create(entity)
    if not stored:
        raise HTTPException(status_code=500, detail="Failed to create strategy")
    return _strategy_out(stored)


@router.get("/strategies", response_model=List[StrategyOutDTO])
async def list_strategies(
    user_id: str = Query(..., min_length=1),
    repo: StrategyRepository = Depends(get_strategy_repo),
):
    return [_strategy_out(s) for s in await repo.list_by_user(user_id)]


@router.patch("/strategies/{strategy_id}/active", response_model=StrategyOutDTO)
async def set_strategy_active(
    strategy_id: str,
    dto: StrategyActiveDTO,
    repo: StrategyRepository = Depends(get_strategy_repo),
):
    updated = await repo.set_active(strategy_id, dto.is_active)
    if updated is None:
        raise HTTPException(status_code=404, detail="DCA strategy not found")
    return _strategy_out(updated)


# =========================
# Execution logs
# =========================

@router.get("/strategies/{strategy_id}/logs", response_model=List[ExecutionLogOutDTO])
async def strategy_logs(
    strategy_id: str,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    logs: ExecutionLogRepository = Depends(get_log_repo),
):
    return [_log_out(e) for e in await logs.list_by_strategy(strategy_id, limit=limit, offset=offset)]


@router.get("/users/{user_id}/logs", response_model=List[ExecutionLogOutDTO])
async def user_logs(
    user_id: str,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    logs: ExecutionLogRepository = Depends(get_log_repo),
):
    return [_log_out(e) for e in await logs.list_by_user(user_id, limit=limit, offset=offset)]
