import hmac
from typing import Optional

from fastapi import Header, HTTPException, Request

from config.settings import settings
from core.gateways.exchange_gateway import ExchangeGateway
from core.repositories.execution_log_repository import ExecutionLogRepository
from core.repositories.strategy_repository import StrategyRepository
from core.services.price_oracle import PriceOracle
from core.usecases.execute_due_strategies_use_case import ExecuteDueStrategiesUseCase


def _state(request: Request, name: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise RuntimeError(f"{name} not initialized. Check app lifespan startup.")
    return value


def get_execute_uc(request: Request) -> ExecuteDueStrategiesUseCase:
    return _state(request, "execute_uc")


def get_strategy_repo(request: Request) -> StrategyRepository:
    return _state(request, "strategy_repo")


def get_log_repo(request: Request) -> ExecutionLogRepository:
    return _state(request, "log_repo")


def get_gateway(request: Request) -> ExchangeGateway:
    return _state(request, "gateway")


def get_price_oracle(request: Request) -> PriceOracle:
    return _state(request, "price_oracle")


def require_api_key(x_api_key: Optional[str] = Header(None, alias="X-API-Key")) -> None:
    """
    Shared-secret check. An unset BOT_API_KEY rejects every call.
    """
    expected = settings.BOT_API_KEY
    if not x_api_key or not expected or not hmac.compare_digest(
        x_api_key.encode("utf-8"), expected.encode("utf-8")
    ):
        raise HTTPException(status_code=401, detail="Unauthorized")
