import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, Query

from core.domain.exceptions import ExchangeError, MissingAccountError
from core.gateways.exchange_gateway import ExchangeGateway
from core.services.price_oracle import PriceOracle

from .deps import get_gateway, get_price_oracle, require_api_key

router = APIRouter(prefix="/market", tags=["market"], dependencies=[Depends(require_api_key)])

_logger = logging.getLogger("MarketRouter")


@router.get("/prices")
async def get_prices(
    symbols: str = Query(..., description="Comma separated, e.g. BTCUSDT,ETHUSDT"),
    oracle: PriceOracle = Depends(get_price_oracle),
) -> List[Dict[str, Any]]:
    wanted = [s.strip().upper() for s in symbols.split(",") if s.strip()]
    if not wanted:
        raise HTTPException(status_code=400, detail="symbols is required")
    try:
        quotes = await oracle.get_prices(wanted)
    except ExchangeError as exc:
        _logger.warning("get_prices failed for %s: %s", wanted, exc)
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return [q.model_dump() for q in quotes]


@router.get("/info/{symbol}")
async def get_market_info(
    symbol: str,
    gateway: ExchangeGateway = Depends(get_gateway),
) -> Dict[str, Any]:
    try:
        constraints = await gateway.get_market_constraints(symbol)
    except ExchangeError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return constraints.model_dump(mode="json")


@router.get("/balance")
async def get_balance(
    user_id: str = Query(..., min_length=1),
    asset: str = Query(..., min_length=1),
    gateway: ExchangeGateway = Depends(get_gateway),
) -> Dict[str, Any]:
    try:
        balance = await gateway.get_balance(user_id, asset)
    except MissingAccountError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ExchangeError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return balance.model_dump()
