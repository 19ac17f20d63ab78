import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException

from core.domain.exceptions import PassExecutionError
from core.usecases.execute_due_strategies_use_case import ExecuteDueStrategiesUseCase

from .deps import get_execute_uc, require_api_key


router = APIRouter(prefix="/triggers", tags=["triggers"])


@router.post("/execute", dependencies=[Depends(require_api_key)])
async def execute_trigger(
    uc: ExecuteDueStrategiesUseCase = Depends(get_execute_uc),
) -> Dict[str, Any]:
    """
    Run exactly one execution pass synchronously.
    200 regardless of individual strategy outcomes; 500 only when the pass itself could not run.
    """
    logger = logging.getLogger("ExecuteTrigger")

    try:
        summary = await uc.execute_once()
    except PassExecutionError as exc:
        logger.error("Triggered pass aborted: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Triggered pass crashed: %s", exc)
        raise HTTPException(status_code=500, detail="Execution failed") from exc

    if summary.skipped:
        return {"ok": True, "processed": False, "reason": summary.reason}

    return {
        "ok": True,
        "processed": True,
        "due": summary.due,
        "succeeded": summary.succeeded,
        "failed": summary.failed,
        "started_at": summary.started_at.isoformat(),
        "finished_at": summary.finished_at.isoformat() if summary.finished_at else None,
    }
