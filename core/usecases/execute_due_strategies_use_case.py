import asyncio
import logging
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional

from pydantic import BaseModel

from core.common.utils import utc_now
from core.domain.entities.execution_log_entity import ExecutionLogEntity
from core.domain.entities.market_entities import OrderRequest, OrderResult
from core.domain.entities.strategy_entity import DcaStrategyEntity
from core.domain.enums.dca_enums import ExecutionStatus, OrderSide, OrderType
from core.domain.exceptions import DcaEngineError, PassExecutionError
from core.gateways.exchange_gateway import ExchangeGateway
from core.repositories.execution_log_repository import ExecutionLogRepository
from core.repositories.strategy_repository import StrategyRepository

from ..services.client_order_id_service import ClientOrderIdService
from ..services.due_set_resolver import DueSetResolver
from ..services.price_oracle import PriceOracle
from ..services.quantity_sizer import QuantitySizer


class ExecutionPassSummary(BaseModel):
    started_at: datetime
    finished_at: Optional[datetime] = None
    due: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: bool = False
    reason: Optional[str] = None


class ExecuteDueStrategiesUseCase:
    """
    One execution pass over every due DCA strategy.

    Per strategy, IN ORDER:
      price -> market constraints -> size -> MARKET BUY -> mark_executed + SUCCESS log.
    Any failure along the way -> FAILED log, last_executed untouched, next strategy.

    Rules:
      - Exactly one log entry per due strategy per pass.
      - A failed strategy is due again on the next tick (last_executed did not move).
      - executed_at and last_executed are the pass time `now` for every strategy in the pass.
      - Cancellation (shutdown) still writes the entry for the strategy in flight, then propagates.
      - Only a failing due-set query aborts the pass (PassExecutionError).
      - Passes never overlap inside one process: a pass requested while another
        is running is skipped and reported.
    """

    def __init__(
        self,
        strategy_repo: StrategyRepository,
        log_repo: ExecutionLogRepository,
        gateway: ExchangeGateway,
        price_oracle: PriceOracle,
        sizer: Optional[QuantitySizer] = None,
        resolver: Optional[DueSetResolver] = None,
        order_ids: Optional[ClientOrderIdService] = None,
        clock: Optional[Callable[[], datetime]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._strategies = strategy_repo
        self._logs = log_repo
        self._gateway = gateway
        self._prices = price_oracle
        self._sizer = sizer or QuantitySizer()
        self._resolver = resolver or DueSetResolver(strategy_repo)
        self._order_ids = order_ids or ClientOrderIdService()
        self._clock = clock or utc_now
        self._logger = logger or logging.getLogger(self.__class__.__name__)
        self._pass_lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._pass_lock.locked()

    async def execute_once(self, now: Optional[datetime] = None) -> ExecutionPassSummary:
        if self._pass_lock.locked():
            self._logger.warning("Execution pass overlap: previous pass still running, skipping.")
            return ExecutionPassSummary(
                started_at=self._clock(),
                finished_at=self._clock(),
                skipped=True,
                reason="pass_overlap",
            )

        async with self._pass_lock:
            return await self._run_pass(now or self._clock())

    async def _run_pass(self, now: datetime) -> ExecutionPassSummary:
        summary = ExecutionPassSummary(started_at=now)

        try:
            strategies = await self._resolver.resolve(now)
        except Exception as exc:
            self._logger.exception("Failed to resolve due strategies: %s", exc)
            raise PassExecutionError(f"Failed to resolve due strategies: {exc}") from exc

        summary.due = len(strategies)
        if not strategies:
            self._logger.info("No strategies due for execution")
            summary.finished_at = self._clock()
            return summary

        self._logger.info("Found %s strategies due for execution", len(strategies))

        for strategy in strategies:
            ok = await self._process_strategy(strategy, now)
            if ok:
                summary.succeeded += 1
            else:
                summary.failed += 1

        summary.finished_at = self._clock()
        self._logger.info(
            "Execution pass done: due=%s succeeded=%s failed=%s",
            summary.due,
            summary.succeeded,
            summary.failed,
        )
        return summary

    async def _process_strategy(self, strategy: DcaStrategyEntity, attempt_at: datetime) -> bool:
        """
        Executes one strategy and writes its log entry.
        Returns True on SUCCESS, False on FAILED. Only re-raises cancellation,
        after the entry for this attempt is written.
        """
        self._logger.info(
            "Executing strategy %s (%s) %s %s",
            strategy.id,
            strategy.name,
            strategy.symbol,
            strategy.amount,
        )

        try:
            quote = await self._prices.get_price(strategy.symbol)
            constraints = await self._gateway.get_market_constraints(strategy.symbol)
            quantity = self._sizer.size(strategy.amount, quote.price, constraints)

            order = OrderRequest(
                symbol=strategy.symbol,
                side=OrderSide.BUY,
                type=OrderType.MARKET,
                quantity=quantity,
                client_order_id=self._order_ids.build_for_strategy(strategy, attempt_at),
            )
            result = await self._gateway.place_order(strategy.user_id, order)
        except DcaEngineError as exc:
            self._logger.warning(
                "Strategy %s (%s) failed: %s: %s",
                strategy.id,
                strategy.symbol,
                exc.__class__.__name__,
                exc,
            )
            await self._append_failure(strategy, str(exc), attempt_at)
            return False
        except Exception as exc:
            self._logger.exception("Unexpected error executing strategy %s: %s", strategy.id, exc)
            await self._append_failure(strategy, f"UNEXPECTED: {exc}", attempt_at)
            return False
        except asyncio.CancelledError:
            self._logger.warning(
                "Strategy %s cancelled before the order was confirmed", strategy.id
            )
            await self._append_failure(
                strategy, "CANCELLED: pass stopped before the order was confirmed", attempt_at
            )
            raise

        await self._record_success(strategy, quote.price, quantity, result, order, attempt_at)
        return True

    async def _record_success(
        self,
        strategy: DcaStrategyEntity,
        price: float,
        quantity: Decimal,
        result: OrderResult,
        order: OrderRequest,
        executed_at: datetime,
    ) -> None:
        error: Optional[str] = None
        cancelled = False
        try:
            await self._strategies.mark_executed(strategy.id, executed_at)
        except asyncio.CancelledError:
            self._logger.warning(
                "Order %s placed but mark_executed was cancelled for strategy %s",
                result.order_id,
                strategy.id,
            )
            error = "mark_executed cancelled"
            cancelled = True
        except Exception as exc:
            # The order exists on the exchange; the audit entry must still say so.
            self._logger.exception(
                "Order %s placed but mark_executed failed for strategy %s: %s",
                result.order_id,
                strategy.id,
                exc,
            )
            error = f"mark_executed failed: {exc}"

        await self._append(
            ExecutionLogEntity(
                strategy_id=strategy.id,
                user_id=strategy.user_id,
                symbol=strategy.symbol,
                amount=strategy.amount,
                price=price,
                quantity=float(quantity),
                order_id=str(result.order_id),
                client_order_id=result.client_order_id or order.client_order_id,
                order_status=result.status,
                status=ExecutionStatus.SUCCESS,
                error=error,
                executed_at=executed_at,
            )
        )
        self._logger.info(
            "Strategy %s executed: order=%s qty=%s price=%s",
            strategy.id,
            result.order_id,
            quantity,
            price,
        )
        if cancelled:
            raise asyncio.CancelledError()

    async def _append_failure(
        self, strategy: DcaStrategyEntity, error: str, executed_at: datetime
    ) -> None:
        await self._append(
            ExecutionLogEntity(
                strategy_id=strategy.id,
                user_id=strategy.user_id,
                symbol=strategy.symbol,
                amount=strategy.amount,
                price=0.0,
                quantity=0.0,
                order_id="0",
                status=ExecutionStatus.FAILED,
                error=error,
                executed_at=executed_at,
            )
        )

    async def _append(self, entry: ExecutionLogEntity) -> None:
        try:
            await self._logs.append(entry)
        except Exception as exc:
            self._logger.exception(
                "Failed to append execution log for strategy %s (%s): %s",
                entry.strategy_id,
                entry.status,
                exc,
            )
