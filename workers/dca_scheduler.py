import asyncio
import contextlib
import logging
from typing import Optional, Set

from core.domain.exceptions import PassExecutionError
from core.usecases.execute_due_strategies_use_case import ExecuteDueStrategiesUseCase


class DcaScheduler:
    """
    Fires one execution pass every `interval_sec` of wall-clock time.

    Each tick runs the pass in its own task, so a slow pass does not delay the cadence.
    Overlap is handled by the use case (it skips and reports a second concurrent pass).
    Pass errors are logged here and never stop the loop.
    """

    def __init__(
        self,
        use_case: ExecuteDueStrategiesUseCase,
        interval_sec: float = 60.0,
        shutdown_grace_sec: float = 10.0,
        logger: Optional[logging.Logger] = None,
    ):
        if interval_sec <= 0:
            raise ValueError("interval_sec must be > 0")
        self._uc = use_case
        self._interval = float(interval_sec)
        self._grace = max(0.0, float(shutdown_grace_sec))
        self._logger = logger or logging.getLogger(self.__class__.__name__)
        self._loop_task: Optional[asyncio.Task] = None
        self._pass_tasks: Set[asyncio.Task] = set()
        self._ticks = 0

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    @property
    def ticks(self) -> int:
        return self._ticks

    def start(self) -> None:
        if self.running:
            return
        self._loop_task = asyncio.create_task(self._loop(), name="dca-scheduler")
        self._logger.info("DCA scheduler started (every %ss)", self._interval)

    async def stop(self) -> None:
        """
        Stop ticking, give in-flight passes up to `shutdown_grace_sec` to finish,
        then cancel what is left. A cancelled pass still logs its current strategy.
        """
        if self._loop_task:
            self._loop_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._loop_task
            self._loop_task = None

        pending = set(self._pass_tasks)
        if pending and self._grace > 0:
            self._logger.info("Waiting up to %ss for %s running pass(es)", self._grace, len(pending))
            _, pending = await asyncio.wait(pending, timeout=self._grace)

        for task in pending:
            task.cancel()
        for task in pending:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._pass_tasks.clear()
        self._logger.info("DCA scheduler stopped")

    async def _loop(self) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time()
        while True:
            self._tick()
            # Schedule against the fixed grid so the cadence does not drift.
            next_tick += self._interval
            delay = next_tick - loop.time()
            if delay < 0:
                missed = int(-delay // self._interval) + 1
                next_tick += missed * self._interval
                delay = next_tick - loop.time()
            await asyncio.sleep(delay)

    def _tick(self) -> None:
        self._ticks += 1
        task = asyncio.create_task(self.run_pass(), name=f"dca-pass-{self._ticks}")
        self._pass_tasks.add(task)
        task.add_done_callback(self._pass_tasks.discard)

    async def run_pass(self) -> None:
        self._logger.info("Running DCA execution pass...")
        try:
            summary = await self._uc.execute_once()
        except PassExecutionError as exc:
            self._logger.error("DCA execution pass aborted: %s", exc)
            return
        except Exception as exc:  # noqa: BLE001
            self._logger.exception("DCA execution pass crashed: %s", exc)
            return

        if summary.skipped:
            self._logger.warning("DCA execution pass skipped: %s", summary.reason)
        else:
            self._logger.info(
                "DCA execution pass completed: due=%s succeeded=%s failed=%s",
                summary.due,
                summary.succeeded,
                summary.failed,
            )
