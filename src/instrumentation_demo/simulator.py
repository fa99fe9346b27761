"""Background generator for the simulated business metrics.

::

    start()
       │
       ▼
    asyncio task:
       while not stop_event set within interval:
           tick()   # sessions, orders, stage errors

    stop()
       │
       ▼
    stop_event.set()
    await task          # no writer left once stop() returns

Each tick:

- ``sessions_active`` is set to a uniform integer in ``[0, 100)``
- ``orders_total`` grows by a uniform integer in ``[0, 5)``
- every ``stage_errors_total{stage}`` grows by ``randrange(100) // 97``,
  i.e. by one with a 3% chance
"""

from __future__ import annotations

import asyncio
import random

from instrumentation_demo.core.logging import get_logger
from instrumentation_demo.observability.service_metrics import ServiceMetrics

logger = get_logger(__name__)


class BusinessSimulator:
    """Periodically perturbs the simulated business metrics.

    Example:
        >>> simulator = BusinessSimulator(metrics, interval_seconds=1.0)
        >>> simulator.start()
        >>> # ... later, inside the same event loop ...
        >>> await simulator.stop()
    """

    def __init__(
        self,
        metrics: ServiceMetrics,
        interval_seconds: float = 1.0,
        rng: random.Random | None = None,
    ) -> None:
        self._metrics = metrics
        self._interval = interval_seconds
        self._rng = rng or random.Random()
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task[None] | None = None
        self._tick_count = 0

    def tick(self) -> None:
        """Apply one round of random changes."""
        rng = self._rng
        self._metrics.sessions_active.set(rng.randrange(100))
        self._metrics.orders.add(rng.randrange(5))
        for stage in self._metrics.stages:
            self._metrics.stage_errors.with_labels(stage).add(rng.randrange(100) // 97)
        self._tick_count += 1

    async def _stopped_within(self, timeout: float) -> bool:
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        return True

    async def _run(self) -> None:
        logger.info("simulator_started", interval_seconds=self._interval)
        while not await self._stopped_within(self._interval):
            self.tick()
        logger.info("simulator_stopped", ticks=self._tick_count)

    def start(self) -> None:
        """Launch the simulator task on the running event loop."""
        if self.is_running:
            logger.warning("simulator_already_running")
            return
        self._stop_event.clear()
        self._task = asyncio.get_running_loop().create_task(
            self._run(), name="business-simulator"
        )

    async def stop(self) -> None:
        """Signal the task to stop and wait until it has exited."""
        if self._task is None:
            return
        self._stop_event.set()
        try:
            await self._task
        finally:
            self._task = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def tick_count(self) -> int:
        return self._tick_count
