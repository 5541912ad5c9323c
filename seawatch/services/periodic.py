"""Cancellable background loops for simulations and scans."""

import asyncio
from collections.abc import Awaitable, Callable

from seawatch.core.logging import logger

Tick = Callable[[], Awaitable[object]]


class PeriodicTask:
    """Run ``tick`` every ``interval`` seconds until stopped.

    ``start`` is idempotent; ``stop`` cancels the loop and waits for it.
    Exceptions raised by a tick are logged and the loop keeps running.
    """

    def __init__(self, name: str, tick: Tick, interval: float) -> None:
        self.name = name
        self.interval = interval
        self._tick = tick
        self._task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> bool:
        """Schedule the loop on the running event loop.

        Returns:
            False if the loop was already running
        """
        if self.is_running:
            return False
        self._task = asyncio.create_task(self._run(), name=self.name)
        logger.bind(task=self.name, interval=self.interval).info("Periodic task started")
        return True

    async def stop(self) -> None:
        if self._task is None:
            return
        task, self._task = self._task, None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.bind(task=self.name).info("Periodic task stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self._tick()
            except Exception:  # noqa: BLE001 - keep the loop alive
                logger.bind(task=self.name).exception("Periodic task tick failed")
