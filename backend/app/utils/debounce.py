# app/utils/debounce.py
import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class Debouncer:
    """Runs ``callback`` with the latest value once ``delay`` seconds pass without a new trigger."""

    def __init__(self, delay: float, callback: Callable[[Any], Awaitable[None]]):
        self.delay = delay
        self._callback = callback
        self._task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def trigger(self, value: Any):
        self.cancel()
        self._task = asyncio.create_task(self._fire(value))
        self._task.add_done_callback(self._report)

    def cancel(self):
        if self.pending:
            self._task.cancel()

    async def _fire(self, value: Any):
        await asyncio.sleep(self.delay)
        await self._callback(value)

    @staticmethod
    def _report(task: asyncio.Task):
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"❌ Debounced callback failed: {error}")
