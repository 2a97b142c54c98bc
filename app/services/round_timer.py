# app/services/round_timer.py
import asyncio
import logging
from typing import Awaitable, Callable, Optional

from app.core.config import settings

logger = logging.getLogger("app.services.round_timer")  # Logger for this module


class RoundTimer:
    """
    Countdown for one round. `tick()` is the only place time_left is decremented.

    `start()` drives the ticks from an asyncio task: every `tick_seconds` it awaits
    `on_tick`, which is expected to call `tick()` (through the session controller).
    The task ends on its own once time_left reaches 0.
    """

    def __init__(self, duration_seconds: int | None = None, tick_seconds: float | None = None, label: str = ""):
        self.duration_seconds = duration_seconds if duration_seconds is not None else settings.ROUND_DURATION_SECONDS
        self.tick_seconds = tick_seconds if tick_seconds is not None else settings.TIMER_TICK_SECONDS
        self.label = label
        self.time_left = self.duration_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def reset(self) -> int:
        self.cancel()
        self.time_left = self.duration_seconds
        return self.time_left

    def tick(self) -> bool:
        """Decrements by exactly one second. Returns True on the tick that reaches zero."""
        if self.time_left <= 0:
            return False
        self.time_left -= 1
        return self.time_left == 0

    def start(self, on_tick: Callable[[], Awaitable[None]]) -> asyncio.Task:
        if self.running:
            logger.warning(f"Timer {self.label} restarted while still running. Cancelling old task.")
            self.cancel()
        logger.info(f"Timer {self.label} started: {self.time_left}s")
        self._task = asyncio.create_task(self._run(on_tick))
        return self._task

    async def _run(self, on_tick: Callable[[], Awaitable[None]]):
        try:
            while self.time_left > 0:
                await asyncio.sleep(self.tick_seconds)
                await on_tick()
        except asyncio.CancelledError:
            logger.debug(f"Timer {self.label} cancelled with {self.time_left}s left")
            raise
        except Exception as e:
            logger.exception(f"Timer {self.label} tick handler failed: {e}")

    def cancel(self):
        task, self._task = self._task, None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
