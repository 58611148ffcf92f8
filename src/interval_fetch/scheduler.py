"""Tick loop.

The Scheduler runs one action per tick until the shutdown token fires. Actions
are awaited to completion before the next tick is considered, so they never
overlap. Shutdown is checked before every tick and wins when both are ready.
"""

import asyncio
import enum
import time
from typing import Awaitable, Callable, Optional

from .duration import format_duration
from .log import get_logger
from .output import OutputWriter
from .shutdown import ShutdownSignal

logger = get_logger("scheduler")


class Ticker:
    """
    Fires on a fixed grid: start + interval, start + 2*interval, ...

    If the caller falls behind, the next wait() returns at once (a single
    buffered tick) and the grid resumes; missed ticks are dropped.
    """

    def __init__(self, interval: float, clock: Callable[[], float] = time.monotonic):
        if interval <= 0:
            raise ValueError("non-positive interval for Ticker")
        self.interval = interval
        self._clock = clock
        self._next = clock() + interval
        self._stopped = False

    @property
    def stopped(self) -> bool:
        return self._stopped

    async def wait(self) -> float:
        if self._stopped:
            raise RuntimeError("ticker has been stopped")

        delay = self._next - self._clock()
        if delay > 0:
            await asyncio.sleep(delay)

        now = self._clock()
        self._next += self.interval
        if self._next <= now:
            missed = int((now - self._next) // self.interval) + 1
            logger.debug(f"Dropped {missed} tick(s)")
            self._next += missed * self.interval
        return now

    def stop(self):
        self._stopped = True


class State(enum.Enum):
    RUNNING = "running"
    STOPPED = "stopped"


class Scheduler:
    def __init__(
        self,
        interval: float,
        action: Callable[[], Awaitable[object]],
        shutdown: ShutdownSignal,
        output: Optional[OutputWriter] = None,
    ):
        self.interval = interval
        self.action = action
        self.shutdown = shutdown
        self.output = output or OutputWriter()
        self.state: Optional[State] = None
        self.ticks = 0

    async def run(self):
        """Runs until shutdown, then prints the shutdown notice."""
        if self.state is not None:
            raise RuntimeError(f"scheduler already {self.state.value}")

        self.state = State.RUNNING
        ticker = Ticker(self.interval)
        stop = asyncio.ensure_future(self.shutdown.wait())
        tick: Optional[asyncio.Future] = None
        logger.info(f"Fetch loop running every {format_duration(self.interval)}")

        try:
            while not self.shutdown.is_set:
                tick = asyncio.ensure_future(ticker.wait())
                await asyncio.wait({tick, stop}, return_when=asyncio.FIRST_COMPLETED)
                if self.shutdown.is_set:
                    break

                self.ticks += 1
                logger.debug(f"Tick {self.ticks}")
                await self.action()
        finally:
            if tick is not None and not tick.done():
                tick.cancel()
            stop.cancel()
            ticker.stop()
            self.state = State.STOPPED

        self.output.stopped()
