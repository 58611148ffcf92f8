"""Fire-once shutdown token.

A ShutdownSignal is created once per process and handed to everything that can
block. Once triggered it stays triggered. capture() ties it to OS signals for
the duration of a `with` block.
"""

import asyncio
import signal
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional

from .log import get_logger

logger = get_logger("shutdown")

DEFAULT_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class ShutdownSignal:
    def __init__(self):
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    @property
    def is_set(self) -> bool:
        return self._event.is_set()

    def trigger(self, reason: str = "requested"):
        """Requests shutdown. Later calls are no-ops."""
        if self._event.is_set():
            return
        self.reason = reason
        logger.info(f"Shutdown {reason}")
        self._event.set()

    async def wait(self):
        await self._event.wait()

    @contextmanager
    def capture(self, *signals: signal.Signals) -> Iterator["ShutdownSignal"]:
        """
        Triggers this token when any of `signals` (default SIGINT, SIGTERM)
        arrives while the block runs. Handlers are removed on exit.
        Must be entered from a running event loop.
        """
        loop = asyncio.get_running_loop()
        wanted = [signal.Signals(s) for s in (signals or DEFAULT_SIGNALS)]

        installed: List[signal.Signals] = []
        previous: Dict[signal.Signals, object] = {}

        for sig in wanted:
            try:
                loop.add_signal_handler(sig, self.trigger, f"on {sig.name}")
                installed.append(sig)
            except NotImplementedError:
                # Event loops without add_signal_handler (e.g. Windows)
                previous[sig] = signal.signal(sig, self._threadsafe_handler(loop))

        logger.debug(f"Capturing {', '.join(s.name for s in wanted)}")
        try:
            yield self
        finally:
            for sig in installed:
                loop.remove_signal_handler(sig)
            for sig, handler in previous.items():
                signal.signal(sig, handler)
            logger.debug("Released signal handlers")

    def _threadsafe_handler(self, loop: asyncio.AbstractEventLoop):
        def handler(signum, frame):
            loop.call_soon_threadsafe(self.trigger, f"on {signal.Signals(signum).name}")
        return handler
