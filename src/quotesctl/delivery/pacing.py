"""Fixed-interval pacer racing a timer against a cancellation event."""

from __future__ import annotations

import asyncio
import logging

from quotesctl.constants import PaceEvent

logger = logging.getLogger(__name__)


def interval_for_rate(rate: float) -> float:
    """Seconds between messages; zero or negative rates mean no pacing."""
    if rate <= 0:
        return 0.0
    return 1.0 / rate


class Pacer:
    """
    Yields TICK once per interval until the cancel event is set.

    The first tick fires immediately. Later deadlines are anchored to the
    start time so sleeps do not drift; if the caller falls behind, missed
    ticks are dropped rather than burst. A rate of zero or less fires
    immediately on every call. Cancellation wins when both events are ready.
    """

    def __init__(self, rate: float, cancel: asyncio.Event | None = None):
        self.rate = rate
        self.interval = interval_for_rate(rate)
        self.cancel = cancel or asyncio.Event()
        self._deadline: float | None = None

    def start(self) -> None:
        self._deadline = asyncio.get_running_loop().time() - self.interval

    async def next_event(self) -> PaceEvent:
        if self.cancel.is_set():
            return PaceEvent.CANCEL

        loop = asyncio.get_running_loop()
        if self._deadline is None:
            self._deadline = loop.time() - self.interval
        self._deadline += self.interval
        now = loop.time()
        if self._deadline < now:
            self._deadline = now
        delay = self._deadline - now

        cancel_wait = asyncio.ensure_future(self.cancel.wait())
        timer = asyncio.ensure_future(asyncio.sleep(delay))
        try:
            await asyncio.wait({cancel_wait, timer}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            pending = [task for task in (cancel_wait, timer) if not task.done()]
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        if self.cancel.is_set():
            return PaceEvent.CANCEL
        return PaceEvent.TICK
