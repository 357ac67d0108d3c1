"""Keep-alive stream for clients that only want liveness, not the transcript."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable

from nexuslauncher.domain.models import KeepAliveEvent, utc_timestamp
from nexuslauncher.relay.state import ServerContext

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 30.0


class Heartbeat:
    """Periodically republishes the context's last known status.

    ``sleep`` and ``now`` are injectable so the cadence can be driven by
    a fake clock.
    """

    def __init__(
        self,
        context: ServerContext,
        interval: float = DEFAULT_INTERVAL,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        now: Callable[[], str] = utc_timestamp,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._context = context
        self._interval = interval
        self._sleep = sleep
        self._now = now

    @property
    def interval(self) -> float:
        return self._interval

    def beat(self) -> KeepAliveEvent:
        return KeepAliveEvent(message=self._context.last_output, timestamp=self._now())

    async def events(
        self, is_disconnected: Callable[[], Awaitable[bool]]
    ) -> AsyncIterator[KeepAliveEvent]:
        """One beat immediately, then one per interval until disconnect.

        Closing the generator while it waits cancels the pending sleep.
        """
        beats = 0
        try:
            while not await is_disconnected():
                yield self.beat()
                beats += 1
                await self._sleep(self._interval)
        finally:
            logger.debug("Keep-alive stream stopped after %d beats", beats)
