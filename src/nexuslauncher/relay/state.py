"""Per-server state shared between the run stream and the liveness routes."""

from __future__ import annotations

import threading
import time

from nexuslauncher.domain.models import ProgressEvent, TerminalEvent, event_text, utc_timestamp
from nexuslauncher.relay.buffer import DEFAULT_TRUNCATE_AT, truncate

DEFAULT_STATUS = "Nexus Network CLI Setup Server is running..."


class ServerContext:
    """Last known status of the most recent run, plus server uptime.

    One instance lives on the application and is handed to every route.
    Only the latest run's status is kept; a new run simply overwrites it.
    """

    def __init__(
        self,
        initial_status: str = DEFAULT_STATUS,
        truncate_at: int = DEFAULT_TRUNCATE_AT,
    ) -> None:
        self._lock = threading.Lock()
        self._last_output = initial_status
        self._truncate_at = truncate_at
        self._started = time.monotonic()

    @property
    def last_output(self) -> str:
        with self._lock:
            return self._last_output

    @property
    def truncate_at(self) -> int:
        return self._truncate_at

    def publish(self, event: ProgressEvent) -> ProgressEvent:
        """Truncate ``event`` for transmission and record it as the last status."""
        if isinstance(event, TerminalEvent):
            output = truncate(event.output, self._truncate_at)
            if output != event.output:
                event = event.model_copy(update={"output": output})
        else:
            message = truncate(event.message, self._truncate_at)
            if message != event.message:
                event = event.model_copy(update={"message": message})
        with self._lock:
            self._last_output = event_text(event)
        return event

    def uptime(self) -> float:
        """Seconds since the context was created."""
        return time.monotonic() - self._started

    def snapshot(self) -> dict[str, object]:
        return {
            "status": "ok",
            "message": self.last_output,
            "timestamp": utc_timestamp(),
            "uptime": self.uptime(),
        }
