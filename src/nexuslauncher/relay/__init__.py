"""SSE relay: turns progress events into event-stream frames.

Also holds the per-server status context and the keep-alive heartbeat
used by the liveness routes.
"""

from nexuslauncher.relay.buffer import OutputBuffer, truncate
from nexuslauncher.relay.heartbeat import Heartbeat
from nexuslauncher.relay.sse import event_stream, format_event, sse_response
from nexuslauncher.relay.state import ServerContext

__all__ = [
    "Heartbeat",
    "OutputBuffer",
    "ServerContext",
    "event_stream",
    "format_event",
    "sse_response",
    "truncate",
]
