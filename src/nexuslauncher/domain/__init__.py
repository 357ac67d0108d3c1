"""Domain models for nexuslauncher.

Progress events streamed to clients and the value objects describing
command and process outcomes. All models use Pydantic v2 for validation
and serialization.
"""

from nexuslauncher.domain.models import (
    CommandResult,
    CompleteEvent,
    ErrorEvent,
    ExitStatus,
    KeepAliveEvent,
    ProbeOutcome,
    ProgressEvent,
    StatusEvent,
    TerminalEvent,
)

__all__ = [
    "CommandResult",
    "CompleteEvent",
    "ErrorEvent",
    "ExitStatus",
    "KeepAliveEvent",
    "ProbeOutcome",
    "ProgressEvent",
    "StatusEvent",
    "TerminalEvent",
]
