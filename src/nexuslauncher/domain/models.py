"""Core domain models for nexuslauncher.

Progress events are what a run reports to the browser: status lines,
raw terminal output, and exactly one terminal event (``complete`` or
``error``) at the end. The remaining models describe the outcome of the
short commands and launched processes a run drives.
"""

from __future__ import annotations

import signal as signal_module
from datetime import datetime, timezone
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# ---------------------------------------------------------------------------
# Progress events (discriminated union)
# ---------------------------------------------------------------------------


class StatusEvent(BaseModel):
    """A human-readable progress line."""

    model_config = ConfigDict(frozen=True)

    type: Literal["status"] = "status"
    message: str


class TerminalEvent(BaseModel):
    """A raw chunk of subprocess output, as delivered by one read."""

    model_config = ConfigDict(frozen=True)

    type: Literal["terminal"] = "terminal"
    output: str
    timestamp: str = Field(default_factory=utc_timestamp)


class CompleteEvent(BaseModel):
    """The run finished successfully. Always the last event of a run."""

    model_config = ConfigDict(frozen=True)

    type: Literal["complete"] = "complete"
    message: str


class ErrorEvent(BaseModel):
    """The run failed. Always the last event of a run."""

    model_config = ConfigDict(frozen=True)

    type: Literal["error"] = "error"
    message: str


class KeepAliveEvent(BaseModel):
    """Heartbeat republishing the last known status."""

    model_config = ConfigDict(frozen=True)

    type: Literal["keep-alive"] = "keep-alive"
    message: str
    timestamp: str = Field(default_factory=utc_timestamp)


ProgressEvent = Annotated[
    Union[StatusEvent, TerminalEvent, CompleteEvent, ErrorEvent, KeepAliveEvent],
    Field(discriminator="type"),
]

progress_event_adapter: TypeAdapter[ProgressEvent] = TypeAdapter(ProgressEvent)

FINAL_EVENT_TYPES = frozenset({"complete", "error"})


def event_text(event: ProgressEvent) -> str:
    """The text an event carries: ``output`` for terminal chunks, else ``message``."""
    if isinstance(event, TerminalEvent):
        return event.output
    return event.message


def is_final(event: ProgressEvent) -> bool:
    return event.type in FINAL_EVENT_TYPES


# ---------------------------------------------------------------------------
# Process outcomes
# ---------------------------------------------------------------------------


class CommandResult(BaseModel):
    """Captured result of a short, non-interactive command."""

    model_config = ConfigDict(frozen=True)

    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class ExitStatus(BaseModel):
    """How a launched process ended.

    ``signal`` is set when the process was killed by a signal, in which
    case ``exit_code`` is None.
    """

    model_config = ConfigDict(frozen=True)

    exit_code: int | None = None
    signal: int | None = None

    @classmethod
    def from_returncode(cls, returncode: int) -> ExitStatus:
        """Build from an asyncio/subprocess returncode (negative means signal)."""
        if returncode < 0:
            return cls(signal=-returncode)
        return cls(exit_code=returncode)

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0 and self.signal is None

    @property
    def signal_name(self) -> str | None:
        if self.signal is None:
            return None
        try:
            return signal_module.Signals(self.signal).name
        except ValueError:
            return f"signal {self.signal}"

    def describe(self) -> str:
        """E.g. ``code 1`` or ``code None, signal SIGTERM (15)``."""
        text = f"code {self.exit_code}"
        if self.signal is not None:
            text += f", signal {self.signal_name} ({self.signal})"
        return text


class ProbeOutcome(BaseModel):
    """Whether the target CLI is already installed."""

    model_config = ConfigDict(frozen=True)

    installed: bool
    version: str = ""
