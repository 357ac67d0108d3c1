"""Tests for the keep-alive heartbeat."""

from __future__ import annotations

import asyncio

import pytest

from nexuslauncher.domain.models import StatusEvent
from nexuslauncher.relay.heartbeat import Heartbeat
from nexuslauncher.relay.state import ServerContext


class FakeClock:
    """Virtual time advanced only by the heartbeat's sleeps."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def timestamp(self) -> str:
        return f"t={self.now:g}"


class TestHeartbeat:
    @pytest.mark.asyncio
    async def test_beats_at_zero_then_every_interval_until_disconnect(self) -> None:
        clock = FakeClock()
        heartbeat = Heartbeat(ServerContext(), interval=30.0, sleep=clock.sleep, now=clock.timestamp)

        async def is_disconnected() -> bool:
            return clock.now >= 90

        events = [event async for event in heartbeat.events(is_disconnected)]

        assert [e.timestamp for e in events] == ["t=0", "t=30", "t=60"]
        assert all(e.type == "keep-alive" for e in events)
        # No timer is armed once the disconnect is seen
        assert clock.sleeps == [30.0, 30.0, 30.0]

    @pytest.mark.asyncio
    async def test_disconnected_before_start_emits_nothing(self) -> None:
        clock = FakeClock()
        heartbeat = Heartbeat(ServerContext(), sleep=clock.sleep, now=clock.timestamp)

        async def is_disconnected() -> bool:
            return True

        assert [event async for event in heartbeat.events(is_disconnected)] == []
        assert clock.sleeps == []

    @pytest.mark.asyncio
    async def test_republishes_latest_status(self) -> None:
        clock = FakeClock()
        context = ServerContext(initial_status="idle")
        heartbeat = Heartbeat(context, sleep=clock.sleep, now=clock.timestamp)

        async def is_disconnected() -> bool:
            return False

        stream = heartbeat.events(is_disconnected)
        first = await stream.__anext__()
        context.publish(StatusEvent(message="Installing Nexus CLI..."))
        second = await stream.__anext__()
        await stream.aclose()

        assert first.message == "idle"
        assert second.message == "Installing Nexus CLI..."

    @pytest.mark.asyncio
    async def test_close_cancels_pending_sleep(self) -> None:
        heartbeat = Heartbeat(ServerContext(), interval=3600.0)

        async def is_disconnected() -> bool:
            return False

        stream = heartbeat.events(is_disconnected)
        await stream.__anext__()
        pending = asyncio.ensure_future(stream.__anext__())
        await asyncio.sleep(0)
        pending.cancel()
        with pytest.raises(asyncio.CancelledError):
            await pending
        # The generator is finished; nothing is left waiting on the hour-long timer
        with pytest.raises(StopAsyncIteration):
            await stream.__anext__()

    def test_rejects_non_positive_interval(self) -> None:
        with pytest.raises(ValueError):
            Heartbeat(ServerContext(), interval=0)
