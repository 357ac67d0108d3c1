"""Abstract interface for launching and observing external processes.

The orchestrator only talks to these two classes, so a launch can run
under a pseudo-terminal or over plain pipes (and tests can substitute
scripted fakes) without changing any step code.
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Mapping, Sequence

from nexuslauncher.domain.models import ExitStatus

logger = logging.getLogger(__name__)

DEFAULT_READ_SIZE = 4096
DEFAULT_TERMINATE_GRACE = 3.0


class LaunchedProcess(ABC):
    """A running child process whose output can be streamed.

    Example usage::

        process = await launcher.spawn(["nexus-network", "start", "--node-id", "42"])
        try:
            async for chunk in process.chunks():
                handle(chunk)
            status = await process.wait()
        finally:
            await process.close()
    """

    @property
    @abstractmethod
    def pid(self) -> int:
        ...

    @property
    @abstractmethod
    def returncode(self) -> int | None:
        """None while the process is still running."""
        ...

    @abstractmethod
    def chunks(self) -> AsyncIterator[bytes]:
        """Raw output as delivered by each OS read, until end of stream."""
        ...

    @abstractmethod
    async def wait(self) -> ExitStatus:
        ...

    async def terminate(self, grace: float = DEFAULT_TERMINATE_GRACE) -> None:
        """Stop the process and everything in its process group.

        Sends SIGTERM to the group, then SIGKILL if it has not exited
        after ``grace`` seconds. Safe to call on an exited process.
        """
        if self.returncode is not None:
            return
        _signal_group(self.pid, signal.SIGTERM)
        try:
            await asyncio.wait_for(self.wait(), timeout=grace)
        except asyncio.TimeoutError:
            logger.warning("Process %d ignored SIGTERM, killing", self.pid)
            _signal_group(self.pid, signal.SIGKILL)
            await self.wait()
        logger.info("Terminated process group %d", self.pid)

    async def close(self) -> None:
        """Release any descriptors held for the process."""


class ProcessLauncher(ABC):
    """Starts processes and hands back :class:`LaunchedProcess` handles."""

    @abstractmethod
    async def spawn(
        self,
        argv: Sequence[str],
        env: Mapping[str, str] | None = None,
        stdin_data: str | None = None,
    ) -> LaunchedProcess:
        """Start ``argv`` in its own session.

        Raises:
            ProcessError: If the process cannot be started.
        """
        ...


class ProcessError(Exception):
    """Raised when a process cannot be started."""

    def __init__(self, message: str, argv: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.argv = list(argv)


def _signal_group(pid: int, sig: signal.Signals) -> None:
    # Children run in their own session, so pid doubles as the group id
    try:
        os.killpg(pid, sig)
    except ProcessLookupError:
        pass
    except PermissionError:
        os.kill(pid, sig)
