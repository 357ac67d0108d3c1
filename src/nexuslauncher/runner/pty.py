"""Pseudo-terminal launcher for the node process.

``nexus-network start`` reads from the terminal and formats its output
for a TTY, so it is started with a pty slave as stdin/stdout/stderr and
controlling terminal. Output is read from the master side.
"""

from __future__ import annotations

import asyncio
import errno
import fcntl
import logging
import os
import pty
import struct
import subprocess
import termios
from collections.abc import AsyncIterator, Mapping, Sequence

from nexuslauncher.domain.models import ExitStatus
from nexuslauncher.runner.base import (
    DEFAULT_READ_SIZE,
    LaunchedProcess,
    ProcessError,
    ProcessLauncher,
)
from nexuslauncher.runner.process import build_env

logger = logging.getLogger(__name__)


def _acquire_controlling_tty() -> None:
    # Runs in the child after setsid(); stdin is already the pty slave
    try:
        fcntl.ioctl(0, termios.TIOCSCTTY, 0)
    except OSError:
        pass  # still a tty on stdio, just without job control


class PtyProcess(LaunchedProcess):
    """A child attached to a pseudo-terminal."""

    def __init__(
        self,
        process: asyncio.subprocess.Process,
        master_fd: int,
        read_size: int = DEFAULT_READ_SIZE,
    ) -> None:
        self._process = process
        self._master_fd: int | None = master_fd
        self._read_size = read_size

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def returncode(self) -> int | None:
        return self._process.returncode

    @property
    def closed(self) -> bool:
        """True once the pty master has been released."""
        return self._master_fd is None

    async def chunks(self) -> AsyncIterator[bytes]:
        """Stream master-side output until EOF or the child exits.

        Linux reports EOF on a pty master as EIO once every slave
        descriptor is closed. A child that leaves a background process
        holding the terminal never produces that, so the stream also ends
        when the child itself exits (after draining what is buffered).
        """
        fd = self._master_fd
        if fd is None:
            return
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue[bytes | None] = asyncio.Queue()

        def on_readable() -> None:
            data = self._read_master(fd)
            if data:
                queue.put_nowait(data)
            elif data is None:
                loop.remove_reader(fd)
                queue.put_nowait(None)

        def on_exit(_: asyncio.Future) -> None:
            loop.remove_reader(fd)
            while True:
                data = self._read_master(fd)
                if not data:
                    break
                queue.put_nowait(data)
            queue.put_nowait(None)

        waiter = asyncio.ensure_future(self._process.wait())
        loop.add_reader(fd, on_readable)
        waiter.add_done_callback(on_exit)
        try:
            while True:
                data = await queue.get()
                if data is None:
                    break
                yield data
        finally:
            loop.remove_reader(fd)
            waiter.remove_done_callback(on_exit)
            if not waiter.done():
                waiter.cancel()

    def _read_master(self, fd: int) -> bytes | None:
        """One non-blocking read: data, ``b""`` if nothing is ready, None on EOF."""
        try:
            data = os.read(fd, self._read_size)
        except BlockingIOError:
            return b""
        except OSError as e:
            if e.errno != errno.EIO:
                logger.debug("pty read error: %s", e)
            return None
        return data or None

    async def wait(self) -> ExitStatus:
        return ExitStatus.from_returncode(await self._process.wait())

    async def close(self) -> None:
        if self._master_fd is not None:
            try:
                os.close(self._master_fd)
            except OSError:
                pass
            self._master_fd = None


class PtyLauncher(ProcessLauncher):
    """Starts processes on a fresh pty of a fixed size."""

    def __init__(
        self,
        rows: int = 30,
        cols: int = 80,
        term: str = "xterm-256color",
        read_size: int = DEFAULT_READ_SIZE,
    ) -> None:
        self._rows = rows
        self._cols = cols
        self._term = term
        self._read_size = read_size

    @property
    def rows(self) -> int:
        return self._rows

    @property
    def cols(self) -> int:
        return self._cols

    async def spawn(
        self,
        argv: Sequence[str],
        env: Mapping[str, str] | None = None,
        stdin_data: str | None = None,
    ) -> PtyProcess:
        master_fd, slave_fd = pty.openpty()

        # Set terminal size
        winsize = struct.pack("HHHH", self._rows, self._cols, 0, 0)
        fcntl.ioctl(slave_fd, termios.TIOCSWINSZ, winsize)

        child_env = build_env(
            env,
            TERM=self._term,
            COLUMNS=str(self._cols),
            LINES=str(self._rows),
        )

        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=slave_fd,
                stdout=slave_fd,
                stderr=slave_fd,
                env=child_env,
                start_new_session=True,
                preexec_fn=_acquire_controlling_tty,
            )
        except (OSError, subprocess.SubprocessError) as e:
            os.close(master_fd)
            raise ProcessError(f"Failed to start {argv[0]}: {e}", argv) from e
        finally:
            os.close(slave_fd)

        # Make master_fd non-blocking
        flags = fcntl.fcntl(master_fd, fcntl.F_GETFL)
        fcntl.fcntl(master_fd, fcntl.F_SETFL, flags | os.O_NONBLOCK)

        if stdin_data is not None:
            os.write(master_fd, stdin_data.encode())

        logger.info(
            "Started %s on pty (pid=%d, %dx%d)",
            argv[0], process.pid, self._cols, self._rows,
        )
        return PtyProcess(process, master_fd, read_size=self._read_size)
