"""Plain-pipe processes: the install pipeline and short probe commands."""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import AsyncIterator, Mapping, Sequence

from nexuslauncher.domain.models import CommandResult, ExitStatus
from nexuslauncher.runner.base import (
    DEFAULT_READ_SIZE,
    LaunchedProcess,
    ProcessError,
    ProcessLauncher,
)

logger = logging.getLogger(__name__)

EXIT_NOT_FOUND = 127
EXIT_NOT_EXECUTABLE = 126
EXIT_TIMED_OUT = 124


class PipeProcess(LaunchedProcess):
    """A child whose stdout and stderr share one pipe."""

    def __init__(
        self,
        process: asyncio.subprocess.Process,
        read_size: int = DEFAULT_READ_SIZE,
    ) -> None:
        self._process = process
        self._read_size = read_size

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def returncode(self) -> int | None:
        return self._process.returncode

    async def chunks(self) -> AsyncIterator[bytes]:
        stream = self._process.stdout
        if stream is None:
            return
        while True:
            data = await stream.read(self._read_size)
            if not data:
                break
            yield data

    async def wait(self) -> ExitStatus:
        return ExitStatus.from_returncode(await self._process.wait())


class PipeLauncher(ProcessLauncher):
    """Launches processes over pipes, stderr merged into stdout."""

    def __init__(self, read_size: int = DEFAULT_READ_SIZE) -> None:
        self._read_size = read_size

    async def spawn(
        self,
        argv: Sequence[str],
        env: Mapping[str, str] | None = None,
        stdin_data: str | None = None,
    ) -> PipeProcess:
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.PIPE if stdin_data is not None else asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                env=dict(env) if env is not None else None,
                start_new_session=True,
            )
        except OSError as e:
            raise ProcessError(f"Failed to start {argv[0]}: {e}", argv) from e

        logger.info("Started %s (pid=%d)", argv[0], process.pid)
        if stdin_data is not None:
            await _feed_stdin(process, stdin_data)
        return PipeProcess(process, read_size=self._read_size)


async def _feed_stdin(process: asyncio.subprocess.Process, data: str) -> None:
    """Write canned input, then close stdin so the child sees EOF."""
    stdin = process.stdin
    if stdin is None:
        return
    try:
        stdin.write(data.encode())
        await stdin.drain()
    except (BrokenPipeError, ConnectionResetError):
        logger.debug("Process %d closed stdin before reading input", process.pid)
    finally:
        stdin.close()


class CommandRunner:
    """Runs short, non-interactive commands and captures their output.

    A binary that is missing (127) or cannot be executed at all (126) is
    reported through the exit code the way a shell would, not raised.
    """

    def __init__(self, timeout: float | None = 30.0) -> None:
        self._timeout = timeout

    async def run(
        self,
        argv: Sequence[str],
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        timeout = timeout if timeout is not None else self._timeout
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=dict(env) if env is not None else None,
            )
        except FileNotFoundError as e:
            return CommandResult(exit_code=EXIT_NOT_FOUND, stderr=str(e))
        except OSError as e:
            # Permission denied, bad executable format and the like
            logger.debug("Could not run %s: %s", argv[0], e)
            return CommandResult(exit_code=EXIT_NOT_EXECUTABLE, stderr=str(e))

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            logger.warning("%s timed out after %ss", " ".join(argv), timeout)
            return CommandResult(
                exit_code=EXIT_TIMED_OUT, stderr=f"timed out after {timeout}s"
            )

        result = CommandResult(
            exit_code=process.returncode if process.returncode is not None else -1,
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
        )
        logger.debug("%s exited with %d", " ".join(argv), result.exit_code)
        return result


def build_env(base: Mapping[str, str] | None = None, **overrides: str) -> dict[str, str]:
    """Copy of ``base`` (default: the process environment) with overrides."""
    env = dict(os.environ if base is None else base)
    env.update(overrides)
    return env
