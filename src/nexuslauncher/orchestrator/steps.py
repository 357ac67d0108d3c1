"""The individual steps of a setup run.

Every step has the same shape: an async generator taking the shared
:class:`RunState`, yielding progress events, and raising
:class:`StepFailed` to abort the rest of the plan.
"""

from __future__ import annotations

import codecs
import logging
import os
import shutil
from collections.abc import AsyncIterator, Callable, MutableMapping
from dataclasses import dataclass, field

from nexuslauncher.config.settings import NodeConfig
from nexuslauncher.domain.models import (
    ExitStatus,
    ProbeOutcome,
    ProgressEvent,
    StatusEvent,
    TerminalEvent,
)
from nexuslauncher.relay.buffer import OutputBuffer
from nexuslauncher.runner.base import (
    DEFAULT_TERMINATE_GRACE,
    LaunchedProcess,
    ProcessError,
    ProcessLauncher,
)
from nexuslauncher.runner.process import CommandRunner

logger = logging.getLogger(__name__)

Step = Callable[["RunState"], AsyncIterator[ProgressEvent]]


class StepFailed(Exception):
    """Aborts a run. The message is shown to the user as the final error."""


@dataclass
class RunState:
    """Everything one run reads and writes. Discarded when the run ends."""

    node: NodeConfig
    env: MutableMapping[str, str]
    runner: CommandRunner
    installer: ProcessLauncher
    launcher: ProcessLauncher
    buffer: OutputBuffer
    probe: ProbeOutcome | None = None
    binary_path: str | None = None
    exit_status: ExitStatus | None = None
    terminate_grace: float = DEFAULT_TERMINATE_GRACE
    active: LaunchedProcess | None = field(default=None, repr=False)

    async def release(self) -> None:
        """Stop the active child, if any, and free its descriptors."""
        process = self.active
        if process is None:
            return
        self.active = None
        try:
            if process.returncode is None:
                logger.warning("Run abandoned, stopping pid %d", process.pid)
                await process.terminate(self.terminate_grace)
        finally:
            await process.close()


def classify_probe(exit_code: int, stdout: str, marker: str) -> ProbeOutcome:
    """Installed only when the probe exited 0 and printed the marker."""
    if exit_code == 0 and marker in stdout:
        return ProbeOutcome(installed=True, version=stdout.strip())
    return ProbeOutcome(installed=False)


def expand_home(path: str, env: MutableMapping[str, str]) -> str:
    """Expand a leading ``~`` against ``env['HOME']``."""
    home = env.get("HOME")
    if home and (path == "~" or path.startswith("~/")):
        return os.path.join(home, path[2:])
    return os.path.expanduser(path)


def prepend_path(env: MutableMapping[str, str], directory: str) -> bool:
    """Put ``directory`` first on ``env['PATH']``. False if it already was."""
    entries = [p for p in env.get("PATH", "").split(os.pathsep) if p]
    if entries and entries[0] == directory:
        return False
    env["PATH"] = os.pathsep.join([directory, *entries])
    return True


async def stream_output(
    state: RunState, process: LaunchedProcess
) -> AsyncIterator[TerminalEvent]:
    """Relay each read from ``process`` as one terminal event."""
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    async for chunk in process.chunks():
        state.buffer.append(chunk)
        text = decoder.decode(chunk)
        if text:
            yield TerminalEvent(output=text)
    text = decoder.decode(b"", final=True)
    if text:
        yield TerminalEvent(output=text)


async def relay_process(
    state: RunState, launcher: ProcessLauncher, argv: list[str], stdin_data: str | None = None
) -> AsyncIterator[TerminalEvent]:
    """Spawn ``argv``, relay its output, and record how it exited on ``state``."""
    state.exit_status = None
    try:
        process = await launcher.spawn(argv, env=state.env, stdin_data=stdin_data)
    except ProcessError as e:
        raise StepFailed(str(e)) from e
    state.active = process
    async for event in stream_output(state, process):
        yield event
    state.exit_status = await process.wait()
    state.active = None
    await process.close()


# ---------------------------------------------------------------------------
# Steps
# ---------------------------------------------------------------------------


async def announce(state: RunState) -> AsyncIterator[ProgressEvent]:
    yield StatusEvent(message="Starting Nexus CLI setup...")


async def probe(state: RunState) -> AsyncIterator[ProgressEvent]:
    """Check whether the CLI is already installed."""
    yield StatusEvent(message="Checking if Nexus CLI is already installed...")
    node = state.node
    result = await state.runner.run(
        [node.probe_binary, "-V"], env=state.env, timeout=node.probe_timeout
    )
    state.probe = classify_probe(result.exit_code, result.stdout, node.probe_marker)
    if state.probe.installed:
        yield StatusEvent(message=f"Nexus CLI is already installed: {state.probe.version}")
        yield StatusEvent(message="Proceeding with setup...")
    else:
        logger.info(
            "Probe did not find %s (exit %d), installing", node.probe_binary, result.exit_code
        )


async def install(state: RunState) -> AsyncIterator[ProgressEvent]:
    """Run the install pipeline unless the probe found the CLI."""
    if state.probe is not None and state.probe.installed:
        return
    yield StatusEvent(message="Installing Nexus CLI...")
    argv = ["sh", "-c", state.node.install_command()]
    async for event in relay_process(state, state.installer, argv, state.node.install_input):
        yield event
    if not state.exit_status.succeeded:
        raise StepFailed(f"CLI installation failed with {state.exit_status.describe()}")
    yield StatusEvent(message="Nexus CLI installed successfully")


async def update_path(state: RunState) -> AsyncIterator[ProgressEvent]:
    """Prepend the install directory to PATH for this server process."""
    yield StatusEvent(message="Updating PATH...")
    directory = expand_home(state.node.install_dir, state.env)
    if prepend_path(state.env, directory):
        logger.info("Prepended %s to PATH", directory)
    yield StatusEvent(message=f"PATH updated: {directory}")


async def locate(state: RunState) -> AsyncIterator[ProgressEvent]:
    binary = state.node.binary
    found = shutil.which(binary, path=state.env.get("PATH"))
    if found is None:
        raise StepFailed(
            f"{binary} command not found. Please ensure it is installed and in PATH."
        )
    state.binary_path = found
    yield StatusEvent(message=f"Found {binary} at {found}")


async def verify(state: RunState) -> AsyncIterator[ProgressEvent]:
    """Make sure the binary runs at all before starting the node."""
    binary = state.binary_path or state.node.binary
    result = await state.runner.run([binary, "--help"], env=state.env)
    if not result.ok:
        detail = result.stderr.strip() or f"exit code {result.exit_code}"
        raise StepFailed(f"{state.node.binary} command failed: {detail}")
    yield StatusEvent(message=f"{state.node.binary} command is working")


async def launch(state: RunState) -> AsyncIterator[ProgressEvent]:
    """Start the node under the launcher and relay it until it exits."""
    node = state.node
    yield StatusEvent(message=f"Starting Nexus node with ID: {node.node_id}")
    argv = [state.binary_path or node.binary, *node.launch_args()]
    async for event in relay_process(state, state.launcher, argv):
        yield event
    if not state.exit_status.succeeded:
        raise StepFailed(f"Node start failed with {state.exit_status.describe()}")
    yield StatusEvent(message="Node started successfully")
