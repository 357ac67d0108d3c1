"""The setup run: an ordered list of steps driven until the first failure.

Plan::

    announce -> probe -> [install] -> update_path -> [locate] -> [verify] -> launch

``install`` is a no-op when the probe finds the CLI; ``locate`` and
``verify`` can be switched off in the node configuration.
"""

from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator, MutableMapping, Sequence

import anyio

from nexuslauncher.config.settings import LaunchConfig, NodeConfig
from nexuslauncher.domain.models import (
    CompleteEvent,
    ErrorEvent,
    ProgressEvent,
    StatusEvent,
    TerminalEvent,
)
from nexuslauncher.orchestrator import steps
from nexuslauncher.orchestrator.steps import RunState, Step, StepFailed
from nexuslauncher.relay.buffer import DEFAULT_BUFFER_CAPACITY, OutputBuffer
from nexuslauncher.runner.base import DEFAULT_TERMINATE_GRACE, ProcessLauncher
from nexuslauncher.runner.process import CommandRunner, PipeLauncher
from nexuslauncher.runner.pty import PtyLauncher

logger = logging.getLogger(__name__)

# How much of the captured output to log when a run fails
FAILURE_TAIL_BYTES = 2048


def build_plan(node: NodeConfig) -> list[Step]:
    plan: list[Step] = [steps.announce, steps.probe, steps.install, steps.update_path]
    if node.locate_binary:
        plan.append(steps.locate)
    if node.verify_binary:
        plan.append(steps.verify)
    plan.append(steps.launch)
    return plan


def node_launcher(config: LaunchConfig) -> ProcessLauncher:
    """The pty launcher, or plain pipes when the config turns the pty off."""
    if config.use_pty:
        return PtyLauncher(rows=config.rows, cols=config.cols, term=config.term)
    return PipeLauncher()


class Orchestrator:
    """Runs the setup plan and reports it as a stream of progress events.

    Each call to :meth:`run` is an independent run with its own state.
    The stream always ends with exactly one ``complete`` or ``error``
    event. Stopping iteration early (the client went away) terminates
    whatever child process the run was waiting on, SIGKILLing it if it
    outlives ``terminate_grace`` seconds after SIGTERM.
    """

    def __init__(
        self,
        node: NodeConfig | None = None,
        runner: CommandRunner | None = None,
        installer: ProcessLauncher | None = None,
        launcher: ProcessLauncher | None = None,
        environ: MutableMapping[str, str] | None = None,
        buffer_capacity: int = DEFAULT_BUFFER_CAPACITY,
        plan: Sequence[Step] | None = None,
        terminate_grace: float = DEFAULT_TERMINATE_GRACE,
    ) -> None:
        self._node = node or NodeConfig()
        self._runner = runner or CommandRunner(timeout=self._node.probe_timeout)
        self._installer = installer or PipeLauncher()
        self._launcher = launcher or PtyLauncher()
        # PATH changes land in the server's own environment unless told otherwise
        self._environ = os.environ if environ is None else environ
        self._buffer_capacity = buffer_capacity
        self._plan = list(plan) if plan is not None else build_plan(self._node)
        self._terminate_grace = terminate_grace

    @property
    def node(self) -> NodeConfig:
        return self._node

    @property
    def plan(self) -> list[Step]:
        return list(self._plan)

    def new_state(self) -> RunState:
        return RunState(
            node=self._node,
            env=self._environ,
            runner=self._runner,
            installer=self._installer,
            launcher=self._launcher,
            buffer=OutputBuffer(self._buffer_capacity),
            terminate_grace=self._terminate_grace,
        )

    async def run(self) -> AsyncIterator[ProgressEvent]:
        state = self.new_state()
        try:
            try:
                for step in self._plan:
                    logger.debug("Running step %s", step.__name__)
                    async for event in step(state):
                        _log_event(event)
                        yield event
            except StepFailed as e:
                logger.error("Setup failed: %s", e)
                _log_tail(state)
                yield ErrorEvent(message=str(e))
                return
            except Exception as e:
                logger.exception("Unexpected error during setup")
                _log_tail(state)
                yield ErrorEvent(message=f"Setup failed unexpectedly: {e}")
                return

            complete = CompleteEvent(
                message=f"Setup completed successfully! Node ID: {self._node.node_id}"
            )
            logger.info(complete.message)
            yield complete
        finally:
            # A disconnect cancels the whole response task; the child must
            # still be reaped and its descriptors closed
            with anyio.CancelScope(shield=True):
                await state.release()


def _log_event(event: ProgressEvent) -> None:
    if isinstance(event, StatusEvent):
        logger.info(event.message)
    elif isinstance(event, TerminalEvent):
        logger.debug("output: %r", event.output)


def _log_tail(state: RunState) -> None:
    if len(state.buffer):
        logger.warning(
            "Last process output:\n%s", state.buffer.tail(FAILURE_TAIL_BYTES)
        )
