"""Install/launch orchestration for the Nexus network CLI.

A run probes for the CLI, installs it when missing, puts it on PATH and
starts a node, yielding progress events as it goes.
"""

from nexuslauncher.orchestrator.plan import Orchestrator, build_plan, node_launcher
from nexuslauncher.orchestrator.steps import RunState, StepFailed, classify_probe

__all__ = [
    "Orchestrator",
    "RunState",
    "StepFailed",
    "build_plan",
    "classify_probe",
    "node_launcher",
]
