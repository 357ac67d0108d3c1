"""Process launching for nexuslauncher.

Two launchers implement the same capability: :class:`PtyLauncher` for the
node itself, which expects an interactive terminal, and
:class:`PipeLauncher` for the install pipeline. :class:`CommandRunner`
covers the short probe and verification commands.
"""

from nexuslauncher.runner.base import LaunchedProcess, ProcessError, ProcessLauncher
from nexuslauncher.runner.process import CommandRunner, PipeLauncher
from nexuslauncher.runner.pty import PtyLauncher

__all__ = [
    "CommandRunner",
    "LaunchedProcess",
    "PipeLauncher",
    "ProcessError",
    "ProcessLauncher",
    "PtyLauncher",
]
