"""Shared test fixtures for the nexuslauncher test suite.

The scripted fakes themselves live in ``fakes.py``.
"""

from __future__ import annotations

import pytest
from fakes import FakeLauncher, FakeProcess, FakeRunner

from nexuslauncher.config.settings import NodeConfig
from nexuslauncher.domain.models import CommandResult
from nexuslauncher.orchestrator.plan import Orchestrator

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def environ(tmp_path) -> dict[str, str]:
    """An isolated environment; PATH mutations never reach os.environ."""
    bin_dir = tmp_path / "home" / ".nexus" / "bin"
    bin_dir.mkdir(parents=True)
    return {"HOME": str(tmp_path / "home"), "PATH": "/usr/bin:/bin"}


@pytest.fixture
def installed_runner() -> FakeRunner:
    """Probe reports the CLI as installed."""
    return FakeRunner({"-V": CommandResult(exit_code=0, stdout="nexus-network v1.2\n")})


@pytest.fixture
def missing_runner() -> FakeRunner:
    """Probe reports the CLI as missing."""
    return FakeRunner({"-V": CommandResult(exit_code=127, stderr="not found")})


@pytest.fixture
def make_orchestrator(environ: dict[str, str]):
    """Build an Orchestrator wired to fakes; locate is off unless asked for."""

    def factory(
        runner: FakeRunner,
        installer: FakeLauncher | None = None,
        launcher: FakeLauncher | None = None,
        **node_overrides,
    ) -> Orchestrator:
        node_overrides.setdefault("locate_binary", False)
        return Orchestrator(
            node=NodeConfig(**node_overrides),
            runner=runner,  # type: ignore[arg-type]
            installer=installer or FakeLauncher(),
            launcher=launcher or FakeLauncher(FakeProcess([b"node up\r\n"])),
            environ=environ,
            buffer_capacity=1024,
        )

    return factory
