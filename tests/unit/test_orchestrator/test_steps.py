"""Tests for the individual setup steps and their helpers."""

from __future__ import annotations

import os
import stat

import pytest
from fakes import FakeLauncher, FakeRunner, collect

from nexuslauncher.config.settings import NodeConfig
from nexuslauncher.domain.models import CommandResult
from nexuslauncher.orchestrator import steps
from nexuslauncher.orchestrator.steps import (
    RunState,
    StepFailed,
    classify_probe,
    expand_home,
    prepend_path,
)
from nexuslauncher.relay.buffer import OutputBuffer


def _state(environ: dict[str, str], runner: FakeRunner | None = None, **node) -> RunState:
    return RunState(
        node=NodeConfig(**node),
        env=environ,
        runner=runner or FakeRunner(),  # type: ignore[arg-type]
        installer=FakeLauncher(),
        launcher=FakeLauncher(),
        buffer=OutputBuffer(64),
    )


class TestClassifyProbe:
    @pytest.mark.parametrize(
        ("exit_code", "stdout", "installed"),
        [
            (0, "nexus-network v1.2", True),
            (0, "some other tool", False),
            (1, "", False),
            (1, "nexus-network v1.2", False),
        ],
    )
    def test_table(self, exit_code: int, stdout: str, installed: bool) -> None:
        assert classify_probe(exit_code, stdout, "nexus-network").installed is installed

    def test_version_is_trimmed(self) -> None:
        assert classify_probe(0, "nexus-network v1.2\n", "nexus-network").version == "nexus-network v1.2"


class TestPathHelpers:
    def test_prepend(self) -> None:
        env = {"PATH": "/usr/bin:/bin"}
        assert prepend_path(env, "/opt/nexus") is True
        assert env["PATH"] == os.pathsep.join(["/opt/nexus", "/usr/bin", "/bin"])

    def test_prepend_is_idempotent(self) -> None:
        env = {"PATH": "/opt/nexus:/usr/bin"}
        assert prepend_path(env, "/opt/nexus") is False
        assert env["PATH"] == "/opt/nexus:/usr/bin"

    def test_prepend_to_empty_path(self) -> None:
        env: dict[str, str] = {}
        prepend_path(env, "/opt/nexus")
        assert env["PATH"] == "/opt/nexus"

    def test_expand_home_uses_env(self) -> None:
        assert expand_home("~/.nexus/bin", {"HOME": "/home/op"}) == "/home/op/.nexus/bin"
        assert expand_home("/abs/bin", {"HOME": "/home/op"}) == "/abs/bin"


class TestProbeStep:
    @pytest.mark.asyncio
    async def test_installed(self, environ, installed_runner) -> None:
        state = _state(environ, installed_runner)
        events = await collect(steps.probe(state))
        assert state.probe is not None and state.probe.installed
        assert [e.message for e in events] == [
            "Checking if Nexus CLI is already installed...",
            "Nexus CLI is already installed: nexus-network v1.2",
            "Proceeding with setup...",
        ]
        assert installed_runner.calls == [["nexus-cli", "-V"]]

    @pytest.mark.asyncio
    async def test_not_installed_is_not_an_error(self, environ, missing_runner) -> None:
        state = _state(environ, missing_runner)
        events = await collect(steps.probe(state))
        assert state.probe is not None and not state.probe.installed
        assert len(events) == 1


class TestUpdatePathStep:
    @pytest.mark.asyncio
    async def test_mutates_injected_env(self, environ) -> None:
        state = _state(environ)
        events = await collect(steps.update_path(state))
        expected = os.path.join(environ["HOME"], ".nexus/bin")
        assert environ["PATH"].split(os.pathsep)[0] == expected
        assert events[-1].message == f"PATH updated: {expected}"


class TestLocateStep:
    @pytest.mark.asyncio
    async def test_found(self, environ, tmp_path) -> None:
        binary = tmp_path / "home" / ".nexus" / "bin" / "nexus-network"
        binary.write_text("#!/bin/sh\n")
        binary.chmod(binary.stat().st_mode | stat.S_IEXEC)
        environ["PATH"] = str(binary.parent)
        state = _state(environ)
        await collect(steps.locate(state))
        assert state.binary_path == str(binary)

    @pytest.mark.asyncio
    async def test_missing_names_binary(self, environ) -> None:
        environ["PATH"] = "/nonexistent"
        with pytest.raises(StepFailed, match="nexus-network command not found"):
            await collect(steps.locate(_state(environ)))


class TestVerifyStep:
    @pytest.mark.asyncio
    async def test_failure(self, environ) -> None:
        runner = FakeRunner({"--help": CommandResult(exit_code=2, stderr="bad flag")})
        with pytest.raises(StepFailed, match="nexus-network command failed: bad flag"):
            await collect(steps.verify(_state(environ, runner)))

    @pytest.mark.asyncio
    async def test_success(self, environ) -> None:
        events = await collect(steps.verify(_state(environ, FakeRunner())))
        assert events[-1].message == "nexus-network command is working"
