"""Tests for the pseudo-terminal launcher (Linux/macOS only)."""

from __future__ import annotations

import sys

import pytest

from nexuslauncher.runner.base import ProcessError
from nexuslauncher.runner.pty import PtyLauncher

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="pty is POSIX-only")


async def _run(launcher: PtyLauncher, script: str) -> tuple[str, object]:
    process = await launcher.spawn(["sh", "-c", script])
    try:
        output = b"".join([chunk async for chunk in process.chunks()])
        status = await process.wait()
    finally:
        await process.close()
    return output.decode(), status


class TestPtyLauncher:
    @pytest.mark.asyncio
    async def test_child_sees_a_tty(self) -> None:
        output, status = await _run(PtyLauncher(), "if [ -t 1 ]; then echo tty; else echo pipe; fi")
        assert "tty" in output
        assert status.succeeded

    @pytest.mark.asyncio
    async def test_fixed_window_size_and_term(self) -> None:
        output, _ = await _run(PtyLauncher(rows=30, cols=80), 'stty size; echo "$TERM"')
        assert "30 80" in output
        assert "xterm-256color" in output

    @pytest.mark.asyncio
    async def test_exit_code_propagates(self) -> None:
        _, status = await _run(PtyLauncher(), "echo failing; exit 3")
        assert status.exit_code == 3

    @pytest.mark.asyncio
    async def test_missing_executable_raises(self) -> None:
        with pytest.raises(ProcessError):
            await PtyLauncher().spawn(["definitely-not-a-real-binary-xyz"])

    @pytest.mark.asyncio
    async def test_terminate(self) -> None:
        process = await PtyLauncher().spawn(["sleep", "30"])
        try:
            await process.terminate(grace=2.0)
            status = await process.wait()
        finally:
            await process.close()
        assert status.signal is not None
