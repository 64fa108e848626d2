"""
Tests for imagebuild.integrations.cloud.runner
================================================

CommandRunner runs real subprocesses here, using the current Python
interpreter as a stand-in for the aws/cdk executables.
"""

import asyncio
import os
import sys
from pathlib import Path

import pytest

from imagebuild.core.exceptions import CommandError
from imagebuild.integrations.cloud.runner import CommandResult, CommandRunner


class TestCommandRunner:
    """Tests for the async subprocess runner."""

    async def test_captures_stdout(self) -> None:
        result = await CommandRunner().run([sys.executable, "-c", "print('hello')"])
        assert result.ok
        assert result.returncode == 0
        assert result.stdout.strip() == "hello"

    async def test_extra_env_reaches_child_only(self) -> None:
        runner = CommandRunner()
        result = await runner.run(
            [sys.executable, "-c", "import os; print(os.environ['DATE_NOW'])"],
            env={"DATE_NOW": "2026-10-19-14-05"},
        )
        assert result.stdout.strip() == "2026-10-19-14-05"
        assert os.environ.get("DATE_NOW") != "2026-10-19-14-05"

    async def test_nonzero_exit_raises_when_checked(self) -> None:
        with pytest.raises(CommandError) as exc_info:
            await CommandRunner().run(
                [sys.executable, "-c", "import sys; sys.stderr.write('nope'); sys.exit(3)"]
            )
        assert exc_info.value.returncode == 3
        assert exc_info.value.stderr == "nope"
        assert exc_info.value.error_code == "COMMAND_FAILED"

    async def test_nonzero_exit_returned_when_unchecked(self) -> None:
        result = await CommandRunner().run(
            [sys.executable, "-c", "import sys; sys.exit(2)"],
            check=False,
        )
        assert not result.ok
        assert result.returncode == 2

    async def test_missing_executable(self) -> None:
        with pytest.raises(CommandError) as exc_info:
            await CommandRunner().run(["imagebuild-no-such-binary-xyz", "--version"])
        assert exc_info.value.error_code == "COMMAND_NOT_FOUND"
        assert exc_info.value.returncode == 127

    async def test_timeout_kills_child(self) -> None:
        with pytest.raises(CommandError) as exc_info:
            await CommandRunner().run(
                [sys.executable, "-c", "import time; time.sleep(30)"],
                timeout=0.5,
            )
        assert exc_info.value.error_code == "COMMAND_TIMEOUT"

    async def test_cancel_kills_child(self, tmp_path: Path) -> None:
        pid_file = tmp_path / "child.pid"
        script = (
            "import os, sys, time; "
            "open(sys.argv[1], 'w').write(str(os.getpid())); "
            "time.sleep(30)"
        )
        task = asyncio.create_task(
            CommandRunner().run([sys.executable, "-c", script, str(pid_file)])
        )
        for _ in range(200):
            if pid_file.exists() and pid_file.read_text():
                break
            await asyncio.sleep(0.05)
        pid = int(pid_file.read_text())

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        with pytest.raises(ProcessLookupError):
            os.kill(pid, 0)


class TestCommandResult:

    def test_ok_property(self) -> None:
        assert CommandResult(args=["x"], returncode=0).ok
        assert not CommandResult(args=["x"], returncode=1).ok
