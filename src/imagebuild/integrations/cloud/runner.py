"""
imagebuild.integrations.cloud.runner - Async Subprocess Runner
================================================================

Runs external command-line tools (``aws``, ``cdk``) as asyncio
subprocesses. The runner owns three concerns so providers don't have to:

    1. Environment: the caller's extra variables are layered over a copy of
       os.environ and passed to the child only.
    2. Lifetime: a child that outlives its budget, or whose caller is
       cancelled, is killed and reaped before the error propagates.
    3. Status: non-zero exits become CommandError (when check=True).

Usage:
    >>> runner = CommandRunner(timeout_seconds=600)
    >>> result = await runner.run(["aws", "sts", "get-caller-identity"])
    >>> result.stdout
"""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import Mapping, Optional, Sequence

import structlog
from pydantic import BaseModel, Field

from imagebuild.core.exceptions import CommandError


# =============================================================================
# Logger
# =============================================================================
logger = structlog.get_logger()


async def _kill(proc: asyncio.subprocess.Process) -> None:
    """Kill ``proc`` if it is still running and wait until it is reaped."""
    if proc.returncode is None:
        try:
            proc.kill()
        except ProcessLookupError:
            pass
    await asyncio.shield(proc.wait())


class CommandResult(BaseModel):
    """Outcome of one finished subprocess."""

    args: list[str] = Field(description="The argv that was executed")
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandRunner:
    """Executes commands with an explicit environment and a timeout.

    Attributes:
        _timeout_seconds: Default timeout applied when run() gets none.
        _cwd: Working directory for every child process.
    """

    def __init__(
        self,
        timeout_seconds: float = 3600.0,
        cwd: Optional[Path] = None,
    ) -> None:
        self._timeout_seconds = timeout_seconds
        self._cwd = cwd
        self._logger = logger.bind(component="command_runner")

    async def run(
        self,
        args: Sequence[str],
        *,
        env: Optional[Mapping[str, str]] = None,
        check: bool = True,
        timeout: Optional[float] = None,
    ) -> CommandResult:
        """Run ``args`` to completion and capture its output.

        Args:
            args: Program and arguments; no shell is involved.
            env: Extra environment variables for the child only.
            check: Raise CommandError on a non-zero exit status.
            timeout: Per-call override of the default timeout.

        Returns:
            CommandResult with decoded stdout/stderr.

        Raises:
            CommandError: The executable is missing (COMMAND_NOT_FOUND), the
                child timed out (COMMAND_TIMEOUT), or it exited non-zero and
                ``check`` is set (COMMAND_FAILED).
            asyncio.CancelledError: Re-raised once the child has been killed.
        """
        argv = [str(a) for a in args]
        full_env = os.environ.copy()
        if env:
            full_env.update(env)

        self._logger.debug("command_starting", command=argv)

        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(self._cwd) if self._cwd else None,
                env=full_env,
            )
        except FileNotFoundError as e:
            raise CommandError(
                message=f"Executable not found: {argv[0]}",
                command=argv,
                returncode=127,
                error_code="COMMAND_NOT_FOUND",
            ) from e

        budget = timeout if timeout is not None else self._timeout_seconds
        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=budget)
        except asyncio.TimeoutError as e:
            await _kill(proc)
            raise CommandError(
                message=f"Command timed out after {budget}s: {' '.join(argv)}",
                command=argv,
                returncode=-1,
                error_code="COMMAND_TIMEOUT",
            ) from e
        except BaseException:
            self._logger.warning("command_interrupted", command=argv, pid=proc.pid)
            await _kill(proc)
            raise

        result = CommandResult(
            args=argv,
            returncode=proc.returncode if proc.returncode is not None else -1,
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
        )

        self._logger.debug(
            "command_finished",
            command=argv,
            returncode=result.returncode,
        )

        if check and not result.ok:
            raise CommandError(
                message=f"Command exited with code {result.returncode}: {' '.join(argv)}",
                command=argv,
                returncode=result.returncode,
                stderr=result.stderr.strip(),
            )

        return result
