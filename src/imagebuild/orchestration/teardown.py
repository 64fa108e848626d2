"""
imagebuild.orchestration.teardown - Teardown Guard
====================================================

Async context manager that binds a release coroutine to every way out of a
block: normal completion, an exception, task cancellation, and SIGINT or
SIGTERM delivered to the process.

    async with TeardownGuard(provisioner.destroy) as guard:
        await provisioner.create()
        ...
    # release has run exactly once here

Signal Handling:
    While the block runs, SIGINT/SIGTERM cancel the task that entered the
    guard; the resulting CancelledError unwinds into __aexit__, which runs
    the release. Signals that arrive once release has started are logged
    and ignored so cleanup is never interrupted. Handlers are removed on
    exit. Where the event loop cannot install handlers (non-main thread,
    Windows) the guard still releases on every in-process exit path.
"""

from __future__ import annotations

import asyncio
import signal
from types import TracebackType
from typing import Any, Awaitable, Callable, Optional, Sequence

import structlog


# =============================================================================
# Logger
# =============================================================================
logger = structlog.get_logger()

DEFAULT_SIGNALS: tuple[signal.Signals, ...] = (signal.SIGINT, signal.SIGTERM)


class TeardownGuard:
    """Runs ``release`` exactly once when the guarded block exits.

    Attributes:
        release_count: How many times release ran (0 or 1).
        released_ok: Return value of release, when it returned a bool.
        interrupted_by: The signal that cancelled the block, if any.
    """

    def __init__(
        self,
        release: Callable[[], Awaitable[Any]],
        *,
        handle_signals: bool = True,
        signals: Sequence[signal.Signals] = DEFAULT_SIGNALS,
    ) -> None:
        self._release = release
        self._handle_signals = handle_signals
        self._signals = tuple(signals)
        self._installed: list[signal.Signals] = []
        self._task: Optional[asyncio.Task[Any]] = None
        self._releasing = False

        self.release_count = 0
        self.released_ok: Optional[bool] = None
        self.interrupted_by: Optional[signal.Signals] = None

        self._logger = logger.bind(component="teardown_guard")

    @property
    def interrupted(self) -> bool:
        return self.interrupted_by is not None

    async def __aenter__(self) -> TeardownGuard:
        self._task = asyncio.current_task()
        if self._handle_signals:
            self._install_handlers()
        self._logger.debug("teardown_registered", signals=[s.name for s in self._installed])
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> bool:
        try:
            await self.release_once()
        finally:
            self._remove_handlers()
        return False

    async def release_once(self) -> bool:
        """Run release unless it already ran. Returns True if it ran now."""
        if self._releasing:
            return False
        self._releasing = True

        self._logger.info("teardown_starting")
        result = await self._release()
        self.release_count += 1
        if isinstance(result, bool):
            self.released_ok = result
        self._logger.info("teardown_completed", released_ok=self.released_ok)
        return True

    # =========================================================================
    # Signal Handlers
    # =========================================================================

    def _install_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in self._signals:
            try:
                loop.add_signal_handler(sig, self._on_signal, sig)
            except (NotImplementedError, RuntimeError, ValueError) as e:
                self._logger.debug("signal_handler_unavailable", signal=sig.name, error=str(e))
                continue
            self._installed.append(sig)

    def _remove_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in self._installed:
            loop.remove_signal_handler(sig)
        self._installed.clear()

    def _on_signal(self, sig: signal.Signals) -> None:
        if self._releasing or self.interrupted:
            self._logger.warning("signal_ignored_during_teardown", signal=sig.name)
            return

        self.interrupted_by = sig
        self._logger.warning("run_interrupted", signal=sig.name)
        if self._task is not None and not self._task.done():
            self._task.cancel()
