"""
imagebuild.orchestration.polling - Bounded Fixed-Interval Polling
===================================================================

Every wait in the workflow is a sleep-then-recheck loop with a fixed
attempt budget. This module factors that loop out once:

    PollState  → budget (max attempts, interval), attempt counter, the
                 terminal predicate and the last value observed
    Poller     → runs a probe until the predicate holds or the budget is
                 spent, sleeping through an injected sleep function

Timing Model:
    attempt 1 → probe → unsatisfied → sleep(interval)
    attempt 2 → probe → unsatisfied → sleep(interval)
    ...
    attempt N → probe → unsatisfied → sleep(interval) → exhausted

    The sleep follows every unsatisfied attempt, including the last, so an
    exhausted loop has consumed exactly N x interval of clock time. A
    satisfied attempt returns immediately without sleeping.

Tests replace ``sleep`` with a fake clock so a 30 x 300 s loop runs in
microseconds and the slept total can be asserted exactly.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional

import structlog
from pydantic import BaseModel, Field


# =============================================================================
# Logger
# =============================================================================
logger = structlog.get_logger()

SleepFn = Callable[[float], Awaitable[Any]]


class PollState(BaseModel):
    """Budget and progress of one poll loop.

    Created per loop and discarded once the loop returns.

    Attributes:
        max_attempts: Probe calls allowed before the loop is exhausted.
        interval_seconds: Sleep after each unsatisfied probe.
        is_terminal: Predicate over a probe value; True ends the loop.
        attempt: Probes made so far.
        last_value: Value returned by the most recent probe.
    """

    max_attempts: int = Field(ge=1)
    interval_seconds: float = Field(ge=0)
    is_terminal: Callable[[Any], bool]
    attempt: int = Field(default=0, ge=0)
    last_value: Any = None
    satisfied: bool = False

    @property
    def exhausted(self) -> bool:
        return not self.satisfied and self.attempt >= self.max_attempts

    @property
    def remaining(self) -> int:
        return max(self.max_attempts - self.attempt, 0)


class Poller:
    """Drives PollState loops with an injectable sleep function.

    Example:
        >>> poller = Poller(sleep=fake_clock.sleep)
        >>> state = PollState(max_attempts=60, interval_seconds=60,
        ...                   is_terminal=lambda s: s == "Online")
        >>> await poller.run(lambda: cloud.get_ping_status(iid), state)
        >>> state.satisfied, state.attempt
    """

    def __init__(self, sleep: Optional[SleepFn] = None) -> None:
        self._sleep = sleep or asyncio.sleep
        self._logger = logger.bind(component="poller")

    async def run(
        self,
        probe: Callable[[], Awaitable[Any]],
        state: PollState,
        *,
        operation: str = "poll",
    ) -> PollState:
        """Probe until ``state.is_terminal`` holds or attempts run out.

        Args:
            probe: Zero-argument coroutine function returning the value to
                test. Exceptions it raises propagate; callers that treat a
                failed probe as "not yet" must catch inside the probe.
            state: The loop's budget; updated in place.
            operation: Name used in log events.

        Returns:
            The same PollState, with ``satisfied`` set on success and
            ``exhausted`` true otherwise.
        """
        while state.attempt < state.max_attempts:
            state.attempt += 1
            state.last_value = await probe()

            if state.is_terminal(state.last_value):
                state.satisfied = True
                self._logger.debug(
                    "poll_satisfied",
                    operation=operation,
                    attempt=state.attempt,
                )
                return state

            self._logger.debug(
                "poll_unsatisfied",
                operation=operation,
                attempt=state.attempt,
                max_attempts=state.max_attempts,
                sleep_seconds=state.interval_seconds,
            )
            await self._sleep(state.interval_seconds)

        return state

    async def wait(self, seconds: float) -> None:
        """Plain fixed wait through the same sleep function."""
        await self._sleep(seconds)
