"""
Tests for imagebuild.orchestration.polling
============================================

Poller drives a probe against a PollState budget; the FakeClock records
every sleep so the timing model can be asserted exactly.
"""

import pytest

from imagebuild.orchestration.polling import PollState, Poller


def _sequence_probe(values):
    remaining = list(values)
    calls = []

    async def probe():
        calls.append(1)
        return remaining.pop(0) if remaining else None

    return probe, calls


class TestPollState:

    def test_initial(self) -> None:
        state = PollState(max_attempts=3, interval_seconds=10, is_terminal=bool)
        assert state.attempt == 0
        assert state.remaining == 3
        assert not state.exhausted
        assert not state.satisfied

    def test_requires_one_attempt(self) -> None:
        with pytest.raises(Exception):
            PollState(max_attempts=0, interval_seconds=1, is_terminal=bool)


class TestPoller:

    async def test_satisfied_first_attempt_never_sleeps(self, fake_clock) -> None:
        probe, calls = _sequence_probe(["ready"])
        state = PollState(max_attempts=5, interval_seconds=60, is_terminal=lambda v: v == "ready")

        await Poller(sleep=fake_clock.sleep).run(probe, state)

        assert state.satisfied
        assert state.attempt == 1
        assert len(calls) == 1
        assert fake_clock.sleeps == []

    async def test_sleeps_after_each_unsatisfied_attempt(self, fake_clock) -> None:
        probe, calls = _sequence_probe([None, None, "ready"])
        state = PollState(max_attempts=5, interval_seconds=60, is_terminal=lambda v: v == "ready")

        await Poller(sleep=fake_clock.sleep).run(probe, state)

        assert state.attempt == 3
        assert state.last_value == "ready"
        assert fake_clock.sleeps == [60, 60]

    async def test_exhaustion_sleeps_after_last_attempt(self, fake_clock) -> None:
        probe, calls = _sequence_probe([])
        state = PollState(max_attempts=4, interval_seconds=5, is_terminal=lambda v: v is not None)

        await Poller(sleep=fake_clock.sleep).run(probe, state)

        assert state.exhausted
        assert not state.satisfied
        assert state.attempt == 4
        assert len(calls) == 4
        assert fake_clock.elapsed == 20

    async def test_probe_exception_propagates(self, fake_clock) -> None:
        async def probe():
            raise RuntimeError("broken")

        state = PollState(max_attempts=3, interval_seconds=1, is_terminal=bool)
        with pytest.raises(RuntimeError):
            await Poller(sleep=fake_clock.sleep).run(probe, state)
        assert state.attempt == 1

    async def test_wait_uses_injected_sleep(self, fake_clock) -> None:
        await Poller(sleep=fake_clock.sleep).wait(600)
        assert fake_clock.sleeps == [600]
