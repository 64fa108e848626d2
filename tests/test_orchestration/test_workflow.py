"""
Tests for imagebuild.orchestration.workflow
=============================================

DeployWorkflow end to end against the MockCloudProvider and a FakeClock:
    - state sequence and outcome
    - triggers complete before any registry watch
    - teardown runs exactly once for a failure injected in every phase
    - interruption by signal and by external cancellation
"""

import asyncio
import os
import signal

import pytest

from imagebuild.core.enums import RunOutcome, WorkflowState
from imagebuild.core.exceptions import CommandError
from imagebuild.core.models import LINUX_X86_TAGS
from imagebuild.orchestration.workflow import DeployWorkflow


def _workflow(cloud, context, config, fake_clock, **kwargs) -> DeployWorkflow:
    return DeployWorkflow(context, cloud, config, sleep=fake_clock.sleep, handle_signals=False, **kwargs)


# =============================================================================
# Test: Successful Run
# =============================================================================
class TestDeploySuccess:

    async def test_success_outcome(self, published_cloud, context, config, fake_clock) -> None:
        state = await _workflow(published_cloud, context, config, fake_clock).run()

        assert state.outcome == RunOutcome.SUCCESS
        assert state.exit_code == 0
        assert state.teardown_count == 1
        assert state.error_log == []
        assert len(state.build_ids) == 2
        assert state.command_id is not None
        assert state.run_id == context.run_suffix

    async def test_state_sequence(self, published_cloud, context, config, fake_clock) -> None:
        state = await _workflow(published_cloud, context, config, fake_clock).run()

        assert state.visited_states == [
            WorkflowState.PROVISIONING,
            WorkflowState.BUILDS_TRIGGERED,
            WorkflowState.WATCHING_LINUX_AARCH,
            WorkflowState.WATCHING_LINUX_X86,
            WorkflowState.WATCHING_WINDOWS,
            WorkflowState.TORN_DOWN,
        ]

    async def test_triggers_return_before_first_watch(
        self, published_cloud, context, config, fake_clock
    ) -> None:
        await _workflow(published_cloud, context, config, fake_clock).run()

        calls = published_cloud.methods_called
        first_watch = calls.index("describe_images")
        assert calls[0] == "infra_deploy"
        assert calls.count("start_build") == 2
        assert max(i for i, m in enumerate(calls) if m == "start_build") < first_watch
        assert calls.index("send_command") < first_watch
        assert calls[-1] == "infra_destroy"

    async def test_families_watched_in_order(self, published_cloud, context, config, fake_clock) -> None:
        await _workflow(published_cloud, context, config, fake_clock).run()

        watched = [c["repository"] for c in published_cloud.calls("describe_images")]
        assert watched == [context.linux_aarch_repo, context.linux_x86_repo, context.windows_repo]

    async def test_x86_complete_on_third_attempt(self, cloud, context, config, fake_clock) -> None:
        aarch, x86, windows = context.artifact_families()
        cloud.publish_images(aarch.repository, aarch.expected_tags)
        cloud.publish_images(windows.repository, windows.expected_tags)
        cloud.queue_listing(x86.repository, "", "", "\n".join(LINUX_X86_TAGS))

        state = await _workflow(cloud, context, config, fake_clock).run()

        assert state.exit_code == 0
        assert state.teardown_count == 1
        x86_polls = [c for c in cloud.calls("describe_images") if c["repository"] == x86.repository]
        assert len(x86_polls) == 3
        # 600 s boot wait, then two 300 s registry sleeps for x86
        assert fake_clock.sleeps == [600, 300, 300]

    async def test_failed_teardown_does_not_fail_success(
        self, published_cloud, context, config, fake_clock
    ) -> None:
        published_cloud.fail_on("infra_destroy", CommandError("in use", ["cdk"], 1))

        state = await _workflow(published_cloud, context, config, fake_clock).run()
        assert state.outcome == RunOutcome.SUCCESS
        assert state.teardown_count == 1


# =============================================================================
# Test: Failure Injection
# =============================================================================
class TestDeployFailure:

    async def test_provisioning_failure(self, published_cloud, context, config, fake_clock) -> None:
        published_cloud.fail_on("infra_deploy", CommandError("rollback", ["cdk"], 1))

        state = await _workflow(published_cloud, context, config, fake_clock).run()

        assert state.outcome == RunOutcome.FAILURE
        assert state.exit_code == 1
        assert published_cloud.call_count("infra_destroy") == 1
        assert state.teardown_count == 1
        assert published_cloud.call_count("start_build") == 0
        assert state.error_log[0]["error_code"] == "PROVISION_FAILED"
        assert state.error_log[0]["state"] == "provisioning"

    async def test_build_start_failure(self, published_cloud, context, config, fake_clock) -> None:
        published_cloud.fail_on("start_build", CommandError("denied", ["aws"], 255))

        state = await _workflow(published_cloud, context, config, fake_clock).run()

        assert state.exit_code == 1
        assert published_cloud.call_count("infra_destroy") == 1
        assert state.error_log[0]["error_code"] == "BUILD_START_FAILED"

    async def test_instance_readiness_failure(self, published_cloud, context, config, fake_clock) -> None:
        published_cloud.default_ping_status = "ConnectionLost"

        state = await _workflow(published_cloud, context, config, fake_clock).run()

        assert state.exit_code == 1
        assert published_cloud.call_count("infra_destroy") == 1
        assert published_cloud.call_count("describe_images") == 0
        assert state.error_log[0]["error_code"] == "INSTANCE_NOT_READY"

    @pytest.mark.parametrize("failing_index", [0, 1, 2])
    async def test_watch_failure_for_each_family(
        self, cloud, context, config, fake_clock, failing_index: int
    ) -> None:
        families = context.artifact_families()
        for i, family in enumerate(families):
            if i != failing_index:
                cloud.publish_images(family.repository, family.expected_tags)

        state = await _workflow(cloud, context, config, fake_clock).run()

        assert state.outcome == RunOutcome.FAILURE
        assert state.teardown_count == 1
        assert cloud.call_count("infra_destroy") == 1
        assert state.error_log[0]["error_code"] == "ARTIFACT_TIMEOUT"
        assert state.error_log[0]["details"]["repository"] == families[failing_index].repository
        watched = {c["repository"] for c in cloud.calls("describe_images")}
        for later in families[failing_index + 1:]:
            assert later.repository not in watched

    async def test_unexpected_error_is_recorded(self, published_cloud, context, config, fake_clock) -> None:
        published_cloud.fail_on("find_instance_id", RuntimeError("bug"))

        state = await _workflow(published_cloud, context, config, fake_clock).run()

        assert state.exit_code == 1
        assert state.teardown_count == 1
        assert state.error_log[0]["error_type"] == "RuntimeError"


# =============================================================================
# Test: Interruption
# =============================================================================
class BlockingClock:
    """Sleep double that blocks until cancelled."""

    def __init__(self) -> None:
        self.entered = asyncio.Event()

    async def sleep(self, seconds: float) -> None:
        self.entered.set()
        await asyncio.sleep(3600)


class TestDeployInterruption:

    async def test_signal_tears_down_once(self, published_cloud, context, config) -> None:
        clock = BlockingClock()
        workflow = DeployWorkflow(context, published_cloud, config, sleep=clock.sleep)

        task = asyncio.create_task(workflow.run())
        await clock.entered.wait()
        os.kill(os.getpid(), signal.SIGTERM)
        state = await task

        assert state.outcome == RunOutcome.FAILURE
        assert state.exit_code == 1
        assert state.teardown_count == 1
        assert published_cloud.call_count("infra_destroy") == 1
        assert state.error_log[0]["error_code"] == "INTERRUPTED"

    async def test_external_cancel_tears_down_and_propagates(
        self, published_cloud, context, config
    ) -> None:
        clock = BlockingClock()
        workflow = DeployWorkflow(context, published_cloud, config, sleep=clock.sleep, handle_signals=False)

        task = asyncio.create_task(workflow.run())
        await clock.entered.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert published_cloud.call_count("infra_destroy") == 1
