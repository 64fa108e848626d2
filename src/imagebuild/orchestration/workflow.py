"""
imagebuild.orchestration.workflow - Deploy Workflow
=====================================================

Sequences one DEPLOY run from provisioning to teardown.

State Machine:
    IDLE
      │  enter teardown guard, then create()
      ▼
    PROVISIONING ── start Linux builds, start Windows build
      ▼
    BUILDS_TRIGGERED
      ▼
    WATCHING_LINUX_AARCH → WATCHING_LINUX_X86 → WATCHING_WINDOWS
      │                                              │
      │ any failure                                  │ all present
      ▼                                              ▼
    TORN_DOWN(FAILURE) ◄──── destroy() ────► TORN_DOWN(SUCCESS)

Guarantees:
    - The teardown guard is entered before the first resource-creating
      call, and destroy() runs exactly once on every path out, including
      SIGINT/SIGTERM.
    - No family is watched before both triggers have returned.
    - Families are watched one after another; their wait times add up.

Errors never escape run(): they are recorded in RunState.error_log and the
run ends as FAILURE. A cancellation that did not come from the guard's own
signal handling is re-raised after teardown.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any, Optional

import structlog

from imagebuild.core.config import OrchestratorConfig
from imagebuild.core.enums import Action, FamilyName, RunOutcome, WorkflowState
from imagebuild.core.exceptions import ImageBuildError
from imagebuild.core.models import DeploymentContext
from imagebuild.core.state import RunState
from imagebuild.integrations.cloud.base import BaseCloudProvider
from imagebuild.orchestration.linux_builds import LinuxBuildTrigger
from imagebuild.orchestration.polling import SleepFn
from imagebuild.orchestration.provisioner import InfraProvisioner
from imagebuild.orchestration.registry_watcher import ArtifactRegistryWatcher
from imagebuild.orchestration.teardown import TeardownGuard
from imagebuild.orchestration.windows_build import WindowsBuildTrigger


# =============================================================================
# Logger
# =============================================================================
logger = structlog.get_logger()

WATCH_STATES: dict[FamilyName, WorkflowState] = {
    FamilyName.LINUX_AARCH: WorkflowState.WATCHING_LINUX_AARCH,
    FamilyName.LINUX_X86: WorkflowState.WATCHING_LINUX_X86,
    FamilyName.WINDOWS: WorkflowState.WATCHING_WINDOWS,
}


class DeployWorkflow:
    """Provision → trigger → watch → tear down, for one run.

    Components are built from the context and config unless passed in,
    so tests can substitute any of them.
    """

    def __init__(
        self,
        context: DeploymentContext,
        cloud: BaseCloudProvider,
        config: Optional[OrchestratorConfig] = None,
        *,
        sleep: Optional[SleepFn] = None,
        handle_signals: bool = True,
        provisioner: Optional[InfraProvisioner] = None,
        linux_trigger: Optional[LinuxBuildTrigger] = None,
        windows_trigger: Optional[WindowsBuildTrigger] = None,
        watcher: Optional[ArtifactRegistryWatcher] = None,
    ) -> None:
        config = config or OrchestratorConfig()
        self._context = context
        self._handle_signals = handle_signals

        self._provisioner = provisioner or InfraProvisioner(cloud, context, config.naming)
        self._linux = linux_trigger or LinuxBuildTrigger(cloud, context)
        self._windows = windows_trigger or WindowsBuildTrigger(
            cloud,
            context,
            config.docker_images_dir,
            polling=config.polling,
            naming=config.naming,
            sleep=sleep,
        )
        self._watcher = watcher or ArtifactRegistryWatcher(
            cloud,
            context,
            polling=config.polling,
            sleep=sleep,
        )
        self._logger = logger.bind(component="deploy_workflow", run_id=context.run_suffix)

    async def run(self) -> RunState:
        """Execute the deploy workflow.

        Returns:
            The final RunState, in TORN_DOWN with outcome SUCCESS or FAILURE.

        Raises:
            asyncio.CancelledError: The task was cancelled from outside
                (not by SIGINT/SIGTERM). Teardown has still run.
        """
        state = RunState(run_id=self._context.run_suffix, action=Action.DEPLOY)
        self._logger.info(
            "workflow_starting",
            account_id=self._context.account_id,
            region=self._context.region,
        )

        guard = TeardownGuard(self._provisioner.destroy, handle_signals=self._handle_signals)
        error: Optional[BaseException] = None
        try:
            async with guard:
                state = state.transition(WorkflowState.PROVISIONING)
                await self._provisioner.create()

                build_ids = await self._linux.start_linux_builds()
                command_id = await self._windows.start_windows_build()
                state = state.transition(WorkflowState.BUILDS_TRIGGERED).model_copy(update={
                    "build_ids": build_ids,
                    "command_id": command_id,
                })
                self._logger.info(
                    "builds_triggered",
                    build_ids=build_ids,
                    command_id=command_id,
                )

                for family in self._context.artifact_families():
                    state = state.transition(WATCH_STATES[family.name])
                    await self._watcher.await_family(family)

        except asyncio.CancelledError as e:
            if not guard.interrupted:
                raise
            task = asyncio.current_task()
            if task is not None:
                task.uncancel()
            error = e
        except Exception as e:
            error = e

        return self._finish(state, guard, error)

    def _finish(
        self,
        state: RunState,
        guard: TeardownGuard,
        error: Optional[BaseException],
    ) -> RunState:
        outcome = RunOutcome.SUCCESS if error is None else RunOutcome.FAILURE
        error_log = list(state.error_log)
        if error is not None:
            error_log.append(self._error_entry(state, guard, error))

        final = state.transition(WorkflowState.TORN_DOWN).model_copy(update={
            "outcome": outcome,
            "error_log": error_log,
            "teardown_count": guard.release_count,
            "completed_at": datetime.now(timezone.utc),
        })

        if outcome == RunOutcome.SUCCESS:
            self._logger.info("workflow_completed", duration_seconds=final.duration_seconds)
        else:
            self._logger.error(
                "workflow_failed",
                failed_in=state.state.value,
                error=error_log[-1],
            )
        return final

    @staticmethod
    def _error_entry(
        state: RunState,
        guard: TeardownGuard,
        error: BaseException,
    ) -> dict[str, Any]:
        if isinstance(error, ImageBuildError):
            entry = error.to_dict()
        elif isinstance(error, asyncio.CancelledError) and guard.interrupted_by is not None:
            entry = {
                "error_type": "Interrupted",
                "message": f"Interrupted by {guard.interrupted_by.name}",
                "error_code": "INTERRUPTED",
                "details": {},
            }
        else:
            entry = {
                "error_type": type(error).__name__,
                "message": str(error),
                "error_code": "UNEXPECTED_ERROR",
                "details": {},
            }
        entry["state"] = state.state.value
        entry["timestamp"] = datetime.now(timezone.utc).isoformat()
        return entry
