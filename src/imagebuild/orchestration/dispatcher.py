"""
imagebuild.orchestration.dispatcher - Action Dispatcher
=========================================================

Maps the action keyword of an invocation to what runs and to the process
exit status.

    DEPLOY   → DeployWorkflow.run()           exit 0 on SUCCESS, else 1
    DIFF     → InfraProvisioner.diff()        exit 0, or 1 on failure
    SYNTH    → InfraProvisioner.synth()       exit 0, or 1 on failure
    DESTROY  → InfraProvisioner.destroy_all() exit 0, or 1 on failure
    other    → warning only                   exit 0

Keywords are case-sensitive: "deploy" is not DEPLOY. An unknown keyword
touches no cloud resource and still exits 0.
"""

from __future__ import annotations

from typing import Callable, Optional

import structlog

from imagebuild.core.config import OrchestratorConfig
from imagebuild.core.enums import Action
from imagebuild.core.exceptions import ImageBuildError, UnsupportedActionError
from imagebuild.core.models import DeploymentContext
from imagebuild.core.state import RunState
from imagebuild.integrations.cloud.base import BaseCloudProvider
from imagebuild.orchestration.polling import SleepFn
from imagebuild.orchestration.provisioner import InfraProvisioner
from imagebuild.orchestration.workflow import DeployWorkflow


# =============================================================================
# Logger
# =============================================================================
logger = structlog.get_logger()


def resolve_action(keyword: str) -> Action:
    """Parse an action keyword.

    Raises:
        UnsupportedActionError: ``keyword`` is not an exact Action value.
    """
    try:
        return Action(keyword)
    except ValueError as e:
        raise UnsupportedActionError(
            message=f"{keyword} is not supported",
            action=keyword,
            details={"supported": [a.value for a in Action]},
        ) from e


class ActionDispatcher:
    """Runs one action and reports its exit code.

    Attributes:
        last_run: RunState of the most recent DEPLOY, for inspection.
    """

    def __init__(
        self,
        context: DeploymentContext,
        cloud: BaseCloudProvider,
        config: Optional[OrchestratorConfig] = None,
        *,
        sleep: Optional[SleepFn] = None,
        handle_signals: bool = True,
        echo: Callable[[str], None] = print,
    ) -> None:
        self._context = context
        self._cloud = cloud
        self._config = config or OrchestratorConfig()
        self._sleep = sleep
        self._handle_signals = handle_signals
        self._echo = echo
        self.last_run: Optional[RunState] = None
        self._logger = logger.bind(component="action_dispatcher", run_id=context.run_suffix)

    async def dispatch(self, keyword: str) -> int:
        """Run the action named by ``keyword`` and return the exit code."""
        try:
            action = resolve_action(keyword)
        except UnsupportedActionError as e:
            self._logger.warning("unsupported_action", action=keyword, message=e.message)
            return 0

        self._logger.info("action_dispatching", action=action.value)

        if action == Action.DEPLOY:
            workflow = DeployWorkflow(
                self._context,
                self._cloud,
                self._config,
                sleep=self._sleep,
                handle_signals=self._handle_signals,
            )
            self.last_run = await workflow.run()
            return self.last_run.exit_code

        provisioner = InfraProvisioner(self._cloud, self._context, self._config.naming)
        try:
            if action == Action.DIFF:
                self._echo(await provisioner.diff())
            elif action == Action.SYNTH:
                self._echo(await provisioner.synth())
            else:
                await provisioner.destroy_all()
        except ImageBuildError as e:
            self._logger.error("action_failed", action=action.value, **e.to_dict())
            return 1

        self._logger.info("action_completed", action=action.value)
        return 0
