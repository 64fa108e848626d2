"""
imagebuild.orchestration.provisioner - Infra Provisioner
==========================================================

Applies and removes the declarative infrastructure of a run: registries,
build projects, the Windows instance, the staging bucket and the remote
command document. The stack set itself is declared by the CDK application;
this class only selects stacks by pattern and hands the run's names to the
toolkit through ``DeploymentContext.to_environment()``.

Operations:
    create()       deploy <all stacks>          raises ProvisionError
    destroy()      destroy <build stacks>       fail-open, returns bool
    destroy_all()  destroy <all stacks>         raises ProvisionError
    diff()         diff <preview stacks>        raises ProvisionError
    synth()        synth <preview stacks>       raises ProvisionError

destroy() is the deploy workflow's teardown: it must never mask the error
that caused the teardown, so failures are logged and reported as False.
"""

from __future__ import annotations

from typing import Optional

import structlog

from imagebuild.core.config import NamingConfig
from imagebuild.core.exceptions import ImageBuildError, ProvisionError
from imagebuild.core.models import DeploymentContext
from imagebuild.integrations.cloud.base import BaseCloudProvider


# =============================================================================
# Logger
# =============================================================================
logger = structlog.get_logger()


class InfraProvisioner:
    """Creates and destroys the run's stacks through the cloud provider."""

    def __init__(
        self,
        cloud: BaseCloudProvider,
        context: DeploymentContext,
        naming: Optional[NamingConfig] = None,
    ) -> None:
        self._cloud = cloud
        self._context = context
        self._naming = naming or NamingConfig()
        self._logger = logger.bind(component="infra_provisioner", run_id=context.run_suffix)

    async def create(self) -> None:
        """Deploy every stack of the run without interactive approval.

        Raises:
            ProvisionError: The toolkit reported failure.
        """
        pattern = self._naming.all_stacks_pattern
        self._logger.info("infra_create_starting", stack_pattern=pattern)
        try:
            await self._cloud.infra_deploy(pattern, self._context.to_environment())
        except ImageBuildError as e:
            self._logger.error("infra_create_failed", stack_pattern=pattern, error=e.message)
            raise ProvisionError(
                message=f"Failed to deploy stacks {pattern}: {e.message}",
                stack_pattern=pattern,
                details={"cause": e.to_dict()},
            ) from e
        self._logger.info("infra_create_completed", stack_pattern=pattern)

    async def destroy(self) -> bool:
        """Remove the run's ephemeral build stacks.

        Returns:
            True if the toolkit reported success, False otherwise.
        """
        pattern = self._naming.build_stacks_pattern
        self._logger.info("infra_destroy_starting", stack_pattern=pattern)
        try:
            await self._cloud.infra_destroy(pattern, self._context.to_environment())
        except Exception as e:
            self._logger.error(
                "infra_destroy_failed",
                stack_pattern=pattern,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False
        self._logger.info("infra_destroy_completed", stack_pattern=pattern)
        return True

    async def destroy_all(self) -> None:
        """Remove every stack of the namespace (the DESTROY action).

        Raises:
            ProvisionError: The toolkit reported failure.
        """
        pattern = self._naming.all_stacks_pattern
        self._logger.info("infra_destroy_all_starting", stack_pattern=pattern)
        try:
            await self._cloud.infra_destroy(pattern, self._context.to_environment())
        except ImageBuildError as e:
            raise ProvisionError(
                message=f"Failed to destroy stacks {pattern}: {e.message}",
                stack_pattern=pattern,
                details={"cause": e.to_dict()},
            ) from e
        self._logger.info("infra_destroy_all_completed", stack_pattern=pattern)

    async def diff(self) -> str:
        """Preview pending changes. Read-only."""
        pattern = self._naming.preview_stacks_pattern
        try:
            return await self._cloud.infra_diff(pattern, self._context.to_environment())
        except ImageBuildError as e:
            raise ProvisionError(
                message=f"Failed to diff stacks {pattern}: {e.message}",
                stack_pattern=pattern,
                error_code="DIFF_FAILED",
                details={"cause": e.to_dict()},
            ) from e

    async def synth(self) -> str:
        """Synthesize templates. Read-only."""
        pattern = self._naming.preview_stacks_pattern
        try:
            return await self._cloud.infra_synth(pattern, self._context.to_environment())
        except ImageBuildError as e:
            raise ProvisionError(
                message=f"Failed to synthesize stacks {pattern}: {e.message}",
                stack_pattern=pattern,
                error_code="SYNTH_FAILED",
                details={"cause": e.to_dict()},
            ) from e
