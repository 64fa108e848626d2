"""
imagebuild.orchestration.linux_builds - Linux Build Trigger
=============================================================

Starts the managed build job for each Linux architecture. Each build
project is named after the registry repository it pushes to. The trigger
returns as soon as both start requests are accepted; completion is
observed later, through the registry.
"""

from __future__ import annotations

import structlog

from imagebuild.core.exceptions import BuildTriggerError, ImageBuildError
from imagebuild.core.models import DeploymentContext
from imagebuild.integrations.cloud.base import BaseCloudProvider


# =============================================================================
# Logger
# =============================================================================
logger = structlog.get_logger()


class LinuxBuildTrigger:
    """Fire-and-forget starter for the aarch64 and x86 build projects."""

    def __init__(self, cloud: BaseCloudProvider, context: DeploymentContext) -> None:
        self._cloud = cloud
        self._context = context
        self._logger = logger.bind(component="linux_build_trigger", run_id=context.run_suffix)

    @property
    def project_names(self) -> tuple[str, str]:
        """Build projects in start order: aarch64, then x86."""
        return (self._context.linux_aarch_repo, self._context.linux_x86_repo)

    async def start_linux_builds(self) -> list[str]:
        """Start one build per architecture.

        Returns:
            Accepted build ids, aarch64 first.

        Raises:
            BuildTriggerError: A start request was rejected. Builds already
                started are not cancelled.
        """
        build_ids: list[str] = []
        for project in self.project_names:
            try:
                build_id = await self._cloud.start_build(project)
            except ImageBuildError as e:
                self._logger.error("linux_build_start_failed", project=project, error=e.message)
                raise BuildTriggerError(
                    message=f"Failed to start build {project}: {e.message}",
                    project_name=project,
                    details={"started": list(build_ids), "cause": e.to_dict()},
                ) from e

            self._logger.info("linux_build_started", project=project, build_id=build_id)
            build_ids.append(build_id)

        return build_ids
