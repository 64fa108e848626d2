"""
imagebuild.orchestration.windows_build - Windows Build Trigger
================================================================

The Windows images are built on a dedicated instance rather than by the
managed build service, so starting them takes four steps:

    1. package   zip <docker_images_dir>/windows → windows.zip (temp dir)
    2. stage     upload windows.zip to s3://<staging bucket>/windows.zip
    3. await     fixed boot wait, find the instance by tag, then poll the
                 management agent until it reports Online
    4. dispatch  send the run's remote-command document to the instance,
                 output going to s3://<staging bucket>/runcommand/

The remote command then builds and pushes the images on its own; the
trigger returns the command id without waiting for it.
"""

from __future__ import annotations

import asyncio
import shutil
import tempfile
from pathlib import Path
from typing import Optional

import structlog

from imagebuild.core.config import NamingConfig, PollingConfig
from imagebuild.core.enums import PingStatus
from imagebuild.core.exceptions import (
    ConfigurationError,
    ImageBuildError,
    InstanceNotReadyError,
)
from imagebuild.core.models import DeploymentContext, ProvisionedInstanceHandle
from imagebuild.integrations.cloud.base import BaseCloudProvider
from imagebuild.orchestration.polling import PollState, Poller, SleepFn


# =============================================================================
# Logger
# =============================================================================
logger = structlog.get_logger()

ARCHIVE_NAME = "windows.zip"


class WindowsBuildTrigger:
    """Stages the Windows build scripts and starts them on the instance.

    Attributes:
        instance: Handle of the instance found during the last call to
            start_windows_build(), or None before that.
    """

    def __init__(
        self,
        cloud: BaseCloudProvider,
        context: DeploymentContext,
        docker_images_dir: Path,
        *,
        polling: Optional[PollingConfig] = None,
        naming: Optional[NamingConfig] = None,
        sleep: Optional[SleepFn] = None,
    ) -> None:
        self._cloud = cloud
        self._context = context
        self._docker_images_dir = Path(docker_images_dir)
        self._polling = polling or PollingConfig()
        self._naming = naming or NamingConfig()
        self._poller = Poller(sleep=sleep)
        self.instance: Optional[ProvisionedInstanceHandle] = None
        self._logger = logger.bind(component="windows_build_trigger", run_id=context.run_suffix)

    @property
    def source_dir(self) -> Path:
        return self._docker_images_dir / self._naming.windows_source_dirname

    async def start_windows_build(self) -> str:
        """Package, stage, await the instance and dispatch the build.

        Returns:
            The id of the dispatched remote command.

        Raises:
            ConfigurationError: The build-script directory does not exist.
            InstanceNotReadyError: No instance carries the run's tag
                (INSTANCE_NOT_FOUND), or its agent never came Online.
            CommandError: Upload or dispatch was rejected.
        """
        await self._stage_scripts()

        handle = await self._await_instance()
        self.instance = handle

        command_id = await self._cloud.send_command(
            instance_id=handle.instance_id,
            document_name=self._context.ssm_document,
            output_bucket=self._context.staging_bucket,
            output_prefix=self._naming.command_output_prefix,
        )
        self._logger.info(
            "windows_build_dispatched",
            instance_id=handle.instance_id,
            document=self._context.ssm_document,
            command_id=command_id,
        )
        return command_id

    # =========================================================================
    # Steps
    # =========================================================================

    async def _stage_scripts(self) -> None:
        source = self.source_dir
        if not source.is_dir():
            raise ConfigurationError(
                message=f"Windows build-script directory not found: {source}",
                error_code="MISSING_BUILD_SCRIPTS",
                details={"path": str(source)},
            )

        with tempfile.TemporaryDirectory(prefix="imagebuild-") as tmp:
            base_name = str(Path(tmp) / Path(ARCHIVE_NAME).stem)
            archive = await asyncio.to_thread(
                shutil.make_archive,
                base_name,
                "zip",
                root_dir=str(self._docker_images_dir),
                base_dir=self._naming.windows_source_dirname,
            )
            uri = await self._cloud.upload_file(
                Path(archive),
                self._context.staging_bucket,
                ARCHIVE_NAME,
            )

        self._logger.info("windows_scripts_staged", source=str(source), uri=uri)

    async def _await_instance(self) -> ProvisionedInstanceHandle:
        self._logger.info(
            "windows_instance_boot_wait",
            seconds=self._polling.instance_boot_wait_seconds,
        )
        await self._poller.wait(self._polling.instance_boot_wait_seconds)

        tag_key = self._context.instance_tag_key
        tag_value = self._context.instance_tag_value
        instance_id = await self._cloud.find_instance_id(tag_key, tag_value)
        if not instance_id:
            raise InstanceNotReadyError(
                message=f"No instance tagged {tag_key}={tag_value}",
                error_code="INSTANCE_NOT_FOUND",
                details={"tag_key": tag_key, "tag_value": tag_value},
            )

        async def probe() -> Optional[str]:
            try:
                status = await self._cloud.get_ping_status(instance_id)
            except ImageBuildError as e:
                self._logger.warning(
                    "instance_ping_query_failed",
                    instance_id=instance_id,
                    error=e.message,
                )
                return None
            self._logger.info("instance_ping_status", instance_id=instance_id, status=status)
            return status

        state = PollState(
            max_attempts=self._polling.instance_max_attempts,
            interval_seconds=self._polling.instance_interval_seconds,
            is_terminal=lambda status: status == PingStatus.ONLINE.value,
        )
        await self._poller.run(probe, state, operation="instance_readiness")

        if not state.satisfied:
            raise InstanceNotReadyError(
                message=f"Management agent on {instance_id} did not come online",
                instance_id=instance_id,
                attempts=state.attempt,
                details={"last_status": state.last_value},
            )

        self._logger.info("windows_instance_ready", instance_id=instance_id, attempts=state.attempt)
        return ProvisionedInstanceHandle(
            instance_id=instance_id,
            tag_key=tag_key,
            tag_value=tag_value,
        )
