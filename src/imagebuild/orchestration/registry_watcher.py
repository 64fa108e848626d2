"""
imagebuild.orchestration.registry_watcher - Artifact Registry Watcher
=======================================================================

Blocks until a registry repository lists every expected image tag, or the
attempt budget runs out.

Matching Rule:
    A tag counts as present when it occurs anywhere in the raw listing
    text. The listing is never parsed, so a tag that is a substring of
    another tag, or of any other field, also matches.

A failed registry query is not fatal on its own: it is logged and the
attempt counts as unsatisfied.
"""

from __future__ import annotations

from typing import Optional, Sequence

import structlog

from imagebuild.core.config import PollingConfig
from imagebuild.core.exceptions import ArtifactTimeoutError, ImageBuildError
from imagebuild.core.models import ArtifactFamily, DeploymentContext
from imagebuild.integrations.cloud.base import BaseCloudProvider
from imagebuild.orchestration.polling import PollState, Poller, SleepFn


# =============================================================================
# Logger
# =============================================================================
logger = structlog.get_logger()


def missing_tags(listing: Optional[str], expected_tags: Sequence[str]) -> list[str]:
    """Expected tags that do not occur in ``listing``, in their given order."""
    if listing is None:
        return list(expected_tags)
    return [tag for tag in expected_tags if tag not in listing]


class ArtifactRegistryWatcher:
    """Polls the registry for expected tags with a fixed interval."""

    def __init__(
        self,
        cloud: BaseCloudProvider,
        context: DeploymentContext,
        *,
        polling: Optional[PollingConfig] = None,
        sleep: Optional[SleepFn] = None,
    ) -> None:
        self._cloud = cloud
        self._context = context
        self._polling = polling or PollingConfig()
        self._poller = Poller(sleep=sleep)
        self._logger = logger.bind(component="registry_watcher", run_id=context.run_suffix)

    async def await_artifacts(self, repository: str, expected_tags: Sequence[str]) -> int:
        """Wait until ``repository`` lists every tag in ``expected_tags``.

        Args:
            repository: Registry repository name.
            expected_tags: Tags that must all occur in the listing.

        Returns:
            The attempt on which the listing was first complete.

        Raises:
            ArtifactTimeoutError: The budget ran out first.
        """
        uri = self._context.registry_uri(repository)
        self._logger.info(
            "artifact_watch_starting",
            repository=uri,
            expected_tags=list(expected_tags),
            max_attempts=self._polling.registry_max_attempts,
        )

        async def probe() -> Optional[str]:
            try:
                listing = await self._cloud.describe_images(repository)
            except ImageBuildError as e:
                self._logger.warning(
                    "artifact_query_failed",
                    repository=uri,
                    error=e.message,
                )
                return None
            self._logger.info(
                "artifact_watch_attempt",
                repository=uri,
                missing=missing_tags(listing, expected_tags),
            )
            return listing

        state = PollState(
            max_attempts=self._polling.registry_max_attempts,
            interval_seconds=self._polling.registry_interval_seconds,
            is_terminal=lambda listing: not missing_tags(listing, expected_tags),
        )
        await self._poller.run(probe, state, operation="artifact_watch")

        if not state.satisfied:
            missing = missing_tags(state.last_value, expected_tags)
            self._logger.error(
                "artifact_watch_timed_out",
                repository=uri,
                attempts=state.attempt,
                missing=missing,
            )
            raise ArtifactTimeoutError(
                message=f"Images are not pushed to {uri}",
                repository=repository,
                attempts=state.attempt,
                missing_tags=missing,
            )

        self._logger.info("artifact_watch_completed", repository=uri, attempts=state.attempt)
        return state.attempt

    async def await_family(self, family: ArtifactFamily) -> int:
        """await_artifacts() for one ArtifactFamily."""
        return await self.await_artifacts(family.repository, family.expected_tags)
