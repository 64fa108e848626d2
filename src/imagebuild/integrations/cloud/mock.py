"""
imagebuild.integrations.cloud.mock - Mock Cloud Provider
==========================================================

In-memory BaseCloudProvider for tests and dry runs. It never touches the
network and records every call.

Features:
    - **Call history**: every method call is appended as
      {"method": ..., "args": {...}} for assertions.
    - **Scripted responses**: queue ping statuses and registry listings;
      once a queue is drained the last value keeps being returned.
    - **Failure injection**: ``fail_on("infra_deploy", ProvisionError(...))``
      makes the next (or every) call to that method raise.

Usage:
    >>> cloud = MockCloudProvider()
    >>> cloud.queue_ping_status("ConnectionLost", "Online")
    >>> cloud.queue_listing("repo", "", "", "...ubuntu-19.10_gcc-9x_latest...")
    >>> cloud.fail_on("start_build", CommandError("denied", ["aws"], 255))
"""

from __future__ import annotations

from collections import defaultdict, deque
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

import structlog

from imagebuild.core.models import ArtifactFamily
from imagebuild.integrations.cloud.base import BaseCloudProvider


# =============================================================================
# Logger
# =============================================================================
logger = structlog.get_logger()


class MockCloudProvider(BaseCloudProvider):
    """Scriptable in-memory cloud.

    Attributes:
        instance_id: Returned by find_instance_id(); set to None to simulate
            a missing instance.
        default_ping_status: Returned when no ping status is queued.
        uploaded: Map of "s3://bucket/key" → bytes of the uploaded file.
    """

    def __init__(
        self,
        *,
        instance_id: Optional[str] = "i-0mock0000000000",
        default_ping_status: Optional[str] = "Online",
    ) -> None:
        self.instance_id = instance_id
        self.default_ping_status = default_ping_status
        self.uploaded: dict[str, bytes] = {}

        self._call_history: list[dict[str, Any]] = []
        self._ping_queue: deque[Optional[str]] = deque()
        self._listings: dict[str, deque[str]] = defaultdict(deque)
        self._last_listing: dict[str, str] = {}
        self._failures: dict[str, tuple[Exception, bool]] = {}
        self._build_counter = 0
        self._command_counter = 0

        self._logger = logger.bind(component="mock_cloud_provider")

    @property
    def provider_name(self) -> str:
        return "mock"

    # =========================================================================
    # Call Tracking
    # =========================================================================

    @property
    def call_history(self) -> list[dict[str, Any]]:
        return self._call_history

    def calls(self, method: str) -> list[dict[str, Any]]:
        """Recorded argument dicts for one method, in call order."""
        return [c["args"] for c in self._call_history if c["method"] == method]

    def call_count(self, method: str) -> int:
        return len(self.calls(method))

    @property
    def methods_called(self) -> list[str]:
        """Method names in call order."""
        return [c["method"] for c in self._call_history]

    def reset(self) -> None:
        """Clear call history, queues and injected failures."""
        self._call_history.clear()
        self._ping_queue.clear()
        self._listings.clear()
        self._last_listing.clear()
        self._failures.clear()
        self.uploaded.clear()

    # =========================================================================
    # Scripting
    # =========================================================================

    def queue_ping_status(self, *statuses: Optional[str]) -> None:
        """Queue ping statuses returned by successive get_ping_status() calls."""
        self._ping_queue.extend(statuses)

    def queue_listing(self, repository: str, *listings: str) -> None:
        """Queue registry listings returned by successive describe_images()."""
        self._listings[repository].extend(listings)

    def publish_images(self, repository: str, tags: Iterable[str]) -> None:
        """Make every later listing of ``repository`` contain ``tags``."""
        listing = "\n".join(f'"imageTags": ["{tag}"]' for tag in tags)
        self._listings[repository].clear()
        self._last_listing[repository] = listing

    def seed_successful_builds(self, families: Iterable[ArtifactFamily]) -> None:
        """Publish every expected tag so a deploy succeeds on first check."""
        for family in families:
            self.publish_images(family.repository, family.expected_tags)

    def fail_on(self, method: str, error: Exception, *, persistent: bool = True) -> None:
        """Make ``method`` raise ``error``.

        Args:
            method: Provider method name, e.g. "infra_deploy".
            error: Exception instance to raise.
            persistent: Keep raising on every call (True) or only once.
        """
        self._failures[method] = (error, persistent)

    # =========================================================================
    # BaseCloudProvider
    # =========================================================================

    async def infra_deploy(self, stack_pattern: str, env: Mapping[str, str]) -> None:
        self._record("infra_deploy", stack_pattern=stack_pattern, env=dict(env))

    async def infra_destroy(self, stack_pattern: str, env: Mapping[str, str]) -> None:
        self._record("infra_destroy", stack_pattern=stack_pattern, env=dict(env))

    async def infra_diff(self, stack_pattern: str, env: Mapping[str, str]) -> str:
        self._record("infra_diff", stack_pattern=stack_pattern, env=dict(env))
        return f"Stack {stack_pattern}\nThere were no differences"

    async def infra_synth(self, stack_pattern: str, env: Mapping[str, str]) -> str:
        self._record("infra_synth", stack_pattern=stack_pattern, env=dict(env))
        return f"Resources: {{}}  # {stack_pattern}"

    async def start_build(self, project_name: str) -> str:
        self._record("start_build", project_name=project_name)
        self._build_counter += 1
        return f"{project_name}:mock-build-{self._build_counter}"

    async def upload_file(self, local_path: Path, bucket: str, key: str) -> str:
        self._record("upload_file", local_path=str(local_path), bucket=bucket, key=key)
        uri = f"s3://{bucket}/{key}"
        self.uploaded[uri] = Path(local_path).read_bytes()
        return uri

    async def find_instance_id(self, tag_key: str, tag_value: str) -> Optional[str]:
        self._record("find_instance_id", tag_key=tag_key, tag_value=tag_value)
        return self.instance_id

    async def get_ping_status(self, instance_id: str) -> Optional[str]:
        self._record("get_ping_status", instance_id=instance_id)
        if self._ping_queue:
            return self._ping_queue.popleft()
        return self.default_ping_status

    async def send_command(
        self,
        instance_id: str,
        document_name: str,
        output_bucket: str,
        output_prefix: str,
    ) -> str:
        self._record(
            "send_command",
            instance_id=instance_id,
            document_name=document_name,
            output_bucket=output_bucket,
            output_prefix=output_prefix,
        )
        self._command_counter += 1
        return f"mock-command-{self._command_counter}"

    async def describe_images(self, repository: str) -> str:
        self._record("describe_images", repository=repository)
        queue = self._listings.get(repository)
        if queue:
            self._last_listing[repository] = queue.popleft()
        return self._last_listing.get(repository, '{"imageDetails": []}')

    # =========================================================================
    # Internal Helpers
    # =========================================================================

    def _record(self, method: str, **args: Any) -> None:
        self._call_history.append({"method": method, "args": args})
        self._logger.debug("mock_cloud_call", method=method, **args)

        failure = self._failures.get(method)
        if failure is not None:
            error, persistent = failure
            if not persistent:
                del self._failures[method]
            raise error
