"""
imagebuild.integrations.cloud.base - Cloud Provider Contract
==============================================================

Every call the orchestrator makes to the outside world goes through a
BaseCloudProvider. Orchestration components depend on this interface only,
so the AWS CLI backend and the in-memory mock are interchangeable.

    ┌─────────────────────┐                 ┌──────────────────────┐
    │  InfraProvisioner    │──infra_*──────→ │                      │
    │  LinuxBuildTrigger   │──start_build──→ │  BaseCloudProvider   │
    │  WindowsBuildTrigger │──upload/ssm───→ │   ├── AwsCliProvider │
    │  RegistryWatcher     │──describe_────→ │   └── MockCloud...   │
    └─────────────────────┘    images       └──────────────────────┘

Error Contract:
    Implementations raise CommandError (or another ImageBuildError) when
    the backend rejects a request. Translating that into the phase-specific
    error (ProvisionError, BuildTriggerError, ...) is the caller's job.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Mapping, Optional


class BaseCloudProvider(ABC):
    """Abstract interface for the cloud operations the workflow needs."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Short backend name, e.g. "aws" or "mock"."""
        ...

    # =========================================================================
    # Infrastructure (CDK)
    # =========================================================================

    @abstractmethod
    async def infra_deploy(self, stack_pattern: str, env: Mapping[str, str]) -> None:
        """Apply every stack matching ``stack_pattern`` without prompting."""
        ...

    @abstractmethod
    async def infra_destroy(self, stack_pattern: str, env: Mapping[str, str]) -> None:
        """Destroy every stack matching ``stack_pattern`` without prompting."""
        ...

    @abstractmethod
    async def infra_diff(self, stack_pattern: str, env: Mapping[str, str]) -> str:
        """Return the pending changes for ``stack_pattern``."""
        ...

    @abstractmethod
    async def infra_synth(self, stack_pattern: str, env: Mapping[str, str]) -> str:
        """Return the synthesized templates for ``stack_pattern``."""
        ...

    # =========================================================================
    # Build service (CodeBuild)
    # =========================================================================

    @abstractmethod
    async def start_build(self, project_name: str) -> str:
        """Start one build of ``project_name`` and return its build id.

        Returns as soon as the start request is accepted.
        """
        ...

    # =========================================================================
    # Staging storage (S3)
    # =========================================================================

    @abstractmethod
    async def upload_file(self, local_path: Path, bucket: str, key: str) -> str:
        """Upload ``local_path`` to ``bucket``/``key`` and return its URI."""
        ...

    # =========================================================================
    # Compute + remote command (EC2 / SSM)
    # =========================================================================

    @abstractmethod
    async def find_instance_id(self, tag_key: str, tag_value: str) -> Optional[str]:
        """Id of the first instance tagged ``tag_key=tag_value``, or None."""
        ...

    @abstractmethod
    async def get_ping_status(self, instance_id: str) -> Optional[str]:
        """Management-agent ping status of an instance, or None if unknown."""
        ...

    @abstractmethod
    async def send_command(
        self,
        instance_id: str,
        document_name: str,
        output_bucket: str,
        output_prefix: str,
    ) -> str:
        """Dispatch a remote command and return its command id.

        Fire-and-forget: the command runs on the instance after this returns.
        """
        ...

    # =========================================================================
    # Artifact registry (ECR)
    # =========================================================================

    @abstractmethod
    async def describe_images(self, repository: str) -> str:
        """Return the raw image listing of ``repository`` as text."""
        ...

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(provider={self.provider_name!r})"
