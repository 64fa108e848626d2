"""
imagebuild.core.models - Core Data Models
===========================================

Immutable pydantic models shared by every component of the orchestrator.

Model Overview:
    DeploymentContext          → Who/where/which-run (resolved once at startup)
    ArtifactFamily             → A registry repository + the tags it must hold
    ProvisionedInstanceHandle  → The Windows build instance found for this run

Data Flow:
    CLI args + NamingConfig + clock
              │
              ▼
      build_context() ──→ DeploymentContext ──→ every component (read-only)
                                   │
                                   └── artifact_families() ──→ Watcher

All models are frozen: components never mutate the context, and a new run
gets a new context with a new timestamp suffix.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Optional

from pydantic import BaseModel, ConfigDict, Field

from imagebuild.core.config import NamingConfig
from imagebuild.core.enums import FamilyName


# =============================================================================
# Expected Image Tags
# =============================================================================
# The images each build pipeline pushes. The watcher considers a family done
# once every one of these appears somewhere in the repository listing.
# =============================================================================
LINUX_AARCH_TAGS: tuple[str, ...] = (
    "ubuntu-19.10_gcc-9x_latest",
    "ubuntu-19.10_clang-9x_latest",
    "ubuntu-19.10_clang-9x_sanitizer_latest",
)

LINUX_X86_TAGS: tuple[str, ...] = (
    "ubuntu-18.04_gcc-7x_latest",
    "ubuntu-16.04_gcc-5x_latest",
    "ubuntu-18.04_clang-6x_latest",
    "ubuntu-19.10_gcc-9x_latest",
    "ubuntu-19.10_clang-9x_sanitizer_latest",
    "ubuntu-19.10_clang-9x_latest",
    "ubuntu-19.04_gcc-8x_latest",
    "ubuntu-19.04_clang-8x_latest",
    "centos-7_gcc-4x_latest",
    "amazonlinux-2_gcc-7x_latest",
    "s2n_integration_clang-9x_latest",
)

WINDOWS_TAGS: tuple[str, ...] = (
    "vs2015_latest",
    "vs2017_latest",
)

# Format of the run-scoped suffix, e.g. "2026-10-19-14-05".
RUN_SUFFIX_FORMAT = "%Y-%m-%d-%H-%M"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Artifact Family
# =============================================================================
class ArtifactFamily(BaseModel):
    """A registry repository plus the ordered tags expected in it.

    Attributes:
        name: Which build target this family belongs to.
        repository: Registry repository name (not the full URI).
        expected_tags: Tags that must all be present, in narration order.

    Example:
        >>> family = ArtifactFamily(
        ...     name=FamilyName.WINDOWS,
        ...     repository="aws-lc-test-docker-images-windows",
        ...     expected_tags=("vs2015_latest", "vs2017_latest"),
        ... )
    """

    model_config = ConfigDict(frozen=True)

    name: FamilyName = Field(description="Build target of this family")
    repository: str = Field(min_length=1, description="Registry repository name")
    expected_tags: tuple[str, ...] = Field(
        min_length=1,
        description="Tags that must all appear in the repository listing",
    )


# =============================================================================
# Deployment Context
# =============================================================================
# Replaces the pile of exported shell variables with one explicit object.
# Built once per invocation and passed by reference to every component.
# =============================================================================
class DeploymentContext(BaseModel):
    """Immutable run configuration resolved once at startup.

    Attributes:
        account_id: Target cloud account.
        region: Target region.
        repo_owner: Source repository owner (consumed by the infra app).
        repo_name: Source repository name (consumed by the infra app).
        run_suffix: Timestamp-derived suffix namespacing this run's resources.
        linux_aarch_repo: Registry repository for the aarch64 images.
        linux_x86_repo: Registry repository for the x86 images.
        windows_repo: Registry repository for the Windows images.
        staging_bucket: Bucket receiving the script archive and command output.
        instance_tag_key: Tag key locating this run's Windows instance.
        instance_tag_value: Tag value locating this run's Windows instance.
        ssm_document: Remote-command document created for this run.
    """

    model_config = ConfigDict(frozen=True)

    account_id: str = Field(min_length=1)
    region: str = Field(min_length=1)
    repo_owner: str = Field(min_length=1)
    repo_name: str = Field(min_length=1)
    run_suffix: str = Field(min_length=1)

    linux_aarch_repo: str
    linux_x86_repo: str
    windows_repo: str

    staging_bucket: str
    instance_tag_key: str
    instance_tag_value: str
    ssm_document: str

    def registry_uri(self, repository: str) -> str:
        """Full registry URI of a repository, used in progress messages."""
        return f"{self.account_id}.dkr.ecr.{self.region}.amazonaws.com/{repository}"

    def artifact_families(self) -> tuple[ArtifactFamily, ...]:
        """The three image families in the order the workflow watches them."""
        return (
            ArtifactFamily(
                name=FamilyName.LINUX_AARCH,
                repository=self.linux_aarch_repo,
                expected_tags=LINUX_AARCH_TAGS,
            ),
            ArtifactFamily(
                name=FamilyName.LINUX_X86,
                repository=self.linux_x86_repo,
                expected_tags=LINUX_X86_TAGS,
            ),
            ArtifactFamily(
                name=FamilyName.WINDOWS,
                repository=self.windows_repo,
                expected_tags=WINDOWS_TAGS,
            ),
        )

    def to_environment(self) -> dict[str, str]:
        """Render the context as the variables the CDK application reads.

        The result is handed to the infra subprocess only; the orchestrator's
        own process environment is never modified.
        """
        return {
            "CDK_DEPLOY_ACCOUNT": self.account_id,
            "CDK_DEPLOY_REGION": self.region,
            "GITHUB_REPO_OWNER": self.repo_owner,
            "GITHUB_REPO": self.repo_name,
            "DATE_NOW": self.run_suffix,
            "ECR_LINUX_AARCH_REPO_NAME": self.linux_aarch_repo,
            "ECR_LINUX_X86_REPO_NAME": self.linux_x86_repo,
            "ECR_WINDOWS_REPO_NAME": self.windows_repo,
            "S3_FOR_WIN_DOCKER_IMG_BUILD": self.staging_bucket,
            "WIN_EC2_TAG_KEY": self.instance_tag_key,
            "WIN_EC2_TAG_VALUE": self.instance_tag_value,
            "WIN_DOCKER_BUILD_SSM_DOCUMENT": self.ssm_document,
        }


def build_context(
    account_id: str,
    region: str,
    repo_owner: str,
    repo_name: str,
    naming: Optional[NamingConfig] = None,
    now: Callable[[], datetime] = _utcnow,
) -> DeploymentContext:
    """Resolve a DeploymentContext for a new run.

    Args:
        account_id: Target cloud account id.
        region: Target region.
        repo_owner: Source repository owner.
        repo_name: Source repository name.
        naming: Resource naming configuration. Defaults to NamingConfig().
        now: Clock used to derive the run suffix. Injected by tests.

    Returns:
        A frozen DeploymentContext whose run-scoped names share one suffix.

    Example:
        >>> ctx = build_context("123456789012", "us-west-2", "awslabs", "aws-lc")
        >>> ctx.staging_bucket
        'windows-docker-images-2026-10-19-14-05'
    """
    naming = naming or NamingConfig()
    suffix = now().strftime(RUN_SUFFIX_FORMAT)

    return DeploymentContext(
        account_id=account_id,
        region=region,
        repo_owner=repo_owner,
        repo_name=repo_name,
        run_suffix=suffix,
        linux_aarch_repo=naming.linux_aarch_repo,
        linux_x86_repo=naming.linux_x86_repo,
        windows_repo=naming.windows_repo,
        staging_bucket=f"{naming.bucket_prefix}-{suffix}",
        instance_tag_key=naming.instance_tag_key,
        instance_tag_value=f"{naming.instance_tag_value_prefix}-{suffix}",
        ssm_document=f"{naming.ssm_document_prefix}-{suffix}",
    )


# =============================================================================
# Provisioned Instance Handle
# =============================================================================
# Valid only between InfraProvisioner.create() and destroy() of the same
# run. Never persisted.
# =============================================================================
class ProvisionedInstanceHandle(BaseModel):
    """The compute instance discovered by tag lookup for this run."""

    model_config = ConfigDict(frozen=True)

    instance_id: str = Field(min_length=1)
    tag_key: str
    tag_value: str
