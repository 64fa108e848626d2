"""
imagebuild.core.config - Configuration Management
===================================================

Configuration for the build-image orchestrator. Values are resolved with the
following priority (highest first):

    1. Explicit overrides (CLI options end up here)
    2. YAML configuration file (imagebuild.yaml)
    3. Environment variables (prefixed with IMAGEBUILD_)
    4. Default values defined in the models below

Architecture Context:
    OrchestratorConfig is created once at startup and handed DOWN to the
    components that need it:

        OrchestratorConfig
            ├── CloudConfig    → create_cloud_provider() → AwsCliProvider
            ├── PollingConfig  → ArtifactRegistryWatcher, WindowsBuildTrigger
            ├── NamingConfig   → build_context(), InfraProvisioner
            └── logging        → configure_logging()

    Run-specific values (account, region, timestamp suffix) are NOT here;
    they live in the immutable DeploymentContext built per invocation.

Environment Variables:
    IMAGEBUILD_LOG_LEVEL=DEBUG
    IMAGEBUILD_LOG_FORMAT=json
    IMAGEBUILD_CLOUD__PROVIDER=mock
    IMAGEBUILD_POLLING__REGISTRY_INTERVAL_SECONDS=60
    IMAGEBUILD_DOCKER_IMAGES_DIR=tests/ci/docker_images
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, Optional

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

from imagebuild.core.exceptions import ConfigurationError


# =============================================================================
# Cloud Configuration
# =============================================================================
# Which backend executes cloud calls. "aws" shells out to the aws and cdk
# command-line tools; "mock" answers from in-memory queues (tests, dry runs).
# =============================================================================
class CloudConfig(BaseModel):
    """Configuration for the cloud provider backend.

    Attributes:
        provider: "aws" for the real CLIs, "mock" for the in-memory double.
        aws_executable: Path or name of the AWS CLI.
        cdk_executable: Path or name of the CDK toolkit CLI.
        command_timeout_seconds: Upper bound for any single CLI invocation.
            CDK deploys of the full stack set take tens of minutes.
    """

    provider: Literal["aws", "mock"] = Field(
        default="aws",
        description="Cloud provider backend: 'aws' or 'mock'",
    )
    aws_executable: str = Field(
        default="aws",
        description="AWS CLI executable",
    )
    cdk_executable: str = Field(
        default="cdk",
        description="CDK toolkit executable",
    )
    command_timeout_seconds: float = Field(
        default=3600.0,
        gt=0,
        description="Timeout for a single CLI invocation in seconds",
    )


# =============================================================================
# Polling Configuration
# =============================================================================
# Fixed-interval budgets. Docker image builds take about an hour, so the
# registry watch allows 30 x 5 min per family. The Windows instance needs
# ~10 min to boot before its agent can answer, then up to 60 x 1 min.
# =============================================================================
class PollingConfig(BaseModel):
    """Attempt budgets and intervals for every wait in the workflow."""

    registry_max_attempts: int = Field(
        default=30,
        ge=1,
        description="Registry listing fetches per artifact family",
    )
    registry_interval_seconds: float = Field(
        default=300.0,
        ge=0,
        description="Sleep between unsatisfied registry checks",
    )
    instance_max_attempts: int = Field(
        default=60,
        ge=1,
        description="Management-agent status checks before giving up",
    )
    instance_interval_seconds: float = Field(
        default=60.0,
        ge=0,
        description="Sleep between agent status checks",
    )
    instance_boot_wait_seconds: float = Field(
        default=600.0,
        ge=0,
        description="Fixed wait before the instance is first looked up",
    )


# =============================================================================
# Naming Configuration
# =============================================================================
# Names shared with the CDK application. Run-scoped names are these
# prefixes plus the run suffix (see models.build_context).
# =============================================================================
class NamingConfig(BaseModel):
    """Resource names and stack selectors shared with the infra description."""

    linux_aarch_repo: str = Field(default="aws-lc-test-docker-images-linux-aarch")
    linux_x86_repo: str = Field(default="aws-lc-test-docker-images-linux-x86")
    windows_repo: str = Field(default="aws-lc-test-docker-images-windows")

    all_stacks_pattern: str = Field(
        default="aws-lc-test-*",
        description="Stacks created by DEPLOY and removed by DESTROY",
    )
    build_stacks_pattern: str = Field(
        default="aws-lc-test-docker-images-build-*",
        description="Ephemeral stacks removed by the deploy teardown",
    )
    preview_stacks_pattern: str = Field(
        default="aws-lc*",
        description="Stacks covered by DIFF and SYNTH",
    )

    bucket_prefix: str = Field(default="windows-docker-images")
    instance_tag_key: str = Field(default="aws-lc")
    instance_tag_value_prefix: str = Field(default="windows-docker-img")
    ssm_document_prefix: str = Field(default="windows-ssm-document")
    command_output_prefix: str = Field(default="runcommand")
    windows_source_dirname: str = Field(
        default="windows",
        description="Directory under docker_images_dir zipped for the Windows build",
    )


# =============================================================================
# Main Configuration
# =============================================================================
#   IMAGEBUILD_LOG_LEVEL                 → config.log_level
#   IMAGEBUILD_CLOUD__PROVIDER           → config.cloud.provider
#   IMAGEBUILD_POLLING__REGISTRY_MAX_ATTEMPTS → config.polling.registry_max_attempts
# =============================================================================
class OrchestratorConfig(BaseSettings):
    """Top-level configuration for the orchestrator.

    Attributes:
        log_level: Standard logging level name.
        log_format: "console" for human output, "json" for CI log ingestion.
        docker_images_dir: Directory holding the per-platform build scripts.
        cloud: Cloud backend configuration.
        polling: Wait budgets.
        naming: Resource names and stack patterns.
    """

    log_level: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR, CRITICAL",
    )
    log_format: Literal["console", "json"] = Field(
        default="console",
        description="Log renderer",
    )
    docker_images_dir: Path = Field(
        default=Path("../docker_images"),
        description="Directory containing the Docker image build scripts",
    )

    cloud: CloudConfig = Field(default_factory=CloudConfig)
    polling: PollingConfig = Field(default_factory=PollingConfig)
    naming: NamingConfig = Field(default_factory=NamingConfig)

    model_config = {
        "env_prefix": "IMAGEBUILD_",
        "env_nested_delimiter": "__",
        "case_sensitive": False,
    }


# =============================================================================
# Configuration Loader
# =============================================================================
def load_config(path: Optional[str] = None, **overrides: Any) -> OrchestratorConfig:
    """Load configuration from a YAML file and/or environment variables.

    Args:
        path: YAML file to read. If None, ``imagebuild.yaml`` in the working
            directory is used when present; otherwise defaults + env vars.
        **overrides: Explicit values that win over the file.

    Returns:
        A validated OrchestratorConfig.

    Raises:
        FileNotFoundError: If an explicit path does not exist.
        ConfigurationError: If the YAML cannot be parsed or is not a mapping.
    """
    if path is None:
        default_path = Path("imagebuild.yaml")
        if default_path.exists():
            path = str(default_path)

    yaml_data: dict[str, Any] = {}
    if path is not None:
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(config_path) as f:
            try:
                raw_data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigurationError(
                    message=f"Invalid YAML in {path}: {e}",
                    error_code="INVALID_YAML",
                    details={"path": str(path)},
                ) from e

        if raw_data is not None and not isinstance(raw_data, dict):
            raise ConfigurationError(
                message=f"Configuration file {path} must contain a mapping",
                error_code="INVALID_YAML",
                details={"path": str(path)},
            )
        yaml_data = raw_data or {}

    yaml_data.update({k: v for k, v in overrides.items() if v is not None})
    return OrchestratorConfig(**yaml_data)
