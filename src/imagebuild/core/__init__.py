"""
imagebuild.core - Foundation Layer
====================================

Plain data structures and configuration that every other module depends on:

    - config:      OrchestratorConfig, CloudConfig, PollingConfig, NamingConfig
    - enums:       Action, WorkflowState, RunOutcome, FamilyName, PingStatus
    - models:      DeploymentContext, ArtifactFamily, ProvisionedInstanceHandle
    - state:       RunState
    - exceptions:  ImageBuildError hierarchy

Dependency Rule:
    core/ depends on nothing else in the imagebuild package, and performs no
    I/O. orchestration/ and integrations/ depend on core/.
"""

from imagebuild.core.config import (
    CloudConfig,
    NamingConfig,
    OrchestratorConfig,
    PollingConfig,
    load_config,
)
from imagebuild.core.enums import (
    Action,
    FamilyName,
    PingStatus,
    RunOutcome,
    WorkflowState,
)
from imagebuild.core.exceptions import (
    ArtifactTimeoutError,
    BuildTriggerError,
    CommandError,
    ConfigurationError,
    ImageBuildError,
    InstanceNotReadyError,
    ProvisionError,
    UnsupportedActionError,
)
from imagebuild.core.models import (
    ArtifactFamily,
    DeploymentContext,
    ProvisionedInstanceHandle,
    build_context,
)
from imagebuild.core.state import RunState

__all__ = [
    # Config
    "OrchestratorConfig",
    "CloudConfig",
    "PollingConfig",
    "NamingConfig",
    "load_config",
    # Enums
    "Action",
    "WorkflowState",
    "RunOutcome",
    "FamilyName",
    "PingStatus",
    # Models
    "DeploymentContext",
    "ArtifactFamily",
    "ProvisionedInstanceHandle",
    "build_context",
    "RunState",
    # Exceptions
    "ImageBuildError",
    "ConfigurationError",
    "CommandError",
    "ProvisionError",
    "BuildTriggerError",
    "InstanceNotReadyError",
    "ArtifactTimeoutError",
    "UnsupportedActionError",
]
