"""
imagebuild.orchestration - Orchestration Layer
================================================

Components that provision, trigger, observe and clean up one run:

    - InfraProvisioner:        create / destroy / destroy_all / diff / synth
    - LinuxBuildTrigger:       start the managed Linux builds
    - WindowsBuildTrigger:     stage scripts, await the instance, send command
    - ArtifactRegistryWatcher: poll the registry for expected tags
    - TeardownGuard:           release exactly once on every exit path
    - DeployWorkflow:          the DEPLOY state machine
    - ActionDispatcher:        action keyword → operation → exit code
    - Poller / PollState:      bounded fixed-interval polling
"""

from imagebuild.orchestration.dispatcher import ActionDispatcher, resolve_action
from imagebuild.orchestration.linux_builds import LinuxBuildTrigger
from imagebuild.orchestration.polling import PollState, Poller
from imagebuild.orchestration.provisioner import InfraProvisioner
from imagebuild.orchestration.registry_watcher import ArtifactRegistryWatcher
from imagebuild.orchestration.teardown import TeardownGuard
from imagebuild.orchestration.windows_build import WindowsBuildTrigger
from imagebuild.orchestration.workflow import DeployWorkflow

__all__ = [
    "ActionDispatcher",
    "resolve_action",
    "DeployWorkflow",
    "InfraProvisioner",
    "LinuxBuildTrigger",
    "WindowsBuildTrigger",
    "ArtifactRegistryWatcher",
    "TeardownGuard",
    "Poller",
    "PollState",
]
