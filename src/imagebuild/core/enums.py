"""
imagebuild.core.enums - Type-Safe Enumerations
================================================

All enums inherit from ``str`` and ``Enum`` so they serialize as plain
strings in logs and pydantic models, and compare equal to their values:

    >>> Action.DEPLOY == "DEPLOY"
    True
"""

from enum import Enum


# =============================================================================
# Action Enumeration
# =============================================================================
# The keywords accepted as the last positional CLI argument. Values are the
# exact (upper-case) keywords; matching is case-sensitive.
# =============================================================================
class Action(str, Enum):
    """Top-level command selected on the command line.

    DEPLOY runs the full build-image workflow. The others run a single
    Infra Provisioner operation and never touch builds or registries.
    """

    DEPLOY = "DEPLOY"     # Provision, build, watch, tear down
    DIFF = "DIFF"         # Read-only infra preview
    SYNTH = "SYNTH"       # Read-only template synthesis
    DESTROY = "DESTROY"   # Remove the long-lived stack namespace


# =============================================================================
# Workflow State Enumeration
# =============================================================================
# The deploy workflow's state machine:
#
#   IDLE → PROVISIONING → BUILDS_TRIGGERED → WATCHING_LINUX_AARCH
#        → WATCHING_LINUX_X86 → WATCHING_WINDOWS → TORN_DOWN
#
# Any state may jump straight to TORN_DOWN on failure. The terminal
# outcome (success or failure) is tracked separately in RunOutcome.
# =============================================================================
class WorkflowState(str, Enum):
    """States of one deploy workflow run."""

    IDLE = "idle"
    PROVISIONING = "provisioning"
    BUILDS_TRIGGERED = "builds_triggered"
    WATCHING_LINUX_AARCH = "watching_linux_aarch"
    WATCHING_LINUX_X86 = "watching_linux_x86"
    WATCHING_WINDOWS = "watching_windows"
    TORN_DOWN = "torn_down"


class RunOutcome(str, Enum):
    """Terminal result of a run, paired with WorkflowState.TORN_DOWN."""

    SUCCESS = "success"
    FAILURE = "failure"


# =============================================================================
# Artifact Family Names
# =============================================================================
# One family per image build target. The order here is the order in which
# the workflow watches them.
# =============================================================================
class FamilyName(str, Enum):
    """Identifiers of the three image families."""

    LINUX_AARCH = "linux-aarch"
    LINUX_X86 = "linux-x86"
    WINDOWS = "windows"


# =============================================================================
# Management Agent Ping Status
# =============================================================================
# Values reported by SSM describe-instance-information. Only ONLINE allows
# a remote command to be dispatched.
# =============================================================================
class PingStatus(str, Enum):
    """Management-agent connectivity of an instance."""

    ONLINE = "Online"
    CONNECTION_LOST = "ConnectionLost"
    INACTIVE = "Inactive"
