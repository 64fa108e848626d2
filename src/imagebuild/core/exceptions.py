"""
imagebuild.core.exceptions - Custom Exception Hierarchy
=========================================================

Structured exceptions for the build-image orchestrator. Components raise
and catch these specific types instead of bare ``Exception``, and every
exception carries a machine-readable ``error_code`` plus a ``details``
dict that is logged alongside it.

Exception Hierarchy:
    ImageBuildError (base)
        ├── ConfigurationError      - Invalid config, missing build-script dir
        ├── CommandError            - An external CLI (aws / cdk) exited non-zero
        ├── ProvisionError          - Infra apply/destroy reported failure
        ├── BuildTriggerError       - A managed build job could not be started
        ├── InstanceNotReadyError   - Management agent never came online
        ├── ArtifactTimeoutError    - Expected images never reached the registry
        └── UnsupportedActionError  - Unknown action keyword (non-fatal)

Exit-code mapping (see orchestration.dispatcher):
    UnsupportedActionError → 0 (logged as a warning only)
    Everything else        → 1, after teardown has run

Usage:
    >>> from imagebuild.core.exceptions import ArtifactTimeoutError
    >>> raise ArtifactTimeoutError(
    ...     message="Images are not pushed to aws-lc-test-docker-images-windows",
    ...     repository="aws-lc-test-docker-images-windows",
    ...     attempts=30,
    ... )
"""

from __future__ import annotations

from typing import Any, Optional, Sequence


# =============================================================================
# Base Exception
# =============================================================================
# Catch-all for orchestrator failures:
#
#   try:
#       await workflow.run()
#   except ImageBuildError as e:
#       logger.error(e.message, error_code=e.error_code, details=e.details)
# =============================================================================
class ImageBuildError(Exception):
    """Base exception for all orchestrator errors.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable code, UPPER_SNAKE_CASE
            (e.g. "ARTIFACT_TIMEOUT", "PROVISION_FAILED").
        details: Extra debugging context (repository, instance id, stderr...).
    """

    def __init__(
        self,
        message: str,
        error_code: str = "UNKNOWN_ERROR",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)

        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Serialize this exception for structured logs and the run error log.

        Returns:
            Dictionary with error_type, message, error_code, and details.
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


# =============================================================================
# Configuration Error
# =============================================================================
# Raised before any cloud call is made. Fail fast on bad input.
# =============================================================================
class ConfigurationError(ImageBuildError):
    """Raised when orchestrator configuration is invalid or incomplete.

    Common Causes:
        - Malformed YAML config file
        - The Windows build-script directory does not exist
        - Unknown cloud provider name
    """

    def __init__(
        self,
        message: str,
        error_code: str = "CONFIG_ERROR",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)


# =============================================================================
# Command Error
# =============================================================================
# The AWS provider talks to the cloud through the `aws` and `cdk` CLIs.
# A non-zero exit is wrapped here so callers can translate it into the
# domain error for their phase (ProvisionError, BuildTriggerError, ...).
# =============================================================================
class CommandError(ImageBuildError):
    """Raised when an external command exits with a non-zero status.

    Attributes:
        command: The argv that was executed.
        returncode: Process exit status (-1 when the process timed out).
        stderr: Captured standard error, for diagnosis.
    """

    def __init__(
        self,
        message: str,
        command: Sequence[str],
        returncode: int,
        stderr: str = "",
        error_code: str = "COMMAND_FAILED",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details["command"] = list(command)
        enriched_details["returncode"] = returncode
        if stderr:
            enriched_details["stderr"] = stderr

        super().__init__(message=message, error_code=error_code, details=enriched_details)

        self.command = list(command)
        self.returncode = returncode
        self.stderr = stderr


# =============================================================================
# Provision Error
# =============================================================================
class ProvisionError(ImageBuildError):
    """Raised when the infra toolkit reports a non-success status.

    No partial-state reconciliation is attempted: a failed create surfaces
    immediately and the teardown guard is relied on for cleanup.

    Attributes:
        stack_pattern: The stack selector the failing operation targeted.
    """

    def __init__(
        self,
        message: str,
        stack_pattern: str,
        error_code: str = "PROVISION_FAILED",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details["stack_pattern"] = stack_pattern

        super().__init__(message=message, error_code=error_code, details=enriched_details)

        self.stack_pattern = stack_pattern


# =============================================================================
# Build Trigger Error
# =============================================================================
class BuildTriggerError(ImageBuildError):
    """Raised when the managed build service rejects a start request.

    There is no retry and no partial-build bookkeeping: one rejected start
    fails the whole run.
    """

    def __init__(
        self,
        message: str,
        project_name: str,
        error_code: str = "BUILD_START_FAILED",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details["project_name"] = project_name

        super().__init__(message=message, error_code=error_code, details=enriched_details)

        self.project_name = project_name


# =============================================================================
# Instance Not Ready Error
# =============================================================================
# The single explicit hard-timeout path of the Windows trigger. No fallback
# instance is provisioned.
# =============================================================================
class InstanceNotReadyError(ImageBuildError):
    """Raised when the Windows instance never reports an Online agent.

    Attributes:
        instance_id: The instance that was polled, or None when no instance
            carried the run's tag.
        attempts: Number of readiness checks made.
    """

    def __init__(
        self,
        message: str,
        instance_id: Optional[str] = None,
        attempts: int = 0,
        error_code: str = "INSTANCE_NOT_READY",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details["instance_id"] = instance_id
        enriched_details["attempts"] = attempts

        super().__init__(message=message, error_code=error_code, details=enriched_details)

        self.instance_id = instance_id
        self.attempts = attempts


# =============================================================================
# Artifact Timeout Error
# =============================================================================
class ArtifactTimeoutError(ImageBuildError):
    """Raised when expected image tags never appear in a registry repository.

    Attributes:
        repository: Registry repository that was watched.
        attempts: Number of listing fetches made.
        missing_tags: Tags absent from the last listing that was fetched.
    """

    def __init__(
        self,
        message: str,
        repository: str,
        attempts: int = 0,
        missing_tags: Optional[Sequence[str]] = None,
        error_code: str = "ARTIFACT_TIMEOUT",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details["repository"] = repository
        enriched_details["attempts"] = attempts
        enriched_details["missing_tags"] = list(missing_tags or [])

        super().__init__(message=message, error_code=error_code, details=enriched_details)

        self.repository = repository
        self.attempts = attempts
        self.missing_tags = list(missing_tags or [])


# =============================================================================
# Unsupported Action Error
# =============================================================================
# Unlike every other failure this one exits 0; the dispatcher logs it as a
# warning. Kept as an exception type so callers that want strictness can
# still raise and catch it.
# =============================================================================
class UnsupportedActionError(ImageBuildError):
    """Raised for an unrecognized action keyword."""

    def __init__(
        self,
        message: str,
        action: str,
        error_code: str = "UNSUPPORTED_ACTION",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details["action"] = action

        super().__init__(message=message, error_code=error_code, details=enriched_details)

        self.action = action
