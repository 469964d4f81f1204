"""
cloudrelease.core.exceptions - Custom Exception Hierarchy
===========================================================

Components raise and catch specific exception types that carry contextual
information instead of bare strings.

Exception Hierarchy:
    CloudReleaseError (base)
        ├── OperatorError              - Operator-facing, pipeline fails normally
        │     ├── ConfigurationError       - Missing/invalid request config
        │     ├── MissingCredentialsError  - No root credentials in env
        │     ├── RoleSessionNameError     - No usable role session name
        │     ├── RoleAssumptionError      - STS refused the role assumption
        │     ├── AccountNotFoundError     - Deploy account alias not found
        │     ├── UnsupportedNeedError     - Build declared an unknown need
        │     ├── StateExistenceError      - Remote state presence mismatch
        │     ├── PluginPathError          - Plugin path outside the namespace
        │     └── ArtifactNotFoundError    - Release/plugin bytes unavailable
        └── InfrastructureError        - Abnormal termination of the request
              ├── SessionConstructionError - SDK session could not be built
              ├── CloudAPIError            - Unexpected AWS API error
              ├── DeadlineExceededError    - Per-request deadline exceeded
              └── ArtifactError            - Release bundle could not be processed

Error Handling Flow:
    Component raises OperatorError
        → BaseHandler catches it
        → SoftFailure(message): diagnostic written, pipeline fails normally
    Component raises InfrastructureError (or anything unexpected)
        → BaseHandler catches it
        → HardFailure(error): host treats it as abnormal termination
"""

from __future__ import annotations

from typing import Any, Optional


# =============================================================================
# Base Exception
# =============================================================================
class CloudReleaseError(Exception):
    """Base exception for all CloudRelease errors.

    Attributes:
        message: Human-readable error description. For operator-facing errors
            this is exactly the diagnostic text shown to the operator.
        error_code: Machine-readable error code (UPPER_SNAKE_CASE).
        details: Arbitrary dict with additional debugging context.
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
        """Serialize this exception to a dictionary (for structured logs)."""
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
# Operator-Facing Errors
# =============================================================================
# Bad input or a state the operator can fix. These never terminate the host
# abnormally: the handler turns them into a SoftFailure.
# =============================================================================
class OperatorError(CloudReleaseError):
    """Raised for failures the operator can act on."""

    def __init__(
        self,
        message: str,
        error_code: str = "OPERATOR_ERROR",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)


class ConfigurationError(OperatorError):
    """Raised when the request configuration is missing or invalid.

    Example:
        >>> raise ConfigurationError(
        ...     message="config.params.team must be set and be a string value",
        ...     error_code="MISSING_TEAM",
        ... )
    """

    def __init__(
        self,
        message: str,
        error_code: str = "CONFIG_ERROR",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)


class MissingCredentialsError(OperatorError):
    """Raised when the root access key id or secret key is missing."""

    def __init__(
        self,
        message: str = "AWS_ACCESS_KEY_ID or AWS_SECRET_ACCESS_KEY not found in env",
        error_code: str = "MISSING_CREDENTIALS",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)


class RoleSessionNameError(OperatorError):
    """Raised when no usable role session name can be derived from the env."""

    def __init__(
        self,
        message: str,
        error_code: str = "INVALID_ROLE_SESSION_NAME",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)


class RoleAssumptionError(OperatorError):
    """Raised when STS refuses to let the caller assume a role.

    Attributes:
        role_arn: The role that could not be assumed.
    """

    def __init__(
        self,
        message: str,
        role_arn: str,
        error_code: str = "ROLE_ASSUMPTION_FAILED",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details["role_arn"] = role_arn

        super().__init__(message=message, error_code=error_code, details=enriched_details)

        self.role_arn = role_arn


class AccountNotFoundError(OperatorError):
    """Raised when no organization account carries the expected alias.

    Attributes:
        account_name: The alias that was looked up.
    """

    def __init__(
        self,
        account_name: str,
        error_code: str = "ACCOUNT_NOT_FOUND",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details["account_name"] = account_name

        super().__init__(
            message=f'account "{account_name}" not found',
            error_code=error_code,
            details=enriched_details,
        )

        self.account_name = account_name


class UnsupportedNeedError(OperatorError):
    """Raised when a build declares a need the plugin cannot satisfy.

    The message text is part of the host contract and must not change.
    """

    def __init__(
        self,
        need: str,
        build_id: str,
        error_code: str = "UNSUPPORTED_NEED",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details["need"] = need
        enriched_details["build_id"] = build_id

        super().__init__(
            message=f'unable to satisfy "{need}" need for "{build_id}" build',
            error_code=error_code,
            details=enriched_details,
        )

        self.need = need
        self.build_id = build_id


class StateExistenceError(OperatorError):
    """Raised when remote state presence contradicts the operator's expectation.

    Attributes:
        state_key: The remote state object key that was checked.
        expected: Whether the state was expected to exist.
    """

    def __init__(
        self,
        message: str,
        state_key: str,
        expected: bool,
        error_code: str = "STATE_EXISTENCE_MISMATCH",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details["state_key"] = state_key
        enriched_details["expected"] = expected

        super().__init__(message=message, error_code=error_code, details=enriched_details)

        self.state_key = state_key
        self.expected = expected


class PluginPathError(OperatorError):
    """Raised when a plugin path inside a bundle is outside the plugin namespace."""

    def __init__(
        self,
        path: str,
        expected_prefix: str,
        error_code: str = "INVALID_PLUGIN_PATH",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details["path"] = path
        enriched_details["expected_prefix"] = expected_prefix

        super().__init__(
            message=f'expected path "{path}" to start with "{expected_prefix}"',
            error_code=error_code,
            details=enriched_details,
        )

        self.path = path


class ArtifactNotFoundError(OperatorError):
    """Raised when a release or plugin cannot be found in any location."""

    def __init__(
        self,
        message: str,
        error_code: str = "ARTIFACT_NOT_FOUND",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)


# =============================================================================
# Infrastructure Errors
# =============================================================================
# Something is broken underneath us. These propagate to the host as a
# HardFailure, distinct from a normal failed-pipeline outcome.
# =============================================================================
class InfrastructureError(CloudReleaseError):
    """Raised for failures of the platform rather than of the request.

    Attributes:
        retryable: Whether the caller may retry the whole request as-is.
    """

    def __init__(
        self,
        message: str,
        error_code: str = "INFRASTRUCTURE_ERROR",
        details: Optional[dict[str, Any]] = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)
        self.retryable = retryable


class SessionConstructionError(InfrastructureError):
    """Raised when an SDK session cannot be built from otherwise valid credentials."""

    def __init__(
        self,
        message: str,
        error_code: str = "SESSION_CONSTRUCTION_FAILED",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)


class CloudAPIError(InfrastructureError):
    """Raised when a cloud API call fails.

    Adapters translate SDK exceptions into this type at the boundary, keeping
    the provider's error code so callers can pick out the few "not found"
    codes that select a create/initialize/absent branch.

    Attributes:
        operation: The API operation that failed (e.g., "DescribeRepositories").
        aws_code: The provider error code (e.g., "RepositoryNotFoundException").

    Example:
        >>> try:
        ...     registry.get_lifecycle_policy("team-app")
        ... except CloudAPIError as e:
        ...     if not e.is_not_found("LifecyclePolicyNotFoundException"):
        ...         raise
    """

    def __init__(
        self,
        message: str,
        operation: str,
        aws_code: str = "",
        error_code: str = "CLOUD_API_ERROR",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details["operation"] = operation
        enriched_details["aws_code"] = aws_code

        super().__init__(message=message, error_code=error_code, details=enriched_details)

        self.operation = operation
        self.aws_code = aws_code

    def is_not_found(self, *codes: str) -> bool:
        """Check whether this error carries one of the given not-found codes."""
        return self.aws_code in codes


class DeadlineExceededError(InfrastructureError):
    """Raised when a request runs past its deadline before a blocking call.

    Always retryable: nothing about the request itself was wrong.
    """

    def __init__(
        self,
        operation: str,
        error_code: str = "DEADLINE_EXCEEDED",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details["operation"] = operation

        super().__init__(
            message=f"request deadline exceeded before {operation}",
            error_code=error_code,
            details=enriched_details,
            retryable=True,
        )

        self.operation = operation


class ArtifactError(InfrastructureError):
    """Raised when a release bundle cannot be packaged or unpacked."""

    def __init__(
        self,
        message: str,
        error_code: str = "ARTIFACT_ERROR",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)
