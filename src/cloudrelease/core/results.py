"""
cloudrelease.core.results - Handler Outcomes
==============================================

Every hook operation returns exactly one of three outcomes:

    Ok(response)                 → the request succeeded
    SoftFailure(message, ...)    → operator-facing failure; the pipeline fails
                                   normally and ``message`` is shown as-is
    HardFailure(error)           → infrastructure failure; the host should
                                   treat it as abnormal termination

Usage:
    >>> result = plugin.configure_release(request)
    >>> if isinstance(result, SoftFailure):
    ...     print(result.message)
    >>> result.success
    False
"""

from __future__ import annotations

from typing import Any, Optional, Union

from pydantic import BaseModel, Field


class Ok(BaseModel):
    """The operation completed and ``response`` is fully populated."""

    response: Any = Field(description="The populated response model")

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    @property
    def success(self) -> bool:
        return True


class SoftFailure(BaseModel):
    """The operation failed for a reason the operator can fix.

    Attributes:
        message: Human-readable diagnostic, already written to the
            diagnostic stream.
        response: Whatever had been populated before the failure.
        error: The operator-facing error behind the failure.
    """

    message: str = Field(description="Diagnostic shown to the operator")
    response: Any = Field(default=None, description="Partially populated response")
    error: Optional[Exception] = Field(default=None, description="Underlying error")

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    @property
    def success(self) -> bool:
        return False


class HardFailure(BaseModel):
    """The operation hit an infrastructure failure."""

    error: Exception = Field(description="The infrastructure error")

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    @property
    def success(self) -> bool:
        return False

    @property
    def retryable(self) -> bool:
        """Whether the whole request may be retried unchanged."""
        return bool(getattr(self.error, "retryable", False))


HandlerResult = Union[Ok, SoftFailure, HardFailure]
