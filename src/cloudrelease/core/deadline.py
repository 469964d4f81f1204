"""
cloudrelease.core.deadline - Per-Request Deadline
===================================================

A monotonic deadline threaded through every component for one request.
Components call ``check(operation)`` immediately before each blocking cloud
call; once the deadline has passed, DeadlineExceededError is raised instead
of making the call.

Usage:
    >>> deadline = Deadline(30.0)
    >>> deadline.check("DescribeRepositories")
    >>> deadline.remaining()
    29.99...

    # No deadline at all:
    >>> Deadline.none().check("anything")
"""

from __future__ import annotations

import time
from typing import Callable, Optional

from cloudrelease.core.exceptions import DeadlineExceededError


class Deadline:
    """A point in (monotonic) time after which no blocking call may start.

    Attributes:
        _expires_at: Monotonic timestamp of expiry, or None for no deadline.
        _clock: Time source, injectable for tests.
    """

    def __init__(
        self,
        seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._clock = clock
        self._expires_at = None if seconds is None else clock() + seconds

    @classmethod
    def none(cls) -> Deadline:
        """A deadline that never expires."""
        return cls(None)

    @property
    def is_set(self) -> bool:
        return self._expires_at is not None

    def remaining(self) -> Optional[float]:
        """Seconds left before expiry (never negative), or None if unbounded."""
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - self._clock())

    def expired(self) -> bool:
        return self._expires_at is not None and self._clock() >= self._expires_at

    def check(self, operation: str) -> None:
        """Raise DeadlineExceededError if the deadline has passed.

        Args:
            operation: Name of the blocking call about to be made.
        """
        if self.expired():
            raise DeadlineExceededError(operation=operation)

    def __repr__(self) -> str:
        return f"Deadline(remaining={self.remaining()!r})"
