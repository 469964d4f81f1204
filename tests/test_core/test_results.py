"""
Tests for cloudrelease.core.results and cloudrelease.core.deadline
====================================================================
"""

import pytest

from cloudrelease.core.deadline import Deadline
from cloudrelease.core.exceptions import CloudAPIError, DeadlineExceededError
from cloudrelease.core.results import HardFailure, Ok, SoftFailure


class TestResults:
    """Tests for the three handler outcomes."""

    def test_ok_is_success(self) -> None:
        assert Ok(response={"a": 1}).success is True

    def test_soft_failure_is_not_success(self) -> None:
        result = SoftFailure(message="nope")
        assert result.success is False
        assert result.response is None

    def test_hard_failure_retryable_follows_error(self) -> None:
        assert HardFailure(error=DeadlineExceededError("AssumeRole")).retryable is True
        assert HardFailure(error=CloudAPIError("x", operation="y")).retryable is False

    def test_hard_failure_plain_exception(self) -> None:
        """Unexpected exceptions are never retryable."""
        assert HardFailure(error=RuntimeError("boom")).retryable is False


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


class TestDeadline:
    """Tests for Deadline."""

    def test_unbounded_never_expires(self) -> None:
        deadline = Deadline.none()
        deadline.check("AssumeRole")
        assert deadline.remaining() is None
        assert deadline.is_set is False

    def test_remaining_counts_down(self) -> None:
        clock = FakeClock()
        deadline = Deadline(10, clock=clock)
        clock.now += 4
        assert deadline.remaining() == pytest.approx(6)

    def test_check_raises_after_expiry(self) -> None:
        clock = FakeClock()
        deadline = Deadline(5, clock=clock)
        deadline.check("HeadObject")
        clock.now += 5
        with pytest.raises(DeadlineExceededError) as exc_info:
            deadline.check("HeadObject")
        assert exc_info.value.operation == "HeadObject"

    def test_zero_deadline_is_already_expired(self) -> None:
        assert Deadline(0).expired() is True

    def test_remaining_never_negative(self) -> None:
        clock = FakeClock()
        deadline = Deadline(1, clock=clock)
        clock.now += 10
        assert deadline.remaining() == 0.0
