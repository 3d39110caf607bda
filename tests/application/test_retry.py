"""Unit tests for the optimistic-concurrency retry loop."""

import pytest

from tms.application.retry import RetryPolicy, run_with_retry
from tms.domain.exceptions import ConcurrencyConflictError, ValidationError


class TestRunWithRetry:

    def test_returns_first_success(self):
        assert run_with_retry(lambda: 42, RetryPolicy()) == 42

    def test_retries_conflicts(self):
        attempts = []
        delays = []

        def operation():
            attempts.append(1)
            if len(attempts) < 3:
                raise ConcurrencyConflictError("busy")
            return "ok"

        assert run_with_retry(operation, RetryPolicy(attempts=5), sleep=delays.append) == "ok"
        assert len(attempts) == 3
        assert len(delays) == 2

    def test_gives_up_after_last_attempt(self):
        attempts = []

        def operation():
            attempts.append(1)
            raise ConcurrencyConflictError("busy")

        with pytest.raises(ConcurrencyConflictError):
            run_with_retry(operation, RetryPolicy(attempts=4), sleep=lambda _: None)
        assert len(attempts) == 4

    def test_other_errors_are_not_retried(self):
        attempts = []

        def operation():
            attempts.append(1)
            raise ValidationError("bad")

        with pytest.raises(ValidationError):
            run_with_retry(operation, RetryPolicy(), sleep=lambda _: None)
        assert len(attempts) == 1


class TestRetryPolicy:

    def test_backoff_grows(self):
        policy = RetryPolicy(base_delay=0.01)
        assert 0.01 <= policy.delay(1) <= 0.02
        assert 0.04 <= policy.delay(3) <= 0.05
