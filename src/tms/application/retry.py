"""Bounded retry for optimistic-concurrency conflicts.

Only ConcurrencyConflictError is retried: the whole unit-of-work
operation is run again from a fresh snapshot. Every other error goes
straight to the caller.
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from typing import Callable, TypeVar

from tms.domain.exceptions import ConcurrencyConflictError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    attempts: int = 5
    base_delay: float = 0.01

    def delay(self, attempt: int) -> float:
        """Exponential backoff with jitter for the given 1-based attempt."""
        backoff = self.base_delay * (2 ** (attempt - 1))
        return backoff + random.uniform(0, self.base_delay)


def run_with_retry(
    operation: Callable[[], T],
    policy: RetryPolicy,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    attempt = 1
    while True:
        try:
            return operation()
        except ConcurrencyConflictError as exc:
            if attempt >= policy.attempts:
                logger.warning("Giving up after %d conflicting attempts: %s", attempt, exc)
                raise
            delay = policy.delay(attempt)
            logger.warning(
                "Concurrent update (attempt %d/%d), retrying in %.3fs: %s",
                attempt, policy.attempts, delay, exc,
            )
            sleep(delay)
            attempt += 1
