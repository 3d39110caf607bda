"""Compensating actions for multi-step writes.

When a later step of a multi-store write fails, the steps already
committed are undone by an explicit compensation rather than relying on
a cross-store transaction. A compensation is retried and logged; if it
still fails, its fallback records the inconsistency so it can be cleaned
up later instead of going unnoticed.
"""

from __future__ import annotations

import logging
from typing import Callable

from tms.domain.exceptions import DomainException

logger = logging.getLogger(__name__)


class Compensation:

    def __init__(
        self,
        description: str,
        action: Callable[[], None],
        fallback: Callable[[], None] | None = None,
        attempts: int = 3,
    ) -> None:
        self._description = description
        self._action = action
        self._fallback = fallback
        self._attempts = max(1, attempts)

    def run(self) -> bool:
        """Run the compensation; return True once it succeeded.

        Returns False when every attempt failed, after trying the fallback.
        """
        for attempt in range(1, self._attempts + 1):
            try:
                self._action()
            except DomainException as exc:
                logger.warning(
                    "Compensation '%s' failed (attempt %d/%d): %s",
                    self._description, attempt, self._attempts, exc,
                )
            else:
                logger.info("Compensation '%s' completed", self._description)
                return True

        logger.error("Compensation '%s' exhausted its attempts", self._description)
        if self._fallback is not None:
            try:
                self._fallback()
            except DomainException as exc:
                logger.error(
                    "Fallback for compensation '%s' failed as well: %s",
                    self._description, exc,
                )
            else:
                logger.error(
                    "Compensation '%s' fell back; manual cleanup required",
                    self._description,
                )
        return False
