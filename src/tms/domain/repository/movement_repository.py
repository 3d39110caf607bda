"""Abstract repository for the append-only stock ledger."""

from __future__ import annotations

from abc import ABC, abstractmethod

from tms.domain.model.movement import MovementKey, StockMovement
from tms.domain.model.value_objects import StockKey


class MovementRepository(ABC):

    @abstractmethod
    def next_id(self) -> int:
        """Reserve a unique movement ID."""

    @abstractmethod
    def append(self, movement: StockMovement) -> None:
        """Add a movement. There is no update and no delete."""

    @abstractmethod
    def find_by_idempotency_key(self, key: MovementKey) -> StockMovement | None:
        """Return the movement already recorded under *key*, or None."""

    @abstractmethod
    def find(
        self,
        key: StockKey | None = None,
        source_id: str | None = None,
    ) -> list[StockMovement]:
        """Return movements in ledger order, optionally filtered."""
