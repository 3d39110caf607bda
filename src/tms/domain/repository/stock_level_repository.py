"""Abstract repository for StockLevel snapshots."""

from __future__ import annotations

from abc import ABC, abstractmethod

from tms.domain.model.stock_level import StockLevel
from tms.domain.model.value_objects import StockKey


class StockLevelRepository(ABC):

    @abstractmethod
    def get(self, key: StockKey) -> StockLevel | None:
        """Return the level for *key*, or None if nothing was ever stocked.

        Implementations backing a unit of work remember the version read
        so a concurrent change is detected at commit.
        """

    @abstractmethod
    def list_all(
        self,
        location_id: str | None = None,
        product_id: str | None = None,
    ) -> list[StockLevel]:
        """Return stock levels, optionally filtered."""

    @abstractmethod
    def save(self, level: StockLevel) -> None:
        """Stage a new or updated level."""
