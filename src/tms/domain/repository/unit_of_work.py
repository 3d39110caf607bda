"""Abstract unit of work.

Groups every repository write of one operation into a single atomic
commit. Leaving the ``with`` block without committing rolls everything
back, whatever the exit path.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from tms.domain.repository.movement_repository import MovementRepository
from tms.domain.repository.stock_level_repository import StockLevelRepository
from tms.domain.repository.transfer_repository import TransferRepository


class UnitOfWork(ABC):

    transfers: TransferRepository
    movements: MovementRepository
    stock_levels: StockLevelRepository

    def __enter__(self) -> UnitOfWork:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.rollback()

    @abstractmethod
    def commit(self) -> None:
        """Apply all staged changes atomically.

        Raises ConcurrencyConflictError if anything this unit of work read
        was changed by another commit, PersistenceError if the store fails.
        Nothing is applied in either case.
        """

    @abstractmethod
    def rollback(self) -> None:
        """Discard all staged changes. Safe to call after commit."""
