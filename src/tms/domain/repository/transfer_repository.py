"""Abstract repository for the Transfer aggregate.

Headers and lines are separate logical stores; ``add_header`` writes a
header alone so a caller can commit the lines in a later unit of work.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from tms.domain.model.transfer import Transfer
from tms.domain.model.transfer_state import TransferStatus


class TransferRepository(ABC):

    @abstractmethod
    def get_by_id(self, transfer_id: int) -> Transfer | None:
        """Return a transfer (header and lines) by its ID, or None."""

    @abstractmethod
    def list_all(
        self,
        organization_id: str,
        status: TransferStatus | None = None,
        location_id: str | None = None,
        include_orphaned: bool = False,
    ) -> list[Transfer]:
        """Return the organization's transfers, oldest first."""

    @abstractmethod
    def add_header(self, transfer: Transfer) -> None:
        """Persist a new header, assigning its ID. Lines are not written."""

    @abstractmethod
    def save(self, transfer: Transfer) -> None:
        """Persist an updated header together with its lines."""

    @abstractmethod
    def delete(self, transfer_id: int) -> None:
        """Remove a header and its lines."""
