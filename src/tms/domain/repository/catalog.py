"""Read-only view of the product and lot catalog.

The catalog is owned elsewhere; the transfer core only asks whether
products and lots exist and when lots expire.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from tms.domain.model.lot import Lot, Product


class CatalogLookup(ABC):

    @abstractmethod
    def get_product(self, product_id: str) -> Product | None:
        """Return a product by its ID, or None if not found."""

    @abstractmethod
    def get_lot(self, lot_id: str) -> Lot | None:
        """Return a lot by its ID, or None if not found."""

    @abstractmethod
    def lots_for_product(self, product_id: str) -> list[Lot]:
        """Return every lot of a product."""
