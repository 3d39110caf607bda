"""Application services: stock queries.

Read-only views over the stock levels and the ledger. Each query opens
its own unit of work and never commits.
"""

from __future__ import annotations

from typing import Callable

from tms.application.dto import MovementDTO, StockLevelDTO, level_to_dto, movement_to_dto
from tms.domain.model.stock_level import StockLevel
from tms.domain.model.value_objects import Quantity, StockKey
from tms.domain.repository.catalog import CatalogLookup
from tms.domain.repository.unit_of_work import UnitOfWork
from tms.domain.service.stock_projector import LotAvailability, StockProjector


class StockQueryHandler:

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        catalog: CatalogLookup,
    ) -> None:
        self._uow_factory = uow_factory
        self._catalog = catalog

    def available(self, location_id: str, product_id: str, lot_id: str | None = None) -> int:
        with self._uow_factory() as uow:
            return StockProjector.over(uow).available(StockKey(location_id, product_id, lot_id))

    def levels(
        self,
        location_id: str | None = None,
        product_id: str | None = None,
    ) -> list[StockLevelDTO]:
        with self._uow_factory() as uow:
            levels = uow.stock_levels.list_all(location_id=location_id, product_id=product_id)
        return [level_to_dto(level) for level in levels]

    def lots_available(self, location_id: str, product_id: str) -> LotAvailability:
        """Lots with stock, FEFO ordered. Every iteration reads afresh."""
        StockKey(location_id, product_id)

        def load_levels() -> list[StockLevel]:
            with self._uow_factory() as uow:
                return uow.stock_levels.list_all(location_id=location_id, product_id=product_id)

        return LotAvailability(load_levels, self._catalog.get_lot)

    def suggest_lots(
        self,
        location_id: str,
        product_id: str,
        quantity: int,
    ) -> list[tuple[str, int]]:
        Quantity(quantity)
        with self._uow_factory() as uow:
            return StockProjector.over(uow).suggest_lots(
                location_id, product_id, quantity, self._catalog.get_lot
            )

    def movements(
        self,
        location_id: str | None = None,
        product_id: str | None = None,
        lot_id: str | None = None,
        source_id: str | None = None,
    ) -> list[MovementDTO]:
        with self._uow_factory() as uow:
            history = StockProjector.over(uow).ledger.history(source_id=source_id)
        return [
            movement_to_dto(m)
            for m in history
            if (location_id is None or m.key.location_id == location_id)
            and (product_id is None or m.key.product_id == product_id)
            and (lot_id is None or m.key.lot_id == lot_id)
        ]

