"""Application services: Reserve / Release Stock use cases.

Reservations hold units back from availability without moving them, so
they never touch the ledger.
"""

from __future__ import annotations

import logging
from typing import Callable

from tms.application.context import RequestContext
from tms.application.dto import StockLevelDTO, level_to_dto
from tms.application.retry import RetryPolicy, run_with_retry
from tms.domain.model.value_objects import Quantity, StockKey
from tms.domain.repository.unit_of_work import UnitOfWork
from tms.domain.service.stock_projector import StockProjector

logger = logging.getLogger(__name__)


class ReserveStockHandler:

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._retry_policy = retry_policy or RetryPolicy()

    def handle(
        self,
        ctx: RequestContext,
        location_id: str,
        product_id: str,
        quantity: int,
        lot_id: str | None = None,
    ) -> StockLevelDTO:
        Quantity(quantity)
        key = StockKey(location_id, product_id, lot_id)
        level = run_with_retry(lambda: self._reserve(key, quantity), self._retry_policy)
        logger.info("Reserved %d at %s for %s", quantity, key, ctx.actor)
        return level

    def _reserve(self, key: StockKey, quantity: int) -> StockLevelDTO:
        with self._uow_factory() as uow:
            level = StockProjector.over(uow).reserve(key, quantity)
            uow.commit()
        return level_to_dto(level)


class ReleaseStockHandler:

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._retry_policy = retry_policy or RetryPolicy()

    def handle(
        self,
        ctx: RequestContext,
        location_id: str,
        product_id: str,
        quantity: int,
        lot_id: str | None = None,
    ) -> StockLevelDTO:
        Quantity(quantity)
        key = StockKey(location_id, product_id, lot_id)
        level = run_with_retry(lambda: self._release(key, quantity), self._retry_policy)
        logger.info("Released %d at %s for %s", quantity, key, ctx.actor)
        return level

    def _release(self, key: StockKey, quantity: int) -> StockLevelDTO:
        with self._uow_factory() as uow:
            level = StockProjector.over(uow).release(key, quantity)
            uow.commit()
        return level_to_dto(level)
