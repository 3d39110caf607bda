"""Application service: Adjust Stock use case.

Seeds or corrects on-hand stock outside of any transfer. The adjustment
is a regular ledger movement, so the ledger stays the single source of
truth for on-hand.
"""

from __future__ import annotations

import logging
import uuid
from typing import Callable

from tms.application.context import RequestContext
from tms.application.dto import StockLevelDTO, level_to_dto
from tms.application.retry import RetryPolicy, run_with_retry
from tms.domain.exceptions import InsufficientStockError, Shortage, ValidationError
from tms.domain.model.value_objects import Direction, SourceKind, StockKey
from tms.domain.repository.unit_of_work import UnitOfWork
from tms.domain.service.stock_projector import StockProjector

logger = logging.getLogger(__name__)


class AdjustStockHandler:

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
        reason: str = "",
        lot_id: str | None = None,
    ) -> StockLevelDTO:
        """Add (positive) or remove (negative) units at one stock key."""
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity == 0:
            raise ValidationError("Adjustment quantity must be a non-zero integer")

        key = StockKey(location_id, product_id, lot_id)
        # Every adjustment is a distinct event, even with identical arguments.
        source_id = uuid.uuid4().hex
        return run_with_retry(
            lambda: self._adjust(ctx, key, quantity, reason, source_id),
            self._retry_policy,
        )

    def _adjust(
        self,
        ctx: RequestContext,
        key: StockKey,
        quantity: int,
        reason: str,
        source_id: str,
    ) -> StockLevelDTO:
        with self._uow_factory() as uow:
            projector = StockProjector.over(uow)
            direction = Direction.IN if quantity > 0 else Direction.OUT

            if direction is Direction.OUT:
                available = projector.available(key)
                if -quantity > available:
                    raise InsufficientStockError(
                        [Shortage(None, key.product_id, key.lot_id, -quantity, available)]
                    )

            projector.post(
                key, direction, abs(quantity), SourceKind.ADJUSTMENT,
                source_id, ctx.actor, note=reason,
            )
            level = projector.level(key)
            uow.commit()

        logger.info("Stock at %s adjusted by %+d by %s: %s", key, quantity, ctx.actor, reason)
        return level_to_dto(level)
