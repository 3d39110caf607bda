"""Application service: Dispatch Transfer use case.

Re-checks availability against the current stock levels, records one OUT
movement per line at the origin, and moves the transfer to in transit,
all in a single unit of work. Either every line ships or none does.
"""

from __future__ import annotations

import logging
from typing import Callable

from tms.application.context import RequestContext
from tms.application.dto import TransferDTO, transfer_to_dto
from tms.application.retry import RetryPolicy, run_with_retry
from tms.domain.exceptions import (
    EntityNotFoundError,
    InsufficientStockError,
    InvalidTransitionError,
    Shortage,
)
from tms.domain.model.transfer_state import TransferEvent, TransferStateMachine
from tms.domain.model.value_objects import Direction, SourceKind
from tms.domain.repository.unit_of_work import UnitOfWork
from tms.domain.service.stock_projector import StockProjector

logger = logging.getLogger(__name__)


class DispatchTransferHandler:

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._retry_policy = retry_policy or RetryPolicy()

    def handle(self, ctx: RequestContext, transfer_id: int) -> TransferDTO:
        return run_with_retry(lambda: self._dispatch(ctx, transfer_id), self._retry_policy)

    def _dispatch(self, ctx: RequestContext, transfer_id: int) -> TransferDTO:
        with self._uow_factory() as uow:
            transfer = uow.transfers.get_by_id(transfer_id)
            if transfer is None or transfer.organization_id != ctx.organization_id:
                raise EntityNotFoundError(f"Transfer #{transfer_id} not found")

            # Replays of a completed dispatch are answered, not repeated.
            if transfer.is_dispatched:
                logger.info("Transfer #%s already dispatched; nothing to do", transfer_id)
                return transfer_to_dto(transfer, already_dispatched=True)

            if not TransferStateMachine.can(transfer.status, TransferEvent.DISPATCH):
                raise InvalidTransitionError(
                    transfer_id, transfer.status.value, TransferEvent.DISPATCH.value
                )
            transfer.check_dispatchable()

            projector = StockProjector.over(uow)

            # Phase 1: check every line against *available* stock
            shortages: list[Shortage] = []
            for line in transfer.lines:
                available = projector.available(transfer.origin_key(line))
                if line.requested > available:
                    shortages.append(
                        Shortage(line.id, line.product_id, line.lot_id, line.requested, available)
                    )
            if shortages:
                raise InsufficientStockError(shortages, transfer_id=transfer_id)

            # Phase 2: ledger + projection per line, then the transition
            for line in transfer.lines:
                projector.post(
                    transfer.origin_key(line),
                    Direction.OUT,
                    line.requested,
                    SourceKind.TRANSFER_OUT,
                    str(transfer.id),
                    ctx.actor,
                    line_id=line.id,
                )
            transfer.mark_dispatched()
            uow.transfers.save(transfer)
            uow.commit()

        logger.info(
            "Transfer #%s dispatched from %s: %d unit(s) in transit",
            transfer_id, transfer.origin_id, transfer.total_requested,
        )
        return transfer_to_dto(transfer)
