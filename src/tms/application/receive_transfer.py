"""Application service: Receive Transfer use case.

Credits received units against outstanding line quantities, clamping any
excess, and records one IN movement at the destination per line for the
accepted amount only. Receipts may be partial and repeated; each one is
identified by a receipt id so a replayed receipt changes nothing.
"""

from __future__ import annotations

import logging
import uuid
from typing import Callable

from tms.application.context import RequestContext
from tms.application.dto import (
    ReceiptDelta,
    ReceiptLineResult,
    ReceiptResult,
    transfer_to_dto,
)
from tms.application.retry import RetryPolicy, run_with_retry
from tms.domain.exceptions import EntityNotFoundError, ValidationError
from tms.domain.model.value_objects import Direction, Quantity, SourceKind
from tms.domain.repository.unit_of_work import UnitOfWork
from tms.domain.service.stock_projector import StockProjector

logger = logging.getLogger(__name__)


class ReceiveTransferHandler:

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
        transfer_id: int,
        deltas: list[ReceiptDelta],
        receipt_id: str | None = None,
    ) -> ReceiptResult:
        """Receive units for one or more lines of a dispatched transfer.

        Args:
            transfer_id: The transfer being received.
            deltas: Newly received units per line; each line at most once.
            receipt_id: Caller-chosen identifier of this receipt. Resending
                the same id is a no-op. Generated when omitted.
        """
        if not deltas:
            raise ValidationError("Must specify at least one line to receive")
        seen: set[int] = set()
        for delta in deltas:
            Quantity(delta.quantity)
            if delta.line_id in seen:
                raise ValidationError(f"Line #{delta.line_id} appears more than once")
            seen.add(delta.line_id)

        receipt_id = receipt_id or uuid.uuid4().hex
        return run_with_retry(
            lambda: self._receive(ctx, transfer_id, deltas, receipt_id),
            self._retry_policy,
        )

    def handle_all(
        self,
        ctx: RequestContext,
        transfer_id: int,
        receipt_id: str | None = None,
    ) -> ReceiptResult:
        """Receive everything still outstanding on every line."""
        receipt_id = receipt_id or uuid.uuid4().hex
        return run_with_retry(
            lambda: self._receive(ctx, transfer_id, None, receipt_id),
            self._retry_policy,
        )

    def _receive(
        self,
        ctx: RequestContext,
        transfer_id: int,
        deltas: list[ReceiptDelta] | None,
        receipt_id: str,
    ) -> ReceiptResult:
        with self._uow_factory() as uow:
            transfer = uow.transfers.get_by_id(transfer_id)
            if transfer is None or transfer.organization_id != ctx.organization_id:
                raise EntityNotFoundError(f"Transfer #{transfer_id} not found")

            projector = StockProjector.over(uow)

            recorded = {
                m.line_id: m.quantity
                for m in projector.ledger.history(source_id=str(transfer_id))
                if m.source_kind is SourceKind.TRANSFER_IN and m.reference == receipt_id
            }
            if recorded:
                logger.info(
                    "Receipt %s for transfer #%s already recorded", receipt_id, transfer_id
                )
                if deltas is None:
                    deltas = [ReceiptDelta(line_id, qty) for line_id, qty in recorded.items()]
                return ReceiptResult(
                    transfer=transfer_to_dto(transfer),
                    receipt_id=receipt_id,
                    lines=[
                        ReceiptLineResult(d.line_id, d.quantity, recorded.get(d.line_id, 0))
                        for d in deltas
                    ],
                    replayed=True,
                )

            # None means "everything outstanding", read in this unit of work
            if deltas is None:
                deltas = [
                    ReceiptDelta(line.id, line.outstanding)  # type: ignore[arg-type]
                    for line in transfer.lines
                    if line.outstanding > 0
                ]
            accepted = transfer.receive({d.line_id: d.quantity for d in deltas})

            for line_id, quantity in accepted.items():
                if quantity == 0:
                    continue
                projector.post(
                    transfer.destination_key(transfer.line(line_id)),
                    Direction.IN,
                    quantity,
                    SourceKind.TRANSFER_IN,
                    str(transfer.id),
                    ctx.actor,
                    line_id=line_id,
                    reference=receipt_id,
                )
            uow.transfers.save(transfer)
            uow.commit()

        results = [ReceiptLineResult(d.line_id, d.quantity, accepted[d.line_id]) for d in deltas]
        for result in results:
            if result.clamped:
                logger.warning(
                    "Transfer #%s line #%s: %d of %d received unit(s) exceed the "
                    "outstanding quantity and were not credited",
                    transfer_id, result.line_id, result.clamped, result.requested,
                )
        logger.info(
            "Transfer #%s received %d unit(s) at %s; status %s",
            transfer_id, sum(accepted.values()), transfer.destination_id,
            transfer.status.value,
        )
        return ReceiptResult(
            transfer=transfer_to_dto(transfer),
            receipt_id=receipt_id,
            lines=results,
        )
