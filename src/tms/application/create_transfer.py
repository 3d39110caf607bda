"""Application service: Create Transfer use case.

Orchestrates the flow between the catalog, the stock projection and the
Transfer aggregate.

The header and the lines are written in two separate commits. If the
second fails, a compensation deletes the header; if that keeps failing,
the header is flagged as orphaned for later cleanup.
"""

from __future__ import annotations

import logging
from typing import Callable

from tms.application.context import RequestContext
from tms.application.dto import TransferDTO, TransferLineSpec, transfer_to_dto
from tms.application.saga import Compensation
from tms.domain.exceptions import (
    DomainException,
    EntityNotFoundError,
    InsufficientStockError,
    Shortage,
    ValidationError,
)
from tms.domain.model.transfer import Transfer, TransferLine
from tms.domain.model.value_objects import Quantity, StockKey
from tms.domain.repository.catalog import CatalogLookup
from tms.domain.repository.unit_of_work import UnitOfWork
from tms.domain.service.stock_projector import StockProjector

logger = logging.getLogger(__name__)


class CreateTransferHandler:

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        catalog: CatalogLookup,
        compensation_attempts: int = 3,
    ) -> None:
        self._uow_factory = uow_factory
        self._catalog = catalog
        self._compensation_attempts = compensation_attempts

    def handle(
        self,
        ctx: RequestContext,
        origin_id: str,
        destination_id: str,
        line_specs: list[TransferLineSpec],
        notes: str = "",
    ) -> TransferDTO:
        """Create a new pending transfer.

        Steps:
        1. Resolve each line against the catalog (fail if not found).
        2. Split lot-tracked lines without an explicit lot across lots, FEFO.
        3. Let the Transfer aggregate validate all creation rules.
        4. Soft-check origin availability (dispatch re-checks for real).
        5. Commit the header, then the lines; compensate on failure.
        """
        with self._uow_factory() as uow:
            projector = StockProjector.over(uow)
            lines = self._resolve_lines(projector, origin_id, line_specs)
            transfer = Transfer.create(
                organization_id=ctx.organization_id,
                origin_id=origin_id,
                destination_id=destination_id,
                created_by=ctx.actor,
                lines=lines,
                notes=notes,
            )
            self._check_availability(projector, transfer)

        self._write_header(transfer)
        try:
            self._write_lines(transfer)
        except DomainException:
            logger.warning(
                "Writing lines of transfer #%s failed; compensating", transfer.id
            )
            self._compensate(transfer.id)  # type: ignore[arg-type]
            raise

        logger.info(
            "Transfer #%s created: %s -> %s, %d line(s), by %s",
            transfer.id, transfer.origin_id, transfer.destination_id,
            len(transfer.lines), ctx.actor,
        )
        return transfer_to_dto(transfer)

    # --- Steps ----------------------------------------------------------------

    def _resolve_lines(
        self,
        projector: StockProjector,
        origin_id: str,
        line_specs: list[TransferLineSpec],
    ) -> list[TransferLine]:
        lines: list[TransferLine] = []
        for spec in line_specs:
            Quantity(spec.quantity)
            product = self._catalog.get_product(spec.product_id)
            if product is None:
                raise EntityNotFoundError(f"Product not found: '{spec.product_id}'")

            if spec.lot_id is not None:
                lot = self._catalog.get_lot(spec.lot_id)
                if lot is None:
                    raise EntityNotFoundError(f"Lot not found: '{spec.lot_id}'")
                if lot.product_id != product.id:
                    raise ValidationError(
                        f"Lot '{lot.id}' belongs to product '{lot.product_id}', "
                        f"not '{product.id}'"
                    )
                lines.append(TransferLine(None, product.id, spec.quantity, lot_id=lot.id))
                continue

            if product.lot_tracked and origin_id:
                allocations = projector.suggest_lots(
                    origin_id, product.id, spec.quantity, self._catalog.get_lot
                )
                allocated = sum(qty for _, qty in allocations)
                if allocated < spec.quantity:
                    raise InsufficientStockError(
                        [Shortage(None, product.id, None, spec.quantity, allocated)]
                    )
                lines.extend(
                    TransferLine(None, product.id, qty, lot_id=lot_id)
                    for lot_id, qty in allocations
                )
                continue

            lines.append(TransferLine(None, product.id, spec.quantity))
        return lines

    @staticmethod
    def _check_availability(projector: StockProjector, transfer: Transfer) -> None:
        shortages: list[Shortage] = []
        for line in transfer.lines:
            available = projector.available(transfer.origin_key(line))
            if line.requested > available:
                shortages.append(
                    Shortage(None, line.product_id, line.lot_id, line.requested, available)
                )
        if shortages:
            raise InsufficientStockError(shortages)

    def _write_header(self, transfer: Transfer) -> None:
        with self._uow_factory() as uow:
            uow.transfers.add_header(transfer)
            uow.commit()

    def _write_lines(self, transfer: Transfer) -> None:
        with self._uow_factory() as uow:
            transfer.submit()
            uow.transfers.save(transfer)
            uow.commit()

    def _compensate(self, transfer_id: int) -> None:
        def delete_header() -> None:
            with self._uow_factory() as uow:
                uow.transfers.delete(transfer_id)
                uow.commit()

        def flag_orphaned() -> None:
            with self._uow_factory() as uow:
                header = uow.transfers.get_by_id(transfer_id)
                if header is None:
                    return
                header.orphaned = True
                header.touch()
                uow.transfers.save(header)
                uow.commit()

        Compensation(
            description=f"delete header of transfer #{transfer_id}",
            action=delete_header,
            fallback=flag_orphaned,
            attempts=self._compensation_attempts,
        ).run()
