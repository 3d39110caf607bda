"""Facade over the transfer and stock use cases.

Callers (the CLI, tests, or an HTTP layer) talk to one object instead of
wiring each handler themselves. The service holds no state of its own.
"""

from __future__ import annotations

from typing import Callable

from tms.application.adjust_stock import AdjustStockHandler
from tms.application.cancel_transfer import CancelTransferHandler
from tms.application.context import RequestContext
from tms.application.create_transfer import CreateTransferHandler
from tms.application.delete_transfer import DeleteTransferHandler
from tms.application.dispatch_transfer import DispatchTransferHandler
from tms.application.dto import (
    MovementDTO,
    ReceiptDelta,
    ReceiptResult,
    StockLevelDTO,
    TransferDTO,
    TransferLineSpec,
)
from tms.application.receive_transfer import ReceiveTransferHandler
from tms.application.reconcile_stock import ReconcileStockHandler
from tms.application.reserve_stock import ReleaseStockHandler, ReserveStockHandler
from tms.application.retry import RetryPolicy
from tms.application.show_stock import StockQueryHandler
from tms.application.show_transfer import ListTransfersHandler, ShowTransferHandler
from tms.domain.repository.catalog import CatalogLookup
from tms.domain.repository.unit_of_work import UnitOfWork
from tms.domain.service.stock_projector import Drift, LotAvailability


class TransferService:

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        catalog: CatalogLookup,
        retry_policy: RetryPolicy | None = None,
        compensation_attempts: int = 3,
    ) -> None:
        policy = retry_policy or RetryPolicy()
        self._create = CreateTransferHandler(uow_factory, catalog, compensation_attempts)
        self._dispatch = DispatchTransferHandler(uow_factory, policy)
        self._receive = ReceiveTransferHandler(uow_factory, policy)
        self._cancel = CancelTransferHandler(uow_factory, policy)
        self._delete = DeleteTransferHandler(uow_factory, policy)
        self._show = ShowTransferHandler(uow_factory)
        self._list = ListTransfersHandler(uow_factory)
        self._adjust = AdjustStockHandler(uow_factory, policy)
        self._reserve = ReserveStockHandler(uow_factory, policy)
        self._release = ReleaseStockHandler(uow_factory, policy)
        self._reconcile = ReconcileStockHandler(uow_factory, policy)
        self._stock = StockQueryHandler(uow_factory, catalog)

    # --- Transfers ------------------------------------------------------------

    def create_transfer(
        self,
        ctx: RequestContext,
        origin_id: str,
        destination_id: str,
        lines: list[TransferLineSpec],
        notes: str = "",
    ) -> TransferDTO:
        return self._create.handle(ctx, origin_id, destination_id, lines, notes=notes)

    def dispatch(self, ctx: RequestContext, transfer_id: int) -> TransferDTO:
        return self._dispatch.handle(ctx, transfer_id)

    def receive(
        self,
        ctx: RequestContext,
        transfer_id: int,
        deltas: list[ReceiptDelta],
        receipt_id: str | None = None,
    ) -> ReceiptResult:
        return self._receive.handle(ctx, transfer_id, deltas, receipt_id=receipt_id)

    def receive_all(
        self,
        ctx: RequestContext,
        transfer_id: int,
        receipt_id: str | None = None,
    ) -> ReceiptResult:
        return self._receive.handle_all(ctx, transfer_id, receipt_id=receipt_id)

    def cancel(self, ctx: RequestContext, transfer_id: int) -> TransferDTO:
        return self._cancel.handle(ctx, transfer_id)

    def delete(self, ctx: RequestContext, transfer_id: int) -> None:
        self._delete.handle(ctx, transfer_id)

    def get(self, ctx: RequestContext, transfer_id: int) -> TransferDTO:
        return self._show.handle(ctx, transfer_id)

    def list(
        self,
        ctx: RequestContext,
        status: str | None = None,
        location_id: str | None = None,
        include_orphaned: bool = False,
    ) -> list[TransferDTO]:
        return self._list.handle(
            ctx, status=status, location_id=location_id, include_orphaned=include_orphaned
        )

    # --- Stock ----------------------------------------------------------------

    def available_stock(
        self, location_id: str, product_id: str, lot_id: str | None = None
    ) -> int:
        return self._stock.available(location_id, product_id, lot_id)

    def lots_available(self, location_id: str, product_id: str) -> LotAvailability:
        return self._stock.lots_available(location_id, product_id)

    def suggest_lots(
        self, location_id: str, product_id: str, quantity: int
    ) -> list[tuple[str, int]]:
        return self._stock.suggest_lots(location_id, product_id, quantity)

    def stock_levels(
        self, location_id: str | None = None, product_id: str | None = None
    ) -> list[StockLevelDTO]:
        return self._stock.levels(location_id=location_id, product_id=product_id)

    def movements(
        self,
        location_id: str | None = None,
        product_id: str | None = None,
        lot_id: str | None = None,
        source_id: str | None = None,
    ) -> list[MovementDTO]:
        return self._stock.movements(location_id, product_id, lot_id, source_id)

    def adjust_stock(
        self,
        ctx: RequestContext,
        location_id: str,
        product_id: str,
        quantity: int,
        reason: str = "",
        lot_id: str | None = None,
    ) -> StockLevelDTO:
        return self._adjust.handle(ctx, location_id, product_id, quantity, reason, lot_id)

    def reserve(
        self,
        ctx: RequestContext,
        location_id: str,
        product_id: str,
        quantity: int,
        lot_id: str | None = None,
    ) -> StockLevelDTO:
        return self._reserve.handle(ctx, location_id, product_id, quantity, lot_id)

    def release(
        self,
        ctx: RequestContext,
        location_id: str,
        product_id: str,
        quantity: int,
        lot_id: str | None = None,
    ) -> StockLevelDTO:
        return self._release.handle(ctx, location_id, product_id, quantity, lot_id)

    def reconcile(self, repair: bool = False) -> list[Drift]:
        return self._reconcile.handle(repair=repair)
