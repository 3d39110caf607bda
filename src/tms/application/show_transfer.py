"""Application services: Show / List Transfers use cases (queries)."""

from __future__ import annotations

from typing import Callable

from tms.application.context import RequestContext
from tms.application.dto import TransferDTO, transfer_to_dto
from tms.domain.exceptions import EntityNotFoundError, ValidationError
from tms.domain.model.transfer_state import TransferStatus
from tms.domain.repository.unit_of_work import UnitOfWork


class ShowTransferHandler:

    def __init__(self, uow_factory: Callable[[], UnitOfWork]) -> None:
        self._uow_factory = uow_factory

    def handle(self, ctx: RequestContext, transfer_id: int) -> TransferDTO:
        with self._uow_factory() as uow:
            transfer = uow.transfers.get_by_id(transfer_id)
        if transfer is None or transfer.organization_id != ctx.organization_id:
            raise EntityNotFoundError(f"Transfer #{transfer_id} not found")
        return transfer_to_dto(transfer)


class ListTransfersHandler:

    def __init__(self, uow_factory: Callable[[], UnitOfWork]) -> None:
        self._uow_factory = uow_factory

    def handle(
        self,
        ctx: RequestContext,
        status: str | None = None,
        location_id: str | None = None,
        include_orphaned: bool = False,
    ) -> list[TransferDTO]:
        try:
            status_filter = TransferStatus(status) if status else None
        except ValueError:
            raise ValidationError(f"Unknown transfer status '{status}'") from None
        with self._uow_factory() as uow:
            transfers = uow.transfers.list_all(
                ctx.organization_id,
                status=status_filter,
                location_id=location_id,
                include_orphaned=include_orphaned,
            )
        return [transfer_to_dto(t) for t in transfers]
