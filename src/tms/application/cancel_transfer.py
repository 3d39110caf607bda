"""Application service: Cancel Transfer use case.

Only transfers that never produced ledger movements (draft or pending)
can be cancelled. Cancelling has no stock effect.
"""

from __future__ import annotations

import logging
from typing import Callable

from tms.application.context import RequestContext
from tms.application.dto import TransferDTO, transfer_to_dto
from tms.application.retry import RetryPolicy, run_with_retry
from tms.domain.exceptions import EntityNotFoundError, InvalidTransitionError
from tms.domain.model.transfer_state import TransferEvent
from tms.domain.repository.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


class CancelTransferHandler:

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._retry_policy = retry_policy or RetryPolicy()

    def handle(self, ctx: RequestContext, transfer_id: int) -> TransferDTO:
        return run_with_retry(lambda: self._cancel(ctx, transfer_id), self._retry_policy)

    def _cancel(self, ctx: RequestContext, transfer_id: int) -> TransferDTO:
        with self._uow_factory() as uow:
            transfer = uow.transfers.get_by_id(transfer_id)
            if transfer is None or transfer.organization_id != ctx.organization_id:
                raise EntityNotFoundError(f"Transfer #{transfer_id} not found")

            if uow.movements.find(source_id=str(transfer_id)):
                raise InvalidTransitionError(
                    transfer_id, transfer.status.value, TransferEvent.CANCEL.value
                )

            transfer.cancel()
            uow.transfers.save(transfer)
            uow.commit()

        logger.info("Transfer #%s cancelled by %s", transfer_id, ctx.actor)
        return transfer_to_dto(transfer)
