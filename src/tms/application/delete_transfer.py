"""Application service: Delete Transfer use case.

A transfer is history once it has moved stock. Only draft or pending
transfers without any ledger movement may be removed.
"""

from __future__ import annotations

import logging
from typing import Callable

from tms.application.context import RequestContext
from tms.application.retry import RetryPolicy, run_with_retry
from tms.domain.exceptions import EntityNotFoundError, InvalidTransitionError
from tms.domain.model.transfer_state import TransferStatus
from tms.domain.repository.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

DELETABLE_STATUSES = (TransferStatus.DRAFT, TransferStatus.PENDING)


class DeleteTransferHandler:

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._retry_policy = retry_policy or RetryPolicy()

    def handle(self, ctx: RequestContext, transfer_id: int) -> None:
        run_with_retry(lambda: self._delete(ctx, transfer_id), self._retry_policy)
        logger.info("Transfer #%s deleted by %s", transfer_id, ctx.actor)

    def _delete(self, ctx: RequestContext, transfer_id: int) -> None:
        with self._uow_factory() as uow:
            transfer = uow.transfers.get_by_id(transfer_id)
            if transfer is None or transfer.organization_id != ctx.organization_id:
                raise EntityNotFoundError(f"Transfer #{transfer_id} not found")

            if transfer.status not in DELETABLE_STATUSES or uow.movements.find(
                source_id=str(transfer_id)
            ):
                raise InvalidTransitionError(transfer_id, transfer.status.value, "delete")

            uow.transfers.delete(transfer_id)
            uow.commit()
