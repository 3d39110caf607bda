"""Application service: Reconcile Stock use case.

Compares every stock level's on-hand with its ledger balance and, on
request, rewrites on-hand from the ledger.
"""

from __future__ import annotations

import logging
from typing import Callable

from tms.application.retry import RetryPolicy, run_with_retry
from tms.domain.repository.unit_of_work import UnitOfWork
from tms.domain.service.stock_projector import Drift, StockProjector

logger = logging.getLogger(__name__)


class ReconcileStockHandler:

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._retry_policy = retry_policy or RetryPolicy()

    def handle(self, repair: bool = False) -> list[Drift]:
        drifts = run_with_retry(lambda: self._reconcile(repair), self._retry_policy)
        if not drifts:
            logger.info("Stock levels agree with the ledger")
        return drifts

    def _reconcile(self, repair: bool) -> list[Drift]:
        with self._uow_factory() as uow:
            drifts = StockProjector.over(uow).reconcile(repair=repair)
            if repair:
                uow.commit()
        return drifts
