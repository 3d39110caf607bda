"""Composition root — wires concrete implementations to domain interfaces.

This is the only place in the codebase that knows about *all* layers.
Every other module depends only on abstractions.
"""

from __future__ import annotations

from tms.application.retry import RetryPolicy
from tms.application.transfer_service import TransferService
from tms.infrastructure.catalog.json_catalog import JsonCatalog
from tms.infrastructure.config import Settings
from tms.infrastructure.persistence.json_store import JsonStockStore


def catalog(settings: Settings) -> JsonCatalog:
    return JsonCatalog(
        settings.data_dir / "products.json",
        settings.data_dir / "lots.json",
    )


def stock_store(settings: Settings) -> JsonStockStore:
    return JsonStockStore(settings.data_dir)


def transfer_service(settings: Settings) -> TransferService:
    store = stock_store(settings)
    return TransferService(
        uow_factory=store.unit_of_work,
        catalog=catalog(settings),
        retry_policy=RetryPolicy(
            attempts=settings.retry_attempts,
            base_delay=settings.retry_base_delay,
        ),
        compensation_attempts=settings.compensation_attempts,
    )
