"""Tests for the optimistic unit of work of the in-memory store."""

import pytest

from tms.domain.exceptions import ConcurrencyConflictError
from tms.domain.model.transfer import Transfer, TransferLine
from tms.domain.model.value_objects import Direction, SourceKind, StockKey
from tms.domain.service.stock_projector import StockProjector
from tms.infrastructure.persistence.memory_store import InMemoryStockStore

KEY = StockKey("A", "P")


def _new_transfer() -> Transfer:
    return Transfer.create("acme", "A", "B", "alice", [TransferLine(None, "P", 3)])


class TestUnitOfWork:

    def test_reads_own_writes(self):
        store = InMemoryStockStore()
        with store.unit_of_work() as uow:
            transfer = _new_transfer()
            uow.transfers.add_header(transfer)
            uow.transfers.save(transfer)
            assert uow.transfers.get_by_id(transfer.id) is transfer
            with store.unit_of_work() as other:
                assert other.transfers.get_by_id(transfer.id) is None
            uow.commit()
        assert transfer.version == 1

    def test_header_and_lines_in_separate_commits(self):
        store = InMemoryStockStore()
        transfer = _new_transfer()
        with store.unit_of_work() as uow:
            uow.transfers.add_header(transfer)
            uow.commit()
        with store.unit_of_work() as uow:
            assert uow.transfers.get_by_id(transfer.id).lines == []
            uow.transfers.save(transfer)
            uow.commit()
        with store.unit_of_work() as uow:
            assert len(uow.transfers.get_by_id(transfer.id).lines) == 1
        assert transfer.version == 2

    def test_stale_transfer_write_conflicts(self):
        store = InMemoryStockStore()
        transfer = _new_transfer()
        with store.unit_of_work() as uow:
            uow.transfers.add_header(transfer)
            uow.commit()

        first, second = store.unit_of_work(), store.unit_of_work()
        a = first.transfers.get_by_id(transfer.id)
        b = second.transfers.get_by_id(transfer.id)
        a.notes = "first"
        b.notes = "second"
        first.transfers.save(a)
        first.commit()
        second.transfers.save(b)
        with pytest.raises(ConcurrencyConflictError, match="modified concurrently"):
            second.commit()

        with store.unit_of_work() as uow:
            assert uow.transfers.get_by_id(transfer.id).notes == "first"

    def test_stale_level_write_conflicts_and_applies_nothing(self):
        store = InMemoryStockStore()
        first, second = store.unit_of_work(), store.unit_of_work()
        for uow, source in ((first, "s1"), (second, "s2")):
            StockProjector.over(uow).post(KEY, Direction.IN, 5, SourceKind.ADJUSTMENT, source, "alice")
        first.commit()
        with pytest.raises(ConcurrencyConflictError):
            second.commit()

        with store.unit_of_work() as uow:
            assert len(uow.movements.find()) == 1
            assert uow.stock_levels.get(KEY).on_hand == 5

    def test_duplicate_idempotency_key_across_units_conflicts(self):
        store = InMemoryStockStore()
        first, second = store.unit_of_work(), store.unit_of_work()
        for uow in (first, second):
            StockProjector.over(uow).ledger.record(
                KEY, Direction.OUT, 1, SourceKind.TRANSFER_OUT, "9", "alice", line_id=1
            )
        first.commit()
        with pytest.raises(ConcurrencyConflictError, match="recorded concurrently"):
            second.commit()

    def test_rollback_on_exit(self):
        store = InMemoryStockStore()
        with store.unit_of_work() as uow:
            uow.transfers.add_header(_new_transfer())
        with store.unit_of_work() as uow:
            assert uow.transfers.list_all("acme", include_orphaned=True) == []
