"""End-to-end scenarios for the transfer lifecycle.

Uses the in-memory stock store; no file I/O.
"""

import pytest

from tms.application.dto import ReceiptDelta, TransferLineSpec
from tms.domain.exceptions import InsufficientStockError, InvalidTransitionError
from tms.domain.model.value_objects import StockKey
from tms.domain.service.stock_projector import StockProjector
from tests.fakes import CTX, build_service


@pytest.fixture
def env():
    service, store = build_service()
    service.adjust_stock(CTX, "A", "P", 50, reason="opening balance")
    return service, store


def _create(service, qty=10, product="P"):
    return service.create_transfer(CTX, "A", "B", [TransferLineSpec(product, qty)])


def _assert_ledger_matches_levels(store):
    with store.unit_of_work() as uow:
        assert StockProjector.over(uow).reconcile() == []


class TestScenarios:

    def test_a_dispatch_moves_stock_out_of_origin(self, env):
        service, store = env
        dto = _create(service)
        assert dto.status == "pending"

        dispatched = service.dispatch(CTX, dto.id)

        assert dispatched.status == "in_transit"
        assert service.available_stock("A", "P") == 40
        assert service.available_stock("B", "P") == 0
        outs = [m for m in service.movements(source_id=str(dto.id)) if m.direction == "out"]
        assert len(outs) == 1
        assert outs[0].quantity == 10
        _assert_ledger_matches_levels(store)

    def test_b_partial_receipt(self, env):
        service, store = env
        dto = _create(service)
        service.dispatch(CTX, dto.id)
        line_id = dto.lines[0].id

        result = service.receive(CTX, dto.id, [ReceiptDelta(line_id, 4)])

        line = result.transfer.lines[0]
        assert line.received == 4
        assert line.status == "partial"
        assert result.transfer.status == "partial"
        assert service.available_stock("B", "P") == 4
        _assert_ledger_matches_levels(store)

    def test_c_over_receipt_is_clamped(self, env):
        service, store = env
        dto = _create(service)
        service.dispatch(CTX, dto.id)
        line_id = dto.lines[0].id
        service.receive(CTX, dto.id, [ReceiptDelta(line_id, 4)])

        result = service.receive(CTX, dto.id, [ReceiptDelta(line_id, 10)])

        assert result.lines[0].accepted == 6
        assert result.lines[0].clamped == 4
        assert result.transfer.lines[0].received == 10
        assert result.transfer.lines[0].status == "complete"
        assert result.transfer.status == "complete"
        assert service.available_stock("B", "P") == 10
        _assert_ledger_matches_levels(store)

    def test_d_dispatch_rejected_when_stock_dropped(self):
        service, store = build_service()
        service.adjust_stock(CTX, "A", "P", 5)
        dto = _create(service, qty=5)
        # Stock held back elsewhere after creation leaves only 3 available.
        service.reserve(CTX, "A", "P", 2)

        with pytest.raises(InsufficientStockError) as info:
            service.dispatch(CTX, dto.id)

        assert info.value.line_ids == [dto.lines[0].id]
        assert info.value.shortages[0].available == 3
        assert service.get(CTX, dto.id).status == "pending"
        assert service.movements(source_id=str(dto.id)) == []
        assert service.available_stock("A", "P") == 3

    def test_e_cancel_pending_but_not_in_transit(self, env):
        service, _ = env
        pending = _create(service)
        assert service.cancel(CTX, pending.id).status == "cancelled"
        assert service.available_stock("A", "P") == 50

        shipped = _create(service)
        service.dispatch(CTX, shipped.id)
        with pytest.raises(InvalidTransitionError, match=f"Transfer #{shipped.id}: cannot cancel while in_transit"):
            service.cancel(CTX, shipped.id)


class TestMultiLineLifecycle:

    def test_status_follows_lines(self, env):
        service, store = env
        service.adjust_stock(CTX, "A", "Q", 20)
        dto = service.create_transfer(
            CTX, "A", "B", [TransferLineSpec("P", 10), TransferLineSpec("Q", 5)]
        )
        service.dispatch(CTX, dto.id)
        p_line, q_line = (line.id for line in dto.lines)

        after_q = service.receive(CTX, dto.id, [ReceiptDelta(q_line, 5)])
        assert after_q.transfer.status == "partial"

        done = service.receive(CTX, dto.id, [ReceiptDelta(p_line, 10)])
        assert done.transfer.status == "complete"
        assert done.transfer.total_outstanding == 0

        with pytest.raises(InvalidTransitionError, match="while complete"):
            service.receive(CTX, dto.id, [ReceiptDelta(p_line, 1)])
        _assert_ledger_matches_levels(store)

    def test_delta_on_complete_line_records_nothing(self, env):
        service, _ = env
        service.adjust_stock(CTX, "A", "Q", 20)
        dto = service.create_transfer(
            CTX, "A", "B", [TransferLineSpec("P", 2), TransferLineSpec("Q", 2)]
        )
        service.dispatch(CTX, dto.id)
        p_line, q_line = (line.id for line in dto.lines)
        service.receive(CTX, dto.id, [ReceiptDelta(p_line, 2)])

        result = service.receive(CTX, dto.id, [ReceiptDelta(p_line, 3), ReceiptDelta(q_line, 1)])

        assert [line.accepted for line in result.lines] == [0, 1]
        ins = [m for m in service.movements(source_id=str(dto.id)) if m.direction == "in"]
        assert sorted(m.quantity for m in ins) == [1, 2]

    def test_destination_keys_carry_lots(self):
        service, _ = build_service()
        service.adjust_stock(CTX, "A", "V", 8, lot_id="L1")
        dto = service.create_transfer(CTX, "A", "B", [TransferLineSpec("V", 8, lot_id="L1")])
        service.dispatch(CTX, dto.id)
        service.receive(CTX, dto.id, [ReceiptDelta(dto.lines[0].id, 8)])
        assert service.available_stock("B", "V", "L1") == 8
        assert service.available_stock("B", "V") == 0
