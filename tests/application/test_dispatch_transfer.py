"""Integration tests for the DispatchTransfer use case."""

import pytest

from tms.application.dto import ReceiptDelta, TransferLineSpec
from tms.domain.exceptions import (
    EntityNotFoundError,
    InsufficientStockError,
    InvalidTransitionError,
)
from tests.fakes import CTX, OTHER_CTX, build_service


@pytest.fixture
def env():
    service, store = build_service()
    service.adjust_stock(CTX, "A", "P", 20)
    service.adjust_stock(CTX, "A", "Q", 20)
    return service, store


class TestDispatchIdempotency:

    def test_second_dispatch_is_a_no_op(self, env):
        service, _ = env
        dto = service.create_transfer(CTX, "A", "B", [TransferLineSpec("P", 10)])

        first = service.dispatch(CTX, dto.id)
        second = service.dispatch(CTX, dto.id)

        assert not first.already_dispatched
        assert second.already_dispatched
        assert second.status == "in_transit"
        assert service.available_stock("A", "P") == 10
        assert len(service.movements(source_id=str(dto.id))) == 1

    def test_dispatch_of_partial_transfer_is_a_no_op(self, env):
        service, _ = env
        dto = service.create_transfer(CTX, "A", "B", [TransferLineSpec("P", 10)])
        service.dispatch(CTX, dto.id)
        service.receive(CTX, dto.id, [ReceiptDelta(dto.lines[0].id, 1)])
        assert service.dispatch(CTX, dto.id).already_dispatched


class TestDispatchAllOrNothing:

    def test_one_short_line_aborts_every_line(self, env):
        service, _ = env
        dto = service.create_transfer(
            CTX, "A", "B", [TransferLineSpec("P", 10), TransferLineSpec("Q", 10)]
        )
        service.adjust_stock(CTX, "A", "Q", -15)

        with pytest.raises(InsufficientStockError) as info:
            service.dispatch(CTX, dto.id)

        assert info.value.transfer_id == dto.id
        assert info.value.line_ids == [dto.lines[1].id]
        assert service.available_stock("A", "P") == 20
        assert service.movements(source_id=str(dto.id)) == []

    def test_reserved_stock_is_not_shipped(self, env):
        service, _ = env
        dto = service.create_transfer(CTX, "A", "B", [TransferLineSpec("P", 20)])
        service.reserve(CTX, "A", "P", 1)
        with pytest.raises(InsufficientStockError, match="need 20, have 19 available"):
            service.dispatch(CTX, dto.id)


class TestDispatchErrors:

    def test_cancelled_transfer(self, env):
        service, _ = env
        dto = service.create_transfer(CTX, "A", "B", [TransferLineSpec("P", 1)])
        service.cancel(CTX, dto.id)
        with pytest.raises(InvalidTransitionError, match="cannot dispatch while cancelled"):
            service.dispatch(CTX, dto.id)

    def test_unknown_transfer(self, env):
        service, _ = env
        with pytest.raises(EntityNotFoundError, match="#999"):
            service.dispatch(CTX, 999)

    def test_other_organization_sees_nothing(self, env):
        service, _ = env
        dto = service.create_transfer(CTX, "A", "B", [TransferLineSpec("P", 1)])
        with pytest.raises(EntityNotFoundError):
            service.dispatch(OTHER_CTX, dto.id)
