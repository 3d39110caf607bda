"""Integration tests for the CreateTransfer use case."""

from datetime import date

import pytest

from tms.application.dto import TransferLineSpec
from tms.domain.exceptions import (
    EntityNotFoundError,
    InsufficientStockError,
    ValidationError,
)
from tms.domain.model.lot import Lot, Product
from tests.fakes import CTX, FakeCatalog, build_service


@pytest.fixture
def service():
    service, _ = build_service()
    service.adjust_stock(CTX, "A", "P", 30)
    service.adjust_stock(CTX, "A", "Q", 30)
    return service


class TestCreateTransferHappyPath:

    def test_creates_pending_transfer(self, service):
        dto = service.create_transfer(
            CTX, "A", "B", [TransferLineSpec("P", 10), TransferLineSpec("Q", 3)], notes="weekly"
        )
        assert dto.status == "pending"
        assert dto.organization_id == "acme"
        assert dto.created_by == "alice"
        assert dto.notes == "weekly"
        assert dto.total_requested == 13
        assert [line.status for line in dto.lines] == ["pending", "pending"]

    def test_assigns_ids(self, service):
        first = service.create_transfer(CTX, "A", "B", [TransferLineSpec("P", 1)])
        second = service.create_transfer(CTX, "A", "B", [TransferLineSpec("P", 1), TransferLineSpec("Q", 1)])
        assert second.id == first.id + 1
        assert len({line.id for line in first.lines + second.lines}) == 3

    def test_creation_does_not_move_stock(self, service):
        service.create_transfer(CTX, "A", "B", [TransferLineSpec("P", 10)])
        assert service.available_stock("A", "P") == 30
        assert len(service.movements()) == 2

    def test_persisted(self, service):
        dto = service.create_transfer(CTX, "A", "B", [TransferLineSpec("P", 1)])
        assert service.get(CTX, dto.id) == dto


class TestCreateTransferValidation:

    def test_same_origin_and_destination(self, service):
        with pytest.raises(ValidationError, match="must be different"):
            service.create_transfer(CTX, "A", "A", [TransferLineSpec("P", 1)])

    def test_non_positive_quantity(self, service):
        with pytest.raises(ValidationError, match="must be positive"):
            service.create_transfer(CTX, "A", "B", [TransferLineSpec("P", 0)])

    def test_duplicate_product(self, service):
        with pytest.raises(ValidationError, match="more than once"):
            service.create_transfer(CTX, "A", "B", [TransferLineSpec("P", 1), TransferLineSpec("P", 2)])

    def test_unknown_product(self, service):
        with pytest.raises(EntityNotFoundError, match="Product not found"):
            service.create_transfer(CTX, "A", "B", [TransferLineSpec("NOPE", 1)])

    def test_unknown_lot(self, service):
        with pytest.raises(EntityNotFoundError, match="Lot not found"):
            service.create_transfer(CTX, "A", "B", [TransferLineSpec("V", 1, lot_id="L9")])

    def test_lot_of_other_product(self):
        catalog = FakeCatalog(
            products=[Product("P"), Product("V", lot_tracked=True)],
            lots=[Lot("L1", "V")],
        )
        service, _ = build_service(catalog=catalog)
        with pytest.raises(ValidationError, match="belongs to product 'V'"):
            service.create_transfer(CTX, "A", "B", [TransferLineSpec("P", 1, lot_id="L1")])

    def test_soft_check_reports_every_short_line(self, service):
        with pytest.raises(InsufficientStockError) as info:
            service.create_transfer(
                CTX, "A", "B", [TransferLineSpec("P", 31), TransferLineSpec("Q", 40)]
            )
        assert [s.product_id for s in info.value.shortages] == ["P", "Q"]
        assert info.value.line_ids == []
        assert service.list(CTX, include_orphaned=True) == []

    def test_nothing_written_on_failure(self, service):
        with pytest.raises(ValidationError):
            service.create_transfer(CTX, "A", "A", [TransferLineSpec("P", 1)])
        assert service.list(CTX) == []


class TestLotSplitting:

    @pytest.fixture
    def lot_service(self):
        catalog = FakeCatalog(
            products=[Product("V", lot_tracked=True)],
            lots=[
                Lot("L-LATE", "V", date(2027, 9, 1)),
                Lot("L-SOON", "V", date(2027, 2, 1)),
                Lot("L-NODATE", "V", None),
            ],
        )
        service, _ = build_service(catalog=catalog)
        service.adjust_stock(CTX, "A", "V", 4, lot_id="L-LATE")
        service.adjust_stock(CTX, "A", "V", 3, lot_id="L-SOON")
        service.adjust_stock(CTX, "A", "V", 9, lot_id="L-NODATE")
        return service

    def test_lot_tracked_line_split_fefo(self, lot_service):
        dto = lot_service.create_transfer(CTX, "A", "B", [TransferLineSpec("V", 9)])
        assert [(line.lot_id, line.requested) for line in dto.lines] == [
            ("L-SOON", 3),
            ("L-LATE", 4),
            ("L-NODATE", 2),
        ]

    def test_explicit_lot_is_kept(self, lot_service):
        dto = lot_service.create_transfer(CTX, "A", "B", [TransferLineSpec("V", 2, lot_id="L-NODATE")])
        assert [(line.lot_id, line.requested) for line in dto.lines] == [("L-NODATE", 2)]

    def test_not_enough_across_lots(self, lot_service):
        with pytest.raises(InsufficientStockError, match="need 17, have 16"):
            lot_service.create_transfer(CTX, "A", "B", [TransferLineSpec("V", 17)])

    def test_suggest_lots_matches_split(self, lot_service):
        assert lot_service.suggest_lots("A", "V", 5) == [("L-SOON", 3), ("L-LATE", 2)]

    def test_lots_available_rereads_each_iteration(self, lot_service):
        lots = lot_service.lots_available("A", "V")
        before = [(lot.lot_id, lot.quantity) for lot in lots]
        lot_service.adjust_stock(CTX, "A", "V", -3, lot_id="L-SOON")
        after = [(lot.lot_id, lot.quantity) for lot in lots]

        assert before == [("L-SOON", 3), ("L-LATE", 4), ("L-NODATE", 9)]
        assert after == [("L-LATE", 4), ("L-NODATE", 9)]
