"""Data Transfer Objects — plain containers that cross layer boundaries.

DTOs carry data between the CLI and application layers without
exposing domain internals to the outside world.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from tms.domain.model.movement import StockMovement
from tms.domain.model.stock_level import StockLevel
from tms.domain.model.transfer import Transfer


@dataclass(frozen=True)
class TransferLineSpec:
    """Input: one product (and optional lot) to move."""

    product_id: str
    quantity: int
    lot_id: str | None = None


@dataclass(frozen=True)
class ReceiptDelta:
    """Input: units newly received for one line."""

    line_id: int
    quantity: int


@dataclass(frozen=True)
class TransferLineDTO:
    id: int
    product_id: str
    lot_id: str | None
    requested: int
    received: int
    outstanding: int
    status: str


@dataclass(frozen=True)
class TransferDTO:
    """Output: a complete transfer as displayed to the user."""

    id: int
    organization_id: str
    origin_id: str
    destination_id: str
    status: str
    notes: str
    created_by: str
    lines: list[TransferLineDTO]
    total_requested: int
    total_received: int
    total_outstanding: int
    created_at: str
    updated_at: str
    orphaned: bool = False
    already_dispatched: bool = False


@dataclass(frozen=True)
class ReceiptLineResult:
    line_id: int
    requested: int
    accepted: int

    @property
    def clamped(self) -> int:
        """Units asked for beyond what the line still had outstanding."""
        return self.requested - self.accepted


@dataclass(frozen=True)
class ReceiptResult:
    """Output of a receipt: the transfer afterwards and what was credited."""

    transfer: TransferDTO
    receipt_id: str
    lines: list[ReceiptLineResult] = field(default_factory=list)
    replayed: bool = False

    @property
    def clamped_lines(self) -> list[ReceiptLineResult]:
        return [line for line in self.lines if line.clamped > 0]


@dataclass(frozen=True)
class MovementDTO:
    id: int
    location_id: str
    product_id: str
    lot_id: str | None
    direction: str
    quantity: int
    source_kind: str
    source_id: str
    line_id: int | None
    actor: str
    note: str
    created_at: str


@dataclass(frozen=True)
class StockLevelDTO:
    location_id: str
    product_id: str
    lot_id: str | None
    on_hand: int
    reserved: int
    available: int


# --- Mapping ------------------------------------------------------------------


def transfer_to_dto(transfer: Transfer, already_dispatched: bool = False) -> TransferDTO:
    return TransferDTO(
        id=transfer.id,  # type: ignore[arg-type]
        organization_id=transfer.organization_id,
        origin_id=transfer.origin_id,
        destination_id=transfer.destination_id,
        status=transfer.status.value,
        notes=transfer.notes,
        created_by=transfer.created_by,
        lines=[
            TransferLineDTO(
                id=line.id,  # type: ignore[arg-type]
                product_id=line.product_id,
                lot_id=line.lot_id,
                requested=line.requested,
                received=line.received,
                outstanding=line.outstanding,
                status=line.status.value,
            )
            for line in transfer.lines
        ],
        total_requested=transfer.total_requested,
        total_received=transfer.total_received,
        total_outstanding=transfer.total_outstanding,
        created_at=transfer.created_at.strftime("%Y-%m-%d %H:%M UTC"),
        updated_at=transfer.updated_at.strftime("%Y-%m-%d %H:%M UTC"),
        orphaned=transfer.orphaned,
        already_dispatched=already_dispatched,
    )


def movement_to_dto(movement: StockMovement) -> MovementDTO:
    return MovementDTO(
        id=movement.id,
        location_id=movement.key.location_id,
        product_id=movement.key.product_id,
        lot_id=movement.key.lot_id,
        direction=movement.direction.value,
        quantity=movement.quantity,
        source_kind=movement.source_kind.value,
        source_id=movement.source_id,
        line_id=movement.line_id,
        actor=movement.actor,
        note=movement.note,
        created_at=movement.created_at.strftime("%Y-%m-%d %H:%M UTC"),
    )


def level_to_dto(level: StockLevel) -> StockLevelDTO:
    return StockLevelDTO(
        location_id=level.key.location_id,
        product_id=level.key.product_id,
        lot_id=level.key.lot_id,
        on_hand=level.on_hand,
        reserved=level.reserved,
        available=level.available,
    )
