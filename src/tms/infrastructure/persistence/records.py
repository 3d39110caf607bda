"""Plain-dict records for the four logical stores.

The in-memory store keeps committed rows in this shape and the JSON store
writes them to disk unchanged, so both share one serialization.
"""

from __future__ import annotations

from datetime import datetime

from tms.domain.model.movement import MovementKey, StockMovement
from tms.domain.model.stock_level import StockLevel
from tms.domain.model.transfer import Transfer, TransferLine
from tms.domain.model.transfer_state import TransferStatus
from tms.domain.model.value_objects import Direction, SourceKind, StockKey

LevelId = tuple[str, str, str | None]
IdempotencyId = tuple[str, str, str, int | None, str | None]


def level_id(key: StockKey) -> LevelId:
    return (key.location_id, key.product_id, key.lot_id)


def idempotency_id(key: MovementKey) -> IdempotencyId:
    return (
        key.source_kind.value,
        key.source_id,
        key.direction.value,
        key.line_id,
        key.reference,
    )


# --- Transfers -----------------------------------------------------------------


def header_to_raw(transfer: Transfer, version: int) -> dict:
    return {
        "id": transfer.id,
        "organization_id": transfer.organization_id,
        "origin_id": transfer.origin_id,
        "destination_id": transfer.destination_id,
        "created_by": transfer.created_by,
        "notes": transfer.notes,
        "stage": transfer.stage.value,
        "orphaned": transfer.orphaned,
        "version": version,
        "created_at": transfer.created_at.isoformat(),
        "updated_at": transfer.updated_at.isoformat(),
    }


def line_to_raw(transfer_id: int, line: TransferLine) -> dict:
    return {
        "id": line.id,
        "transfer_id": transfer_id,
        "product_id": line.product_id,
        "lot_id": line.lot_id,
        "requested": line.requested,
        "received": line.received,
    }


def transfer_from_raw(header: dict, lines: list[dict]) -> Transfer:
    return Transfer(
        id=header["id"],
        organization_id=header["organization_id"],
        origin_id=header["origin_id"],
        destination_id=header["destination_id"],
        created_by=header["created_by"],
        notes=header.get("notes", ""),
        stage=TransferStatus(header["stage"]),
        orphaned=header.get("orphaned", False),
        version=header["version"],
        created_at=datetime.fromisoformat(header["created_at"]),
        updated_at=datetime.fromisoformat(header["updated_at"]),
        lines=[
            TransferLine(
                id=raw["id"],
                product_id=raw["product_id"],
                lot_id=raw.get("lot_id"),
                requested=raw["requested"],
                received=raw.get("received", 0),
            )
            for raw in sorted(lines, key=lambda r: r["id"])
        ],
    )


# --- Ledger --------------------------------------------------------------------


def movement_to_raw(movement: StockMovement) -> dict:
    return {
        "id": movement.id,
        "location_id": movement.key.location_id,
        "product_id": movement.key.product_id,
        "lot_id": movement.key.lot_id,
        "direction": movement.direction.value,
        "quantity": movement.quantity,
        "source_kind": movement.source_kind.value,
        "source_id": movement.source_id,
        "line_id": movement.line_id,
        "reference": movement.reference,
        "note": movement.note,
        "actor": movement.actor,
        "created_at": movement.created_at.isoformat(),
    }


def movement_from_raw(raw: dict) -> StockMovement:
    return StockMovement(
        id=raw["id"],
        key=StockKey(raw["location_id"], raw["product_id"], raw.get("lot_id")),
        direction=Direction(raw["direction"]),
        quantity=raw["quantity"],
        source_kind=SourceKind(raw["source_kind"]),
        source_id=raw["source_id"],
        line_id=raw.get("line_id"),
        reference=raw.get("reference"),
        note=raw.get("note", ""),
        actor=raw["actor"],
        created_at=datetime.fromisoformat(raw["created_at"]),
    )


def movement_idempotency_id(raw: dict) -> IdempotencyId:
    return (
        raw["source_kind"],
        raw["source_id"],
        raw["direction"],
        raw.get("line_id"),
        raw.get("reference"),
    )


# --- Stock levels --------------------------------------------------------------


def level_to_raw(level: StockLevel, version: int) -> dict:
    return {
        "location_id": level.key.location_id,
        "product_id": level.key.product_id,
        "lot_id": level.key.lot_id,
        "on_hand": level.on_hand,
        "reserved": level.reserved,
        "version": version,
    }


def level_from_raw(raw: dict) -> StockLevel:
    return StockLevel(
        key=StockKey(raw["location_id"], raw["product_id"], raw.get("lot_id")),
        on_hand=raw["on_hand"],
        reserved=raw.get("reserved", 0),
        version=raw["version"],
    )
