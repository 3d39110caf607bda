"""StockMovement: one immutable entry of the stock ledger."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from tms.domain.model.value_objects import Direction, SourceKind, StockKey


@dataclass(frozen=True)
class MovementKey:
    """Idempotency key of a movement: one per source, direction and line.

    ``reference`` tells apart successive receipts against the same line;
    dispatch movements leave it empty.
    """

    source_kind: SourceKind
    source_id: str
    direction: Direction
    line_id: int | None = None
    reference: str | None = None


@dataclass(frozen=True)
class StockMovement:
    """A signed quantity event at one stock key.

    Once written a movement is never updated or deleted; the signed sum of
    movements for a key is the authoritative on-hand quantity.
    """

    id: int
    key: StockKey
    direction: Direction
    quantity: int
    source_kind: SourceKind
    source_id: str
    actor: str
    line_id: int | None = None
    reference: str | None = None
    note: str = ""
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def signed_quantity(self) -> int:
        return self.direction.sign * self.quantity

    @property
    def idempotency_key(self) -> MovementKey:
        return MovementKey(
            source_kind=self.source_kind,
            source_id=self.source_id,
            direction=self.direction,
            line_id=self.line_id,
            reference=self.reference,
        )
