"""Transfer aggregate — the core of the domain.

The Transfer is an aggregate root that owns its lines. It is the single
in-memory representation of a shipment between two locations; views are
projected from it, never kept alongside it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from tms.domain.exceptions import EntityNotFoundError, ValidationError
from tms.domain.model.transfer_state import (
    DISPATCHED_STATUSES,
    LineStatus,
    TransferEvent,
    TransferStateMachine,
    TransferStatus,
    derive_status,
    line_status,
)
from tms.domain.model.value_objects import Quantity, StockKey


MAX_LINES = 200


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class TransferLine:
    """One product (and optional lot) within a transfer.

    ``requested`` is fixed at creation. ``received`` only grows, through
    ``accept()``, and never exceeds ``requested``.
    """

    id: int | None
    product_id: str
    requested: int
    lot_id: str | None = None
    received: int = 0

    @property
    def status(self) -> LineStatus:
        return line_status(self.requested, self.received)

    @property
    def outstanding(self) -> int:
        return self.requested - self.received

    def accept(self, delta: int) -> int:
        """Credit up to *delta* received units; return the accepted amount.

        Anything beyond the outstanding quantity is clamped away.
        """
        if delta <= 0:
            raise ValidationError("Received quantity must be positive")
        accepted = min(delta, self.outstanding)
        self.received += accepted
        return accepted


@dataclass
class Transfer:
    """Aggregate root for inter-location stock transfers.

    Use the ``Transfer.create()`` factory for new transfers, which enforces
    all creation rules. The ``__init__`` is intentionally simple so the
    repository can reconstitute persisted transfers without re-validating.

    Only the lifecycle ``stage`` is stored; ``status`` is always derived
    from the stage and the lines.
    """

    id: int | None
    organization_id: str
    origin_id: str
    destination_id: str
    created_by: str
    lines: list[TransferLine]
    notes: str = ""
    stage: TransferStatus = TransferStatus.DRAFT
    orphaned: bool = False
    version: int = 0
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)

    # --- Factory (used for NEW transfers only) --------------------------------

    @staticmethod
    def create(
        organization_id: str,
        origin_id: str,
        destination_id: str,
        created_by: str,
        lines: list[TransferLine],
        notes: str = "",
    ) -> Transfer:
        """Create a new draft transfer, enforcing all invariants."""
        if not organization_id or not organization_id.strip():
            raise ValidationError("Organization ID is required")
        if not origin_id or not origin_id.strip():
            raise ValidationError("Origin location is required")
        if not destination_id or not destination_id.strip():
            raise ValidationError("Destination location is required")
        if origin_id.strip() == destination_id.strip():
            raise ValidationError("Origin and destination must be different locations")
        if not lines:
            raise ValidationError("Transfer must contain at least one line")
        if len(lines) > MAX_LINES:
            raise ValidationError(f"Maximum {MAX_LINES} lines per transfer")

        seen: set[tuple[str, str | None]] = set()
        for line in lines:
            Quantity(line.requested)
            if line.received != 0:
                raise ValidationError("New transfer lines cannot have received units")
            pair = (line.product_id, line.lot_id)
            if pair in seen:
                lot = f" lot {line.lot_id}" if line.lot_id else ""
                raise ValidationError(
                    f"Product {line.product_id}{lot} appears more than once"
                )
            seen.add(pair)

        return Transfer(
            id=None,
            organization_id=organization_id.strip(),
            origin_id=origin_id.strip(),
            destination_id=destination_id.strip(),
            created_by=created_by,
            lines=list(lines),
            notes=(notes or "").strip(),
        )

    # --- State transitions ----------------------------------------------------

    @property
    def status(self) -> TransferStatus:
        return derive_status(self.stage, self.lines)

    def submit(self) -> None:
        """Transition DRAFT -> PENDING once the lines are in place."""
        self._transition(TransferEvent.SUBMIT)

    def mark_dispatched(self) -> None:
        """Transition DRAFT|PENDING -> IN_TRANSIT.

        The origin's OUT movements must be recorded in the same unit of
        work (coordinated by the application handler).
        """
        self.check_dispatchable()
        self._transition(TransferEvent.DISPATCH)

    def check_dispatchable(self) -> None:
        """A header left without lines by a failed create never ships."""
        if self.orphaned:
            raise ValidationError(
                f"Transfer #{self.id} is orphaned and can only be deleted"
            )
        if not self.lines:
            raise ValidationError(f"Transfer #{self.id} has no lines")

    def cancel(self) -> None:
        """Transition DRAFT|PENDING -> CANCELLED. No ledger effect."""
        self._transition(TransferEvent.CANCEL)

    def receive(self, deltas: dict[int, int]) -> dict[int, int]:
        """Credit received units per line id; return what was accepted.

        Validates every delta before touching any line so a bad entry
        leaves the aggregate unchanged. Deltas larger than a line's
        outstanding quantity are clamped.
        """
        TransferStateMachine.next_stage(self.status, TransferEvent.RECEIVE, self.id)
        if not deltas:
            raise ValidationError("Must specify at least one line to receive")

        targets: list[tuple[TransferLine, int]] = []
        for line_id, delta in deltas.items():
            Quantity(delta)
            targets.append((self.line(line_id), delta))

        accepted: dict[int, int] = {}
        for line, delta in targets:
            accepted[line.id] = line.accept(delta)  # type: ignore[index]
        self.touch()
        return accepted

    # --- Computed properties --------------------------------------------------

    @property
    def is_dispatched(self) -> bool:
        return self.status in DISPATCHED_STATUSES

    @property
    def total_requested(self) -> int:
        return sum(line.requested for line in self.lines)

    @property
    def total_received(self) -> int:
        return sum(line.received for line in self.lines)

    @property
    def total_outstanding(self) -> int:
        return self.total_requested - self.total_received

    def origin_key(self, line: TransferLine) -> StockKey:
        return StockKey(self.origin_id, line.product_id, line.lot_id)

    def destination_key(self, line: TransferLine) -> StockKey:
        return StockKey(self.destination_id, line.product_id, line.lot_id)

    def line(self, line_id: int) -> TransferLine:
        for line in self.lines:
            if line.id == line_id:
                return line
        raise EntityNotFoundError(f"Line #{line_id} not found in transfer #{self.id}")

    def touch(self) -> None:
        self.updated_at = _now()

    # --- Internal helpers -----------------------------------------------------

    def _transition(self, event: TransferEvent) -> None:
        self.stage = TransferStateMachine.next_stage(self.status, event, self.id)
        self.touch()
