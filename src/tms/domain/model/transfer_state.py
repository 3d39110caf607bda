"""Transfer lifecycle rules.

Pure functions only: nothing here reads or writes storage. A transfer
persists its lifecycle *stage* (draft, pending, in transit, cancelled);
the reported *status* is derived from the stage and the lines, so
``partial`` and ``complete`` can never be set directly.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable, Protocol

from tms.domain.exceptions import InvalidTransitionError, ValidationError


class TransferStatus(Enum):
    DRAFT = "draft"
    PENDING = "pending"
    IN_TRANSIT = "in_transit"
    PARTIAL = "partial"
    COMPLETE = "complete"
    CANCELLED = "cancelled"


class LineStatus(Enum):
    PENDING = "pending"
    PARTIAL = "partial"
    COMPLETE = "complete"


class TransferEvent(Enum):
    SUBMIT = "submit"
    DISPATCH = "dispatch"
    RECEIVE = "receive"
    CANCEL = "cancel"


class ReceivableLine(Protocol):
    requested: int
    received: int


TERMINAL_STATUSES = frozenset({TransferStatus.COMPLETE, TransferStatus.CANCELLED})
STORED_STAGES = frozenset(
    {
        TransferStatus.DRAFT,
        TransferStatus.PENDING,
        TransferStatus.IN_TRANSIT,
        TransferStatus.CANCELLED,
    }
)
DISPATCHED_STATUSES = frozenset(
    {TransferStatus.IN_TRANSIT, TransferStatus.PARTIAL, TransferStatus.COMPLETE}
)

# (current status, event) -> stage stored afterwards
_TRANSITIONS: dict[tuple[TransferStatus, TransferEvent], TransferStatus] = {
    (TransferStatus.DRAFT, TransferEvent.SUBMIT): TransferStatus.PENDING,
    (TransferStatus.DRAFT, TransferEvent.DISPATCH): TransferStatus.IN_TRANSIT,
    (TransferStatus.PENDING, TransferEvent.DISPATCH): TransferStatus.IN_TRANSIT,
    (TransferStatus.DRAFT, TransferEvent.CANCEL): TransferStatus.CANCELLED,
    (TransferStatus.PENDING, TransferEvent.CANCEL): TransferStatus.CANCELLED,
    (TransferStatus.IN_TRANSIT, TransferEvent.RECEIVE): TransferStatus.IN_TRANSIT,
    (TransferStatus.PARTIAL, TransferEvent.RECEIVE): TransferStatus.IN_TRANSIT,
}


def line_status(requested: int, received: int) -> LineStatus:
    if received < 0 or received > requested:
        raise ValidationError(
            f"Received quantity {received} outside 0..{requested}"
        )
    if received == 0:
        return LineStatus.PENDING
    if received < requested:
        return LineStatus.PARTIAL
    return LineStatus.COMPLETE


def derive_status(stage: TransferStatus, lines: Iterable[ReceivableLine]) -> TransferStatus:
    """Compute the reported status from the stored stage and the lines.

    Before dispatch (and after cancellation) the stage is the status. Once
    in transit: ``complete`` when every line is complete, ``partial`` when
    at least one unit has been received, otherwise ``in_transit``.
    """
    if stage not in STORED_STAGES:
        raise ValidationError(f"'{stage.value}' is not a storable transfer stage")
    if stage is not TransferStatus.IN_TRANSIT:
        return stage

    statuses = [line_status(line.requested, line.received) for line in lines]
    if statuses and all(s is LineStatus.COMPLETE for s in statuses):
        return TransferStatus.COMPLETE
    if any(s is not LineStatus.PENDING for s in statuses):
        return TransferStatus.PARTIAL
    return TransferStatus.IN_TRANSIT


class TransferStateMachine:
    """Transition table for transfers.

    | From             | Event    | Stage after  |
    |------------------|----------|--------------|
    | draft            | submit   | pending      |
    | draft/pending    | dispatch | in_transit   |
    | draft/pending    | cancel   | cancelled    |
    | in_transit/partial | receive | in_transit (status re-derived) |

    ``complete`` and ``cancelled`` are terminal.
    """

    @staticmethod
    def can(status: TransferStatus, event: TransferEvent) -> bool:
        return (status, event) in _TRANSITIONS

    @staticmethod
    def next_stage(
        status: TransferStatus,
        event: TransferEvent,
        transfer_id: int | None = None,
    ) -> TransferStatus:
        """Return the stage to store after *event*, or raise.

        Raises InvalidTransitionError, leaving the caller's state untouched,
        when the table has no entry for (status, event).
        """
        try:
            return _TRANSITIONS[(status, event)]
        except KeyError:
            raise InvalidTransitionError(transfer_id, status.value, event.value) from None

    @staticmethod
    def allowed_events(status: TransferStatus) -> list[TransferEvent]:
        return [event for (s, event) in _TRANSITIONS if s is status]
