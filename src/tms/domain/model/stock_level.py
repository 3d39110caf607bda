"""StockLevel: the mutable aggregate snapshot of one stock key.

On-hand is derived from the ledger and only changes when a movement is
applied. Reserved is held back from availability by other activity.
"""

from __future__ import annotations

from dataclasses import dataclass

from tms.domain.exceptions import ValidationError
from tms.domain.model.movement import StockMovement
from tms.domain.model.value_objects import Direction, StockKey


@dataclass
class StockLevel:
    """Per-key on-hand and reserved quantities.

    Invariants:
    - ``reserved`` never exceeds ``on_hand``
    - ``available`` is never driven negative by an outbound movement
    """

    key: StockKey
    on_hand: int = 0
    reserved: int = 0
    version: int = 0

    @property
    def available(self) -> int:
        return self.on_hand - self.reserved

    def apply(self, movement: StockMovement) -> None:
        """Fold one ledger movement into the snapshot."""
        if movement.key != self.key:
            raise ValidationError(
                f"Movement for {movement.key} cannot be applied to {self.key}"
            )
        if movement.direction is Direction.OUT and movement.quantity > self.available:
            raise ValidationError(
                f"Cannot remove {movement.quantity} from {self.key} "
                f"(have {self.available} available)"
            )
        self.on_hand += movement.signed_quantity

    def reserve(self, quantity: int) -> None:
        if quantity <= 0:
            raise ValidationError("Reservation quantity must be positive")
        if quantity > self.available:
            raise ValidationError(
                f"Insufficient stock to reserve at {self.key} "
                f"(need {quantity}, have {self.available} available)"
            )
        self.reserved += quantity

    def release(self, quantity: int) -> None:
        if quantity <= 0:
            raise ValidationError("Release quantity must be positive")
        if quantity > self.reserved:
            raise ValidationError(
                f"Cannot release {quantity} at {self.key} "
                f"- only {self.reserved} currently reserved"
            )
        self.reserved -= quantity
