"""Value Objects shared across the domain.

Value Objects are immutable and compared by value, not identity.
They encapsulate validation so invalid values can never exist.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from tms.domain.exceptions import ValidationError


class Direction(Enum):
    IN = "in"
    OUT = "out"

    @property
    def sign(self) -> int:
        return 1 if self is Direction.IN else -1


class SourceKind(Enum):
    TRANSFER_OUT = "transfer_out"
    TRANSFER_IN = "transfer_in"
    ADJUSTMENT = "adjustment"


@dataclass(frozen=True)
class Quantity:
    """A positive integer quantity.

    Enforces the invariant that you cannot move zero or negative units.
    """

    value: int

    def __post_init__(self) -> None:
        # bool is an int subclass but never a quantity
        if not isinstance(self.value, int) or isinstance(self.value, bool):
            raise ValidationError(
                f"Quantity must be an integer, got {type(self.value).__name__}"
            )
        if self.value <= 0:
            raise ValidationError("Quantity must be positive")

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class StockKey:
    """Identifies one stock bucket: a product (and optional lot) at a location."""

    location_id: str
    product_id: str
    lot_id: str | None = None

    def __post_init__(self) -> None:
        if not self.location_id or not self.location_id.strip():
            raise ValidationError("Location ID is required")
        if not self.product_id or not self.product_id.strip():
            raise ValidationError("Product ID is required")

    def __str__(self) -> str:
        lot = f"/{self.lot_id}" if self.lot_id else ""
        return f"{self.location_id}:{self.product_id}{lot}"
