"""Domain service: Stock Ledger.

Append-only log of signed movements per stock key. A movement is never
updated or deleted, and each (source kind, source id, direction, line)
combination is recorded at most once, so retried dispatches and receipts
cannot double count.
"""

from __future__ import annotations

import logging

from tms.domain.exceptions import ValidationError
from tms.domain.model.movement import MovementKey, StockMovement
from tms.domain.model.value_objects import Direction, SourceKind, StockKey
from tms.domain.repository.movement_repository import MovementRepository

logger = logging.getLogger(__name__)


class StockLedger:

    def __init__(self, movement_repo: MovementRepository) -> None:
        self._movement_repo = movement_repo

    def append(
        self,
        key: StockKey,
        direction: Direction,
        quantity: int,
        source_kind: SourceKind,
        source_id: str,
        actor: str,
        line_id: int | None = None,
        reference: str | None = None,
        note: str = "",
    ) -> tuple[StockMovement, bool]:
        """Record a movement unless its idempotency key is already taken.

        Returns the movement and whether it was newly written. A replay
        returns the original movement and ``False``.
        """
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
            raise ValidationError(f"Movement quantity must be a positive integer, got {quantity!r}")

        idem = MovementKey(source_kind, str(source_id), direction, line_id, reference)
        existing = self._movement_repo.find_by_idempotency_key(idem)
        if existing is not None:
            logger.info(
                "Movement %s already recorded for %s/%s line %s",
                existing.id, source_kind.value, source_id, line_id,
            )
            return existing, False

        movement = StockMovement(
            id=self._movement_repo.next_id(),
            key=key,
            direction=direction,
            quantity=quantity,
            source_kind=source_kind,
            source_id=str(source_id),
            actor=actor,
            line_id=line_id,
            reference=reference,
            note=note,
        )
        self._movement_repo.append(movement)
        return movement, True

    def record(
        self,
        key: StockKey,
        direction: Direction,
        quantity: int,
        source_kind: SourceKind,
        source_id: str,
        actor: str,
        line_id: int | None = None,
        reference: str | None = None,
    ) -> int:
        """Record a movement and return its ID (the original ID on replay)."""
        movement, _ = self.append(
            key, direction, quantity, source_kind, source_id, actor, line_id, reference
        )
        return movement.id

    def history(
        self,
        key: StockKey | None = None,
        source_id: str | None = None,
    ) -> list[StockMovement]:
        return self._movement_repo.find(key=key, source_id=source_id)

    def balance(self, key: StockKey) -> int:
        """Signed sum of every movement at *key*, the authoritative on-hand."""
        return sum(m.signed_quantity for m in self._movement_repo.find(key=key))

    def balances(self) -> dict[StockKey, int]:
        result: dict[StockKey, int] = {}
        for movement in self._movement_repo.find():
            result[movement.key] = result.get(movement.key, 0) + movement.signed_quantity
        return result
