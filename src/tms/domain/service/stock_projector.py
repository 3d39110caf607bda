"""Domain service: Stock Projector.

Keeps StockLevel snapshots consistent with the ledger and answers
availability questions. StockLevel rows are only ever changed here:
through ``apply_movement`` (on-hand) or ``reserve``/``release`` (reserved).

``post()`` is the single path that writes a ledger movement and folds it
into its StockLevel. Both writes are staged in the caller's unit of work
and become visible together at commit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable, Iterable, Iterator

from tms.domain.exceptions import ValidationError
from tms.domain.model.lot import Lot
from tms.domain.model.movement import StockMovement
from tms.domain.model.stock_level import StockLevel
from tms.domain.model.value_objects import Direction, SourceKind, StockKey
from tms.domain.repository.stock_level_repository import StockLevelRepository
from tms.domain.repository.unit_of_work import UnitOfWork
from tms.domain.service.stock_ledger import StockLedger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LotStock:
    lot_id: str
    quantity: int
    expires_on: date | None


@dataclass(frozen=True)
class Drift:
    """A stock level whose on-hand disagrees with its ledger balance."""

    key: StockKey
    on_hand: int
    ledger_balance: int

    @property
    def difference(self) -> int:
        return self.on_hand - self.ledger_balance


def fefo_order(lot: LotStock) -> tuple:
    """Sort key: earliest expiry first, undated lots last, then lot id."""
    return (lot.expires_on is None, lot.expires_on or date.max, lot.lot_id)


def allocate_fefo(lots: Iterable[LotStock], quantity: int) -> list[tuple[str, int]]:
    """Split *quantity* across *lots* in the order given.

    Returns (lot id, quantity) pairs; the total is short of *quantity* when
    the lots cannot cover it.
    """
    allocations: list[tuple[str, int]] = []
    remaining = quantity
    for lot in lots:
        if remaining <= 0:
            break
        take = min(lot.quantity, remaining)
        allocations.append((lot.lot_id, take))
        remaining -= take
    return allocations


class LotAvailability:
    """Lazy, finite, restartable sequence of lots with stock, FEFO ordered.

    Nothing is read until iteration starts, and every new iteration reads
    the levels afresh.
    """

    def __init__(
        self,
        load_levels: Callable[[], list[StockLevel]],
        lot_lookup: Callable[[str], Lot | None],
    ) -> None:
        self._load_levels = load_levels
        self._lot_lookup = lot_lookup

    def __iter__(self) -> Iterator[LotStock]:
        lots: list[LotStock] = []
        for level in self._load_levels():
            if level.key.lot_id is None or level.available <= 0:
                continue
            lot = self._lot_lookup(level.key.lot_id)
            lots.append(
                LotStock(
                    lot_id=level.key.lot_id,
                    quantity=level.available,
                    expires_on=lot.expires_on if lot else None,
                )
            )
        lots.sort(key=fefo_order)
        yield from lots


class StockProjector:

    def __init__(self, level_repo: StockLevelRepository, ledger: StockLedger) -> None:
        self._level_repo = level_repo
        self._ledger = ledger

    @classmethod
    def over(cls, uow: UnitOfWork) -> StockProjector:
        """Build a projector whose reads and writes go through *uow*."""
        return cls(uow.stock_levels, StockLedger(uow.movements))

    @property
    def ledger(self) -> StockLedger:
        return self._ledger

    # --- Queries --------------------------------------------------------------

    def level(self, key: StockKey) -> StockLevel:
        """Return the level for *key*; a never-stocked key reads as zero."""
        existing = self._level_repo.get(key)
        return existing if existing is not None else StockLevel(key=key)

    def available(self, key: StockKey) -> int:
        return self.level(key).available

    def lots_available(
        self,
        location_id: str,
        product_id: str,
        lot_lookup: Callable[[str], Lot | None],
    ) -> LotAvailability:
        return LotAvailability(
            lambda: self._level_repo.list_all(location_id=location_id, product_id=product_id),
            lot_lookup,
        )

    def suggest_lots(
        self,
        location_id: str,
        product_id: str,
        quantity: int,
        lot_lookup: Callable[[str], Lot | None],
    ) -> list[tuple[str, int]]:
        """FEFO allocation of *quantity* across the location's lots."""
        return allocate_fefo(self.lots_available(location_id, product_id, lot_lookup), quantity)

    # --- Mutations ------------------------------------------------------------

    def apply_movement(self, movement: StockMovement) -> StockLevel:
        """Fold one movement into its StockLevel and stage the result."""
        level = self.level(movement.key)
        level.apply(movement)
        self._level_repo.save(level)
        return level

    def post(
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
    ) -> StockMovement:
        """Append a movement to the ledger and apply it to the stock level.

        A replayed idempotency key returns the original movement and leaves
        the level untouched.
        """
        movement, created = self._ledger.append(
            key, direction, quantity, source_kind, source_id, actor,
            line_id=line_id, reference=reference, note=note,
        )
        if created:
            self.apply_movement(movement)
        return movement

    def reserve(self, key: StockKey, quantity: int) -> StockLevel:
        level = self.level(key)
        level.reserve(quantity)
        self._level_repo.save(level)
        return level

    def release(self, key: StockKey, quantity: int) -> StockLevel:
        level = self._level_repo.get(key)
        if level is None:
            raise ValidationError(f"Nothing reserved at {key}")
        level.release(quantity)
        self._level_repo.save(level)
        return level

    # --- Reconciliation -------------------------------------------------------

    def reconcile(self, repair: bool = False) -> list[Drift]:
        """Compare every level's on-hand with its ledger balance.

        With ``repair`` the ledger wins: on-hand is rewritten from the
        balance and reserved is capped at the new on-hand.
        """
        balances = self._ledger.balances()
        levels = {level.key: level for level in self._level_repo.list_all()}

        drifts: list[Drift] = []
        for key in list(levels) + [k for k in balances if k not in levels]:
            level = levels.get(key) or StockLevel(key=key)
            balance = balances.get(key, 0)
            if level.on_hand == balance:
                continue
            drifts.append(Drift(key=key, on_hand=level.on_hand, ledger_balance=balance))
            if repair:
                level.on_hand = balance
                level.reserved = min(level.reserved, max(balance, 0))
                self._level_repo.save(level)

        for drift in drifts:
            logger.warning(
                "Stock drift at %s: level %s, ledger %s%s",
                drift.key, drift.on_hand, drift.ledger_balance,
                " (repaired)" if repair else "",
            )
        return drifts
