"""In-process implementation of the four logical stores.

Committed rows are plain-dict records (see ``records``). A unit of work
reads the committed snapshot it started from, stages domain objects, and
at commit re-checks the version of every header and stock level it
writes. Any mismatch fails the whole commit with ConcurrencyConflictError;
otherwise all staged rows are applied in one step under the commit lock.

Committed containers are replaced on commit, never mutated, so a reader
holding an older snapshot keeps a consistent view without locking.
"""

from __future__ import annotations

import contextlib
import threading
from dataclasses import dataclass, field
from typing import ContextManager

from tms.domain.exceptions import ConcurrencyConflictError, EntityNotFoundError
from tms.domain.model.movement import MovementKey, StockMovement
from tms.domain.model.stock_level import StockLevel
from tms.domain.model.transfer import Transfer
from tms.domain.model.transfer_state import TransferStatus
from tms.domain.model.value_objects import StockKey
from tms.domain.repository.movement_repository import MovementRepository
from tms.domain.repository.stock_level_repository import StockLevelRepository
from tms.domain.repository.transfer_repository import TransferRepository
from tms.domain.repository.unit_of_work import UnitOfWork
from tms.infrastructure.persistence.records import (
    IdempotencyId,
    LevelId,
    header_to_raw,
    idempotency_id,
    level_from_raw,
    level_id,
    level_to_raw,
    line_to_raw,
    movement_from_raw,
    movement_idempotency_id,
    movement_to_raw,
    transfer_from_raw,
)


@dataclass(frozen=True)
class StoreState:
    headers: dict[int, dict] = field(default_factory=dict)
    lines: dict[int, dict] = field(default_factory=dict)
    movements: tuple[dict, ...] = ()
    levels: dict[LevelId, dict] = field(default_factory=dict)

    def lines_of(self, transfer_id: int) -> list[dict]:
        return [raw for raw in self.lines.values() if raw["transfer_id"] == transfer_id]


@dataclass
class _Changes:
    """Everything one unit of work wants to write."""

    # transfer id -> (transfer, expected version, write lines too)
    transfers: dict[int, tuple[Transfer, int, bool]] = field(default_factory=dict)
    deleted: dict[int, int] = field(default_factory=dict)
    movements: list[StockMovement] = field(default_factory=list)
    # level id -> (level, expected version)
    levels: dict[LevelId, tuple[StockLevel, int]] = field(default_factory=dict)

    def __bool__(self) -> bool:
        return bool(self.transfers or self.deleted or self.movements or self.levels)


class InMemoryStockStore:

    def __init__(self, state: StoreState | None = None) -> None:
        self._commit_lock = threading.Lock()
        self._id_lock = threading.Lock()
        state = state or StoreState()
        self._committed = (state, self._build_index(state))
        self._sequences = {
            "transfer": max(state.headers, default=0),
            "line": max(state.lines, default=0),
            "movement": max((m["id"] for m in state.movements), default=0),
        }

    # --- Public API -----------------------------------------------------------

    def unit_of_work(self) -> StoreUnitOfWork:
        return StoreUnitOfWork(self)

    def snapshot(self) -> tuple[StoreState, dict[IdempotencyId, int]]:
        return self._committed

    def allocate_id(self, sequence: str) -> int:
        with self._id_lock:
            self._sequences[sequence] += 1
            return self._sequences[sequence]

    def apply(self, changes: _Changes) -> None:
        """Validate versions and apply *changes* atomically, or raise."""
        if not changes:
            return
        with self._commit_lock, self._exclusive():
            state, index = self._latest()
            self._check_versions(state, index, changes)

            headers = dict(state.headers)
            lines = dict(state.lines)
            levels = dict(state.levels)
            index = dict(index)

            for transfer_id in changes.deleted:
                headers.pop(transfer_id, None)
                for raw in state.lines_of(transfer_id):
                    lines.pop(raw["id"], None)

            for transfer_id, (transfer, expected, with_lines) in changes.transfers.items():
                headers[transfer_id] = header_to_raw(transfer, expected + 1)
                for line in transfer.lines if with_lines else ():
                    lines[line.id] = line_to_raw(transfer_id, line)  # type: ignore[index]

            new_movements = [movement_to_raw(m) for m in changes.movements]
            for raw in new_movements:
                index[movement_idempotency_id(raw)] = raw["id"]

            for lid, (level, expected) in changes.levels.items():
                levels[lid] = level_to_raw(level, expected + 1)

            new_state = StoreState(
                headers=headers,
                lines=lines,
                movements=state.movements + tuple(new_movements),
                levels=levels,
            )
            self._persist(new_state)
            self._committed = (new_state, index)

        # Only now are the staged objects in sync with the store.
        for transfer, expected, _ in changes.transfers.values():
            transfer.version = expected + 1
        for level, expected in changes.levels.values():
            level.version = expected + 1

    # --- Hooks ----------------------------------------------------------------

    def _exclusive(self) -> ContextManager[None]:
        """Keep other processes out while a commit runs. Nothing to do in memory."""
        return contextlib.nullcontext()

    def _latest(self) -> tuple[StoreState, dict[IdempotencyId, int]]:
        """The committed state a commit is validated against."""
        return self._committed

    def _persist(self, state: StoreState) -> None:
        """Make *state* durable before it becomes visible. No-op in memory."""

    # --- Internal helpers -----------------------------------------------------

    @staticmethod
    def _build_index(state: StoreState) -> dict[IdempotencyId, int]:
        return {movement_idempotency_id(raw): raw["id"] for raw in state.movements}

    @staticmethod
    def _check_versions(
        state: StoreState, index: dict[IdempotencyId, int], changes: _Changes
    ) -> None:
        for transfer_id, expected in changes.deleted.items():
            current = state.headers.get(transfer_id)
            if (current["version"] if current else 0) != expected:
                raise ConcurrencyConflictError(
                    f"Transfer #{transfer_id} changed while it was being deleted"
                )
        for transfer_id, (_, expected, _) in changes.transfers.items():
            current = state.headers.get(transfer_id)
            current_version = current["version"] if current else 0
            if current_version != expected:
                raise ConcurrencyConflictError(
                    f"Transfer #{transfer_id} was modified concurrently "
                    f"(expected version {expected}, found {current_version})"
                )
        for lid, (level, expected) in changes.levels.items():
            current = state.levels.get(lid)
            current_version = current["version"] if current else 0
            if current_version != expected:
                raise ConcurrencyConflictError(
                    f"Stock level {level.key} was modified concurrently"
                )
        for movement in changes.movements:
            if idempotency_id(movement.idempotency_key) in index:
                raise ConcurrencyConflictError(
                    f"Movement for {movement.source_kind.value}/{movement.source_id} "
                    f"line {movement.line_id} was recorded concurrently"
                )


class StoreUnitOfWork(UnitOfWork):
    """Optimistic unit of work over an InMemoryStockStore snapshot."""

    def __init__(self, store: InMemoryStockStore) -> None:
        self._store = store
        self._state, self._index = store.snapshot()
        self._changes = _Changes()
        self.transfers = _TransferView(self)
        self.movements = _MovementView(self)
        self.stock_levels = _StockLevelView(self)

    def commit(self) -> None:
        changes, self._changes = self._changes, _Changes()
        self._store.apply(changes)
        self._state, self._index = self._store.snapshot()

    def rollback(self) -> None:
        self._changes = _Changes()


class _TransferView(TransferRepository):

    def __init__(self, uow: StoreUnitOfWork) -> None:
        self._uow = uow

    def get_by_id(self, transfer_id: int) -> Transfer | None:
        changes = self._uow._changes
        if transfer_id in changes.deleted:
            return None
        if transfer_id in changes.transfers:
            return changes.transfers[transfer_id][0]
        state = self._uow._state
        header = state.headers.get(transfer_id)
        if header is None:
            return None
        return transfer_from_raw(header, state.lines_of(transfer_id))

    def list_all(
        self,
        organization_id: str,
        status: TransferStatus | None = None,
        location_id: str | None = None,
        include_orphaned: bool = False,
    ) -> list[Transfer]:
        ids = set(self._uow._state.headers) | set(self._uow._changes.transfers)
        result: list[Transfer] = []
        for transfer_id in sorted(ids):
            transfer = self.get_by_id(transfer_id)
            if transfer is None or transfer.organization_id != organization_id:
                continue
            if transfer.orphaned and not include_orphaned:
                continue
            if status is not None and transfer.status is not status:
                continue
            if location_id is not None and location_id not in (
                transfer.origin_id,
                transfer.destination_id,
            ):
                continue
            result.append(transfer)
        return result

    def add_header(self, transfer: Transfer) -> None:
        if transfer.id is None:
            transfer.id = self._uow._store.allocate_id("transfer")
        self._stage(transfer, include_lines=False)

    def save(self, transfer: Transfer) -> None:
        if transfer.id is None:
            raise EntityNotFoundError("Cannot save a transfer that has no header yet")
        for line in transfer.lines:
            if line.id is None:
                line.id = self._uow._store.allocate_id("line")
        self._stage(transfer, include_lines=True)

    def delete(self, transfer_id: int) -> None:
        transfer = self.get_by_id(transfer_id)
        if transfer is None:
            raise EntityNotFoundError(f"Transfer #{transfer_id} not found")
        self._uow._changes.transfers.pop(transfer_id, None)
        self._uow._changes.deleted[transfer_id] = transfer.version

    def _stage(self, transfer: Transfer, include_lines: bool) -> None:
        changes = self._uow._changes
        previous = changes.transfers.get(transfer.id)  # type: ignore[arg-type]
        expected = previous[1] if previous else transfer.version
        with_lines = include_lines or bool(previous and previous[2])
        changes.transfers[transfer.id] = (transfer, expected, with_lines)  # type: ignore[index]


class _MovementView(MovementRepository):

    def __init__(self, uow: StoreUnitOfWork) -> None:
        self._uow = uow

    def next_id(self) -> int:
        return self._uow._store.allocate_id("movement")

    def append(self, movement: StockMovement) -> None:
        self._uow._changes.movements.append(movement)

    def find_by_idempotency_key(self, key: MovementKey) -> StockMovement | None:
        for movement in self._uow._changes.movements:
            if movement.idempotency_key == key:
                return movement
        movement_id = self._uow._index.get(idempotency_id(key))
        if movement_id is None:
            return None
        for raw in self._uow._state.movements:
            if raw["id"] == movement_id:
                return movement_from_raw(raw)
        return None

    def find(
        self,
        key: StockKey | None = None,
        source_id: str | None = None,
    ) -> list[StockMovement]:
        committed = [movement_from_raw(raw) for raw in self._uow._state.movements]
        result: list[StockMovement] = []
        for movement in committed + self._uow._changes.movements:
            if key is not None and movement.key != key:
                continue
            if source_id is not None and movement.source_id != str(source_id):
                continue
            result.append(movement)
        return result


class _StockLevelView(StockLevelRepository):

    def __init__(self, uow: StoreUnitOfWork) -> None:
        self._uow = uow

    def get(self, key: StockKey) -> StockLevel | None:
        lid = level_id(key)
        staged = self._uow._changes.levels.get(lid)
        if staged is not None:
            return staged[0]
        raw = self._uow._state.levels.get(lid)
        return level_from_raw(raw) if raw is not None else None

    def list_all(
        self,
        location_id: str | None = None,
        product_id: str | None = None,
    ) -> list[StockLevel]:
        ids = set(self._uow._state.levels) | set(self._uow._changes.levels)
        result: list[StockLevel] = []
        for lid in sorted(ids, key=lambda i: (i[0], i[1], i[2] or "")):
            if location_id is not None and lid[0] != location_id:
                continue
            if product_id is not None and lid[1] != product_id:
                continue
            level = self.get(StockKey(*lid))
            if level is not None:
                result.append(level)
        return result

    def save(self, level: StockLevel) -> None:
        lid = level_id(level.key)
        expected = self._uow._changes.levels.get(lid, (None, level.version))[1]
        self._uow._changes.levels[lid] = (level, expected)
