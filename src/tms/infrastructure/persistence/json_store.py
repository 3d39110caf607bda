"""JSON-file-backed stock store.

The four logical stores live in one document so that a commit is a single
``os.replace``: a reader, or a process restarted after a crash, sees the
state before the commit or the state after it, never a mix.

Several processes may share a data directory. Every commit takes an
exclusive lock on a side file, re-reads the document if another process
changed it, and validates versions against that fresh state. A writer
working from a stale snapshot gets ConcurrencyConflictError and retries.
IDs come from a shared sequence file under the same lock.
"""

from __future__ import annotations

import contextlib
import fcntl
import json
import os
from pathlib import Path
from typing import Iterator

from tms.domain.exceptions import PersistenceError
from tms.infrastructure.persistence.memory_store import InMemoryStockStore, StoreState

STORE_FILE = "stock_store.json"
SEQUENCES_FILE = "sequences.json"
LOCK_FILE = "stock_store.lock"

# document key -> StoreState field
SECTIONS = {
    "transfers": "headers",
    "transfer_lines": "lines",
    "stock_movements": "movements",
    "stock_levels": "levels",
}

Stamp = tuple[int, int, int]


class JsonStockStore(InMemoryStockStore):

    def __init__(self, data_dir: Path) -> None:
        self._data_dir = data_dir
        self._path = data_dir / STORE_FILE
        self._ensure_file()
        stamp, state = self._read()
        super().__init__(state)
        self._stamp: Stamp | None = stamp

    # --- Public API -----------------------------------------------------------

    def snapshot(self):
        with self._commit_lock:
            self._reload_if_changed()
            return self._committed

    def allocate_id(self, sequence: str) -> int:
        with self._id_lock, self._exclusive():
            self._reload_if_changed()
            state = self._committed[0]
            in_use = {
                "transfer": max(state.headers, default=0),
                "line": max(state.lines, default=0),
                "movement": max((m["id"] for m in state.movements), default=0),
            }
            sequences = self._load_sequences()
            sequences[sequence] = max(sequences.get(sequence, 0), in_use[sequence]) + 1
            self._write_json(self._data_dir / SEQUENCES_FILE, sequences)
            return sequences[sequence]

    # --- Hooks ----------------------------------------------------------------

    @contextlib.contextmanager
    def _exclusive(self) -> Iterator[None]:
        path = self._data_dir / LOCK_FILE
        try:
            handle = path.open("a", encoding="utf-8")
        except OSError as exc:
            raise PersistenceError(f"Cannot lock {path}: {exc}") from exc
        with handle:
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(handle.fileno(), fcntl.LOCK_UN)

    def _latest(self):
        self._reload_if_changed(force=True)
        return self._committed

    def _persist(self, state: StoreState) -> None:
        document = {
            "transfers": list(state.headers.values()),
            "transfer_lines": list(state.lines.values()),
            "stock_movements": list(state.movements),
            "stock_levels": list(state.levels.values()),
        }
        self._write_json(self._path, document)
        self._stamp = self._disk_stamp()

    # --- Serialization --------------------------------------------------------

    def _reload_if_changed(self, force: bool = False) -> None:
        """Pick up commits made by other processes.

        Caller holds the commit lock or the file lock. The stamp check is
        enough for reads. A commit passes ``force`` and is always validated
        against the document as it is on disk.
        """
        if not force and self._disk_stamp() == self._stamp:
            return
        stamp, state = self._read()
        self._committed = (state, self._build_index(state))
        self._stamp = stamp

    def _read(self) -> tuple[Stamp, StoreState]:
        try:
            with self._path.open(encoding="utf-8") as handle:
                info = os.fstat(handle.fileno())
                document = json.load(handle)
        except (OSError, ValueError) as exc:
            raise PersistenceError(f"Cannot read {self._path}: {exc}") from exc

        raw = {field: document.get(key, []) for key, field in SECTIONS.items()}
        state = StoreState(
            headers={item["id"]: item for item in raw["headers"]},
            lines={item["id"]: item for item in raw["lines"]},
            movements=tuple(raw["movements"]),
            levels={
                (item["location_id"], item["product_id"], item.get("lot_id")): item
                for item in raw["levels"]
            },
        )
        return (info.st_ino, info.st_mtime_ns, info.st_size), state

    def _load_sequences(self) -> dict[str, int]:
        path = self._data_dir / SEQUENCES_FILE
        if not path.exists():
            return {}
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise PersistenceError(f"Cannot read {path}: {exc}") from exc

    # --- File helpers ---------------------------------------------------------

    def _disk_stamp(self) -> Stamp:
        try:
            info = self._path.stat()
        except OSError as exc:
            raise PersistenceError(f"Cannot read {self._path}: {exc}") from exc
        return (info.st_ino, info.st_mtime_ns, info.st_size)

    @staticmethod
    def _write_json(path: Path, payload: object) -> None:
        tmp = path.with_suffix(path.suffix + ".tmp")
        try:
            tmp.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
            os.replace(tmp, path)
        except OSError as exc:
            raise PersistenceError(f"Cannot write {path}: {exc}") from exc

    def _ensure_file(self) -> None:
        if not self._path.exists():
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._write_json(self._path, {key: [] for key in SECTIONS})
