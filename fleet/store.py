"""In-memory fleet tables with all-or-nothing transactions."""

import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from .errors import NotFound
from .loader import fleet_to_dict, load_fleet, write_fleet

logger = logging.getLogger(__name__)

TABLES = ("vehicles", "drivers", "routes", "trips", "maintenance")

ENTITY_NAMES = {
    "vehicles": "Vehicle",
    "drivers": "Driver",
    "routes": "Route",
    "trips": "Trip",
    "maintenance": "Maintenance event",
}


class FleetStore:
    """
    Holds every fleet record plus the active-trip indexes.

    Writes go through ``insert``/``modify``/``remove``/``set_index`` inside a
    ``transaction()`` block. Each write is recorded in a per-thread journal so
    that an exception anywhere in the block restores the records it touched.
    Nested transactions join the outermost one.

    The store lock only guards table, index and counter mutation. Callers
    serialize work on the same vehicle, driver or route with KeyedLocks, so
    transactions on unrelated records run in parallel.
    """

    def __init__(self):
        self.tables: Dict[str, Dict[int, Any]] = {name: {} for name in TABLES}
        self.active_trip_by_vehicle: Dict[int, int] = {}
        self.active_trip_by_driver: Dict[int, int] = {}
        self.next_ids: Dict[str, int] = {name: 1 for name in TABLES}
        self.commits = 0
        self._lock = threading.RLock()
        self._local = threading.local()

    # =========================================================================
    # Reads
    # =========================================================================

    def get(self, table: str, entity_id: int) -> Any:
        try:
            return self.tables[table][entity_id]
        except KeyError:
            raise NotFound(ENTITY_NAMES[table], entity_id) from None

    def find(self, table: str, entity_id: Optional[int]) -> Optional[Any]:
        return self.tables[table].get(entity_id)

    def all(self, table: str) -> List[Any]:
        """Records of a table ordered by id."""
        with self._lock:
            rows = dict(self.tables[table])
        return [rows[k] for k in sorted(rows)]

    # =========================================================================
    # Transactions
    # =========================================================================

    @property
    def _journal(self) -> Optional[list]:
        return getattr(self._local, "journal", None)

    @property
    def in_transaction(self) -> bool:
        return self._journal is not None

    @contextmanager
    def transaction(self) -> Iterator["FleetStore"]:
        if self.in_transaction:
            yield self
            return

        self._local.journal = []
        self._local.commits_at_begin = self.commits
        try:
            yield self
            self.on_commit()
            with self._lock:
                self.commits += 1
        except BaseException:
            self._rollback()
            raise
        finally:
            self._local.journal = None

    def on_commit(self) -> None:
        """Hook run before a transaction is considered committed."""

    def on_rollback(self, others_committed: bool) -> None:
        """
        Hook run after a rollback.

        others_committed tells whether other transactions committed while
        this one was open.
        """

    def _record(self, entry: tuple) -> None:
        journal = self._journal
        if journal is None:
            raise RuntimeError("fleet records can only be changed inside a transaction")
        journal.append(entry)

    def _rollback(self) -> None:
        journal = self._journal or []
        logger.debug("Rolling back transaction (%d changes)", len(journal))
        with self._lock:
            self._undo(journal)
        self.on_rollback(self.commits != self._local.commits_at_begin)

    def _undo(self, journal: list) -> None:
        for entry in reversed(journal):
            kind = entry[0]
            if kind == "modify":
                _, entity, snapshot = entry
                entity.__dict__.clear()
                entity.__dict__.update(snapshot)
            elif kind == "insert":
                _, table, entity_id = entry
                self.tables[table].pop(entity_id, None)
            elif kind == "remove":
                _, table, entity_id, entity = entry
                self.tables[table][entity_id] = entity
            elif kind == "index":
                _, index, key, existed, old = entry
                if existed:
                    index[key] = old
                else:
                    index.pop(key, None)
            elif kind == "counter":
                _, table, old, new = entry
                # ids handed out by other transactions since stay taken
                if self.next_ids[table] == new:
                    self.next_ids[table] = old

    # =========================================================================
    # Writes
    # =========================================================================

    def insert(self, table: str, entity: Any) -> Any:
        """Add a record, assigning the next id when it has none."""
        with self._lock:
            old = self.next_ids[table]
            entity_id = old if entity.id is None else entity.id
            if entity_id >= old:
                self._record(("counter", table, old, entity_id + 1))
                self.next_ids[table] = entity_id + 1
            self._record(("insert", table, entity_id))
            entity.id = entity_id
            self.tables[table][entity_id] = entity
        return entity

    def modify(self, entity: Any) -> Any:
        """Snapshot an entity's fields before the caller changes them."""
        self._record(("modify", entity, dict(vars(entity))))
        return entity

    def remove(self, table: str, entity_id: int) -> Any:
        with self._lock:
            entity = self.get(table, entity_id)
            self._record(("remove", table, entity_id, entity))
            del self.tables[table][entity_id]
        return entity

    def set_index(self, index: Dict[int, int], key: int, value: Optional[int]) -> None:
        """Set or, with value None, clear an active-trip index entry."""
        with self._lock:
            self._record(("index", index, key, key in index, index.get(key)))
            if value is None:
                index.pop(key, None)
            else:
                index[key] = value


class YamlFleetStore(FleetStore):
    """
    FleetStore that rewrites a YAML file after every committed transaction.

    Saves are serialized among themselves; each one snapshots the records
    under the store lock and replaces the file in one step.
    """

    def __init__(self, filename: Union[str, Path]):
        super().__init__()
        self.filename = Path(filename)
        self._save_lock = threading.Lock()
        if self.filename.exists():
            load_fleet(self.filename, self)

    def save(self) -> None:
        with self._save_lock:
            with self._lock:
                data = fleet_to_dict(self)
            write_fleet(self.filename, data)

    def on_commit(self) -> None:
        self.save()

    def on_rollback(self, others_committed: bool) -> None:
        # another commit may have written this transaction's undone changes
        if others_committed:
            try:
                self.save()
            except OSError:
                logger.exception("Could not rewrite %s after rollback", self.filename)
