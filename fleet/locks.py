"""Per-key re-entrant locks scoping fleet operations to the records they touch."""

import threading
from contextlib import ExitStack, contextmanager
from typing import Dict, Hashable, Iterator, Optional, Tuple

Key = Tuple[str, Hashable]


def vehicle_key(vehicle_id: Optional[int]) -> Optional[Key]:
    return None if vehicle_id is None else ("vehicle", vehicle_id)


def driver_key(driver_id: Optional[int]) -> Optional[Key]:
    return None if driver_id is None else ("driver", driver_id)


def route_key(route_id: Optional[int]) -> Optional[Key]:
    return None if route_id is None else ("route", route_id)


def registry_key(name: str) -> Key:
    """Scope for checks spanning a whole table, such as unique plates."""
    return ("registry", name)


class KeyedLocks:
    """
    Hands out one RLock per key.

    Several keys are always acquired in sorted order so that two operations
    touching the same pair of resources cannot deadlock.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[Key, threading.RLock] = {}

    def lock_for(self, key: Key) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.RLock()
            return lock

    @contextmanager
    def hold(self, *keys: Optional[Key]) -> Iterator[None]:
        """Acquire the locks for all non-None keys."""
        ordered = sorted({k for k in keys if k is not None}, key=repr)
        with ExitStack() as stack:
            for key in ordered:
                stack.enter_context(self.lock_for(key))
            yield
