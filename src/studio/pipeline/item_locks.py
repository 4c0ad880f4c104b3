"""Per-item mutual exclusion within one process."""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager


class ItemLocks:
    """Serialize read-modify-write sequences on the same item id.

    Only callers sharing this instance are serialized; separate processes
    still race and fall back to the status guards of each transition.
    A lock lives only while some caller holds or waits for it.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}
        self._users: dict[str, int] = {}

    @contextmanager
    def hold(self, item_id: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(item_id, threading.Lock())
            self._users[item_id] = self._users.get(item_id, 0) + 1
        try:
            with lock:
                yield
        finally:
            with self._guard:
                remaining = self._users[item_id] - 1
                if remaining:
                    self._users[item_id] = remaining
                else:
                    del self._users[item_id]
                    del self._locks[item_id]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
