"""
Per-entity mutual exclusion.

One re-entrant lock per part id and one per reservation id. Mutations on
unrelated parts never contend. Database row locks (select_for_update) are
still taken inside these scopes for multi-process deployments; the
in-process locks cover backends where row locking is a no-op.

Lock order: reservation before part. The outermost holder of a part lock
keeps it until its own transaction.atomic() block has exited, so no other
writer touches the part while a transaction on it is still open.
"""

import threading
from contextlib import contextmanager


class LockRegistry:
    """Lazily created re-entrant locks keyed by (kind, id)."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[tuple[str, int], threading.RLock] = {}

    def get(self, kind: str, pk) -> threading.RLock:
        key = (kind, pk)
        lock = self._locks.get(key)
        if lock is None:
            with self._guard:
                lock = self._locks.get(key)
                if lock is None:  # double-checked
                    lock = self._locks[key] = threading.RLock()
        return lock

    @contextmanager
    def hold(self, kind: str, pk):
        with self.get(kind, pk):
            yield

    def clear(self) -> None:
        """Drop all locks. Only safe when no operation is in flight."""
        with self._guard:
            self._locks.clear()


registry = LockRegistry()


def part_lock(part_id):
    return registry.hold('part', part_id)


def reservation_lock(reservation_id):
    return registry.hold('reservation', reservation_id)
