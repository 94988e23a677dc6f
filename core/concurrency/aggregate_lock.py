"""
Collab Aggregate Locks: one writer per aggregate root.

Every mutating command runs while holding the lock of the aggregate it
changes. Locks are re-entrant so a command may call another command on
the same aggregate.
"""
from __future__ import annotations
from contextlib import contextmanager
from typing import Hashable, Iterator
import threading


class AggregateLockRegistry:
    """In-memory registry of re-entrant locks keyed by aggregate id."""

    def __init__(self):
        self._locks: dict[Hashable, threading.RLock] = {}
        self._guard = threading.Lock()

    def lock_for(self, aggregate_id: Hashable) -> threading.RLock:
        """Return the lock for an aggregate, creating it on first use."""
        with self._guard:
            lock = self._locks.get(aggregate_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[aggregate_id] = lock
            return lock

    @contextmanager
    def hold(self, aggregate_id: Hashable) -> Iterator[None]:
        """Hold the aggregate's lock for the duration of the block.

        Usage::

            with locks.hold(project.id):
                add_task(project, "Paint fence", actor=alice)
        """
        lock = self.lock_for(aggregate_id)
        with lock:
            yield

    def discard(self, aggregate_id: Hashable) -> None:
        """Forget the lock of a deleted aggregate."""
        with self._guard:
            self._locks.pop(aggregate_id, None)

    @property
    def lock_count(self) -> int:
        return len(self._locks)
