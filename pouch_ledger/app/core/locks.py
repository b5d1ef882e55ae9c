from __future__ import annotations

import threading
from collections.abc import Iterable, Iterator
from contextlib import ExitStack, contextmanager
from typing import NamedTuple

from .shards import Collection


class LockKey(NamedTuple):
    collection: Collection
    record_id: str


class RowLocks:
    """In-process registry of per-record locks.

    ``hold`` takes every requested lock in sorted key order and releases them
    in reverse. Callers that need a record's own lock ahead of the balances it
    touches nest two ``hold`` blocks.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[LockKey, threading.Lock] = {}

    def _lock_for(self, key: LockKey) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, keys: Iterable[LockKey]) -> Iterator[None]:
        ordered = sorted(set(keys), key=lambda k: (k.collection.value, k.record_id))
        with ExitStack() as stack:
            for key in ordered:
                lock = self._lock_for(key)
                lock.acquire()
                stack.callback(lock.release)
            yield
