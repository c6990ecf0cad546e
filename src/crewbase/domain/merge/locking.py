"""In-process serialization of merges touching the same records.

Row locks taken by the store cover multi-process deployments on databases that
honour ``SELECT ... FOR UPDATE``; this registry covers the rest (SQLite, tests).
"""

from __future__ import annotations

import threading
from contextlib import ExitStack, contextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator
    from uuid import UUID

    from crewbase.domain.model import EntityType

type LockKey = tuple[str, str]


class MergeLocks:
    """Keyed mutexes, created on demand and dropped when no longer held."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[LockKey, threading.Lock] = {}
        self._users: dict[LockKey, int] = {}

    @contextmanager
    def hold(self, entity_type: EntityType, *entity_ids: UUID) -> Iterator[None]:
        """Hold every lock for ``entity_ids``, acquired in ascending id order."""

        keys = sorted({(entity_type.value, str(entity_id)) for entity_id in entity_ids})
        with ExitStack() as stack:
            for key in keys:
                lock = self._checkout(key)
                stack.callback(self._release, key)
                lock.acquire()
                stack.callback(lock.release)
            yield

    def active_keys(self) -> frozenset[LockKey]:
        with self._guard:
            return frozenset(self._locks)

    def _checkout(self, key: LockKey) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            self._users[key] = self._users.get(key, 0) + 1
            return lock

    def _release(self, key: LockKey) -> None:
        with self._guard:
            remaining = self._users[key] - 1
            if remaining:
                self._users[key] = remaining
            else:
                del self._users[key]
                del self._locks[key]


DEFAULT_LOCKS = MergeLocks()
