"""Per-house serialization for HSI recomputation and advancing"""

import threading
from contextlib import contextmanager
from typing import Dict, Iterator

from sqlalchemy import text
from sqlalchemy.orm import Session

# Namespace for pg advisory locks so house ids cannot collide with other lock users
ADVISORY_LOCK_NAMESPACE = 7341


class HouseLockRegistry:
    """
    In-process lock per house, plus a PostgreSQL transaction-scoped advisory
    lock so that separate worker processes serialize on the same house too.

    The in-process lock must be held across commit. The advisory lock is
    released by PostgreSQL when the surrounding transaction ends.
    """

    def __init__(self):
        self._locks: Dict[int, threading.Lock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, house_id: int) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(house_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[house_id] = lock
            return lock

    @contextmanager
    def hold(self, house_id: int) -> Iterator[None]:
        lock = self._lock_for(house_id)
        with lock:
            yield

    def acquire_advisory(self, db: Session, house_id: int) -> None:
        """Block until this transaction owns the house (no-op outside PostgreSQL)"""
        if db.get_bind().dialect.name != "postgresql":
            return
        db.execute(
            text("SELECT pg_advisory_xact_lock(:namespace, :house_id)"),
            {"namespace": ADVISORY_LOCK_NAMESPACE, "house_id": house_id},
        )


house_locks = HouseLockRegistry()
