"""Dict-backed PersistentStore.

Lightweight implementation for tests and single-process deployments
without Redis. Rows live only as long as the process.
"""

import threading
from dataclasses import replace

from narrative_optimizer.entities import PersistentRow


class InMemoryPersistentStore:
    """In-memory implementation of the PersistentStore protocol.

    Thread-safe, since the persistent tier calls it from worker threads.
    """

    def __init__(self) -> None:
        self._rows: dict[str, PersistentRow] = {}
        self._lock = threading.Lock()

    def get(self, hashed_key: str) -> PersistentRow | None:
        with self._lock:
            return self._rows.get(hashed_key)

    def put(self, row: PersistentRow) -> None:
        with self._lock:
            self._rows[row.cache_key] = row

    def touch(self, hashed_key: str, now_ms: float) -> None:
        with self._lock:
            row = self._rows.get(hashed_key)
            if row is not None:
                self._rows[hashed_key] = replace(
                    row, hit_count=row.hit_count + 1, last_accessed_at=now_ms
                )

    def sweep_expired(self, now_ms: float) -> int:
        with self._lock:
            expired = [key for key, row in self._rows.items() if row.is_expired(now_ms)]
            for key in expired:
                del self._rows[key]
            return len(expired)

    def clear(self) -> int:
        with self._lock:
            count = len(self._rows)
            self._rows.clear()
            return count

    def count(self, now_ms: float) -> int:
        with self._lock:
            return sum(1 for row in self._rows.values() if not row.is_expired(now_ms))

    def health_check(self) -> bool:
        return True

    def __len__(self) -> int:
        """Number of stored rows, expired ones included."""
        with self._lock:
            return len(self._rows)
