"""Persistent store protocol.

The row-level storage consumed by the persistent cache tier. Keys are
always hashed fingerprints.

Implementations include:
- Redis (default)
- In-memory dict (tests, single-process deployments)
"""

from typing import Protocol, runtime_checkable

from narrative_optimizer.entities import PersistentRow


@runtime_checkable
class PersistentStore(Protocol):
    """Protocol for persistent cache storage backends.

    Calls are blocking; the persistent tier runs them in a worker thread.
    """

    def get(self, hashed_key: str) -> PersistentRow | None:
        """Fetch a row by hashed key.

        Args:
            hashed_key: sha256 hex digest of the fingerprint

        Returns:
            The row (possibly expired) or None
        """
        ...

    def put(self, row: PersistentRow) -> None:
        """Insert or replace a row.

        Args:
            row: The row to store
        """
        ...

    def touch(self, hashed_key: str, now_ms: float) -> None:
        """Increment the hit count and refresh the last access time.

        Args:
            hashed_key: sha256 hex digest of the fingerprint
            now_ms: Current time in milliseconds
        """
        ...

    def sweep_expired(self, now_ms: float) -> int:
        """Delete rows whose expiry is at or before ``now_ms``.

        Returns:
            Number of rows deleted
        """
        ...

    def clear(self) -> int:
        """Delete all rows.

        Returns:
            Number of rows deleted
        """
        ...

    def count(self, now_ms: float) -> int:
        """Count rows that have not expired at ``now_ms``."""
        ...

    def health_check(self) -> bool:
        """Check if the store is reachable."""
        ...
