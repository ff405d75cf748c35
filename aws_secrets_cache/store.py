"""
Thread-safe in-memory store for cached secret values.

This module provides the CacheStore used by the fetch engine to hold the last
successfully fetched value of every alias.

Architecture:
    - Thread-safe with threading.Lock for concurrent access
    - In-memory only (NO disk persistence for security)
    - No TTL expiration: entries live until overwritten by a changed value,
      removed with their alias, or dropped by clear()
    - Entries are immutable and replaced wholesale on change

Example Usage:
    >>> store = CacheStore()
    >>> store.set("db", CacheEntry(value={"password": "..."}, fetched_at=utc_now()))
    >>> store.get("db").value
    {'password': '...'}
    >>> store.delete("db")
    True
    >>> len(store)
    0
"""

import threading
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

# Decoded secret: JSON document (usually a dict), UTF-8 text, or raw bytes
SecretValue = Any


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(UTC)


def same_value(left: SecretValue, right: SecretValue) -> bool:
    """
    Compare two decoded secret values structurally, including their types.

    Plain ``==`` treats ``1``, ``1.0`` and ``True`` as equal; a secret rotated
    between those must still count as changed. Object key order is ignored.
    """
    if type(left) is not type(right):
        return False
    if isinstance(left, dict):
        return left.keys() == right.keys() and all(
            same_value(value, right[key]) for key, value in left.items()
        )
    if isinstance(left, list):
        return len(left) == len(right) and all(map(same_value, left, right))
    return left == right


@dataclass(frozen=True)
class CacheEntry:
    """A cached secret value and the time of its last successful fetch."""

    value: SecretValue
    fetched_at: datetime


class CacheStore:
    """
    Thread-safe mapping from alias to CacheEntry.

    Every alias present in the store has been fetched successfully at least
    once. An alias may be registered without having an entry yet (first fetch
    still failing).

    Attributes:
        _entries: Internal storage dict mapping aliases to entries
        _lock: Threading lock for concurrent access protection

    Thread Safety:
        All public methods are thread-safe and can be called from the fetch
        engine's worker threads and caller threads concurrently.
    """

    def __init__(self) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, alias: str) -> CacheEntry | None:
        """
        Retrieve the cached entry for an alias.

        Args:
            alias: Caller-chosen alias (e.g., "database")

        Returns:
            CacheEntry: Entry if the alias was fetched successfully
            None: If the alias has never been fetched (or was removed/cleared)
        """
        with self._lock:
            return self._entries.get(alias)

    def set(self, alias: str, entry: CacheEntry) -> None:
        """Store an entry, replacing any previous entry for the alias atomically."""
        with self._lock:
            self._entries[alias] = entry

    def delete(self, alias: str) -> bool:
        """
        Remove the entry for an alias.

        Returns:
            True if an entry was removed, False if the alias had no entry.
        """
        with self._lock:
            return self._entries.pop(alias, None) is not None

    def clear(self) -> int:
        """
        Remove all entries.

        Returns:
            int: Number of entries removed
        """
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            return count

    def entries(self) -> dict[str, CacheEntry]:
        """
        Return a point-in-time copy of all (alias, entry) pairs.

        The copy is safe to iterate while writers proceed. It may mix pre- and
        post-refresh values when taken in the middle of a refresh cycle.
        """
        with self._lock:
            return dict(self._entries)

    def size(self) -> int:
        """Return the number of cached entries."""
        return len(self)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, alias: object) -> bool:
        with self._lock:
            return alias in self._entries
