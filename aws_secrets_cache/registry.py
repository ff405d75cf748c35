"""Live alias -> secret id mapping shared by the cache facade and fetch engine."""

import threading
from collections.abc import Mapping


class AliasRegistry:
    """
    Thread-safe mapping from alias to provider secret identifier.

    The registry is seeded from configuration and mutated by
    add_alias_mapping()/remove_alias_mapping(). It has no ordering guarantee.
    Readers always receive snapshots, never the live dict.
    """

    def __init__(self, mappings: Mapping[str, str] | None = None) -> None:
        self._mappings: dict[str, str] = dict(mappings or {})
        self._lock = threading.Lock()

    def upsert(self, alias: str, secret_id: str) -> str | None:
        """
        Add or replace the mapping for an alias.

        Returns:
            The previous secret id for the alias, or None if it was new.
        """
        with self._lock:
            previous = self._mappings.get(alias)
            self._mappings[alias] = secret_id
            return previous

    def remove(self, alias: str) -> str | None:
        """Remove an alias, returning the secret id it mapped to (None if unknown)."""
        with self._lock:
            return self._mappings.pop(alias, None)

    def get(self, alias: str) -> str | None:
        with self._lock:
            return self._mappings.get(alias)

    def items(self) -> list[tuple[str, str]]:
        """Snapshot of all (alias, secret_id) pairs."""
        with self._lock:
            return list(self._mappings.items())

    def as_dict(self) -> dict[str, str]:
        with self._lock:
            return dict(self._mappings)

    def __len__(self) -> int:
        with self._lock:
            return len(self._mappings)

    def __contains__(self, alias: object) -> bool:
        with self._lock:
            return alias in self._mappings
