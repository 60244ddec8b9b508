"""Snapshot stores for the alert diff engine.

A snapshot is the last listing set seen for one subscriber. The checker only
needs get/set by key; any object with this shape can back it (see
``homefinder.storage.SnapshotCache`` for the SQLite-backed one).
"""

from typing import Protocol

from ..models.listing import Listing


class SnapshotStore(Protocol):
    """Key -> last seen listings."""

    def get(self, key: str) -> list[Listing]:
        """Stored listings for key, or an empty list if none."""
        ...

    def set(self, key: str, listings: list[Listing]) -> None:
        """Replace the stored listings for key."""
        ...

    def clear(self, key: str) -> None:
        ...

    def clear_all(self) -> int:
        """Delete every snapshot and return how many there were."""
        ...


class InMemorySnapshotStore:
    """Process-lifetime snapshot store."""

    def __init__(self) -> None:
        self._snapshots: dict[str, list[Listing]] = {}

    def get(self, key: str) -> list[Listing]:
        return list(self._snapshots.get(key, []))

    def set(self, key: str, listings: list[Listing]) -> None:
        self._snapshots[key] = list(listings)

    def clear(self, key: str) -> None:
        self._snapshots.pop(key, None)

    def clear_all(self) -> int:
        count = len(self._snapshots)
        self._snapshots.clear()
        return count

    def keys(self) -> list[str]:
        return list(self._snapshots)
