"""Storage modules for snapshot persistence.

This package provides the SQLite-backed snapshot store that keeps each
subscriber's alert baseline across restarts.
"""

from .cache import SnapshotCache

__all__ = ["SnapshotCache"]
