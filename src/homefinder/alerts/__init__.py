"""Alert system for new-listing notifications."""

from .checker import AlertChecker, build_alerts, compare_listings, snapshot_key
from .clients import ClientStore
from .notifier import AlertNotifier
from .snapshot import InMemorySnapshotStore, SnapshotStore

__all__ = [
    "AlertChecker",
    "AlertNotifier",
    "ClientStore",
    "InMemorySnapshotStore",
    "SnapshotStore",
    "build_alerts",
    "compare_listings",
    "snapshot_key",
]
