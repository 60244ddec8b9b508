"""Tests for the SQLite snapshot cache."""

import asyncio

import pytest

from homefinder.alerts.checker import AlertChecker
from homefinder.alerts.snapshot import InMemorySnapshotStore
from homefinder.storage import SnapshotCache


@pytest.fixture
def cache(tmp_path) -> SnapshotCache:
    """SnapshotCache in a temporary directory."""
    return SnapshotCache(tmp_path / "snapshots.db")


class TestSnapshotCache:
    """Test snapshot persistence."""

    def test_missing_key_is_empty(self, cache):
        assert cache.get("nobody") == []

    def test_set_and_get(self, cache, make_listing):
        listings = [
            make_listing("a", images=["https://x.test/1.jpg"], features=["Garden"], bedrooms=2),
            make_listing("b", description="Quiet street"),
        ]

        cache.set("c1", listings)

        assert cache.get("c1") == listings

    def test_set_replaces(self, cache, make_listing):
        cache.set("c1", [make_listing("a"), make_listing("b")])
        cache.set("c1", [make_listing("c")])

        assert [l.id for l in cache.get("c1")] == ["c"]

    def test_survives_reopen(self, tmp_path, make_listing):
        path = tmp_path / "snapshots.db"
        SnapshotCache(path).set("c1", [make_listing("a")])

        assert [l.id for l in SnapshotCache(path).get("c1")] == ["a"]

    def test_clear(self, cache, make_listing):
        cache.set("c1", [make_listing("a")])
        cache.set("c2", [make_listing("b")])

        cache.clear("c1")
        assert cache.keys() == ["c2"]

        assert cache.clear_all() == 1
        assert cache.keys() == []

    def test_stats(self, cache, make_listing):
        cache.set("c1", [make_listing("a"), make_listing("b")])
        cache.set("c2", [make_listing("c")])

        stats = cache.get_stats()

        assert stats["snapshots"] == 2
        assert stats["listings"] == 3
        assert stats["storage_bytes"] > 0

    def test_creates_parent_directory(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "snapshots.db"
        SnapshotCache(path)
        assert path.exists()


class TestInMemorySnapshotStore:
    """Test the default process-lifetime store."""

    def test_clear_all_returns_count(self, make_listing):
        store = InMemorySnapshotStore()
        store.set("c1", [make_listing("a")])
        store.set("c2", [])

        assert store.clear_all() == 2
        assert store.keys() == []
        assert store.clear_all() == 0


class TestCheckerWithCache:
    """Test that alert baselines survive a restart."""

    def test_baseline_persists(self, tmp_path, make_listing):
        path = tmp_path / "snapshots.db"
        listings = [make_listing("a"), make_listing("b")]

        first = asyncio.run(AlertChecker(store=SnapshotCache(path)).diff("c1", listings))
        second = asyncio.run(AlertChecker(store=SnapshotCache(path)).diff("c1", listings))

        assert first == listings
        assert second == []
