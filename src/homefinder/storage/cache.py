"""SQLite-backed snapshot store.

Persists the last listing set seen for each subscriber so alert checks keep
their baseline across process restarts. One row per snapshot key; the
listings are stored as a JSON array.
"""

import json
import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Optional

from ..models.listing import Listing

logger = logging.getLogger(__name__)

# Default database location
DEFAULT_DB_PATH = Path.home() / ".homefinder" / "snapshots.db"


class SnapshotCache:
    """SQLite-based snapshot store for the alert checker.

    Implements the same get/set/clear interface as InMemorySnapshotStore.

    Example:
        store = SnapshotCache(Path("snapshots.db"))
        checker = AlertChecker(collector, store=store)

        # Inspect what is stored
        print(store.get_stats())
    """

    def __init__(self, db_path: Optional[Path] = None):
        """Initialize the snapshot cache.

        Args:
            db_path: SQLite database file. Defaults to ~/.homefinder/snapshots.db
        """
        self.db_path = Path(db_path) if db_path else DEFAULT_DB_PATH
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._init_db()

    def _init_db(self) -> None:
        """Initialize the database schema."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS snapshots (
                    key TEXT PRIMARY KEY,
                    data JSON NOT NULL,
                    listing_count INTEGER NOT NULL,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)
            conn.commit()

    def _serialize(self, listings: list[Listing]) -> str:
        return json.dumps([listing.model_dump(mode="json") for listing in listings])

    def _deserialize(self, data: str) -> list[Listing]:
        return [Listing.model_validate(item) for item in json.loads(data)]

    def get(self, key: str) -> list[Listing]:
        """Stored listings for key, or an empty list if none.

        Args:
            key: Snapshot key (subscriber ID)

        Returns:
            The listings last stored under key
        """
        with sqlite3.connect(self.db_path) as conn:
            row = conn.execute(
                "SELECT data FROM snapshots WHERE key = ?",
                (key,),
            ).fetchone()

        if row:
            return self._deserialize(row[0])
        return []

    def set(self, key: str, listings: list[Listing]) -> None:
        """Replace the stored listings for key.

        Args:
            key: Snapshot key (subscriber ID)
            listings: Listings to store
        """
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO snapshots (key, data, listing_count, updated_at)
                VALUES (?, ?, ?, ?)
                """,
                (key, self._serialize(listings), len(listings), datetime.now().isoformat()),
            )
            conn.commit()

        logger.debug(f"Stored snapshot {key} ({len(listings)} listings)")

    def clear(self, key: str) -> None:
        """Delete one snapshot."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("DELETE FROM snapshots WHERE key = ?", (key,))
            conn.commit()

    def clear_all(self) -> int:
        """Delete every snapshot.

        Returns:
            Number of snapshots deleted
        """
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute("DELETE FROM snapshots")
            conn.commit()
            deleted = cursor.rowcount

        if deleted > 0:
            logger.info(f"Cleared {deleted} snapshots")
        return deleted

    def keys(self) -> list[str]:
        with sqlite3.connect(self.db_path) as conn:
            rows = conn.execute("SELECT key FROM snapshots ORDER BY key").fetchall()
        return [row[0] for row in rows]

    def get_stats(self) -> dict:
        """Get cache statistics.

        Returns:
            Dict with snapshot count, total listings, date range and storage size
        """
        with sqlite3.connect(self.db_path) as conn:
            total, listings = conn.execute(
                "SELECT COUNT(*), COALESCE(SUM(listing_count), 0) FROM snapshots"
            ).fetchone()
            dates = conn.execute(
                "SELECT MIN(updated_at), MAX(updated_at) FROM snapshots"
            ).fetchone()

        size_bytes = self.db_path.stat().st_size if self.db_path.exists() else 0

        return {
            "snapshots": total,
            "listings": listings,
            "oldest_snapshot": dates[0],
            "newest_snapshot": dates[1],
            "storage_bytes": size_bytes,
        }
