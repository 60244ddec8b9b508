"""Alert checker for detecting newly appeared listings."""

import asyncio
import logging
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from ..collectors.collector import DataCollector
from ..models.listing import Alert, AlertsResponse, Client, Listing
from .snapshot import InMemorySnapshotStore, SnapshotStore

logger = logging.getLogger(__name__)


def snapshot_key(listing: Listing) -> str:
    """Identity of a listing across snapshots: id, else url, else title-price-location."""
    if listing.id:
        return listing.id
    if listing.url:
        return listing.url
    return f"{listing.title}-{listing.price}-{listing.location}"


def compare_listings(previous: list[Listing], current: list[Listing]) -> list[Listing]:
    """Listings in current whose key does not appear in previous.

    Repeats inside current are reported once (first wins), in current order.

    Args:
        previous: Last snapshot
        current: Freshly aggregated listings

    Returns:
        The new listings
    """
    seen = {snapshot_key(listing) for listing in previous}
    new_listings = []

    for listing in current:
        key = snapshot_key(listing)
        if key in seen:
            continue
        seen.add(key)
        new_listings.append(listing)

    return new_listings


def build_alerts(
    previous_map: dict[str, list[Listing]],
    current_map: dict[str, list[Listing]],
    names: Optional[dict[str, str]] = None,
) -> list[Alert]:
    """Build alerts for a batch of subscribers without touching any store.

    Args:
        previous_map: Client ID -> last snapshot (missing means empty)
        current_map: Client ID -> current listings
        names: Client ID -> display name (defaults to "Client <id>")

    Returns:
        One Alert per client with at least one new listing, in current_map order
    """
    names = names or {}
    alerts = []

    for client_id, current in current_map.items():
        new_listings = compare_listings(previous_map.get(client_id, []), current)
        if new_listings:
            alerts.append(
                Alert(
                    client_id=client_id,
                    client_name=names.get(client_id, f"Client {client_id}"),
                    new_listings=new_listings,
                )
            )

    return alerts


class AlertChecker:
    """Detect new listings for subscribers between alert runs.

    Each subscriber's saved search is aggregated, compared with the snapshot
    stored from the previous run, and the snapshot is replaced. Diffs for
    the same subscriber are serialized; different subscribers never wait on
    each other.

    Example:
        async with DataCollector() as collector:
            checker = AlertChecker(collector)
            response = await checker.check_all(clients)
            for alert in response.alerts:
                print(f"{alert.client_name}: {alert.total_new} new")
    """

    def __init__(
        self,
        collector: Optional[DataCollector] = None,
        store: Optional[SnapshotStore] = None,
    ):
        """Initialize checker.

        Args:
            collector: DataCollector used to run each saved search
            store: Snapshot store (in-memory if None)
        """
        self._collector = collector
        self.store: SnapshotStore = store if store is not None else InMemorySnapshotStore()
        # Per-subscriber locks, dropped once no task holds or awaits them
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: defaultdict[str, int] = defaultdict(int)

    @asynccontextmanager
    async def _subscriber_lock(self, subscriber_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(subscriber_id, asyncio.Lock())
        self._lock_users[subscriber_id] += 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[subscriber_id] -= 1
            if not self._lock_users[subscriber_id]:
                del self._lock_users[subscriber_id]
                del self._locks[subscriber_id]

    @property
    def collector(self) -> DataCollector:
        if self._collector is None:
            self._collector = DataCollector()
        return self._collector

    async def diff(self, subscriber_id: str, current: list[Listing]) -> list[Listing]:
        """Compare current with the stored snapshot, then replace the snapshot.

        Args:
            subscriber_id: Snapshot key
            current: Freshly aggregated listings

        Returns:
            Listings not present in the previous snapshot
        """
        async with self._subscriber_lock(subscriber_id):
            previous = self.store.get(subscriber_id)
            new_listings = compare_listings(previous, current)
            self.store.set(subscriber_id, current)

        logger.debug(
            f"Snapshot {subscriber_id}: {len(previous)} -> {len(current)} listings, "
            f"{len(new_listings)} new"
        )
        return new_listings

    async def record_snapshot(self, subscriber_id: str, listings: list[Listing]) -> None:
        """Replace the stored snapshot without computing a diff."""
        async with self._subscriber_lock(subscriber_id):
            self.store.set(subscriber_id, listings)

    async def check_subscriber(self, client: Client) -> Optional[Alert]:
        """Run one subscriber's saved search and diff it.

        Returns:
            Alert if any listing is new, else None
        """
        logger.info(f"Checking: {client.name}")
        result = await self.collector.search_all(client.search_criteria)
        new_listings = await self.diff(client.id, result.listings)

        if not new_listings:
            logger.info(f"  No new listings for {client.name}")
            return None

        logger.info(f"  Found {len(new_listings)} new listings for {client.name}")
        return Alert(client_id=client.id, client_name=client.name, new_listings=new_listings)

    async def check_all(self, clients: list[Client]) -> AlertsResponse:
        """Check every subscriber concurrently.

        Args:
            clients: Subscribers to check

        Returns:
            AlertsResponse with one alert per subscriber that has new listings
        """
        if not clients:
            logger.info("No clients to check")
            return AlertsResponse()

        logger.info(f"Checking {len(clients)} clients...")
        results = await asyncio.gather(*(self.check_subscriber(c) for c in clients))
        alerts = [alert for alert in results if alert is not None]

        response = AlertsResponse(alerts=alerts)
        logger.info(
            f"{response.total_alerts} alerts, {response.total_new_listings} new listings"
        )
        return response
