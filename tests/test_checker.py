"""Tests for the snapshot diff engine."""

import asyncio

from homefinder.alerts.checker import AlertChecker, build_alerts, compare_listings, snapshot_key
from homefinder.alerts.snapshot import InMemorySnapshotStore
from homefinder.collectors.collector import DataCollector
from homefinder.collectors.dedup import dedupe
from homefinder.collectors.fetcher import ResilientFetcher
from homefinder.collectors.rightmove import RightmoveScraper
from homefinder.models.listing import Client, Listing, SearchQuery


def run(coro):
    return asyncio.run(coro)


class TestSnapshotKey:
    """Test snapshot identity fallbacks."""

    def test_id(self, make_listing):
        assert snapshot_key(make_listing("rightmove-1")) == "rightmove-1"

    def test_url_without_id(self):
        listing = Listing(id="", source="x", url="https://x.test/1")
        assert snapshot_key(listing) == "https://x.test/1"

    def test_composite(self):
        listing = Listing(id="", source="x", title="Flat", price=900, location="Bow")
        assert snapshot_key(listing) == "Flat-900-Bow"


class TestCompareListings:
    """Test the pure comparison."""

    def test_everything_new_against_empty(self, make_listing):
        current = [make_listing("a"), make_listing("b")]
        assert compare_listings([], current) == current

    def test_only_unseen_reported(self, make_listing):
        previous = [make_listing("a"), make_listing("b")]
        current = [make_listing("b"), make_listing("c"), make_listing("a")]

        assert [l.id for l in compare_listings(previous, current)] == ["c"]

    def test_repeats_reported_once(self, make_listing):
        current = [make_listing("a"), make_listing("a", title="Again"), make_listing("b")]

        new = compare_listings([], current)

        assert [l.id for l in new] == ["a", "b"]
        assert new[0].title == "2 bed flat"


class TestDiff:
    """Test stateful diffs against the snapshot store."""

    def test_first_diff_returns_all(self, make_listing):
        checker = AlertChecker(store=InMemorySnapshotStore())
        listings = [make_listing("a"), make_listing("b")]

        assert run(checker.diff("c1", listings)) == listings

    def test_second_identical_diff_is_empty(self, make_listing):
        checker = AlertChecker()
        listings = [make_listing("a"), make_listing("b")]

        async def twice():
            await checker.diff("c1", listings)
            return await checker.diff("c1", listings)

        assert run(twice()) == []

    def test_snapshot_is_replaced_not_merged(self, make_listing):
        """A listing that disappears and comes back counts as new again."""
        checker = AlertChecker()
        a, b = make_listing("a"), make_listing("b")

        async def rounds():
            await checker.diff("c1", [a, b])
            await checker.diff("c1", [b])
            return await checker.diff("c1", [a, b])

        assert run(rounds()) == [a]
        assert checker.store.get("c1") == [a, b]

    def test_subscribers_are_independent(self, make_listing):
        checker = AlertChecker()
        listings = [make_listing("a")]

        async def two_clients():
            await checker.diff("c1", listings)
            return await checker.diff("c2", listings)

        assert run(two_clients()) == listings

    def test_concurrent_diffs_same_key(self, make_listing):
        """Two racing diffs on one key see each other's snapshot."""
        checker = AlertChecker()
        listings = [make_listing("a"), make_listing("b")]

        async def race():
            return await asyncio.gather(checker.diff("c1", listings), checker.diff("c1", listings))

        first, second = run(race())
        assert sorted([len(first), len(second)]) == [0, 2]

    def test_listings_without_url_are_all_new(self):
        """Same title, different price: distinct listings, both reported."""
        scraper = RightmoveScraper(ResilientFetcher())
        listings = [
            scraper.listing_from_record({"title": "Flat", "price": price}) for price in (1000, 2000)
        ]
        current = dedupe(listings)

        assert listings[0].id != listings[1].id
        assert len(current) == 2
        assert run(AlertChecker().diff("c1", current)) == current

    def test_locks_dropped_when_idle(self, make_listing):
        checker = AlertChecker()
        listings = [make_listing("a")]

        async def go():
            await asyncio.gather(
                checker.diff("c1", listings),
                checker.diff("c1", listings),
                checker.record_snapshot("c2", listings),
            )

        run(go())

        assert checker._locks == {}
        assert checker.store.keys() == ["c1", "c2"]

    def test_record_snapshot(self, make_listing):
        checker = AlertChecker()
        listings = [make_listing("a")]

        async def go():
            await checker.record_snapshot("c1", listings)
            return await checker.diff("c1", listings)

        assert run(go()) == []


class TestCheckAll:
    """Test alert checks across subscribers."""

    def make_checker(self, settings, make_source, make_listing) -> AlertChecker:
        sources = [
            make_source("alpha", [make_listing("alpha-1", source="alpha")]),
            make_source("beta", [make_listing("beta-1", source="beta"), make_listing("beta-2", source="beta")]),
        ]
        collector = DataCollector(sources=sources, settings=settings, fetcher=ResilientFetcher())
        return AlertChecker(collector)

    def test_alerts_for_new_listings(self, settings, make_source, make_listing):
        checker = self.make_checker(settings, make_source, make_listing)
        clients = [
            Client(id="c1", name="Jane", search_criteria=SearchQuery(location="London")),
            Client(id="c2", name="Raj", search_criteria=SearchQuery(location="Leeds")),
        ]

        response = run(checker.check_all(clients))

        assert response.total_alerts == 2
        assert response.total_new_listings == 6
        assert [a.client_id for a in response.alerts] == ["c1", "c2"]
        assert response.alerts[0].client_name == "Jane"
        assert response.alerts[0].total_new == 3

    def test_second_check_has_no_alerts(self, settings, make_source, make_listing):
        checker = self.make_checker(settings, make_source, make_listing)
        clients = [Client(id="c1", name="Jane", search_criteria=SearchQuery(location="London"))]

        async def twice():
            await checker.check_all(clients)
            return await checker.check_all(clients)

        response = run(twice())

        assert response.total_alerts == 0
        assert response.to_response() == {"totalAlerts": 0, "totalNewListings": 0, "alerts": []}

    def test_no_clients(self, settings, make_source, make_listing):
        checker = self.make_checker(settings, make_source, make_listing)

        assert run(checker.check_all([])).total_alerts == 0


class TestBuildAlerts:
    """Test the pure batch variant."""

    def test_batch(self, make_listing):
        a, b, c = make_listing("a"), make_listing("b"), make_listing("c")

        alerts = build_alerts(
            previous_map={"c1": [a], "c2": [a, b]},
            current_map={"c1": [a, b], "c2": [a, b], "c3": [c]},
            names={"c1": "Jane"},
        )

        assert [alert.client_id for alert in alerts] == ["c1", "c3"]
        assert alerts[0].client_name == "Jane"
        assert alerts[0].new_listings == [b]
        assert alerts[1].client_name == "Client c3"

    def test_alert_response_shape(self, make_listing):
        alert = build_alerts({}, {"c1": [make_listing("a")]})[0]

        data = alert.to_response()

        assert set(data) == {"clientId", "clientName", "newListings", "timestamp", "totalNew"}
        assert data["totalNew"] == 1
        assert data["newListings"][0]["propertyType"] == "Unknown"
