"""Tests for DataCollector."""

import asyncio

import pytest

from homefinder.alerts.checker import AlertChecker
from homefinder.collectors.base import ConfigError
from homefinder.collectors.collector import DataCollector
from homefinder.collectors.fetcher import ResilientFetcher
from homefinder.config import Settings
from homefinder.models.listing import Client, SearchQuery


def run(coro):
    return asyncio.run(coro)


def collector_for(sources, settings) -> DataCollector:
    return DataCollector(sources=sources, settings=settings, fetcher=ResilientFetcher())


class TestRegistry:
    """Test source registration."""

    def test_default_sources(self, settings):
        collector = DataCollector(settings=settings)

        assert collector.get_source_names() == ["rightmove", "zoopla", "openrent", "spareroom"]
        assert all(s.fetcher is collector.fetcher for s in collector.sources)
        assert not any(s.use_proxy for s in collector.sources)

    def test_proxy_sources_setting(self, settings):
        proxied = settings.model_copy(update={"proxy_sources": ["spareroom"]})
        collector = DataCollector(settings=proxied)

        assert collector.get_source("spareroom").use_proxy
        assert not collector.get_source("rightmove").use_proxy

    def test_add_and_remove(self, settings, make_source):
        collector = collector_for([], settings)
        collector.add_source(make_source("one"))

        assert collector.get_source("one") is not None
        assert collector.remove_source("one")
        assert not collector.remove_source("one")
        assert collector.get_source("one") is None

    def test_duplicate_name_rejected(self, settings, make_source):
        collector = collector_for([make_source("one")], settings)

        with pytest.raises(ValueError):
            collector.add_source(make_source("one"))


class TestSearchAll:
    """Test concurrent aggregation."""

    def test_merges_in_registration_order(self, settings, make_source, make_listing):
        sources = [
            make_source("a", [make_listing("a-1", source="a"), make_listing("a-2", source="a")]),
            make_source("b", [make_listing("b-1", source="b")]),
        ]

        result = run(collector_for(sources, settings).search_all(SearchQuery(location="London")))

        assert [l.id for l in result.listings] == ["a-1", "a-2", "b-1"]
        assert result.total_found == 3
        assert [o.source for o in result.outcomes] == ["a", "b"]

    def test_completion_order_does_not_matter(self, settings, make_source, make_listing):
        """Identical results whichever source finishes first."""

        def search(delay_a, delay_b):
            sources = [
                make_source("a", [make_listing("a-1", source="a")], delay=delay_a),
                make_source("b", [make_listing("b-1", source="b")], delay=delay_b),
            ]
            return run(collector_for(sources, settings).search_all({"location": "London"}))

        slow_first = search(0.05, 0.0)
        fast_first = search(0.0, 0.05)

        assert slow_first.listings == fast_first.listings
        assert [o.source for o in slow_first.outcomes] == [o.source for o in fast_first.outcomes]

    def test_partial_failure(self, settings, make_source, make_listing):
        """One failing source never sinks the others."""
        sources = [
            make_source("rightmove", [make_listing("r-1", source="rightmove")]),
            make_source("zoopla", error="Request failed after 3 attempts: HTTP 503"),
            make_source("openrent", [make_listing("o-1", source="openrent")]),
            make_source("spareroom", [make_listing("s-1", source="spareroom")]),
        ]

        result = run(collector_for(sources, settings).search_all({"location": "London"}))

        assert result.total_found == 3
        failed = [o for o in result.outcomes if not o.success]
        assert [o.source for o in failed] == ["zoopla"]
        assert failed[0].error.startswith("Request failed")

        response = result.to_response()
        assert response["totalFound"] == 3
        assert response["sources"][1] == {
            "source": "zoopla",
            "success": False,
            "count": 0,
            "error": "Request failed after 3 attempts: HTTP 503",
        }

    def test_unexpected_exception_becomes_outcome(self, settings, make_source, make_listing):
        sources = [
            make_source("ok", [make_listing("ok-1", source="ok")]),
            make_source("broken", exc=RuntimeError("boom")),
        ]

        result = run(collector_for(sources, settings).search_all({"location": "London"}))

        assert result.total_found == 1
        assert result.outcomes[1].success is False
        assert result.outcomes[1].error == "boom"

    def test_deadline(self, settings, make_source, make_listing):
        """A source exceeding the round deadline is cancelled and reported."""
        fast = settings.model_copy(update={"aggregation_timeout": 0.05})
        sources = [
            make_source("quick", [make_listing("q-1", source="quick")]),
            make_source("stuck", [make_listing("s-1", source="stuck")], delay=5),
        ]

        result = run(collector_for(sources, fast).search_all({"location": "London"}))

        assert [l.id for l in result.listings] == ["q-1"]
        assert result.outcomes[1].success is False
        assert result.outcomes[1].error == "Timed out after 0.05s"

    def test_config_error_propagates(self, settings, make_source):
        sources = [
            make_source("ok"),
            make_source("proxied", exc=ConfigError("fetcher", "SCRAPER_API_KEY environment variable is not set")),
        ]

        with pytest.raises(ConfigError):
            run(collector_for(sources, settings).search_all({"location": "London"}))

    def test_all_failed(self, settings, make_source):
        sources = [make_source("a", error="down"), make_source("b", error="down")]

        result = run(collector_for(sources, settings).search_all({"location": "London"}))

        assert result.total_found == 0
        assert not any(o.success for o in result.outcomes)

    def test_dedupes_within_source(self, settings, make_source, make_listing):
        sources = [
            make_source("a", [make_listing("a-1", source="a"), make_listing("a-1", source="a", description="x")]),
        ]

        result = run(collector_for(sources, settings).search_all({"location": "London"}))

        assert result.total_found == 1
        assert result.listings[0].description == "x"

    def test_accepts_camel_case_dict(self, settings, make_source):
        source = make_source("a")

        run(collector_for([source], settings).search_all({"location": "London", "maxPrice": 2000, "propertyType": "flat"}))

        assert source.queries[0].max_price == 2000
        assert source.queries[0].property_type == "flat"


class TestLondonScenario:
    """End-to-end: aggregate, then diff twice for one subscriber."""

    def test_two_sources_two_rounds(self, settings, make_source, make_listing):
        sources = [
            make_source("alpha", [make_listing("alpha-1", source="alpha", url="https://alpha.test/A")]),
            make_source("beta", [make_listing("beta-1", source="beta", url="https://beta.test/B")]),
        ]
        collector = collector_for(sources, settings)
        checker = AlertChecker(collector)
        client = Client(id="c1", name="Jane", search_criteria=SearchQuery(location="London"))

        async def scenario():
            result = await collector.search_all({"location": "London"})
            first = await checker.diff("c1", result.listings)
            second_round = await collector.search_all({"location": "London"})
            second = await checker.diff("c1", second_round.listings)
            third = await checker.check_subscriber(client)
            return result, first, second, third

        result, first, second, third = run(scenario())

        assert result.total_found == 2
        assert sum(1 for o in result.outcomes if o.success) == 2
        assert [l.url for l in first] == ["https://alpha.test/A", "https://beta.test/B"]
        assert second == []
        assert third is None
