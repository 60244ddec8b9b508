"""Pytest fixtures and test utilities."""

import asyncio
from typing import Callable, Optional

import httpx
import pytest

from homefinder.collectors.base import DataSource
from homefinder.collectors.fetcher import ResilientFetcher
from homefinder.config import Settings
from homefinder.models.listing import Listing, SearchQuery, SourceOutcome


class StaticSource(DataSource):
    """Source returning canned listings after an optional delay."""

    def __init__(
        self,
        name: str,
        listings: Optional[list[Listing]] = None,
        error: Optional[str] = None,
        delay: float = 0.0,
        exc: Optional[BaseException] = None,
    ):
        super().__init__(fetcher=None)
        self.name = name
        self.base_url = f"https://{name}.test"
        self.listings = listings or []
        self.error = error
        self.delay = delay
        self.exc = exc
        self.queries: list[SearchQuery] = []

    def build_search_url(self, query: SearchQuery) -> str:
        return f"{self.base_url}/search"

    def extractors(self) -> list:
        return []

    async def scrape(self, query: SearchQuery) -> SourceOutcome:
        self.queries.append(query)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.exc is not None:
            raise self.exc
        if self.error:
            return SourceOutcome.failure(self.name, self.error)
        return SourceOutcome.ok(self.name, list(self.listings))


@pytest.fixture
def make_listing() -> Callable[..., Listing]:
    """Factory for listings with sensible defaults."""

    def _make(listing_id: str = "test-1", source: str = "test", **kwargs) -> Listing:
        data = {
            "id": listing_id,
            "source": source,
            "url": f"https://{source}.test/{listing_id}",
            "title": "2 bed flat",
            "price": 1500,
            "location": "Hackney, London",
            "city": "Hackney",
        }
        data.update(kwargs)
        return Listing(**data)

    return _make


@pytest.fixture
def make_source() -> type[StaticSource]:
    """The StaticSource class, for building canned sources."""
    return StaticSource


@pytest.fixture
def settings() -> Settings:
    """Settings with fast timings and no external services."""
    return Settings(
        timeout=5.0,
        max_retries=3,
        retry_delay=0.0,
        aggregation_timeout=5.0,
        scraper_api_key=None,
        proxy_sources=[],
        smtp_host=None,
        smtp_user=None,
        smtp_password=None,
    )


@pytest.fixture
def mock_fetcher() -> Callable[..., ResilientFetcher]:
    """Factory for a fetcher whose requests go to a handler function."""

    def _make(handler: Callable[[httpx.Request], httpx.Response], **kwargs) -> ResilientFetcher:
        kwargs.setdefault("retry_delay", 0.0)
        return ResilientFetcher(transport=httpx.MockTransport(handler), **kwargs)

    return _make


@pytest.fixture
def london_query() -> SearchQuery:
    """Sample London search."""
    return SearchQuery(location="London", max_price=2000, bedrooms=2)
