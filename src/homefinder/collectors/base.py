"""Abstract base class for listing sources.

This module defines the DataSource abstract base class that every listing
source adapter implements, and the error taxonomy shared by the fetcher,
the extractors and the aggregator.

A source only has to describe itself: how to turn a SearchQuery into a
search URL, and which extractors understand its pages. The base class runs
the common pipeline (validate, fetch, extract, cap) and converts fetch and
parse failures into a SourceOutcome instead of raising.

Example usage:
    class MySource(DataSource):
        name = "my_source"
        base_url = "https://example.com"

        def build_search_url(self, query):
            return f"{self.base_url}/search?q={query.location}"

        def extractors(self):
            return [StructuredDataExtractor(...), MarkupExtractor(...)]
"""

import logging
import re
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional

from ..models.listing import Listing, SearchQuery, SourceOutcome
from .normalize import (
    city_from_location,
    listing_id,
    normalize_price,
    parse_bedrooms,
)

if TYPE_CHECKING:
    from .extractors import CardData, Extractor
    from .fetcher import ResilientFetcher

logger = logging.getLogger(__name__)


class DataSourceError(Exception):
    """Base exception for data source errors.

    Attributes:
        source: Name of the data source (or component) that raised the error
        message: Error description
    """

    def __init__(self, source: str, message: str):
        self.source = source
        self.message = message
        super().__init__(f"[{source}] {message}")


class FetchError(DataSourceError):
    """Raised when a page cannot be retrieved after all attempts.

    Attributes:
        url: Target URL that failed
        status_code: Last HTTP status, if a response was received
        cause: Last underlying exception, if any
    """

    def __init__(
        self,
        source: str,
        message: str,
        url: str = "",
        status_code: Optional[int] = None,
        cause: Optional[BaseException] = None,
    ):
        self.url = url
        self.status_code = status_code
        self.cause = cause
        super().__init__(source, message)


class ParseError(DataSourceError):
    """Raised when embedded structured data is present but malformed.

    Always handled by the adapter, which falls through to the next extractor.
    """


class ConfigError(DataSourceError):
    """Raised when a required setting (e.g. the proxy API key) is missing.

    This is the only error allowed to propagate to the caller.
    """


class DataSource(ABC):
    """Abstract base class for listing source adapters.

    Attributes:
        name: Unique identifier for this source (e.g., "rightmove")
        base_url: Site root used to absolutize links and images
        requires_location: If True, queries without a location yield nothing
        weekly_pricing: If True, the site quotes rents per week
        property_type_mapping: Generic property type -> site vocabulary
        id_patterns: Regexes capturing the numeric ID in a detail URL
    """

    name: str
    base_url: str
    requires_location: bool = True
    weekly_pricing: bool = False
    property_type_mapping: dict[str, str] = {}
    id_patterns: list[re.Pattern] = []

    def __init__(
        self,
        fetcher: "ResilientFetcher",
        use_proxy: bool = False,
        max_results: int = 100,
    ):
        """Initialize the source.

        Args:
            fetcher: Shared ResilientFetcher used for every request
            use_proxy: Fetch through the third-party proxy instead of directly
            max_results: Maximum listings returned per search
        """
        self.fetcher = fetcher
        self.use_proxy = use_proxy
        self.max_results = max_results

    @abstractmethod
    def build_search_url(self, query: SearchQuery) -> str:
        """Build the source-specific search URL for a query."""

    @abstractmethod
    def extractors(self) -> list["Extractor"]:
        """Extractors for this source's pages, best first."""

    def map_property_type(self, property_type: Optional[str]) -> str:
        """Translate a generic property type; unknown values mean no filter."""
        if not property_type or property_type.lower() == "any":
            return ""
        return self.property_type_mapping.get(property_type.strip().lower(), "")

    def make_id(self, url: str, title: str = "", price: int = 0, location: str = "") -> str:
        """Listing ID from the URL; without one, from title-price-location."""
        return listing_id(self.name, url, self.id_patterns, f"{title}-{price}-{location}")

    def normalize_price(self, value: object) -> int:
        """Parse a price, converting weekly rents to monthly for weekly sources."""
        return normalize_price(value, self.weekly_pricing)

    def listing_from_card(self, card: "CardData") -> Optional[Listing]:
        """Build a Listing from the raw texts of one markup card."""
        if not card.url:
            return None
        price = self.normalize_price(card.price_text)
        return Listing(
            id=self.make_id(card.url, card.title, price, card.location),
            source=self.name,
            url=card.url,
            title=card.title,
            price=price,
            location=card.location,
            city=city_from_location(card.location),
            bedrooms=parse_bedrooms(card.bedrooms_text),
            property_type=card.property_type,
            images=card.images,
        )

    def validate_query(self, query: SearchQuery) -> bool:
        """Check that the query carries the fields this source needs."""
        if self.requires_location and not query.location:
            logger.warning(f"[{self.name}] No location provided in query")
            return False
        return True

    async def fetch_page(self, url: str) -> str:
        """Fetch one page, directly or through the proxy."""
        if self.use_proxy:
            return await self.fetcher.fetch_via_proxy(url, source=self.name)
        return await self.fetcher.fetch(url, source=self.name)

    def parse_listings(self, html: str) -> list[Listing]:
        """Run the extractors in rank order until one yields listings.

        A ParseError from one extractor means "try the next one".
        """
        for extractor in self.extractors():
            try:
                listings = extractor.extract(html)
            except ParseError as e:
                logger.debug(f"[{self.name}] {type(extractor).__name__} failed: {e.message}")
                continue
            if listings:
                logger.debug(
                    f"[{self.name}] {type(extractor).__name__} found {len(listings)} listings"
                )
                return listings[: self.max_results]
        return []

    async def scrape(self, query: SearchQuery) -> SourceOutcome:
        """Search this source and return its outcome.

        Never raises except ConfigError: fetch failures become an
        unsuccessful outcome carrying the error message, parse failures an
        empty list.

        Args:
            query: Normalized search query

        Returns:
            SourceOutcome with this source's listings
        """
        if not self.validate_query(query):
            return SourceOutcome.ok(self.name, [])

        url = self.build_search_url(query)
        logger.info(f"[{self.name}] Fetching: {url}")

        try:
            html = await self.fetch_page(url)
        except ConfigError:
            raise
        except FetchError as e:
            logger.error(f"[{self.name}] Scraper error: {e.message}")
            return SourceOutcome.failure(self.name, e.message)

        logger.debug(f"[{self.name}] Fetched {len(html)} bytes")
        listings = self.parse_listings(html)

        if listings:
            sample = listings[0]
            logger.info(
                f"[{self.name}] Found {len(listings)} listings "
                f"(sample: {sample.id} | {sample.title} | {sample.price})"
            )
        else:
            logger.warning(f"[{self.name}] No listings found, page layout may have changed")

        return SourceOutcome.ok(self.name, listings)
