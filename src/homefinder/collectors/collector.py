"""Data collection orchestrator.

This module provides the DataCollector class which fans a search query out
to every registered listing source concurrently, waits for all of them to
settle, and merges their listings into one de-duplicated result. A source
that fails or times out is reported in the per-source outcomes and never
sinks the others.
"""

import asyncio
import logging
from typing import Any, Optional, Union

from ..config import Settings
from ..config import config as default_config
from ..models.listing import AggregationResult, Listing, SearchQuery, SourceOutcome
from .base import ConfigError, DataSource
from .dedup import dedupe
from .fetcher import ResilientFetcher
from .openrent import OpenRentScraper
from .rightmove import RightmoveScraper
from .spareroom import SpareRoomScraper
from .zoopla import ZooplaScraper

logger = logging.getLogger(__name__)

DEFAULT_SOURCES: list[type[DataSource]] = [
    RightmoveScraper,
    ZooplaScraper,
    OpenRentScraper,
    SpareRoomScraper,
]


class DataCollector:
    """Aggregates listings from multiple sources in parallel.

    Features:
        - Concurrent fan-out, one task per registered source
        - Per-round deadline (``aggregation_timeout``)
        - Partial failure: failed sources are reported, not raised
        - Merge in registration order, so completion order never matters
        - De-duplication of the merged listings

    Example:
        async with DataCollector() as collector:
            result = await collector.search_all({"location": "London", "maxPrice": 500000})
            print(result.total_found, [o.summary() for o in result.outcomes])

        # Or explicitly provide sources
        collector = DataCollector(sources=[RightmoveScraper(fetcher)])
    """

    def __init__(
        self,
        sources: Optional[list[DataSource]] = None,
        settings: Optional[Settings] = None,
        fetcher: Optional[ResilientFetcher] = None,
    ):
        """Initialize the DataCollector.

        Args:
            sources: DataSource instances to use. If None, the four bundled
                     sources are registered, sharing one fetcher.
            settings: Settings to use (defaults to the module-level config)
            fetcher: Shared fetcher; built from settings if None
        """
        self.settings = settings or default_config
        self.fetcher = fetcher or ResilientFetcher.from_settings(self.settings)
        self.aggregation_timeout = self.settings.aggregation_timeout
        self._sources: list[DataSource] = []

        if sources is None:
            sources = self._default_sources()
        for source in sources:
            self.add_source(source)

    def _default_sources(self) -> list[DataSource]:
        proxied = {name.lower() for name in self.settings.proxy_sources}
        return [
            source_class(
                self.fetcher,
                use_proxy=source_class.name in proxied,
                max_results=self.settings.max_results,
            )
            for source_class in DEFAULT_SOURCES
        ]

    @property
    def sources(self) -> list[DataSource]:
        """Registered sources, in registration order."""
        return list(self._sources)

    def add_source(self, source: DataSource) -> None:
        """Register a new data source.

        Args:
            source: DataSource instance to add

        Raises:
            ValueError: If a source with the same name is already registered
        """
        if self.get_source(source.name) is not None:
            raise ValueError(f"Source already registered: {source.name}")
        self._sources.append(source)
        logger.debug(f"Added source: {source.name}")

    def remove_source(self, name: str) -> bool:
        """Remove a data source by name.

        Args:
            name: Name of the source to remove

        Returns:
            True if source was removed, False if not found
        """
        for i, source in enumerate(self._sources):
            if source.name == name:
                self._sources.pop(i)
                logger.debug(f"Removed source: {name}")
                return True
        return False

    def get_source(self, name: str) -> Optional[DataSource]:
        """Get a specific data source by name.

        Args:
            name: Name of the source to get

        Returns:
            DataSource instance or None if not found
        """
        for source in self._sources:
            if source.name == name:
                return source
        return None

    def get_source_names(self) -> list[str]:
        """Names of all registered sources, in registration order."""
        return [s.name for s in self._sources]

    async def _run_source(self, source: DataSource, query: SearchQuery) -> SourceOutcome:
        """Run one source under the round deadline, never raising except ConfigError."""
        try:
            return await asyncio.wait_for(source.scrape(query), timeout=self.aggregation_timeout)
        except ConfigError:
            raise
        except asyncio.TimeoutError:
            message = f"Timed out after {self.aggregation_timeout:g}s"
            logger.error(f"[{source.name}] {message}")
            return SourceOutcome.failure(source.name, message)
        except Exception as e:
            logger.error(f"Unexpected error from {source.name}: {e}")
            return SourceOutcome.failure(source.name, str(e) or type(e).__name__)

    async def search_all(
        self, query: Union[SearchQuery, dict[str, Any]]
    ) -> AggregationResult:
        """Search every registered source and merge the results.

        Args:
            query: SearchQuery, or a dict in either snake_case or camelCase

        Returns:
            AggregationResult with de-duplicated listings and one outcome
            per source, in registration order

        Raises:
            ConfigError: If a source needs configuration that is missing
        """
        if not isinstance(query, SearchQuery):
            query = SearchQuery.model_validate(query)

        sources = list(self._sources)
        logger.info(
            f"Searching {len(sources)} sources for '{query.location}' "
            f"({', '.join(s.name for s in sources)})"
        )

        outcomes = await asyncio.gather(*(self._run_source(s, query) for s in sources))

        merged: list[Listing] = []
        for outcome in outcomes:
            if outcome.success:
                merged.extend(outcome.listings)

        listings = dedupe(merged)
        failed = [o.source for o in outcomes if not o.success]
        if failed:
            logger.warning(f"Sources failed: {', '.join(failed)}")
        logger.info(f"Aggregated {len(listings)} listings ({len(merged)} before de-duplication)")

        return AggregationResult(listings=listings, outcomes=list(outcomes))

    async def close(self) -> None:
        """Close the shared fetcher and release resources."""
        await self.fetcher.close()

    async def __aenter__(self) -> "DataCollector":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()
