"""Listing collection framework.

This module provides a unified interface for collecting listings from
multiple UK portals (Rightmove, Zoopla, OpenRent, SpareRoom) through a
plugin architecture.

Main Components:
    - ResilientFetcher: HTTP GET with timeout, retry, UA rotation and proxy mode
    - DataSource: Abstract base class for all listing sources
    - DataCollector: Runs every source concurrently and merges the results
    - dedupe: Collapses the same listing seen twice

Example usage:
    from homefinder.collectors import DataCollector

    async with DataCollector() as collector:
        result = await collector.search_all({"location": "London", "bedrooms": 2})
        for listing in result.listings:
            print(listing.title, listing.price)
"""

from .base import ConfigError, DataSource, DataSourceError, FetchError, ParseError
from .collector import DataCollector
from .dedup import dedupe, identity_key
from .fetcher import ResilientFetcher
from .openrent import OpenRentScraper
from .rightmove import RightmoveScraper
from .spareroom import SpareRoomScraper
from .zoopla import ZooplaScraper

__all__ = [
    "DataSource",
    "DataSourceError",
    "FetchError",
    "ParseError",
    "ConfigError",
    "ResilientFetcher",
    "DataCollector",
    "dedupe",
    "identity_key",
    "RightmoveScraper",
    "ZooplaScraper",
    "OpenRentScraper",
    "SpareRoomScraper",
]
