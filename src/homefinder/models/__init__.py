"""Data models for HomeFinder."""

from homefinder.models.listing import (
    AggregationResult,
    Alert,
    AlertsResponse,
    Client,
    Listing,
    SearchQuery,
    SourceOutcome,
)

__all__ = [
    "Listing",
    "SearchQuery",
    "SourceOutcome",
    "AggregationResult",
    "Client",
    "Alert",
    "AlertsResponse",
]
