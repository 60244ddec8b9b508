"""Listing, query and alert data models."""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, computed_field
from pydantic.alias_generators import to_camel

# Shared config: camelCase on the wire, snake_case in Python
_CAMEL_CONFIG = {
    "alias_generator": to_camel,
    "populate_by_name": True,
}


class Listing(BaseModel):
    """Canonical real estate listing.

    Represents a property or room advertisement from any source (Rightmove,
    Zoopla, OpenRent, SpareRoom) normalized into one schema. Rental prices
    are always monthly, sale prices are asking prices.
    """

    # Identification
    id: str = Field(..., description="Stable identity, prefixed by source name")
    source: str = Field(..., description="Adapter name (rightmove, zoopla, ...)")
    url: str = Field(default="", description="Absolute link to the detail page")

    # Summary
    title: str = Field(default="Property", description="Listing headline")
    price: int = Field(default=0, ge=0, description="Normalized price, 0 if unknown")

    # Location
    location: str = Field(default="", description="Free text address")
    city: str = Field(default="", description="City or town")
    state: str | None = Field(default=None, description="County or region")

    # Property details
    bedrooms: int | None = Field(default=None, ge=0)
    bathrooms: int | None = Field(default=None, ge=0)
    area: int | None = Field(default=None, ge=0, description="Floor area if published")
    property_type: str = Field(default="Unknown", description="Source vocabulary")

    # Content
    images: list[str] = Field(default_factory=list, description="Ordered image URLs")
    description: str | None = Field(default=None)
    features: list[str] = Field(default_factory=list, description="Bullet features")
    listing_date: str | None = Field(default=None, description="Date listed, as published")

    model_config = {
        **_CAMEL_CONFIG,
        "str_strip_whitespace": True,
    }


class SearchQuery(BaseModel):
    """Search intent of a request or a subscriber.

    Every field is optional. Adapters that need a location treat a missing
    one as "no results" rather than an error.
    """

    location: str | None = None
    property_type: str | None = None
    min_price: int | None = Field(default=None, ge=0)
    max_price: int | None = Field(default=None, ge=0)
    bedrooms: int | None = Field(default=None, ge=0)
    bathrooms: int | None = Field(default=None, ge=0)

    model_config = {
        **_CAMEL_CONFIG,
        "str_strip_whitespace": True,
        "extra": "ignore",
    }


class SourceOutcome(BaseModel):
    """Result of one adapter in one aggregation round.

    Failures are represented as data (success=False plus an error message)
    so one source can never abort the others.
    """

    source: str
    success: bool
    listings: list[Listing] = Field(default_factory=list)
    error: str | None = None

    model_config = _CAMEL_CONFIG

    @computed_field  # type: ignore[prop-decorator]
    @property
    def count(self) -> int:
        """Number of listings this source contributed."""
        return len(self.listings)

    @classmethod
    def ok(cls, source: str, listings: list[Listing]) -> "SourceOutcome":
        return cls(source=source, success=True, listings=listings)

    @classmethod
    def failure(cls, source: str, error: str) -> "SourceOutcome":
        return cls(source=source, success=False, listings=[], error=error)

    def summary(self) -> dict[str, Any]:
        """Response entry: {source, success, count, error?}."""
        data: dict[str, Any] = {
            "source": self.source,
            "success": self.success,
            "count": self.count,
        }
        if self.error:
            data["error"] = self.error
        return data


class AggregationResult(BaseModel):
    """Merged and deduplicated result of one aggregation round."""

    listings: list[Listing] = Field(default_factory=list)
    outcomes: list[SourceOutcome] = Field(default_factory=list)

    model_config = _CAMEL_CONFIG

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_found(self) -> int:
        return len(self.listings)

    def to_response(self) -> dict[str, Any]:
        """Outbound payload: {listings, totalFound, sources}."""
        return {
            "listings": [
                listing.model_dump(mode="json", by_alias=True)
                for listing in self.listings
            ],
            "totalFound": self.total_found,
            "sources": [outcome.summary() for outcome in self.outcomes],
        }


class Client(BaseModel):
    """Subscriber whose saved search is checked for new listings."""

    id: str
    name: str
    email: str | None = None
    search_criteria: SearchQuery = Field(default_factory=SearchQuery)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = _CAMEL_CONFIG


class Alert(BaseModel):
    """New listings detected for one subscriber. Derived, never stored."""

    client_id: str
    client_name: str
    new_listings: list[Listing] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = _CAMEL_CONFIG

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_new(self) -> int:
        return len(self.new_listings)

    def to_response(self) -> dict[str, Any]:
        return {
            "clientId": self.client_id,
            "clientName": self.client_name,
            "newListings": [
                listing.model_dump(mode="json", by_alias=True)
                for listing in self.new_listings
            ],
            "timestamp": self.timestamp.isoformat(),
            "totalNew": self.total_new,
        }


class AlertsResponse(BaseModel):
    """Summary of one alert check across subscribers."""

    alerts: list[Alert] = Field(default_factory=list)

    model_config = _CAMEL_CONFIG

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_alerts(self) -> int:
        return len(self.alerts)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_new_listings(self) -> int:
        return sum(alert.total_new for alert in self.alerts)

    def to_response(self) -> dict[str, Any]:
        """Outbound payload: {totalAlerts, totalNewListings, alerts}."""
        return {
            "totalAlerts": self.total_alerts,
            "totalNewListings": self.total_new_listings,
            "alerts": [alert.to_response() for alert in self.alerts],
        }
