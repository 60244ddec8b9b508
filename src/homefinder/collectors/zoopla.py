"""Zoopla property-for-sale source."""

import logging
import re
from typing import Any, Optional
from urllib.parse import urlencode

from ..models.listing import Listing, SearchQuery
from .base import DataSource
from .extractors import CardFields, Extractor, MarkupExtractor, StructuredDataExtractor
from .normalize import (
    absolute_url,
    city_from_location,
    clean_text,
    first_present,
    image_list,
    parse_bathrooms,
    parse_bedrooms,
    parse_price,
    text_list,
)

logger = logging.getLogger(__name__)

PROPERTY_TYPE_MAPPING = {
    "house": "houses",
    "flat": "flats",
    "apartment": "flats",
    "condo": "flats",
    "detached": "detached",
    "semi-detached": "semi-detached",
    "terraced": "terraced",
    "bungalow": "bungalows",
    "land": "land",
}

DETAIL_LINK = re.compile(r"/for-sale/details/\d+")

CARD_FIELDS = CardFields(
    title=["h2[class*=title]", "[data-testid=listing-title]", "h2", "h3"],
    price=["p[class*=price]", "[data-testid=listing-price]", "[class*=price]"],
    address=["address", "p[class*=address]", "[data-testid=listing-address]"],
    bedrooms=["[data-testid=listing-beds]", "[class*=bed]"],
    property_type=["span[class*=propertyType]", "[data-testid=listing-type]"],
)


class ZooplaScraper(DataSource):
    """Scraper for Zoopla sale listings.

    Zoopla has shipped its results under several globals over time
    (``__ZOOPLA__``, ``__INITIAL_STATE__``), with the listing array under
    ``listings`` or ``results``. Record field names vary just as much, so
    every field is read through a fallback chain.
    """

    name = "zoopla"
    base_url = "https://www.zoopla.co.uk"
    search_path = "/for-sale/property"
    property_type_mapping = PROPERTY_TYPE_MAPPING
    id_patterns = [re.compile(r"/details/(\d+)"), re.compile(r"/(\d+)\.html")]

    def build_search_url(self, query: SearchQuery) -> str:
        params: dict[str, Any] = {}

        if query.location:
            params["q"] = query.location
        if query.min_price:
            params["price_min"] = query.min_price
        if query.max_price:
            params["price_max"] = query.max_price

        property_types = self.map_property_type(query.property_type)
        if property_types:
            params["property_type"] = property_types

        if query.bedrooms:
            params["beds_min"] = query.bedrooms
        if query.bathrooms:
            params["baths_min"] = query.bathrooms

        params["sort"] = "newest_listings"

        return f"{self.base_url}{self.search_path}?{urlencode(params)}"

    def extractors(self) -> list[Extractor]:
        return [
            StructuredDataExtractor(
                source=self.name,
                global_names=["__ZOOPLA__", "__INITIAL_STATE__"],
                list_paths=["listings.regular", "listings", "results"],
                map_record=self.listing_from_record,
            ),
            MarkupExtractor(
                source=self.name,
                base_url=self.base_url,
                card_selectors=["article[class*=listing]", "[data-testid^=search-result]"],
                link_pattern=DETAIL_LINK,
                fallback_link_pattern=re.compile(r"property"),
                make_listing=self.listing_from_card,
                fields=CARD_FIELDS,
                max_cards=self.max_results,
            ),
        ]

    def listing_from_record(self, prop: dict[str, Any]) -> Optional[Listing]:
        """Map one embedded search result to a Listing."""
        url = absolute_url(
            self.base_url,
            first_present(prop, "url", "listingUrl", "detailsUrl", "listingUris.detail"),
        )
        title = clean_text(first_present(prop, "title", "heading", "displayAddress")) or "Property"
        location = clean_text(first_present(prop, "displayAddress", "address", "location"))

        raw_price = first_present(prop, "price", "priceAmount", "priceText", "pricing.label")
        if not url and raw_price is None:
            return None
        price = parse_price(raw_price)

        return Listing(
            id=self.make_id(url, title, price, location),
            source=self.name,
            url=url,
            title=title,
            price=price,
            location=location,
            city=clean_text(first_present(prop, "city", "town")) or city_from_location(location),
            state=clean_text(first_present(prop, "county", "region")) or None,
            bedrooms=parse_bedrooms(first_present(prop, "bedrooms", "bedroomCount", "bedroomsText")),
            bathrooms=parse_bathrooms(first_present(prop, "bathrooms", "bathroomCount")),
            property_type=clean_text(first_present(prop, "propertyType", "propertySubType")) or "Unknown",
            images=image_list(
                first_present(prop, "images", "imageUrls", "imageUrl", "image.src"),
                self.base_url,
            ),
            description=clean_text(first_present(prop, "summary", "description")) or None,
            features=text_list(first_present(prop, "features", "highlights")),
            listing_date=clean_text(first_present(prop, "publishedOn", "listingDate")) or None,
        )
