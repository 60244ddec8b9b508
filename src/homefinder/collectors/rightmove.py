"""Rightmove property-for-sale source.

Rightmove embeds its search results as JSON assigned to
``window.__PRELOADED_STATE__``; when that blob is missing the result cards
(``div.propertyCard``) are scanned instead. Prices are asking prices.
"""

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

# Mapping of generic property types to Rightmove propertyTypes values
PROPERTY_TYPE_MAPPING = {
    "house": "detached,semi-detached,terraced",
    "flat": "flat",
    "apartment": "flat",
    "condo": "flat",
    "detached": "detached",
    "semi-detached": "semi-detached",
    "terraced": "terraced",
    "bungalow": "bungalow",
    "land": "land",
}

DETAIL_LINK = re.compile(r"/properties/\d+")

CARD_FIELDS = CardFields(
    title=[
        "h2.propertyCard-title",
        "[data-test=property-title]",
        "h2[class*=title]",
        "h2",
    ],
    price=[
        ".propertyCard-priceValue",
        "[data-test=property-price]",
        "div[class*=price]",
    ],
    address=[
        "address",
        "[data-test=property-address]",
        "div[class*=address]",
    ],
    bedrooms=["[data-test=property-beds]", "[class*=bedroom]"],
    property_type=["span[class*=propertyType]", "[data-test=property-type]"],
)


class RightmoveScraper(DataSource):
    """Scraper for Rightmove sale listings.

    Example:
        scraper = RightmoveScraper(fetcher)
        outcome = await scraper.scrape(SearchQuery(location="London", bedrooms=3))
    """

    name = "rightmove"
    base_url = "https://www.rightmove.co.uk"
    search_path = "/property-for-sale/find.html"
    property_type_mapping = PROPERTY_TYPE_MAPPING
    id_patterns = [re.compile(r"/properties/(\d+)"), re.compile(r"/(\d+)\.html")]

    # Sort by newest listed
    SORT_NEWEST = "6"

    def build_search_url(self, query: SearchQuery) -> str:
        params: dict[str, Any] = {}

        if query.location:
            params["locationIdentifier"] = ""
            params["searchLocation"] = query.location
        if query.min_price:
            params["minPrice"] = query.min_price
        if query.max_price:
            params["maxPrice"] = query.max_price

        property_types = self.map_property_type(query.property_type)
        if property_types:
            params["propertyTypes"] = property_types

        if query.bedrooms:
            params["minBedrooms"] = query.bedrooms

        params["sortType"] = self.SORT_NEWEST
        params["includeSSTC"] = "false"

        return f"{self.base_url}{self.search_path}?{urlencode(params)}"

    def extractors(self) -> list[Extractor]:
        return [
            StructuredDataExtractor(
                source=self.name,
                global_names=["__PRELOADED_STATE__"],
                list_paths=["properties.results", "searchResults.properties", "properties"],
                map_record=self.listing_from_record,
            ),
            MarkupExtractor(
                source=self.name,
                base_url=self.base_url,
                card_selectors=["div.propertyCard", "[data-test^=propertyCard]", "div[class*=propertyCard]"],
                link_pattern=DETAIL_LINK,
                make_listing=self.listing_from_card,
                fields=CARD_FIELDS,
                max_cards=self.max_results,
            ),
        ]

    def listing_from_record(self, prop: dict[str, Any]) -> Optional[Listing]:
        """Map one embedded search result to a Listing."""
        url = absolute_url(
            self.base_url,
            first_present(prop, "url", "propertyUrl"),
        )
        title = clean_text(first_present(prop, "title", "displayAddress")) or "Property"
        location = clean_text(first_present(prop, "displayAddress", "address"))

        raw_price = first_present(
            prop,
            "price.amount",
            "priceAmount",
            "priceText",
            "price.displayPrices.0.displayPrice",
            "price",
        )
        if not url and raw_price is None:
            return None
        price = parse_price(raw_price)

        images = image_list(
            first_present(prop, "images", "propertyImages.images", "imageUrl"),
            self.base_url,
        )

        return Listing(
            id=self.make_id(url, title, price, location),
            source=self.name,
            url=url,
            title=title,
            price=price,
            location=location,
            city=clean_text(first_present(prop, "city", "town")) or city_from_location(location),
            state=clean_text(first_present(prop, "county")) or None,
            bedrooms=parse_bedrooms(first_present(prop, "bedrooms", "bedroomsText")),
            bathrooms=parse_bathrooms(first_present(prop, "bathrooms")),
            property_type=clean_text(first_present(prop, "propertyType", "propertySubType")) or "Unknown",
            images=images,
            description=clean_text(first_present(prop, "summary", "description")) or None,
            features=text_list(first_present(prop, "keyFeatures", "features")),
            listing_date=clean_text(first_present(prop, "firstVisibleDate", "addedOrReduced")) or None,
        )
