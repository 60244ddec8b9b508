"""OpenRent rental source.

OpenRent quotes rents per week. Search bounds are converted from monthly to
weekly before building the URL, and every parsed price is converted back to
a monthly figure so rentals compare with the other sources.
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
    text_list,
    weekly_bounds,
)

logger = logging.getLogger(__name__)

PROPERTY_TYPE_MAPPING = {
    "house": "house",
    "flat": "flat",
    "apartment": "flat",
    "condo": "flat",
    "detached": "house",
    "semi-detached": "house",
    "terraced": "house",
    "bungalow": "house",
    "studio": "studio",
}

DETAIL_LINK = re.compile(r"/properties/\d+|/property-to-rent/\S*?\d+")

CARD_FIELDS = CardFields(
    title=["h2[class*=title]", ".listing-title", "h2", "h3"],
    price=[".pim", "[class*=price]"],
    address=["address", "[class*=address]", "p[class*=location]"],
    bedrooms=["[class*=bedroom]", "[class*=bed]"],
    property_type=["[class*=propertyType]", "[class*=property-type]"],
)


class OpenRentScraper(DataSource):
    """Scraper for OpenRent rental listings (weekly rents, normalized monthly)."""

    name = "openrent"
    base_url = "https://www.openrent.co.uk"
    search_path = "/properties-to-rent"
    weekly_pricing = True
    property_type_mapping = PROPERTY_TYPE_MAPPING
    id_patterns = [re.compile(r"/(\d+)(?:\.html)?/?$"), re.compile(r"/properties/(\d+)")]

    def build_search_url(self, query: SearchQuery) -> str:
        params: dict[str, Any] = {}

        if query.location:
            params["term"] = query.location

        rent_min, rent_max = weekly_bounds(query.min_price, query.max_price)
        if rent_min is not None:
            params["rentMin"] = rent_min
        if rent_max is not None:
            params["rentMax"] = rent_max

        property_type = self.map_property_type(query.property_type)
        if property_type:
            params["propertyType"] = property_type

        if query.bedrooms:
            params["bedrooms"] = query.bedrooms

        params["sort"] = "newest"

        return f"{self.base_url}{self.search_path}?{urlencode(params)}"

    def extractors(self) -> list[Extractor]:
        return [
            StructuredDataExtractor(
                source=self.name,
                global_names=["__INITIAL_STATE__", "__OPENRENT__"],
                list_paths=["properties", "listings", "results"],
                map_record=self.listing_from_record,
            ),
            MarkupExtractor(
                source=self.name,
                base_url=self.base_url,
                card_selectors=[".pli", "div[class*=property]"],
                link_pattern=DETAIL_LINK,
                make_listing=self.listing_from_card,
                fields=CARD_FIELDS,
                max_cards=self.max_results,
            ),
        ]

    def listing_from_record(self, prop: dict[str, Any]) -> Optional[Listing]:
        """Map one embedded search result to a Listing.

        Numeric and text prices are both treated as weekly unless the text
        says otherwise ("£950 pcm").
        """
        url = absolute_url(self.base_url, first_present(prop, "url", "propertyUrl", "slug"))
        title = clean_text(first_present(prop, "title", "name", "heading")) or "Property"
        location = clean_text(first_present(prop, "address", "location", "displayAddress"))

        raw_price = first_present(prop, "price", "rent", "priceText")
        if not url and raw_price is None:
            return None
        price = self.normalize_price(raw_price)

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
            property_type=clean_text(first_present(prop, "propertyType", "type")) or "Unknown",
            images=image_list(first_present(prop, "images", "imageUrls", "imageUrl"), self.base_url),
            description=clean_text(first_present(prop, "summary", "description")) or None,
            features=text_list(first_present(prop, "features", "keyFeatures")),
            listing_date=clean_text(first_present(prop, "listedDate", "availableFrom")) or None,
        )
