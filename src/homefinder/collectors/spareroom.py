"""SpareRoom room-share source.

Rooms rather than whole properties: cards default to the "Room" type and a
"Room Available" title. Rents are weekly, normalized to monthly like
OpenRent. SpareRoom blocks plain clients aggressively, so it is the usual
candidate for ``HOMEFINDER_PROXY_SOURCES=["spareroom"]``.
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
    "room": "room",
    "studio": "studio",
    "flat": "flat",
    "apartment": "flat",
    "house": "house",
}

DETAIL_LINK = re.compile(r"/room/\d+|flatshare_id=\d+")

CARD_FIELDS = CardFields(
    title=["h2[class*=title]", "h3[class*=title]", "a[class*=listing] span", "h2"],
    price=["[class*=price]"],
    address=["address", "div[class*=address]", "p[class*=location]"],
    bedrooms=["span[class*=bedrooms]", "[class*=bed]"],
    property_type=[],
    default_title="Room Available",
    default_type="Room",
)


class SpareRoomScraper(DataSource):
    """Scraper for SpareRoom flatshare listings."""

    name = "spareroom"
    base_url = "https://www.spareroom.co.uk"
    search_path = "/flatshare"
    weekly_pricing = True
    property_type_mapping = PROPERTY_TYPE_MAPPING
    id_patterns = [
        re.compile(r"flatshare_id=(\d+)"),
        re.compile(r"/room/(\d+)"),
        re.compile(r"/(\d+)(?:\.html)?/?$"),
    ]

    def build_search_url(self, query: SearchQuery) -> str:
        params: dict[str, Any] = {}

        if query.location:
            params["search"] = query.location

        rent_min, rent_max = weekly_bounds(query.min_price, query.max_price)
        if rent_min is not None:
            params["min_rent"] = rent_min
        if rent_max is not None:
            params["max_rent"] = rent_max

        property_type = self.map_property_type(query.property_type)
        if property_type:
            params["property_type"] = property_type

        # Total bedrooms in the shared property
        if query.bedrooms:
            params["bedrooms"] = query.bedrooms

        params["sort_by"] = "date"

        return f"{self.base_url}{self.search_path}?{urlencode(params)}"

    def extractors(self) -> list[Extractor]:
        return [
            StructuredDataExtractor(
                source=self.name,
                global_names=["__INITIAL_STATE__", "__SPAREROOM__"],
                list_paths=["listings", "results", "rooms"],
                map_record=self.listing_from_record,
            ),
            MarkupExtractor(
                source=self.name,
                base_url=self.base_url,
                card_selectors=["li.listing-result", "article[class*=listing]", "div[class*=listing]"],
                link_pattern=DETAIL_LINK,
                fallback_link_pattern=re.compile(r"listing"),
                make_listing=self.listing_from_card,
                fields=CARD_FIELDS,
                max_cards=self.max_results,
            ),
        ]

    def listing_from_record(self, room: dict[str, Any]) -> Optional[Listing]:
        """Map one embedded room record to a Listing."""
        url = absolute_url(self.base_url, first_present(room, "url", "advertUrl", "link"))
        title = clean_text(first_present(room, "title", "heading", "name")) or "Room Available"
        location = clean_text(first_present(room, "location", "address", "area"))

        raw_price = first_present(room, "price", "rent", "priceText", "minRent")
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
            city=clean_text(first_present(room, "city", "town")) or city_from_location(location),
            state=clean_text(first_present(room, "county", "region")) or None,
            bedrooms=parse_bedrooms(first_present(room, "bedrooms", "bedroomCount", "bedroomsText")),
            bathrooms=parse_bathrooms(first_present(room, "bathrooms")),
            property_type=clean_text(first_present(room, "propertyType", "roomType", "type")) or "Room",
            images=image_list(first_present(room, "images", "photos", "imageUrl"), self.base_url),
            description=clean_text(first_present(room, "description", "summary")) or None,
            features=text_list(first_present(room, "features", "amenities")),
            listing_date=clean_text(first_present(room, "postedDate", "availableFrom")) or None,
        )
