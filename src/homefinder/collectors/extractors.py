"""Pluggable listing extractors.

Each source ranks two extraction strategies:

1. StructuredDataExtractor - decodes a JSON blob the site assigns to a
   well-known global (``window.__PRELOADED_STATE__ = {...}``) and maps its
   listing array record by record.
2. MarkupExtractor - scans the HTML with BeautifulSoup for repeated listing
   cards, or failing that for anchors pointing at detail pages.

The source tries them in order and keeps the first non-empty result, so the
brittle site-specific markup logic stays out of the orchestration code.
"""

import json
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from bs4 import BeautifulSoup, Tag

from ..models.listing import Listing
from .base import ParseError
from .normalize import absolute_url, clean_text, first_present

logger = logging.getLogger(__name__)

_PRICE_TEXT = re.compile(r"£\s*[\d,]+(?:\s*(?:pw|per week|pcm|per month))?", re.IGNORECASE)
_BEDROOMS_TEXT = re.compile(r"(\d+)\s*bed", re.IGNORECASE)
_SKIPPED_IMAGES = ("placeholder", "logo", "data:image")

RecordMapper = Callable[[dict[str, Any]], Optional[Listing]]


class Extractor(ABC):
    """Strategy turning a fetched page into listings."""

    @abstractmethod
    def extract(self, html: str) -> list[Listing]:
        """Extract listings from a page.

        Returns an empty list when the strategy does not apply.

        Raises:
            ParseError: If the page has the expected data but it is malformed
        """


class StructuredDataExtractor(Extractor):
    """Extract listings from a JSON object embedded in a script tag.

    Example:
        StructuredDataExtractor(
            source="rightmove",
            global_names=["__PRELOADED_STATE__"],
            list_paths=["properties.results", "properties"],
            map_record=source.listing_from_record,
        )
    """

    def __init__(
        self,
        source: str,
        global_names: list[str],
        list_paths: list[str],
        map_record: RecordMapper,
    ):
        self.source = source
        self.global_names = global_names
        self.list_paths = list_paths
        self.map_record = map_record
        self._decoder = json.JSONDecoder()

    def find_blob(self, html: str) -> Optional[dict[str, Any]]:
        """Locate and decode the first embedded data blob.

        Raises:
            ParseError: If a blob is assigned but none decodes to an object
        """
        errors: list[str] = []
        for name in self.global_names:
            pattern = re.compile(rf"window\.{re.escape(name)}\s*=\s*(?=\{{)")
            match = pattern.search(html)
            if not match:
                continue
            try:
                data, _ = self._decoder.raw_decode(html, match.end())
            except json.JSONDecodeError as e:
                errors.append(f"{name}: {e.msg} at char {e.pos}")
                continue
            if isinstance(data, dict):
                return data
            errors.append(f"{name}: expected an object")

        if errors:
            raise ParseError(self.source, "Malformed embedded data (" + "; ".join(errors) + ")")
        return None

    def extract(self, html: str) -> list[Listing]:
        data = self.find_blob(html)
        if data is None:
            return []

        records = first_present(data, *self.list_paths)
        if not isinstance(records, list):
            logger.debug(f"[{self.source}] Embedded data has no listing array")
            return []

        listings = []
        for record in records:
            if not isinstance(record, dict):
                continue
            try:
                listing = self.map_record(record)
            except (TypeError, ValueError, AttributeError, OverflowError) as e:
                # ValueError covers pydantic's ValidationError
                logger.debug(f"[{self.source}] Skipping malformed record: {e!r}")
                continue
            if listing is not None:
                listings.append(listing)
        return listings


@dataclass
class CardFields:
    """CSS selectors locating each field inside a listing card.

    Every field lists selectors tried in order; the first one matching an
    element with text wins.
    """

    title: list[str] = field(default_factory=lambda: ["h2.title", "h2", "h3"])
    price: list[str] = field(default_factory=lambda: ["[class*=price]"])
    address: list[str] = field(default_factory=lambda: ["address", "[class*=address]"])
    bedrooms: list[str] = field(default_factory=lambda: ["[class*=bed]"])
    property_type: list[str] = field(default_factory=lambda: ["[class*=propertyType]"])
    default_title: str = "Property"
    default_type: str = "Unknown"


@dataclass
class CardData:
    """Raw text pulled from one card, before normalization."""

    url: str
    title: str
    price_text: str
    location: str
    bedrooms_text: str
    property_type: str
    images: list[str]


CardMapper = Callable[[CardData], Optional[Listing]]


class MarkupExtractor(Extractor):
    """Extract listings by scanning listing cards in the page markup.

    Cards are found with the first card selector that matches anything. If
    no card yields a listing, every anchor whose href matches the detail
    link pattern is treated as a card instead (repeated hrefs are skipped).
    """

    MAX_IMAGES = 5

    def __init__(
        self,
        source: str,
        base_url: str,
        card_selectors: list[str],
        link_pattern: re.Pattern,
        make_listing: CardMapper,
        fields: Optional[CardFields] = None,
        fallback_link_pattern: Optional[re.Pattern] = None,
        max_cards: int = 100,
        max_links: int = 50,
    ):
        self.source = source
        self.base_url = base_url
        self.card_selectors = card_selectors
        self.link_pattern = link_pattern
        self.fallback_link_pattern = fallback_link_pattern
        self.make_listing = make_listing
        self.fields = fields or CardFields()
        self.max_cards = max_cards
        self.max_links = max_links

    def extract(self, html: str) -> list[Listing]:
        soup = BeautifulSoup(html, "html.parser")

        listings = self._from_cards(soup)
        if listings:
            return listings

        return self._from_links(soup)

    def _find_cards(self, soup: BeautifulSoup) -> list[Tag]:
        for selector in self.card_selectors:
            cards = soup.select(selector)
            if cards:
                return cards
        return []

    def _from_cards(self, soup: BeautifulSoup) -> list[Listing]:
        listings: list[Listing] = []
        seen_urls: set[str] = set()

        for card in self._find_cards(soup):
            if len(listings) >= self.max_cards:
                break
            href = self._card_link(card)
            if not href:
                continue
            url = absolute_url(self.base_url, href)
            if url in seen_urls:
                continue
            seen_urls.add(url)

            listing = self.make_listing(self.read_card(card, url))
            if listing is not None:
                listings.append(listing)

        return listings

    def _from_links(self, soup: BeautifulSoup) -> list[Listing]:
        listings: list[Listing] = []
        seen_hrefs: set[str] = set()

        for anchor in soup.find_all("a", href=self.link_pattern):
            if len(listings) >= self.max_links:
                break
            href = anchor["href"]
            if href in seen_hrefs:
                continue
            seen_hrefs.add(href)

            url = absolute_url(self.base_url, href)
            listing = self.make_listing(self.read_card(anchor, url))
            if listing is not None:
                listings.append(listing)

        return listings

    def _card_link(self, card: Tag) -> Optional[str]:
        """Detail link of a card: the card itself, or a matching anchor inside it."""
        if card.name == "a" and self.link_pattern.search(card.get("href", "")):
            return card["href"]
        link = card.find("a", href=self.link_pattern)
        if link is None and self.fallback_link_pattern is not None:
            link = card.find("a", href=self.fallback_link_pattern)
        return link["href"] if link is not None else None

    def read_card(self, card: Tag, url: str) -> CardData:
        """Pull the raw field texts out of one card."""
        fields = self.fields
        card_text = card.get_text(" ", strip=True)

        price_text = _select_text(card, fields.price)
        if not price_text:
            match = _PRICE_TEXT.search(card_text)
            price_text = match.group(0) if match else ""

        bedrooms_text = _select_text(card, fields.bedrooms)
        if not _BEDROOMS_TEXT.search(bedrooms_text) and not bedrooms_text.strip().isdigit():
            match = _BEDROOMS_TEXT.search(card_text)
            bedrooms_text = match.group(0) if match else ""

        return CardData(
            url=url,
            title=_select_text(card, fields.title) or fields.default_title,
            price_text=price_text,
            location=_select_text(card, fields.address),
            bedrooms_text=bedrooms_text,
            property_type=_select_text(card, fields.property_type) or fields.default_type,
            images=self._card_images(card),
        )

    def _card_images(self, card: Tag) -> list[str]:
        images: list[str] = []
        for img in card.find_all("img"):
            src = img.get("src") or img.get("data-src") or ""
            if not src or any(skip in src for skip in _SKIPPED_IMAGES):
                continue
            url = absolute_url(self.base_url, src)
            if url not in images:
                images.append(url)
            if len(images) >= self.MAX_IMAGES:
                break
        return images


def _select_text(card: Tag, selectors: list[str]) -> str:
    """Text of the first element matching any selector."""
    for selector in selectors:
        elem = card.select_one(selector)
        if elem is not None:
            text = clean_text(elem.get_text(" ", strip=True))
            if text:
                return text
    return ""
