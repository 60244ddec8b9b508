"""Normalization helpers shared by the listing sources.

Price text, bedroom counts, URLs and identifiers arrive in a different shape
from every site. These helpers turn them into the canonical Listing fields.
"""

import math
import re
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional
from urllib.parse import urljoin, urlparse

# Rent sites quote per week; listings are normalized to per calendar month
WEEKS_PER_MONTH = Decimal("4.33")

_PRICE_STRIP = re.compile(r"[£$€,\s]")
_FIRST_INT = re.compile(r"(\d+)")
_BEDROOMS = re.compile(r"(\d+)\s*bed", re.IGNORECASE)
_BATHROOMS = re.compile(r"(\d+)\s*bath", re.IGNORECASE)
_MONTHLY_HINT = re.compile(r"pcm|per\s*month|/\s*month|p/m|monthly", re.IGNORECASE)
_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]")


def parse_price(text: Any) -> int:
    """Parse price text to a non-negative integer.

    Strips currency symbols, commas and whitespace, then takes the first run
    of digits: "£1,250 pw" -> 1250. Returns 0 when nothing is parseable.
    """
    if text is None or isinstance(text, (bool, dict, list)):
        return 0
    if isinstance(text, float) and not math.isfinite(text):
        return 0
    if isinstance(text, (int, float)):
        return max(0, int(text))
    cleaned = _PRICE_STRIP.sub("", str(text))
    match = _FIRST_INT.search(cleaned)
    return int(match.group(1)) if match else 0


def weekly_to_monthly(amount: float) -> int:
    """Convert a weekly amount to monthly (rounded half up)."""
    monthly = Decimal(str(amount)) * WEEKS_PER_MONTH
    return int(monthly.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def monthly_to_weekly(amount: float) -> int:
    """Convert a monthly amount to weekly (rounded half up)."""
    weekly = Decimal(str(amount)) / WEEKS_PER_MONTH
    return int(weekly.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def weekly_bounds(
    min_price: Optional[int], max_price: Optional[int]
) -> tuple[Optional[int], Optional[int]]:
    """Convert monthly search bounds to weekly ones.

    The lower bound rounds down and the upper bound rounds up so the weekly
    window never excludes a listing the monthly window would include.
    """
    weekly_min = math.floor(Decimal(min_price) / WEEKS_PER_MONTH) if min_price else None
    weekly_max = math.ceil(Decimal(max_price) / WEEKS_PER_MONTH) if max_price else None
    return weekly_min, weekly_max


def is_monthly_text(text: Any) -> bool:
    """True if price text explicitly quotes a monthly amount ("£950 pcm")."""
    return isinstance(text, str) and bool(_MONTHLY_HINT.search(text))


def normalize_price(value: Any, weekly: bool) -> int:
    """Parse a price and convert weekly amounts to monthly.

    Text explicitly marked as monthly is never converted.
    """
    amount = parse_price(value)
    if weekly and amount and not is_monthly_text(value):
        return weekly_to_monthly(amount)
    return amount


def parse_bedrooms(text: Any) -> Optional[int]:
    """Extract a bedroom count: "3 bed" -> 3, 2 -> 2."""
    if text is None or isinstance(text, bool):
        return None
    if isinstance(text, float) and not math.isfinite(text):
        return None
    if isinstance(text, (int, float)):
        return int(text) if text >= 0 else None
    match = _BEDROOMS.search(str(text))
    if match:
        return int(match.group(1))
    stripped = str(text).strip()
    return int(stripped) if stripped.isdigit() else None


def parse_bathrooms(text: Any) -> Optional[int]:
    """Extract a bathroom count: "2 baths" -> 2."""
    if text is None or isinstance(text, bool):
        return None
    if isinstance(text, float) and not math.isfinite(text):
        return None
    if isinstance(text, (int, float)):
        return int(text) if text >= 0 else None
    match = _BATHROOMS.search(str(text))
    if match:
        return int(match.group(1))
    stripped = str(text).strip()
    return int(stripped) if stripped.isdigit() else None


def clean_text(value: Any) -> str:
    """Collapse whitespace and trim; non-strings become ""."""
    if value is None:
        return ""
    return re.sub(r"\s+", " ", str(value)).strip()


def absolute_url(base_url: str, href: Any) -> str:
    """Resolve a (possibly relative) href against the site root.

    Anything other than a non-empty string resolves to "".
    """
    if not isinstance(href, str) or not href.strip():
        return ""
    href = href.strip()
    if href.startswith(("http://", "https://")):
        return href
    if href.startswith("//"):
        return f"{urlparse(base_url).scheme}:{href}"
    return urljoin(base_url.rstrip("/") + "/", href.lstrip("/"))


def listing_id(source: str, url: str, patterns: list[re.Pattern], fallback: str = "") -> str:
    """Derive a stable listing ID from the detail URL.

    Uses the first numeric segment matched by the source's patterns, e.g.
    "/properties/12345678" -> "rightmove-12345678". Without a numeric
    segment, falls back to the sanitized last URL segment (or the fallback
    text, typically "title-price-location").
    """
    for pattern in patterns:
        match = pattern.search(url)
        if match:
            return f"{source}-{match.group(1)}"
    path = urlparse(url).path if url else ""
    tail = path.rstrip("/").split("/")[-1] if path else ""
    tail = tail or fallback or "unknown"
    return f"{source}-{_NON_ALNUM.sub('-', tail)}"


def city_from_location(location: str) -> str:
    """First comma-separated part of an address."""
    return location.split(",")[0].strip() if location else ""


def first_present(record: dict[str, Any], *paths: str) -> Any:
    """Return the first non-empty value among dotted key paths.

    first_present(prop, "price.amount", "rent", "priceText") walks each path
    and returns the first value that is not None, "" or an empty container.
    Numeric path segments index into lists ("images.0.url").
    """
    for path in paths:
        value: Any = record
        for key in path.split("."):
            if isinstance(value, dict):
                value = value.get(key)
            elif isinstance(value, list) and key.isdigit() and int(key) < len(value):
                value = value[int(key)]
            else:
                value = None
                break
        if value not in (None, "", [], {}):
            return value
    return None


def text_list(value: Any) -> list[str]:
    """Normalize a list-of-strings field; a single string becomes one item."""
    if not value:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []
    return [clean_text(item) for item in value if isinstance(item, str) and item.strip()]


def image_list(value: Any, base_url: str, limit: int = 20) -> list[str]:
    """Normalize an images field (list of URLs or dicts, or one URL)."""
    if not value:
        return []
    if isinstance(value, (str, dict)):
        value = [value]
    images: list[str] = []
    for item in value:
        if isinstance(item, dict):
            item = first_present(item, "url", "src", "srcUrl", "large", "medium")
        if isinstance(item, str) and item.strip():
            images.append(absolute_url(base_url, item))
        if len(images) >= limit:
            break
    return images
