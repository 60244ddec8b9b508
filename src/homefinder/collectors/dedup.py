"""Listing de-duplication across sources."""

import logging

from ..models.listing import Listing

logger = logging.getLogger(__name__)


def identity_key(listing: Listing) -> str:
    """Key identifying the same listing seen twice.

    ``source-url`` when the listing has a URL, otherwise
    ``source-title-price-location``.
    """
    if listing.url:
        return f"{listing.source}-{listing.url}"
    return f"{listing.source}-{listing.title}-{listing.price}-{listing.location}"


def is_more_complete(candidate: Listing, existing: Listing) -> bool:
    """True if candidate carries strictly more detail than existing.

    Any one of: a description where existing has none, more images, or more
    features.
    """
    if candidate.description and not existing.description:
        return True
    if len(candidate.images) > len(existing.images):
        return True
    return len(candidate.features) > len(existing.features)


def dedupe(listings: list[Listing]) -> list[Listing]:
    """Collapse listings sharing an identity key.

    The first occurrence of each key holds its position in the output; a
    later repeat replaces it only when it is more complete. Ties keep the
    existing listing.

    Args:
        listings: Merged listings from all sources

    Returns:
        Listings with unique identity keys, in first-seen order
    """
    unique: dict[str, Listing] = {}

    for listing in listings:
        key = identity_key(listing)
        existing = unique.get(key)
        if existing is None:
            unique[key] = listing
        elif is_more_complete(listing, existing):
            unique[key] = listing

    dropped = len(listings) - len(unique)
    if dropped:
        logger.debug(f"Dropped {dropped} duplicate listings")

    return list(unique.values())
