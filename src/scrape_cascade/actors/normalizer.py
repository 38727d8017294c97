"""Normalization of raw Apify dataset items into :class:`ScrapedItem` records.

Actors disagree on field names, so every field uses a ``.get()`` fallback
chain.  Listing-shaped items (price, beds, address...) additionally carry a
``propertyData`` dict for the downstream scoring stage.
"""

from __future__ import annotations

import json
from typing import Any

from scrape_cascade.core.models import ActorDescriptor, ScrapedItem, ScrapeTarget
from scrape_cascade.core.urls import detect_platform
from scrape_cascade.scraper import signals
from scrape_cascade.scraper.config import CONFIDENCE_HIGH, MAX_TITLE_CHARS
from scrape_cascade.scraper.content_extractor import collapse_whitespace, truncate

_TITLE_KEYS: tuple[str, ...] = ("title", "name", "streetAddress", "address", "caption", "text")
_CONTENT_KEYS: tuple[str, ...] = (
    "text",
    "markdown",
    "content",
    "description",
    "body",
    "caption",
    "postText",
    "fullText",
)
_URL_KEYS: tuple[str, ...] = ("url", "detailUrl", "postUrl", "link", "inputUrl")

# Raw key → propertyData key.
_PROPERTY_FIELDS: dict[str, str] = {
    "price": "price",
    "unformattedPrice": "price",
    "listPrice": "price",
    "bedrooms": "bedrooms",
    "beds": "bedrooms",
    "bathrooms": "bathrooms",
    "baths": "bathrooms",
    "livingArea": "livingArea",
    "sqft": "livingArea",
    "homeType": "homeType",
    "propertyType": "homeType",
    "homeStatus": "status",
    "status": "status",
    "zpid": "zpid",
    "mlsId": "mlsId",
    "yearBuilt": "yearBuilt",
    "daysOnZillow": "daysOnMarket",
    "daysOnMarket": "daysOnMarket",
}


def _first_str(raw: dict[str, Any], keys: tuple[str, ...]) -> str | None:
    for key in keys:
        value = raw.get(key)
        if isinstance(value, dict):
            # Address objects: {"streetAddress": ..., "city": ...}
            value = ", ".join(str(v) for v in value.values() if isinstance(v, (str, int)))
        if isinstance(value, (str, int, float)) and str(value).strip():
            return str(value).strip()
    return None


def _property_data(raw: dict[str, Any]) -> dict[str, Any] | None:
    data: dict[str, Any] = {}
    for raw_key, key in _PROPERTY_FIELDS.items():
        value = raw.get(raw_key)
        if value is not None and key not in data:
            data[key] = value
    address = raw.get("address")
    if isinstance(address, dict):
        data["address"] = address
    elif isinstance(address, str) and address:
        data["address"] = address
    # A lone "status" is not enough to call an item a listing.
    if not data or set(data) <= {"status"}:
        return None
    return data


def _fallback_content(raw: dict[str, Any]) -> str:
    """Compact ``key: value`` rendering of scalar fields for content-less items."""
    parts = [
        f"{key}: {value}"
        for key, value in raw.items()
        if isinstance(value, (str, int, float)) and not isinstance(value, bool)
    ]
    if parts:
        return "; ".join(parts)
    return json.dumps(raw, default=str, ensure_ascii=False)


def normalize_actor_item(
    raw: dict[str, Any],
    target: ScrapeTarget,
    descriptor: ActorDescriptor,
    max_chars: int,
) -> ScrapedItem:
    """Normalize one raw dataset item.

    Args:
        raw: Raw item dict from the actor's dataset.
        target: Target the run was started for.
        descriptor: Actor that produced the item.
        max_chars: Content truncation cap.

    Returns:
        A :class:`ScrapedItem` with ``source = "apify:<actor_id>"``.

    Raises:
        TypeError: If *raw* is not a dict.
    """
    if not isinstance(raw, dict):
        raise TypeError(f"dataset item is {type(raw).__name__}, expected dict")

    url = _first_str(raw, _URL_KEYS) or target.url
    platform = detect_platform(url)
    if platform in ("Unknown", "Real Estate") and target.platform:
        platform = target.platform

    content = _first_str(raw, _CONTENT_KEYS) or _fallback_content(raw)
    content = truncate(collapse_whitespace(content), max_chars)
    title = _first_str(raw, _TITLE_KEYS) or f"{platform} Content"
    title = truncate(collapse_whitespace(title), MAX_TITLE_CHARS)

    metadata: dict[str, Any] = {"confidence": CONFIDENCE_HIGH, "actorId": descriptor.actor_id}
    property_data = _property_data(raw)
    if property_data:
        metadata["propertyData"] = property_data
    metadata.update(signals.annotate(content))

    return ScrapedItem(
        url=url,
        title=title,
        content=content,
        platform=platform,
        source=f"apify:{descriptor.actor_id}",
        metadata=metadata,
    )
