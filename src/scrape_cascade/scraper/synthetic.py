"""Synthetic placeholder records: the terminal rung of the degradation ladder."""

from __future__ import annotations

from datetime import datetime

from scrape_cascade.core.models import SYNTHETIC_SOURCE, ScrapedItem, ScrapeTarget, utcnow
from scrape_cascade.core.urls import UNKNOWN_PLATFORM, detect_platform, extract_domain
from scrape_cascade.scraper.config import CONFIDENCE_NONE


def build_placeholder(
    target: ScrapeTarget,
    reason: str | None = None,
    now: datetime | None = None,
) -> ScrapedItem:
    """Fabricate a minimal, structurally valid item for *target*.

    The record depends only on the target's URL, domain, platform and locality
    (plus *reason* and the timestamp), so two calls with the same inputs and
    the same *now* are equal.  It never raises: targets without a usable URL
    get platform ``"Unknown"``.

    Args:
        target: Target that could not be scraped.
        reason: Short description of why the ladder got this far.
        now: Timestamp to stamp on the item (defaults to the current time).
    """
    url = target.url if isinstance(target.url, str) else ""
    domain = target.domain or extract_domain(url)
    platform = target.platform or detect_platform(url) or UNKNOWN_PLATFORM
    if not domain:
        platform = UNKNOWN_PLATFORM

    where = f" around {target.locality}" if target.locality else ""
    site = domain or "an unreachable source"
    content = (
        f"{platform} activity detected{where} on {site}, but the content could not be "
        "extracted by any backend. This is a placeholder record with no verified data."
    )

    metadata: dict[str, object] = {
        "confidence": CONFIDENCE_NONE,
        "protectionDetected": False,
        "domain": domain,
    }
    if target.locality:
        metadata["locality"] = target.locality
    if reason:
        metadata["reason"] = reason

    return ScrapedItem(
        url=url,
        title=f"{platform} activity detected",
        content=content,
        platform=platform,
        source=SYNTHETIC_SOURCE,
        extracted_at=now or utcnow(),
        synthetic=True,
        metadata=metadata,
    )
