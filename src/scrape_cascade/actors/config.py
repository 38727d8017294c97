"""Apify actor configuration: endpoints, input builders and the domain table.

No secrets are stored here.  The API token is read from
:class:`~scrape_cascade.config.settings.Settings` (``APIFY_TOKEN``).

Asynchronous delivery per candidate::

    POST /v2/acts/{actor_id}/runs      → data.id, data.defaultDatasetId
    GET  /v2/actor-runs/{run_id}       → data.status (polled)
    GET  /v2/datasets/{dataset_id}/items
    POST /v2/actor-runs/{run_id}/abort (best effort, on cancellation)

Domain routing: domain-specific actors run first in ``priority`` order, then
the generic :data:`GENERIC_ACTOR` as universal fallback.
"""

from __future__ import annotations

from typing import Any

from scrape_cascade.core.models import ActorDescriptor, ScrapeTarget

# ---------------------------------------------------------------------------
# Apify API endpoints (relative to ``Settings.apify_api_base``)
# ---------------------------------------------------------------------------

APIFY_RUN_PATH: str = "/v2/acts/{actor_id}/runs"
"""Start a run of an actor.  Format with ``actor_id``."""

APIFY_RUN_STATUS_PATH: str = "/v2/actor-runs/{run_id}"
"""Run status.  Format with ``run_id``."""

APIFY_RUN_ABORT_PATH: str = "/v2/actor-runs/{run_id}/abort"
"""Abort a run.  Format with ``run_id``."""

APIFY_DATASET_ITEMS_PATH: str = "/v2/datasets/{dataset_id}/items"
"""Dataset items of a finished run.  Format with ``dataset_id``."""

APIFY_PROVIDER: str = "apify"


# ---------------------------------------------------------------------------
# Input builders
# ---------------------------------------------------------------------------


def start_urls_input(target: ScrapeTarget) -> dict[str, Any]:
    """Input shared by most detail scrapers: a single start URL."""
    return {"startUrls": [{"url": target.url}]}


def listing_search_input(target: ScrapeTarget) -> dict[str, Any]:
    """Input for real-estate search actors, with the locality when known."""
    payload: dict[str, Any] = {"startUrls": [{"url": target.url}], "maxItems": 20}
    if target.locality:
        payload["search"] = target.locality
    return payload


def social_posts_input(target: ScrapeTarget) -> dict[str, Any]:
    """Input for social-profile actors (posts of one page/profile)."""
    return {"directUrls": [target.url], "resultsLimit": 20}


def reddit_input(target: ScrapeTarget) -> dict[str, Any]:
    return {"startUrls": [{"url": target.url}], "maxItems": 20, "skipComments": False}


def website_crawler_input(target: ScrapeTarget) -> dict[str, Any]:
    """Input for the generic crawler: the target page only, no link following."""
    return {
        "startUrls": [{"url": target.url}],
        "maxCrawlPages": 1,
        "maxCrawlDepth": 0,
        "crawlerType": "playwright:adaptive",
        "proxyConfiguration": {"useApifyProxy": True},
    }


# ---------------------------------------------------------------------------
# Actor descriptors
# ---------------------------------------------------------------------------

GENERIC_ACTOR: ActorDescriptor = ActorDescriptor(
    actor_id="apify~website-content-crawler",
    name="website-content-crawler",
    input_builder=website_crawler_input,
    memory_mbytes=4096,
    timeout_secs=180,
    max_items=5,
    priority=1000,
    generic=True,
)
"""Universal fallback appended last to every candidate list."""

DOMAIN_ACTORS: dict[str, tuple[ActorDescriptor, ...]] = {
    "zillow.com": (
        ActorDescriptor(
            actor_id="maxcopell~zillow-detail-scraper",
            name="zillow-detail",
            input_builder=start_urls_input,
            memory_mbytes=1024,
            timeout_secs=120,
            priority=10,
        ),
        ActorDescriptor(
            actor_id="maxcopell~zillow-scraper",
            name="zillow-search",
            input_builder=listing_search_input,
            memory_mbytes=2048,
            timeout_secs=180,
            priority=20,
        ),
    ),
    "realtor.com": (
        ActorDescriptor(
            actor_id="epctex~realtor-scraper",
            name="realtor",
            input_builder=listing_search_input,
            memory_mbytes=2048,
            timeout_secs=180,
            priority=10,
        ),
    ),
    "redfin.com": (
        ActorDescriptor(
            actor_id="epctex~redfin-scraper",
            name="redfin",
            input_builder=listing_search_input,
            memory_mbytes=2048,
            timeout_secs=180,
            priority=10,
        ),
    ),
    "trulia.com": (
        ActorDescriptor(
            actor_id="epctex~trulia-scraper",
            name="trulia",
            input_builder=listing_search_input,
            memory_mbytes=2048,
            timeout_secs=180,
            priority=10,
        ),
    ),
    "facebook.com": (
        ActorDescriptor(
            actor_id="apify~facebook-posts-scraper",
            name="facebook-posts",
            input_builder=start_urls_input,
            memory_mbytes=2048,
            timeout_secs=180,
            priority=10,
        ),
    ),
    "instagram.com": (
        ActorDescriptor(
            actor_id="apify~instagram-scraper",
            name="instagram",
            input_builder=social_posts_input,
            memory_mbytes=1024,
            timeout_secs=120,
            priority=10,
        ),
    ),
    "reddit.com": (
        ActorDescriptor(
            actor_id="trudax~reddit-scraper-lite",
            name="reddit",
            input_builder=reddit_input,
            memory_mbytes=1024,
            timeout_secs=120,
            priority=10,
        ),
    ),
    "tiktok.com": (
        ActorDescriptor(
            actor_id="clockworks~free-tiktok-scraper",
            name="tiktok",
            input_builder=social_posts_input,
            memory_mbytes=1024,
            timeout_secs=120,
            priority=10,
        ),
    ),
    "youtube.com": (
        ActorDescriptor(
            actor_id="streamers~youtube-scraper",
            name="youtube",
            input_builder=start_urls_input,
            memory_mbytes=1024,
            timeout_secs=120,
            priority=10,
        ),
    ),
    "x.com": (
        ActorDescriptor(
            actor_id="apidojo~tweet-scraper",
            name="tweets",
            input_builder=start_urls_input,
            memory_mbytes=1024,
            timeout_secs=120,
            priority=10,
        ),
    ),
    "twitter.com": (
        ActorDescriptor(
            actor_id="apidojo~tweet-scraper",
            name="tweets",
            input_builder=start_urls_input,
            memory_mbytes=1024,
            timeout_secs=120,
            priority=10,
        ),
    ),
}
"""Static domain table.  Keys match the bare hostname or any sub-domain of it."""
