"""Resilient multi-backend scrape-job orchestrator.

Resolves URLs through an ordered cascade of Apify actors, then degrades to a
direct HTTP fetch and finally to a synthetic placeholder, so every target gets
an answer.

Sub-packages:
- ``actors``    — candidate tables, selection, run submit/poll/fetch
- ``providers`` — retrying HTTP client shared by all outbound calls
- ``scraper``   — cascade controller, degradation ladder, batch orchestrator
- ``core``      — data model, exceptions, URL helpers, logging
- ``config``    — environment-backed settings

Typical use::

    from scrape_cascade import scrape

    results = await scrape(["https://www.zillow.com/homedetails/1_zpid/"])
"""

from __future__ import annotations

from collections.abc import Iterable

import httpx

from scrape_cascade.config.settings import Settings
from scrape_cascade.core.models import BatchResult, ScrapeTarget
from scrape_cascade.scraper.orchestrator import BatchOrchestrator

__all__ = [
    "BatchOrchestrator",
    "BatchResult",
    "ScrapeTarget",
    "scrape",
]


async def scrape(
    urls: Iterable[str | ScrapeTarget],
    *,
    city: str | None = None,
    state: str | None = None,
    settings: Settings | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> list[BatchResult]:
    """Scrape *urls* as one batch.

    Plain URL strings are tagged with *city* / *state*; :class:`ScrapeTarget`
    instances are used as given.
    """
    targets = [
        u if isinstance(u, ScrapeTarget) else ScrapeTarget.from_url(u, city=city, state=state)
        for u in urls
    ]
    orchestrator = BatchOrchestrator(settings=settings, http_client=http_client)
    return await orchestrator.scrape(targets)
