"""Request-scoped deduplication of scrape targets.

A :class:`DedupContext` is created for every
:meth:`~scrape_cascade.scraper.orchestrator.BatchOrchestrator.scrape` call and
discarded when it returns.  It is the only state shared between targets of a
batch.
"""

from __future__ import annotations

import logging

from scrape_cascade.core.models import BatchResult, ScrapeTarget
from scrape_cascade.core.urls import normalize_url

logger = logging.getLogger(__name__)


class DedupContext:
    """Tracks which target URLs a batch has already resolved.

    Usage::

        dedup = DedupContext()
        if dedup.claim(target):
            result = await resolve(target)
            dedup.remember(target, result)
        else:
            result = dedup.result_for(target)
    """

    def __init__(self) -> None:
        self._claimed: set[str] = set()
        self._results: dict[str, BatchResult] = {}

    @staticmethod
    def key(target: ScrapeTarget) -> str:
        return normalize_url(str(target.url or ""))

    def claim(self, target: ScrapeTarget) -> bool:
        """Mark *target* as being resolved.

        Returns:
            ``True`` if this is the first occurrence, ``False`` for a duplicate.
        """
        key = self.key(target)
        if key in self._claimed:
            logger.debug("dedup: duplicate target %s", target.url)
            return False
        self._claimed.add(key)
        return True

    def remember(self, target: ScrapeTarget, result: BatchResult) -> None:
        self._results[self.key(target)] = result

    def result_for(self, target: ScrapeTarget) -> BatchResult | None:
        """Return a copy of the result recorded for *target*'s URL, if any."""
        result = self._results.get(self.key(target))
        if result is None:
            return None
        return result.copy_for(target)
