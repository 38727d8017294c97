"""Batch orchestrator: the public entry point of the scrape cascade.

``await BatchOrchestrator().scrape(targets)`` returns exactly one
:class:`~scrape_cascade.core.models.BatchResult` per input target, in input
order, and never raises.  Per batch it:

1. assigns a ``batch_id`` (bound into every log record);
2. opens one shared :class:`httpx.AsyncClient`;
3. answers targets beyond ``max_batch_size`` with a skipped placeholder;
4. resolves each distinct URL once (later duplicates get a copy);
5. races every cascade against ``target_budget_seconds`` and degrades on
   expiry, itself bounded by ``degrade_budget_seconds``;
6. converts any unexpected exception into a synthetic placeholder.
"""

from __future__ import annotations

import asyncio
import base64
import logging
import time
import uuid
from collections import Counter
from collections.abc import Awaitable, Callable, Sequence

import httpx

from scrape_cascade.actors.runner import ActorRunner
from scrape_cascade.actors.selector import select_candidates
from scrape_cascade.config.settings import Settings, get_settings
from scrape_cascade.core.deduplication import DedupContext
from scrape_cascade.core.logging_config import batch_id_var
from scrape_cascade.core.models import AttemptOutcome, AttemptRecord, BatchResult, ScrapeTarget
from scrape_cascade.providers.client import ProviderClient, build_http_client
from scrape_cascade.scraper.cascade import CascadeOutcome, FallbackCascade, Selector
from scrape_cascade.scraper.direct_fetch import DirectFetcher

logger = logging.getLogger(__name__)


def as_target(value: ScrapeTarget | str) -> ScrapeTarget:
    """Coerce a URL string into a :class:`ScrapeTarget`."""
    if isinstance(value, ScrapeTarget):
        return value
    return ScrapeTarget.from_url("" if value is None else str(value))


class BatchOrchestrator:
    """Resolves a bounded batch of targets through the fallback cascade.

    Args:
        settings: Settings instance; defaults to :func:`get_settings`.
        http_client: Optional injected :class:`httpx.AsyncClient` (for
            testing).  When ``None`` a client is created per batch.
        sleep: Sleep used by the poll loop and retries (tests pass a no-op).
        clock: Monotonic clock for poll budgets and attempt durations.
        selector: Candidate selector; defaults to :func:`select_candidates`.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
        clock: Callable[[], float] | None = None,
        selector: Selector = select_candidates,
    ) -> None:
        self.settings = settings or get_settings()
        self._http_client = http_client
        self._sleep = sleep
        self._clock = clock or time.monotonic
        self._selector = selector

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------

    def build_cascade(self, http: httpx.AsyncClient) -> FallbackCascade:
        """Wire runner, direct fetcher and cascade around the shared *http* client."""
        s = self.settings
        retry_policy = s.retry_policy()

        apify_client: ProviderClient | None = None
        if s.apify_token:
            apify_client = ProviderClient(
                http,
                base_url=s.apify_api_base,
                headers={"Authorization": f"Bearer {s.apify_token}"},
                retry_policy=retry_policy,
                sleep=self._sleep,
            )
        else:
            logger.warning("orchestrator: APIFY_TOKEN not set; actor candidates will be skipped")

        runner = ActorRunner(
            apify_client,
            poll_policy=s.poll_policy(),
            max_items=s.max_items_per_run,
            max_content_chars=s.max_content_chars,
            sleep=self._sleep or asyncio.sleep,
            clock=self._clock,
        )
        zyte: ProviderClient | None = None
        if s.zyte_api_key:
            credential = base64.b64encode(f"{s.zyte_api_key}:".encode()).decode()
            zyte = ProviderClient(
                http,
                base_url=s.zyte_api_base,
                headers={"Authorization": f"Basic {credential}"},
                retry_policy=retry_policy,
                sleep=self._sleep,
            )
        zenrows: ProviderClient | None = None
        if s.zenrows_api_key:
            zenrows = ProviderClient(
                http,
                base_url=s.zenrows_api_base,
                params={"apikey": s.zenrows_api_key},
                retry_policy=retry_policy,
                sleep=self._sleep,
            )
        direct = DirectFetcher(
            ProviderClient(http, retry_policy=retry_policy, sleep=self._sleep),
            timeout=s.direct_fetch_timeout_seconds,
            max_chars=s.max_content_chars,
            zyte=zyte,
            zenrows=zenrows,
            proxy_timeout=s.proxy_fetch_timeout_seconds,
        )
        return FallbackCascade(
            runner,
            direct,
            selector=self._selector,
            abort_timeout=s.abort_timeout_seconds,
            clock=self._clock,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def scrape(self, targets: Sequence[ScrapeTarget | str]) -> list[BatchResult]:
        """Resolve every target; one result per target, in input order."""
        if not targets:
            return []

        resolved = [as_target(t) for t in targets]
        batch_id = uuid.uuid4().hex[:12]
        token = batch_id_var.set(batch_id)
        try:
            logger.info("orchestrator: batch of %d targets", len(resolved))
            async with build_http_client(
                self._http_client,
                timeout=self.settings.http_timeout_seconds,
                max_redirects=self.settings.direct_fetch_max_redirects,
            ) as http:
                cascade = self.build_cascade(http)
                results = await self._run_batch(cascade, resolved)
            tally = Counter(r.final_source.value for r in results)
            logger.info(
                "orchestrator: batch done (%s)",
                ", ".join(f"{source}={n}" for source, n in tally.items()),
            )
            return results
        finally:
            batch_id_var.reset(token)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _run_batch(
        self,
        cascade: FallbackCascade,
        targets: list[ScrapeTarget],
    ) -> list[BatchResult]:
        cap = self.settings.max_batch_size
        results: list[BatchResult | None] = [None] * len(targets)
        dedup = DedupContext()
        leaders: list[tuple[int, ScrapeTarget]] = []
        duplicates: list[tuple[int, ScrapeTarget]] = []

        for index, target in enumerate(targets):
            if index >= cap:
                results[index] = cascade.synthesize(
                    target,
                    [],
                    reason=f"batch size cap of {cap} reached",
                    outcome=AttemptOutcome.SKIPPED,
                ).to_result(target)
            elif dedup.claim(target):
                leaders.append((index, target))
            else:
                duplicates.append((index, target))

        if len(targets) > cap:
            logger.warning(
                "orchestrator: %d targets beyond the cap of %d were skipped",
                len(targets) - cap,
                cap,
            )

        concurrency = self.settings.batch_concurrency
        if concurrency <= 1:
            for index, target in leaders:
                results[index] = await self._resolve(cascade, target)
        else:
            semaphore = asyncio.Semaphore(concurrency)

            async def bounded(target: ScrapeTarget) -> BatchResult:
                async with semaphore:
                    return await self._resolve(cascade, target)

            resolved = await asyncio.gather(*(bounded(t) for _, t in leaders))
            for (index, _), result in zip(leaders, resolved):
                results[index] = result

        for index, target in leaders:
            dedup.remember(target, results[index])
        for index, target in duplicates:
            results[index] = dedup.result_for(target)

        return [r for r in results if r is not None]

    async def _resolve(self, cascade: FallbackCascade, target: ScrapeTarget) -> BatchResult:
        """Run one target's cascade under the target budget.  Never raises."""
        attempts: list[AttemptRecord] = []
        budget = self.settings.target_budget_seconds
        try:
            try:
                outcome = await asyncio.wait_for(cascade.run(target, attempts), budget)
            except asyncio.TimeoutError:
                logger.warning(
                    "orchestrator: %s exceeded the %.0fs target budget; degrading",
                    target.url,
                    budget,
                )
                outcome = await self._degrade(cascade, target, attempts)
        except Exception as exc:
            logger.exception("orchestrator: unrecoverable error for %s", target.url)
            outcome = cascade.synthesize(
                target,
                attempts,
                reason=f"{type(exc).__name__}: {exc}",
                outcome=AttemptOutcome.UNRECOVERABLE,
            )
        return outcome.to_result(target)

    async def _degrade(
        self,
        cascade: FallbackCascade,
        target: ScrapeTarget,
        attempts: list[AttemptRecord],
    ) -> CascadeOutcome:
        """Degrade after the target budget expired, bounded by ``degrade_budget_seconds``."""
        budget = self.settings.degrade_budget_seconds
        try:
            return await asyncio.wait_for(cascade.degrade(target, attempts), budget)
        except asyncio.TimeoutError:
            logger.warning(
                "orchestrator: degradation of %s exceeded %.0fs; using a placeholder",
                target.url,
                budget,
            )
            return cascade.synthesize(
                target,
                attempts,
                reason=f"degradation exceeded the {budget:g}s budget",
            )

