"""Fallback cascade: ordered actor candidates, then the degradation ladder.

For one target::

    candidate 1 ─ submit → poll → fetch ─┬─ ≥1 item ──→ done (actor)
                                         └─ failure / 0 items
    candidate 2 ... generic actor ───────┘
            │ all exhausted
            ▼
    direct fetch ─┬─ extracted or protection record ──→ done (direct)
                  └─ DirectFetchError
            ▼
    synthetic placeholder ──────────────────────────────→ done (synthetic)

Candidates never run concurrently.  Every step appends one
:class:`~scrape_cascade.core.models.AttemptRecord` to a caller-owned list, so
a caller that cancels the cascade still sees what happened so far.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

import httpx

from scrape_cascade.actors.runner import ActorRunner
from scrape_cascade.actors.selector import select_candidates
from scrape_cascade.core.exceptions import (
    CascadeExhaustedError,
    DirectFetchError,
    JobPollBudgetExhausted,
    JobSubmissionError,
    JobTerminalError,
    NoCredentialAvailableError,
    ProviderError,
    ResultFetchError,
)
from scrape_cascade.core.models import (
    DIRECT_SOURCE,
    SYNTHETIC_SOURCE,
    ActorDescriptor,
    AttemptOutcome,
    AttemptRecord,
    BatchResult,
    FinalSource,
    RunHandle,
    ScrapedItem,
    ScrapeTarget,
)
from scrape_cascade.scraper.direct_fetch import DirectFetcher
from scrape_cascade.scraper.synthetic import build_placeholder

logger = logging.getLogger(__name__)

Selector = Callable[[ScrapeTarget], list[ActorDescriptor]]


@dataclass
class CascadeOutcome:
    """Items, audit trail and winning rung for one target."""

    items: list[ScrapedItem]
    attempts: list[AttemptRecord]
    final_source: FinalSource

    def to_result(self, target: ScrapeTarget) -> BatchResult:
        return BatchResult(
            target=target,
            items=self.items,
            attempts=self.attempts,
            final_source=self.final_source,
        )


class FallbackCascade:
    """Runs the degradation ladder for one target at a time.

    Args:
        runner: Actor runner shared by the batch.
        direct_fetcher: Direct fetch rung.
        selector: Maps a target to its ordered actor candidates.
        abort_timeout: Upper bound in seconds on the remote abort sent when
            the cascade is cancelled with a run in flight.
        clock: Monotonic clock used for attempt durations.
    """

    def __init__(
        self,
        runner: ActorRunner,
        direct_fetcher: DirectFetcher,
        selector: Selector = select_candidates,
        abort_timeout: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._runner = runner
        self._direct = direct_fetcher
        self._selector = selector
        self.abort_timeout = abort_timeout
        self._clock = clock

    def _elapsed_ms(self, started: float) -> int:
        return max(0, int((self._clock() - started) * 1000))

    async def run(
        self,
        target: ScrapeTarget,
        attempts: list[AttemptRecord] | None = None,
    ) -> CascadeOutcome:
        """Resolve *target*, appending one record per step to *attempts*."""
        if attempts is None:
            attempts = []
        try:
            return await self._run_candidates(target, attempts)
        except CascadeExhaustedError as exc:
            logger.info("cascade: %s; degrading to direct fetch", exc)
        return await self.degrade(target, attempts)

    async def _run_candidates(
        self,
        target: ScrapeTarget,
        attempts: list[AttemptRecord],
    ) -> CascadeOutcome:
        """Try every candidate in order.

        Raises:
            CascadeExhaustedError: When no candidate produced an item.
        """
        candidates = self._selector(target)
        for descriptor in candidates:
            items = await self._try_candidate(target, descriptor, attempts)
            if items:
                logger.info(
                    "cascade: %s resolved by %s (%d items)",
                    target.url,
                    descriptor.actor_id,
                    len(items),
                )
                return CascadeOutcome(items=items, attempts=attempts, final_source=FinalSource.ACTOR)
        raise CascadeExhaustedError(
            f"all {len(candidates)} actor candidates failed for {target.url}"
        )

    async def _try_candidate(
        self,
        target: ScrapeTarget,
        descriptor: ActorDescriptor,
        attempts: list[AttemptRecord],
    ) -> list[ScrapedItem]:
        started = self._clock()
        handle: RunHandle | None = None
        in_flight = False

        def record(outcome: AttemptOutcome, error: str | None = None, item_count: int = 0) -> None:
            attempts.append(
                AttemptRecord(
                    source=descriptor.actor_id,
                    outcome=outcome,
                    duration_ms=self._elapsed_ms(started),
                    error=error,
                    run_id=handle.run_id if handle is not None else None,
                    item_count=item_count,
                )
            )

        try:
            handle = await self._runner.submit(target, descriptor)
            in_flight = True
            job = await self._runner.poll(handle)
            in_flight = False
            await self._runner.fetch_items(job, descriptor, target)
        except asyncio.CancelledError:
            record(AttemptOutcome.CANCELLED, "cancelled by target budget")
            if handle is not None and in_flight:
                await self._abort(handle)
            raise
        except (JobSubmissionError, NoCredentialAvailableError) as exc:
            logger.warning("cascade: submit failed: %s", exc)
            record(AttemptOutcome.SUBMIT_FAILED, str(exc))
            return []
        except JobTerminalError as exc:
            logger.warning("cascade: run failed: %s", exc)
            record(AttemptOutcome.FAILED, str(exc))
            return []
        except JobPollBudgetExhausted as exc:
            logger.warning("cascade: %s", exc)
            record(AttemptOutcome.POLL_BUDGET_EXHAUSTED, str(exc))
            if handle is not None:
                await self._abort(handle)
            return []
        except ResultFetchError as exc:
            logger.warning("cascade: result fetch failed: %s", exc)
            record(AttemptOutcome.FETCH_FAILED, str(exc))
            return []
        except (ProviderError, httpx.HTTPError) as exc:
            logger.warning("cascade: %s provider error: %s", descriptor.actor_id, exc)
            record(AttemptOutcome.FAILED, str(exc))
            return []
        except Exception as exc:
            logger.exception("cascade: %s raised unexpectedly for %s", descriptor.actor_id, target.url)
            record(AttemptOutcome.FAILED, f"{type(exc).__name__}: {exc}")
            if handle is not None and in_flight:
                await self._abort(handle)
            return []

        if not job.successful:
            logger.info("cascade: %s returned no items for %s", descriptor.actor_id, target.url)
            record(AttemptOutcome.EMPTY_RESULT, "run succeeded with zero items")
            return []
        record(AttemptOutcome.SUCCEEDED, item_count=len(job.items))
        return job.items

    async def _abort(self, handle: RunHandle) -> None:
        try:
            await asyncio.wait_for(self._runner.abort(handle), self.abort_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "cascade: abort of run %s did not finish within %.1fs",
                handle.run_id,
                self.abort_timeout,
            )
        except httpx.HTTPError as exc:
            logger.warning("cascade: abort of run %s failed: %s", handle.run_id, exc)

    async def degrade(self, target: ScrapeTarget, attempts: list[AttemptRecord]) -> CascadeOutcome:
        """Run the direct fetch, falling back to a synthetic placeholder.

        When *attempts* already holds a direct-fetch record (the target budget
        ran out during or after it), the direct fetch is not repeated.
        """
        if any(a.source == DIRECT_SOURCE for a in attempts):
            return self.synthesize(target, attempts, reason="direct fetch already attempted")

        started = self._clock()
        try:
            fetched = await self._direct.fetch(target)
        except asyncio.CancelledError:
            attempts.append(
                AttemptRecord(
                    source=DIRECT_SOURCE,
                    outcome=AttemptOutcome.CANCELLED,
                    duration_ms=self._elapsed_ms(started),
                    error="cancelled by target budget",
                )
            )
            raise
        except DirectFetchError as exc:
            logger.warning("cascade: direct fetch unrecoverable: %s", exc)
            attempts.append(
                AttemptRecord(
                    source=DIRECT_SOURCE,
                    outcome=AttemptOutcome.UNRECOVERABLE,
                    duration_ms=self._elapsed_ms(started),
                    error=str(exc),
                )
            )
            return self.synthesize(target, attempts, reason=str(exc))

        attempts.append(
            AttemptRecord(
                source=DIRECT_SOURCE,
                outcome=fetched.outcome,
                duration_ms=self._elapsed_ms(started),
                error=fetched.error,
                item_count=1,
            )
        )
        return CascadeOutcome(items=[fetched.item], attempts=attempts, final_source=FinalSource.DIRECT)

    def synthesize(
        self,
        target: ScrapeTarget,
        attempts: list[AttemptRecord],
        reason: str | None = None,
        outcome: AttemptOutcome = AttemptOutcome.SUCCEEDED,
    ) -> CascadeOutcome:
        """Terminate the ladder with a placeholder item.  Never raises."""
        item = build_placeholder(target, reason=reason)
        attempts.append(
            AttemptRecord(
                source=SYNTHETIC_SOURCE,
                outcome=outcome,
                error=reason if outcome is not AttemptOutcome.SUCCEEDED else None,
                item_count=1,
            )
        )
        logger.info("cascade: synthetic placeholder for %s", target.url)
        return CascadeOutcome(items=[item], attempts=attempts, final_source=FinalSource.SYNTHETIC)
