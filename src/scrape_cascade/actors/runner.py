"""Apify actor runs: submit → poll with backoff → fetch dataset items.

One :class:`ActorRunner` serves every candidate of a batch.  Each step raises
a typed :class:`~scrape_cascade.core.exceptions.JobError` subclass on failure;
the cascade controller turns those into attempt records and moves on.

Poll loop::

    check status ─┬─ FAILED / ABORTED / TIMED_OUT ─→ JobTerminalError
                  ├─ SUCCEEDED (+ dataset id) ─────→ JobResult
                  └─ PENDING / RUNNING ─→ sleep min(interval_k, remaining)
                                          until max_attempts or budget
                                          ─→ JobPollBudgetExhausted
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any

from scrape_cascade.actors.backoff import PollPolicy, poll_intervals
from scrape_cascade.actors.config import (
    APIFY_DATASET_ITEMS_PATH,
    APIFY_PROVIDER,
    APIFY_RUN_ABORT_PATH,
    APIFY_RUN_PATH,
    APIFY_RUN_STATUS_PATH,
)
from scrape_cascade.actors.normalizer import normalize_actor_item
from scrape_cascade.core.exceptions import (
    JobPollBudgetExhausted,
    JobSubmissionError,
    JobTerminalError,
    NoCredentialAvailableError,
    ProviderError,
    ResultFetchError,
)
from scrape_cascade.core.models import (
    ActorDescriptor,
    JobResult,
    RunHandle,
    RunStatus,
    ScrapedItem,
    ScrapeTarget,
    utcnow,
)
from scrape_cascade.providers.client import ProviderClient
from scrape_cascade.scraper.config import DEFAULT_MAX_CONTENT_CHARS

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]
Clock = Callable[[], float]


def _run_data(payload: Any) -> dict[str, Any]:
    """Unwrap Apify's ``{"data": {...}}`` envelope."""
    if isinstance(payload, dict):
        data = payload.get("data", payload)
        if isinstance(data, dict):
            return data
    return {}


def _as_id(value: Any) -> str | None:
    if isinstance(value, str) and value:
        return value
    return None


def _parse_started_at(value: Any) -> datetime:
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            pass
    return utcnow()


class ActorRunner:
    """Starts, polls and collects Apify actor runs.

    Args:
        client: Provider client bound to the Apify API (Bearer token set), or
            ``None`` when no token is configured; every submission then fails.
        poll_policy: Backoff and budget for the poll loop.
        max_items: Upper bound on dataset items fetched per run.
        max_content_chars: Content truncation cap for normalized items.
        sleep: Awaitable sleep used between status checks.
        clock: Monotonic clock in seconds.
    """

    def __init__(
        self,
        client: ProviderClient | None,
        poll_policy: PollPolicy | None = None,
        max_items: int = 20,
        max_content_chars: int = DEFAULT_MAX_CONTENT_CHARS,
        sleep: Sleep = asyncio.sleep,
        clock: Clock = time.monotonic,
    ) -> None:
        self._client = client
        self.poll_policy = poll_policy or PollPolicy()
        self.max_items = max_items
        self.max_content_chars = max_content_chars
        self._sleep = sleep
        self._clock = clock

    # ------------------------------------------------------------------
    # Submit
    # ------------------------------------------------------------------

    async def submit(self, target: ScrapeTarget, descriptor: ActorDescriptor) -> RunHandle:
        """Start one run of *descriptor* for *target*.

        Raises:
            NoCredentialAvailableError: When no Apify token is configured.
            JobSubmissionError: When the request fails or the response
                carries no run identifier.
        """
        actor_id = descriptor.actor_id
        if self._client is None:
            raise NoCredentialAvailableError(provider=APIFY_PROVIDER)

        try:
            response = await self._client.send(
                "POST",
                APIFY_RUN_PATH.format(actor_id=actor_id),
                descriptor.build_input(target),
                params={"memory": descriptor.memory_mbytes, "timeout": descriptor.timeout_secs},
            )
        except ProviderError as exc:
            raise JobSubmissionError(
                f"{actor_id}: run submission failed: {exc}", actor_id=actor_id
            ) from exc

        if response.status_code >= 400:
            raise JobSubmissionError(
                f"{actor_id}: run submission returned HTTP {response.status_code}",
                actor_id=actor_id,
            )
        try:
            run = _run_data(response.json())
        except ValueError as exc:
            raise JobSubmissionError(
                f"{actor_id}: run submission returned invalid JSON", actor_id=actor_id
            ) from exc

        run_id = run.get("id")
        if not isinstance(run_id, str) or not run_id:
            raise JobSubmissionError(f"{actor_id}: submission returned no run id", actor_id=actor_id)

        logger.debug("runner: %s started run_id=%s for %s", actor_id, run_id, target.url)
        return RunHandle(
            actor_id=actor_id,
            run_id=str(run_id),
            started_at=_parse_started_at(run.get("startedAt")),
            dataset_id=_as_id(run.get("defaultDatasetId")),
        )

    # ------------------------------------------------------------------
    # Poll
    # ------------------------------------------------------------------

    async def _check_status(self, handle: RunHandle) -> tuple[RunStatus, str | None]:
        assert self._client is not None
        response = await self._client.send(
            "GET", APIFY_RUN_STATUS_PATH.format(run_id=handle.run_id)
        )
        if response.status_code == 429:
            raise ProviderError(
                f"{handle.actor_id}: status check rate limited", status_code=429
            )
        if response.status_code >= 400:
            # The run is gone or no longer visible to this token.
            raise JobTerminalError(
                f"{handle.actor_id}: status check returned HTTP {response.status_code}",
                status=RunStatus.FAILED,
                actor_id=handle.actor_id,
                run_id=handle.run_id,
            )
        try:
            run = _run_data(response.json())
        except ValueError as exc:
            raise ProviderError(f"{handle.actor_id}: invalid status JSON") from exc
        raw_status = run.get("status")
        if not isinstance(raw_status, str):
            raise ProviderError(
                f"{handle.actor_id}: status payload has no status string ({raw_status!r})"
            )
        return RunStatus.from_provider(raw_status), _as_id(run.get("defaultDatasetId"))

    async def poll(self, handle: RunHandle) -> JobResult:
        """Poll *handle* until a terminal status or the poll budget runs out.

        Returns:
            A ``SUCCEEDED`` :class:`JobResult` with a dataset reference and no
            items yet.

        Raises:
            JobTerminalError: On FAILED, ABORTED or TIMED_OUT, or SUCCEEDED
                without a dataset reference.
            JobPollBudgetExhausted: When ``max_attempts`` or the wall-clock
                budget is reached while the run is still non-terminal.
        """
        policy = self.poll_policy
        status = RunStatus.PENDING
        dataset_id = handle.dataset_id
        started = self._clock()
        attempts = 0

        for interval in poll_intervals(policy):
            attempts += 1
            try:
                observed, observed_dataset = await self._check_status(handle)
            except ProviderError as exc:
                logger.warning(
                    "runner: %s status check error (attempt %d/%d): %s",
                    handle.actor_id,
                    attempts,
                    policy.max_attempts,
                    exc,
                )
            else:
                status = status.advance(observed)
                dataset_id = observed_dataset or dataset_id
                logger.debug(
                    "runner: %s run_id=%s status=%s attempt=%d/%d",
                    handle.actor_id,
                    handle.run_id,
                    status.value,
                    attempts,
                    policy.max_attempts,
                )
                if status.is_failure:
                    raise JobTerminalError(
                        f"{handle.actor_id}: run {handle.run_id} ended {status.value}",
                        status=status,
                        actor_id=handle.actor_id,
                        run_id=handle.run_id,
                    )
                if status is RunStatus.SUCCEEDED:
                    if not dataset_id:
                        raise JobTerminalError(
                            f"{handle.actor_id}: run {handle.run_id} succeeded without a dataset",
                            status=status,
                            actor_id=handle.actor_id,
                            run_id=handle.run_id,
                        )
                    return JobResult(status=status, dataset_id=dataset_id)

            remaining = policy.budget_seconds - (self._clock() - started)
            if attempts >= policy.max_attempts or remaining <= 0:
                break
            await self._sleep(min(interval, remaining))

        elapsed = self._clock() - started
        raise JobPollBudgetExhausted(
            f"{handle.actor_id}: run {handle.run_id} still {status.value} after "
            f"{attempts} checks / {elapsed:.1f}s",
            attempts=attempts,
            elapsed=elapsed,
            actor_id=handle.actor_id,
            run_id=handle.run_id,
        )

    # ------------------------------------------------------------------
    # Fetch
    # ------------------------------------------------------------------

    async def fetch_items(
        self,
        job: JobResult,
        descriptor: ActorDescriptor,
        target: ScrapeTarget,
    ) -> list[ScrapedItem]:
        """Download and normalize the dataset items of a successful run.

        The items are also stored on ``job.items``.  Items that cannot be
        normalized are logged and skipped, so the result may be empty.

        Raises:
            ResultFetchError: When the dataset cannot be downloaded.
        """
        assert self._client is not None
        limit = min(descriptor.max_items, self.max_items)
        try:
            response = await self._client.send(
                "GET",
                APIFY_DATASET_ITEMS_PATH.format(dataset_id=job.dataset_id),
                params={"clean": "true", "format": "json", "limit": limit},
            )
        except ProviderError as exc:
            raise ResultFetchError(
                f"{descriptor.actor_id}: dataset {job.dataset_id} download failed: {exc}",
                actor_id=descriptor.actor_id,
            ) from exc
        if response.status_code >= 400:
            raise ResultFetchError(
                f"{descriptor.actor_id}: dataset download HTTP {response.status_code}",
                actor_id=descriptor.actor_id,
            )
        try:
            raw_items = response.json()
        except ValueError as exc:
            raise ResultFetchError(
                f"{descriptor.actor_id}: dataset {job.dataset_id} is not JSON",
                actor_id=descriptor.actor_id,
            ) from exc
        if isinstance(raw_items, dict):
            # Some endpoints wrap in {"data": {"items": [...]}}
            raw_items = _run_data(raw_items).get("items")
        if not isinstance(raw_items, list):
            raise ResultFetchError(
                f"{descriptor.actor_id}: dataset {job.dataset_id} is not a list of items",
                actor_id=descriptor.actor_id,
            )

        items: list[ScrapedItem] = []
        for raw in raw_items[:limit]:
            try:
                items.append(
                    normalize_actor_item(raw, target, descriptor, self.max_content_chars)
                )
            except (TypeError, ValueError) as exc:
                logger.warning("runner: %s normalization error: %s", descriptor.actor_id, exc)
        job.items = items
        logger.info(
            "runner: %s dataset=%s yielded %d items",
            descriptor.actor_id,
            job.dataset_id,
            len(items),
        )
        return items

    # ------------------------------------------------------------------
    # Abort
    # ------------------------------------------------------------------

    async def abort(self, handle: RunHandle) -> bool:
        """Ask the backend to abort *handle*.  Best effort; never raises ProviderError.

        Returns:
            ``True`` if the backend acknowledged the abort.
        """
        if self._client is None:
            return False
        try:
            response = await self._client.send(
                "POST", APIFY_RUN_ABORT_PATH.format(run_id=handle.run_id)
            )
        except ProviderError as exc:
            logger.warning("runner: abort of run %s failed: %s", handle.run_id, exc)
            return False
        if response.is_success:
            logger.info("runner: aborted run %s of %s", handle.run_id, handle.actor_id)
            return True
        logger.warning(
            "runner: abort of run %s returned HTTP %d", handle.run_id, response.status_code
        )
        return False
