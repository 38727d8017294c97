"""Data model for the scrape cascade.

Plain dataclasses, created per request and never persisted:

- :class:`ScrapeTarget`    — one URL to resolve (immutable)
- :class:`ActorDescriptor` — static configuration of one backend actor
- :class:`RunHandle`       — one in-flight backend run
- :class:`RunStatus`       — run lifecycle state (monotonic)
- :class:`JobResult`       — outcome of one run
- :class:`ScrapedItem`     — one extracted content unit
- :class:`AttemptRecord`   — audit entry for one cascade step
- :class:`BatchResult`     — final answer for one target
"""

from __future__ import annotations

import copy
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from scrape_cascade.core.urls import detect_platform, extract_domain


def utcnow() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class RunStatus(str, Enum):
    """Lifecycle state of one backend run.

    ``PENDING → RUNNING → {SUCCEEDED | FAILED | ABORTED | TIMED_OUT}``.
    Terminal values never transition again; see :meth:`advance`.
    """

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    ABORTED = "ABORTED"
    TIMED_OUT = "TIMED_OUT"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATUSES

    @property
    def is_failure(self) -> bool:
        return self in _FAILURE_STATUSES

    @classmethod
    def from_provider(cls, raw: str | None) -> RunStatus:
        """Map an Apify run status string to a :class:`RunStatus`.

        Transitional provider states (``ABORTING``, ``TIMING-OUT``) are still
        running.  Unknown values are treated as running so that the poll
        budget, not a guess, decides the outcome.
        """
        value = (raw or "").strip().upper()
        return _PROVIDER_STATUS_MAP.get(value, cls.RUNNING)

    def advance(self, observed: RunStatus) -> RunStatus:
        """Return the status after observing *observed*.

        A terminal status is sticky: once reached, later observations are
        ignored.
        """
        if self.is_terminal:
            return self
        return observed


_TERMINAL_STATUSES: frozenset[RunStatus] = frozenset(
    {RunStatus.SUCCEEDED, RunStatus.FAILED, RunStatus.ABORTED, RunStatus.TIMED_OUT}
)
_FAILURE_STATUSES: frozenset[RunStatus] = frozenset(
    {RunStatus.FAILED, RunStatus.ABORTED, RunStatus.TIMED_OUT}
)
_PROVIDER_STATUS_MAP: dict[str, RunStatus] = {
    "READY": RunStatus.PENDING,
    "PENDING": RunStatus.PENDING,
    "RUNNING": RunStatus.RUNNING,
    "ABORTING": RunStatus.RUNNING,
    "TIMING-OUT": RunStatus.RUNNING,
    "SUCCEEDED": RunStatus.SUCCEEDED,
    "FAILED": RunStatus.FAILED,
    "ABORTED": RunStatus.ABORTED,
    "TIMED-OUT": RunStatus.TIMED_OUT,
    "TIMED_OUT": RunStatus.TIMED_OUT,
}


class FinalSource(str, Enum):
    """Rung of the degradation ladder that produced a :class:`BatchResult`."""

    ACTOR = "actor"
    DIRECT = "direct"
    SYNTHETIC = "synthetic"


class AttemptOutcome(str, Enum):
    """Outcome of one cascade step, recorded in :class:`AttemptRecord`."""

    SUCCEEDED = "succeeded"
    SUBMIT_FAILED = "submit_failed"
    FAILED = "failed"
    POLL_BUDGET_EXHAUSTED = "poll_budget_exhausted"
    EMPTY_RESULT = "empty_result"
    FETCH_FAILED = "fetch_failed"
    CANCELLED = "cancelled"
    PROTECTION_DETECTED = "protection_detected"
    UNRECOVERABLE = "unrecoverable"
    SKIPPED = "skipped"


DIRECT_SOURCE: str = "direct"
SYNTHETIC_SOURCE: str = "synthetic"


# ---------------------------------------------------------------------------
# Targets and backends
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ScrapeTarget:
    """One URL to resolve.

    Attributes:
        url: Target URL as supplied by the caller.
        domain: Hostname without ``www.`` (empty when unparseable).
        platform: Inferred domain class, e.g. ``"Zillow"``.
        city: Optional locality context tag.
        state: Optional state context tag.
        tags: Additional free-form context tags.
    """

    url: str
    domain: str = ""
    platform: str = ""
    city: str | None = None
    state: str | None = None
    tags: tuple[str, ...] = ()

    @classmethod
    def from_url(
        cls,
        url: str,
        city: str | None = None,
        state: str | None = None,
        tags: tuple[str, ...] = (),
    ) -> ScrapeTarget:
        """Build a target, inferring ``domain`` and ``platform`` from *url*."""
        url = (url or "").strip()
        return cls(
            url=url,
            domain=extract_domain(url),
            platform=detect_platform(url),
            city=city,
            state=state,
            tags=tuple(tags),
        )

    @property
    def locality(self) -> str | None:
        """``"City, ST"`` style locality string, or ``None``."""
        parts = [p for p in (self.city, self.state) if p]
        return ", ".join(parts) if parts else None


InputBuilder = Callable[[ScrapeTarget], dict[str, Any]]


@dataclass(frozen=True)
class ActorDescriptor:
    """Static configuration of one backend actor.

    Attributes:
        actor_id: Apify actor identifier in ``user~actor`` form.
        name: Short human-readable name used in logs.
        input_builder: Builds the run input for a target.
        memory_mbytes: Memory limit requested for the run.
        timeout_secs: Server-side run timeout.
        max_items: Maximum dataset items fetched for one run.
        priority: Ordering key within a domain (lower runs first).
        generic: ``True`` for the universal fallback actor.
    """

    actor_id: str
    name: str
    input_builder: InputBuilder
    memory_mbytes: int = 1024
    timeout_secs: int = 120
    max_items: int = 20
    priority: int = 100
    generic: bool = False

    def build_input(self, target: ScrapeTarget) -> dict[str, Any]:
        return self.input_builder(target)


# ---------------------------------------------------------------------------
# Runs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RunHandle:
    """Identifies one in-flight backend run."""

    actor_id: str
    run_id: str
    started_at: datetime
    dataset_id: str | None = None


@dataclass
class JobResult:
    """Terminal outcome of one run.

    Only ``SUCCEEDED`` with at least one item counts as a success.
    """

    status: RunStatus
    dataset_id: str | None = None
    items: list[ScrapedItem] = field(default_factory=list)

    @property
    def successful(self) -> bool:
        return self.status is RunStatus.SUCCEEDED and len(self.items) > 0


# ---------------------------------------------------------------------------
# Output records
# ---------------------------------------------------------------------------


@dataclass
class ScrapedItem:
    """One extracted content unit consumed by downstream scoring.

    Attributes:
        url: Source URL of the item.
        title: Item title.
        content: Plain-text content, bounded in length.
        platform: Platform label (e.g. ``"Zillow"``).
        source: Producer, e.g. ``"apify:maxcopell~zillow-detail-scraper"``,
            ``"direct"`` or ``"synthetic"``.
        extracted_at: Extraction timestamp (UTC).
        synthetic: ``True`` for fabricated placeholder records.
        metadata: Source-specific extras (``buyerSignals``, ``contacts``,
            ``propertyData``, ``protectionDetected``, ``confidence`` ...).
    """

    url: str
    title: str
    content: str
    platform: str
    source: str
    extracted_at: datetime = field(default_factory=utcnow)
    synthetic: bool = False
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "url": self.url,
            "title": self.title,
            "content": self.content,
            "platform": self.platform,
            "source": self.source,
            "extractedAt": self.extracted_at.isoformat(),
            "synthetic": self.synthetic,
        }
        data.update(self.metadata)
        return data


@dataclass
class AttemptRecord:
    """Audit entry for one step of a target's cascade.

    Attributes:
        source: Actor id, ``"direct"`` or ``"synthetic"``.
        outcome: What happened.
        duration_ms: Wall-clock duration of the step.
        error: Error description for failed steps.
        run_id: Backend run id, when a run was started.
        item_count: Number of items the step produced.
    """

    source: str
    outcome: AttemptOutcome
    duration_ms: int = 0
    error: str | None = None
    run_id: str | None = None
    item_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "outcome": self.outcome.value,
            "durationMs": self.duration_ms,
            "error": self.error,
            "runId": self.run_id,
            "itemCount": self.item_count,
        }


@dataclass
class BatchResult:
    """Final answer for one target: always carries at least one item."""

    target: ScrapeTarget
    items: list[ScrapedItem]
    attempts: list[AttemptRecord]
    final_source: FinalSource

    @property
    def synthetic(self) -> bool:
        return self.final_source is FinalSource.SYNTHETIC

    def copy_for(self, target: ScrapeTarget) -> BatchResult:
        """Return a deep copy of this result re-addressed to *target*."""
        return BatchResult(
            target=target,
            items=copy.deepcopy(self.items),
            attempts=copy.deepcopy(self.attempts),
            final_source=self.final_source,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.target.url,
            "platform": self.target.platform,
            "finalSource": self.final_source.value,
            "synthetic": self.synthetic,
            "items": [item.to_dict() for item in self.items],
            "attempts": [attempt.to_dict() for attempt in self.attempts],
        }
