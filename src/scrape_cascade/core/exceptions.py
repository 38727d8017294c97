"""Application-wide exception hierarchy for scrape-cascade.

All custom exceptions subclass ``ScrapeCascadeError``, enabling consistent
error handling and structured logging across the degradation ladder.

Hierarchy::

    ScrapeCascadeError
    ├── ProviderError                (status_code: int | None)
    │   └── TransientProviderError   (timed_out: bool)
    ├── JobError                     (actor_id, run_id)
    │   ├── JobSubmissionError
    │   ├── JobTerminalError         (status)
    │   ├── JobPollBudgetExhausted   (attempts, elapsed)
    │   └── ResultFetchError
    ├── CascadeExhaustedError
    ├── DirectFetchError
    └── NoCredentialAvailableError

None of these ever reach the caller of
:meth:`~scrape_cascade.scraper.orchestrator.BatchOrchestrator.scrape`; each
one selects the next rung of the ladder (actor → direct → synthetic).
"""

from __future__ import annotations


class ScrapeCascadeError(Exception):
    """Base class for all scrape-cascade exceptions."""


# ---------------------------------------------------------------------------
# Provider (HTTP) exceptions
# ---------------------------------------------------------------------------


class ProviderError(ScrapeCascadeError):
    """Raised when an outbound provider call fails.

    Args:
        message: Human-readable description of the failure.
        status_code: HTTP status of the failing response, or ``None`` when no
            response was received.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TransientProviderError(ProviderError):
    """Raised for 5xx responses and transport errors.

    The :class:`~scrape_cascade.providers.retry.RetryPolicy` retries these; once
    retries are exhausted the last one escalates to the calling stage.

    Args:
        message: Human-readable description of the failure.
        status_code: HTTP status (5xx) or ``None`` for transport errors.
        timed_out: ``True`` when the underlying transport error was a timeout.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        timed_out: bool = False,
    ) -> None:
        super().__init__(message, status_code=status_code)
        self.timed_out = timed_out


# ---------------------------------------------------------------------------
# Backend job exceptions
# ---------------------------------------------------------------------------


class JobError(ScrapeCascadeError):
    """Base class for failures of one backend (actor) run.

    Args:
        message: Human-readable description of the failure.
        actor_id: Backend actor identifier.
        run_id: Run identifier, when the run was started.
    """

    def __init__(
        self,
        message: str,
        actor_id: str | None = None,
        run_id: str | None = None,
    ) -> None:
        super().__init__(message)
        self.actor_id = actor_id
        self.run_id = run_id


class JobSubmissionError(JobError):
    """Raised when a backend run could not be started (no run identifier)."""


class JobTerminalError(JobError):
    """Raised when a run ends in FAILED, ABORTED or TIMED_OUT.

    Also raised for a SUCCEEDED run that carries no dataset reference.

    Args:
        message: Human-readable description of the failure.
        status: Terminal :class:`~scrape_cascade.core.models.RunStatus` value.
        actor_id: Backend actor identifier.
        run_id: Run identifier.
    """

    def __init__(
        self,
        message: str,
        status: object = None,
        actor_id: str | None = None,
        run_id: str | None = None,
    ) -> None:
        super().__init__(message, actor_id=actor_id, run_id=run_id)
        self.status = status


class JobPollBudgetExhausted(JobError):
    """Raised when the poll attempt cap or time budget runs out before a terminal status.

    Args:
        message: Human-readable description.
        attempts: Number of status checks performed.
        elapsed: Seconds spent polling.
        actor_id: Backend actor identifier.
        run_id: Run identifier.
    """

    def __init__(
        self,
        message: str,
        attempts: int = 0,
        elapsed: float = 0.0,
        actor_id: str | None = None,
        run_id: str | None = None,
    ) -> None:
        super().__init__(message, actor_id=actor_id, run_id=run_id)
        self.attempts = attempts
        self.elapsed = elapsed


class ResultFetchError(JobError):
    """Raised when the dataset of a successful run cannot be downloaded."""


# ---------------------------------------------------------------------------
# Degradation ladder exceptions
# ---------------------------------------------------------------------------


class CascadeExhaustedError(ScrapeCascadeError):
    """Raised when every candidate failed or returned zero items."""


class DirectFetchError(ScrapeCascadeError):
    """Raised when a direct fetch fails in a way this layer cannot report.

    Malformed URLs and connection-level failures (DNS, refused connections)
    produce no response to describe, so the synthetic placeholder takes over.

    Args:
        message: Human-readable description of the failure.
        url: Target URL of the failed fetch.
    """

    def __init__(self, message: str, url: str | None = None) -> None:
        super().__init__(message)
        self.url = url


# ---------------------------------------------------------------------------
# Credential exceptions
# ---------------------------------------------------------------------------


class NoCredentialAvailableError(ScrapeCascadeError):
    """Raised when no API token is configured for a provider.

    Args:
        provider: Provider identifier for which no credential is available.
    """

    def __init__(self, provider: str | None = None) -> None:
        msg = "No credential available"
        if provider:
            msg += f" for provider '{provider}'"
        super().__init__(msg)
        self.provider = provider
