"""Application settings loaded from environment variables.

Uses Pydantic Settings v2 for validated, type-safe configuration.  Backend
credentials are read exclusively through this module; never call ``os.getenv``
directly elsewhere in the codebase.

Usage::

    from scrape_cascade.config.settings import get_settings

    settings = get_settings()
    policy = settings.poll_policy()
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from scrape_cascade.actors.backoff import PollPolicy
from scrape_cascade.providers.retry import RetryPolicy


class Settings(BaseSettings):
    """Configuration backed by environment variables and an optional .env file.

    Every field has a default, so the orchestrator starts without any
    environment.  Without ``APIFY_TOKEN`` every actor candidate fails at
    submission and targets degrade to the direct fetch.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Apify backend
    # ------------------------------------------------------------------

    apify_token: str = ""
    """Apify API token sent as a Bearer credential.  Empty disables actor runs."""

    apify_api_base: str = "https://api.apify.com"
    """Base URL of the Apify REST API."""

    max_items_per_run: int = Field(default=20, ge=1)
    """Upper bound on dataset items fetched from one actor run."""

    # ------------------------------------------------------------------
    # Outbound HTTP and retry
    # ------------------------------------------------------------------

    http_timeout_seconds: float = Field(default=45.0, gt=0)
    """Default timeout for provider calls."""

    retry_max_attempts: int = Field(default=3, ge=1)
    """Total tries per provider call for 5xx and transport errors."""

    retry_base_delay_seconds: float = Field(default=1.0, ge=0)
    """First retry delay; doubles on every further retry."""

    retry_max_delay_seconds: float = Field(default=10.0, ge=0)
    """Upper bound for a single retry delay."""

    # ------------------------------------------------------------------
    # Poll loop
    # ------------------------------------------------------------------

    poll_base_interval_seconds: float = Field(default=3.0, gt=0)
    """Delay before the second status check."""

    poll_backoff_factor: float = Field(default=1.1, ge=1.0)
    """Multiplier applied to the poll interval after every check."""

    poll_max_interval_seconds: float = Field(default=8.0, gt=0)
    """Cap for the poll interval."""

    poll_max_attempts: int = Field(default=40, ge=1)
    """Maximum status checks per candidate."""

    candidate_budget_seconds: float = Field(default=120.0, gt=0)
    """Wall-clock budget for polling one candidate."""

    abort_timeout_seconds: float = Field(default=5.0, gt=0)
    """Time allowed for the best-effort abort of a cancelled run."""

    # ------------------------------------------------------------------
    # Batch
    # ------------------------------------------------------------------

    target_budget_seconds: float = Field(default=180.0, gt=0)
    """Per-target wall-clock race; on expiry the target degrades to a direct fetch."""

    degrade_budget_seconds: float = Field(default=60.0, gt=0)
    """Bound on the direct fetch that runs after the target budget expired."""

    max_batch_size: int = Field(default=25, ge=1)
    """Targets scraped per batch; later ones receive a skipped placeholder."""

    batch_concurrency: int = Field(default=1, ge=1)
    """Targets resolved concurrently.  1 keeps strictly sequential execution."""

    # ------------------------------------------------------------------
    # Direct fetch
    # ------------------------------------------------------------------

    direct_fetch_timeout_seconds: float = Field(default=25.0, gt=0)
    """Timeout of the last-resort direct GET."""

    direct_fetch_max_redirects: int = Field(default=5, ge=0)
    """Redirects followed by the shared HTTP client."""

    max_content_chars: int = Field(default=15_000, ge=1)
    """Truncation cap for item content."""

    # ------------------------------------------------------------------
    # Proxy-rendered fetch (optional)
    # ------------------------------------------------------------------

    zyte_api_key: str = ""
    """Zyte API key.  When set, real-estate portals are fetched through Zyte first."""

    zyte_api_base: str = "https://api.zyte.com"

    zenrows_api_key: str = ""
    """ZenRows API key.  When set, every direct fetch tries ZenRows before the plain GET."""

    zenrows_api_base: str = "https://api.zenrows.com"

    proxy_fetch_timeout_seconds: float = Field(default=35.0, gt=0)
    """Timeout of one Zyte or ZenRows request."""

    # ------------------------------------------------------------------
    # Application behaviour
    # ------------------------------------------------------------------

    log_level: str = "INFO"
    """Logging verbosity.  One of: DEBUG, INFO, WARNING, ERROR, CRITICAL."""

    def poll_policy(self) -> PollPolicy:
        return PollPolicy(
            base_interval=self.poll_base_interval_seconds,
            factor=self.poll_backoff_factor,
            max_interval=self.poll_max_interval_seconds,
            max_attempts=self.poll_max_attempts,
            budget_seconds=self.candidate_budget_seconds,
        )

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.retry_max_attempts,
            base_delay=self.retry_base_delay_seconds,
            max_delay=self.retry_max_delay_seconds,
        )


@lru_cache
def get_settings() -> Settings:
    """Return the cached settings singleton.

    In tests, call ``get_settings.cache_clear()`` after patching environment
    variables.
    """
    return Settings()
