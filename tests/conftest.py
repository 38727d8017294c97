"""Shared pytest fixtures for scrape-cascade tests.

Fixture summary
---------------
settings     — Settings with a test Apify token and instant retries.
fake_clock   — Deterministic monotonic clock whose ``sleep`` advances time.
orchestrator — BatchOrchestrator factory wired to ``fake_clock``.

All HTTP traffic is mocked with respx; no test touches the network.
"""

from __future__ import annotations

import os
from typing import Any

import httpx
import pytest

# ---------------------------------------------------------------------------
# Test environment bootstrap
# ---------------------------------------------------------------------------
# Settings read the environment; keep a developer's real token out of tests.

os.environ.pop("APIFY_TOKEN", None)

from scrape_cascade.config.settings import Settings, get_settings  # noqa: E402
from scrape_cascade.scraper.orchestrator import BatchOrchestrator  # noqa: E402
from tests.factories.apify import FakeClock, make_settings  # noqa: E402

get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def orchestrator(fake_clock: FakeClock):
    """Factory: ``orchestrator(http_client, **settings_overrides)``."""

    def _build(http_client: httpx.AsyncClient, **overrides: Any) -> BatchOrchestrator:
        return BatchOrchestrator(
            settings=make_settings(**overrides),
            http_client=http_client,
            sleep=fake_clock.sleep,
            clock=fake_clock,
        )

    return _build
