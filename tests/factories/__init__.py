"""Factory Boy factories and helpers for test data generation.

Available factories
-------------------
ZillowItemFactory      — raw Zillow detail-scraper dataset item dict
SocialPostItemFactory  — raw social-post dataset item dict
RunPayloadFactory      — Apify ``{"data": {...}}`` run payload dict

Helpers
-------
FakeClock, make_settings, mock_actor_cycle — see :mod:`tests.factories.apify`.
"""

from __future__ import annotations

from tests.factories.apify import (
    APIFY_BASE,
    TEST_TOKEN,
    FakeClock,
    RunPayloadFactory,
    SocialPostItemFactory,
    ZillowItemFactory,
    make_settings,
    mock_actor_cycle,
)

__all__ = [
    "APIFY_BASE",
    "FakeClock",
    "RunPayloadFactory",
    "SocialPostItemFactory",
    "TEST_TOKEN",
    "ZillowItemFactory",
    "make_settings",
    "mock_actor_cycle",
]
