"""Configuration package for scrape-cascade.

Callers can write::

    from scrape_cascade.config import get_settings
"""

from __future__ import annotations

from scrape_cascade.config.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
]
