"""URL helpers shared by the selector, the degraders and deduplication.

All functions in this module are pure (no I/O).
"""

from __future__ import annotations

import urllib.parse

# Query parameters removed during URL normalization so that the same page is
# not scraped twice because of differing tracking suffixes.
TRACKING_PARAMS: frozenset[str] = frozenset(
    {
        "utm_source",
        "utm_medium",
        "utm_campaign",
        "utm_content",
        "utm_term",
        "fbclid",
        "gclid",
        "ref",
        "_ga",
    }
)

# Hostname substring → platform label.  First match wins, so the more
# specific entries come first.
_PLATFORM_HOSTS: tuple[tuple[str, str], ...] = (
    ("zillow.com", "Zillow"),
    ("realtor.com", "Realtor.com"),
    ("redfin.com", "Redfin"),
    ("trulia.com", "Trulia"),
    ("homes.com", "Homes.com"),
    ("instagram.com", "Instagram"),
    ("facebook.com", "Facebook"),
    ("reddit.com", "Reddit"),
    ("youtube.com", "YouTube"),
    ("linkedin.com", "LinkedIn"),
    ("twitter.com", "Twitter/X"),
    ("x.com", "Twitter/X"),
    ("tiktok.com", "TikTok"),
    ("nextdoor.com", "Nextdoor"),
)

DEFAULT_PLATFORM: str = "Real Estate"
UNKNOWN_PLATFORM: str = "Unknown"


def extract_domain(url: str) -> str:
    """Return the bare lowercase hostname from *url*, stripping ``www.``.

    Returns an empty string when *url* has no parseable host.
    """
    try:
        host = urllib.parse.urlparse(url).hostname or ""
    except ValueError:
        return ""
    return host.lower().removeprefix("www.")


def is_fetchable_url(url: str) -> bool:
    """Return ``True`` if *url* is an absolute http(s) URL with a host."""
    try:
        parsed = urllib.parse.urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.hostname)


def domain_matches(domain: str, pattern: str) -> bool:
    """Return ``True`` if *domain* equals *pattern* or is a sub-domain of it."""
    return domain == pattern or domain.endswith("." + pattern)


def detect_platform(url: str) -> str:
    """Classify *url* into a platform label.

    Args:
        url: Absolute URL string.

    Returns:
        A label such as ``"Zillow"`` or ``"Reddit"``; ``"Real Estate"`` for
        unrecognised hosts and ``"Unknown"`` when *url* has no host.
    """
    if not url or not isinstance(url, str):
        return UNKNOWN_PLATFORM
    domain = extract_domain(url)
    if not domain:
        return UNKNOWN_PLATFORM
    for host, label in _PLATFORM_HOSTS:
        if domain_matches(domain, host):
            return label
    return DEFAULT_PLATFORM


def normalize_url(url: str) -> str:
    """Normalize a URL for deduplication purposes.

    1. Lowercase the scheme and hostname.
    2. Strip trailing slash from the path (root ``/`` is preserved).
    3. Remove known tracking query parameters.
    4. Drop the fragment.
    """
    try:
        parsed = urllib.parse.urlparse(url.strip())
    except ValueError:
        return url
    netloc = parsed.netloc.lower()
    path = parsed.path.rstrip("/") or "/"
    qs_pairs = urllib.parse.parse_qsl(parsed.query, keep_blank_values=True)
    filtered_qs = [(k, v) for k, v in qs_pairs if k not in TRACKING_PARAMS]
    new_query = urllib.parse.urlencode(filtered_qs)
    return urllib.parse.urlunparse(
        (parsed.scheme.lower(), netloc, path, parsed.params, new_query, "")
    )
