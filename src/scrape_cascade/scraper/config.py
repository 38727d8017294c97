"""Constants for the degradation ladder (direct fetch and synthetic records)."""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Content size guards
# ---------------------------------------------------------------------------

#: Default truncation cap (characters) for item content.  Overridden by
#: ``Settings.max_content_chars``.
DEFAULT_MAX_CONTENT_CHARS: int = 15_000

#: Longest title kept on an item.
MAX_TITLE_CHARS: int = 300

# ---------------------------------------------------------------------------
# Direct fetch
# ---------------------------------------------------------------------------

#: Content-Type prefixes that indicate binary resources; the direct fetch
#: reports them as unextractable instead of running HTML extraction.
BINARY_CONTENT_TYPES: frozenset[str] = frozenset(
    {
        "application/pdf",
        "application/zip",
        "application/octet-stream",
        "application/vnd.",
        "image/",
        "video/",
        "audio/",
        "font/",
    }
)

#: HTTP statuses that almost always mean anti-bot protection.
PROTECTION_STATUSES: frozenset[int] = frozenset({401, 403, 406, 429, 503})

# ---------------------------------------------------------------------------
# Proxy-rendered fetch
# ---------------------------------------------------------------------------

#: Domains routed through Zyte when a Zyte key is configured.
ZYTE_DOMAINS: tuple[str, ...] = (
    "zillow.com",
    "realtor.com",
    "redfin.com",
    "trulia.com",
    "homes.com",
)

#: ``fetchedVia`` labels recorded in direct-fetch item metadata.
VIA_ZYTE: str = "zyte_smart_proxy"
VIA_ZENROWS: str = "zenrows_premium"
VIA_DIRECT: str = "direct_http"

#: Query parameters sent with every ZenRows request.
ZENROWS_PARAMS: dict[str, str] = {
    "js_render": "true",
    "premium_proxy": "true",
    "proxy_country": "us",
    "block_resources": "image,media,font",
    "wait": "3000",
}

# ---------------------------------------------------------------------------
# Confidence labels carried in item metadata
# ---------------------------------------------------------------------------

CONFIDENCE_HIGH: str = "high"
CONFIDENCE_MEDIUM: str = "medium"
CONFIDENCE_LOW: str = "low"
CONFIDENCE_NONE: str = "none"
