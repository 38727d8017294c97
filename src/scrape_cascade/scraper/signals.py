"""Keyword-based buyer signals and contact extraction for scraped text.

These annotate items for the downstream scoring stage (``buyerSignals`` and
``contacts`` metadata); they do not score anything themselves.  All functions
are pure.
"""

from __future__ import annotations

import re
from typing import Any

IMMEDIATE_INTENT_KEYWORDS: tuple[str, ...] = (
    "ready to buy now",
    "looking to close quickly",
    "need to buy asap",
    "cash offer",
    "pre-approved",
    "ready to make offer",
)
HIGH_INTENT_KEYWORDS: tuple[str, ...] = (
    "looking to buy",
    "house hunting",
    "actively searching",
    "need to find",
    "ready to purchase",
    "serious buyer",
)
MEDIUM_INTENT_KEYWORDS: tuple[str, ...] = (
    "thinking about buying",
    "considering",
    "exploring options",
    "interested in",
    "might be looking",
)

BUYER_TYPE_KEYWORDS: dict[str, tuple[str, ...]] = {
    "firstTime": ("first time buyer", "first home", "new to buying", "never owned before"),
    "moveUp": (
        "move up",
        "upgrade",
        "bigger home",
        "selling current home",
        "growing family",
        "need more space",
    ),
    "luxury": (
        "luxury",
        "high-end",
        "premium",
        "executive",
        "million dollar",
        "waterfront",
        "custom built",
        "estate",
    ),
    "investment": (
        "investment property",
        "rental property",
        "flip house",
        "passive income",
        "roi",
        "cash flow",
    ),
    "cash": ("cash buyer", "all cash", "no financing", "cash purchase"),
    "military": (
        "military",
        "pcs",
        "deployment",
        "navy",
        "air force",
        "army",
        "marine",
        "veteran",
        "active duty",
        "base housing",
    ),
}

_PRICE_RE = re.compile(r"\$[\d,]+(?:k|K|\d{3})")
_LOCATION_RE = re.compile(
    r"(?:in|near|around)\s+([A-Z][a-z]+(?:\s+[A-Z][a-z]+)*(?:\s+FL|,\s*Florida)?)"
)
_EMAIL_RE = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")
_OBFUSCATED_EMAIL_RE = re.compile(
    r"\b[A-Za-z0-9._%+-]+\s*\[at\]\s*[A-Za-z0-9.-]+\s*\[dot\]\s*[A-Za-z]{2,}\b"
)
_AGENT_EMAIL_RE = re.compile(r"agent|realtor|broker|listing|info@|contact@|admin@", re.I)
_PHONE_RE = re.compile(r"(?:\+1[-. ]?)?\(?\b\d{3}\)?[-. ]?\d{3}[-. ]?\d{4}\b")
_HANDLE_RE = re.compile(r"(?<![\w.])@([A-Za-z0-9_.]{3,30})\b")

_KEYWORD_PATTERNS: dict[str, re.Pattern[str]] = {}


def _contains_keyword(text_lower: str, keyword: str) -> bool:
    # Word boundaries keep short keywords such as "roi" or "pcs" from
    # matching inside unrelated words.
    pattern = _KEYWORD_PATTERNS.get(keyword)
    if pattern is None:
        pattern = re.compile(r"\b" + re.escape(keyword) + r"\b")
        _KEYWORD_PATTERNS[keyword] = pattern
    return pattern.search(text_lower) is not None


def _any_keyword(text_lower: str, keywords: tuple[str, ...]) -> bool:
    return any(_contains_keyword(text_lower, k) for k in keywords)


def extract_buyer_signals(text: str) -> dict[str, Any]:
    """Detect buyer intent, buyer types, price and location mentions in *text*.

    Intent levels are exclusive (immediate > high > medium).  The urgency
    score adds 25 / 15 / 5 for the intent level and 10 for cash buyers.

    Args:
        text: Plain text to analyse.

    Returns:
        Dict with ``buyerIntent``, ``buyerType``, ``priceRange``, ``location``
        and ``urgencyScore`` keys.
    """
    signals: dict[str, Any] = {
        "buyerIntent": {"immediate": False, "high": False, "medium": False},
        "buyerType": {key: False for key in BUYER_TYPE_KEYWORDS},
        "priceRange": None,
        "location": None,
        "urgencyScore": 0,
    }
    if not text:
        return signals

    lower = text.lower()
    if _any_keyword(lower, IMMEDIATE_INTENT_KEYWORDS):
        signals["buyerIntent"]["immediate"] = True
        signals["urgencyScore"] += 25
    elif _any_keyword(lower, HIGH_INTENT_KEYWORDS):
        signals["buyerIntent"]["high"] = True
        signals["urgencyScore"] += 15
    elif _any_keyword(lower, MEDIUM_INTENT_KEYWORDS):
        signals["buyerIntent"]["medium"] = True
        signals["urgencyScore"] += 5

    for buyer_type, keywords in BUYER_TYPE_KEYWORDS.items():
        if _any_keyword(lower, keywords):
            signals["buyerType"][buyer_type] = True
    if signals["buyerType"]["cash"]:
        signals["urgencyScore"] += 10

    price = _PRICE_RE.search(text)
    if price:
        signals["priceRange"] = price.group(0)

    locations = [m.group(1) for m in _LOCATION_RE.finditer(text)]
    if locations:
        signals["location"] = ", ".join(dict.fromkeys(locations))

    return signals


def extract_contacts(text: str) -> dict[str, list[str]]:
    """Extract emails, US phone numbers and social handles from *text*.

    Obfuscated ``name [at] host [dot] com`` emails are de-obfuscated; agent
    and role addresses (``info@``, ``realtor``...) are dropped.  Phones are
    normalized to 10 digits.
    """
    contacts: dict[str, list[str]] = {"emails": [], "phones": [], "socialHandles": []}
    if not text:
        return contacts

    candidates = _EMAIL_RE.findall(text) + [
        re.sub(r"\s*\[dot\]\s*", ".", re.sub(r"\s*\[at\]\s*", "@", m))
        for m in _OBFUSCATED_EMAIL_RE.findall(text)
    ]
    for email in candidates:
        if _AGENT_EMAIL_RE.search(email) or email in contacts["emails"]:
            continue
        contacts["emails"].append(email)

    for match in _PHONE_RE.findall(text):
        digits = re.sub(r"\D", "", match)
        if len(digits) == 11 and digits.startswith("1"):
            digits = digits[1:]
        if len(digits) == 10 and digits not in contacts["phones"]:
            contacts["phones"].append(digits)

    for handle in _HANDLE_RE.findall(text):
        if handle not in contacts["socialHandles"]:
            contacts["socialHandles"].append(handle)

    return contacts


def annotate(text: str) -> dict[str, Any]:
    """Return the ``buyerSignals`` / ``contacts`` metadata for *text*."""
    return {
        "buyerSignals": extract_buyer_signals(text),
        "contacts": extract_contacts(text),
    }
