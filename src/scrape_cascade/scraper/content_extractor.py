"""Plain-text extraction from raw HTML.

Primary extractor: ``trafilatura`` (boilerplate removal).
Fallback: stdlib ``html.parser`` tag stripping when trafilatura returns no
content (very short pages, listing shells, heavily obfuscated sites).  Both
paths drop ``<script>``/``<style>`` blocks and collapse whitespace.
"""

from __future__ import annotations

import html as html_module
import logging
import re
from dataclasses import dataclass
from html.parser import HTMLParser

import trafilatura

from scrape_cascade.scraper.config import DEFAULT_MAX_CONTENT_CHARS, MAX_TITLE_CHARS

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")


@dataclass
class ExtractedContent:
    """Result of extracting content from an HTML page.

    Attributes:
        text: Cleaned, truncated text (empty when nothing readable was found).
        title: Page title, or ``None`` if not detected.
        truncated: ``True`` when ``text`` was cut at the length cap.
    """

    text: str
    title: str | None
    truncated: bool = False


# ---------------------------------------------------------------------------
# HTML tag-stripping fallback
# ---------------------------------------------------------------------------


class _TagStripper(HTMLParser):
    """Minimal HTML parser that strips tags and collects visible text and the title."""

    _SKIP_TAGS: frozenset[str] = frozenset(
        {"script", "style", "noscript", "template", "svg"}
    )

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self._chunks: list[str] = []
        self._title_chunks: list[str] = []
        self._skip_depth: int = 0
        self._in_title: bool = False

    def handle_starttag(self, tag: str, attrs: list) -> None:  # type: ignore[override]
        tag = tag.lower()
        if tag in self._SKIP_TAGS:
            self._skip_depth += 1
        elif tag == "title":
            self._in_title = True

    def handle_endtag(self, tag: str) -> None:
        tag = tag.lower()
        if tag in self._SKIP_TAGS and self._skip_depth > 0:
            self._skip_depth -= 1
        elif tag == "title":
            self._in_title = False

    def handle_data(self, data: str) -> None:
        if self._skip_depth:
            return
        if self._in_title:
            self._title_chunks.append(data)
            return
        self._chunks.append(data)

    def get_text(self) -> str:
        return collapse_whitespace(html_module.unescape(" ".join(self._chunks)))

    def get_title(self) -> str | None:
        title = collapse_whitespace(" ".join(self._title_chunks))
        return title or None


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


def truncate(text: str, limit: int) -> str:
    """Cut *text* to at most *limit* characters."""
    return text if len(text) <= limit else text[:limit]


def strip_tags(html: str) -> tuple[str, str | None]:
    """Strip HTML tags and return ``(visible_text, title)`` using stdlib HTMLParser."""
    stripper = _TagStripper()
    try:
        stripper.feed(html)
        stripper.close()
    except Exception as exc:  # noqa: BLE001
        # HTMLParser is lenient; keep whatever was collected before the error.
        logger.debug("extractor: html.parser gave up early: %s", exc)
    return stripper.get_text(), stripper.get_title()


# ---------------------------------------------------------------------------
# Public extraction function
# ---------------------------------------------------------------------------


def extract_from_html(
    html: str,
    url: str,
    max_chars: int = DEFAULT_MAX_CONTENT_CHARS,
) -> ExtractedContent:
    """Extract text and title from raw HTML.

    Uses ``trafilatura`` first and falls back to tag stripping when it finds
    nothing.  The ``<title>`` element is preferred for the title, then
    trafilatura's metadata.

    Args:
        html: Raw HTML string (may be partial or malformed).
        url: Page URL (used by trafilatura for heuristics).
        max_chars: Truncation cap for the returned text.

    Returns:
        An :class:`ExtractedContent`; ``text`` never exceeds *max_chars*.
    """
    html = html.replace("\x00", "")
    stripped_text, title = strip_tags(html)

    text: str | None = None
    try:
        result = trafilatura.extract(
            html,
            url=url,
            include_comments=False,
            include_tables=True,
            output_format="txt",
        )
        if result:
            text = collapse_whitespace(result)
        if not title:
            meta = trafilatura.extract_metadata(html, default_url=url)
            if meta is not None:
                title = getattr(meta, "title", None) or None
    except Exception as exc:  # noqa: BLE001
        logger.warning("extractor: trafilatura extraction failed for %s: %s", url, exc)

    if not text:
        text = stripped_text

    truncated = len(text) > max_chars
    if truncated:
        logger.debug("extractor: truncated text to %d chars for %s", max_chars, url)
    if title:
        title = truncate(collapse_whitespace(title), MAX_TITLE_CHARS)

    return ExtractedContent(text=truncate(text, max_chars), title=title, truncated=truncated)
