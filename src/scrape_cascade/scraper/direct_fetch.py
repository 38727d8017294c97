"""Direct HTTP fetch: the second rung of the degradation ladder.

Runs after every actor candidate failed.  When proxy keys are configured the
page is first requested through a rendering proxy (Zyte for real-estate
portals, then ZenRows); a proxy that fails or returns nothing extractable
falls through to a plain GET with browser-like headers.

A page that answers 2xx with HTML is extracted into one item.  Anything that
*answered* but not usefully (non-2xx, exhausted 5xx retries, timeout, redirect
loop, binary body, empty page) yields a low-confidence record explaining that
site protection was encountered.  Only failures that prevent any answer at all
(malformed URL, DNS or connection failure) raise
:class:`~scrape_cascade.core.exceptions.DirectFetchError`, which sends the
target to the synthetic placeholder.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass

import httpx

from scrape_cascade.core.exceptions import DirectFetchError, TransientProviderError
from scrape_cascade.core.models import DIRECT_SOURCE, AttemptOutcome, ScrapedItem, ScrapeTarget
from scrape_cascade.core.urls import UNKNOWN_PLATFORM, detect_platform, domain_matches, is_fetchable_url
from scrape_cascade.providers.client import BROWSER_HEADERS, ProviderClient, strip_forbidden_headers
from scrape_cascade.scraper import signals
from scrape_cascade.scraper.config import (
    BINARY_CONTENT_TYPES,
    CONFIDENCE_LOW,
    CONFIDENCE_MEDIUM,
    DEFAULT_MAX_CONTENT_CHARS,
    MAX_TITLE_CHARS,
    PROTECTION_STATUSES,
    VIA_DIRECT,
    VIA_ZENROWS,
    VIA_ZYTE,
    ZENROWS_PARAMS,
    ZYTE_DOMAINS,
)
from scrape_cascade.scraper.content_extractor import extract_from_html, truncate

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result dataclass
# ---------------------------------------------------------------------------


@dataclass
class DirectFetchResult:
    """Result of one direct fetch.

    Attributes:
        item: The produced record (extracted content or protection notice).
        outcome: ``SUCCEEDED`` or ``PROTECTION_DETECTED``.
        status_code: HTTP status of the final response, or ``None``.
        error: Description of the failure for protection records.
    """

    item: ScrapedItem
    outcome: AttemptOutcome
    status_code: int | None = None
    error: str | None = None


def _is_binary_content_type(content_type: str) -> bool:
    ct = content_type.lower().split(";")[0].strip()
    return any(ct.startswith(prefix) for prefix in BINARY_CONTENT_TYPES)


def _platform_for(target: ScrapeTarget) -> str:
    platform = target.platform or detect_platform(target.url)
    return platform or UNKNOWN_PLATFORM


def _zyte_html(payload: object) -> str:
    """Pull page HTML out of a Zyte extract response."""
    if not isinstance(payload, dict):
        return ""
    html = payload.get("browserHtml")
    if isinstance(html, str) and html:
        return html
    body = payload.get("httpResponseBody")
    if isinstance(body, str) and body:
        return base64.b64decode(body).decode("utf-8", errors="replace")
    return ""


# ---------------------------------------------------------------------------
# Fetcher
# ---------------------------------------------------------------------------


class DirectFetcher:
    """Fetches a target URL, optionally through rendering proxies first.

    Args:
        client: Provider client sharing the batch's HTTP connection pool.
            Its underlying :class:`httpx.AsyncClient` caps redirects.
        timeout: Timeout in seconds of the plain GET.
        max_chars: Content truncation cap.
        zyte: Client for the Zyte API (authenticated), or ``None``.
        zenrows: Client for the ZenRows API (carrying the ``apikey``
            parameter), or ``None``.
        proxy_timeout: Timeout in seconds of one proxy request.
    """

    def __init__(
        self,
        client: ProviderClient,
        timeout: float = 25.0,
        max_chars: int = DEFAULT_MAX_CONTENT_CHARS,
        zyte: ProviderClient | None = None,
        zenrows: ProviderClient | None = None,
        proxy_timeout: float = 35.0,
    ) -> None:
        self._client = client
        self.timeout = timeout
        self.max_chars = max_chars
        self._zyte = zyte
        self._zenrows = zenrows
        self.proxy_timeout = proxy_timeout

    def _protection_result(
        self,
        target: ScrapeTarget,
        reason: str,
        status_code: int | None = None,
    ) -> DirectFetchResult:
        platform = _platform_for(target)
        if status_code in PROTECTION_STATUSES:
            detail = f"the site answered HTTP {status_code}, which usually means anti-bot protection"
        elif status_code is not None:
            detail = f"the site answered HTTP {status_code}"
        else:
            detail = reason
        content = (
            f"{platform} page at {target.domain or target.url} could not be extracted: "
            f"{detail}. Site protection was encountered; treat this record as low confidence."
        )
        metadata = {
            "confidence": CONFIDENCE_LOW,
            "protectionDetected": True,
            "statusCode": status_code,
            "reason": reason,
        }
        logger.info("direct: protection detected for %s (%s)", target.url, reason)
        return DirectFetchResult(
            item=ScrapedItem(
                url=target.url,
                title=truncate(f"{platform} Content (protected)", MAX_TITLE_CHARS),
                content=truncate(content, self.max_chars),
                platform=platform,
                source=DIRECT_SOURCE,
                metadata=metadata,
            ),
            outcome=AttemptOutcome.PROTECTION_DETECTED,
            status_code=status_code,
            error=reason,
        )

    def _extracted_result(
        self,
        target: ScrapeTarget,
        html: str,
        final_url: str,
        status: int,
        via: str,
    ) -> DirectFetchResult | None:
        """Build a success result, or ``None`` when *html* has no visible text."""
        extracted = extract_from_html(html, final_url, self.max_chars)
        if not extracted.text:
            return None

        platform = _platform_for(target)
        metadata = {
            "confidence": CONFIDENCE_MEDIUM,
            "protectionDetected": False,
            "statusCode": status,
            "finalUrl": final_url,
            "truncated": extracted.truncated,
            "fetchedVia": via,
        }
        metadata.update(signals.annotate(extracted.text))
        logger.info("direct: extracted %d chars from %s via %s", len(extracted.text), target.url, via)
        return DirectFetchResult(
            item=ScrapedItem(
                url=target.url,
                title=extracted.title or f"{platform} Content",
                content=extracted.text,
                platform=platform,
                source=DIRECT_SOURCE,
                metadata=metadata,
            ),
            outcome=AttemptOutcome.SUCCEEDED,
            status_code=status,
        )

    # ------------------------------------------------------------------
    # Proxy steps
    # ------------------------------------------------------------------

    def _wants_zyte(self, target: ScrapeTarget) -> bool:
        return self._zyte is not None and any(
            domain_matches(target.domain, pattern) for pattern in ZYTE_DOMAINS
        )

    async def _via_zyte(self, target: ScrapeTarget) -> str:
        assert self._zyte is not None
        response = await self._zyte.send(
            "POST",
            "/v1/extract",
            {"url": target.url, "browserHtml": True, "geolocation": "US"},
            timeout=self.proxy_timeout,
        )
        if not response.is_success:
            logger.warning("direct: zyte answered HTTP %d for %s", response.status_code, target.url)
            return ""
        return _zyte_html(response.json())

    async def _via_zenrows(self, target: ScrapeTarget) -> str:
        assert self._zenrows is not None
        response = await self._zenrows.send(
            "GET",
            "/v1/",
            params={"url": target.url, **ZENROWS_PARAMS},
            timeout=self.proxy_timeout,
        )
        if not response.is_success:
            logger.warning("direct: zenrows answered HTTP %d for %s", response.status_code, target.url)
            return ""
        return response.text

    async def _fetch_rendered(self, target: ScrapeTarget) -> DirectFetchResult | None:
        """Try the configured proxies in order; ``None`` when none produced text."""
        steps = []
        if self._wants_zyte(target):
            steps.append((VIA_ZYTE, self._via_zyte))
        if self._zenrows is not None:
            steps.append((VIA_ZENROWS, self._via_zenrows))

        for via, step in steps:
            try:
                html = await step(target)
            except (TransientProviderError, httpx.HTTPError, ValueError) as exc:
                logger.warning("direct: %s failed for %s: %s", via, target.url, exc)
                continue
            if not html:
                continue
            result = self._extracted_result(target, html, target.url, 200, via)
            if result is not None:
                return result
            logger.info("direct: %s returned no extractable text for %s", via, target.url)
        return None

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def fetch(self, target: ScrapeTarget) -> DirectFetchResult:
        """Fetch *target* and turn the answer into one item.

        Returns:
            A :class:`DirectFetchResult`; never an empty one.

        Raises:
            DirectFetchError: When no request could be completed at all.
        """
        url = target.url
        if not is_fetchable_url(url):
            raise DirectFetchError(f"malformed URL: {url!r}", url=url)

        rendered = await self._fetch_rendered(target)
        if rendered is not None:
            return rendered

        try:
            response = await self._client.send(
                "GET",
                url,
                headers=strip_forbidden_headers(BROWSER_HEADERS),
                timeout=self.timeout,
            )
        except TransientProviderError as exc:
            if exc.timed_out:
                return self._protection_result(target, "timeout")
            if exc.status_code is not None:
                return self._protection_result(
                    target, f"HTTP {exc.status_code} after retries", exc.status_code
                )
            raise DirectFetchError(f"no response from {url}: {exc}", url=url) from exc
        except httpx.TooManyRedirects:
            return self._protection_result(target, "too many redirects")
        except (httpx.InvalidURL, httpx.UnsupportedProtocol) as exc:
            raise DirectFetchError(f"cannot request {url!r}: {exc}", url=url) from exc

        status = response.status_code
        if not response.is_success:
            return self._protection_result(target, f"HTTP {status}", status)

        content_type = response.headers.get("content-type", "")
        if _is_binary_content_type(content_type):
            return self._protection_result(
                target, f"binary content type {content_type.split(';')[0]}", status
            )

        result = self._extracted_result(target, response.text, str(response.url), status, VIA_DIRECT)
        if result is None:
            return self._protection_result(target, "empty page body", status)
        return result
