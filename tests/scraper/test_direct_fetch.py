"""Tests for the direct-fetch rung of the degradation ladder.

Covers:
- 2xx HTML → extracted item (title, truncation, signals, medium confidence)
- non-2xx, exhausted 5xx, timeout, redirect loop → protection record
- binary and empty bodies → protection record, always within the content cap
- malformed URL and DNS/connection failure → DirectFetchError
- browser headers sent, private headers never forwarded
- Zyte (real-estate portals) then ZenRows before the plain GET, with fallthrough
"""

from __future__ import annotations

import base64
import json
from unittest.mock import patch

import httpx
import pytest
import respx

from scrape_cascade.core.exceptions import DirectFetchError
from scrape_cascade.core.models import AttemptOutcome, ScrapeTarget
from scrape_cascade.providers.client import ProviderClient
from scrape_cascade.providers.retry import RetryPolicy
from scrape_cascade.scraper.direct_fetch import DirectFetcher, _is_binary_content_type

_URL = "https://www.zillow.com/homedetails/123"

_HTML = """
<html><head><title>123 Ocean Drive | Zillow</title></head>
<body><article>
<p>Spacious waterfront home with three bedrooms, a pool and a dock. Perfect for a
growing family that needs more space. Contact the seller at 305-555-0199.</p>
</article><script>var tracking = true;</script></body></html>
"""


async def _no_sleep(seconds: float) -> None:
    return None


def _fetcher(http: httpx.AsyncClient, max_chars: int = 15_000) -> DirectFetcher:
    client = ProviderClient(http, retry_policy=RetryPolicy(max_attempts=2, base_delay=0.0), sleep=_no_sleep)
    return DirectFetcher(client, timeout=5.0, max_chars=max_chars)


class TestIsBinaryContentType:
    def test_binary_types(self) -> None:
        assert _is_binary_content_type("application/pdf")
        assert _is_binary_content_type("image/png")
        assert _is_binary_content_type("application/vnd.ms-excel")

    def test_text_types(self) -> None:
        assert not _is_binary_content_type("text/html; charset=utf-8")
        assert not _is_binary_content_type("application/json")
        assert not _is_binary_content_type("")


@pytest.mark.asyncio
class TestSuccessfulFetch:
    async def test_html_page_extracted(self) -> None:
        target = ScrapeTarget.from_url(_URL)
        with respx.mock() as router:
            route = router.get(_URL).mock(
                return_value=httpx.Response(
                    200, text=_HTML, headers={"content-type": "text/html; charset=utf-8"}
                )
            )
            async with httpx.AsyncClient() as http:
                result = await _fetcher(http).fetch(target)

        assert result.outcome is AttemptOutcome.SUCCEEDED
        assert result.item.metadata["fetchedVia"] == "direct_http"
        item = result.item
        assert item.source == "direct"
        assert item.title == "123 Ocean Drive | Zillow"
        assert item.platform == "Zillow"
        assert "waterfront home" in item.content
        assert "tracking" not in item.content
        assert item.metadata["confidence"] == "medium"
        assert item.metadata["protectionDetected"] is False
        assert item.metadata["statusCode"] == 200
        assert item.metadata["buyerSignals"]["buyerType"]["moveUp"] is True
        assert item.metadata["contacts"]["phones"] == ["3055550199"]

        request = route.calls.last.request
        assert "Mozilla" in request.headers["User-Agent"]
        assert "cookie" not in request.headers
        assert "authorization" not in request.headers

    async def test_content_never_exceeds_cap(self) -> None:
        target = ScrapeTarget.from_url(_URL)
        body = f"<html><body><p>{'listing ' * 5_000}</p></body></html>"
        with respx.mock() as router:
            router.get(_URL).mock(
                return_value=httpx.Response(200, text=body, headers={"content-type": "text/html"})
            )
            async with httpx.AsyncClient() as http:
                result = await _fetcher(http, max_chars=1_000).fetch(target)

        assert len(result.item.content) <= 1_000
        assert result.item.metadata["truncated"] is True

    async def test_title_falls_back_to_platform(self) -> None:
        target = ScrapeTarget.from_url("https://www.redfin.com/FL/Miami/home/1")
        body = "<html><body><p>Two bedroom condo with ocean views and a gym.</p></body></html>"
        with respx.mock() as router:
            router.get(target.url).mock(
                return_value=httpx.Response(200, text=body, headers={"content-type": "text/html"})
            )
            async with httpx.AsyncClient() as http:
                with patch(
                    "scrape_cascade.scraper.content_extractor.trafilatura.extract_metadata",
                    return_value=None,
                ):
                    result = await _fetcher(http).fetch(target)

        assert result.item.title == "Redfin Content"
        assert result.item.platform == "Redfin"


@pytest.mark.asyncio
class TestProtectionRecords:
    @pytest.mark.parametrize("status", [403, 404, 429])
    async def test_non_2xx_status(self, status: int) -> None:
        target = ScrapeTarget.from_url(_URL)
        with respx.mock() as router:
            router.get(_URL).mock(return_value=httpx.Response(status))
            async with httpx.AsyncClient() as http:
                result = await _fetcher(http).fetch(target)

        assert result.outcome is AttemptOutcome.PROTECTION_DETECTED
        assert result.status_code == status
        item = result.item
        assert item.source == "direct"
        assert item.synthetic is False
        assert item.content
        assert item.metadata["protectionDetected"] is True
        assert item.metadata["confidence"] == "low"

    async def test_exhausted_server_errors(self) -> None:
        target = ScrapeTarget.from_url(_URL)
        with respx.mock() as router:
            route = router.get(_URL).mock(return_value=httpx.Response(503))
            async with httpx.AsyncClient() as http:
                result = await _fetcher(http).fetch(target)

        assert route.call_count == 2
        assert result.outcome is AttemptOutcome.PROTECTION_DETECTED
        assert result.status_code == 503
        assert "anti-bot" in result.item.content

    async def test_timeout(self) -> None:
        target = ScrapeTarget.from_url(_URL)
        with respx.mock() as router:
            router.get(_URL).mock(side_effect=httpx.ConnectTimeout("timed out"))
            async with httpx.AsyncClient() as http:
                result = await _fetcher(http).fetch(target)

        assert result.outcome is AttemptOutcome.PROTECTION_DETECTED
        assert result.error == "timeout"

    async def test_redirect_loop(self) -> None:
        target = ScrapeTarget.from_url(_URL)
        with respx.mock() as router:
            router.get(_URL).mock(
                return_value=httpx.Response(302, headers={"location": _URL})
            )
            async with httpx.AsyncClient(follow_redirects=True, max_redirects=3) as http:
                result = await _fetcher(http).fetch(target)

        assert result.outcome is AttemptOutcome.PROTECTION_DETECTED
        assert result.error == "too many redirects"

    async def test_binary_body(self) -> None:
        target = ScrapeTarget.from_url("https://example.com/brochure.pdf")
        with respx.mock() as router:
            router.get(target.url).mock(
                return_value=httpx.Response(
                    200, content=b"%PDF-1.4", headers={"content-type": "application/pdf"}
                )
            )
            async with httpx.AsyncClient() as http:
                result = await _fetcher(http).fetch(target)

        assert result.outcome is AttemptOutcome.PROTECTION_DETECTED
        assert "application/pdf" in result.error

    async def test_empty_page(self) -> None:
        target = ScrapeTarget.from_url(_URL)
        with respx.mock() as router:
            router.get(_URL).mock(
                return_value=httpx.Response(
                    200,
                    text="<html><body><div id='root'></div><script>boot()</script></body></html>",
                    headers={"content-type": "text/html"},
                )
            )
            async with httpx.AsyncClient() as http:
                result = await _fetcher(http).fetch(target)

        assert result.outcome is AttemptOutcome.PROTECTION_DETECTED
        assert result.error == "empty page body"

    @pytest.mark.parametrize(
        ("url", "response"),
        [
            (_URL, httpx.Response(403)),
            (_URL, httpx.ConnectTimeout("timed out")),
            (
                "https://example.com/brochure.pdf",
                httpx.Response(200, content=b"%PDF-1.4", headers={"content-type": "application/pdf"}),
            ),
        ],
        ids=["forbidden", "timeout", "binary"],
    )
    async def test_protection_record_respects_cap(self, url: str, response) -> None:
        target = ScrapeTarget.from_url(url)
        with respx.mock() as router:
            if isinstance(response, Exception):
                router.get(url).mock(side_effect=response)
            else:
                router.get(url).mock(return_value=response)
            async with httpx.AsyncClient() as http:
                result = await _fetcher(http, max_chars=50).fetch(target)

        assert result.outcome is AttemptOutcome.PROTECTION_DETECTED
        assert 0 < len(result.item.content) <= 50


@pytest.mark.asyncio
class TestUnrecoverable:
    async def test_dns_failure_raises(self) -> None:
        target = ScrapeTarget.from_url(_URL)
        with respx.mock() as router:
            route = router.get(_URL).mock(
                side_effect=httpx.ConnectError("[Errno -2] Name or service not known")
            )
            async with httpx.AsyncClient() as http:
                with pytest.raises(DirectFetchError) as exc_info:
                    await _fetcher(http).fetch(target)

        assert route.call_count == 2
        assert exc_info.value.url == _URL

    @pytest.mark.parametrize("url", ["not a url", "ftp://example.com/file", ""])
    async def test_malformed_url_raises_without_request(self, url: str) -> None:
        target = ScrapeTarget.from_url(url)
        with respx.mock() as router:
            async with httpx.AsyncClient() as http:
                with pytest.raises(DirectFetchError):
                    await _fetcher(http).fetch(target)
            assert router.calls.call_count == 0


_ZYTE = "https://api.zyte.com/v1/extract"
_EMPTY_APP = "<html><body><div id='root'></div><script>boot()</script></body></html>"


def _proxied_fetcher(
    http: httpx.AsyncClient,
    zyte: bool = True,
    zenrows: bool = True,
) -> DirectFetcher:
    policy = RetryPolicy(max_attempts=2, base_delay=0.0)
    return DirectFetcher(
        ProviderClient(http, retry_policy=policy, sleep=_no_sleep),
        timeout=5.0,
        zyte=ProviderClient(
            http,
            base_url="https://api.zyte.com",
            headers={"Authorization": "Basic emstdGVzdDo="},
            retry_policy=policy,
            sleep=_no_sleep,
        )
        if zyte
        else None,
        zenrows=ProviderClient(
            http,
            base_url="https://api.zenrows.com",
            params={"apikey": "zr-test"},
            retry_policy=policy,
            sleep=_no_sleep,
        )
        if zenrows
        else None,
    )


@pytest.mark.asyncio
class TestRenderingProxies:
    async def test_zyte_serves_real_estate_portal(self) -> None:
        target = ScrapeTarget.from_url(_URL)
        with respx.mock(assert_all_called=False) as router:
            zyte = router.post(_ZYTE).mock(return_value=httpx.Response(200, json={"browserHtml": _HTML}))
            zenrows = router.get(host="api.zenrows.com")
            direct = router.get(_URL)
            async with httpx.AsyncClient() as http:
                result = await _proxied_fetcher(http).fetch(target)

        assert result.outcome is AttemptOutcome.SUCCEEDED
        assert result.item.metadata["fetchedVia"] == "zyte_smart_proxy"
        assert "waterfront home" in result.item.content
        body = json.loads(zyte.calls.last.request.content)
        assert body["url"] == _URL
        assert body["browserHtml"] is True
        assert zyte.calls.last.request.headers["Authorization"].startswith("Basic ")
        assert not zenrows.called
        assert not direct.called

    async def test_zyte_response_body_is_decoded(self) -> None:
        target = ScrapeTarget.from_url(_URL)
        encoded = base64.b64encode(_HTML.encode()).decode()
        with respx.mock(assert_all_called=False) as router:
            router.post(_ZYTE).mock(return_value=httpx.Response(200, json={"httpResponseBody": encoded}))
            async with httpx.AsyncClient() as http:
                result = await _proxied_fetcher(http, zenrows=False).fetch(target)

        assert result.item.metadata["fetchedVia"] == "zyte_smart_proxy"
        assert result.item.title == "123 Ocean Drive | Zillow"

    async def test_zyte_failure_falls_back_to_zenrows(self) -> None:
        target = ScrapeTarget.from_url(_URL)
        with respx.mock(assert_all_called=False) as router:
            zyte = router.post(_ZYTE).mock(return_value=httpx.Response(503))
            zenrows = router.get(host="api.zenrows.com", path="/v1/").mock(
                return_value=httpx.Response(200, text=_HTML)
            )
            direct = router.get(_URL)
            async with httpx.AsyncClient() as http:
                result = await _proxied_fetcher(http).fetch(target)

        assert zyte.call_count == 2
        assert result.item.metadata["fetchedVia"] == "zenrows_premium"
        params = zenrows.calls.last.request.url.params
        assert params["apikey"] == "zr-test"
        assert params["url"] == _URL
        assert params["js_render"] == "true"
        assert params["premium_proxy"] == "true"
        assert not direct.called

    async def test_zyte_only_for_real_estate_portals(self) -> None:
        target = ScrapeTarget.from_url("https://blog.example.org/moving")
        with respx.mock(assert_all_called=False) as router:
            zyte = router.post(_ZYTE)
            router.get(host="api.zenrows.com").mock(return_value=httpx.Response(200, text=_HTML))
            async with httpx.AsyncClient() as http:
                result = await _proxied_fetcher(http).fetch(target)

        assert not zyte.called
        assert result.item.metadata["fetchedVia"] == "zenrows_premium"

    async def test_unextractable_proxy_page_falls_back_to_plain_get(self) -> None:
        target = ScrapeTarget.from_url(_URL)
        with respx.mock(assert_all_called=False) as router:
            router.post(_ZYTE).mock(return_value=httpx.Response(200, json={"browserHtml": _EMPTY_APP}))
            router.get(host="api.zenrows.com").mock(return_value=httpx.Response(422, text="blocked"))
            direct = router.get(_URL).mock(
                return_value=httpx.Response(200, text=_HTML, headers={"content-type": "text/html"})
            )
            async with httpx.AsyncClient() as http:
                result = await _proxied_fetcher(http).fetch(target)

        assert direct.call_count == 1
        assert result.outcome is AttemptOutcome.SUCCEEDED
        assert result.item.metadata["fetchedVia"] == "direct_http"

    async def test_malformed_proxy_payload_falls_back(self) -> None:
        target = ScrapeTarget.from_url(_URL)
        with respx.mock(assert_all_called=False) as router:
            router.post(_ZYTE).mock(return_value=httpx.Response(200, text="not json"))
            router.get(_URL).mock(return_value=httpx.Response(403))
            async with httpx.AsyncClient() as http:
                result = await _proxied_fetcher(http, zenrows=False).fetch(target)

        assert result.outcome is AttemptOutcome.PROTECTION_DETECTED
        assert result.status_code == 403
