"""Provider client: one retrying HTTP entry point for every outbound call.

Both the Apify backend and the direct fetch go through a
:class:`ProviderClient`.  All instances built for one batch share a single
:class:`httpx.AsyncClient` (connection pool, redirect cap), used read-only.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any

import httpx

from scrape_cascade.core.exceptions import TransientProviderError
from scrape_cascade.providers.retry import RetryPolicy

logger = logging.getLogger(__name__)

#: Browser-like headers used by the direct fetch.
BROWSER_HEADERS: dict[str, str] = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}

# Headers that must never be forwarded to third-party sites.
_FORBIDDEN_FORWARD_HEADERS: frozenset[str] = frozenset(
    {"cookie", "authorization", "x-ig-sessionid", "x-fb-cookie", "x-nd-cookie"}
)


def strip_forbidden_headers(headers: dict[str, str]) -> dict[str, str]:
    """Return *headers* without private cookie/authorization headers."""
    return {k: v for k, v in headers.items() if k.lower() not in _FORBIDDEN_FORWARD_HEADERS}


class ProviderClient:
    """Retrying wrapper around a shared :class:`httpx.AsyncClient`.

    Args:
        http_client: Shared async HTTP client.
        base_url: Prefix for relative paths.  Absolute URLs are sent as-is.
        headers: Headers added to every request (e.g. the Bearer token).
        params: Query parameters added to every request (e.g. an API key).
        retry_policy: Policy for 5xx and transport errors.
        sleep: Optional sleep used between retries (tests pass a no-op).
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str = "",
        headers: dict[str, str] | None = None,
        params: dict[str, Any] | None = None,
        retry_policy: RetryPolicy | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        self._http = http_client
        self.base_url = base_url.rstrip("/")
        self.headers = dict(headers or {})
        self.params = dict(params or {})
        self.retry_policy = retry_policy or RetryPolicy()
        self._sleep = sleep

    def url_for(self, path: str) -> str:
        if path.startswith(("http://", "https://")) or not self.base_url:
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    async def send(
        self,
        method: str,
        path: str,
        body: Any = None,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        """Send one request, retrying 5xx responses and transport errors.

        Args:
            method: HTTP method.
            path: Path relative to ``base_url``, or an absolute URL.
            body: Optional JSON body.
            params: Optional query parameters.
            headers: Extra headers for this request.
            timeout: Per-request timeout overriding the client default.

        Returns:
            The final response.  Non-retryable statuses (2xx–4xx) are returned
            to the caller to interpret.

        Raises:
            TransientProviderError: When retries are exhausted.
            httpx.InvalidURL / httpx.UnsupportedProtocol: For malformed URLs.
        """
        url = self.url_for(path)
        merged_headers = {**self.headers, **(headers or {})}
        merged_params = {**self.params, **(params or {})} or None
        request_kwargs: dict[str, Any] = {"params": merged_params, "headers": merged_headers}
        if body is not None:
            request_kwargs["json"] = body
        if timeout is not None:
            request_kwargs["timeout"] = timeout

        response: httpx.Response | None = None
        try:
            async for attempt in self.retry_policy.retrying(sleep=self._sleep):
                with attempt:
                    response = await self._http.request(method, url, **request_kwargs)
                    if self.retry_policy.retryable_status(response.status_code):
                        raise TransientProviderError(
                            f"{method} {url} returned HTTP {response.status_code}",
                            status_code=response.status_code,
                        )
        except httpx.TimeoutException as exc:
            raise TransientProviderError(
                f"{method} {url} timed out: {exc}", timed_out=True
            ) from exc
        except httpx.UnsupportedProtocol:
            raise
        except httpx.TransportError as exc:
            raise TransientProviderError(
                f"{method} {url} transport error: {exc}"
            ) from exc

        assert response is not None
        logger.debug("provider: %s %s -> HTTP %d", method, url, response.status_code)
        return response


@asynccontextmanager
async def build_http_client(
    http_client: httpx.AsyncClient | None = None,
    timeout: float = 45.0,
    max_redirects: int = 5,
) -> AsyncIterator[httpx.AsyncClient]:
    """Async context manager yielding the shared HTTP client.

    Yields the injected client directly (for testing, without re-entering);
    otherwise creates a new client that follows at most *max_redirects*
    redirects.
    """
    if http_client is not None:
        yield http_client
        return
    async with httpx.AsyncClient(
        timeout=timeout,
        follow_redirects=True,
        max_redirects=max_redirects,
    ) as client:
        yield client
