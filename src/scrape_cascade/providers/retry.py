"""Explicit retry policy for outbound provider calls.

The policy retries *requests* (5xx responses and transport errors).  It is
independent of the poll loop's backoff, which spaces out *status checks*; the
two compose when a single status check itself needs retries.

Usage::

    policy = RetryPolicy(max_attempts=3, base_delay=1.0)
    async for attempt in policy.retrying():
        with attempt:
            response = await do_request()
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from scrape_cascade.core.exceptions import TransientProviderError

logger = logging.getLogger(__name__)


def is_server_error(status_code: int) -> bool:
    """Default retryable-status predicate: any 5xx."""
    return 500 <= status_code < 600


@dataclass(frozen=True)
class RetryPolicy:
    """Retry configuration for provider calls.

    Attributes:
        max_attempts: Total tries, including the first one.
        base_delay: Delay in seconds before the first retry.
        multiplier: Growth factor between consecutive retry delays.
        max_delay: Upper bound for any single delay.
        retryable_status: Predicate deciding which HTTP statuses are retried.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    multiplier: float = 2.0
    max_delay: float = 10.0
    retryable_status: Callable[[int], bool] = field(default=is_server_error)

    def is_retryable(self, exc: BaseException) -> bool:
        """Return ``True`` if *exc* should trigger another try."""
        if isinstance(exc, TransientProviderError):
            return True
        if isinstance(exc, httpx.UnsupportedProtocol):
            return False
        return isinstance(exc, httpx.TransportError)

    def retrying(
        self,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ) -> AsyncRetrying:
        """Build a tenacity :class:`AsyncRetrying` controller for one call.

        The final exception is re-raised unchanged once ``max_attempts`` is
        reached.

        Args:
            sleep: Optional awaitable sleep used between tries (tests pass a
                no-op).
        """
        return AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(
                multiplier=self.base_delay,
                exp_base=self.multiplier,
                max=self.max_delay,
            ),
            retry=retry_if_exception(self.is_retryable),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            sleep=sleep or asyncio.sleep,
            reraise=True,
        )
