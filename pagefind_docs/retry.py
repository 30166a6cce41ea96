"""HTTP GET with retry/backoff for the Pagefind endpoints.

Policy:
- 5xx responses and transport-level failures are retried, up to
  ``MAX_RETRIES`` times (``MAX_RETRIES + 1`` attempts in total).
- Any other non-2xx response (e.g. 404) fails immediately.
- The delay before retry *n* is ``BASE_DELAY * BACKOFF_FACTOR ** (n - 1)``
  scaled by a uniform jitter factor in ``[1 - JITTER_RANGE, 1 + JITTER_RANGE]``
  so that many concurrently failing fetches do not retry in lockstep.
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Awaitable, Callable

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
)
from tenacity.wait import wait_base

from .errors import ProtocolError, TransportError

LOGGER = logging.getLogger(__name__)

MAX_RETRIES = 3
BASE_DELAY = 1.0
BACKOFF_FACTOR = 2.0
JITTER_RANGE = 0.25

SleepFn = Callable[[float], Awaitable[None]]


class JitteredBackoff(wait_base):
    """Exponential backoff with multiplicative jitter."""

    def __init__(
        self,
        base: float = BASE_DELAY,
        factor: float = BACKOFF_FACTOR,
        jitter: float = JITTER_RANGE,
    ) -> None:
        self.base = base
        self.factor = factor
        self.jitter = jitter

    def __call__(self, retry_state: RetryCallState) -> float:
        # attempt_number is 1 after the first failed attempt
        exponent = max(0, retry_state.attempt_number - 1)
        delay = self.base * (self.factor ** exponent)
        return delay * random.uniform(1 - self.jitter, 1 + self.jitter)


def is_retryable(exc: BaseException) -> bool:
    """Return True for failures that indicate transient trouble."""
    if isinstance(exc, TransportError):
        return True
    if isinstance(exc, ProtocolError):
        return exc.retryable
    return False


async def _get_once(client: httpx.AsyncClient, url: str) -> httpx.Response:
    try:
        response = await client.get(url)
    except httpx.TransportError as exc:
        raise TransportError(f"Request failed for {url}: {exc!r}", url=url) from exc

    if response.is_success:
        return response

    status = f"HTTP {response.status_code} {response.reason_phrase or ''}".strip()
    raise ProtocolError(
        f"{status} for {url}",
        status_code=response.status_code,
        url=url,
    )


async def fetch_with_retry(
    client: httpx.AsyncClient,
    url: str,
    *,
    max_retries: int = MAX_RETRIES,
    sleep: SleepFn = asyncio.sleep,
) -> httpx.Response:
    """GET *url*, retrying transient failures.

    Args:
        client: The httpx client to issue requests with.
        url: Absolute URL to fetch.
        max_retries: Retries after the first attempt (default: 3).
        sleep: Awaitable sleep used between attempts; injectable for tests.

    Returns:
        The first 2xx response.

    Raises:
        ProtocolError: Non-2xx response that is final or survived all retries.
        TransportError: Network failure that survived all retries.
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(max(0, max_retries) + 1),
        wait=JitteredBackoff(),
        retry=retry_if_exception(is_retryable),
        before_sleep=before_sleep_log(LOGGER, logging.WARNING),
        reraise=True,
        sleep=sleep,
    )
    return await retrying(_get_once, client, url)
