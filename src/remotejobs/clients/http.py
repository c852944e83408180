# src/remotejobs/clients/http.py

"""
Every outbound HTTP detail lives here: headers, timeouts and retries.

Design goals:
- Adapters never build an httpx client themselves; one AsyncClient is created
  per process (see `open_client`) and passed in.
- Every remote call goes through `execute`, so retry/backoff behaves the same
  for JSON APIs and RSS feeds.
- Return raw payloads (parsed JSON or feed text); normalization happens in the
  adapters.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

import httpx
from tenacity import AsyncRetrying, RetryError, stop_after_attempt, wait_exponential

from remotejobs.errors import SourceUnavailable

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

# 500ms, 1500ms, 4500ms, ...
BACKOFF_BASE_SECONDS = 0.5
BACKOFF_MULTIPLIER = 3
DEFAULT_MAX_ATTEMPTS = 3

API_TIMEOUT = 10.0
FEED_TIMEOUT = 15.0

Sleep = Callable[[float], Awaitable[None]]


# ---- Headers --------------------------------------------------------------------

def browser_headers() -> Dict[str, str]:
    """
    Headers of a regular desktop browser. Some job APIs answer bare clients
    with 403 or an empty array.
    """
    return {
        "User-Agent": (
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
        ),
        "Accept": "application/json, text/plain, */*",
        "Accept-Language": "en-US,en;q=0.9",
    }


def feed_headers() -> Dict[str, str]:
    """Headers of a feed reader; job boards whitelist these past their bot wall."""
    return {
        "User-Agent": "Feedly/1.0 (+http://www.feedly.com/fetcher.html; like FeedFetcher-Google)",
        "Accept": "application/rss+xml, application/xml;q=0.9, text/xml;q=0.8, */*;q=0.5",
    }


def open_client() -> httpx.AsyncClient:
    """The process-wide client. Close it with `await client.aclose()`."""
    return httpx.AsyncClient(follow_redirects=True)


# ---- Retry executor -------------------------------------------------------------

def _log_failure(label: str, max_attempts: int):
    def before_sleep(retry_state) -> None:
        LOGGER.warning(
            "%s: attempt %d/%d failed (%s); retrying in %.1fs",
            label,
            retry_state.attempt_number,
            max_attempts,
            retry_state.outcome.exception(),
            retry_state.next_action.sleep,
        )
    return before_sleep


async def execute(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    *,
    label: str = "remote call",
    sleep: Sleep = asyncio.sleep,
) -> T:
    """
    Await `operation()` until it succeeds, at most `max_attempts` times.

    Between attempts waits BACKOFF_BASE_SECONDS * BACKOFF_MULTIPLIER**(n-1)
    seconds; there is no wait after the last attempt. When every attempt
    fails, raises SourceUnavailable carrying the last error.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    retrying = AsyncRetrying(
        wait=wait_exponential(multiplier=BACKOFF_BASE_SECONDS, exp_base=BACKOFF_MULTIPLIER),
        stop=stop_after_attempt(max_attempts),
        before_sleep=_log_failure(label, max_attempts),
        sleep=sleep,
    )
    try:
        async for attempt in retrying:
            with attempt:
                LOGGER.debug("%s: attempt %d/%d", label, attempt.retry_state.attempt_number, max_attempts)
                return await operation()
    except RetryError as exc:
        last_error = exc.last_attempt.exception()
        LOGGER.error("%s: giving up after %d attempts: %s", label, max_attempts, last_error)
        raise SourceUnavailable(label, last_error) from last_error
    raise AssertionError("unreachable")  # pragma: no cover


# ---- Fetch helpers --------------------------------------------------------------

async def get_json(
    client: httpx.AsyncClient,
    url: str,
    *,
    label: str,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    timeout: float = API_TIMEOUT,
    params: Optional[Dict[str, str]] = None,
    sleep: Sleep = asyncio.sleep,
) -> Any:
    """GET a JSON API endpoint with browser headers, retried."""
    async def call() -> Any:
        resp = await client.get(url, params=params, headers=browser_headers(), timeout=timeout)
        resp.raise_for_status()  # raises httpx.HTTPStatusError for 4xx/5xx
        return resp.json()

    return await execute(call, max_attempts, label=label, sleep=sleep)


async def get_text(
    client: httpx.AsyncClient,
    url: str,
    *,
    label: str,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    timeout: float = FEED_TIMEOUT,
    sleep: Sleep = asyncio.sleep,
) -> str:
    """GET a feed body with feed-reader headers, retried."""
    async def call() -> str:
        resp = await client.get(url, headers=feed_headers(), timeout=timeout)
        resp.raise_for_status()
        return resp.text

    return await execute(call, max_attempts, label=label, sleep=sleep)
