"""
Unit tests for the retry executor and the HTTP fetch helpers.
"""

import asyncio

import httpx
import pytest

from remotejobs.clients.http import execute, get_json, get_text
from remotejobs.errors import SourceUnavailable


class Recorder:
    """Fake sleep that records requested delays instead of waiting."""

    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


def flaky(failures, result="ok"):
    calls = []

    async def operation():
        calls.append(len(calls) + 1)
        if len(calls) <= failures:
            raise httpx.ConnectError(f"failure {len(calls)}")
        return result

    return operation, calls


def test_fails_twice_then_succeeds():
    sleep = Recorder()
    operation, calls = flaky(failures=2)

    result = asyncio.run(execute(operation, 3, label="test", sleep=sleep))

    assert result == "ok"
    assert len(calls) == 3
    assert sleep.delays == [0.5, 1.5]


def test_first_attempt_success_does_not_sleep():
    sleep = Recorder()
    operation, calls = flaky(failures=0)

    assert asyncio.run(execute(operation, 3, sleep=sleep)) == "ok"
    assert calls == [1]
    assert sleep.delays == []


def test_exhausted_attempts_raise_source_unavailable():
    sleep = Recorder()
    operation, calls = flaky(failures=10)

    with pytest.raises(SourceUnavailable) as exc_info:
        asyncio.run(execute(operation, 3, label="remoteok", sleep=sleep))

    assert len(calls) == 3
    # no wait after the final attempt
    assert sleep.delays == [0.5, 1.5]
    assert exc_info.value.source == "remoteok"
    assert isinstance(exc_info.value.last_error, httpx.ConnectError)
    assert "failure 3" in str(exc_info.value.last_error)


def test_backoff_grows_by_factor_three():
    sleep = Recorder()
    operation, _ = flaky(failures=10)

    with pytest.raises(SourceUnavailable):
        asyncio.run(execute(operation, 4, sleep=sleep))

    assert sleep.delays == [0.5, 1.5, 4.5]


def test_single_attempt_never_sleeps():
    sleep = Recorder()
    operation, calls = flaky(failures=1)

    with pytest.raises(SourceUnavailable):
        asyncio.run(execute(operation, 1, sleep=sleep))

    assert calls == [1]
    assert sleep.delays == []


def test_max_attempts_must_be_positive():
    operation, _ = flaky(failures=0)
    with pytest.raises(ValueError):
        asyncio.run(execute(operation, 0))


def test_get_json_retries_server_errors():
    sleep = Recorder()
    seen = []

    def handler(request):
        seen.append(request)
        if len(seen) == 1:
            return httpx.Response(503)
        return httpx.Response(200, json=[{"id": 1}])

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await get_json(client, "https://api.example.com/jobs", label="api", sleep=sleep)

    assert asyncio.run(run()) == [{"id": 1}]
    assert len(seen) == 2
    assert sleep.delays == [0.5]
    assert "Mozilla" in seen[0].headers["User-Agent"]


def test_get_text_sends_feed_reader_headers():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, text="<rss></rss>")

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await get_text(client, "https://feeds.example.com/jobs.rss", label="feed")

    assert asyncio.run(run()) == "<rss></rss>"
    assert "rss" in seen[0].headers["Accept"]
    assert "Feed" in seen[0].headers["User-Agent"]
