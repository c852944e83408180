# src/remotejobs/service.py
"""
The two operations everything else calls: refresh the cache, and read jobs.

read() is a three-way decision per request:
- cache hit          -> serve the cached generation          ("cached")
- no cache yet       -> aggregate live, seed the cache        ("live-fetch")
- cache unreadable   -> aggregate live, try to repair cache   ("fallback-fetch")

The client gets the same flat job list in all three cases; the status is in
the logs and in the enveloped response metadata.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

import httpx

from remotejobs.clients.http import open_client
from remotejobs.config import Settings
from remotejobs.errors import CacheReadFailure, CacheWriteFailure, FatalPipelineError
from remotejobs.io.cache import CacheMetadata, ChunkedCacheStore
from remotejobs.io.sql import SqlDocumentStore
from remotejobs.models import Job
from remotejobs.pipeline.aggregate import Aggregator
from remotejobs.pipeline.normalize import parse_timestamp
from remotejobs.sources.base import JobSource
from remotejobs.sources.remoteco import RemoteCoSource
from remotejobs.sources.remoteok import RemoteOkSource
from remotejobs.sources.remotive import RemotiveSource
from remotejobs.sources.weworkremotely import WeWorkRemotelySource

LOGGER = logging.getLogger(__name__)

CACHED = "cached"
LIVE_FETCH = "live-fetch"
FALLBACK_FETCH = "fallback-fetch"

SOURCE_CLASSES = (RemoteOkSource, RemotiveSource, WeWorkRemotelySource, RemoteCoSource)


@dataclass(frozen=True)
class ReadResult:
    jobs: Tuple[Job, ...]
    status: str
    last_updated: str
    cache_age_minutes: int = 0

    def to_flat(self) -> List[Dict[str, Any]]:
        return [j.to_dict() for j in self.jobs]

    def to_envelope(self) -> Dict[str, Any]:
        return {
            "jobs": self.to_flat(),
            "metadata": {
                "lastUpdated": self.last_updated,
                "jobCount": len(self.jobs),
                "cacheAgeMinutes": self.cache_age_minutes,
                "cacheStatus": self.status,
            },
        }


def cache_age_minutes(last_updated: str, now: Optional[datetime] = None) -> int:
    updated = parse_timestamp(last_updated)
    if updated is None:
        return 0
    now = now or datetime.now(timezone.utc)
    return max(0, int((now - updated).total_seconds() // 60))


class JobsPipeline:
    def __init__(self, aggregator: Aggregator, store: ChunkedCacheStore):
        self.aggregator = aggregator
        self.store = store

    async def refresh(self) -> CacheMetadata:
        """
        Aggregate every source and replace the cached generation.

        Source failures end up in the metadata; only infrastructure errors
        (CacheWriteFailure) propagate, so the caller can mark the run failed.
        """
        result = await self.aggregator.aggregate()
        return await self.store.save(result.jobs, result.metadata)

    async def read(self) -> ReadResult:
        try:
            generation = await self.store.load()
        except CacheReadFailure as exc:
            LOGGER.error("cache read failed, falling back to a live fetch: %s", exc)
            return await self._live(FALLBACK_FETCH)

        if generation is None:
            LOGGER.info("no cache yet, fetching live")
            return await self._live(LIVE_FETCH)

        age = cache_age_minutes(generation.metadata.last_updated)
        LOGGER.info("serving %d cached jobs, cache age %d min", generation.metadata.job_count, age)
        return ReadResult(
            jobs=generation.jobs,
            status=CACHED,
            last_updated=generation.metadata.last_updated,
            cache_age_minutes=age,
        )

    async def _live(self, status: str) -> ReadResult:
        try:
            result = await self.aggregator.aggregate()
        except Exception as exc:
            LOGGER.exception("live fetch failed")
            raise FatalPipelineError(str(exc) or type(exc).__name__) from exc

        try:
            await self.store.save(result.jobs, result.metadata)
        except CacheWriteFailure as exc:
            # the client still gets its jobs
            LOGGER.warning("could not seed the cache: %s", exc)

        return ReadResult(
            jobs=result.jobs,
            status=status,
            last_updated=result.metadata.last_updated,
            cache_age_minutes=0,
        )


def build_sources(client: httpx.AsyncClient, settings: Settings) -> List[JobSource]:
    common = {"max_attempts": settings.max_attempts}
    return [
        RemoteOkSource(client, url=settings.remoteok_url, **common),
        RemotiveSource(client, url=settings.remotive_url, **common),
        WeWorkRemotelySource(client, feed_urls=settings.wwr_feed_urls, **common),
        RemoteCoSource(client, feed_url=settings.remoteco_feed_url, **common),
    ]


@asynccontextmanager
async def open_pipeline(settings: Settings) -> AsyncIterator[JobsPipeline]:
    """
    Build the process-wide pipeline: one HTTP client, one cache store.
    Both are closed when the context exits.
    """
    client = open_client()
    documents = SqlDocumentStore.from_url(settings.database_url)
    try:
        await documents.create_tables()
        aggregator = Aggregator(build_sources(client, settings))
        yield JobsPipeline(aggregator, ChunkedCacheStore(documents, settings.chunk_size))
    finally:
        await client.aclose()
        await documents.close()
