# src/remotejobs/sources/rss.py
"""
Shared machinery for RSS-backed sources.

A feed source owns one or more feed URLs. All of them are fetched
concurrently; a feed that fails is logged and skipped, and the source only
fails as a whole when none of its feeds could be read.
"""

from __future__ import annotations

import asyncio
import logging
from abc import abstractmethod
from typing import List, Optional, Sequence, Tuple

from remotejobs.clients.http import get_text
from remotejobs.errors import SourceUnavailable
from remotejobs.models import DEFAULT_TAG, Job, JobImage
from remotejobs.pipeline.feeds import FeedItem, parse_items
from remotejobs.pipeline.normalize import clean_html, find_image, listing_id, to_utc_string
from remotejobs.sources.base import JobSource

LOGGER = logging.getLogger(__name__)


class FeedSource(JobSource):
    def __init__(self, client, *, feed_urls: Sequence[str], **kwargs):
        super().__init__(client, **kwargs)
        # the same category is sometimes listed twice; fetch it once
        self.feed_urls: Tuple[str, ...] = tuple(dict.fromkeys(u for u in feed_urls if u))

    @abstractmethod
    def split_title(self, title: str) -> Tuple[str, str]:
        """Return (company, position) for a feed item title."""

    def tags_for(self, item: FeedItem, feed_url: str) -> Tuple[str, ...]:
        return item.categories or (DEFAULT_TAG,)

    async def _fetch(self) -> List[Job]:
        if not self.feed_urls:
            return []
        results = await asyncio.gather(*(self._fetch_guarded(url) for url in self.feed_urls))

        jobs: List[Job] = []
        errors: List[Exception] = []
        for url, (feed_jobs, error) in zip(self.feed_urls, results):
            if error is not None:
                LOGGER.warning("%s: feed %s failed: %s", self.name, url, error)
                errors.append(error)
                continue
            jobs.extend(feed_jobs)

        if len(errors) == len(self.feed_urls):
            raise SourceUnavailable(self.name, errors[-1])
        return jobs

    async def _fetch_guarded(self, url: str) -> Tuple[List[Job], Optional[Exception]]:
        try:
            return await self.fetch_feed(url), None
        except Exception as exc:
            return [], exc

    async def fetch_feed(self, url: str) -> List[Job]:
        body = await get_text(
            self.client,
            url,
            label=f"{self.name} {url}",
            max_attempts=self.max_attempts,
            sleep=self.sleep,
        )
        return self.normalize(body, url)

    def normalize(self, body: str, feed_url: str) -> List[Job]:
        out: List[Job] = []
        for index, item in enumerate(parse_items(body)):
            company, position = self.split_title(item.title)
            job = self.build(
                index,
                id=listing_id(self.name, item.link),
                company=company,
                position=position,
                date=to_utc_string(item.pub_date),
                image=JobImage(uri=find_image(item.description, self.default_logo)),
                description=clean_html(item.description),
                url=item.link,
                tags=self.tags_for(item, feed_url),
            )
            if job is not None:
                out.append(job)
        return out
