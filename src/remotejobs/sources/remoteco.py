# src/remotejobs/sources/remoteco.py
"""Remote.co job feed: one feed, titles read "Position at Company"."""

from __future__ import annotations

from typing import Tuple

from remotejobs.pipeline.normalize import split_position_first
from remotejobs.sources.rss import FeedSource

REMOTECO_FEED = "https://remote.co/remote-jobs/feed/"
REMOTECO_LOGO = "https://remote.co/wp-content/uploads/2017/03/Remote-Co-Logo.png"


class RemoteCoSource(FeedSource):
    name = "remoteco"
    default_logo = REMOTECO_LOGO

    def __init__(self, client, *, feed_url: str = REMOTECO_FEED, **kwargs):
        super().__init__(client, feed_urls=(feed_url,), **kwargs)

    def split_title(self, title: str) -> Tuple[str, str]:
        return split_position_first(title, " at ")
