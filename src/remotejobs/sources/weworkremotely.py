# src/remotejobs/sources/weworkremotely.py
"""
We Work Remotely category feeds.

Item titles read "Company: Position". The feeds carry no categories, so the
tag comes from the category slug in the feed URL:
.../remote-programming-jobs.rss -> "remote programming".
"""

from __future__ import annotations

from typing import Tuple

from remotejobs.models import DEFAULT_TAG
from remotejobs.pipeline.feeds import FeedItem
from remotejobs.pipeline.normalize import split_company_first
from remotejobs.sources.rss import FeedSource

WWR_BASE = "https://weworkremotely.com/categories/"
WWR_LOGO = (
    "https://weworkremotely.com/assets/"
    "wwr-social-fd7d545c56e975b65fae9cf49346aac95a8cdb4774b2c269af89ac8993141380.png"
)
WWR_FEEDS = tuple(
    WWR_BASE + slug + ".rss"
    for slug in (
        "remote-programming-jobs",
        "remote-customer-support-jobs",
        "remote-product-jobs",
        "remote-sales-and-marketing-jobs",
        "remote-copywriting-jobs",
        "remote-design-jobs",
        "remote-jobs",
        "remote-devops-sysadmin-jobs",
    )
)


def category_tag(feed_url: str) -> str:
    slug = feed_url.rstrip("/").rsplit("/", 1)[-1].split(".", 1)[0]
    words = slug.split("-")[:-1]  # drop the trailing "jobs"
    return " ".join(words) or DEFAULT_TAG


class WeWorkRemotelySource(FeedSource):
    name = "weworkremotely"
    default_logo = WWR_LOGO

    def __init__(self, client, *, feed_urls=WWR_FEEDS, **kwargs):
        super().__init__(client, feed_urls=feed_urls, **kwargs)

    def split_title(self, title: str) -> Tuple[str, str]:
        return split_company_first(title, ":")

    def tags_for(self, item: FeedItem, feed_url: str) -> Tuple[str, ...]:
        return (category_tag(feed_url),)
