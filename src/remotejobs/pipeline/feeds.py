# src/remotejobs/pipeline/feeds.py
"""
Tolerant RSS item extraction.

Job board feeds are often not well-formed XML: unescaped ampersands, HTML
pasted straight into <description>, truncated bodies behind anti-bot pages.
A strict parser rejects the whole document on the first error, so items are
pulled out with patterns instead and each item stands or falls on its own.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from remotejobs.pipeline.normalize import clean_html

LOGGER = logging.getLogger(__name__)

# An item ends at its closing tag, or at the next item / end of channel when
# the closing tag is missing.
_ITEM_RE = re.compile(
    r"<item\b[^>]*>([\s\S]*?)(?=</item>|<item\b|</channel>|\Z)",
    re.IGNORECASE,
)
_CDATA_RE = re.compile(r"<!\[CDATA\[([\s\S]*?)\]\]>")
_LINK_HREF_RE = re.compile(r"<link\b[^>]*\bhref=[\"']([^\"']+)[\"']", re.IGNORECASE)

_XML_ESCAPES = (("&lt;", "<"), ("&gt;", ">"), ("&quot;", '"'), ("&apos;", "'"))


@dataclass(frozen=True)
class FeedItem:
    title: str
    link: str
    pub_date: str
    description: str  # HTML, XML escaping undone
    categories: Tuple[str, ...] = ()


def _unwrap(raw: str) -> str:
    """Undo CDATA wrapping, or XML escaping when the text was not wrapped."""
    if _CDATA_RE.search(raw):
        return _CDATA_RE.sub(lambda m: m.group(1), raw).strip()
    for escaped, plain in _XML_ESCAPES:
        raw = raw.replace(escaped, plain)
    return raw.strip()


def _field(block: str, name: str) -> Optional[str]:
    tag = re.escape(name)
    match = re.search(rf"<{tag}\b[^>]*>([\s\S]*?)</{tag}\s*>", block, re.IGNORECASE)
    if match is None:
        return None
    return _unwrap(match.group(1))


def _fields(block: str, name: str) -> List[str]:
    tag = re.escape(name)
    found = re.findall(rf"<{tag}\b[^>]*>([\s\S]*?)</{tag}\s*>", block, re.IGNORECASE)
    return [_unwrap(value) for value in found]


def _link(block: str) -> str:
    link = _field(block, "link")
    if not link:
        match = _LINK_HREF_RE.search(block)
        link = match.group(1) if match else ""
    return link.replace("&amp;", "&").strip()


def parse_items(body: str) -> List[FeedItem]:
    """
    Return every usable <item> of a feed body, in document order.

    Items without a title or a link are skipped; the rest of the feed is
    still processed.
    """
    items: List[FeedItem] = []
    for index, match in enumerate(_ITEM_RE.finditer(body or "")):
        block = match.group(1)
        title = clean_html(_field(block, "title"))
        link = _link(block)
        if not title or not link:
            LOGGER.debug("skipping feed item %d: missing %s", index, "title" if not title else "link")
            continue

        description = _field(block, "content:encoded") or _field(block, "description") or ""
        categories = tuple(c for c in (clean_html(v) for v in _fields(block, "category")) if c)
        items.append(FeedItem(
            title=title,
            link=link,
            pub_date=_field(block, "pubDate") or "",
            description=description,
            categories=categories,
        ))
    return items
