# src/remotejobs/pipeline/normalize.py
"""
Helpers that turn each source's messy fields into our normalized Job fields.

Sources disagree on almost everything: dates come as RFC 822 strings, ISO
strings or unix seconds; descriptions come as HTML with half-escaped entities;
some feeds have no ids at all. The adapters stay small by routing every field
through one of these functions.
"""

from __future__ import annotations

import hashlib
import re
from datetime import datetime, timezone
from email.utils import format_datetime, parsedate_to_datetime
from typing import Optional, Tuple

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# a "<" only opens a tag when a name, "/", "!" or "?" follows it
_TAG_RE = re.compile(r"<(?:[/?]?[A-Za-z]|!)[\s\S]*?>")
_SPACES_RE = re.compile(r"[ \t\r\f\v]+")
_BLANK_LINES_RE = re.compile(r"\n\s*\n+")
_IMAGE_RE = re.compile(
    r"(?:https?:)?//[^\"'\s<>()]+?\.(?:png|jpe?g|gif|svg|webp)\b",
    re.IGNORECASE,
)

# Only the entities job feeds actually emit; everything else is left alone.
_ENTITIES: Tuple[Tuple[str, str], ...] = (
    ("&amp;", "&"),
    ("&#8211;", "-"),
    ("&#8212;", "-"),
    ("&ndash;", "-"),
    ("&mdash;", "-"),
    ("&rsquo;", "'"),
    ("&lsquo;", "'"),
    ("&#8217;", "'"),
    ("&#8216;", "'"),
    ("&#039;", "'"),
    ("&#39;", "'"),
    ("&ldquo;", '"'),
    ("&rdquo;", '"'),
    ("&#8220;", '"'),
    ("&#8221;", '"'),
    ("&quot;", '"'),
    ("&nbsp;", " "),
)


# ---- Dates ----------------------------------------------------------------------

def parse_timestamp(value) -> Optional[datetime]:
    """
    Parse a source date into an aware UTC datetime, or None.

    Accepts RFC 822/1123 strings ("Tue, 15 Nov 1994 08:12:31 GMT"), ISO-8601
    strings ("2025-09-26T07:20:13Z"), unix seconds (int, float or digit string)
    and datetime objects. Digit strings shorter than nine digits are not epochs:
    eight digits are an ISO basic date ("20240305"). Naive values are taken
    to be UTC.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        try:
            parsed = datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        digits = text.isascii() and text.isdigit()
        if digits and len(text) >= 9:
            return parse_timestamp(int(text))
        parsed = _basic_date(text) if digits else _parse_text(text)
        if parsed is None:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _basic_date(text: str) -> Optional[datetime]:
    if len(text) != 8:
        return None
    try:
        return datetime.strptime(text, "%Y%m%d")
    except ValueError:
        return None


def _parse_text(text: str) -> Optional[datetime]:
    iso = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
    try:
        return datetime.fromisoformat(iso)
    except ValueError:
        pass
    try:
        return parsedate_to_datetime(text)
    except (TypeError, ValueError, IndexError):
        return None


def to_utc_string(value) -> Optional[str]:
    """Render any accepted date input as RFC 1123 UTC text, or None."""
    parsed = parse_timestamp(value)
    if parsed is None:
        return None
    return format_datetime(parsed, usegmt=True)


def sort_key(date_text: str) -> datetime:
    """Sort key for Job.date; unparseable dates sort as the epoch (oldest)."""
    return parse_timestamp(date_text) or EPOCH


# ---- Text -----------------------------------------------------------------------

def normalize_entities(text: str) -> str:
    for entity, replacement in _ENTITIES:
        text = text.replace(entity, replacement)
    return text


def clean_html(text: Optional[str]) -> str:
    """Strip tags and the common entities from an HTML fragment."""
    if not text:
        return ""
    text = _TAG_RE.sub(" ", text)
    text = normalize_entities(text)
    text = _SPACES_RE.sub(" ", text)
    text = _BLANK_LINES_RE.sub("\n\n", text)
    return "\n".join(line.strip() for line in text.split("\n")).strip()


def find_image(html: Optional[str], fallback: str) -> str:
    """First image URL found in an HTML fragment, else `fallback`."""
    if html:
        match = _IMAGE_RE.search(html)
        if match:
            uri = match.group(0)
            return "https:" + uri if uri.startswith("//") else uri
    return fallback


# ---- Identity -------------------------------------------------------------------

def listing_id(source: str, url: str) -> str:
    """
    Deterministic id for sources without one: `<source>-<sha1(url)[:16]>`.

    The source prefix keeps two sources that link the same posting apart.
    """
    digest = hashlib.sha1(url.strip().encode("utf-8")).hexdigest()[:16]
    return f"{source}-{digest}"


def split_company_first(title: str, sep: str = ":") -> Tuple[str, str]:
    """'Acme: Backend Engineer' -> ('Acme', 'Backend Engineer')."""
    company, found, position = title.partition(sep)
    if not found:
        return "", title.strip()
    return company.strip(), position.strip()


def split_position_first(title: str, sep: str = " at ") -> Tuple[str, str]:
    """'Backend Engineer at Acme' -> ('Acme', 'Backend Engineer')."""
    position, found, company = title.rpartition(sep)
    if not found:
        return "", title.strip()
    return company.strip(), position.strip()
