"""Normalize raw feed entries into canonical articles.

Each output field is derived through an ordered chain of (predicate,
extractor) pairs; the first extractor that yields a value wins.
"""

import base64
import re
from datetime import datetime, timezone
from typing import Callable, Optional

from .models import Article, RawFeedEntry, Source

DESCRIPTION_LIMIT = 300
ELLIPSIS = "..."
ARTICLE_ID_LENGTH = 32

DEFAULT_IMAGE = "https://images.unsplash.com/photo-1550751827-4bd374c3f58b?w=800&h=400&fit=crop"

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_IMG_SRC = re.compile(r'<img[^>]+src="([^">]+)"')
_TAG = re.compile(r"<[^>]*>")

# Only this fixed set is unescaped, in this order.
_ENTITIES = (
    ("&nbsp;", " "),
    ("&amp;", "&"),
    ("&lt;", "<"),
    ("&gt;", ">"),
)

Step = tuple[Callable[[RawFeedEntry, Source], bool], Callable[[RawFeedEntry, Source], Optional[str]]]


def _first_img_src(html: str) -> Optional[str]:
    match = _IMG_SRC.search(html)
    return match.group(1) if match else None


IMAGE_CHAIN: list[Step] = [
    (lambda e, s: bool(e.enclosure_url), lambda e, s: e.enclosure_url),
    (lambda e, s: bool(e.media_url), lambda e, s: e.media_url),
    (lambda e, s: bool(e.content) and "<img" in e.content, lambda e, s: _first_img_src(e.content)),
    (
        lambda e, s: bool(e.content_encoded) and "<img" in e.content_encoded,
        lambda e, s: _first_img_src(e.content_encoded),
    ),
    (lambda e, s: bool(s.default_image), lambda e, s: s.default_image),
    (lambda e, s: True, lambda e, s: DEFAULT_IMAGE),
]

DESCRIPTION_CHAIN: list[Step] = [
    (lambda e, s: bool(e.content_snippet), lambda e, s: e.content_snippet),
    (lambda e, s: bool(e.summary), lambda e, s: e.summary),
    (lambda e, s: bool(e.content), lambda e, s: e.content),
]

AUTHOR_CHAIN: list[Step] = [
    (lambda e, s: bool(e.creator), lambda e, s: e.creator),
    (lambda e, s: bool(e.author), lambda e, s: e.author),
]


def run_chain(chain: list[Step], entry: RawFeedEntry, source: Source) -> Optional[str]:
    """Return the first non-empty extractor result whose predicate matches."""
    for predicate, extractor in chain:
        if predicate(entry, source):
            value = extractor(entry, source)
            if value:
                return value
    return None


def generate_article_id(url: str) -> str:
    """Stable id for an article URL: base64 of the URL, truncated."""
    return base64.b64encode(url.encode("utf-8")).decode("ascii")[:ARTICLE_ID_LENGTH]


def clean_description(text: str) -> str:
    """Strip markup, unescape basic entities and truncate."""
    clean = _TAG.sub("", text)
    for entity, replacement in _ENTITIES:
        clean = clean.replace(entity, replacement)
    clean = clean.strip()

    if len(clean) > DESCRIPTION_LIMIT:
        clean = clean[:DESCRIPTION_LIMIT] + ELLIPSIS

    return clean


def struct_to_datetime(parsed: Optional[tuple]) -> Optional[datetime]:
    """Convert a feedparser ``*_parsed`` value (UTC struct_time) to an aware datetime."""
    if not parsed:
        return None
    try:
        dt = datetime(*parsed[:6])
    except (TypeError, ValueError, OverflowError):
        return None
    return dt.replace(tzinfo=timezone.utc)


def resolve_published_at(entry: RawFeedEntry, now: datetime) -> datetime:
    """
    Pick the publication time for an entry.

    A date field that is present but unreadable resolves to the epoch so the
    article sorts last; an entry with no date at all gets ``now``.
    """
    if not (entry.pub_date or entry.pub_date_parsed or entry.iso_date or entry.iso_date_parsed):
        return now

    for parsed in (entry.pub_date_parsed, entry.iso_date_parsed):
        dt = struct_to_datetime(parsed)
        if dt is not None:
            return dt
    return EPOCH


def normalize_entry(
    entry: RawFeedEntry,
    source: Source,
    now: Optional[datetime] = None,
) -> Optional[Article]:
    """
    Convert one raw entry into an Article.

    Args:
        entry: Raw entry from the feed parser
        source: Source the entry came from
        now: Normalization instant used when the entry carries no date

    Returns:
        Article, or None if the entry has no link to derive an id from
    """
    if not entry.link:
        return None

    if now is None:
        now = datetime.now(timezone.utc)

    return Article(
        id=generate_article_id(entry.link),
        title=(entry.title or "").strip(),
        description=clean_description(run_chain(DESCRIPTION_CHAIN, entry, source) or ""),
        source_id=source.id,
        source_name=source.name,
        url=entry.link,
        image_url=run_chain(IMAGE_CHAIN, entry, source),
        published_at=resolve_published_at(entry, now),
        author=run_chain(AUTHOR_CHAIN, entry, source),
        categories=tuple(entry.categories or ()),
    )
