"""Data models for sources, raw feed entries and normalized articles."""

import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional

_TAG = re.compile(r"<[^>]+>")


def _plain_text(html: Optional[str]) -> Optional[str]:
    if not html:
        return None
    return _TAG.sub("", html).strip() or None


class SourceCategory(str, Enum):
    NEWS = "news"
    ANALYSIS = "analysis"
    THREATS = "threats"
    RESEARCH = "research"


@dataclass(frozen=True)
class Source:
    """A syndication feed provider from sources.yaml."""

    id: str
    name: str
    feed_url: str
    website_url: str
    description: str
    category: SourceCategory
    enabled: bool = True
    default_image: Optional[str] = None


@dataclass(frozen=True)
class RawFeedEntry:
    """
    One entry as emitted by the feed parser. Any field may be missing.

    ``pub_date`` / ``iso_date`` hold the date text as it appeared in the feed;
    the ``*_parsed`` fields hold feedparser's UTC ``struct_time`` for them, or
    None when feedparser could not read the text.
    """

    title: Optional[str] = None
    link: Optional[str] = None
    pub_date: Optional[str] = None
    iso_date: Optional[str] = None
    pub_date_parsed: Optional[tuple] = None
    iso_date_parsed: Optional[tuple] = None
    content_snippet: Optional[str] = None
    summary: Optional[str] = None
    content: Optional[str] = None  # rendered HTML body (RSS <description>)
    content_encoded: Optional[str] = None  # <content:encoded> / Atom <content>
    enclosure_url: Optional[str] = None
    media_url: Optional[str] = None
    creator: Optional[str] = None
    author: Optional[str] = None
    categories: tuple[str, ...] = ()

    @classmethod
    def from_feedparser(cls, entry: Any) -> "RawFeedEntry":
        """Build from a feedparser entry (a FeedParserDict)."""
        enclosure_url = None
        for enclosure in entry.get("enclosures") or []:
            if enclosure.get("href"):
                enclosure_url = enclosure["href"]
                break

        media_url = None
        for media in (entry.get("media_content") or []) + (entry.get("media_thumbnail") or []):
            if media.get("url"):
                media_url = media["url"]
                break

        content_encoded = None
        contents = entry.get("content") or []
        if contents:
            content_encoded = contents[0].get("value")

        author_detail = entry.get("author_detail") or {}
        tags = entry.get("tags") or []

        # Membership checks skip feedparser's updated -> published alias
        updated = entry.get("updated") if "updated" in entry else None
        updated_parsed = entry.get("updated_parsed") if "updated_parsed" in entry else None

        return cls(
            title=entry.get("title"),
            link=entry.get("link"),
            pub_date=entry.get("published"),
            iso_date=updated,
            pub_date_parsed=entry.get("published_parsed"),
            iso_date_parsed=updated_parsed,
            content_snippet=_plain_text(entry.get("description")),
            summary=entry.get("summary"),
            content=entry.get("description"),
            content_encoded=content_encoded,
            enclosure_url=enclosure_url,
            media_url=media_url,
            creator=author_detail.get("name"),
            author=entry.get("author"),
            categories=tuple(t["term"] for t in tags if t.get("term")),
        )


@dataclass(frozen=True)
class Article:
    """Canonical article normalized from one feed entry."""

    id: str
    title: str
    description: str
    source_id: str
    source_name: str
    url: str
    image_url: str
    published_at: datetime
    author: Optional[str] = None
    categories: tuple[str, ...] = ()


@dataclass(frozen=True)
class SourceFetchResult:
    """Outcome of one fetch attempt against one source."""

    source_id: str
    success: bool
    fetched_at: datetime
    articles: tuple[Article, ...] = ()
    error: Optional[str] = None


@dataclass(frozen=True)
class AggregateSummary:
    total_articles: int
    successful_sources: int
    failed_sources: int
    fetched_at: datetime


@dataclass(frozen=True)
class AggregateResult:
    """Merged, sorted articles from every enabled source."""

    articles: tuple[Article, ...]
    source_results: tuple[SourceFetchResult, ...]
    summary: AggregateSummary
