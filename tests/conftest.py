import asyncio
from datetime import datetime, timezone
from typing import Optional

import pytest

from secnews.news.models import Article, Source, SourceCategory, SourceFetchResult
from secnews.news.registry import SourceRegistry


def make_source(
    source_id: str = "example",
    enabled: bool = True,
    category: SourceCategory = SourceCategory.NEWS,
    default_image: Optional[str] = None,
) -> Source:
    return Source(
        id=source_id,
        name=source_id.title(),
        feed_url=f"https://{source_id}.test/feed",
        website_url=f"https://{source_id}.test",
        description=f"{source_id} feed",
        category=category,
        enabled=enabled,
        default_image=default_image,
    )


def make_article(source_id: str, n: int, published_at: datetime) -> Article:
    return Article(
        id=f"{source_id}-{n}",
        title=f"{source_id} story {n}",
        description="",
        source_id=source_id,
        source_name=source_id.title(),
        url=f"https://{source_id}.test/{n}",
        image_url="https://img.test/x.png",
        published_at=published_at,
    )


def rss_item(
    title: str,
    link: str,
    pub_date: str,
    description: str = "Body",
    extra: str = "",
) -> str:
    return f"""
    <item>
      <title>{title}</title>
      <link>{link}</link>
      <pubDate>{pub_date}</pubDate>
      <description>{description}</description>
      {extra}
    </item>"""


def rss_feed(*items: str) -> bytes:
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:dc="http://purl.org/dc/elements/1.1/">
  <channel>
    <title>Test feed</title>
    <link>https://example.test</link>
    <description>Test</description>
    {''.join(items)}
  </channel>
</rss>""".encode()


def utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class FakeFetcher:
    """Returns canned results per source id; raises for ids in ``explode``."""

    def __init__(self, articles=None, fail=(), explode=(), delays=None):
        self.articles = articles or {}
        self.fail = set(fail)
        self.explode = set(explode)
        self.delays = delays or {}
        self.calls: list[str] = []

    async def fetch(self, source: Source) -> SourceFetchResult:
        self.calls.append(source.id)
        await asyncio.sleep(self.delays.get(source.id, 0))
        if source.id in self.explode:
            raise RuntimeError(f"boom in {source.id}")
        if source.id in self.fail:
            return SourceFetchResult(
                source_id=source.id,
                success=False,
                error="unreachable",
                fetched_at=datetime.now(timezone.utc),
            )
        return SourceFetchResult(
            source_id=source.id,
            success=True,
            articles=tuple(self.articles.get(source.id, ())),
            fetched_at=datetime.now(timezone.utc),
        )


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def registry() -> SourceRegistry:
    return SourceRegistry(
        [
            make_source("alpha"),
            make_source("bravo"),
            make_source("retired", enabled=False),
            make_source("charlie", category=SourceCategory.RESEARCH),
        ]
    )
