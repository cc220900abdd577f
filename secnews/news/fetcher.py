"""RSS feed fetching for a single news source.

Retrieves one source's feed document over HTTP, parses it with feedparser
and normalizes every entry. Failures never escape: they come back as a
SourceFetchResult with ``success=False``.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

import feedparser
import httpx

from .errors import NetworkError, ParseError
from .models import Article, RawFeedEntry, Source, SourceFetchResult
from .normalizer import normalize_entry

logger = logging.getLogger(__name__)

_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "application/rss+xml, application/atom+xml, application/xml;q=0.9, */*;q=0.8",
}


class SourceFetcher:
    """
    Fetches and normalizes the feed of one source.

    Each call makes a single outbound request; there are no retries. The
    request and the parse together are bounded by ``timeout`` seconds.
    """

    def __init__(
        self,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize source fetcher.

        Args:
            timeout: Seconds allowed for download plus parse
            transport: Optional httpx transport (tests inject a MockTransport)
        """
        self.timeout = timeout
        self._transport = transport

    async def fetch(self, source: Source) -> SourceFetchResult:
        """
        Fetch one source's feed.

        Returns:
            SourceFetchResult; never raises
        """
        logger.info("[FETCHER] Fetching feed from %s...", source.name)

        try:
            articles = await asyncio.wait_for(self._fetch_articles(source), timeout=self.timeout)
        except asyncio.TimeoutError:
            return self._failure(source, f"Timed out after {self.timeout:g}s")
        except (NetworkError, ParseError) as e:
            return self._failure(source, str(e))
        except Exception as e:
            logger.exception("[FETCHER] Unexpected error fetching %s", source.name)
            return self._failure(source, str(e) or type(e).__name__)

        logger.info("[FETCHER] Fetched %d articles from %s", len(articles), source.name)
        return SourceFetchResult(
            source_id=source.id,
            success=True,
            articles=tuple(articles),
            fetched_at=datetime.now(timezone.utc),
        )

    async def _fetch_articles(self, source: Source) -> list[Article]:
        content = await self._download(source.feed_url)

        # feedparser is synchronous; keep it off the event loop
        loop = asyncio.get_running_loop()
        feed = await loop.run_in_executor(None, feedparser.parse, content)

        if feed.get("bozo") and not feed.entries:
            reason = feed.get("bozo_exception")
            raise ParseError(f"Malformed feed from {source.feed_url}: {reason}")

        now = datetime.now(timezone.utc)
        articles = []
        for entry in feed.entries:
            article = normalize_entry(RawFeedEntry.from_feedparser(entry), source, now=now)
            if article is None:
                logger.debug("[FETCHER] Skipping entry without link from %s", source.name)
                continue
            articles.append(article)

        return articles

    async def _download(self, url: str) -> bytes:
        try:
            async with httpx.AsyncClient(
                follow_redirects=True,
                timeout=self.timeout,
                headers=_HEADERS,
                transport=self._transport,
            ) as client:
                resp = await client.get(url)
                resp.raise_for_status()
                return resp.content
        except httpx.HTTPStatusError as e:
            raise NetworkError(f"Status code {e.response.status_code} from {url}") from e
        except httpx.TimeoutException as e:
            raise NetworkError(f"Timed out fetching {url}") from e
        except httpx.HTTPError as e:
            raise NetworkError(f"{type(e).__name__} fetching {url}: {e}") from e

    def _failure(self, source: Source, error: str) -> SourceFetchResult:
        logger.error("[FETCHER] Error fetching feed from %s: %s", source.name, error)
        return SourceFetchResult(
            source_id=source.id,
            success=False,
            error=error,
            fetched_at=datetime.now(timezone.utc),
        )
