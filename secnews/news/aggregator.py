"""Fan-out aggregation across every enabled source."""

import asyncio
import logging
from datetime import datetime, timezone

from .errors import SourceDisabledError
from .fetcher import SourceFetcher
from .models import AggregateResult, AggregateSummary, Article, SourceFetchResult
from .registry import SourceRegistry

logger = logging.getLogger(__name__)


def published_sort_key(article: Article) -> float:
    """Seconds since the epoch; anything unreadable counts as the epoch."""
    published = article.published_at
    try:
        if published.tzinfo is None:
            published = published.replace(tzinfo=timezone.utc)
        return published.timestamp()
    except (AttributeError, TypeError, ValueError, OverflowError, OSError):
        return 0.0


class NewsAggregator:
    """
    Fetches all enabled sources concurrently and merges their articles.

    A failing source only shows up as a failed entry in ``source_results``;
    it never aborts or delays the other sources.
    """

    def __init__(self, registry: SourceRegistry, fetcher: SourceFetcher):
        self.registry = registry
        self.fetcher = fetcher

    async def fetch_all(self) -> AggregateResult:
        """
        Fetch every enabled source concurrently.

        Returns:
            AggregateResult with articles sorted newest first
        """
        sources = self.registry.list_enabled()
        logger.info("[AGGREGATOR] Fetching feeds from %d sources...", len(sources))

        # One task per source, wait for all of them
        outcomes = await asyncio.gather(
            *(self.fetcher.fetch(source) for source in sources),
            return_exceptions=True,
        )

        results: list[SourceFetchResult] = []
        for source, outcome in zip(sources, outcomes):
            if isinstance(outcome, SourceFetchResult):
                results.append(outcome)
            else:
                logger.error("[AGGREGATOR] Fetch task for %s raised: %r", source.id, outcome)
                results.append(
                    SourceFetchResult(
                        source_id=source.id,
                        success=False,
                        error=str(outcome) or type(outcome).__name__,
                        fetched_at=datetime.now(timezone.utc),
                    )
                )

        articles = [a for r in results if r.success for a in r.articles]
        # sorted() is stable with reverse=True, so ties keep merge order
        articles = sorted(articles, key=published_sort_key, reverse=True)

        successful = sum(1 for r in results if r.success)
        failed = len(results) - successful

        logger.info(
            "[AGGREGATOR] Feed fetch complete: %d successful, %d failed, %d total articles",
            successful,
            failed,
            len(articles),
        )

        return AggregateResult(
            articles=tuple(articles),
            source_results=tuple(results),
            summary=AggregateSummary(
                total_articles=len(articles),
                successful_sources=successful,
                failed_sources=failed,
                fetched_at=datetime.now(timezone.utc),
            ),
        )

    async def fetch_one(self, source_id: str) -> SourceFetchResult:
        """
        Fetch a single source, bypassing the fan-out.

        Raises:
            SourceNotFoundError: unknown source id
            SourceDisabledError: source exists but is disabled
        """
        source = self.registry.get_by_id(source_id)
        if not source.enabled:
            raise SourceDisabledError(source_id)
        return await self.fetcher.fetch(source)
