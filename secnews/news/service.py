"""Application service: the cached aggregation pipeline.

One NewsService is built at startup and shared by the HTTP layer and the
CLI. Cache keys follow the request shape.
"""

import logging
from typing import Optional

from ..config.settings import Settings
from ..utils.cache import CacheStats, ResponseCache
from .aggregator import NewsAggregator
from .fetcher import SourceFetcher
from .models import AggregateResult, Source, SourceFetchResult
from .registry import SourceRegistry, load_registry

logger = logging.getLogger(__name__)

ALL_NEWS_KEY = "news:all"


def source_news_key(source_id: str) -> str:
    return f"news:source:{source_id}"


class NewsService:
    """Fronts the aggregator with the response cache."""

    def __init__(
        self,
        registry: SourceRegistry,
        aggregator: NewsAggregator,
        cache: ResponseCache,
        cache_ttl: int = 900,
    ):
        self.registry = registry
        self.aggregator = aggregator
        self.cache = cache
        self.cache_ttl = cache_ttl

    async def get_all_news(self) -> AggregateResult:
        return await self.cache.get_or_compute(
            ALL_NEWS_KEY, self.cache_ttl, self.aggregator.fetch_all
        )

    async def get_source_news(self, source_id: str) -> SourceFetchResult:
        """
        Articles from one source.

        Failed fetches are returned but not cached, so the next request
        tries again.

        Raises:
            SourceNotFoundError, SourceDisabledError
        """
        return await self.cache.get_or_compute(
            source_news_key(source_id),
            self.cache_ttl,
            lambda: self.aggregator.fetch_one(source_id),
            cache_if=lambda result: result.success,
        )

    def list_sources(self) -> list[Source]:
        return self.registry.list_enabled()

    def get_source(self, source_id: str) -> Source:
        return self.registry.get_by_id(source_id)

    def cache_stats(self) -> CacheStats:
        return self.cache.stats()

    def cache_keys(self) -> list[str]:
        return self.cache.keys()

    def flush_cache(self) -> None:
        self.cache.flush()


def build_service(settings: Settings, registry: Optional[SourceRegistry] = None) -> NewsService:
    """Wire registry, fetcher, aggregator and cache from settings."""
    if registry is None:
        registry = load_registry(settings.sources_file)

    fetcher = SourceFetcher(timeout=settings.fetch_timeout)
    return NewsService(
        registry=registry,
        aggregator=NewsAggregator(registry, fetcher),
        cache=ResponseCache(default_ttl=settings.cache_ttl),
        cache_ttl=settings.cache_ttl,
    )
