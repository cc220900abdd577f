"""Pydantic response models for the web API.

Field names are snake_case in Python and camelCase on the wire.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..news.models import AggregateSummary, Article, Source, SourceFetchResult


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ArticleData(ApiModel):
    """One normalized article."""

    id: str
    title: str
    description: str
    # The web client filters on ``source``
    source_id: str = Field(serialization_alias="source", validation_alias="source")
    source_name: str
    url: str
    image_url: str
    published_at: datetime
    author: Optional[str] = None
    categories: list[str] = []

    @classmethod
    def from_article(cls, article: Article) -> "ArticleData":
        return cls(
            id=article.id,
            title=article.title,
            description=article.description,
            source=article.source_id,
            source_name=article.source_name,
            url=article.url,
            image_url=article.image_url,
            published_at=article.published_at,
            author=article.author,
            categories=list(article.categories),
        )


class SourceData(ApiModel):
    """Public view of a configured source."""

    id: str
    name: str
    website: str
    description: str
    category: str
    enabled: Optional[bool] = None

    @classmethod
    def from_source(cls, source: Source, include_enabled: bool = False) -> "SourceData":
        return cls(
            id=source.id,
            name=source.name,
            website=source.website_url,
            description=source.description,
            category=source.category.value,
            enabled=source.enabled if include_enabled else None,
        )


class SummaryMeta(ApiModel):
    total_articles: int
    successful_sources: int
    failed_sources: int
    fetched_at: datetime

    @classmethod
    def from_summary(cls, summary: AggregateSummary) -> "SummaryMeta":
        return cls(
            total_articles=summary.total_articles,
            successful_sources=summary.successful_sources,
            failed_sources=summary.failed_sources,
            fetched_at=summary.fetched_at,
        )


class SourceNewsMeta(ApiModel):
    source: str
    count: int
    fetched_at: datetime

    @classmethod
    def from_result(cls, result: SourceFetchResult) -> "SourceNewsMeta":
        return cls(
            source=result.source_id,
            count=len(result.articles),
            fetched_at=result.fetched_at,
        )


class CountMeta(ApiModel):
    count: int


class NewsResponse(ApiModel):
    """Response for /api/news."""

    success: bool = True
    data: list[ArticleData]
    meta: SummaryMeta


class SourceNewsResponse(ApiModel):
    """Response for /api/news/source/{source_id}."""

    success: bool = True
    data: list[ArticleData]
    meta: SourceNewsMeta


class SourcesResponse(ApiModel):
    success: bool = True
    data: list[SourceData]
    meta: CountMeta


class SourceResponse(ApiModel):
    success: bool = True
    data: SourceData


class CacheResponse(ApiModel):
    success: bool = True
    data: Any = None
    message: Optional[str] = None


class ErrorResponse(ApiModel):
    """Failure envelope shared by every endpoint."""

    success: bool = False
    error: str
    message: str
