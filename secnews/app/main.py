"""FastAPI web application for the cybersecurity news aggregator."""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .models import (
    ArticleData,
    CacheResponse,
    CountMeta,
    ErrorResponse,
    NewsResponse,
    SourceData,
    SourceNewsMeta,
    SourceNewsResponse,
    SourceResponse,
    SourcesResponse,
    SummaryMeta,
)
from ..config.settings import Settings, settings as default_settings
from ..news.errors import SourceDisabledError, SourceNotFoundError
from ..news.service import NewsService, build_service

logger = logging.getLogger(__name__)


def _error(status_code: int, error: str, message: str) -> JSONResponse:
    body = ErrorResponse(error=error, message=message)
    return JSONResponse(status_code=status_code, content=body.model_dump(by_alias=True))


def get_service(request: Request) -> NewsService:
    return request.app.state.service


def sweep_interval(cfg: Settings) -> int:
    """Seconds between cache sweeps; never longer than an entry's lifetime."""
    return max(1, min(cfg.cache_check_period, cfg.cache_ttl))


def create_app(
    app_settings: Optional[Settings] = None,
    service: Optional[NewsService] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        app_settings: Settings to use (default: global settings)
        service: Prebuilt NewsService; built from settings at startup if omitted
    """
    cfg = app_settings or default_settings
    started_at = time.monotonic()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "service", None) is None:
            app.state.service = build_service(cfg)

        sweeper = asyncio.create_task(app.state.service.cache.run_sweeper(sweep_interval(cfg)))
        app.state.sweeper = sweeper

        logger.info("[API] CyberSec News Aggregator API (%s)", cfg.environment)
        logger.info("[API] Listening on http://%s:%d/api", cfg.host, cfg.port)
        try:
            yield
        finally:
            sweeper.cancel()
            try:
                await sweeper
            except asyncio.CancelledError:
                pass
            app.state.service.flush_cache()
            logger.info("[API] Shutdown complete")

    app = FastAPI(title="CyberSec News Aggregator", version="1.0.0", lifespan=lifespan)
    app.state.service = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        allow_credentials=True,
        max_age=86400,
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        client = request.client.host if request.client else "-"
        logger.info("[API] %s %s - %s", request.method, request.url.path, client)
        return await call_next(request)

    # ========================================================================
    # Error Handling
    # ========================================================================

    @app.exception_handler(SourceNotFoundError)
    async def source_not_found(request: Request, exc: SourceNotFoundError):
        return _error(404, str(exc), "Failed to fetch news from source")

    @app.exception_handler(SourceDisabledError)
    async def source_disabled(request: Request, exc: SourceDisabledError):
        return _error(500, str(exc), "Failed to fetch news from source")

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return _error(404, "Endpoint not found", f"The endpoint {request.url.path} does not exist")
        return _error(exc.status_code, "Request failed", str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        return _error(422, "Invalid request", str(exc))

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.exception("[API] Unhandled error on %s", request.url.path)
        message = str(exc) if cfg.is_development else "An unexpected error occurred"
        return _error(500, type(exc).__name__, message)

    # ========================================================================
    # Health & Index
    # ========================================================================

    @app.get("/api/health")
    async def health_check(service: NewsService = Depends(get_service)):
        """Health check with cache statistics."""
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime": round(time.monotonic() - started_at, 3),
            "environment": cfg.environment,
            "cache": service.cache_stats().to_dict(),
        }

    @app.get("/api")
    async def api_index():
        """List available endpoints."""
        return {
            "name": "CyberSec News Aggregator API",
            "version": app.version,
            "description": "REST API for aggregating cybersecurity news from multiple sources",
            "endpoints": {
                "health": {"method": "GET", "path": "/api/health", "description": "Check API health and status"},
                "allNews": {"method": "GET", "path": "/api/news", "description": "Get all news articles from all sources"},
                "sourceNews": {
                    "method": "GET",
                    "path": "/api/news/source/:sourceId",
                    "description": "Get news articles from a specific source",
                },
                "sources": {
                    "method": "GET",
                    "path": "/api/news/sources",
                    "description": "Get list of all available news sources",
                },
                "sourceInfo": {
                    "method": "GET",
                    "path": "/api/news/sources/:sourceId",
                    "description": "Get information about a specific source",
                },
            },
        }

    # ========================================================================
    # News Endpoints
    # ========================================================================

    @app.get("/api/news", response_model=NewsResponse)
    async def all_news(service: NewsService = Depends(get_service)):
        """Fetch all news articles from all enabled sources."""
        logger.info("[API] Fetching all news articles...")
        try:
            result = await service.get_all_news()
        except Exception as e:
            logger.exception("[API] Error fetching all news")
            return _error(500, "Failed to fetch news articles", str(e))

        return NewsResponse(
            data=[ArticleData.from_article(a) for a in result.articles],
            meta=SummaryMeta.from_summary(result.summary),
        )

    @app.get("/api/news/source/{source_id}", response_model=SourceNewsResponse)
    async def source_news(source_id: str, service: NewsService = Depends(get_service)):
        """Fetch news articles from one source."""
        logger.info("[API] Fetching news from source: %s", source_id)
        result = await service.get_source_news(source_id)

        if not result.success:
            return _error(500, f"Failed to fetch news from {source_id}", result.error or "Unknown error")

        return SourceNewsResponse(
            data=[ArticleData.from_article(a) for a in result.articles],
            meta=SourceNewsMeta.from_result(result),
        )

    @app.get(
        "/api/news/sources",
        response_model=SourcesResponse,
        response_model_exclude_none=True,
    )
    async def list_sources(service: NewsService = Depends(get_service)):
        """List enabled news sources."""
        sources = service.list_sources()
        return SourcesResponse(
            data=[SourceData.from_source(s) for s in sources],
            meta=CountMeta(count=len(sources)),
        )

    @app.get("/api/news/sources/{source_id}", response_model=SourceResponse)
    async def source_info(source_id: str, service: NewsService = Depends(get_service)):
        """Information about one source, enabled or not."""
        try:
            source = service.get_source(source_id)
        except SourceNotFoundError:
            return _error(404, "Source not found", f"No source found with ID: {source_id}")
        return SourceResponse(data=SourceData.from_source(source, include_enabled=True))

    # ========================================================================
    # Cache Management (development only)
    # ========================================================================

    if cfg.is_development:

        @app.get("/api/cache/stats", response_model=CacheResponse, response_model_exclude_none=True)
        async def cache_stats(service: NewsService = Depends(get_service)):
            return CacheResponse(data=service.cache_stats().to_dict())

        @app.get("/api/cache/keys", response_model=CacheResponse, response_model_exclude_none=True)
        async def cache_keys(service: NewsService = Depends(get_service)):
            return CacheResponse(data=service.cache_keys())

        @app.delete("/api/cache/flush", response_model=CacheResponse, response_model_exclude_none=True)
        async def cache_flush(service: NewsService = Depends(get_service)):
            service.flush_cache()
            return CacheResponse(message="Cache flushed successfully")

    return app


logging.basicConfig(
    level=default_settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)

app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "secnews.app.main:app",
        host=default_settings.host,
        port=default_settings.port,
    )
