"""Tests for the FastAPI app in secnews.app.main."""

import asyncio
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from secnews.app.main import create_app, sweep_interval
from secnews.config.settings import Settings
from secnews.news.aggregator import NewsAggregator
from secnews.news.service import NewsService
from secnews.utils.cache import ResponseCache
from tests.conftest import FakeFetcher, make_article, utc


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher(
        articles={
            "alpha": [make_article("alpha", 1, utc(2024, 1, 1))],
            "bravo": [make_article("bravo", 1, utc(2024, 1, 3))],
        },
        fail={"charlie"},
    )


@pytest.fixture
def service(registry, fetcher, clock) -> NewsService:
    return NewsService(
        registry=registry,
        aggregator=NewsAggregator(registry, fetcher),
        cache=ResponseCache(clock=clock),
    )


def make_client(app) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest_asyncio.fixture
async def client(service) -> AsyncGenerator[AsyncClient]:
    app = create_app(Settings(environment="development"), service=service)
    async with make_client(app) as c:
        yield c


@pytest_asyncio.fixture
async def prod_client(service) -> AsyncGenerator[AsyncClient]:
    app = create_app(Settings(environment="production"), service=service)
    async with make_client(app) as c:
        yield c


class TestNewsEndpoints:
    async def test_all_news(self, client) -> None:
        resp = await client.get("/api/news")
        assert resp.status_code == 200

        body = resp.json()
        assert body["success"] is True
        assert [a["id"] for a in body["data"]] == ["bravo-1", "alpha-1"]
        assert body["meta"]["totalArticles"] == 2
        assert body["meta"]["successfulSources"] == 2
        assert body["meta"]["failedSources"] == 1
        assert "fetchedAt" in body["meta"]

    async def test_article_wire_format(self, client) -> None:
        body = (await client.get("/api/news")).json()
        article = body["data"][0]
        assert article["source"] == "bravo"
        assert article["sourceName"] == "Bravo"
        assert article["imageUrl"] == "https://img.test/x.png"
        assert article["publishedAt"].startswith("2024-01-03T00:00:00")
        assert article["categories"] == []

    async def test_all_news_served_from_cache(self, client, fetcher) -> None:
        first = (await client.get("/api/news")).json()
        second = (await client.get("/api/news")).json()

        assert first == second
        assert len(fetcher.calls) == 3

    async def test_all_sources_failing_is_still_200(self, registry, clock) -> None:
        service = NewsService(
            registry=registry,
            aggregator=NewsAggregator(registry, FakeFetcher(fail={"alpha", "bravo", "charlie"})),
            cache=ResponseCache(clock=clock),
        )
        app = create_app(Settings(), service=service)
        async with make_client(app) as c:
            resp = await c.get("/api/news")
        assert resp.status_code == 200
        assert resp.json()["data"] == []
        assert resp.json()["meta"]["failedSources"] == 3

    async def test_source_news(self, client) -> None:
        resp = await client.get("/api/news/source/alpha")
        assert resp.status_code == 200

        body = resp.json()
        assert body["success"] is True
        assert [a["id"] for a in body["data"]] == ["alpha-1"]
        assert body["meta"]["source"] == "alpha"
        assert body["meta"]["count"] == 1

    async def test_source_news_unknown_is_404(self, client) -> None:
        resp = await client.get("/api/news/source/unknown-id")
        assert resp.status_code == 404
        body = resp.json()
        assert body["success"] is False
        assert body["error"] == "Source not found: unknown-id"
        assert body["message"]

    async def test_source_news_disabled_is_500(self, client) -> None:
        resp = await client.get("/api/news/source/retired")
        assert resp.status_code == 500
        assert resp.json()["error"] == "Source is disabled: retired"

    async def test_source_news_fetch_failure_is_500(self, client) -> None:
        resp = await client.get("/api/news/source/charlie")
        assert resp.status_code == 500
        body = resp.json()
        assert body == {
            "success": False,
            "error": "Failed to fetch news from charlie",
            "message": "unreachable",
        }


class TestSourceEndpoints:
    async def test_list_sources(self, client) -> None:
        body = (await client.get("/api/news/sources")).json()
        assert body["meta"]["count"] == 3
        assert [s["id"] for s in body["data"]] == ["alpha", "bravo", "charlie"]
        assert "enabled" not in body["data"][0]
        assert body["data"][0]["website"] == "https://alpha.test"

    async def test_source_info_includes_enabled(self, client) -> None:
        body = (await client.get("/api/news/sources/retired")).json()
        assert body["data"]["enabled"] is False
        assert body["data"]["category"] == "news"

    async def test_source_info_unknown(self, client) -> None:
        resp = await client.get("/api/news/sources/nope")
        assert resp.status_code == 404
        assert resp.json()["error"] == "Source not found"


class TestOperationalEndpoints:
    async def test_health_reports_cache(self, client) -> None:
        await client.get("/api/news")
        await client.get("/api/news")

        body = (await client.get("/api/health")).json()
        assert body["status"] == "healthy"
        assert body["environment"] == "development"
        assert body["cache"] == {"keys": 1, "hits": 1, "misses": 1, "hitRate": "50.00%"}

    async def test_cache_endpoints(self, client) -> None:
        await client.get("/api/news")

        keys = (await client.get("/api/cache/keys")).json()
        assert keys["data"] == ["news:all"]

        stats = (await client.get("/api/cache/stats")).json()
        assert stats["data"]["keys"] == 1

        flushed = (await client.delete("/api/cache/flush")).json()
        assert flushed == {"success": True, "message": "Cache flushed successfully"}
        assert (await client.get("/api/cache/keys")).json()["data"] == []

    async def test_cache_endpoints_hidden_outside_development(self, prod_client) -> None:
        resp = await prod_client.get("/api/cache/keys")
        assert resp.status_code == 404
        assert resp.json()["success"] is False

    async def test_unknown_endpoint(self, client) -> None:
        resp = await client.get("/api/nothing-here")
        assert resp.status_code == 404
        assert resp.json() == {
            "success": False,
            "error": "Endpoint not found",
            "message": "The endpoint /api/nothing-here does not exist",
        }

    async def test_api_index(self, client) -> None:
        body = (await client.get("/api")).json()
        assert body["endpoints"]["allNews"]["path"] == "/api/news"


class TestLifespan:
    def test_sweep_interval_never_exceeds_ttl(self) -> None:
        assert sweep_interval(Settings(cache_ttl=900, cache_check_period=120)) == 120
        assert sweep_interval(Settings(cache_ttl=30, cache_check_period=120)) == 30
        assert sweep_interval(Settings(cache_ttl=0, cache_check_period=120)) == 1

    async def test_builds_service_from_settings(self) -> None:
        app = create_app(Settings(cache_ttl=60))
        async with app.router.lifespan_context(app):
            service = app.state.service
            assert service is not None
            assert service.cache_ttl == 60
            assert "thehackernews" in service.registry

    async def test_sweeper_purges_expired_entries(self, service, clock) -> None:
        app = create_app(Settings(cache_ttl=1, cache_check_period=120), service=service)
        async with app.router.lifespan_context(app):
            service.cache.set("stale", "value", ttl=1)
            clock.advance(5)
            await asyncio.sleep(1.2)
            assert service.cache.purge_expired() == 0
            assert not app.state.sweeper.done()

    async def test_shutdown_cancels_sweeper_and_flushes(self, service) -> None:
        app = create_app(Settings(), service=service)
        async with app.router.lifespan_context(app):
            service.cache.set("news:all", "value")
            sweeper = app.state.sweeper

        assert sweeper.cancelled()
        assert service.cache.keys() == []
