#!/usr/bin/env python3
"""
Cybersecurity News Aggregator

Entry point for the secnews command line.
Fetches every enabled feed, merges and sorts the articles, prints them.

Usage:
    python -m secnews.main fetch                     # All enabled sources
    python -m secnews.main fetch --source krebsonsecurity
    python -m secnews.main fetch --limit 5 --json    # Machine-readable output
    python -m secnews.main sources                   # List configured sources
    python -m secnews.main serve                     # Run the API server
"""

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import asdict
from datetime import datetime
from typing import Optional

from .config.settings import settings
from .news.errors import SourceDisabledError, SourceNotFoundError
from .news.models import Article
from .news.service import NewsService, build_service


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Aggregate cybersecurity news from RSS feeds"
    )
    parser.add_argument(
        "--log-level",
        default=settings.log_level,
        help=f"Logging level (default: {settings.log_level})",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    fetch = subparsers.add_parser("fetch", help="Fetch and print articles")
    fetch.add_argument(
        "--source",
        default=None,
        help="Only fetch this source id (default: all enabled sources)",
    )
    fetch.add_argument(
        "--limit",
        type=int,
        default=20,
        help="Maximum number of articles to print (default: 20)",
    )
    fetch.add_argument(
        "--json",
        action="store_true",
        help="Print articles as JSON",
    )
    fetch.add_argument(
        "--timeout",
        type=float,
        default=settings.fetch_timeout,
        help=f"Per-source fetch timeout in seconds (default: {settings.fetch_timeout:g})",
    )

    subparsers.add_parser("sources", help="List configured sources")

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default=settings.host)
    serve.add_argument("--port", type=int, default=settings.port)

    return parser.parse_args(argv)


def _json_default(value):
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def print_articles(articles: list[Article], as_json: bool) -> None:
    if as_json:
        print(json.dumps([asdict(a) for a in articles], indent=2, default=_json_default))
        return

    for i, article in enumerate(articles):
        published = article.published_at.strftime("%Y-%m-%d %H:%M")
        print(f"   {i + 1}. [{article.source_name}] {article.title[:70]}")
        print(f"      {published}  {article.url}")


async def run_fetch(args: argparse.Namespace, service: NewsService) -> int:
    """Fetch news once and print it."""
    if args.source:
        try:
            result = await service.get_source_news(args.source)
        except (SourceNotFoundError, SourceDisabledError) as e:
            print(f"❌ {e}", file=sys.stderr)
            return 2

        if not result.success:
            print(f"❌ Failed to fetch {args.source}: {result.error}", file=sys.stderr)
            return 1

        articles = list(result.articles)
        if not args.json:
            print(f"\n📰 {len(articles)} articles from {args.source}\n")
    else:
        result = await service.get_all_news()
        articles = list(result.articles)
        if not args.json:
            summary = result.summary
            print(
                f"\n📰 {summary.total_articles} articles from "
                f"{summary.successful_sources} sources ({summary.failed_sources} failed)\n"
            )
            for source_result in result.source_results:
                if not source_result.success:
                    print(f"   ⚠️  {source_result.source_id}: {source_result.error}")

    print_articles(articles[: args.limit], args.json)
    return 0


def run_sources(service: NewsService) -> int:
    for source in service.registry.list_all():
        status = "enabled" if source.enabled else "disabled"
        print(f"   {source.id:<20} {source.category.value:<10} {status:<9} {source.name}")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    if args.command == "serve":
        import uvicorn

        uvicorn.run("secnews.app.main:app", host=args.host, port=args.port)
        return 0

    cfg = settings
    if args.command == "fetch":
        cfg = settings.model_copy(update={"fetch_timeout": args.timeout})
    service = build_service(cfg)

    if args.command == "sources":
        return run_sources(service)

    return asyncio.run(run_fetch(args, service))


def cli() -> None:
    """CLI entry point."""
    sys.exit(main())


if __name__ == "__main__":
    cli()
