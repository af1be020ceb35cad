#!/usr/bin/env python3
"""Command line interface for the art collection RAG service."""

import argparse
import asyncio
import json
import sys
from typing import Any


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        prog="art-rag",
        description="Art collection RAG service CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Start the HTTP API
  art-rag serve --port 3001

  # Ask a question
  art-rag ask "What Chinese artists are in the collection?" --top-k 3

  # Search only, restricted to a medium
  art-rag search "landscape" --filter medium="Oil on canvas"

  # Delete event logs older than 30 days
  art-rag prune-logs --days 30
""",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default=None, help="Bind address (default: settings.host)")
    serve_parser.add_argument("--port", type=int, default=None, help="Port (default: settings.port)")
    serve_parser.add_argument("--reload", action="store_true", help="Reload on code changes")

    for name, help_text in [("ask", "Answer a question"), ("search", "Search without generating an answer")]:
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("question", help="Question text")
        sub.add_argument("--top-k", type=int, default=None, help="Number of documents to retrieve")
        sub.add_argument("--score-threshold", type=float, default=None, help="Minimum relevance score (0-1)")
        sub.add_argument(
            "--filter",
            action="append",
            default=[],
            metavar="FIELD=VALUE",
            help="Metadata equality filter (artist, medium, period, country); repeatable",
        )

    subparsers.add_parser("status", help="Show pipeline status")
    subparsers.add_parser("selftest", help="Exercise cache, search and generation")
    subparsers.add_parser("clear-cache", help="Remove all cached responses")

    export_parser = subparsers.add_parser("export-metrics", help="Export a metrics snapshot")
    export_parser.add_argument("--output", default=None, help="File name inside the log directory")

    prune_parser = subparsers.add_parser("prune-logs", help="Delete old event log files")
    prune_parser.add_argument("--days", type=float, default=None, help="Retention in days (default: settings)")

    return parser


def parse_filters(values: list) -> dict:
    filters = {}
    for item in values:
        field, sep, value = item.partition("=")
        if not sep or not field:
            raise ValueError(f"Invalid filter {item!r}, expected FIELD=VALUE")
        filters[field.strip()] = value.strip()
    return filters


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, default=str))


async def _with_container(handler) -> int:
    from art_rag.core.config import settings
    from art_rag.core.container import ServiceContainer

    container = ServiceContainer()
    await container.initialize(settings)
    try:
        return await handler(container)
    finally:
        await container.shutdown()


async def run_ask(args) -> int:
    """Run ask/search commands."""
    from art_rag.core.errors import RetrievalError
    from art_rag.models.query import PipelineFailure, RequestOptions

    options = RequestOptions(
        top_k=args.top_k,
        score_threshold=args.score_threshold,
        filters=parse_filters(args.filter) or None,
    )

    async def handler(container) -> int:
        orchestrator = container.orchestrator
        if args.command == "search":
            try:
                response = await orchestrator.search(args.question, options)
            except RetrievalError as e:
                print(f"Search failed: {e.message}", file=sys.stderr)
                return 1
            _print_json(response.model_dump(mode="json"))
            return 0

        result = await orchestrator.ask(args.question, options)
        _print_json(result.model_dump(mode="json", by_alias=True))
        return 1 if isinstance(result, PipelineFailure) else 0

    return await _with_container(handler)


async def run_status(args) -> int:
    async def handler(container) -> int:
        status = await container.orchestrator.get_status()
        _print_json(status.model_dump(mode="json", by_alias=True))
        return 0 if status.status == "healthy" else 1

    return await _with_container(handler)


async def run_selftest(args) -> int:
    async def handler(container) -> int:
        results = await container.orchestrator.self_test()
        for name, ok in results.items():
            print(f"{name:10s} {'OK' if ok else 'FAILED'}")
        return 0 if results["success"] else 1

    return await _with_container(handler)


async def run_clear_cache(args) -> int:
    """Clear the response cache without starting search or generation."""
    from art_rag.core.config import settings
    from art_rag.services.response_cache import CacheConfig, ResponseCacheStore
    from art_rag.services.response_cache.backends import RedisBackend

    store = ResponseCacheStore(
        preferred=RedisBackend(settings.redis_url) if settings.redis_url else None,
        config=CacheConfig(ttl=settings.cache_ttl, prefix=settings.cache_prefix),
    )
    await store.connect()
    try:
        if store.is_degraded or store.backend_kind == "memory":
            print("No shared cache backend reachable; nothing to clear", file=sys.stderr)
            return 1
        success = await store.clear()
    finally:
        await store.disconnect()
    print("Cache cleared" if success else "Cache clear failed")
    return 0 if success else 1


def _metrics_aggregator():
    from art_rag.core.config import settings
    from art_rag.services.metrics import EventLogWriter, MetricsAggregator

    return settings, MetricsAggregator(
        writer=EventLogWriter(settings.metrics_log_dir, settings.metrics_max_log_bytes),
    )


async def run_prune_logs(args) -> int:
    settings, metrics = _metrics_aggregator()
    days = args.days if args.days is not None else settings.metrics_retention_days
    deleted = await metrics.prune_older_than(days)
    print(f"Deleted {deleted} log files older than {days} days")
    return 0


async def run_export_metrics(args) -> int:
    """Export from a running service so the snapshot reflects live traffic."""
    import httpx
    from art_rag.core.config import settings

    url = f"http://127.0.0.1:{settings.port}{settings.api_prefix}/metrics/export"
    params = {"filename": args.output} if args.output else None
    try:
        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.post(url, params=params)
            response.raise_for_status()
    except httpx.HTTPError as e:
        print(f"Metrics export failed: {e}", file=sys.stderr)
        return 1
    _print_json(response.json())
    return 0


def run_serve(args) -> int:
    import uvicorn
    from art_rag.core.config import settings

    uvicorn.run(
        "art_rag.main:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        reload=args.reload,
        log_level=settings.log_level.lower(),
    )
    return 0


def main():
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args()

    if args.command == "serve":
        return run_serve(args)
    elif args.command in ("ask", "search"):
        try:
            return asyncio.run(run_ask(args))
        except ValueError as e:
            parser.error(str(e))
    elif args.command == "status":
        return asyncio.run(run_status(args))
    elif args.command == "selftest":
        return asyncio.run(run_selftest(args))
    elif args.command == "clear-cache":
        return asyncio.run(run_clear_cache(args))
    elif args.command == "export-metrics":
        return asyncio.run(run_export_metrics(args))
    elif args.command == "prune-logs":
        return asyncio.run(run_prune_logs(args))
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
