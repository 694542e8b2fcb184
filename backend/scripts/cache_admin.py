"""Inspect and purge the Redis response cache."""

from __future__ import annotations

import argparse
import asyncio
import sys

import redis.asyncio as redis  # type: ignore[import-untyped]

from travellr.core.config import get_settings
from travellr.services.cache_service import CacheManager


async def _stats(cache: CacheManager) -> int:
    result = await cache.stats()
    if not result.ok or result.value is None:
        print(f"Could not read cache stats: {result.error.message if result.error else ''}")
        return 1
    stats = result.value
    print(f"Total keys: {stats['keys']}")
    print(f"Hits: {stats['hits']}  Misses: {stats['misses']}  Hit rate: {stats['hit_rate']}%")
    return 0


async def _clear(cache: CacheManager, pattern: str | None) -> int:
    if pattern:
        deleted = await cache.delete_pattern(pattern)
        if not deleted.ok:
            print(f"Failed to clear {pattern}")
            return 1
        print(f"Deleted {deleted.value} key(s) matching {pattern}")
        return 0
    cleared = await cache.clear()
    if not cleared.ok:
        print("Failed to clear cache")
        return 1
    print("Cache cleared")
    return 0


async def _list(cache: CacheManager, pattern: str, limit: int) -> int:
    result = await cache.list_keys(pattern, limit)
    entries = result.value or []
    if not entries:
        print("No keys found")
    for index, (key, ttl) in enumerate(entries, start=1):
        print(f"{index}. {key} (TTL: {f'{ttl}s' if ttl > 0 else 'no expiry'})")
    return 0 if result.ok else 1


async def run(args: argparse.Namespace) -> int:
    settings = get_settings()
    if not settings.redis_url:
        print("REDIS_URL is not configured")
        return 1
    client = redis.from_url(settings.redis_url, encoding="utf-8", decode_responses=True)
    cache = CacheManager(client)
    try:
        if args.command == "stats":
            return await _stats(cache)
        if args.command == "clear":
            return await _clear(cache, args.pattern)
        return await _list(cache, args.pattern, args.limit)
    finally:
        await client.aclose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Redis cache manager")
    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("stats", help="Show key count and hit rate")
    clear = commands.add_parser("clear", help="Clear all keys or those matching a pattern")
    clear.add_argument("pattern", nargs="?", default=None)
    listing = commands.add_parser("list", help="List keys with their TTL")
    listing.add_argument("pattern", nargs="?", default="*")
    listing.add_argument("limit", nargs="?", type=int, default=100)
    sys.exit(asyncio.run(run(parser.parse_args())))


if __name__ == "__main__":
    main()
