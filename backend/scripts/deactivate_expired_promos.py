"""Switch off promo codes whose validity window has closed."""

from __future__ import annotations

import asyncio

import redis.asyncio as redis  # type: ignore[import-untyped]

from travellr.core.config import get_settings
from travellr.db.session import get_sessionmaker
from travellr.services import promo_service
from travellr.services.cache_service import CacheManager, CacheResource


async def deactivate_expired(cache: CacheManager) -> int:
    sessionmaker = get_sessionmaker()
    async with sessionmaker() as session:
        updated = await promo_service.deactivate_expired_promo_codes(session)
    if updated:
        await cache.invalidate_related(CacheResource.PROMOS)
    return updated


async def run() -> None:
    settings = get_settings()
    client = (
        redis.from_url(settings.redis_url, encoding="utf-8", decode_responses=True)
        if settings.redis_url
        else None
    )
    try:
        updated = await deactivate_expired(CacheManager(client))
    finally:
        if client is not None:
            await client.aclose()
    print(f"Deactivated {updated} expired promo code(s).")


def main() -> None:
    asyncio.run(run())


if __name__ == "__main__":
    main()
