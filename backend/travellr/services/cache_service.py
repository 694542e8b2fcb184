"""Redis-backed response cache with resource-based invalidation."""

from __future__ import annotations

import asyncio
import enum
import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from redis.asyncio import Redis
from redis.exceptions import RedisError

from travellr.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

SCAN_BATCH_SIZE = 100

# Key prefix for cached promo code listings.
PROMO_CODES_PREFIX = "promo-codes"


class CacheResource(str, enum.Enum):
    """Resource classes with their own TTL and invalidation rules."""

    TRIPS = "trips"
    BOOKINGS = "bookings"
    USERS = "users"
    PROMOS = "promos"
    VENDORS = "vendors"
    REVIEWS = "reviews"
    ANALYTICS = "analytics"


# Mutating a resource purges every listed pattern, in order.
INVALIDATION_PATTERNS: dict[CacheResource, tuple[str, ...]] = {
    CacheResource.TRIPS: ("trips:*", "analytics:trips:*"),
    CacheResource.BOOKINGS: (
        "bookings:*",
        "users:*:bookings",
        "analytics:bookings:*",
    ),
    CacheResource.USERS: ("users:*", "analytics:users:*"),
    CacheResource.PROMOS: ("promo-codes:*", "bookings:*"),
    CacheResource.VENDORS: ("vendors:*", "trips:*", "analytics:vendors:*"),
    CacheResource.REVIEWS: (
        "reviews:*",
        "trips:*",
        "users:*:reviews",
        "analytics:reviews:*",
    ),
}


def build_ttl_table(settings: Settings) -> dict[str, int]:
    """TTL in seconds per resource name."""
    return {
        CacheResource.TRIPS.value: settings.cache_ttl_trips,
        CacheResource.BOOKINGS.value: settings.cache_ttl_bookings,
        CacheResource.USERS.value: settings.cache_ttl_users,
        CacheResource.PROMOS.value: settings.cache_ttl_promos,
        PROMO_CODES_PREFIX: settings.cache_ttl_promos,
        CacheResource.ANALYTICS.value: settings.cache_ttl_analytics,
    }


class CacheErrorKind(str, enum.Enum):
    UNAVAILABLE = "unavailable"
    DECODE_FAILED = "decode_failed"


@dataclass(slots=True, frozen=True)
class CacheError:
    kind: CacheErrorKind
    message: str


@dataclass(slots=True)
class CacheResult(Generic[T]):
    """Outcome of a cache operation: a value, or the reason there is none."""

    value: T | None = None
    error: CacheError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def hit(self) -> bool:
        return self.error is None and self.value is not None


def _resource_name(resource: CacheResource | str) -> str:
    return resource.value if isinstance(resource, CacheResource) else resource


def generate_key(
    resource: CacheResource | str, params: Mapping[str, Any] | None = None
) -> str:
    """Derive a cache key that does not depend on parameter order.

    >>> generate_key("trips", {"page": 2, "category": "beach"})
    'trips:category:beach|page:2'
    """

    name = _resource_name(resource)
    pairs = [
        f"{key}:{value}"
        for key, value in sorted((params or {}).items())
        if value is not None
    ]
    if not pairs:
        return name
    return f"{name}:{'|'.join(pairs)}"


class CacheManager:
    """Best-effort cache over an injected Redis handle.

    No operation raises: store failures are logged and reported through
    :class:`CacheResult` so the primary request path is never failed by the
    cache.
    """

    def __init__(
        self,
        redis: Redis | None,
        *,
        ttl: Mapping[str, int] | None = None,
        default_ttl: int | None = None,
    ) -> None:
        settings = get_settings()
        self.redis = redis
        self.ttl = dict(ttl) if ttl is not None else build_ttl_table(settings)
        self.default_ttl = (
            default_ttl if default_ttl is not None else settings.cache_ttl_default
        )

    @property
    def available(self) -> bool:
        return self.redis is not None

    def ttl_for(self, resource: CacheResource | str) -> int:
        return self.ttl.get(_resource_name(resource), self.default_ttl)

    def _unavailable(self) -> CacheError:
        return CacheError(CacheErrorKind.UNAVAILABLE, "Cache store is not configured")

    async def fetch(
        self, resource: CacheResource | str, params: Mapping[str, Any] | None = None
    ) -> CacheResult[Any]:
        if self.redis is None:
            return CacheResult(error=self._unavailable())
        key = generate_key(resource, params)
        try:
            raw = await self.redis.get(key)
        except (RedisError, OSError) as exc:
            logger.warning("Cache get failed for %s", key, exc_info=exc)
            return CacheResult(error=CacheError(CacheErrorKind.UNAVAILABLE, str(exc)))
        if raw is None:
            return CacheResult()
        try:
            return CacheResult(value=json.loads(raw))
        except (TypeError, ValueError) as exc:
            logger.warning("Discarding undecodable cache entry %s", key, exc_info=exc)
            return CacheResult(
                error=CacheError(CacheErrorKind.DECODE_FAILED, str(exc))
            )

    async def get(
        self, resource: CacheResource | str, params: Mapping[str, Any] | None = None
    ) -> Any | None:
        """Return the cached value, treating every failure as a miss."""
        return (await self.fetch(resource, params)).value

    async def set(
        self,
        resource: CacheResource | str,
        params: Mapping[str, Any] | None,
        value: Any,
    ) -> CacheResult[bool]:
        if self.redis is None:
            return CacheResult(value=False, error=self._unavailable())
        key = generate_key(resource, params)
        try:
            payload = json.dumps(value, default=str)
            await self.redis.set(key, payload, ex=self.ttl_for(resource))
        except (TypeError, ValueError) as exc:
            logger.warning("Cache value for %s is not serializable", key, exc_info=exc)
            return CacheResult(
                value=False, error=CacheError(CacheErrorKind.DECODE_FAILED, str(exc))
            )
        except (RedisError, OSError) as exc:
            logger.warning("Cache set failed for %s", key, exc_info=exc)
            return CacheResult(
                value=False, error=CacheError(CacheErrorKind.UNAVAILABLE, str(exc))
            )
        return CacheResult(value=True)

    async def delete(
        self, resource: CacheResource | str, params: Mapping[str, Any] | None = None
    ) -> CacheResult[int]:
        if self.redis is None:
            return CacheResult(value=0, error=self._unavailable())
        key = generate_key(resource, params)
        try:
            removed = await self.redis.delete(key)
        except (RedisError, OSError) as exc:
            logger.warning("Cache delete failed for %s", key, exc_info=exc)
            return CacheResult(
                value=0, error=CacheError(CacheErrorKind.UNAVAILABLE, str(exc))
            )
        return CacheResult(value=int(removed))

    async def delete_pattern(self, pattern: str) -> CacheResult[int]:
        """Delete every key matching ``pattern`` and return how many went."""
        if self.redis is None:
            return CacheResult(value=0, error=self._unavailable())
        keys: list[str] = []
        try:
            cursor = 0
            while True:
                cursor, batch = await self.redis.scan(
                    cursor=cursor, match=pattern, count=SCAN_BATCH_SIZE
                )
                keys.extend(batch)
                if int(cursor) == 0:
                    break
            if keys:
                # Deletion order across keys is not guaranteed.
                removed = await asyncio.gather(
                    *(self.redis.delete(key) for key in dict.fromkeys(keys))
                )
            else:
                removed = []
        except (RedisError, OSError) as exc:
            logger.warning("Cache delete failed for pattern %s", pattern, exc_info=exc)
            return CacheResult(
                value=0, error=CacheError(CacheErrorKind.UNAVAILABLE, str(exc))
            )
        return CacheResult(value=sum(int(count) for count in removed))

    async def invalidate_related(self, resource: CacheResource | str) -> CacheResult[int]:
        """Purge every cache pattern that depends on ``resource``."""
        try:
            patterns = INVALIDATION_PATTERNS[CacheResource(_resource_name(resource))]
        except (KeyError, ValueError):
            return CacheResult(value=0)
        total = 0
        error: CacheError | None = None
        for pattern in patterns:
            result = await self.delete_pattern(pattern)
            total += result.value or 0
            error = error or result.error
        if total:
            logger.info("Invalidated %s cache entries for %s", total, _resource_name(resource))
        return CacheResult(value=total, error=error)

    async def clear(self) -> CacheResult[bool]:
        if self.redis is None:
            return CacheResult(value=False, error=self._unavailable())
        try:
            await self.redis.flushdb()
        except (RedisError, OSError) as exc:
            logger.warning("Cache clear failed", exc_info=exc)
            return CacheResult(
                value=False, error=CacheError(CacheErrorKind.UNAVAILABLE, str(exc))
            )
        return CacheResult(value=True)

    async def ping(self) -> bool:
        if self.redis is None:
            return False
        try:
            return bool(await self.redis.ping())
        except (RedisError, OSError):
            return False

    async def stats(self) -> CacheResult[dict[str, Any]]:
        """Key count and keyspace hit rate from ``INFO stats``."""
        if self.redis is None:
            return CacheResult(error=self._unavailable())
        try:
            info = await self.redis.info("stats")
            key_count = await self.redis.dbsize()
        except (RedisError, OSError) as exc:
            logger.warning("Cache stats failed", exc_info=exc)
            return CacheResult(error=CacheError(CacheErrorKind.UNAVAILABLE, str(exc)))
        hits = int(info.get("keyspace_hits", 0))
        misses = int(info.get("keyspace_misses", 0))
        lookups = hits + misses
        return CacheResult(
            value={
                "keys": int(key_count),
                "hits": hits,
                "misses": misses,
                "hit_rate": round(hits / lookups * 100, 2) if lookups else 0.0,
            }
        )

    async def list_keys(
        self, pattern: str = "*", limit: int = 100
    ) -> CacheResult[list[tuple[str, int]]]:
        """Return up to ``limit`` matching keys with their remaining TTL."""
        if self.redis is None:
            return CacheResult(value=[], error=self._unavailable())
        entries: list[tuple[str, int]] = []
        try:
            async for key in self.redis.scan_iter(match=pattern, count=SCAN_BATCH_SIZE):
                entries.append((key, int(await self.redis.ttl(key))))
                if len(entries) >= limit:
                    break
        except (RedisError, OSError) as exc:
            logger.warning("Cache key listing failed for %s", pattern, exc_info=exc)
            return CacheResult(
                value=entries, error=CacheError(CacheErrorKind.UNAVAILABLE, str(exc))
            )
        return CacheResult(value=entries)


__all__ = [
    "CacheError",
    "CacheErrorKind",
    "CacheManager",
    "CacheResource",
    "CacheResult",
    "INVALIDATION_PATTERNS",
    "PROMO_CODES_PREFIX",
    "build_ttl_table",
    "generate_key",
]
