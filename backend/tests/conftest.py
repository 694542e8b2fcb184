"""Test fixtures for the Travellr backend."""
from __future__ import annotations

import fnmatch
import os
from collections.abc import AsyncIterator
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.ext.asyncio import create_async_engine

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")

from travellr.core.config import get_settings
from travellr.core.security import ADMIN_ROLE, create_access_token
from travellr.db.base import Base
from travellr.db.session import dispose_engine
from travellr.main import app
from travellr.services.cache_service import CacheManager


class FakeRedis:
    """In-memory stand-in for the subset of ``redis.asyncio.Redis`` we use."""

    def __init__(self) -> None:
        self.store: dict[str, str] = {}
        self.expiry: dict[str, int] = {}
        self.hits = 0
        self.misses = 0

    async def get(self, key: str) -> str | None:
        if key in self.store:
            self.hits += 1
            return self.store[key]
        self.misses += 1
        return None

    async def set(self, key: str, value: str, ex: int | None = None) -> bool:
        self.store[key] = value
        if ex is not None:
            self.expiry[key] = ex
        return True

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
            self.expiry.pop(key, None)
        return removed

    def _matching(self, match: str | None) -> list[str]:
        return sorted(
            key for key in self.store if match is None or fnmatch.fnmatchcase(key, match)
        )

    async def scan(
        self, cursor: int = 0, match: str | None = None, count: int | None = None
    ) -> tuple[int, list[str]]:
        keys = self._matching(match)
        size = count or 10
        batch = keys[cursor : cursor + size]
        next_cursor = cursor + size if cursor + size < len(keys) else 0
        return next_cursor, batch

    async def scan_iter(self, match: str | None = None, count: int | None = None):
        for key in self._matching(match):
            yield key

    async def ttl(self, key: str) -> int:
        if key not in self.store:
            return -2
        return self.expiry.get(key, -1)

    async def flushdb(self) -> bool:
        self.store.clear()
        self.expiry.clear()
        return True

    async def ping(self) -> bool:
        return True

    async def info(self, section: str | None = None) -> dict[str, Any]:
        return {"keyspace_hits": self.hits, "keyspace_misses": self.misses}

    async def dbsize(self) -> int:
        return len(self.store)


class BrokenRedis:
    """Redis handle whose every command fails as if the server were down."""

    def __getattr__(self, name: str):
        async def _fail(*args: Any, **kwargs: Any) -> Any:
            raise RedisConnectionError("Connection refused")

        return _fail


@pytest.fixture(scope="session")
def db_url(tmp_path_factory: pytest.TempPathFactory) -> str:
    """Provide a temporary SQLite database URL for the test session."""
    db_path = tmp_path_factory.mktemp("db") / "test.db"
    return f"sqlite+aiosqlite:///{db_path}"


@pytest_asyncio.fixture()
async def reset_database(db_url: str) -> AsyncIterator[None]:
    """Drop and recreate the database schema for an isolated test."""
    os.environ["DATABASE_URL"] = db_url
    get_settings.cache_clear()
    get_settings()

    await dispose_engine(db_url)
    engine = create_async_engine(db_url, future=True)
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.drop_all)
        await connection.run_sync(Base.metadata.create_all)
    await engine.dispose()
    yield
    await dispose_engine(db_url)


@pytest.fixture()
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture()
def admin_headers() -> dict[str, str]:
    token = create_access_token("admin-1", role=ADMIN_ROLE)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def traveller_headers() -> dict[str, str]:
    token = create_access_token("traveller-1", role="user")
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture()
async def client(
    reset_database: None, fake_redis: FakeRedis
) -> AsyncIterator[AsyncClient]:
    """Yield an async client wired to an in-memory cache."""
    app.state.cache = CacheManager(fake_redis)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http:
        yield http
    app.state.cache = None


@pytest.fixture()
def broken_redis() -> BrokenRedis:
    return BrokenRedis()
