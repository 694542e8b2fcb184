"""Common API dependencies."""

from __future__ import annotations

from typing import Annotated, Any
from collections.abc import AsyncGenerator

from fastapi import Depends, HTTPException, Request, Response, status
from fastapi.security import OAuth2PasswordBearer
from fastapi_limiter import FastAPILimiter
from fastapi_limiter.depends import RateLimiter
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from travellr.core.security import ADMIN_ROLE, decode_access_token
from travellr.db.session import get_session
from travellr.services.cache_service import CacheManager

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token", auto_error=False)

_SECONDS = {
    "second": 1,
    "seconds": 1,
    "minute": 60,
    "minutes": 60,
    "hour": 3600,
    "hours": 3600,
    "day": 86400,
    "days": 86400,
}


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide an async database session."""
    async for session in get_session():
        yield session


def get_cache_manager(request: Request) -> CacheManager:
    """Return the cache manager owned by the application lifespan."""
    manager = getattr(request.app.state, "cache", None)
    if manager is None:
        manager = CacheManager(None)
        request.app.state.cache = manager
    return manager


def _credentials_exception() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_optional_claims(
    token: Annotated[str | None, Depends(oauth2_scheme)],
) -> dict[str, Any] | None:
    """Decode the bearer token when one is sent; anonymous callers get None."""
    if token is None:
        return None
    try:
        payload = decode_access_token(token)
    except JWTError as exc:
        raise _credentials_exception() from exc
    if payload.get("sub") is None:
        raise _credentials_exception()
    return payload


async def get_current_claims(
    claims: Annotated[dict[str, Any] | None, Depends(get_optional_claims)],
) -> dict[str, Any]:
    if claims is None:
        raise _credentials_exception()
    return claims


async def get_current_admin(
    claims: Annotated[dict[str, Any], Depends(get_current_claims)],
) -> dict[str, Any]:
    if claims.get("role") != ADMIN_ROLE:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions"
        )
    return claims


def parse_rate(value: str, *, fallback: tuple[int, int]) -> tuple[int, int]:
    """Parse ``"20/minute"`` style limits into ``(times, seconds)``."""
    try:
        count_str, window_str = value.split("/", 1)
        count = int(count_str.strip())
    except ValueError:
        return fallback
    return count, _SECONDS.get(window_str.strip().lower(), fallback[1])


def rate_limit(limit: tuple[int, int]):
    async def _dependency(request: Request, response: Response) -> None:
        if FastAPILimiter.redis is None:
            return None
        limiter = RateLimiter(times=limit[0], seconds=limit[1])
        await limiter(request, response)

    return Depends(_dependency)
