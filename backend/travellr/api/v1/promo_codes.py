"""Promo code endpoints."""

from __future__ import annotations

import uuid
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from travellr.api import deps
from travellr.core.config import get_settings
from travellr.models import PromoCode
from travellr.schemas.promo_code import (
    PromoCodeCreate,
    PromoCodePage,
    PromoCodeRead,
    PromoCodeStatus,
    PromoCodeUpdate,
    PromoStatsRead,
    PromoUsagePage,
    PromoUsageRead,
    PromoValidateRequest,
    PromoValidationRead,
)
from travellr.services import promo_service
from travellr.services.cache_service import (
    PROMO_CODES_PREFIX,
    CacheManager,
    CacheResource,
)
from travellr.services.promo_service import PromoCodeError, PromoErrorKind

router = APIRouter(prefix="/promo-codes", tags=["promo-codes"])

_VALIDATE_LIMIT = deps.parse_rate(
    get_settings().rate_limit_promo_validate, fallback=(20, 60)
)


def _promo_http_error(exc: PromoCodeError) -> HTTPException:
    if exc.kind is PromoErrorKind.NOT_FOUND:
        status_code = status.HTTP_404_NOT_FOUND
    elif exc.kind is PromoErrorKind.DUPLICATE_CODE:
        status_code = status.HTTP_409_CONFLICT
    else:
        status_code = status.HTTP_400_BAD_REQUEST
    return HTTPException(
        status_code=status_code,
        detail={"message": exc.message, "kind": exc.kind.value},
    )


async def _get_or_404(session: AsyncSession, promo_code_id: uuid.UUID) -> PromoCode:
    promo = await promo_service.get_promo_code(session, promo_code_id=promo_code_id)
    if promo is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Promo code not found"
        )
    return promo


@router.post(
    "/validate",
    response_model=PromoValidationRead,
    summary="Validate promo code",
    dependencies=[deps.rate_limit(_VALIDATE_LIMIT)],
)
async def validate_promo_code(
    payload: PromoValidateRequest,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    claims: Annotated[dict[str, Any] | None, Depends(deps.get_optional_claims)],
) -> PromoValidationRead:
    try:
        validation = await promo_service.validate_promo_code(
            session,
            code=payload.code,
            amount=payload.amount,
            vendor_id=payload.vendor_id,
            user_id=claims["sub"] if claims else None,
        )
    except PromoCodeError as exc:
        raise _promo_http_error(exc) from exc
    return PromoValidationRead.model_validate(validation)


@router.post(
    "",
    response_model=PromoCodeRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create promo code",
)
async def create_promo_code(
    payload: PromoCodeCreate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    cache: Annotated[CacheManager, Depends(deps.get_cache_manager)],
    admin: Annotated[dict[str, Any], Depends(deps.get_current_admin)],
) -> PromoCodeRead:
    try:
        promo = await promo_service.create_promo_code(
            session, payload=payload, created_by=admin["sub"]
        )
    except PromoCodeError as exc:
        raise _promo_http_error(exc) from exc
    await cache.invalidate_related(CacheResource.PROMOS)
    return PromoCodeRead.model_validate(promo)


@router.get("", response_model=PromoCodePage, summary="List promo codes")
async def list_promo_codes(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    cache: Annotated[CacheManager, Depends(deps.get_cache_manager)],
    _: Annotated[dict[str, Any], Depends(deps.get_current_admin)],
    status_filter: Annotated[PromoCodeStatus | None, Query(alias="status")] = None,
    search: str | None = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> PromoCodePage:
    params = {"status": status_filter, "search": search, "page": page, "limit": limit}
    cached = await cache.get(PROMO_CODES_PREFIX, params)
    if cached is not None:
        return PromoCodePage.model_validate(cached)

    promos, meta = await promo_service.list_promo_codes(
        session, status=status_filter, search=search, page=page, limit=limit
    )
    result = PromoCodePage(
        promo_codes=[PromoCodeRead.model_validate(promo) for promo in promos],
        pagination=meta,
    )
    await cache.set(PROMO_CODES_PREFIX, params, result.model_dump(mode="json"))
    return result


@router.get(
    "/{promo_code_id}", response_model=PromoCodeRead, summary="Get promo code"
)
async def get_promo_code(
    promo_code_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    _: Annotated[dict[str, Any], Depends(deps.get_current_admin)],
) -> PromoCodeRead:
    promo = await _get_or_404(session, promo_code_id)
    return PromoCodeRead.model_validate(promo)


@router.patch(
    "/{promo_code_id}", response_model=PromoCodeRead, summary="Update promo code"
)
async def update_promo_code(
    promo_code_id: uuid.UUID,
    payload: PromoCodeUpdate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    cache: Annotated[CacheManager, Depends(deps.get_cache_manager)],
    _: Annotated[dict[str, Any], Depends(deps.get_current_admin)],
) -> PromoCodeRead:
    promo = await _get_or_404(session, promo_code_id)
    try:
        updated = await promo_service.update_promo_code(
            session, promo=promo, payload=payload
        )
    except PromoCodeError as exc:
        raise _promo_http_error(exc) from exc
    await cache.invalidate_related(CacheResource.PROMOS)
    return PromoCodeRead.model_validate(updated)


@router.delete(
    "/{promo_code_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete promo code",
)
async def delete_promo_code(
    promo_code_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    cache: Annotated[CacheManager, Depends(deps.get_cache_manager)],
    _: Annotated[dict[str, Any], Depends(deps.get_current_admin)],
) -> None:
    promo = await _get_or_404(session, promo_code_id)
    await promo_service.delete_promo_code(session, promo=promo)
    await cache.invalidate_related(CacheResource.PROMOS)
    return None


@router.get(
    "/{promo_code_id}/stats",
    response_model=PromoStatsRead,
    summary="Promo code usage stats",
)
async def get_promo_code_stats(
    promo_code_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    _: Annotated[dict[str, Any], Depends(deps.get_current_admin)],
) -> PromoStatsRead:
    promo = await _get_or_404(session, promo_code_id)
    stats = await promo_service.get_promo_stats(session, promo=promo)
    return PromoStatsRead.model_validate(stats)


@router.get(
    "/{promo_code_id}/usages",
    response_model=PromoUsagePage,
    summary="List promo code redemptions",
)
async def list_promo_code_usages(
    promo_code_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    _: Annotated[dict[str, Any], Depends(deps.get_current_admin)],
    cursor: uuid.UUID | None = None,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> PromoUsagePage:
    promo = await _get_or_404(session, promo_code_id)
    page = await promo_service.list_promo_usages(
        session, promo=promo, cursor=cursor, limit=limit
    )
    return PromoUsagePage(
        items=[PromoUsageRead.model_validate(usage) for usage in page.items],
        next_cursor=str(page.next_cursor) if page.next_cursor is not None else None,
        has_more=page.has_more,
    )
