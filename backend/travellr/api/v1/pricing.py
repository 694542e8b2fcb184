"""Pricing-related API endpoints."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from travellr.api import deps
from travellr.core.config import get_settings
from travellr.schemas.pricing import (
    BookingQuoteRead,
    BookingQuoteRequest,
    PayoutRead,
    PayoutRequest,
    RefundRead,
    RefundRequest,
)
from travellr.services import payout_service, pricing_service
from travellr.services.payout_service import InvalidArgumentError, RefundPolicy
from travellr.services.promo_service import PromoCodeError, PromoErrorKind

router = APIRouter(prefix="/pricing", tags=["pricing"])


def _bad_request(message: str, kind: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={"message": message, "kind": kind},
    )


@router.post("/payout", response_model=PayoutRead, summary="Split a booking payout")
async def compute_payout(payload: PayoutRequest) -> PayoutRead:
    settings = get_settings()
    try:
        payout = payout_service.compute_payout(
            payload.booking_amount,
            payload.commission_rate
            if payload.commission_rate is not None
            else settings.platform_commission_rate,
            payload.holdback_rate
            if payload.holdback_rate is not None
            else settings.platform_holdback_rate,
        )
    except InvalidArgumentError as exc:
        raise _bad_request(str(exc), exc.kind) from exc
    return PayoutRead.model_validate(payout)


@router.post("/refund", response_model=RefundRead, summary="Quote a cancellation refund")
async def compute_refund(payload: RefundRequest) -> RefundRead:
    policy = RefundPolicy.from_rules(rule.model_dump() for rule in payload.rules)
    try:
        quote = payout_service.quote_refund(
            payload.booking_amount, policy, payload.trip_start_date
        )
    except InvalidArgumentError as exc:
        raise _bad_request(str(exc), exc.kind) from exc
    return RefundRead.model_validate(quote)


@router.post(
    "/booking-quote", response_model=BookingQuoteRead, summary="Quote a booking"
)
async def quote_booking(
    payload: BookingQuoteRequest,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    claims: Annotated[dict[str, Any] | None, Depends(deps.get_optional_claims)],
) -> BookingQuoteRead:
    try:
        quote = await pricing_service.quote_booking(
            session,
            price_per_person=payload.price_per_person,
            guests=payload.guests,
            add_ons=payload.add_ons,
            promo_code=payload.promo_code,
            vendor_id=payload.vendor_id,
            user_id=claims["sub"] if claims else None,
        )
    except PromoCodeError as exc:
        status_code = (
            status.HTTP_404_NOT_FOUND
            if exc.kind is PromoErrorKind.NOT_FOUND
            else status.HTTP_400_BAD_REQUEST
        )
        raise HTTPException(
            status_code=status_code,
            detail={"message": exc.message, "kind": exc.kind.value},
        ) from exc
    except InvalidArgumentError as exc:
        raise _bad_request(str(exc), exc.kind) from exc
    return BookingQuoteRead.model_validate(quote)
