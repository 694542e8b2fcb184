"""Promo code eligibility, discount math and lifecycle management."""

from __future__ import annotations

import datetime
import enum
import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from sqlalchemy import Select, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from travellr.models import DiscountType, PromoCode, PromoCodeUsage
from travellr.schemas.promo_code import PromoCodeCreate, PromoCodeUpdate
from travellr.services import db_optimizer
from travellr.services.helpers import paginate, pagination_meta, to_money

logger = logging.getLogger(__name__)

_REQUIRED_FIELDS = frozenset(
    {
        "discount_value",
        "min_purchase_amount",
        "valid_from",
        "valid_until",
        "is_active",
        "applicable_trips",
        "applicable_vendors",
        "applicable_categories",
        "excluded_vendors",
    }
)


class PromoErrorKind(str, enum.Enum):
    NOT_FOUND = "NOT_FOUND"
    INACTIVE = "INACTIVE"
    NOT_YET_VALID = "NOT_YET_VALID"
    EXPIRED = "EXPIRED"
    USAGE_LIMIT_REACHED = "USAGE_LIMIT_REACHED"
    USER_LIMIT_REACHED = "USER_LIMIT_REACHED"
    MIN_PURCHASE_NOT_MET = "MIN_PURCHASE_NOT_MET"
    VENDOR_EXCLUDED = "VENDOR_EXCLUDED"
    VENDOR_NOT_APPLICABLE = "VENDOR_NOT_APPLICABLE"
    INVALID_DEFINITION = "INVALID_DEFINITION"
    DUPLICATE_CODE = "DUPLICATE_CODE"


class PromoCodeError(ValueError):
    """Raised when a promo code cannot be applied or saved."""

    def __init__(self, kind: PromoErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message


@dataclass(slots=True)
class PromoValidation:
    """Discount granted by a valid promo code for a given amount."""

    code: str
    discount_type: DiscountType
    discount_value: Decimal
    discount: Decimal
    final_amount: Decimal


@dataclass(slots=True)
class PromoStats:
    code: str
    total_used: int
    usage_limit: int | None
    usage_remaining: int | None
    total_discount_given: Decimal
    unique_users: int
    first_used_at: datetime.datetime | None
    last_used_at: datetime.datetime | None


def normalize_code(code: str) -> str:
    return code.strip().upper()


def _aware(value: datetime.datetime) -> datetime.datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.UTC)
    return value


def _now(now: datetime.datetime | None) -> datetime.datetime:
    return _aware(now) if now is not None else datetime.datetime.now(datetime.UTC)


def _to_utc(value: datetime.datetime) -> datetime.datetime:
    return _aware(value).astimezone(datetime.UTC)


def calculate_discount(promo: PromoCode, amount: Decimal) -> Decimal:
    """Discount for ``amount``; never more than ``amount`` itself."""
    value = Decimal(promo.discount_value)
    if promo.discount_type is DiscountType.PERCENTAGE:
        discount = to_money(amount * value / Decimal("100"))
        if promo.max_discount is not None:
            discount = min(discount, to_money(promo.max_discount))
    else:
        discount = to_money(value)
    return min(discount, to_money(amount))


def evaluate_promo_code(
    promo: PromoCode,
    amount: Decimal | float | int | str,
    *,
    vendor_id: str | None = None,
    user_usage_count: int | None = None,
    now: datetime.datetime | None = None,
) -> PromoValidation:
    """Run the eligibility checks in order and price the discount.

    The first failing check determines the :class:`PromoErrorKind`. The promo
    record is never mutated.
    """

    purchase = Decimal(str(amount))
    current = _now(now)

    if not promo.is_active:
        raise PromoCodeError(PromoErrorKind.INACTIVE, "Promo code is not active")
    if current < _aware(promo.valid_from):
        raise PromoCodeError(PromoErrorKind.NOT_YET_VALID, "Promo code is not yet valid")
    if current > _aware(promo.valid_until):
        raise PromoCodeError(PromoErrorKind.EXPIRED, "Promo code has expired")
    if promo.usage_limit is not None and promo.used_count >= promo.usage_limit:
        raise PromoCodeError(
            PromoErrorKind.USAGE_LIMIT_REACHED, "Promo code usage limit exceeded"
        )
    if (
        user_usage_count is not None
        and promo.usage_per_user is not None
        and user_usage_count >= promo.usage_per_user
    ):
        raise PromoCodeError(
            PromoErrorKind.USER_LIMIT_REACHED, "You have already used this promo code"
        )
    minimum = Decimal(promo.min_purchase_amount or 0)
    if purchase < minimum:
        raise PromoCodeError(
            PromoErrorKind.MIN_PURCHASE_NOT_MET,
            f"Minimum purchase amount of {to_money(minimum)} required",
        )
    if vendor_id is not None:
        if vendor_id in (promo.excluded_vendors or []):
            raise PromoCodeError(
                PromoErrorKind.VENDOR_EXCLUDED,
                "This promo code is not applicable for this vendor",
            )
        applicable = promo.applicable_vendors or []
        if applicable and vendor_id not in applicable:
            raise PromoCodeError(
                PromoErrorKind.VENDOR_NOT_APPLICABLE,
                "This promo code is not applicable for this vendor",
            )

    discount = calculate_discount(promo, purchase)
    return PromoValidation(
        code=promo.code,
        discount_type=promo.discount_type,
        discount_value=to_money(promo.discount_value),
        discount=discount,
        final_amount=to_money(purchase - discount),
    )


async def get_promo_code_by_code(session: AsyncSession, code: str) -> PromoCode | None:
    stmt = select(PromoCode).where(PromoCode.code == normalize_code(code))
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def count_user_usages(
    session: AsyncSession, *, promo_code_id: uuid.UUID, user_id: str
) -> int:
    stmt = select(func.count(PromoCodeUsage.id)).where(
        PromoCodeUsage.promo_code_id == promo_code_id,
        PromoCodeUsage.user_id == user_id,
    )
    return int((await session.execute(stmt)).scalar_one())


async def validate_promo_code(
    session: AsyncSession,
    *,
    code: str,
    amount: Decimal | float | int | str,
    vendor_id: str | None = None,
    user_id: str | None = None,
    now: datetime.datetime | None = None,
) -> PromoValidation:
    """Look up ``code`` and decide whether it applies to ``amount``."""

    promo = await get_promo_code_by_code(session, code)
    if promo is None:
        raise PromoCodeError(PromoErrorKind.NOT_FOUND, "Invalid promo code")

    user_usage_count: int | None = None
    if user_id is not None and promo.usage_per_user is not None:
        user_usage_count = await count_user_usages(
            session, promo_code_id=promo.id, user_id=user_id
        )
    return evaluate_promo_code(
        promo,
        amount,
        vendor_id=vendor_id,
        user_usage_count=user_usage_count,
        now=now,
    )


def _check_definition(
    *,
    discount_type: DiscountType,
    discount_value: Decimal,
    valid_from: datetime.datetime,
    valid_until: datetime.datetime,
) -> None:
    if _aware(valid_from) >= _aware(valid_until):
        raise PromoCodeError(
            PromoErrorKind.INVALID_DEFINITION,
            "Valid from date must be before valid until date",
        )
    if discount_type is DiscountType.PERCENTAGE and not (
        Decimal("0") <= discount_value <= Decimal("100")
    ):
        raise PromoCodeError(
            PromoErrorKind.INVALID_DEFINITION,
            "Percentage discount must be between 0 and 100",
        )
    if discount_type is DiscountType.FIXED and discount_value <= 0:
        raise PromoCodeError(
            PromoErrorKind.INVALID_DEFINITION, "Fixed discount must be greater than 0"
        )


async def create_promo_code(
    session: AsyncSession,
    *,
    payload: PromoCodeCreate,
    created_by: str | None = None,
) -> PromoCode:
    _check_definition(
        discount_type=payload.discount_type,
        discount_value=payload.discount_value,
        valid_from=payload.valid_from,
        valid_until=payload.valid_until,
    )
    data = payload.model_dump(exclude={"code", "valid_from", "valid_until"})
    promo = PromoCode(
        code=normalize_code(payload.code),
        created_by=created_by,
        valid_from=_to_utc(payload.valid_from),
        valid_until=_to_utc(payload.valid_until),
        **data,
    )
    session.add(promo)
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise PromoCodeError(
            PromoErrorKind.DUPLICATE_CODE, "Promo code already exists"
        ) from exc
    await session.refresh(promo)
    logger.info("Created promo code %s", promo.code)
    return promo


def _status_filters(status: str | None, now: datetime.datetime) -> list[Any]:
    if status == "active":
        return [
            PromoCode.is_active.is_(True),
            PromoCode.valid_from <= now,
            PromoCode.valid_until >= now,
        ]
    if status == "inactive":
        return [PromoCode.is_active.is_(False)]
    if status == "expired":
        return [PromoCode.valid_until < now]
    return []


async def list_promo_codes(
    session: AsyncSession,
    *,
    status: str | None = None,
    search: str | None = None,
    page: int = 1,
    limit: int = 20,
    now: datetime.datetime | None = None,
) -> tuple[list[PromoCode], dict[str, Any]]:
    """Return one page of promo codes, newest first, plus pagination meta."""

    window = paginate(page, limit)
    criteria = _status_filters(status, _now(now))
    if search:
        criteria.append(PromoCode.code.ilike(f"%{search.strip()}%"))

    stmt: Select[tuple[PromoCode]] = (
        select(PromoCode)
        .where(*criteria)
        .order_by(PromoCode.created_at.desc(), PromoCode.code.asc())
        .offset(window["skip"])
        .limit(window["limit"])
    )
    promos = list((await session.execute(stmt)).scalars().all())
    total = int(
        (
            await session.execute(select(func.count(PromoCode.id)).where(*criteria))
        ).scalar_one()
    )
    return promos, pagination_meta(total, window["page"], window["limit"])


async def get_promo_code(
    session: AsyncSession, *, promo_code_id: uuid.UUID
) -> PromoCode | None:
    return await session.get(PromoCode, promo_code_id)


async def update_promo_code(
    session: AsyncSession,
    *,
    promo: PromoCode,
    payload: PromoCodeUpdate,
) -> PromoCode:
    data = payload.model_dump(exclude_unset=True)
    for field in ("valid_from", "valid_until"):
        if data.get(field) is not None:
            data[field] = _to_utc(data[field])
    valid_from = data.get("valid_from") or promo.valid_from
    valid_until = data.get("valid_until") or promo.valid_until
    discount_value = data.get("discount_value") or promo.discount_value
    _check_definition(
        discount_type=promo.discount_type,
        discount_value=Decimal(discount_value),
        valid_from=valid_from,
        valid_until=valid_until,
    )
    for key, value in data.items():
        if value is None and key in _REQUIRED_FIELDS:
            continue
        setattr(promo, key, value)
    await session.commit()
    await session.refresh(promo)
    return promo


async def delete_promo_code(session: AsyncSession, *, promo: PromoCode) -> None:
    await session.delete(promo)
    await session.commit()
    logger.info("Deleted promo code %s", promo.code)


async def record_usage(
    session: AsyncSession,
    *,
    promo: PromoCode,
    user_id: str,
    booking_id: str | None,
    discount_applied: Decimal,
) -> PromoCodeUsage:
    """Record a confirmed redemption.

    ``used_count`` is bumped with a single UPDATE so concurrent confirmations
    do not overwrite each other's increments.
    """

    await session.execute(
        update(PromoCode)
        .where(PromoCode.id == promo.id)
        .values(used_count=PromoCode.used_count + 1)
    )
    usage = PromoCodeUsage(
        promo_code_id=promo.id,
        user_id=user_id,
        booking_id=booking_id,
        discount_applied=to_money(discount_applied),
    )
    session.add(usage)
    await session.commit()
    await session.refresh(promo)
    await session.refresh(usage)
    return usage


async def get_promo_stats(session: AsyncSession, *, promo: PromoCode) -> PromoStats:
    stmt = select(
        func.coalesce(func.sum(PromoCodeUsage.discount_applied), 0),
        func.count(func.distinct(PromoCodeUsage.user_id)),
        func.min(PromoCodeUsage.used_at),
        func.max(PromoCodeUsage.used_at),
    ).where(PromoCodeUsage.promo_code_id == promo.id)
    total_discount, unique_users, first_used, last_used = (
        await session.execute(stmt)
    ).one()
    remaining = (
        max(promo.usage_limit - promo.used_count, 0)
        if promo.usage_limit is not None
        else None
    )
    return PromoStats(
        code=promo.code,
        total_used=promo.used_count,
        usage_limit=promo.usage_limit,
        usage_remaining=remaining,
        total_discount_given=to_money(total_discount),
        unique_users=int(unique_users),
        first_used_at=_aware(first_used) if first_used else None,
        last_used_at=_aware(last_used) if last_used else None,
    )


async def list_promo_usages(
    session: AsyncSession,
    *,
    promo: PromoCode,
    cursor: uuid.UUID | None = None,
    limit: int = 20,
) -> db_optimizer.CursorPage[PromoCodeUsage]:
    stmt = select(PromoCodeUsage).where(PromoCodeUsage.promo_code_id == promo.id)
    return await db_optimizer.cursor_paginate(
        session, stmt, PromoCodeUsage.id, cursor=cursor, limit=limit
    )


async def deactivate_expired_promo_codes(
    session: AsyncSession, *, now: datetime.datetime | None = None
) -> int:
    """Switch off active codes whose validity window has closed."""
    current = _now(now)
    stmt = select(PromoCode.id).where(
        PromoCode.is_active.is_(True),
        PromoCode.valid_until < current,
    )
    expired_ids = list((await session.execute(stmt)).scalars().all())
    updated = await db_optimizer.batch_update(
        session, PromoCode, [(promo_id, {"is_active": False}) for promo_id in expired_ids]
    )
    if updated:
        logger.info("Deactivated %s expired promo codes", updated)
    return updated
