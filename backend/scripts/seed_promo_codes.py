"""Seed demo promo codes."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta
from decimal import Decimal

from sqlalchemy import select

from travellr.db.session import get_engine, get_sessionmaker
from travellr.models import DiscountType, PromoCode
from travellr.services.db_optimizer import batch_insert, ensure_indexes


def _demo_codes(now: datetime) -> list[dict[str, object]]:
    return [
        {
            "code": "WELCOME10",
            "description": "10% off a first booking",
            "discount_type": DiscountType.PERCENTAGE,
            "discount_value": Decimal("10"),
            "max_discount": Decimal("100"),
            "usage_per_user": 1,
            "valid_from": now,
            "valid_until": now + timedelta(days=365),
        },
        {
            "code": "SUMMER20",
            "description": "Summer sale, 20% up to 150",
            "discount_type": DiscountType.PERCENTAGE,
            "discount_value": Decimal("20"),
            "max_discount": Decimal("150"),
            "usage_limit": 500,
            "valid_from": now,
            "valid_until": now + timedelta(days=90),
        },
        {
            "code": "FLAT50",
            "description": "50 off bookings over 300",
            "discount_type": DiscountType.FIXED,
            "discount_value": Decimal("50"),
            "min_purchase_amount": Decimal("300"),
            "valid_from": now,
            "valid_until": now + timedelta(days=180),
        },
    ]


async def seed_promo_codes() -> None:
    await ensure_indexes(get_engine())
    sessionmaker = get_sessionmaker()
    async with sessionmaker() as session:
        existing = set(
            (await session.execute(select(PromoCode.code))).scalars().all()
        )
        rows = [row for row in _demo_codes(datetime.now(UTC)) if row["code"] not in existing]
        created = await batch_insert(session, PromoCode, rows)
        print(f"Seeded {len(created)} promo code(s).")


def main() -> None:
    asyncio.run(seed_promo_codes())


if __name__ == "__main__":
    main()
