"""Tests for promo code validation and lifecycle."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import Any

import pytest
from sqlalchemy import func, select

from travellr.db.session import get_sessionmaker
from travellr.models import DiscountType, PromoCode, PromoCodeUsage
from travellr.schemas.promo_code import PromoCodeCreate, PromoCodeUpdate
from travellr.services import promo_service
from travellr.services.promo_service import PromoCodeError, PromoErrorKind

pytestmark = pytest.mark.asyncio

NOW = datetime(2026, 7, 1, 12, 0, tzinfo=UTC)


def _promo(**overrides: Any) -> PromoCode:
    fields: dict[str, Any] = {
        "code": "SUMMER20",
        "discount_type": DiscountType.PERCENTAGE,
        "discount_value": Decimal("20"),
        "max_discount": Decimal("150"),
        "min_purchase_amount": Decimal("0"),
        "usage_limit": None,
        "usage_per_user": 1,
        "used_count": 0,
        "valid_from": NOW - timedelta(days=30),
        "valid_until": NOW + timedelta(days=30),
        "applicable_trips": [],
        "applicable_vendors": [],
        "applicable_categories": [],
        "excluded_vendors": [],
        "is_active": True,
    }
    fields.update(overrides)
    return PromoCode(**fields)


async def _seed(session, **overrides: Any) -> PromoCode:
    promo = _promo(**overrides)
    session.add(promo)
    await session.commit()
    return promo


async def test_percentage_discount_is_capped() -> None:
    result = promo_service.evaluate_promo_code(_promo(), Decimal("1000"), now=NOW)
    assert result.discount == Decimal("150.00")
    assert result.final_amount == Decimal("850.00")


async def test_percentage_discount_below_cap() -> None:
    result = promo_service.evaluate_promo_code(_promo(), Decimal("500"), now=NOW)
    assert result.discount == Decimal("100.00")
    assert result.final_amount == Decimal("400.00")


async def test_fixed_discount_never_exceeds_amount() -> None:
    promo = _promo(
        code="FLAT50",
        discount_type=DiscountType.FIXED,
        discount_value=Decimal("50"),
        max_discount=None,
    )
    assert promo_service.evaluate_promo_code(promo, "120", now=NOW).discount == Decimal("50.00")
    small = promo_service.evaluate_promo_code(promo, "30", now=NOW)
    assert small.discount == Decimal("30.00")
    assert small.final_amount == Decimal("0.00")


async def test_uncapped_percentage_discount() -> None:
    promo = _promo(max_discount=None)
    result = promo_service.evaluate_promo_code(promo, Decimal("1000"), now=NOW)
    assert result.discount == Decimal("200.00")


async def test_validity_window_is_inclusive() -> None:
    promo = _promo(valid_from=NOW, valid_until=NOW + timedelta(days=1))
    assert promo_service.evaluate_promo_code(promo, 100, now=NOW).discount == Decimal("20.00")
    at_end = NOW + timedelta(days=1)
    assert promo_service.evaluate_promo_code(promo, 100, now=at_end).discount == Decimal("20.00")


@pytest.mark.parametrize(
    ("overrides", "kwargs", "kind"),
    [
        ({"is_active": False}, {}, PromoErrorKind.INACTIVE),
        ({"valid_from": NOW + timedelta(days=1)}, {}, PromoErrorKind.NOT_YET_VALID),
        ({"valid_until": NOW - timedelta(seconds=1)}, {}, PromoErrorKind.EXPIRED),
        ({"usage_limit": 5, "used_count": 5}, {}, PromoErrorKind.USAGE_LIMIT_REACHED),
        ({}, {"user_usage_count": 1}, PromoErrorKind.USER_LIMIT_REACHED),
        ({"min_purchase_amount": Decimal("2000")}, {}, PromoErrorKind.MIN_PURCHASE_NOT_MET),
        ({"excluded_vendors": ["v1"]}, {"vendor_id": "v1"}, PromoErrorKind.VENDOR_EXCLUDED),
        ({"applicable_vendors": ["v2"]}, {"vendor_id": "v1"}, PromoErrorKind.VENDOR_NOT_APPLICABLE),
    ],
)
async def test_rejection_kinds(overrides, kwargs, kind) -> None:
    with pytest.raises(PromoCodeError) as exc_info:
        promo_service.evaluate_promo_code(_promo(**overrides), Decimal("1000"), now=NOW, **kwargs)
    assert exc_info.value.kind is kind


async def test_first_failing_check_wins() -> None:
    promo = _promo(is_active=False, valid_until=NOW - timedelta(days=1))
    with pytest.raises(PromoCodeError) as exc_info:
        promo_service.evaluate_promo_code(promo, 1000, now=NOW)
    assert exc_info.value.kind is PromoErrorKind.INACTIVE


async def test_vendor_lists_ignored_without_vendor() -> None:
    promo = _promo(applicable_vendors=["v2"], excluded_vendors=["v1"])
    assert promo_service.evaluate_promo_code(promo, 100, now=NOW).discount == Decimal("20.00")


async def test_minimum_purchase_message_contains_amount() -> None:
    promo = _promo(min_purchase_amount=Decimal("300"))
    with pytest.raises(PromoCodeError) as exc_info:
        promo_service.evaluate_promo_code(promo, 100, now=NOW)
    assert "300.00" in exc_info.value.message


async def test_validate_looks_up_code_case_insensitively(reset_database, db_url: str) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        await _seed(session)
        result = await promo_service.validate_promo_code(
            session, code="  summer20 ", amount=Decimal("1000"), now=NOW
        )
    assert result.code == "SUMMER20"
    assert result.final_amount == Decimal("850.00")


async def test_validate_unknown_code(reset_database, db_url: str) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        with pytest.raises(PromoCodeError) as exc_info:
            await promo_service.validate_promo_code(session, code="NOPE", amount=100, now=NOW)
    assert exc_info.value.kind is PromoErrorKind.NOT_FOUND


async def test_record_usage_enforces_limits(reset_database, db_url: str) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        promo = await _seed(session, usage_limit=2)
        validation = await promo_service.validate_promo_code(
            session, code="SUMMER20", amount=500, user_id="u1", now=NOW
        )
        usage = await promo_service.record_usage(
            session,
            promo=promo,
            user_id="u1",
            booking_id="b1",
            discount_applied=validation.discount,
        )
        assert usage.discount_applied == Decimal("100.00")
        assert promo.used_count == 1

        with pytest.raises(PromoCodeError) as exc_info:
            await promo_service.validate_promo_code(
                session, code="SUMMER20", amount=500, user_id="u1", now=NOW
            )
        assert exc_info.value.kind is PromoErrorKind.USER_LIMIT_REACHED

        await promo_service.record_usage(
            session, promo=promo, user_id="u2", booking_id="b2", discount_applied=Decimal("50")
        )
        with pytest.raises(PromoCodeError) as exc_info:
            await promo_service.validate_promo_code(
                session, code="SUMMER20", amount=500, user_id="u3", now=NOW
            )
        assert exc_info.value.kind is PromoErrorKind.USAGE_LIMIT_REACHED


async def test_stats_and_usages(reset_database, db_url: str) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        promo = await _seed(session, usage_limit=10, usage_per_user=None)
        for user_id, discount in (("u1", "10"), ("u1", "15.50"), ("u2", "20")):
            await promo_service.record_usage(
                session,
                promo=promo,
                user_id=user_id,
                booking_id=None,
                discount_applied=Decimal(discount),
            )

        stats = await promo_service.get_promo_stats(session, promo=promo)
        assert stats.total_used == 3
        assert stats.usage_remaining == 7
        assert stats.unique_users == 2
        assert stats.total_discount_given == Decimal("45.50")
        assert stats.first_used_at is not None
        assert stats.first_used_at <= stats.last_used_at

        first = await promo_service.list_promo_usages(session, promo=promo, limit=2)
        assert len(first.items) == 2
        assert first.has_more is True
        second = await promo_service.list_promo_usages(
            session, promo=promo, cursor=first.next_cursor, limit=2
        )
        assert len(second.items) == 1
        assert second.has_more is False
        assert second.next_cursor is None
        seen = {usage.id for usage in first.items + second.items}
        assert len(seen) == 3


async def test_create_rejects_duplicates_and_bad_definitions(
    reset_database, db_url: str
) -> None:
    payload = PromoCodeCreate(
        code="welcome10",
        discount_value=Decimal("10"),
        valid_from=NOW,
        valid_until=NOW + timedelta(days=10),
    )
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        promo = await promo_service.create_promo_code(session, payload=payload, created_by="admin-1")
        assert promo.code == "WELCOME10"
        assert promo.created_by == "admin-1"
        assert promo.used_count == 0

        with pytest.raises(PromoCodeError) as exc_info:
            await promo_service.create_promo_code(session, payload=payload)
        assert exc_info.value.kind is PromoErrorKind.DUPLICATE_CODE

        with pytest.raises(PromoCodeError) as exc_info:
            await promo_service.create_promo_code(
                session,
                payload=payload.model_copy(update={"code": "BIG", "discount_value": Decimal("120")}),
            )
        assert exc_info.value.kind is PromoErrorKind.INVALID_DEFINITION

        with pytest.raises(PromoCodeError) as exc_info:
            await promo_service.create_promo_code(
                session,
                payload=payload.model_copy(update={"code": "BACKWARDS", "valid_until": NOW}),
            )
        assert exc_info.value.kind is PromoErrorKind.INVALID_DEFINITION


async def test_update_checks_merged_definition(reset_database, db_url: str) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        promo = await _seed(session)
        updated = await promo_service.update_promo_code(
            session,
            promo=promo,
            payload=PromoCodeUpdate(discount_value=Decimal("25"), is_active=False),
        )
        assert updated.discount_value == Decimal("25")
        assert updated.is_active is False

        with pytest.raises(PromoCodeError) as exc_info:
            await promo_service.update_promo_code(
                session,
                promo=promo,
                payload=PromoCodeUpdate(valid_until=NOW - timedelta(days=60)),
            )
        assert exc_info.value.kind is PromoErrorKind.INVALID_DEFINITION


async def test_list_filters_by_status_and_search(reset_database, db_url: str) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        await _seed(session, code="ACTIVE1")
        await _seed(session, code="OFF1", is_active=False)
        await _seed(
            session,
            code="OLD1",
            valid_from=NOW - timedelta(days=60),
            valid_until=NOW - timedelta(days=1),
        )

        active, meta = await promo_service.list_promo_codes(session, status="active", now=NOW)
        assert [promo.code for promo in active] == ["ACTIVE1"]
        assert meta["total"] == 1

        inactive, _ = await promo_service.list_promo_codes(session, status="inactive", now=NOW)
        assert [promo.code for promo in inactive] == ["OFF1"]

        expired, _ = await promo_service.list_promo_codes(session, status="expired", now=NOW)
        assert [promo.code for promo in expired] == ["OLD1"]

        searched, _ = await promo_service.list_promo_codes(session, search="off", now=NOW)
        assert [promo.code for promo in searched] == ["OFF1"]

        everything, meta = await promo_service.list_promo_codes(session, page=1, limit=2, now=NOW)
        assert len(everything) == 2
        assert meta["total"] == 3
        assert meta["has_next_page"] is True


async def test_deactivate_expired_promo_codes(reset_database, db_url: str) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        await _seed(session, code="CURRENT")
        await _seed(session, code="STALE", valid_until=NOW - timedelta(hours=1))
        updated = await promo_service.deactivate_expired_promo_codes(session, now=NOW)
        assert updated == 1

    async with sessionmaker() as session:
        rows = (await session.execute(select(PromoCode.code, PromoCode.is_active))).all()
        assert dict(rows) == {"CURRENT": True, "STALE": False}
        again = await promo_service.deactivate_expired_promo_codes(session, now=NOW)
        assert again == 0


async def test_delete_promo_code_with_usages(reset_database, db_url: str) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        promo = await _seed(session)
        await promo_service.record_usage(
            session, promo=promo, user_id="u1", booking_id=None, discount_applied=Decimal("5")
        )
        promo_id = promo.id

    async with sessionmaker() as session:
        promo = await promo_service.get_promo_code(session, promo_code_id=promo_id)
        await promo_service.delete_promo_code(session, promo=promo)

    async with sessionmaker() as session:
        assert await promo_service.get_promo_code(session, promo_code_id=promo_id) is None
        remaining = (
            await session.execute(select(func.count(PromoCodeUsage.id)))
        ).scalar_one()
        assert remaining == 0


async def test_validation_is_repeatable_and_read_only(reset_database, db_url: str) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        promo = await _seed(session, usage_limit=10, applicable_vendors=["v1"])
        first = await promo_service.validate_promo_code(
            session, code="SUMMER20", amount=Decimal("640"), vendor_id="v1", now=NOW
        )
        second = await promo_service.validate_promo_code(
            session, code="SUMMER20", amount=Decimal("640"), vendor_id="v1", now=NOW
        )
        assert first == second
        assert first.discount == Decimal("128.00")
        promo_id = promo.id

    async with sessionmaker() as session:
        stored = await promo_service.get_promo_code(session, promo_code_id=promo_id)
        assert stored.used_count == 0


@pytest.mark.parametrize("max_discount", [None, Decimal("0"), Decimal("25"), Decimal("150")])
@pytest.mark.parametrize("value", [Decimal("5"), Decimal("33.33"), Decimal("100")])
@pytest.mark.parametrize(
    "amount", [Decimal("0.01"), Decimal("9.99"), Decimal("100"), Decimal("1234.56")]
)
async def test_percentage_discount_stays_within_bounds(max_discount, value, amount) -> None:
    promo = _promo(discount_value=value, max_discount=max_discount)
    result = promo_service.evaluate_promo_code(promo, amount, now=NOW)
    assert Decimal("0") <= result.discount <= amount
    if max_discount is not None:
        assert result.discount <= max_discount
    assert result.final_amount == amount - result.discount


@pytest.mark.parametrize("value", [Decimal("1"), Decimal("50"), Decimal("5000")])
@pytest.mark.parametrize("amount", [Decimal("0.50"), Decimal("49.99"), Decimal("800")])
async def test_fixed_discount_stays_within_bounds(value, amount) -> None:
    promo = _promo(
        discount_type=DiscountType.FIXED, discount_value=value, max_discount=None
    )
    result = promo_service.evaluate_promo_code(promo, amount, now=NOW)
    assert Decimal("0") <= result.discount <= amount
    assert result.discount <= value
