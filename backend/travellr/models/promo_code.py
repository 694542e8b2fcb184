"""Promo code and redemption models."""

from __future__ import annotations

import datetime
import enum
import uuid
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import JSON

from travellr.db.base import Base
from travellr.models.mixins import TimestampMixin, utcnow


class DiscountType(str, enum.Enum):
    """How a promo code discount is computed."""

    PERCENTAGE = "percentage"
    FIXED = "fixed"


class PromoCode(TimestampMixin, Base):
    """Discount token redeemable against a booking subtotal."""

    __tablename__ = "promo_codes"
    __table_args__ = (
        Index("ix_promo_codes_validity", "valid_from", "valid_until"),
        Index("ix_promo_codes_is_active", "is_active"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    code: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)
    discount_type: Mapped[DiscountType] = mapped_column(
        Enum(DiscountType), nullable=False, default=DiscountType.PERCENTAGE
    )
    discount_value: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    max_discount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    min_purchase_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )
    # None means unlimited.
    usage_limit: Mapped[int | None] = mapped_column(Integer, nullable=True)
    usage_per_user: Mapped[int | None] = mapped_column(
        Integer, nullable=True, default=1
    )
    used_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    valid_from: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    valid_until: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    applicable_trips: Mapped[list[str]] = mapped_column(
        JSON, nullable=False, default=list
    )
    applicable_vendors: Mapped[list[str]] = mapped_column(
        JSON, nullable=False, default=list
    )
    applicable_categories: Mapped[list[str]] = mapped_column(
        JSON, nullable=False, default=list
    )
    excluded_vendors: Mapped[list[str]] = mapped_column(
        JSON, nullable=False, default=list
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_by: Mapped[str | None] = mapped_column(String(64), nullable=True)

    usages: Mapped[list["PromoCodeUsage"]] = relationship(
        "PromoCodeUsage",
        back_populates="promo_code",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="PromoCodeUsage.used_at",
    )


class PromoCodeUsage(Base):
    """A single redemption of a promo code against a booking."""

    __tablename__ = "promo_code_usages"
    __table_args__ = (
        Index("ix_promo_code_usages_promo_user", "promo_code_id", "user_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    promo_code_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("promo_codes.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    booking_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    discount_applied: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )
    used_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    promo_code: Mapped[PromoCode] = relationship(
        "PromoCode", back_populates="usages"
    )
