"""Schemas for promo codes and their validation."""

from __future__ import annotations

import datetime
import uuid
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from travellr.models.promo_code import DiscountType


class PromoCodeBase(BaseModel):
    description: str | None = None
    discount_type: DiscountType = DiscountType.PERCENTAGE
    discount_value: Decimal = Field(gt=0)
    max_discount: Decimal | None = Field(default=None, ge=0)
    min_purchase_amount: Decimal = Field(default=Decimal("0"), ge=0)
    usage_limit: int | None = Field(default=None, ge=1)
    usage_per_user: int | None = Field(default=1, ge=1)
    valid_from: datetime.datetime
    valid_until: datetime.datetime
    applicable_trips: list[str] = Field(default_factory=list)
    applicable_vendors: list[str] = Field(default_factory=list)
    applicable_categories: list[str] = Field(default_factory=list)
    excluded_vendors: list[str] = Field(default_factory=list)


class PromoCodeCreate(PromoCodeBase):
    code: str = Field(min_length=3, max_length=20)

    @field_validator("code")
    @classmethod
    def _normalize_code(cls, value: str) -> str:
        return value.strip().upper()


class PromoCodeUpdate(BaseModel):
    description: str | None = None
    discount_value: Decimal | None = Field(default=None, gt=0)
    max_discount: Decimal | None = Field(default=None, ge=0)
    min_purchase_amount: Decimal | None = Field(default=None, ge=0)
    usage_limit: int | None = Field(default=None, ge=1)
    usage_per_user: int | None = Field(default=None, ge=1)
    valid_from: datetime.datetime | None = None
    valid_until: datetime.datetime | None = None
    is_active: bool | None = None
    applicable_trips: list[str] | None = None
    applicable_vendors: list[str] | None = None
    applicable_categories: list[str] | None = None
    excluded_vendors: list[str] | None = None


class PromoCodeRead(PromoCodeBase):
    id: uuid.UUID
    code: str
    used_count: int
    is_active: bool
    created_by: str | None = None
    created_at: datetime.datetime
    updated_at: datetime.datetime

    model_config = ConfigDict(from_attributes=True)


class PaginationMeta(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool
    next_page: int | None = None
    prev_page: int | None = None


class PromoCodePage(BaseModel):
    promo_codes: list[PromoCodeRead]
    pagination: PaginationMeta


PromoCodeStatus = Literal["active", "inactive", "expired"]


class PromoValidateRequest(BaseModel):
    """Public payload for checking a code against a purchase amount."""

    code: str = Field(min_length=3, max_length=20)
    amount: Decimal = Field(gt=0)
    vendor_id: str | None = None


class PromoValidationRead(BaseModel):
    code: str
    discount_type: DiscountType
    discount_value: Decimal
    discount: Decimal
    final_amount: Decimal

    model_config = ConfigDict(from_attributes=True)


class PromoStatsRead(BaseModel):
    code: str
    total_used: int
    usage_limit: int | None
    usage_remaining: int | None
    total_discount_given: Decimal
    unique_users: int
    first_used_at: datetime.datetime | None
    last_used_at: datetime.datetime | None

    model_config = ConfigDict(from_attributes=True)


class PromoUsageRead(BaseModel):
    id: uuid.UUID
    user_id: str
    booking_id: str | None
    discount_applied: Decimal
    used_at: datetime.datetime

    model_config = ConfigDict(from_attributes=True)


class PromoUsagePage(BaseModel):
    items: list[PromoUsageRead]
    next_cursor: str | None
    has_more: bool
