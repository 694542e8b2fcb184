"""Pricing schema definitions."""

from __future__ import annotations

import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class PayoutRequest(BaseModel):
    """Input payload for splitting a booking amount."""

    booking_amount: Decimal = Field(ge=0)
    commission_rate: Decimal | None = Field(default=None, ge=0)
    holdback_rate: Decimal | None = Field(default=None, ge=0)


class PayoutRead(BaseModel):
    total_amount: Decimal
    platform_commission: Decimal
    holdback_amount: Decimal
    vendor_net: Decimal

    model_config = ConfigDict(from_attributes=True)


class RefundRuleSchema(BaseModel):
    days_before_start: int
    refund_percentage: Decimal = Field(ge=0, le=100)


class RefundRequest(BaseModel):
    booking_amount: Decimal = Field(ge=0)
    trip_start_date: datetime.datetime
    rules: list[RefundRuleSchema]


class RefundRead(BaseModel):
    booking_amount: Decimal
    days_until_trip: int
    refund_percentage: Decimal
    refund_amount: Decimal

    model_config = ConfigDict(from_attributes=True)


class BookingQuoteRequest(BaseModel):
    price_per_person: Decimal = Field(ge=0)
    guests: int = Field(ge=1)
    add_ons: list[Decimal] = Field(default_factory=list)
    promo_code: str | None = None
    vendor_id: str | None = None


class BookingQuoteRead(BaseModel):
    """Itemised booking price."""

    base_price: Decimal
    price_per_person: Decimal
    guests: int
    subtotal: Decimal
    add_ons_total: Decimal
    discount_amount: Decimal
    tax_amount: Decimal
    service_fee: Decimal
    total_amount: Decimal
    promo_code: str | None = None

    model_config = ConfigDict(from_attributes=True)
