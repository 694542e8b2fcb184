"""Booking price breakdown, optionally discounted by a promo code."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from travellr.core.config import get_settings
from travellr.services import promo_service
from travellr.services.helpers import calculate_commission, to_money
from travellr.services.payout_service import InvalidArgumentError


@dataclass(slots=True)
class BookingPricing:
    """Itemised booking charges.

    Every component is rounded to cents on its own, and ``total_amount`` is the
    sum of the rounded components.
    """

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

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"guests": self.guests, "promo_code": self.promo_code}
        for field in (
            "base_price",
            "price_per_person",
            "subtotal",
            "add_ons_total",
            "discount_amount",
            "tax_amount",
            "service_fee",
            "total_amount",
        ):
            data[field] = f"{getattr(self, field):.2f}"
        return data


def price_booking(
    price_per_person: Decimal | float | int | str,
    guests: int,
    *,
    add_ons: Iterable[Decimal | float | int | str] = (),
    discount: Decimal | float | int | str = 0,
    tax_rate: Decimal | float | int | str | None = None,
    service_fee_rate: Decimal | float | int | str | None = None,
) -> BookingPricing:
    settings = get_settings()
    per_person = Decimal(str(price_per_person))
    if per_person < 0:
        raise InvalidArgumentError("Price per person cannot be negative")
    if guests < 1:
        raise InvalidArgumentError("A booking needs at least one guest")

    add_on_values = [Decimal(str(value)) for value in add_ons]
    if any(value < 0 for value in add_on_values):
        raise InvalidArgumentError("Add-on prices cannot be negative")
    discount_value = Decimal(str(discount))
    if discount_value < 0:
        raise InvalidArgumentError("Discount cannot be negative")

    tax_pct = Decimal(str(tax_rate if tax_rate is not None else settings.tax_rate))
    fee_pct = Decimal(
        str(service_fee_rate if service_fee_rate is not None else settings.service_fee_rate)
    )

    subtotal = to_money(per_person * guests)
    add_ons_total = to_money(sum(add_on_values, Decimal("0")))
    discount_amount = min(to_money(discount_value), subtotal + add_ons_total)
    taxable = subtotal + add_ons_total - discount_amount
    tax_amount = calculate_commission(taxable, tax_pct)
    service_fee = calculate_commission(subtotal, fee_pct)
    total = subtotal + add_ons_total - discount_amount + tax_amount + service_fee

    return BookingPricing(
        base_price=to_money(per_person),
        price_per_person=to_money(per_person),
        guests=guests,
        subtotal=subtotal,
        add_ons_total=add_ons_total,
        discount_amount=discount_amount,
        tax_amount=tax_amount,
        service_fee=service_fee,
        total_amount=to_money(total),
    )


async def quote_booking(
    session: AsyncSession,
    *,
    price_per_person: Decimal,
    guests: int,
    add_ons: Iterable[Decimal] = (),
    promo_code: str | None = None,
    vendor_id: str | None = None,
    user_id: str | None = None,
) -> BookingPricing:
    """Price a booking, validating ``promo_code`` against the guest subtotal."""

    discount = Decimal("0")
    applied_code: str | None = None
    if promo_code:
        subtotal = to_money(Decimal(str(price_per_person)) * guests)
        validation = await promo_service.validate_promo_code(
            session,
            code=promo_code,
            amount=subtotal,
            vendor_id=vendor_id,
            user_id=user_id,
        )
        discount = validation.discount
        applied_code = validation.code

    pricing = price_booking(price_per_person, guests, add_ons=add_ons, discount=discount)
    pricing.promo_code = applied_code
    return pricing
