"""Vendor payout splits and cancellation refunds."""

from __future__ import annotations

import datetime
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from travellr.services.helpers import calculate_commission, days_until, to_money

INVALID_ARGUMENT = "INVALID_ARGUMENT"


class InvalidArgumentError(ValueError):
    """Raised when a pricing calculation receives an out-of-range input."""

    kind = INVALID_ARGUMENT


@dataclass(slots=True)
class VendorPayout:
    """Split of a gross booking amount between platform and vendor."""

    total_amount: Decimal
    platform_commission: Decimal
    holdback_amount: Decimal
    vendor_net: Decimal


@dataclass(slots=True, frozen=True)
class RefundRule:
    """Refund percentage granted when cancelling at least N days ahead."""

    days_before_start: int
    refund_percentage: Decimal


@dataclass(slots=True)
class RefundPolicy:
    rules: list[RefundRule]

    @classmethod
    def from_rules(cls, rules: Iterable[RefundRule | dict[str, Any]]) -> "RefundPolicy":
        parsed: list[RefundRule] = []
        for rule in rules:
            if isinstance(rule, RefundRule):
                parsed.append(rule)
                continue
            parsed.append(
                RefundRule(
                    days_before_start=int(rule["days_before_start"]),
                    refund_percentage=Decimal(str(rule["refund_percentage"])),
                )
            )
        return cls(rules=parsed)


def _require_non_negative(name: str, value: Decimal) -> Decimal:
    if value < 0:
        raise InvalidArgumentError(f"{name} cannot be negative")
    return value


def compute_payout(
    booking_amount: Decimal | float | int | str,
    commission_rate: Decimal | float | int | str,
    holdback_rate: Decimal | float | int | str = 0,
) -> VendorPayout:
    """Split ``booking_amount`` into commission, holdback and vendor net.

    Commission and holdback are each rounded to cents before the vendor net is
    derived, so ``platform_commission + holdback_amount + vendor_net`` always
    equals the booking amount to the cent.
    """

    amount = _require_non_negative("Booking amount", Decimal(str(booking_amount)))
    commission_pct = _require_non_negative(
        "Commission rate", Decimal(str(commission_rate))
    )
    holdback_pct = _require_non_negative("Holdback rate", Decimal(str(holdback_rate)))

    commission = calculate_commission(amount, commission_pct)
    holdback = calculate_commission(amount, holdback_pct)
    return VendorPayout(
        total_amount=amount,
        platform_commission=commission,
        holdback_amount=holdback,
        vendor_net=to_money(amount - commission - holdback),
    )


@dataclass(slots=True)
class RefundQuote:
    """Refund owed for a cancellation, with the rule that produced it."""

    booking_amount: Decimal
    days_until_trip: int
    refund_percentage: Decimal
    refund_amount: Decimal


def match_refund_rule(policy: RefundPolicy, days_until_trip: int) -> RefundRule | None:
    """Return the most generous rule whose threshold ``days_until_trip`` meets."""
    ordered = sorted(policy.rules, key=lambda rule: rule.days_before_start, reverse=True)
    for rule in ordered:
        if days_until_trip >= rule.days_before_start:
            return rule
    return None


def compute_refund(
    booking_amount: Decimal | float | int | str,
    policy: RefundPolicy,
    trip_start_date: datetime.date | datetime.datetime | str,
    *,
    now: datetime.datetime | None = None,
) -> Decimal:
    """Refund owed when a booking is cancelled ``now``."""

    amount = _require_non_negative("Booking amount", Decimal(str(booking_amount)))
    rule = match_refund_rule(policy, days_until(trip_start_date, now))
    if rule is None:
        return Decimal("0.00")
    return calculate_commission(amount, rule.refund_percentage)


def quote_refund(
    booking_amount: Decimal | float | int | str,
    policy: RefundPolicy,
    trip_start_date: datetime.date | datetime.datetime | str,
    *,
    now: datetime.datetime | None = None,
) -> RefundQuote:
    """Like :func:`compute_refund`, also reporting the day count and matched rule.

    All three values are derived from a single reading of the clock.
    """

    current = now or datetime.datetime.now(datetime.UTC)
    amount = _require_non_negative("Booking amount", Decimal(str(booking_amount)))
    remaining_days = days_until(trip_start_date, current)
    rule = match_refund_rule(policy, remaining_days)
    return RefundQuote(
        booking_amount=amount,
        days_until_trip=remaining_days,
        refund_percentage=rule.refund_percentage if rule else Decimal("0"),
        refund_amount=compute_refund(amount, policy, trip_start_date, now=current),
    )


__all__ = [
    "INVALID_ARGUMENT",
    "InvalidArgumentError",
    "RefundPolicy",
    "RefundQuote",
    "RefundRule",
    "VendorPayout",
    "compute_payout",
    "compute_refund",
    "match_refund_rule",
    "quote_refund",
]
