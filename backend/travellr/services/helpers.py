"""Shared money, date, identifier and pagination helpers."""

from __future__ import annotations

import datetime
import math
import re
import secrets
import time
import unicodedata
from collections.abc import Mapping
from decimal import Decimal, ROUND_HALF_UP
from typing import Any

MONEY_PLACES = Decimal("0.01")

_CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "INR": "₹",
    "JPY": "¥",
    "AUD": "A$",
    "CAD": "CA$",
}
_ZERO_DECIMAL_CURRENCIES = {"JPY"}
_BASE36 = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


def to_money(value: Decimal | float | int | str) -> Decimal:
    """Round a value half-up to whole cents."""
    return Decimal(str(value)).quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def calculate_commission(
    amount: Decimal | float | int | str, rate: Decimal | float | int | str
) -> Decimal:
    """Return ``amount * rate%`` rounded to cents."""
    return to_money(Decimal(str(amount)) * Decimal(str(rate)) / Decimal("100"))


def generate_slug(text: str | None, unique_id: str = "") -> str:
    normalized = unicodedata.normalize("NFKD", text or "")
    ascii_text = normalized.encode("ascii", "ignore").decode("ascii").lower()
    base = re.sub(r"[^a-z0-9]+", "-", ascii_text).strip("-")
    suffix = unique_id or secrets.token_hex(4)
    return f"{base}-{suffix}"


def generate_random_string(length: int = 32) -> str:
    return secrets.token_hex(math.ceil(length / 2))[:length]


def generate_otp(length: int = 6) -> str:
    """Return a numeric one-time password drawn from a CSPRNG."""
    return "".join(str(secrets.randbelow(10)) for _ in range(length))


def _to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits: list[str] = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits))


def generate_transaction_id(prefix: str = "TXN") -> str:
    timestamp = _to_base36(int(time.time() * 1000))
    return f"{prefix}-{timestamp}-{secrets.token_hex(4).upper()}"


def paginate(page: Any = 1, limit: Any = 10) -> dict[str, int]:
    """Clamp page/limit query values and compute the row offset."""
    try:
        page_num = int(page)
    except (TypeError, ValueError):
        page_num = 1
    try:
        limit_num = int(limit)
    except (TypeError, ValueError):
        limit_num = 10
    page_num = max(1, page_num or 1)
    limit_num = min(100, max(1, limit_num or 10))
    return {"page": page_num, "limit": limit_num, "skip": (page_num - 1) * limit_num}


def pagination_meta(total: int, page: int, limit: int) -> dict[str, Any]:
    total_pages = math.ceil(total / limit) if limit else 0
    has_next = page < total_pages
    has_prev = page > 1
    return {
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": total_pages,
        "has_next_page": has_next,
        "has_prev_page": has_prev,
        "next_page": page + 1 if has_next else None,
        "prev_page": page - 1 if has_prev else None,
    }


def format_currency(amount: Decimal | float | int, currency: str = "USD") -> str:
    """Format an amount with its currency symbol, e.g. ``$1,234.50``."""
    code = currency.upper()
    places = 0 if code in _ZERO_DECIMAL_CURRENCIES else 2
    quantum = Decimal(1).scaleb(-places)
    value = Decimal(str(amount)).quantize(quantum, rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    body = f"{abs(value):,.{places}f}"
    symbol = _CURRENCY_SYMBOLS.get(code)
    if symbol is None:
        return f"{sign}{code} {body}"
    return f"{sign}{symbol}{body}"


def _coerce_datetime(value: datetime.date | datetime.datetime | str) -> datetime.datetime:
    if isinstance(value, str):
        value = datetime.datetime.fromisoformat(value)
    if not isinstance(value, datetime.datetime):
        value = datetime.datetime.combine(value, datetime.time.min)
    if value.tzinfo is None:
        value = value.replace(tzinfo=datetime.UTC)
    return value


def format_date(
    value: datetime.date | datetime.datetime | str | None, fmt: str = "%B %d, %Y"
) -> str:
    if not value:
        return ""
    return _coerce_datetime(value).strftime(fmt)


def days_until(
    target: datetime.date | datetime.datetime | str,
    now: datetime.datetime | None = None,
) -> int:
    """Signed whole days from ``now`` until ``target``, truncated toward zero."""
    reference = _coerce_datetime(now or datetime.datetime.now(datetime.UTC))
    delta = _coerce_datetime(target) - reference
    return math.trunc(delta / datetime.timedelta(days=1))


def days_between(
    first: datetime.date | datetime.datetime | str,
    second: datetime.date | datetime.datetime | str,
) -> int:
    return abs(days_until(first, _coerce_datetime(second)))


def is_past_date(
    value: datetime.date | datetime.datetime | str,
    now: datetime.datetime | None = None,
) -> bool:
    return _coerce_datetime(value) < _coerce_datetime(
        now or datetime.datetime.now(datetime.UTC)
    )


def is_future_date(
    value: datetime.date | datetime.datetime | str,
    now: datetime.datetime | None = None,
) -> bool:
    return _coerce_datetime(value) > _coerce_datetime(
        now or datetime.datetime.now(datetime.UTC)
    )


def clean_object(
    data: Mapping[str, Any],
    *,
    remove_empty: bool = True,
    remove_null: bool = True,
) -> dict[str, Any]:
    """Drop ``None`` and empty-string values from a mapping."""
    cleaned: dict[str, Any] = {}
    for key, value in data.items():
        if remove_null and value is None:
            continue
        if remove_empty and value == "":
            continue
        cleaned[key] = value
    return cleaned


__all__ = [
    "MONEY_PLACES",
    "calculate_commission",
    "clean_object",
    "days_between",
    "days_until",
    "format_currency",
    "format_date",
    "generate_otp",
    "generate_random_string",
    "generate_slug",
    "generate_transaction_id",
    "is_future_date",
    "is_past_date",
    "paginate",
    "pagination_meta",
    "to_money",
]
