"""Schema exports."""

from travellr.schemas.pricing import (
    BookingQuoteRead,
    BookingQuoteRequest,
    PayoutRead,
    PayoutRequest,
    RefundRead,
    RefundRequest,
    RefundRuleSchema,
)
from travellr.schemas.promo_code import (
    PaginationMeta,
    PromoCodeCreate,
    PromoCodePage,
    PromoCodeRead,
    PromoCodeUpdate,
    PromoStatsRead,
    PromoUsagePage,
    PromoUsageRead,
    PromoValidateRequest,
    PromoValidationRead,
)

__all__ = [
    "BookingQuoteRead",
    "BookingQuoteRequest",
    "PaginationMeta",
    "PayoutRead",
    "PayoutRequest",
    "PromoCodeCreate",
    "PromoCodePage",
    "PromoCodeRead",
    "PromoCodeUpdate",
    "PromoStatsRead",
    "PromoUsagePage",
    "PromoUsageRead",
    "PromoValidateRequest",
    "PromoValidationRead",
    "RefundRead",
    "RefundRequest",
    "RefundRuleSchema",
]
