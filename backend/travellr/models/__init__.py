"""ORM models package export."""

from travellr.models.promo_code import DiscountType, PromoCode, PromoCodeUsage

__all__ = ["DiscountType", "PromoCode", "PromoCodeUsage"]
