"""Service layer exports."""
from travellr.services import (
    cache_service,
    db_optimizer,
    helpers,
    payout_service,
    pricing_service,
    promo_service,
)

__all__ = [
    "cache_service",
    "db_optimizer",
    "helpers",
    "payout_service",
    "pricing_service",
    "promo_service",
]
