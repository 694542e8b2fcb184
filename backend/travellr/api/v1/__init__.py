"""Versioned API router."""

from fastapi import APIRouter

from . import health, pricing, promo_codes

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(promo_codes.router)
router.include_router(pricing.router)
