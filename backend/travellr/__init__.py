"""Travellr pricing, promo and cache service."""
