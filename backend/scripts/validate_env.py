"""Check the process environment before starting the API."""

from __future__ import annotations

import argparse
import os
import re
import sys

from pydantic import ValidationError
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from travellr.core.config import Settings

REQUIRED_VARS = ("DATABASE_URL", "JWT_SECRET_KEY")
OPTIONAL_VARS = (
    "REDIS_URL",
    "SYNC_DATABASE_URL",
    "CORS_ALLOW_ORIGINS",
    "PLATFORM_COMMISSION_RATE",
    "SERVICE_FEE_RATE",
    "TAX_RATE",
)
MIN_SECRET_LENGTH = 32

_REDIS_URL = re.compile(r"^rediss?://")
_RATE = re.compile(r"^\d+\s*/\s*(second|minute|hour|day)s?$", re.IGNORECASE)
_ALIASES = {field.alias for field in Settings.model_fields.values() if field.alias}


def _check_database_url(value: str, errors: list[str]) -> None:
    try:
        url = make_url(value)
    except ArgumentError:
        errors.append("DATABASE_URL is not a valid SQLAlchemy URL")
        return
    if "+" not in url.drivername:
        errors.append("DATABASE_URL must name an async driver (e.g. postgresql+asyncpg)")


def collect_problems(env: dict[str, str]) -> tuple[list[str], list[str]]:
    """Return ``(errors, warnings)`` for the given environment mapping."""
    errors: list[str] = []
    warnings: list[str] = []

    for name in REQUIRED_VARS:
        if not env.get(name):
            errors.append(f"Missing required variable {name}")
    for name in OPTIONAL_VARS:
        if not env.get(name):
            warnings.append(f"Optional variable {name} is not set")

    if env.get("DATABASE_URL"):
        _check_database_url(env["DATABASE_URL"], errors)
    if env.get("REDIS_URL") and not _REDIS_URL.match(env["REDIS_URL"]):
        errors.append("REDIS_URL must start with redis:// or rediss://")
    secret = env.get("JWT_SECRET_KEY", "")
    if secret and len(secret) < MIN_SECRET_LENGTH:
        warnings.append(
            f"JWT_SECRET_KEY is shorter than {MIN_SECRET_LENGTH} characters"
        )
    for name in ("RATE_LIMIT_DEFAULT", "RATE_LIMIT_PROMO_VALIDATE"):
        if env.get(name) and not _RATE.match(env[name].strip()):
            errors.append(f"{name} must look like '20/minute'")

    if errors:
        return errors, warnings
    try:
        settings = Settings(_env_file=None, **{key: env[key] for key in _ALIASES if key in env})  # type: ignore[call-arg]
    except ValidationError as exc:
        errors.extend(f"{'.'.join(map(str, e['loc']))}: {e['msg']}" for e in exc.errors())
        return errors, warnings

    for name, value in (
        ("PLATFORM_COMMISSION_RATE", settings.platform_commission_rate),
        ("PLATFORM_HOLDBACK_RATE", settings.platform_holdback_rate),
        ("SERVICE_FEE_RATE", settings.service_fee_rate),
        ("TAX_RATE", settings.tax_rate),
    ):
        if not 0 <= value <= 100:
            errors.append(f"{name} must be between 0 and 100")
    for name, ttl in (
        ("CACHE_TTL_TRIPS", settings.cache_ttl_trips),
        ("CACHE_TTL_BOOKINGS", settings.cache_ttl_bookings),
        ("CACHE_TTL_USERS", settings.cache_ttl_users),
        ("CACHE_TTL_PROMOS", settings.cache_ttl_promos),
        ("CACHE_TTL_ANALYTICS", settings.cache_ttl_analytics),
        ("CACHE_TTL_DEFAULT", settings.cache_ttl_default),
    ):
        if ttl <= 0:
            errors.append(f"{name} must be a positive number of seconds")
    if settings.app_env == "production" and settings.cors_allow_credentials:
        if "*" in settings.cors_allow_origins:
            errors.append("CORS_ALLOW_ORIGINS cannot be '*' when credentials are allowed")
    return errors, warnings


def main() -> None:
    parser = argparse.ArgumentParser(description="Validate Travellr environment variables")
    parser.add_argument(
        "--strict", action="store_true", help="Treat warnings as failures"
    )
    args = parser.parse_args()

    errors, warnings = collect_problems(dict(os.environ))
    for warning in warnings:
        print(f"WARNING: {warning}")
    for error in errors:
        print(f"ERROR: {error}")
    if errors or (args.strict and warnings):
        print("Environment validation failed.")
        sys.exit(1)
    print("Environment looks good.")


if __name__ == "__main__":
    main()
