"""Application configuration via pydantic settings."""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path

from typing import Any

from pydantic import Field
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Typed application configuration."""

    app_env: str = Field("development", alias="APP_ENV")
    app_name: str = Field("Travellr API", alias="APP_NAME")
    api_v1_prefix: str = "/api/v1"

    database_url: str = Field(
        "sqlite+aiosqlite:///./travellr.db", alias="DATABASE_URL"
    )
    sync_database_url: str | None = Field(default=None, alias="SYNC_DATABASE_URL")

    redis_url: str | None = Field(default=None, alias="REDIS_URL")

    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(60, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    cache_ttl_trips: int = Field(60 * 30, alias="CACHE_TTL_TRIPS")
    cache_ttl_bookings: int = Field(60 * 15, alias="CACHE_TTL_BOOKINGS")
    cache_ttl_users: int = Field(60 * 60, alias="CACHE_TTL_USERS")
    cache_ttl_promos: int = Field(60 * 60, alias="CACHE_TTL_PROMOS")
    cache_ttl_analytics: int = Field(60 * 5, alias="CACHE_TTL_ANALYTICS")
    cache_ttl_default: int = Field(60 * 10, alias="CACHE_TTL_DEFAULT")

    platform_commission_rate: Decimal = Field(
        Decimal("10"), alias="PLATFORM_COMMISSION_RATE"
    )
    platform_holdback_rate: Decimal = Field(
        Decimal("0"), alias="PLATFORM_HOLDBACK_RATE"
    )
    service_fee_rate: Decimal = Field(Decimal("10"), alias="SERVICE_FEE_RATE")
    tax_rate: Decimal = Field(Decimal("0"), alias="TAX_RATE")

    cors_allow_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000"],
        alias="CORS_ALLOW_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=False, alias="CORS_ALLOW_CREDENTIALS")

    rate_limit_default: str = Field("100/minute", alias="RATE_LIMIT_DEFAULT")
    rate_limit_promo_validate: str = Field(
        "20/minute", alias="RATE_LIMIT_PROMO_VALIDATE"
    )

    model_config = SettingsConfigDict(
        env_file=Path(__file__).resolve().parents[3] / ".env",
        case_sensitive=False,
        populate_by_name=True,
    )

    @field_validator("cors_allow_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""
    return Settings()  # type: ignore[call-arg]
