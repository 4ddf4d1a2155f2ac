"""Application configuration."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Tokens
    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    token_ttl_hours: int = Field(24, ge=1)

    # Shared secrets
    webhook_secret: str = "change-me-webhook"
    admin_secret: str = "change-me-admin"

    # Sessions
    max_devices: int = Field(2, ge=1)
    session_idle_minutes: int = Field(30, ge=1)
    session_sweep_interval_seconds: float = Field(300.0, gt=0)

    # Signal ledger
    ledger_capacity: int = Field(1000, ge=1)
    recent_signals: int = Field(10, ge=1)

    # Per-ingress casing policy: POST is the advisor path (verbatim),
    # GET is the canonical path (asset upper, direction lower)
    normalize_post_signals: bool = False
    normalize_get_signals: bool = True

    # Subscriptions
    default_subscription_months: int = Field(1, ge=1)

    # Password hashing cost (bcrypt log rounds)
    bcrypt_rounds: int = Field(10, ge=4, le=31)

    # Server
    host: str = "0.0.0.0"
    port: int = 3000
    debug: bool = False
    cors_origins: list[str] = ["*"]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
