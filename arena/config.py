"""Application configuration management."""
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from sqlalchemy.engine.url import make_url, URL
from typing import Optional
import logging

SQLITE_LOCAL_URL = "sqlite+aiosqlite:///./arena.db"
DEFAULT_ADMIN_KEY = "dev-admin-key-change-in-production"
DEFAULT_WEBHOOK_SECRET = "dev-webhook-secret-change-in-production"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = SQLITE_LOCAL_URL
    db_pool_size: int = 5
    db_max_overflow: int = 10

    # Redis (optional, falls back to in-memory locks)
    redis_url: str = ""

    # Application
    environment: str = "development"
    frontend_url: str = "http://localhost:3000"
    admin_api_key: str = DEFAULT_ADMIN_KEY
    payment_webhook_secret: str = DEFAULT_WEBHOOK_SECRET

    # Wallet (whole currency units)
    min_deposit_amount: int = 1
    max_deposit_amount: int = 50000
    transactions_page_size: int = 20
    max_page_size: int = 100

    # Matches
    match_auto_complete_hours: int = 2  # Live matches older than this are marked completed
    lock_timeout_seconds: int = 10  # Shared timeout for registration locks

    @model_validator(mode="after")
    def validate_all_config(self):
        """Validate security configuration and normalize Postgres URLs."""
        logger = logging.getLogger(__name__)

        if self.environment == "production":
            if self.admin_api_key == DEFAULT_ADMIN_KEY:
                raise ValueError("admin_api_key must be changed from default value in production")
            if self.payment_webhook_secret == DEFAULT_WEBHOOK_SECRET:
                raise ValueError("payment_webhook_secret must be changed from default value in production")

        if self.min_deposit_amount < 1:
            raise ValueError("min_deposit_amount must be at least 1")
        if self.max_deposit_amount < self.min_deposit_amount:
            raise ValueError("max_deposit_amount must not be lower than min_deposit_amount")

        if self.transactions_page_size < 1 or self.transactions_page_size > self.max_page_size:
            raise ValueError(f"transactions_page_size must be between 1 and {self.max_page_size}")

        if self.match_auto_complete_hours < 1:
            raise ValueError("match_auto_complete_hours must be at least 1 hour")

        # Database URL normalization
        url = self.database_url
        if not url:
            logger.warning("Empty DATABASE_URL, using SQLite fallback")
            self.database_url = SQLITE_LOCAL_URL
            return self

        parsed: Optional[URL] = None
        try:
            parsed = make_url(url)
        except Exception as e:  # pragma: no cover - malformed env value
            logger.error(f"Failed to parse DATABASE_URL: {e}")
            logger.warning("Invalid DATABASE_URL; falling back to default sqlite database.")
            self.database_url = SQLITE_LOCAL_URL
            return self

        drivername = parsed.drivername
        if drivername.startswith("postgres") and "+asyncpg" not in drivername:
            old_drivername = drivername
            parsed = parsed.set(drivername="postgresql+asyncpg")
            logger.info(f"Driver normalized: {old_drivername} -> {parsed.drivername}")

        # Use render_as_string to properly re-encode special characters in password
        self.database_url = parsed.render_as_string(hide_password=False)
        return self

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
