"""Application configuration using pydantic-settings.

All environment variables should be accessed through the settings object
rather than using os.getenv() directly. This ensures:
1. Type validation at startup
2. Centralized configuration
3. Documentation of available settings
4. Proper defaults
"""

from decimal import Decimal
from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra env vars
    )

    # Database - SQLite for local dev, PostgreSQL in production
    database_url: str = "sqlite:///./tableside.db"

    # Redis - optional, used for caching sessions and menu reads
    redis_url: Optional[str] = None

    # Security
    secret_key: str = "change-me-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 1440  # 24 hours

    # CORS - comma-separated origins or "*" for development only
    cors_origins: str = "http://localhost:3000,http://localhost:5173"

    # Server
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # API
    api_v1_prefix: str = "/api/v1"

    # Rate limiting
    rate_limit_enabled: bool = True

    # ==========================================================================
    # Ordering sessions
    # ==========================================================================
    session_expiration_hours: int = Field(default=4, ge=1, le=24)
    session_cache_ttl_seconds: int = 3600
    session_cleanup_interval_seconds: int = 900  # 0 disables the background task

    # ==========================================================================
    # Orders, desks and menu
    # ==========================================================================
    service_fee_percent: Decimal = Decimal("10")
    default_desk_capacity: int = 4
    default_shop_id: int = 1
    menu_cache_ttl_seconds: int = 300

    # Connection pool (ignored for SQLite)
    db_pool_size: int = 20
    db_max_overflow: int = 40

    # Seed a demo shop on startup when the database is empty
    seed_demo_data: bool = False
    seed_admin_username: str = "admin"
    seed_admin_password: str = "change-me-admin"

    @field_validator("service_fee_percent")
    @classmethod
    def validate_service_fee(cls, v: Decimal) -> Decimal:
        if v < 0 or v > 100:
            raise ValueError(f"service_fee_percent must be between 0 and 100, got {v}")
        return v

    @field_validator("secret_key")
    @classmethod
    def validate_secret_key(cls, v: str) -> str:
        if v == "change-me-in-production" or len(v) < 32:
            import warnings
            warnings.warn(
                "SECRET_KEY is the default or shorter than 32 characters. "
                "Set SECRET_KEY environment variable.",
                UserWarning,
                stacklevel=2,
            )
        return v

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Validate settings for production safety."""
        if not self.debug:
            if self.secret_key == "change-me-in-production":
                raise ValueError(
                    "FATAL: Cannot start in production mode with default SECRET_KEY. "
                    "Set a secure SECRET_KEY environment variable (minimum 32 characters)."
                )
            if len(self.secret_key) < 32:
                raise ValueError(
                    f"FATAL: SECRET_KEY must be at least 32 characters in production mode "
                    f"(current length: {len(self.secret_key)})."
                )
        return self

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins into a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
