"""Application configuration using Pydantic settings."""

from functools import lru_cache
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Shelf"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Database (SQLite for local development, asyncpg URL in production)
    DATABASE_URL: str = "sqlite+aiosqlite:///./shelf.db"
    DB_ECHO: bool = False
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"

    # Security
    SECRET_KEY: str = "dev-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    REFRESH_TOKEN_EXPIRE_DAYS: int = 30

    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Monitoring
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "text"  # 'text' or 'json'
    ENVIRONMENT: str = "development"  # development, staging, production

    # Email (SMTP). Sending raises MissingConfiguration while SMTP_HOST or
    # SMTP_FROM_EMAIL is unset, unless EMAIL_DRY_RUN is enabled.
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_USERNAME: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_FROM_EMAIL: Optional[str] = None
    SMTP_FROM_NAME: str = "Shelf"
    SMTP_USE_TLS: bool = True  # STARTTLS on 587
    EMAIL_DRY_RUN: bool = False  # Log outgoing mail instead of sending it

    # Public URL of the web app, used to build links in emails
    APP_BASE_URL: Optional[str] = None

    # Household / invitations
    INVITE_TOKEN_TTL_DAYS: int = 7
    EMAIL_VERIFICATION_TTL_HOURS: int = 24
    # Abuse limit for resend-verification; the 30 s cooldown between clicks is client-side
    RESEND_VERIFICATION_MAX_REQUESTS: int = 3
    RESEND_VERIFICATION_WINDOW_SECONDS: int = 3600
    DISPLAY_NAME_MAX_LENGTH: int = 32

    # Token endpoints (accept/decline/verify) per-IP limit
    TOKEN_ENDPOINT_MAX_REQUESTS: int = 20
    TOKEN_ENDPOINT_WINDOW_SECONDS: int = 60

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    @field_validator("SECRET_KEY")
    @classmethod
    def validate_secret_key(cls, v: str) -> str:
        """Reject insecure SECRET_KEY values in production."""
        insecure_defaults = [
            "dev-secret-key-change-in-production",
            "your-secret-key-here",
            "change-me",
            "secret",
        ]

        import os

        environment = os.getenv("ENVIRONMENT", "development")

        if environment == "production" and (v in insecure_defaults or len(v) < 32):
            raise ValueError(
                "Insecure SECRET_KEY detected in production! "
                "Generate a secure key with: openssl rand -hex 32"
            )

        return v

    @field_validator("APP_BASE_URL")
    @classmethod
    def strip_base_url(cls, v: Optional[str]) -> Optional[str]:
        """Normalize the base URL so links can be joined with a leading slash."""
        if v is None:
            return None
        v = v.strip().rstrip("/")
        return v or None


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
