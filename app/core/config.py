"""
Application Configuration

Uses Pydantic Settings for environment variable management with validation.
"""

from decimal import Decimal
from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str
    DATABASE_SSL: bool = False

    # Security
    SECRET_KEY: str
    ALGORITHM: str = "HS256"

    # Environment
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # Notification dispatch (empty = log only)
    NOTIFICATION_WEBHOOK_URL: str = ""

    # Certificates
    CERTIFICATES_DIR: str = "static/certificates"
    CERTIFICATE_CODE_PREFIX: str = "CERT"

    # Payments
    CURRENCY_QUANTUM: Decimal = Decimal("0.01")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache ensures settings are only loaded once.
    """
    return Settings()


# Global settings instance
settings = get_settings()
