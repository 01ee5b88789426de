"""
Centralized configuration for the Guidepost session client.

All settings are loaded from environment variables with sensible defaults.
Variables are prefixed with GUIDEPOST_ (e.g., GUIDEPOST_AUTH_API_URL).
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="GUIDEPOST_",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Guidepost"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"

    # Remote services
    auth_api_url: str = "https://0p19v2252j.execute-api.us-east-1.amazonaws.com/prod"
    upload_service_url: str = "http://localhost:3000"
    analysis_service_url: str = "http://localhost:3001"

    # Timeouts (seconds)
    request_timeout: float = 30.0
    resource_timeout: float = 60.0
    upload_timeout: float = 300.0

    # Credential store
    credential_store_dir: Path = Path.home() / ".guidepost" / "credentials"
    credential_access_group: str = "group.com.guidepost.shared"
    credential_encryption_secret: Optional[str] = None
    credential_encryption_salt: Optional[str] = None

    # Local preferences (upload counters)
    preferences_path: Path = Path.home() / ".guidepost" / "preferences.json"

    # Session & entitlement
    token_expiry_leeway_seconds: int = 300  # 5 minutes
    trial_upload_limit: int = 10
    subscription_product_ids: list[str] = [
        "com.gambrell.guidepost2026.pro.monthly",
        "com.gambrell.guidepost2026.pro.yearly",
    ]
    guest_email_domain: str = "guest.guidepost.app"

    # Library
    library_refresh_delay: Optional[float] = 0.5  # reload after upload, None disables


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Apply the configured log level to the root logger."""
    settings = settings or get_settings()
    level = logging.DEBUG if settings.debug else settings.log_level.upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
