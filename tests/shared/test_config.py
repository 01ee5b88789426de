"""Tests for shared/config.py."""

import logging
import os
from unittest.mock import patch

from shared.config import Settings, get_settings, configure_logging


class TestSettings:
    def test_default_values(self):
        """Settings should have sensible defaults."""
        settings = Settings(_env_file=None)
        assert settings.app_name == "Guidepost"
        assert settings.debug is False
        assert settings.log_level == "INFO"
        assert settings.request_timeout == 30.0
        assert settings.upload_timeout == 300.0
        assert settings.token_expiry_leeway_seconds == 300
        assert settings.trial_upload_limit == 10
        assert settings.credential_access_group == "group.com.guidepost.shared"

    def test_default_product_ids_monthly_first(self):
        """The monthly product should be listed before the yearly one."""
        settings = Settings(_env_file=None)
        assert settings.subscription_product_ids == [
            "com.gambrell.guidepost2026.pro.monthly",
            "com.gambrell.guidepost2026.pro.yearly",
        ]

    def test_encryption_not_configured_by_default(self):
        """Encryption secret and salt must be supplied explicitly."""
        settings = Settings(_env_file=None)
        assert settings.credential_encryption_secret is None
        assert settings.credential_encryption_salt is None

    def test_loads_from_env(self):
        """Settings should load prefixed environment variables."""
        with patch.dict(os.environ, {
            "GUIDEPOST_DEBUG": "true",
            "GUIDEPOST_TRIAL_UPLOAD_LIMIT": "25",
            "GUIDEPOST_AUTH_API_URL": "https://auth.example.com",
        }):
            settings = Settings(_env_file=None)
            assert settings.debug is True
            assert settings.trial_upload_limit == 25
            assert settings.auth_api_url == "https://auth.example.com"

    def test_ignores_unprefixed_env(self):
        """Unprefixed variables should not leak into settings."""
        with patch.dict(os.environ, {"TRIAL_UPLOAD_LIMIT": "99"}):
            settings = Settings(_env_file=None)
            assert settings.trial_upload_limit == 10


class TestGetSettings:
    def test_get_settings_returns_settings_instance(self):
        """get_settings should return a Settings instance."""
        get_settings.cache_clear()
        settings = get_settings()
        assert isinstance(settings, Settings)

    def test_get_settings_is_cached(self):
        """get_settings should return the same instance on repeated calls."""
        get_settings.cache_clear()
        assert get_settings() is get_settings()


class TestConfigureLogging:
    def test_applies_log_level(self):
        """configure_logging should pass the configured level to basicConfig."""
        with patch("shared.config.logging.basicConfig") as basic_config:
            configure_logging(Settings(_env_file=None, log_level="warning"))
        assert basic_config.call_args.kwargs["level"] == "WARNING"

    def test_debug_forces_debug_level(self):
        """Debug mode should log everything."""
        with patch("shared.config.logging.basicConfig") as basic_config:
            configure_logging(Settings(_env_file=None, debug=True))
        assert basic_config.call_args.kwargs["level"] == logging.DEBUG
