"""Unit tests for configuration module."""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from src.core.config import Settings, get_settings

REQUIRED_ENV = {
    "SUPABASE_URL": "https://test.supabase.co",
    "SUPABASE_SECRET_KEY": "test-secret",
    "JWT_SECRET": "a-jwt-secret-that-is-at-least-32-characters",
}


class TestSettings:
    """Tests for Settings class."""

    def test_settings_loads_from_environment(self) -> None:
        """Test that Settings loads values from environment variables."""
        env_vars = {
            **REQUIRED_ENV,
            "APP_NAME": "test-app",
            "APP_ENV": "testing",
            "DEBUG": "true",
            "PORT": "9000",
            "SESSION_TOKEN_TTL_SECONDS": "3600",
            "PAYMENT_CURRENCY": "usd",
        }

        with patch.dict(os.environ, env_vars, clear=True):
            settings = Settings(_env_file=None)

        assert settings.app_name == "test-app"
        assert settings.app_env == "testing"
        assert settings.debug is True
        assert settings.port == 9000
        assert settings.session_token_ttl_seconds == 3600
        assert settings.payment_currency == "usd"

    def test_token_lifetimes_default_to_ten_hours_and_ten_minutes(self) -> None:
        with patch.dict(os.environ, REQUIRED_ENV, clear=True):
            settings = Settings(_env_file=None)

        assert settings.session_token_ttl_seconds == 36000
        assert settings.reset_token_ttl_seconds == 600
        assert settings.payment_currency == "cad"

    def test_settings_cors_origins_list(self) -> None:
        """Test that CORS origins are correctly parsed into a list."""
        env_vars = {**REQUIRED_ENV, "CORS_ORIGINS": "http://localhost:3000, http://example.com , "}

        with patch.dict(os.environ, env_vars, clear=True):
            settings = Settings(_env_file=None)

        assert settings.cors_origins_list == ["http://localhost:3000", "http://example.com"]

    def test_checkout_redirect_urls(self) -> None:
        env_vars = {**REQUIRED_ENV, "FRONTEND_URL": "https://market.campus.edu"}

        with patch.dict(os.environ, env_vars, clear=True):
            settings = Settings(_env_file=None)

        assert settings.checkout_success_url == (
            "https://market.campus.edu/payment/success?session_id={CHECKOUT_SESSION_ID}"
        )
        assert settings.checkout_cancel_url == "https://market.campus.edu/payment/cancel"

    def test_missing_jwt_secret_fails(self) -> None:
        """Test that the signing secret is required."""
        env_vars = {k: v for k, v in REQUIRED_ENV.items() if k != "JWT_SECRET"}

        with patch.dict(os.environ, env_vars, clear=True):
            with pytest.raises(ValidationError):
                Settings(_env_file=None)

    def test_production_rejects_short_secret(self) -> None:
        env_vars = {**REQUIRED_ENV, "APP_ENV": "production", "JWT_SECRET": "short"}

        with patch.dict(os.environ, env_vars, clear=True):
            with pytest.raises(ValidationError):
                Settings(_env_file=None)

    def test_is_production(self) -> None:
        with patch.dict(os.environ, {**REQUIRED_ENV, "APP_ENV": "production"}, clear=True):
            assert Settings(_env_file=None).is_production is True


class TestGetSettings:
    """Tests for get_settings function."""

    def test_get_settings_returns_cached_instance(self) -> None:
        """Test that get_settings returns the same cached instance."""
        get_settings.cache_clear()

        assert get_settings() is get_settings()

        get_settings.cache_clear()
