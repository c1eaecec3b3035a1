"""Application configuration management using Pydantic Settings."""

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    Required settings will raise validation errors if not provided.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="campus-marketplace-backend", description="Application name")
    app_env: str = Field(default="development", description="Environment (development/staging/production)")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # Server
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8080, description="Server port")

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="Comma-separated list of allowed CORS origins",
    )

    # Supabase
    supabase_url: str = Field(..., description="Supabase project URL")
    supabase_secret_key: str = Field(..., description="Supabase secret key for backend operations")

    # Identity tokens
    jwt_secret: str = Field(..., description="HMAC secret used to sign identity tokens")
    session_token_ttl_seconds: int = Field(default=36000, gt=0, description="Session token lifetime (10 hours)")
    reset_token_ttl_seconds: int = Field(default=600, gt=0, description="Password reset token lifetime (10 minutes)")

    # Stripe
    stripe_secret_key: str = Field(default="", description="Stripe secret API key")
    stripe_webhook_secret: str = Field(default="", description="Stripe webhook signing secret")
    stripe_webhook_tolerance_seconds: int = Field(default=300, description="Max age of a webhook signature timestamp")
    stripe_max_network_retries: int = Field(default=2, description="Retries the Stripe SDK performs on network errors")
    payment_currency: str = Field(default="cad", description="ISO currency code for checkout sessions")

    # Frontend
    frontend_url: str = Field(
        default="http://localhost:3000",
        description="Frontend application URL used for checkout redirects",
    )

    @model_validator(mode="after")
    def check_production_secrets(self) -> "Settings":
        """Refuse to start in production with a short signing secret."""
        if self.is_production and len(self.jwt_secret) < 32:
            raise ValueError("JWT_SECRET must be at least 32 characters in production")
        return self

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins string into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == "production"

    @property
    def checkout_success_url(self) -> str:
        """Redirect target after a completed Stripe Checkout."""
        return f"{self.frontend_url}/payment/success?session_id={{CHECKOUT_SESSION_ID}}"

    @property
    def checkout_cancel_url(self) -> str:
        """Redirect target when the buyer abandons Stripe Checkout."""
        return f"{self.frontend_url}/payment/cancel"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton.

    Returns:
        Settings: Application settings instance.

    Note:
        Settings are cached using lru_cache for performance.
        Call get_settings.cache_clear() to reload settings.
    """
    return Settings()
