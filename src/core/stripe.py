"""Stripe client configuration and singleton."""

import logging
from typing import Any

import stripe

from src.core.config import get_settings

logger = logging.getLogger(__name__)


def configure_stripe() -> None:
    """Configure Stripe SDK with API key from settings.

    This should be called once at application startup.
    If Stripe keys are not configured, Stripe operations will fail with clear errors.
    """
    settings = get_settings()
    stripe.max_network_retries = settings.stripe_max_network_retries
    if settings.stripe_secret_key:
        stripe.api_key = settings.stripe_secret_key
    else:
        logger.warning("Stripe secret key not configured. Checkout will not work.")
    if not settings.stripe_webhook_secret:
        logger.warning("Stripe webhook secret not configured. All webhooks will be rejected.")


def get_stripe() -> stripe:
    """Get the configured Stripe module.

    Returns:
        stripe: The Stripe module with API key configured.

    Note:
        Stripe SDK uses module-level configuration, so this returns
        the stripe module itself. Ensure configure_stripe() has been
        called before using Stripe API calls.
    """
    return stripe


async def check_stripe_configuration() -> dict[str, Any]:
    """Check that the keys needed for checkout and webhooks are present.

    Returns:
        dict: Status with 'healthy' boolean and optional 'error' message.
    """
    settings = get_settings()
    missing = [
        name
        for name, value in (
            ("STRIPE_SECRET_KEY", settings.stripe_secret_key),
            ("STRIPE_WEBHOOK_SECRET", settings.stripe_webhook_secret),
        )
        if not value
    ]
    if missing:
        return {"healthy": False, "error": f"Missing {', '.join(missing)}"}
    return {"healthy": True}
