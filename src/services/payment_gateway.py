"""Stripe Checkout integration behind a narrow gateway interface."""

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Protocol
from uuid import UUID

import stripe

from src.api.middleware.error_handler import ConflictError, UpstreamError, WebhookSignatureError
from src.core.config import Settings, get_settings
from src.core.stripe import get_stripe
from src.models.order import Order

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckoutHandle:
    """A hosted checkout page created by the payment processor."""

    session_id: str
    url: str


class PaymentGateway(Protocol):
    def create_checkout_session(
        self,
        payment_id: UUID,
        order: Order,
        success_url: str,
        cancel_url: str,
    ) -> CheckoutHandle: ...

    def verify_signature(self, payload: bytes, sig_header: str | None) -> None: ...


def to_minor_units(amount: Decimal) -> int:
    """Convert a decimal amount to integer cents."""
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class StripePaymentGateway:
    """PaymentGateway backed by Stripe Checkout Sessions."""

    def __init__(self, stripe_module: Any = None, settings: Settings | None = None) -> None:
        self.stripe = stripe_module or get_stripe()
        self.settings = settings or get_settings()

    def create_checkout_session(
        self,
        payment_id: UUID,
        order: Order,
        success_url: str,
        cancel_url: str,
    ) -> CheckoutHandle:
        """Create a Checkout Session for an order.

        The idempotency key is derived from the payment id, so concurrent or
        retried calls for the same payment get the same session back.

        Args:
            payment_id: The pending payment the session settles.
            order: The order being paid.
            success_url: Redirect after successful payment.
            cancel_url: Redirect if the buyer abandons checkout.

        Returns:
            CheckoutHandle: Session id and hosted page URL.

        Raises:
            UpstreamError: If Stripe is not configured or the API call fails.
            ConflictError: If an identical request is still being processed.
        """
        if not self.settings.stripe_secret_key:
            logger.error("Stripe secret key is not configured; cannot create checkout session")
            raise UpstreamError()

        line_items = [
            {
                "price_data": {
                    "currency": order.currency,
                    "product_data": {"name": item.title},
                    "unit_amount": to_minor_units(item.unit_price),
                },
                "quantity": item.quantity,
            }
            for item in order.items
        ]
        metadata = {
            "order_id": str(order.id),
            "payment_id": str(payment_id),
        }
        if order.bid_id:
            metadata["bid_id"] = str(order.bid_id)

        try:
            session = self.stripe.checkout.Session.create(
                mode="payment",
                line_items=line_items,
                success_url=success_url,
                cancel_url=cancel_url,
                client_reference_id=str(order.id),
                metadata=metadata,
                payment_intent_data={"description": f"Order #{order.id}"},
                idempotency_key=f"checkout-{payment_id}",
            )
        except stripe.IdempotencyError as e:
            logger.warning("Checkout session for payment %s already in progress: %s", payment_id, str(e))
            raise ConflictError("A checkout for this order is already in progress") from e
        except stripe.StripeError as e:
            logger.error("Stripe error creating checkout session for payment %s: %s", payment_id, str(e))
            raise UpstreamError() from e

        logger.info("Created checkout session %s for order %s", session.id, order.id)
        return CheckoutHandle(session_id=session.id, url=session.url)

    def verify_signature(self, payload: bytes, sig_header: str | None) -> None:
        """Verify the Stripe-Signature header over the raw request body.

        Raises:
            WebhookSignatureError: If the header is missing, the secret is not
                configured, or the signature does not match.
        """
        if not sig_header:
            raise WebhookSignatureError("Missing Stripe-Signature header")

        secret = self.settings.stripe_webhook_secret
        if not secret:
            logger.error("Stripe webhook secret is not configured; rejecting webhook")
            raise WebhookSignatureError()

        try:
            self.stripe.WebhookSignature.verify_header(
                payload.decode("utf-8"),
                sig_header,
                secret,
                self.settings.stripe_webhook_tolerance_seconds,
            )
        except (stripe.SignatureVerificationError, UnicodeDecodeError) as e:
            logger.warning("Invalid webhook signature: %s", str(e))
            raise WebhookSignatureError() from e
