"""Webhook API routes for the payment processor."""

import logging

from fastapi import APIRouter, Request, status

from src.api.deps import WebhookServiceDep
from src.schemas.webhook import WebhookAck

logger = logging.getLogger(__name__)

router = APIRouter(tags=["webhooks"])


@router.post(
    "/webhook",
    response_model=WebhookAck,
    status_code=status.HTTP_200_OK,
    summary="Handle Stripe webhooks",
    description="Receives Stripe events. The Stripe-Signature header is verified before anything is processed.",
    responses={400: {"description": "Missing or invalid signature, or malformed event"}},
)
async def stripe_webhook(request: Request, service: WebhookServiceDep) -> WebhookAck:
    """Handle Stripe webhook events.

    Handles:
    - checkout.session.completed: settles the payment when paid
    - checkout.session.async_payment_succeeded: settles a delayed payment
    - checkout.session.async_payment_failed: fails the payment, order stays payable
    - checkout.session.expired: fails the payment, order stays payable

    Every verified event is acknowledged with 200, including replays and
    events that match no payment, so Stripe stops retrying.

    Args:
        request: FastAPI request object for reading raw body and headers.
        service: Webhook service.

    Returns:
        WebhookAck: Acknowledgment with the processing outcome.
    """
    # Signature is computed over the exact bytes received
    payload = await request.body()
    sig_header = request.headers.get("stripe-signature")

    logger.debug("Received webhook, payload size: %d bytes", len(payload))

    outcome = await service.handle(payload, sig_header)
    return WebhookAck(outcome=outcome.value)
