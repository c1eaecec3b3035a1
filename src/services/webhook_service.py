"""Stripe webhook processing: settle payments and cascade to orders and bids."""

import logging
from enum import Enum
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError

from src.api.middleware.error_handler import WebhookPayloadError
from src.models.bid import BidStatus
from src.models.order import OrderStatus
from src.models.payment import Payment, PaymentStatus
from src.repositories.bid_repository import BidRepository, SupabaseBidRepository
from src.repositories.order_repository import OrderRepository, SupabaseOrderRepository
from src.repositories.payment_repository import PaymentRepository, SupabasePaymentRepository
from src.schemas.webhook import CheckoutSessionObject, StripeEvent
from src.services.notification_service import NotificationService, Notifier
from src.services.payment_gateway import PaymentGateway, StripePaymentGateway

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"
ASYNC_PAYMENT_SUCCEEDED = "checkout.session.async_payment_succeeded"
ASYNC_PAYMENT_FAILED = "checkout.session.async_payment_failed"
CHECKOUT_EXPIRED = "checkout.session.expired"

SETTLED_PAYMENT_STATUSES = {"paid", "no_payment_required"}


class WebhookOutcome(str, Enum):
    """What processing did with a verified event."""

    APPLIED = "applied"
    DUPLICATE = "duplicate"
    UNMATCHED = "unmatched"
    AWAITING_PAYMENT = "awaiting_payment"
    IGNORED = "ignored"


class WebhookService:
    """Consumes signed Stripe events.

    Deliveries may repeat, arrive out of order and race each other. Every
    mutation is a conditional update on the expected current status, so a
    replayed event changes nothing and a partially applied one is completed.
    """

    def __init__(
        self,
        payments: PaymentRepository | None = None,
        orders: OrderRepository | None = None,
        bids: BidRepository | None = None,
        gateway: PaymentGateway | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self.payments = payments or SupabasePaymentRepository()
        self.orders = orders or SupabaseOrderRepository()
        self.bids = bids or SupabaseBidRepository()
        self.gateway = gateway or StripePaymentGateway()
        self.notifier = notifier or NotificationService()

    async def handle(self, payload: bytes, sig_header: str | None) -> WebhookOutcome:
        """Verify, parse and apply one webhook delivery.

        Args:
            payload: Raw request body, exactly as received.
            sig_header: Stripe-Signature header value.

        Returns:
            WebhookOutcome: How the event was handled.

        Raises:
            WebhookSignatureError: If the signature is missing or invalid.
            WebhookPayloadError: If the body is not a well-formed event.
        """
        self.gateway.verify_signature(payload, sig_header)

        try:
            event = StripeEvent.model_validate_json(payload)
        except PydanticValidationError as e:
            logger.warning("Rejecting malformed webhook payload: %s", str(e))
            raise WebhookPayloadError() from e

        if event.type not in (CHECKOUT_COMPLETED, ASYNC_PAYMENT_SUCCEEDED, ASYNC_PAYMENT_FAILED, CHECKOUT_EXPIRED):
            logger.info("Ignoring unhandled event type: %s", event.type)
            return WebhookOutcome.IGNORED

        try:
            session = event.checkout_session()
        except PydanticValidationError as e:
            logger.warning("Rejecting %s event %s with malformed session: %s", event.type, event.id, str(e))
            raise WebhookPayloadError() from e

        if event.type == CHECKOUT_COMPLETED:
            if session.payment_status not in SETTLED_PAYMENT_STATUSES:
                logger.info("Checkout session %s completed, awaiting async payment", session.id)
                return WebhookOutcome.AWAITING_PAYMENT
            outcome = self._apply_success(event, session)
        elif event.type == ASYNC_PAYMENT_SUCCEEDED:
            outcome = self._apply_success(event, session)
        else:
            outcome = self._apply_failure(event, session)

        logger.info(
            "Processed %s event %s for session %s: %s",
            event.type,
            event.id,
            session.id,
            outcome.value,
            extra={"event_id": event.id, "outcome": outcome.value},
        )
        return outcome

    def _find_payment(self, event: StripeEvent, session: CheckoutSessionObject) -> Payment | None:
        payment = self.payments.get_by_external_reference(session.id)
        if payment is None:
            payment = self._claim_by_metadata(session)
        if payment is None:
            logger.warning(
                "No payment for checkout session %s (event %s); recorded for reconciliation",
                session.id,
                event.id,
            )
            self.payments.record_unmatched_event(event.id, event.type, session.id, event.data.object)
        return payment

    def _claim_by_metadata(self, session: CheckoutSessionObject) -> Payment | None:
        """Resolve a session that arrived before checkout stored its id.

        The gateway writes our payment id into the session metadata. The
        session is attached with the same conditional update checkout uses,
        so whichever side writes first wins and the other sees it.
        """
        raw_payment_id = session.metadata.get("payment_id")
        if not raw_payment_id:
            return None
        try:
            payment_id = UUID(raw_payment_id)
        except ValueError:
            logger.warning("Checkout session %s has malformed payment_id metadata: %s", session.id, raw_payment_id)
            return None

        attached = self.payments.attach_checkout(payment_id, session.id, session.url)
        if attached is not None:
            logger.info("Attached checkout session %s to payment %s from webhook", session.id, payment_id)
            return attached

        payment = self.payments.get(payment_id)
        if payment is None or payment.external_reference_id != session.id:
            return None
        return payment

    def _apply_success(self, event: StripeEvent, session: CheckoutSessionObject) -> WebhookOutcome:
        payment = self._find_payment(event, session)
        if payment is None:
            return WebhookOutcome.UNMATCHED

        outcome = WebhookOutcome.DUPLICATE
        if payment.status == PaymentStatus.PENDING:
            updated = self.payments.compare_and_set_status(payment.id, PaymentStatus.PENDING, PaymentStatus.SUCCEEDED)
            if updated is not None:
                payment = updated
                outcome = WebhookOutcome.APPLIED
            else:
                payment = self.payments.get(payment.id) or payment

        if payment.status == PaymentStatus.FAILED:
            logger.warning("Ignoring success for payment %s already marked failed", payment.id)
            return WebhookOutcome.IGNORED

        if payment.status == PaymentStatus.SUCCEEDED:
            self._cascade_success(payment)
        return outcome

    def _cascade_success(self, payment: Payment) -> None:
        order = self.orders.compare_and_set_status(payment.order_id, OrderStatus.PENDING, OrderStatus.PAID)
        if order is not None:
            logger.info("Order %s marked as paid", order.id)
            self.notifier.notify(
                order.user_id,
                "payment_succeeded",
                "Your payment was received.",
                {"order_id": str(order.id), "payment_id": str(payment.id)},
            )

        if payment.bid_id is None:
            return

        bid = self.bids.compare_and_set_status(payment.bid_id, BidStatus.ACCEPTED, BidStatus.PAID)
        if bid is not None:
            logger.info("Bid %s marked as paid", bid.id)
            self.notifier.notify(
                bid.seller_id,
                "bid_paid",
                "The buyer has paid for your accepted bid.",
                {"bid_id": str(bid.id), "order_id": str(payment.order_id)},
            )

    def _apply_failure(self, event: StripeEvent, session: CheckoutSessionObject) -> WebhookOutcome:
        payment = self._find_payment(event, session)
        if payment is None:
            return WebhookOutcome.UNMATCHED

        if payment.status != PaymentStatus.PENDING:
            logger.info("Payment %s already %s; ignoring %s", payment.id, payment.status.value, event.type)
            return WebhookOutcome.DUPLICATE

        updated = self.payments.compare_and_set_status(
            payment.id,
            PaymentStatus.PENDING,
            PaymentStatus.FAILED,
            failure_reason=event.type,
        )
        if updated is None:
            return WebhookOutcome.DUPLICATE

        logger.info("Payment %s failed (%s); order %s left pending for retry", payment.id, event.type, payment.order_id)
        self.notifier.notify(
            payment.user_id,
            "payment_failed",
            "Your payment did not go through. You can try again.",
            {"order_id": str(payment.order_id), "payment_id": str(payment.id)},
        )
        return WebhookOutcome.APPLIED
