"""Unit tests for the Stripe payment gateway."""

import hashlib
import hmac
import time
from decimal import Decimal
from unittest.mock import MagicMock
from uuid import uuid4

import pytest
import stripe

from src.api.middleware.error_handler import ConflictError, UpstreamError, WebhookSignatureError
from src.models.order import Order, OrderItem, OrderStatus
from src.services.payment_gateway import StripePaymentGateway, to_minor_units

WEBHOOK_SECRET = "whsec_gateway_test"


def sign(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    """Build a Stripe-Signature header the way Stripe does."""
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.{payload.decode('utf-8')}".encode("utf-8")
    signature = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


@pytest.fixture
def settings() -> MagicMock:
    settings = MagicMock()
    settings.stripe_secret_key = "sk_test_gateway"
    settings.stripe_webhook_secret = WEBHOOK_SECRET
    settings.stripe_webhook_tolerance_seconds = 300
    return settings


@pytest.fixture
def mock_stripe() -> MagicMock:
    module = MagicMock()
    module.checkout.Session.create.return_value = MagicMock(
        id="cs_test_abc", url="https://checkout.stripe.com/c/pay/cs_test_abc"
    )
    return module


@pytest.fixture
def order() -> Order:
    return Order(
        id=uuid4(),
        user_id=uuid4(),
        status=OrderStatus.PENDING,
        total_price=Decimal("100.00"),
        currency="cad",
        items=[OrderItem(listing_id=uuid4(), title="Mini fridge", quantity=1, unit_price=Decimal("100.00"))],
        bid_id=uuid4(),
    )


class TestToMinorUnits:
    @pytest.mark.parametrize(
        ("amount", "expected"),
        [(Decimal("100.00"), 10000), (Decimal("19.99"), 1999), (Decimal("0.005"), 1)],
    )
    def test_converts_to_cents(self, amount: Decimal, expected: int) -> None:
        assert to_minor_units(amount) == expected


class TestCreateCheckoutSession:
    """Tests for StripePaymentGateway.create_checkout_session."""

    def test_creates_session_with_idempotency_key(
        self, mock_stripe: MagicMock, settings: MagicMock, order: Order
    ) -> None:
        """Test that the session carries order metadata and a payment-derived key."""
        payment_id = uuid4()
        gateway = StripePaymentGateway(stripe_module=mock_stripe, settings=settings)

        handle = gateway.create_checkout_session(payment_id, order, "https://ok", "https://cancel")

        assert handle.session_id == "cs_test_abc"
        assert handle.url == "https://checkout.stripe.com/c/pay/cs_test_abc"
        kwargs = mock_stripe.checkout.Session.create.call_args.kwargs
        assert kwargs["mode"] == "payment"
        assert kwargs["idempotency_key"] == f"checkout-{payment_id}"
        assert kwargs["line_items"][0]["price_data"]["unit_amount"] == 10000
        assert kwargs["line_items"][0]["price_data"]["currency"] == "cad"
        assert kwargs["metadata"] == {
            "order_id": str(order.id),
            "payment_id": str(payment_id),
            "bid_id": str(order.bid_id),
        }
        assert kwargs["payment_intent_data"] == {"description": f"Order #{order.id}"}

    def test_stripe_error_is_upstream_error(
        self, mock_stripe: MagicMock, settings: MagicMock, order: Order
    ) -> None:
        mock_stripe.checkout.Session.create.side_effect = stripe.APIConnectionError("network down")
        gateway = StripePaymentGateway(stripe_module=mock_stripe, settings=settings)

        with pytest.raises(UpstreamError) as exc_info:
            gateway.create_checkout_session(uuid4(), order, "https://ok", "https://cancel")

        assert exc_info.value.status_code == 500
        assert "network down" not in exc_info.value.message

    def test_idempotency_error_is_conflict(self, mock_stripe: MagicMock, settings: MagicMock, order: Order) -> None:
        mock_stripe.checkout.Session.create.side_effect = stripe.IdempotencyError("in progress")
        gateway = StripePaymentGateway(stripe_module=mock_stripe, settings=settings)

        with pytest.raises(ConflictError):
            gateway.create_checkout_session(uuid4(), order, "https://ok", "https://cancel")

    def test_missing_secret_key(self, mock_stripe: MagicMock, settings: MagicMock, order: Order) -> None:
        settings.stripe_secret_key = ""
        gateway = StripePaymentGateway(stripe_module=mock_stripe, settings=settings)

        with pytest.raises(UpstreamError):
            gateway.create_checkout_session(uuid4(), order, "https://ok", "https://cancel")

        mock_stripe.checkout.Session.create.assert_not_called()


class TestVerifySignature:
    """Tests for webhook signature verification against the real Stripe verifier."""

    @pytest.fixture
    def gateway(self, settings: MagicMock) -> StripePaymentGateway:
        return StripePaymentGateway(stripe_module=stripe, settings=settings)

    def test_accepts_valid_signature(self, gateway: StripePaymentGateway) -> None:
        payload = b'{"id": "evt_1", "type": "checkout.session.completed"}'

        gateway.verify_signature(payload, sign(payload))

    def test_rejects_tampered_body(self, gateway: StripePaymentGateway) -> None:
        payload = b'{"id": "evt_1"}'
        header = sign(payload)

        with pytest.raises(WebhookSignatureError):
            gateway.verify_signature(b'{"id": "evt_2"}', header)

    def test_rejects_wrong_secret(self, gateway: StripePaymentGateway) -> None:
        payload = b'{"id": "evt_1"}'

        with pytest.raises(WebhookSignatureError):
            gateway.verify_signature(payload, sign(payload, secret="whsec_other"))

    def test_rejects_stale_timestamp(self, gateway: StripePaymentGateway) -> None:
        payload = b'{"id": "evt_1"}'

        with pytest.raises(WebhookSignatureError):
            gateway.verify_signature(payload, sign(payload, timestamp=int(time.time()) - 3600))

    @pytest.mark.parametrize("header", [None, ""])
    def test_rejects_missing_header(self, gateway: StripePaymentGateway, header: str | None) -> None:
        with pytest.raises(WebhookSignatureError):
            gateway.verify_signature(b"{}", header)

    def test_rejects_when_secret_unset(self, gateway: StripePaymentGateway, settings: MagicMock) -> None:
        settings.stripe_webhook_secret = ""
        payload = b"{}"

        with pytest.raises(WebhookSignatureError):
            gateway.verify_signature(payload, sign(payload))

    def test_rejects_non_utf8_body(self, gateway: StripePaymentGateway) -> None:
        with pytest.raises(WebhookSignatureError):
            gateway.verify_signature(b"\xff\xfe", "t=1,v1=abc")
