"""Pytest configuration and fixtures."""

import json
import os
import threading
from collections.abc import Callable, Generator
from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace
from typing import Any, Iterable
from unittest.mock import MagicMock, patch
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient

# Set test environment variables before importing application modules
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_SECRET_KEY", "test-secret-key")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret-that-is-long-enough-for-hs256")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_stripe_secret_key")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_webhook_secret")

from src.api.middleware.error_handler import WebhookSignatureError  # noqa: E402
from src.models.bid import Bid, BidStatus  # noqa: E402
from src.models.listing import CartItem, Listing  # noqa: E402
from src.models.message import Message  # noqa: E402
from src.models.order import Order, OrderItem, OrderStatus  # noqa: E402
from src.models.payment import Payment, PaymentStatus  # noqa: E402
from src.models.user import User  # noqa: E402
from src.repositories.base import DuplicateRecordError  # noqa: E402
from src.services.payment_gateway import CheckoutHandle  # noqa: E402

VALID_SIGNATURE = "t=1,v1=valid"
FIXED_NOW = 1_700_000_000


def _now() -> datetime:
    return datetime.now(timezone.utc)


# In-memory repositories. Conditional updates run under a lock so they are
# atomic the way a single UPDATE ... WHERE statement is.


class InMemoryBidRepository:
    def __init__(self) -> None:
        self.rows: dict[UUID, Bid] = {}
        self.lock = threading.Lock()

    def add(self, bid: Bid) -> Bid:
        self.rows[bid.id] = bid
        return bid

    def get(self, bid_id: UUID) -> Bid | None:
        return self.rows.get(bid_id)

    def create(
        self,
        listing_id: UUID,
        bidder_id: UUID,
        seller_id: UUID,
        proposed_price: Decimal,
        additional_terms: str | None,
    ) -> Bid:
        with self.lock:
            if self._pending(listing_id, bidder_id):
                raise DuplicateRecordError("bids")
            bid = Bid(
                id=uuid4(),
                listing_id=listing_id,
                bidder_id=bidder_id,
                seller_id=seller_id,
                proposed_price=proposed_price,
                additional_terms=additional_terms,
                status=BidStatus.PENDING,
                created_at=_now(),
            )
            self.rows[bid.id] = bid
        return bid

    def _pending(self, listing_id: UUID, bidder_id: UUID) -> Bid | None:
        for bid in list(self.rows.values()):
            if bid.listing_id == listing_id and bid.bidder_id == bidder_id and bid.status == BidStatus.PENDING:
                return bid
        return None

    def find_pending_bid(self, listing_id: UUID, bidder_id: UUID) -> Bid | None:
        return self._pending(listing_id, bidder_id)

    def list_by_bidder(self, bidder_id: UUID) -> list[Bid]:
        return [b for b in list(self.rows.values()) if b.bidder_id == bidder_id]

    def list_by_listing(self, listing_id: UUID, statuses: Iterable[BidStatus] | None = None) -> list[Bid]:
        wanted = set(statuses) if statuses is not None else None
        return [
            b for b in list(self.rows.values())
            if b.listing_id == listing_id and (wanted is None or b.status in wanted)
        ]

    def compare_and_set_status(self, bid_id: UUID, expected: BidStatus, new: BidStatus) -> Bid | None:
        with self.lock:
            current = self.rows.get(bid_id)
            if current is None or current.status != expected:
                return None
            updated = current.model_copy(update={"status": new, "updated_at": _now()})
            self.rows[bid_id] = updated
            return updated

    def link_order(self, bid_id: UUID, order_id: UUID) -> Bid | None:
        with self.lock:
            current = self.rows.get(bid_id)
            if current is None or current.order_id is not None:
                return None
            updated = current.model_copy(update={"order_id": order_id, "updated_at": _now()})
            self.rows[bid_id] = updated
            return updated


class InMemoryOrderRepository:
    def __init__(self) -> None:
        self.rows: dict[UUID, Order] = {}
        self.lock = threading.Lock()

    def add(self, order: Order) -> Order:
        self.rows[order.id] = order
        return order

    def get(self, order_id: UUID) -> Order | None:
        return self.rows.get(order_id)

    def create(self, user_id: UUID, items: list[OrderItem], currency: str, bid_id: UUID | None = None) -> Order:
        order = Order(
            id=uuid4(),
            user_id=user_id,
            status=OrderStatus.PENDING,
            total_price=sum((item.subtotal for item in items), Decimal("0")),
            currency=currency,
            items=items,
            bid_id=bid_id,
            created_at=_now(),
        )
        with self.lock:
            self.rows[order.id] = order
        return order

    def list_by_user(self, user_id: UUID) -> list[Order]:
        return [o for o in list(self.rows.values()) if o.user_id == user_id]

    def compare_and_set_status(self, order_id: UUID, expected: OrderStatus, new: OrderStatus) -> Order | None:
        with self.lock:
            current = self.rows.get(order_id)
            if current is None or current.status != expected:
                return None
            updated = current.model_copy(update={"status": new, "updated_at": _now()})
            self.rows[order_id] = updated
            return updated


class InMemoryPaymentRepository:
    def __init__(self) -> None:
        self.rows: dict[UUID, Payment] = {}
        self.unmatched: list[dict[str, Any]] = []
        self.lock = threading.Lock()

    def add(self, payment: Payment) -> Payment:
        self.rows[payment.id] = payment
        return payment

    def get(self, payment_id: UUID) -> Payment | None:
        return self.rows.get(payment_id)

    def get_by_external_reference(self, external_reference_id: str) -> Payment | None:
        for payment in list(self.rows.values()):
            if payment.external_reference_id == external_reference_id:
                return payment
        return None

    def find_pending_for_order(self, order_id: UUID) -> Payment | None:
        for payment in list(self.rows.values()):
            if payment.order_id == order_id and payment.status == PaymentStatus.PENDING:
                return payment
        return None

    def create_pending(
        self,
        order_id: UUID,
        user_id: UUID,
        amount: Decimal,
        currency: str,
        bid_id: UUID | None = None,
    ) -> Payment:
        with self.lock:
            if self.find_pending_for_order(order_id):
                raise DuplicateRecordError("payments")
            payment = Payment(
                id=uuid4(),
                order_id=order_id,
                bid_id=bid_id,
                user_id=user_id,
                amount=amount,
                currency=currency,
                status=PaymentStatus.PENDING,
                created_at=_now(),
            )
            self.rows[payment.id] = payment
        return payment

    def attach_checkout(self, payment_id: UUID, external_reference_id: str, checkout_url: str | None) -> Payment | None:
        with self.lock:
            current = self.rows.get(payment_id)
            if current is None or current.status != PaymentStatus.PENDING or current.external_reference_id:
                return None
            updated = current.model_copy(
                update={"external_reference_id": external_reference_id, "checkout_url": checkout_url}
            )
            self.rows[payment_id] = updated
            return updated

    def compare_and_set_status(
        self,
        payment_id: UUID,
        expected: PaymentStatus,
        new: PaymentStatus,
        failure_reason: str | None = None,
    ) -> Payment | None:
        with self.lock:
            current = self.rows.get(payment_id)
            if current is None or current.status != expected:
                return None
            update: dict[str, Any] = {"status": new, "updated_at": _now()}
            if failure_reason is not None:
                update["failure_reason"] = failure_reason
            updated = current.model_copy(update=update)
            self.rows[payment_id] = updated
            return updated

    def abandon_unattached(self, payment_id: UUID, reason: str) -> Payment | None:
        with self.lock:
            current = self.rows.get(payment_id)
            if current is None or current.status != PaymentStatus.PENDING or current.external_reference_id:
                return None
            updated = current.model_copy(update={"status": PaymentStatus.FAILED, "failure_reason": reason})
            self.rows[payment_id] = updated
            return updated

    def record_unmatched_event(
        self,
        event_id: str,
        event_type: str,
        external_reference_id: str | None,
        payload: dict[str, Any],
    ) -> None:
        if any(e["event_id"] == event_id for e in self.unmatched):
            return
        self.unmatched.append(
            {
                "event_id": event_id,
                "event_type": event_type,
                "external_reference_id": external_reference_id,
                "payload": payload,
            }
        )


class InMemoryUserRepository:
    def __init__(self) -> None:
        self.rows: dict[UUID, User] = {}

    def add(self, user: User) -> User:
        self.rows[user.id] = user
        return user

    def get(self, user_id: UUID) -> User | None:
        return self.rows.get(user_id)

    def get_by_email(self, email: str) -> User | None:
        for user in list(self.rows.values()):
            if user.email.lower() == email.lower():
                return user
        return None


class InMemoryListingRepository:
    def __init__(self) -> None:
        self.rows: dict[UUID, Listing] = {}

    def add(self, listing: Listing) -> Listing:
        self.rows[listing.id] = listing
        return listing

    def get(self, listing_id: UUID) -> Listing | None:
        return self.rows.get(listing_id)


class InMemoryCartRepository:
    def __init__(self) -> None:
        self.rows: dict[UUID, list[CartItem]] = {}

    def add(self, user_id: UUID, listing_id: UUID, quantity: int = 1) -> None:
        self.rows.setdefault(user_id, []).append(CartItem(listing_id=listing_id, quantity=quantity))

    def list_items(self, user_id: UUID) -> list[CartItem]:
        return list(self.rows.get(user_id, []))

    def clear(self, user_id: UUID) -> None:
        self.rows.pop(user_id, None)


class InMemoryMessageRepository:
    def __init__(self) -> None:
        self.rows: list[Message] = []

    def create(self, sender_id: UUID, receiver_id: UUID, content: str, listing_id: UUID | None = None) -> Message:
        message = Message(
            id=uuid4(),
            sender_id=sender_id,
            receiver_id=receiver_id,
            listing_id=listing_id,
            content=content,
            created_at=_now(),
        )
        self.rows.append(message)
        return message

    def list_conversation(self, user_id: UUID, other_user_id: UUID, limit: int = 50) -> list[Message]:
        pair = {user_id, other_user_id}
        return [m for m in self.rows if {m.sender_id, m.receiver_id} == pair][:limit]


class RecordingNotifier:
    def __init__(self) -> None:
        self.sent: list[tuple[UUID, str]] = []

    def notify(self, user_id: UUID, kind: str, message: str, data: dict[str, Any] | None = None) -> None:
        self.sent.append((user_id, kind))

    def kinds_for(self, user_id: UUID) -> list[str]:
        return [kind for uid, kind in self.sent if uid == user_id]


class FakePaymentGateway:
    """Returns one session per payment id, like a Stripe idempotency key."""

    def __init__(self) -> None:
        self.sessions: dict[UUID, CheckoutHandle] = {}
        self.calls: list[UUID] = []
        self.fail_with: Exception | None = None
        self.on_session_created: Callable[[UUID, CheckoutHandle], None] | None = None

    def create_checkout_session(self, payment_id: UUID, order: Order, success_url: str, cancel_url: str) -> CheckoutHandle:
        self.calls.append(payment_id)
        if self.fail_with is not None:
            raise self.fail_with
        handle = self.sessions.get(payment_id)
        if handle is None:
            session_id = f"cs_test_{payment_id.hex}"
            handle = CheckoutHandle(session_id=session_id, url=f"https://checkout.stripe.com/c/pay/{session_id}")
            self.sessions[payment_id] = handle
        if self.on_session_created is not None:
            self.on_session_created(payment_id, handle)
        return handle

    def verify_signature(self, payload: bytes, sig_header: str | None) -> None:
        if sig_header != VALID_SIGNATURE:
            raise WebhookSignatureError()


@pytest.fixture(scope="session")
def test_settings() -> Generator[Any, None, None]:
    """Provide test settings with cleared cache.

    Yields:
        Settings: Test configuration settings.
    """
    from src.core.config import get_settings

    get_settings.cache_clear()
    settings = get_settings()
    yield settings
    get_settings.cache_clear()


@pytest.fixture
def mock_supabase_client() -> Generator[MagicMock, None, None]:
    """Provide a mocked Supabase client.

    Yields:
        MagicMock: Mocked Supabase client for testing.
    """
    mock_client = MagicMock()

    mock_response = MagicMock()
    mock_response.data = []
    mock_client.table.return_value.select.return_value.limit.return_value.execute.return_value = (
        mock_response
    )

    with patch("src.core.supabase.get_supabase_client", return_value=mock_client):
        yield mock_client


@pytest.fixture
def store() -> SimpleNamespace:
    """Provide a fresh set of in-memory repositories, notifier and gateway."""
    return SimpleNamespace(
        bids=InMemoryBidRepository(),
        orders=InMemoryOrderRepository(),
        payments=InMemoryPaymentRepository(),
        users=InMemoryUserRepository(),
        listings=InMemoryListingRepository(),
        carts=InMemoryCartRepository(),
        messages=InMemoryMessageRepository(),
        notifier=RecordingNotifier(),
        gateway=FakePaymentGateway(),
    )


@pytest.fixture
def seller(store: SimpleNamespace) -> User:
    return store.users.add(User(id=uuid4(), email="seller@campus.edu", is_verified=True))


@pytest.fixture
def bidder(store: SimpleNamespace) -> User:
    return store.users.add(User(id=uuid4(), email="bidder@campus.edu", is_verified=True))


@pytest.fixture
def other_user(store: SimpleNamespace) -> User:
    return store.users.add(User(id=uuid4(), email="other@campus.edu", is_verified=True))


@pytest.fixture
def listing(store: SimpleNamespace, seller: User) -> Listing:
    return store.listings.add(
        Listing(
            id=uuid4(),
            seller_id=seller.id,
            title="Calculus textbook",
            price=Decimal("120.00"),
            quantity=1,
            bidding_allowed=True,
            starting_bid=Decimal("50.00"),
        )
    )


@pytest.fixture
def token_service() -> Any:
    """TokenService with a fixed clock."""
    from src.services.token_service import TokenService

    return TokenService(secret=os.environ["JWT_SECRET"], clock=lambda: FIXED_NOW)


@pytest.fixture
def bid_service(store: SimpleNamespace) -> Any:
    from src.services.bid_service import BidService

    return BidService(bids=store.bids, listings=store.listings, notifier=store.notifier)


@pytest.fixture
def checkout_service(store: SimpleNamespace, test_settings: Any) -> Any:
    from src.services.checkout_service import CheckoutService

    return CheckoutService(
        bids=store.bids,
        orders=store.orders,
        payments=store.payments,
        listings=store.listings,
        carts=store.carts,
        gateway=store.gateway,
        settings=test_settings,
    )


@pytest.fixture
def webhook_service(store: SimpleNamespace) -> Any:
    from src.services.webhook_service import WebhookService

    return WebhookService(
        payments=store.payments,
        orders=store.orders,
        bids=store.bids,
        gateway=store.gateway,
        notifier=store.notifier,
    )


@pytest.fixture
def make_event() -> Callable[..., bytes]:
    """Build a raw Stripe checkout.session.* event body."""

    def _make_event(
        event_type: str,
        session_id: str,
        payment_status: str = "paid",
        event_id: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> bytes:
        event = {
            "id": event_id or f"evt_{uuid4().hex}",
            "object": "event",
            "type": event_type,
            "data": {
                "object": {
                    "id": session_id,
                    "object": "checkout.session",
                    "payment_status": payment_status,
                    "status": "complete",
                    "metadata": metadata or {},
                }
            },
        }
        return json.dumps(event).encode("utf-8")

    return _make_event


@pytest.fixture
def app(
    store: SimpleNamespace,
    token_service: Any,
    bid_service: Any,
    checkout_service: Any,
    webhook_service: Any,
) -> Any:
    """Provide an application wired to the in-memory store."""
    from src.api.deps import (
        get_bid_service,
        get_checkout_service,
        get_message_service,
        get_webhook_service,
    )
    from src.api.middleware.auth import IdentityResolver
    from src.main import create_app
    from src.services.message_service import MessageService

    application = create_app()
    application.state.identity_resolver = IdentityResolver(token_service, store.users)
    application.dependency_overrides[get_bid_service] = lambda: bid_service
    application.dependency_overrides[get_checkout_service] = lambda: checkout_service
    application.dependency_overrides[get_webhook_service] = lambda: webhook_service
    application.dependency_overrides[get_message_service] = lambda: MessageService(
        messages=store.messages, users=store.users
    )
    return application


@pytest.fixture
def client(app: Any) -> Generator[TestClient, None, None]:
    """Provide a test client for the in-memory application.

    Yields:
        TestClient: FastAPI test client.
    """
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers(token_service: Any) -> Callable[[User], dict[str, str]]:
    """Build an Authorization header carrying a session token for a user."""

    def _auth_headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {token_service.issue(user)}"}

    return _auth_headers
