"""Checkout and order business logic service."""

import logging
from uuid import UUID

from src.api.guard import ensure_owner
from src.api.middleware.error_handler import (
    ConflictError,
    NotFoundError,
    PreconditionFailedError,
    UpstreamError,
    ValidationError,
)
from src.core.config import Settings, get_settings
from src.models.bid import Bid, BidStatus
from src.models.order import Order, OrderItem, OrderStatus
from src.models.payment import Payment
from src.repositories.base import DuplicateRecordError
from src.repositories.bid_repository import BidRepository, SupabaseBidRepository
from src.repositories.catalog_repository import (
    CartRepository,
    ListingRepository,
    SupabaseCartRepository,
    SupabaseListingRepository,
)
from src.repositories.order_repository import OrderRepository, SupabaseOrderRepository
from src.repositories.payment_repository import PaymentRepository, SupabasePaymentRepository
from src.services.payment_gateway import PaymentGateway, StripePaymentGateway

logger = logging.getLogger(__name__)


class CheckoutService:
    """Service for turning accepted bids and carts into orders and payments.

    Checkout is idempotent per order: at most one pending payment exists per
    order and the Stripe idempotency key is derived from it, so retries and
    concurrent requests converge on one session.
    """

    def __init__(
        self,
        bids: BidRepository | None = None,
        orders: OrderRepository | None = None,
        payments: PaymentRepository | None = None,
        listings: ListingRepository | None = None,
        carts: CartRepository | None = None,
        gateway: PaymentGateway | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.bids = bids or SupabaseBidRepository()
        self.orders = orders or SupabaseOrderRepository()
        self.payments = payments or SupabasePaymentRepository()
        self.listings = listings or SupabaseListingRepository()
        self.carts = carts or SupabaseCartRepository()
        self.gateway = gateway or StripePaymentGateway()
        self.settings = settings or get_settings()

    async def create_bid_checkout(self, bid_id: UUID, requestor_id: UUID) -> Payment:
        """Start (or resume) payment for an accepted bid.

        Args:
            bid_id: The accepted bid.
            requestor_id: The authenticated user; must be the bidder.

        Returns:
            Payment: The pending payment carrying the checkout URL.

        Raises:
            NotFoundError: If the bid does not exist.
            AuthorizationError: If the requestor is not the bidder.
            PreconditionFailedError: If the bid is not accepted.
            UpstreamError: If Stripe fails.
            ConflictError: If an identical checkout is still being created.
        """
        bid = self.bids.get(bid_id)
        if not bid:
            raise NotFoundError("Bid not found")

        ensure_owner(requestor_id, bid.bidder_id, message="Only the bidder can pay for this bid")

        if bid.status != BidStatus.ACCEPTED:
            raise PreconditionFailedError(f"Only accepted bids can be paid; this bid is {bid.status.value}")

        order = self._ensure_bid_order(bid)
        if order.status != OrderStatus.PENDING:
            raise PreconditionFailedError(f"Order for this bid is {order.status.value}")

        return self._checkout_for_order(order)

    async def create_order_checkout(self, order_id: UUID, requestor_id: UUID) -> Payment:
        """Start (or resume) payment for a pending order.

        Raises:
            NotFoundError: If the order does not exist.
            AuthorizationError: If the requestor does not own the order.
            PreconditionFailedError: If the order is not pending.
        """
        order = await self.get_order(order_id, requestor_id)
        if order.status != OrderStatus.PENDING:
            raise PreconditionFailedError(f"Only pending orders can be paid; this order is {order.status.value}")
        return self._checkout_for_order(order)

    def _ensure_bid_order(self, bid: Bid) -> Order:
        """Return the bid's order, creating and linking one on first payment."""
        if bid.order_id:
            order = self.orders.get(bid.order_id)
            if order:
                return order
            logger.error("Bid %s links missing order %s", bid.id, bid.order_id)
            raise NotFoundError("Order for this bid not found")

        listing = self.listings.get(bid.listing_id)
        if not listing:
            raise NotFoundError("Listing not found")

        item = OrderItem(
            listing_id=listing.id,
            title=listing.title,
            quantity=1,
            unit_price=bid.proposed_price,
        )
        order = self.orders.create(
            user_id=bid.bidder_id,
            items=[item],
            currency=self.settings.payment_currency,
            bid_id=bid.id,
        )

        if self.bids.link_order(bid.id, order.id):
            logger.info("Created order %s for bid %s", order.id, bid.id)
            return order

        # Another request linked its order first; drop ours and use theirs.
        self.orders.compare_and_set_status(order.id, OrderStatus.PENDING, OrderStatus.CANCELLED)
        linked = self.bids.get(bid.id)
        if not linked or not linked.order_id:
            raise ConflictError("Could not link an order to this bid, please retry")
        existing = self.orders.get(linked.order_id)
        if not existing:
            raise NotFoundError("Order for this bid not found")
        logger.info("Bid %s already linked to order %s; cancelled duplicate %s", bid.id, existing.id, order.id)
        return existing

    def _checkout_for_order(self, order: Order) -> Payment:
        existing = self.payments.find_pending_for_order(order.id)
        if existing and existing.checkout_url:
            logger.info("Reusing pending payment %s for order %s", existing.id, order.id)
            return existing

        payment = existing
        if payment is None:
            try:
                payment = self.payments.create_pending(
                    order_id=order.id,
                    user_id=order.user_id,
                    amount=order.total_price,
                    currency=order.currency,
                    bid_id=order.bid_id,
                )
            except DuplicateRecordError as e:
                payment = self.payments.find_pending_for_order(order.id)
                if payment is None:
                    raise ConflictError("A checkout for this order is already in progress") from e
                if payment.checkout_url:
                    return payment

        try:
            handle = self.gateway.create_checkout_session(
                payment_id=payment.id,
                order=order,
                success_url=self.settings.checkout_success_url,
                cancel_url=self.settings.checkout_cancel_url,
            )
        except UpstreamError:
            self.payments.abandon_unattached(payment.id, "checkout session creation failed")
            raise

        attached = self.payments.attach_checkout(payment.id, handle.session_id, handle.url)
        if attached:
            logger.info("Payment %s attached to checkout session %s", payment.id, handle.session_id)
            return attached

        # A concurrent request, or an early webhook, attached the session first.
        current = self.payments.get(payment.id)
        if current is None or current.external_reference_id != handle.session_id:
            raise ConflictError("A checkout for this order is already in progress")
        if not current.checkout_url:
            return current.model_copy(update={"checkout_url": handle.url})
        return current

    async def create_order_from_cart(self, user_id: UUID) -> Order:
        """Convert the user's cart into a pending order with price snapshots.

        Raises:
            ValidationError: If the cart is empty, or an item is unavailable,
                the buyer's own, or over the listed quantity.
        """
        cart_items = self.carts.list_items(user_id)
        if not cart_items:
            raise ValidationError("Cart is empty")

        items: list[OrderItem] = []
        for cart_item in cart_items:
            listing = self.listings.get(cart_item.listing_id)
            if not listing or listing.status != "active":
                raise ValidationError(f"Listing {cart_item.listing_id} is no longer available")
            if listing.seller_id == user_id:
                raise ValidationError("You cannot order your own listing")
            if cart_item.quantity < 1 or cart_item.quantity > listing.quantity:
                raise ValidationError(f"Only {listing.quantity} of {listing.title} available")
            items.append(
                OrderItem(
                    listing_id=listing.id,
                    title=listing.title,
                    quantity=cart_item.quantity,
                    unit_price=listing.price,
                )
            )

        order = self.orders.create(user_id=user_id, items=items, currency=self.settings.payment_currency)
        self.carts.clear(user_id)
        logger.info("Created order %s from cart of user %s", order.id, user_id)
        return order

    async def list_orders(self, user_id: UUID) -> list[Order]:
        return self.orders.list_by_user(user_id)

    async def get_order(self, order_id: UUID, requestor_id: UUID) -> Order:
        order = self.orders.get(order_id)
        if not order:
            raise NotFoundError("Order not found")
        ensure_owner(requestor_id, order.user_id)
        return order

    async def get_payment_status(self, external_reference_id: str, requestor_id: UUID) -> Payment:
        """Look up a payment by its Checkout Session id for its owner."""
        payment = self.payments.get_by_external_reference(external_reference_id)
        if not payment:
            raise NotFoundError("Payment not found")
        ensure_owner(requestor_id, payment.user_id)
        return payment
