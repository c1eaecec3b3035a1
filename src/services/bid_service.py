"""Bid lifecycle business logic service."""

import logging
from decimal import Decimal
from uuid import UUID

from src.api.guard import ensure_owner
from src.api.middleware.error_handler import (
    BiddingDisabledError,
    ConflictError,
    InvalidBidderError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from src.models.bid import SELLER_DECISIONS, Bid, BidStatus
from src.repositories.base import DuplicateRecordError
from src.repositories.bid_repository import BidRepository, SupabaseBidRepository
from src.repositories.catalog_repository import ListingRepository, SupabaseListingRepository
from src.services.notification_service import NotificationService, Notifier

logger = logging.getLogger(__name__)

ACTIVE_BID_STATUSES = (BidStatus.PENDING, BidStatus.ACCEPTED)


class BidService:
    """Service for creating bids and moving them through their lifecycle.

    Every status write is a compare-and-set on the status the caller read, so
    of two concurrent decisions on the same bid exactly one is committed.
    """

    def __init__(
        self,
        bids: BidRepository | None = None,
        listings: ListingRepository | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self.bids = bids or SupabaseBidRepository()
        self.listings = listings or SupabaseListingRepository()
        self.notifier = notifier or NotificationService()

    async def create_bid(
        self,
        listing_id: UUID,
        bidder_id: UUID,
        proposed_price: Decimal,
        additional_terms: str | None = None,
    ) -> Bid:
        """Place a pending bid on a listing.

        Args:
            listing_id: The listing being bid on.
            bidder_id: The authenticated bidder.
            proposed_price: Offered price, must be positive.
            additional_terms: Optional free-text terms.

        Returns:
            Bid: The created pending bid.

        Raises:
            ValidationError: If the price is not positive or below the starting bid.
            NotFoundError: If the listing does not exist.
            InvalidBidderError: If the bidder is the listing's seller.
            BiddingDisabledError: If the listing does not accept bids.
            ConflictError: If the bidder already has a pending bid on the listing.
        """
        if proposed_price <= 0:
            raise ValidationError("Proposed price must be greater than zero")

        listing = self.listings.get(listing_id)
        if not listing:
            raise NotFoundError("Listing not found")

        if listing.seller_id == bidder_id:
            raise InvalidBidderError()

        if not listing.bidding_allowed:
            raise BiddingDisabledError()

        if listing.starting_bid is not None and proposed_price < listing.starting_bid:
            raise ValidationError(f"Proposed price must be at least the starting bid of {listing.starting_bid}")

        if self.bids.find_pending_bid(listing_id, bidder_id):
            raise ConflictError("You already have a pending bid on this listing")

        try:
            bid = self.bids.create(
                listing_id=listing_id,
                bidder_id=bidder_id,
                seller_id=listing.seller_id,
                proposed_price=proposed_price,
                additional_terms=additional_terms,
            )
        except DuplicateRecordError as e:
            raise ConflictError("You already have a pending bid on this listing") from e

        logger.info("Bid %s created on listing %s by %s", bid.id, listing_id, bidder_id)
        self.notifier.notify(
            listing.seller_id,
            "bid_received",
            f"New bid of {proposed_price} on {listing.title}",
            {"bid_id": str(bid.id), "listing_id": str(listing_id)},
        )
        return bid

    async def set_status(self, bid_id: UUID, actor_id: UUID, new_status: BidStatus) -> Bid:
        """Apply a seller decision to a pending bid.

        Args:
            bid_id: The bid to decide on.
            actor_id: The authenticated user making the decision.
            new_status: ACCEPTED or REJECTED.

        Returns:
            Bid: The bid after the transition.

        Raises:
            NotFoundError: If the bid does not exist.
            AuthorizationError: If the actor is not the bid's seller.
            InvalidTransitionError: If the target status cannot be written
                directly, or the bid is no longer pending.
        """
        bid = self._get_or_404(bid_id)
        ensure_owner(actor_id, bid.seller_id, message="Only the seller can accept or reject this bid")

        if new_status not in SELLER_DECISIONS:
            raise InvalidTransitionError(f"Bid status cannot be set to {new_status.value}")

        if bid.status != BidStatus.PENDING:
            raise InvalidTransitionError(
                f"Cannot change bid from {bid.status.value} to {new_status.value}"
            )

        updated = self.bids.compare_and_set_status(bid_id, BidStatus.PENDING, new_status)
        if updated is None:
            current = self.bids.get(bid_id)
            current_status = current.status.value if current else "deleted"
            logger.info("Lost status race on bid %s, now %s", bid_id, current_status)
            raise InvalidTransitionError(
                f"Cannot change bid from {current_status} to {new_status.value}"
            )

        logger.info("Bid %s moved to %s by seller %s", bid_id, new_status.value, actor_id)
        if new_status == BidStatus.ACCEPTED:
            self.notifier.notify(
                updated.bidder_id,
                "bid_accepted",
                "Your bid was accepted. You can now complete payment.",
                {"bid_id": str(bid_id), "listing_id": str(updated.listing_id)},
            )
            self._reject_competing_bids(updated)
        else:
            self.notifier.notify(
                updated.bidder_id,
                "bid_rejected",
                "Your bid was rejected.",
                {"bid_id": str(bid_id), "listing_id": str(updated.listing_id)},
            )
        return updated

    async def accept_bid(self, bid_id: UUID, actor_id: UUID) -> Bid:
        return await self.set_status(bid_id, actor_id, BidStatus.ACCEPTED)

    async def reject_bid(self, bid_id: UUID, actor_id: UUID) -> Bid:
        return await self.set_status(bid_id, actor_id, BidStatus.REJECTED)

    def _reject_competing_bids(self, accepted: Bid) -> None:
        others = self.bids.list_by_listing(accepted.listing_id, statuses=[BidStatus.PENDING])
        for other in others:
            if other.id == accepted.id:
                continue
            rejected = self.bids.compare_and_set_status(other.id, BidStatus.PENDING, BidStatus.REJECTED)
            if rejected is None:
                continue
            self.notifier.notify(
                rejected.bidder_id,
                "bid_rejected",
                "Another bid on this listing was accepted.",
                {"bid_id": str(rejected.id), "listing_id": str(rejected.listing_id)},
            )
        logger.info("Auto-rejected competing bids on listing %s", accepted.listing_id)

    async def expire_bid(self, bid_id: UUID) -> Bid:
        """Expire a pending or accepted bid.

        Raises:
            NotFoundError: If the bid does not exist.
            InvalidTransitionError: If the bid is already terminal.
        """
        bid = self._get_or_404(bid_id)
        if bid.status not in ACTIVE_BID_STATUSES:
            raise InvalidTransitionError(f"Cannot expire a {bid.status.value} bid")

        updated = self.bids.compare_and_set_status(bid_id, bid.status, BidStatus.EXPIRED)
        if updated is None:
            current = self.bids.get(bid_id)
            current_status = current.status.value if current else "deleted"
            raise InvalidTransitionError(f"Cannot expire a {current_status} bid")

        logger.info("Bid %s expired from %s", bid_id, bid.status.value)
        return updated

    async def get_bid(self, bid_id: UUID, requestor_id: UUID) -> Bid:
        bid = self._get_or_404(bid_id)
        ensure_owner(requestor_id, bid.bidder_id, bid.seller_id)
        return bid

    async def list_bids_for_user(self, user_id: UUID) -> list[Bid]:
        return self.bids.list_by_bidder(user_id)

    async def list_bids_for_listing(self, listing_id: UUID, requestor_id: UUID) -> list[Bid]:
        """List all bids on a listing. Only the listing's seller may do this."""
        listing = self.listings.get(listing_id)
        if not listing:
            raise NotFoundError("Listing not found")
        ensure_owner(requestor_id, listing.seller_id, message="Only the seller can view bids on this listing")
        return self.bids.list_by_listing(listing_id)

    async def count_active_bids(self, listing_id: UUID) -> int:
        return len(self.bids.list_by_listing(listing_id, statuses=ACTIVE_BID_STATUSES))

    def _get_or_404(self, bid_id: UUID) -> Bid:
        bid = self.bids.get(bid_id)
        if not bid:
            raise NotFoundError("Bid not found")
        return bid
