"""Bid persistence backed by the Supabase bids table."""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, Protocol
from uuid import UUID

from postgrest.exceptions import APIError as PostgrestAPIError
from supabase import Client

from src.core.supabase import get_supabase_client
from src.models.bid import Bid, BidStatus
from src.repositories.base import DuplicateRecordError, first_row, is_unique_violation

TABLE = "bids"


class BidRepository(Protocol):
    """Storage operations the bid lifecycle depends on."""

    def get(self, bid_id: UUID) -> Bid | None: ...

    def create(
        self,
        listing_id: UUID,
        bidder_id: UUID,
        seller_id: UUID,
        proposed_price: Decimal,
        additional_terms: str | None,
    ) -> Bid: ...

    def find_pending_bid(self, listing_id: UUID, bidder_id: UUID) -> Bid | None: ...

    def list_by_bidder(self, bidder_id: UUID) -> list[Bid]: ...

    def list_by_listing(self, listing_id: UUID, statuses: Iterable[BidStatus] | None = None) -> list[Bid]: ...

    def compare_and_set_status(self, bid_id: UUID, expected: BidStatus, new: BidStatus) -> Bid | None: ...

    def link_order(self, bid_id: UUID, order_id: UUID) -> Bid | None: ...


class SupabaseBidRepository:
    """BidRepository implementation over PostgREST.

    Status changes are conditional updates filtered on the expected current
    status, so two writers racing on the same row cannot both succeed.
    """

    def __init__(self, client: Client | None = None) -> None:
        self.client = client or get_supabase_client()

    def get(self, bid_id: UUID) -> Bid | None:
        response = self.client.table(TABLE).select("*").eq("id", str(bid_id)).limit(1).execute()
        row = first_row(response)
        return Bid.model_validate(row) if row else None

    def create(
        self,
        listing_id: UUID,
        bidder_id: UUID,
        seller_id: UUID,
        proposed_price: Decimal,
        additional_terms: str | None,
    ) -> Bid:
        """Insert a new pending bid.

        Raises:
            DuplicateRecordError: If the bidder already has a pending bid on
                the listing (partial unique index on listing_id, bidder_id).
        """
        data = {
            "listing_id": str(listing_id),
            "bidder_id": str(bidder_id),
            "seller_id": str(seller_id),
            "proposed_price": str(proposed_price),
            "additional_terms": additional_terms,
            "status": BidStatus.PENDING.value,
        }
        try:
            response = self.client.table(TABLE).insert(data).execute()
        except PostgrestAPIError as e:
            if is_unique_violation(e):
                raise DuplicateRecordError(TABLE, e.message) from e
            raise
        return Bid.model_validate(response.data[0])

    def find_pending_bid(self, listing_id: UUID, bidder_id: UUID) -> Bid | None:
        response = (
            self.client.table(TABLE)
            .select("*")
            .eq("listing_id", str(listing_id))
            .eq("bidder_id", str(bidder_id))
            .eq("status", BidStatus.PENDING.value)
            .limit(1)
            .execute()
        )
        row = first_row(response)
        return Bid.model_validate(row) if row else None

    def list_by_bidder(self, bidder_id: UUID) -> list[Bid]:
        response = (
            self.client.table(TABLE)
            .select("*")
            .eq("bidder_id", str(bidder_id))
            .order("created_at", desc=True)
            .execute()
        )
        return [Bid.model_validate(row) for row in response.data or []]

    def list_by_listing(self, listing_id: UUID, statuses: Iterable[BidStatus] | None = None) -> list[Bid]:
        query = self.client.table(TABLE).select("*").eq("listing_id", str(listing_id))
        if statuses is not None:
            query = query.in_("status", [s.value for s in statuses])
        response = query.order("created_at", desc=True).execute()
        return [Bid.model_validate(row) for row in response.data or []]

    def compare_and_set_status(self, bid_id: UUID, expected: BidStatus, new: BidStatus) -> Bid | None:
        """Move a bid from expected to new status.

        Returns:
            The updated bid, or None if the row was not in the expected status.
        """
        response = (
            self.client.table(TABLE)
            .update({"status": new.value, "updated_at": datetime.now(timezone.utc).isoformat()})
            .eq("id", str(bid_id))
            .eq("status", expected.value)
            .execute()
        )
        row = first_row(response)
        return Bid.model_validate(row) if row else None

    def link_order(self, bid_id: UUID, order_id: UUID) -> Bid | None:
        """Set bids.order_id if it is still empty.

        Returns:
            The updated bid, or None if another order was linked first.
        """
        response = (
            self.client.table(TABLE)
            .update({"order_id": str(order_id), "updated_at": datetime.now(timezone.utc).isoformat()})
            .eq("id", str(bid_id))
            .is_("order_id", "null")
            .execute()
        )
        row = first_row(response)
        return Bid.model_validate(row) if row else None
