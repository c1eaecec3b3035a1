"""Bid model definitions."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class BidStatus(str, Enum):
    """Bid lifecycle states stored in the bids.status column."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    PAID = "paid"
    EXPIRED = "expired"


# States a seller may write directly; PAID is only reached through a settled payment.
SELLER_DECISIONS = frozenset({BidStatus.ACCEPTED, BidStatus.REJECTED})


class Bid(BaseModel):
    """Bids table row snapshot.

    The seller id is denormalized from the listing at creation time so that
    ownership checks never need a listing lookup.
    """

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: UUID
    listing_id: UUID
    bidder_id: UUID
    seller_id: UUID
    proposed_price: Decimal
    additional_terms: str | None = None
    status: BidStatus
    order_id: UUID | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
