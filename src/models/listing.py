"""Listing and cart model definitions.

Listings are owned by the catalog subsystem; the transaction core only reads
them.
"""

from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class Listing(BaseModel):
    """Listings table row snapshot (read-only)."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: UUID
    seller_id: UUID
    title: str
    price: Decimal
    quantity: int = 1
    bidding_allowed: bool = False
    starting_bid: Decimal | None = None
    status: str = "active"


class CartItem(BaseModel):
    """Cart items table row snapshot."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    listing_id: UUID
    quantity: int = 1
