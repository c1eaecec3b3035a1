"""Bid Pydantic schemas for API request/response models."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.models.bid import BidStatus


class BidCreate(BaseModel):
    """Schema for placing a bid via POST /bids/{listing_id}."""

    model_config = ConfigDict(from_attributes=True)

    proposed_price: Decimal = Field(..., max_digits=12, decimal_places=2, description="Offered price")
    additional_terms: str | None = Field(default=None, max_length=1000, description="Optional terms for the seller")


class BidStatusUpdate(BaseModel):
    """Schema for a seller decision via PUT/PATCH /bids/{bid_id}/status."""

    model_config = ConfigDict(from_attributes=True)

    status: BidStatus = Field(..., description="New status, accepted or rejected")


class BidResponse(BaseModel):
    """Schema for bid API responses."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(description="Bid unique identifier")
    listing_id: UUID = Field(description="Listing the bid is on")
    bidder_id: UUID = Field(description="User who placed the bid")
    seller_id: UUID = Field(description="Owner of the listing")
    proposed_price: Decimal = Field(description="Offered price")
    additional_terms: str | None = Field(default=None, description="Optional terms")
    status: BidStatus = Field(description="Bid status")
    order_id: UUID | None = Field(default=None, description="Order created when payment started")
    created_at: datetime | None = Field(default=None, description="Creation timestamp")
    updated_at: datetime | None = Field(default=None, description="Last update timestamp")


class BidCountResponse(BaseModel):
    """Schema for the public active bid count of a listing."""

    listing_id: UUID = Field(description="Listing unique identifier")
    count: int = Field(ge=0, description="Number of pending or accepted bids")
