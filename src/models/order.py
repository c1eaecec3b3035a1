"""Order model definitions."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class OrderStatus(str, Enum):
    """Order states stored in the orders.status column."""

    PENDING = "pending"
    PAID = "paid"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class OrderItem(BaseModel):
    """Line item snapshot stored in the orders.items JSONB array.

    Prices are copied from the listing (or accepted bid) when the order is
    created and are never re-read from the live listing.
    """

    model_config = ConfigDict(frozen=True, from_attributes=True)

    listing_id: UUID
    title: str
    quantity: int = Field(ge=1)
    unit_price: Decimal

    @property
    def subtotal(self) -> Decimal:
        return self.unit_price * self.quantity


class Order(BaseModel):
    """Orders table row snapshot."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: UUID
    user_id: UUID
    status: OrderStatus
    total_price: Decimal
    currency: str = "cad"
    items: list[OrderItem] = Field(default_factory=list)
    bid_id: UUID | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
