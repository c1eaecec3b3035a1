"""Payment model definitions."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class PaymentStatus(str, Enum):
    """Payment states stored in the payments.status column."""

    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class Payment(BaseModel):
    """Payments table row snapshot.

    external_reference_id holds the Stripe Checkout Session id. It is empty
    only between inserting the pending row and attaching the session.
    """

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: UUID
    order_id: UUID
    bid_id: UUID | None = None
    user_id: UUID
    external_reference_id: str | None = None
    checkout_url: str | None = None
    amount: Decimal
    currency: str = "cad"
    method: str = "stripe_checkout"
    status: PaymentStatus
    failure_reason: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
