"""Checkout, order and payment Pydantic schemas for API request/response models."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.models.order import OrderStatus
from src.models.payment import PaymentStatus


class OrderItemSchema(BaseModel):
    """Schema for a single line item snapshot in an order."""

    model_config = ConfigDict(from_attributes=True)

    listing_id: UUID = Field(description="Listing UUID")
    title: str = Field(description="Listing title at order time")
    quantity: int = Field(ge=1, description="Quantity ordered")
    unit_price: Decimal = Field(description="Unit price at order time")


class OrderResponse(BaseModel):
    """Schema for order API responses."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(description="Order unique identifier")
    user_id: UUID = Field(description="Purchasing user")
    status: OrderStatus = Field(description="Order status")
    total_price: Decimal = Field(description="Sum of line item subtotals")
    currency: str = Field(default="cad", description="Currency code")
    items: list[OrderItemSchema] = Field(default_factory=list, description="Order line items")
    bid_id: UUID | None = Field(default=None, description="Bid this order pays for, if any")
    created_at: datetime | None = Field(default=None, description="Creation timestamp")
    updated_at: datetime | None = Field(default=None, description="Last update timestamp")


class OrderListResponse(BaseModel):
    """Schema for order list API responses."""

    model_config = ConfigDict(from_attributes=True)

    items: list[OrderResponse] = Field(description="List of orders")


class CheckoutResponse(BaseModel):
    """Schema for checkout creation responses."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    checkout_url: str = Field(serialization_alias="checkoutUrl", description="Stripe Checkout URL to redirect to")
    order_id: UUID = Field(serialization_alias="orderId", description="Order being paid")
    payment_id: UUID = Field(serialization_alias="paymentId", description="Pending payment UUID")


class PaymentStatusResponse(BaseModel):
    """Schema for payment status lookups."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    external_reference_id: str = Field(serialization_alias="externalReferenceId", description="Stripe Checkout Session ID")
    payment_status: PaymentStatus = Field(serialization_alias="paymentStatus", description="Payment status")
    order_id: UUID = Field(serialization_alias="orderId", description="Order the payment settles")
    failure_reason: str | None = Field(default=None, serialization_alias="failureReason", description="Why the payment failed")
