"""Stripe webhook event schemas.

Only the fields the transaction core reads are modelled; everything else in
the event is accepted and ignored.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CheckoutSessionObject(BaseModel):
    """The checkout.session object carried by checkout.session.* events."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(description="Checkout Session id, our payment external reference")
    object: str | None = Field(default=None, description="Stripe object type")
    payment_status: str | None = Field(default=None, description="paid, unpaid or no_payment_required")
    status: str | None = Field(default=None, description="open, complete or expired")
    url: str | None = Field(default=None, description="Hosted checkout URL; null once the session is complete")
    metadata: dict[str, str] = Field(default_factory=dict, description="Metadata set at session creation")


class EventData(BaseModel):
    model_config = ConfigDict(extra="ignore")

    object: dict[str, Any] = Field(description="Raw event object")


class StripeEvent(BaseModel):
    """Envelope of a Stripe webhook event."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(description="Event id")
    type: str = Field(description="Event type, e.g. checkout.session.completed")
    data: EventData = Field(description="Event payload")

    def checkout_session(self) -> CheckoutSessionObject:
        return CheckoutSessionObject.model_validate(self.data.object)


class WebhookAck(BaseModel):
    """Response returned to Stripe for every verified event."""

    status: str = Field(default="received", description="Always 'received' for accepted deliveries")
    outcome: str = Field(description="What processing did with the event")
