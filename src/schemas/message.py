"""Message Pydantic schemas for API request/response models."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class MessageCreate(BaseModel):
    """Schema for sending a direct message."""

    model_config = ConfigDict(from_attributes=True)

    receiver_id: UUID = Field(..., description="Recipient user ID")
    content: str = Field(..., min_length=1, max_length=2000, description="Message content")
    listing_id: UUID | None = Field(default=None, description="Listing the message is about")


class MessageResponse(BaseModel):
    """Schema for message API responses."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(description="Message unique identifier")
    sender_id: UUID = Field(description="Sender user ID")
    receiver_id: UUID = Field(description="Recipient user ID")
    listing_id: UUID | None = Field(default=None, description="Listing the message is about")
    content: str = Field(description="Message content")
    created_at: datetime | None = Field(default=None, description="Creation timestamp")
