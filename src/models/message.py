"""Direct message model definitions."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class Message(BaseModel):
    """Messages table row snapshot."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: UUID
    sender_id: UUID
    receiver_id: UUID
    listing_id: UUID | None = None
    content: str
    created_at: datetime | None = None
