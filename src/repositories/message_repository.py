"""Direct message persistence backed by the Supabase messages table."""

from typing import Protocol
from uuid import UUID

from supabase import Client

from src.core.supabase import get_supabase_client
from src.models.message import Message

TABLE = "messages"


class MessageRepository(Protocol):
    def create(self, sender_id: UUID, receiver_id: UUID, content: str, listing_id: UUID | None = None) -> Message: ...

    def list_conversation(self, user_id: UUID, other_user_id: UUID, limit: int = 50) -> list[Message]: ...


class SupabaseMessageRepository:
    """MessageRepository implementation over PostgREST."""

    def __init__(self, client: Client | None = None) -> None:
        self.client = client or get_supabase_client()

    def create(self, sender_id: UUID, receiver_id: UUID, content: str, listing_id: UUID | None = None) -> Message:
        data = {
            "sender_id": str(sender_id),
            "receiver_id": str(receiver_id),
            "content": content,
            "listing_id": str(listing_id) if listing_id else None,
        }
        response = self.client.table(TABLE).insert(data).execute()
        return Message.model_validate(response.data[0])

    def list_conversation(self, user_id: UUID, other_user_id: UUID, limit: int = 50) -> list[Message]:
        """List messages exchanged between two users, oldest first."""
        me, other = str(user_id), str(other_user_id)
        response = (
            self.client.table(TABLE)
            .select("*")
            .or_(
                f"and(sender_id.eq.{me},receiver_id.eq.{other}),"
                f"and(sender_id.eq.{other},receiver_id.eq.{me})"
            )
            .order("created_at")
            .limit(limit)
            .execute()
        )
        return [Message.model_validate(row) for row in response.data or []]
