"""Direct messaging business logic service."""

import logging
from uuid import UUID

from src.api.middleware.error_handler import NotFoundError, ValidationError
from src.models.message import Message
from src.repositories.catalog_repository import SupabaseUserRepository, UserRepository
from src.repositories.message_repository import MessageRepository, SupabaseMessageRepository

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 2000


class MessageService:
    """Service for storing direct messages between users."""

    def __init__(
        self,
        messages: MessageRepository | None = None,
        users: UserRepository | None = None,
    ) -> None:
        self.messages = messages or SupabaseMessageRepository()
        self.users = users or SupabaseUserRepository()

    async def send_message(
        self,
        sender_id: UUID,
        receiver_id: UUID,
        content: str,
        listing_id: UUID | None = None,
    ) -> Message:
        """Send a message to another user.

        Raises:
            ValidationError: If the sender messages themselves or the content
                is empty or too long.
            NotFoundError: If the receiver does not exist.
        """
        if sender_id == receiver_id:
            raise ValidationError("You cannot send a message to yourself")

        content = content.strip()
        if not content:
            raise ValidationError("Message content cannot be empty")
        if len(content) > MAX_MESSAGE_LENGTH:
            raise ValidationError(f"Message content cannot exceed {MAX_MESSAGE_LENGTH} characters")

        if not self.users.get(receiver_id):
            raise NotFoundError("Receiver not found")

        message = self.messages.create(sender_id, receiver_id, content, listing_id)
        logger.info("Message %s sent from %s to %s", message.id, sender_id, receiver_id)
        return message

    async def list_conversation(self, user_id: UUID, other_user_id: UUID, limit: int = 50) -> list[Message]:
        return self.messages.list_conversation(user_id, other_user_id, limit=limit)
