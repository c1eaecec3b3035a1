"""User notifications for bid and payment transitions."""

import logging
from typing import Any, Protocol
from uuid import UUID

from supabase import Client

from src.core.supabase import get_supabase_client

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def notify(self, user_id: UUID, kind: str, message: str, data: dict[str, Any] | None = None) -> None: ...


class NotificationService:
    """Stores notifications in the notifications table for the fan-out subsystem.

    Delivery is best effort. A failed insert is logged and never undoes the
    state change that triggered it.
    """

    def __init__(self, client: Client | None = None) -> None:
        self.client = client or get_supabase_client()

    def notify(self, user_id: UUID, kind: str, message: str, data: dict[str, Any] | None = None) -> None:
        try:
            self.client.table("notifications").insert(
                {
                    "user_id": str(user_id),
                    "kind": kind,
                    "message": message,
                    "data": data or {},
                    "read": False,
                }
            ).execute()
        except Exception as e:
            logger.warning("Failed to store %s notification for user %s: %s", kind, user_id, str(e))
