"""Read-mostly access to tables owned by neighbouring subsystems.

Users, listings and carts are maintained elsewhere; the transaction core
only looks them up (and empties a cart once it has become an order).
"""

from typing import Protocol
from uuid import UUID

from supabase import Client

from src.core.supabase import get_supabase_client
from src.models.listing import CartItem, Listing
from src.models.user import User
from src.repositories.base import first_row


class UserRepository(Protocol):
    def get(self, user_id: UUID) -> User | None: ...

    def get_by_email(self, email: str) -> User | None: ...


class ListingRepository(Protocol):
    def get(self, listing_id: UUID) -> Listing | None: ...


class CartRepository(Protocol):
    def list_items(self, user_id: UUID) -> list[CartItem]: ...

    def clear(self, user_id: UUID) -> None: ...


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class SupabaseUserRepository:
    """UserRepository over the users table."""

    def __init__(self, client: Client | None = None) -> None:
        self.client = client or get_supabase_client()

    def get(self, user_id: UUID) -> User | None:
        response = self.client.table("users").select("*").eq("id", str(user_id)).limit(1).execute()
        row = first_row(response)
        return User.model_validate(row) if row else None

    def get_by_email(self, email: str) -> User | None:
        """Case-insensitive lookup; stored addresses keep whatever case signup used."""
        response = self.client.table("users").select("*").ilike("email", _escape_like(email)).limit(1).execute()
        row = first_row(response)
        return User.model_validate(row) if row else None


class SupabaseListingRepository:
    """ListingRepository over the listings table."""

    def __init__(self, client: Client | None = None) -> None:
        self.client = client or get_supabase_client()

    def get(self, listing_id: UUID) -> Listing | None:
        response = self.client.table("listings").select("*").eq("id", str(listing_id)).limit(1).execute()
        row = first_row(response)
        return Listing.model_validate(row) if row else None


class SupabaseCartRepository:
    """CartRepository over the cart_items table."""

    def __init__(self, client: Client | None = None) -> None:
        self.client = client or get_supabase_client()

    def list_items(self, user_id: UUID) -> list[CartItem]:
        response = (
            self.client.table("cart_items")
            .select("listing_id, quantity")
            .eq("user_id", str(user_id))
            .execute()
        )
        return [CartItem.model_validate(row) for row in response.data or []]

    def clear(self, user_id: UUID) -> None:
        self.client.table("cart_items").delete().eq("user_id", str(user_id)).execute()
