"""Order persistence backed by the Supabase orders table."""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Protocol
from uuid import UUID

from supabase import Client

from src.core.supabase import get_supabase_client
from src.models.order import Order, OrderItem, OrderStatus
from src.repositories.base import first_row

TABLE = "orders"


class OrderRepository(Protocol):
    """Storage operations for orders."""

    def get(self, order_id: UUID) -> Order | None: ...

    def create(
        self,
        user_id: UUID,
        items: list[OrderItem],
        currency: str,
        bid_id: UUID | None = None,
    ) -> Order: ...

    def list_by_user(self, user_id: UUID) -> list[Order]: ...

    def compare_and_set_status(self, order_id: UUID, expected: OrderStatus, new: OrderStatus) -> Order | None: ...


class SupabaseOrderRepository:
    """OrderRepository implementation over PostgREST."""

    def __init__(self, client: Client | None = None) -> None:
        self.client = client or get_supabase_client()

    def get(self, order_id: UUID) -> Order | None:
        response = self.client.table(TABLE).select("*").eq("id", str(order_id)).limit(1).execute()
        row = first_row(response)
        return Order.model_validate(row) if row else None

    def create(
        self,
        user_id: UUID,
        items: list[OrderItem],
        currency: str,
        bid_id: UUID | None = None,
    ) -> Order:
        """Insert a pending order with a snapshot of its line items."""
        total = sum((item.subtotal for item in items), Decimal("0"))
        data = {
            "user_id": str(user_id),
            "status": OrderStatus.PENDING.value,
            "total_price": str(total),
            "currency": currency,
            "items": [item.model_dump(mode="json") for item in items],
            "bid_id": str(bid_id) if bid_id else None,
        }
        response = self.client.table(TABLE).insert(data).execute()
        return Order.model_validate(response.data[0])

    def list_by_user(self, user_id: UUID) -> list[Order]:
        response = (
            self.client.table(TABLE)
            .select("*")
            .eq("user_id", str(user_id))
            .order("created_at", desc=True)
            .execute()
        )
        return [Order.model_validate(row) for row in response.data or []]

    def compare_and_set_status(self, order_id: UUID, expected: OrderStatus, new: OrderStatus) -> Order | None:
        response = (
            self.client.table(TABLE)
            .update({"status": new.value, "updated_at": datetime.now(timezone.utc).isoformat()})
            .eq("id", str(order_id))
            .eq("status", expected.value)
            .execute()
        )
        row = first_row(response)
        return Order.model_validate(row) if row else None
