"""Payment persistence backed by the Supabase payments table."""

import json
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Protocol
from uuid import UUID

from postgrest.exceptions import APIError as PostgrestAPIError
from supabase import Client

from src.core.supabase import get_supabase_client
from src.models.payment import Payment, PaymentStatus
from src.repositories.base import DuplicateRecordError, first_row, is_unique_violation

TABLE = "payments"
UNMATCHED_EVENTS_TABLE = "unmatched_payment_events"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class PaymentRepository(Protocol):
    """Storage operations for payments and their settlement."""

    def get(self, payment_id: UUID) -> Payment | None: ...

    def get_by_external_reference(self, external_reference_id: str) -> Payment | None: ...

    def find_pending_for_order(self, order_id: UUID) -> Payment | None: ...

    def create_pending(
        self,
        order_id: UUID,
        user_id: UUID,
        amount: Decimal,
        currency: str,
        bid_id: UUID | None = None,
    ) -> Payment: ...

    def attach_checkout(self, payment_id: UUID, external_reference_id: str, checkout_url: str | None) -> Payment | None: ...

    def compare_and_set_status(
        self,
        payment_id: UUID,
        expected: PaymentStatus,
        new: PaymentStatus,
        failure_reason: str | None = None,
    ) -> Payment | None: ...

    def abandon_unattached(self, payment_id: UUID, reason: str) -> Payment | None: ...

    def record_unmatched_event(self, event_id: str, event_type: str, external_reference_id: str | None, payload: dict[str, Any]) -> None: ...


class SupabasePaymentRepository:
    """PaymentRepository implementation over PostgREST.

    A partial unique index on payments(order_id) WHERE status = 'pending'
    keeps at most one open payment per order.
    """

    def __init__(self, client: Client | None = None) -> None:
        self.client = client or get_supabase_client()

    def get(self, payment_id: UUID) -> Payment | None:
        response = self.client.table(TABLE).select("*").eq("id", str(payment_id)).limit(1).execute()
        row = first_row(response)
        return Payment.model_validate(row) if row else None

    def get_by_external_reference(self, external_reference_id: str) -> Payment | None:
        response = (
            self.client.table(TABLE)
            .select("*")
            .eq("external_reference_id", external_reference_id)
            .limit(1)
            .execute()
        )
        row = first_row(response)
        return Payment.model_validate(row) if row else None

    def find_pending_for_order(self, order_id: UUID) -> Payment | None:
        response = (
            self.client.table(TABLE)
            .select("*")
            .eq("order_id", str(order_id))
            .eq("status", PaymentStatus.PENDING.value)
            .limit(1)
            .execute()
        )
        row = first_row(response)
        return Payment.model_validate(row) if row else None

    def create_pending(
        self,
        order_id: UUID,
        user_id: UUID,
        amount: Decimal,
        currency: str,
        bid_id: UUID | None = None,
    ) -> Payment:
        """Insert a pending payment without a processor reference.

        Raises:
            DuplicateRecordError: If the order already has a pending payment.
        """
        data = {
            "order_id": str(order_id),
            "user_id": str(user_id),
            "bid_id": str(bid_id) if bid_id else None,
            "amount": str(amount),
            "currency": currency,
            "method": "stripe_checkout",
            "status": PaymentStatus.PENDING.value,
        }
        try:
            response = self.client.table(TABLE).insert(data).execute()
        except PostgrestAPIError as e:
            if is_unique_violation(e):
                raise DuplicateRecordError(TABLE, e.message) from e
            raise
        return Payment.model_validate(response.data[0])

    def attach_checkout(self, payment_id: UUID, external_reference_id: str, checkout_url: str | None) -> Payment | None:
        """Record the Checkout Session on a pending payment that has none yet.

        Returns:
            The updated payment, or None if a session was already attached or
            the payment is no longer pending.
        """
        response = (
            self.client.table(TABLE)
            .update(
                {
                    "external_reference_id": external_reference_id,
                    "checkout_url": checkout_url,
                    "updated_at": _now(),
                }
            )
            .eq("id", str(payment_id))
            .eq("status", PaymentStatus.PENDING.value)
            .is_("external_reference_id", "null")
            .execute()
        )
        row = first_row(response)
        return Payment.model_validate(row) if row else None

    def compare_and_set_status(
        self,
        payment_id: UUID,
        expected: PaymentStatus,
        new: PaymentStatus,
        failure_reason: str | None = None,
    ) -> Payment | None:
        update: dict[str, Any] = {"status": new.value, "updated_at": _now()}
        if failure_reason is not None:
            update["failure_reason"] = failure_reason
        response = (
            self.client.table(TABLE)
            .update(update)
            .eq("id", str(payment_id))
            .eq("status", expected.value)
            .execute()
        )
        row = first_row(response)
        return Payment.model_validate(row) if row else None

    def abandon_unattached(self, payment_id: UUID, reason: str) -> Payment | None:
        """Fail a pending payment whose Checkout Session was never created."""
        response = (
            self.client.table(TABLE)
            .update({"status": PaymentStatus.FAILED.value, "failure_reason": reason, "updated_at": _now()})
            .eq("id", str(payment_id))
            .eq("status", PaymentStatus.PENDING.value)
            .is_("external_reference_id", "null")
            .execute()
        )
        row = first_row(response)
        return Payment.model_validate(row) if row else None

    def record_unmatched_event(
        self,
        event_id: str,
        event_type: str,
        external_reference_id: str | None,
        payload: dict[str, Any],
    ) -> None:
        """Keep a webhook event that referenced no known payment for reconciliation.

        Replays of the same event id are ignored.
        """
        data = {
            "event_id": event_id,
            "event_type": event_type,
            "external_reference_id": external_reference_id,
            "payload": json.loads(json.dumps(payload, default=str)),
        }
        try:
            self.client.table(UNMATCHED_EVENTS_TABLE).insert(data).execute()
        except PostgrestAPIError as e:
            if not is_unique_violation(e):
                raise
