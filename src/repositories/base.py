"""Shared helpers for Supabase-backed repositories."""

from typing import Any

from postgrest.exceptions import APIError as PostgrestAPIError

# Postgres SQLSTATE for unique_violation
UNIQUE_VIOLATION = "23505"


class DuplicateRecordError(Exception):
    """An insert collided with a unique constraint."""

    def __init__(self, table: str, detail: str | None = None) -> None:
        self.table = table
        self.detail = detail
        super().__init__(f"Duplicate record in {table}: {detail or 'unique constraint violated'}")


def is_unique_violation(error: PostgrestAPIError) -> bool:
    """Check whether a PostgREST error was raised by a unique constraint."""
    return getattr(error, "code", None) == UNIQUE_VIOLATION


def first_row(response: Any) -> dict[str, Any] | None:
    """Return the first row of a PostgREST response, or None when empty."""
    data = getattr(response, "data", None)
    if not data:
        return None
    return data[0]
