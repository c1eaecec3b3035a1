"""Supabase clients for the marketplace tables and for credential checks."""

from functools import lru_cache
from typing import Any

from supabase import Client, create_client
from supabase.lib.client_options import SyncClientOptions
from supabase_auth import SyncMemoryStorage

from src.core.config import get_settings

# Tables the transaction core writes to; readiness fails if any is unreachable.
CORE_TABLES = ("bids", "orders", "payments")


def _build_client(options: SyncClientOptions | None = None) -> Client:
    settings = get_settings()
    if options is None:
        return create_client(settings.supabase_url, settings.supabase_secret_key)
    return create_client(settings.supabase_url, settings.supabase_secret_key, options=options)


@lru_cache
def get_supabase_client() -> Client:
    """Shared client for repositories.

    The secret key bypasses row level security, so services check ownership
    before they query.
    """
    return _build_client()


def create_auth_client() -> Client:
    """Fresh client for sign_in_with_password.

    Signing in stores a session on the client, which must never leak into the
    shared repository client.
    """
    return _build_client(
        SyncClientOptions(
            storage=SyncMemoryStorage(),
            auto_refresh_token=False,
            persist_session=False,
        )
    )


async def check_database_connection() -> dict[str, Any]:
    """Probe each core table with a one-row select.

    Returns:
        dict: 'healthy' flag, plus 'error' naming the first failing table.
    """
    for table in CORE_TABLES:
        try:
            get_supabase_client().table(table).select("id").limit(1).execute()
        except Exception as e:
            return {"healthy": False, "error": f"{table}: {e}"}
    return {"healthy": True}
