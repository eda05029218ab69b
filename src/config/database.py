"""
Database client construction.

The realtime channel only exists on the async Supabase client, so the
inventory views are built on `AsyncClient`. Clients are created by the
owner of a view (the API lifespan) rather than reached through an import
side effect, so they can be closed with the view.
"""

from typing import Optional

from supabase import AsyncClient, acreate_client

from config.settings import Settings, get_settings


class SupabaseClientError(Exception):
    """Raised when Supabase client cannot be created."""
    pass


async def create_async_supabase_client(settings: Optional[Settings] = None) -> AsyncClient:
    """
    Create an async Supabase client from settings.

    Raises:
        SupabaseClientError: If the URL/key are missing or the client
            cannot be created
    """
    settings = settings or get_settings()
    if not settings.supabase_url or not settings.supabase_key:
        raise SupabaseClientError("SUPABASE_URL and SUPABASE_ANON_KEY must be set")
    try:
        return await acreate_client(settings.supabase_url, settings.supabase_key)
    except Exception as e:
        raise SupabaseClientError(f"Failed to create Supabase client: {e}") from e


# Type alias for cleaner type hints
SupabaseClient = AsyncClient
