"""Supabase client for the compatibility gateway and tenant resolution."""

from functools import lru_cache

from supabase import Client, create_client

from app.core.config import get_settings


@lru_cache(maxsize=1)
def get_supabase() -> Client:
    """
    Shared service-role client.

    The service role key bypasses row level security, so every tenant-scoped
    query must filter on tenant_id itself.

    Raises:
        RuntimeError: If the client cannot be created
    """
    settings = get_settings()
    try:
        return create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)
    except Exception as e:
        raise RuntimeError(f"Failed to initialize Supabase client: {e}") from e
