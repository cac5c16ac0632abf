import logging
from typing import Optional

from supabase import create_client, Client
from app.config import settings

logger = logging.getLogger(__name__)


class SupabaseClient:
    _client: Optional[Client] = None

    @classmethod
    def get_client(cls) -> Client:
        """Shared client, built with the service role key when one is configured.

        The service role bypasses row level security, so routes run their
        ownership checks (app.core.dependencies) before any row is read or written.
        """
        if cls._client is None:
            key = settings.supabase_service_role_key or settings.supabase_key
            if not settings.supabase_url or not key:
                raise RuntimeError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY (or SUPABASE_KEY) must be set")
            if not settings.supabase_service_role_key:
                logger.warning("No service role key configured, falling back to the anon key")
            cls._client = create_client(settings.supabase_url, key)
        return cls._client

    @classmethod
    def reset_client(cls):
        cls._client = None


def get_supabase() -> Client:
    return SupabaseClient.get_client()
