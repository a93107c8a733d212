from __future__ import annotations

from typing import TYPE_CHECKING

from supabase import Client, create_client
from supabase.lib.client_options import ClientOptions

from app.utils.logging import get_logger

if TYPE_CHECKING:
    from app.config import Settings

logger = get_logger(__name__)


def create_supabase_admin_client(settings: Settings) -> Client:
    """Create a Supabase client using the service role key.

    Automation runs outside any user session, so the service role is used for
    every repository.
    """
    logger.debug("Initializing Supabase admin client")
    if not settings.supabase_url or not settings.supabase_service_role_key:
        raise RuntimeError("supabase_url and supabase_service_role_key are required for admin client")
    return create_client(
        settings.supabase_url,
        settings.supabase_service_role_key,
        options=ClientOptions(auto_refresh_token=False, persist_session=False),
    )
