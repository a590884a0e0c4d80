"""Supabase client factory."""
import logging
from typing import Optional

from supabase import Client, create_client

from fitness_challenge_api.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


def get_supabase_client(config: Optional[Settings] = None) -> Optional[Client]:
    """
    Get Supabase client instance.

    Uses the service role key when available (server-side jobs need to read
    every profile), otherwise the anon key. Returns None when unconfigured.
    """
    config = config or default_settings

    if not config.SUPABASE_URL or not config.SUPABASE_KEY:
        logger.warning("Supabase credentials not configured. Profile access is disabled.")
        return None

    try:
        return create_client(config.SUPABASE_URL, config.SUPABASE_KEY)
    except Exception as e:
        logger.error(f"Failed to create Supabase client: {e}")
        return None
