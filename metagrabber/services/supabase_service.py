"""
Supabase service module for settings persistence.

This module provides utilities for:
- Supabase client initialization
- Reading and upserting rows of the key/value `settings` table
"""

from datetime import datetime, timezone
from typing import Any, Optional
from supabase import create_client, Client

from metagrabber.config import Settings

SETTINGS_TABLE = "settings"


def create_supabase_client(settings: Settings) -> Optional[Client]:
    """
    Create a Supabase client if SUPABASE_URL and SUPABASE_SERVICE_KEY are set.

    Returns:
        Initialized Supabase client, or None when Supabase is not configured
        or the client could not be created.
    """
    if not settings.supabase_enabled:
        return None

    try:
        client = create_client(settings.supabase_url, settings.supabase_service_key)
        print("INFO: Supabase client initialized successfully")
        return client
    except Exception as e:
        print(f"WARNING: Failed to initialize Supabase client: {str(e)}")
        return None


def get_setting(client: Client, key: str) -> Optional[Any]:
    """
    Read the value of one row of the settings table.

    Args:
        client: Supabase client
        key: Setting name (primary key of the settings table)

    Returns:
        The stored JSON value, or None if the row does not exist
    """
    result = client.table(SETTINGS_TABLE).select("value").eq("key", key).execute()
    if not result.data:
        return None
    return result.data[0].get("value")


def set_setting(client: Client, key: str, value: Any) -> None:
    """
    Upsert one row of the settings table.

    Raises:
        Exception: If the upsert fails; callers decide whether to roll back.
    """
    client.table(SETTINGS_TABLE).upsert({
        "key": key,
        "value": value,
        "updated_at": datetime.now(timezone.utc).isoformat()
    }).execute()
