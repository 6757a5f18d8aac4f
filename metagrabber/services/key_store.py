"""
Durable storage for the provider key list.

A key store only needs to get and set an opaque list of strings. Two stores
are provided:
- SupabaseKeyStore: one row of the Supabase `settings` table
- FileKeyStore: a local JSON file (used when Supabase is not configured)
"""

import json
import os
import logging
from typing import List

from supabase import Client

from metagrabber.config import Settings
from metagrabber.services.supabase_service import create_supabase_client, get_setting, set_setting

logger = logging.getLogger(__name__)

KEYS_SETTING = "openai_api_keys"


class FileKeyStore:
    """Key list stored as a JSON array in a local file."""

    def __init__(self, path: str):
        self.path = path

    def load(self) -> List[str]:
        if not os.path.exists(self.path):
            return []
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, list):
            logger.warning("Ignoring malformed key file %s", self.path)
            return []
        return [str(k) for k in data]

    def save(self, keys: List[str]) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        # Atomic replace
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(keys, f, indent=2)
        os.replace(tmp_path, self.path)


class SupabaseKeyStore:
    """Key list stored as the JSON value of one Supabase settings row."""

    def __init__(self, client: Client, setting_key: str = KEYS_SETTING):
        self.client = client
        self.setting_key = setting_key

    def load(self) -> List[str]:
        value = get_setting(self.client, self.setting_key)
        if not value:
            return []
        return [str(k) for k in value]

    def save(self, keys: List[str]) -> None:
        set_setting(self.client, self.setting_key, list(keys))


def create_key_store(settings: Settings):
    """Return the Supabase store when configured, otherwise the local file store."""
    client = create_supabase_client(settings)
    if client is not None:
        return SupabaseKeyStore(client)
    return FileKeyStore(settings.keys_file)
