"""Store and workflow settings read from the environment."""

import os

from matchdesk.utils.errors import StoreUnavailable


class StoreConfig:
    """Record store configuration."""

    SUPABASE_URL = os.environ.get("SUPABASE_URL")
    SUPABASE_SERVICE_ROLE_KEY = os.environ.get("SUPABASE_SERVICE_ROLE_KEY")
    STORE_TIMEOUT_SECONDS = float(os.environ.get("STORE_TIMEOUT_SECONDS", "10"))
    MATCH_LIST_LIMIT = int(os.environ.get("MATCH_LIST_LIMIT", "200"))
    PHOTO_LIST_LIMIT = int(os.environ.get("PHOTO_LIST_LIMIT", "200"))

    @classmethod
    def validate(cls) -> None:
        """Fail fast when store credentials are missing."""
        if not cls.SUPABASE_URL or not cls.SUPABASE_SERVICE_ROLE_KEY:
            raise StoreUnavailable("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")
