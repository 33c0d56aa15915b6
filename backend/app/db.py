"""
Database client configuration.
Uses Supabase for PostgreSQL.

The client is built once by the process entry point (see app.main) and
handed to DealStore; nothing here creates a client at import time.
"""

import os
from typing import Optional

from supabase import create_client, Client
from dotenv import load_dotenv

from app.exceptions import ConfigurationError

load_dotenv()


def create_supabase_client(
    url: Optional[str] = None,
    key: Optional[str] = None,
) -> Client:
    """
    Create a Supabase client for service-level operations.

    Prefers SUPABASE_SERVICE_KEY (bypasses RLS, needed for the notifier sweep
    across all users) and falls back to SUPABASE_KEY.
    """
    url = url or os.getenv("SUPABASE_URL")
    key = key or os.getenv("SUPABASE_SERVICE_KEY") or os.getenv("SUPABASE_KEY")

    if not url or not key:
        raise ConfigurationError(
            "SUPABASE_URL and SUPABASE_SERVICE_KEY (or SUPABASE_KEY) must be set in environment variables"
        )

    return create_client(url, key)
