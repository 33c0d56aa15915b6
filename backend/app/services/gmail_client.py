"""
Gmail API client for promotional email search and fetch.

The Google API client is synchronous; calls are wrapped in
``asyncio.to_thread`` so scans can overlap Gmail waits with Claude and
Supabase calls. The underlying httplib2 transport is not thread-safe, so
calls on one client are serialized by a lock.

Environment variables
---------------------
GOOGLE_CLIENT_ID       OAuth client id (needed to refresh stored tokens).
GOOGLE_CLIENT_SECRET   OAuth client secret.
"""

import asyncio
import logging
import os
import threading
from typing import Any, Dict, List, Optional, Sequence

from app.exceptions import ConfigurationError, GmailAPIError
from app.models.email import RawEmail

logger = logging.getLogger(__name__)

GMAIL_SCOPES = [
    "https://www.googleapis.com/auth/gmail.readonly",
    "https://www.googleapis.com/auth/userinfo.email",
]

TOKEN_URI = "https://oauth2.googleapis.com/token"

# Sender handles matched with from: in the Gmail search query.
RESTAURANT_SENDERS = [
    "mcdonalds", "subway", "dominos", "pizzahut", "tacobell",
    "chipotle", "kfc", "wendys", "burgerking", "starbucks",
    "chickfila", "arbys", "panerabread", "fiveguys", "shakeshack",
    "innout", "sonic", "dairyqueen", "popeyes", "jimmyjohns",
]

DEFAULT_MAX_RESULTS = 50
DEFAULT_NEWER_THAN_DAYS = 30


def build_promotions_query(
    senders: Sequence[str] = RESTAURANT_SENDERS,
    newer_than_days: int = DEFAULT_NEWER_THAN_DAYS,
) -> str:
    """
    Gmail search query: promotions category AND (any sender) AND recent.

    >>> build_promotions_query(["kfc", "subway"], 7)
    'category:promotions (from:kfc OR from:subway) newer_than:7d'
    """
    senders_clause = " OR ".join(f"from:{s}" for s in senders)
    return f"category:promotions ({senders_clause}) newer_than:{newer_than_days}d"


def credentials_from_tokens(
    tokens: Dict[str, Any],
    client_id: Optional[str] = None,
    client_secret: Optional[str] = None,
):
    """Rebuild google.oauth2 Credentials from the token dict stored on the user."""
    from google.oauth2.credentials import Credentials

    client_id = client_id or os.getenv("GOOGLE_CLIENT_ID")
    client_secret = client_secret or os.getenv("GOOGLE_CLIENT_SECRET")
    if not client_id or not client_secret:
        raise ConfigurationError("GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET must be set")

    return Credentials(
        token=tokens.get("token") or tokens.get("access_token"),
        refresh_token=tokens.get("refresh_token"),
        token_uri=tokens.get("token_uri") or TOKEN_URI,
        client_id=client_id,
        client_secret=client_secret,
        scopes=tokens.get("scopes") or GMAIL_SCOPES,
    )


class GmailClient:
    """Search and fetch messages from one user's mailbox."""

    def __init__(self, service: Any):
        self._service = service
        self._lock = threading.Lock()

    @classmethod
    def from_tokens(
        cls,
        tokens: Dict[str, Any],
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
    ) -> "GmailClient":
        # Imported lazily to keep import-time cost low and tests fast.
        from googleapiclient.discovery import build

        creds = credentials_from_tokens(tokens, client_id, client_secret)
        # cache_discovery=False prevents writing discovery docs to disk.
        service = build("gmail", "v1", credentials=creds, cache_discovery=False)
        return cls(service)

    def _search_sync(self, query: str, max_results: int) -> List[str]:
        with self._lock:
            response = (
                self._service.users()
                .messages()
                .list(userId="me", q=query, maxResults=max_results)
                .execute()
            )
        return [m["id"] for m in (response.get("messages") or []) if m.get("id")]

    def _fetch_sync(self, message_id: str) -> Dict[str, Any]:
        with self._lock:
            return (
                self._service.users()
                .messages()
                .get(userId="me", id=message_id, format="full")
                .execute()
            )

    async def search(self, query: str, max_results: int = DEFAULT_MAX_RESULTS) -> List[str]:
        """Return message ids matching ``query``, newest first."""
        logger.info(f"Searching Gmail: max_results={max_results} query={query!r}")
        try:
            return await asyncio.to_thread(self._search_sync, query, max_results)
        except Exception as e:
            raise GmailAPIError(f"Gmail search failed: {str(e)}") from e

    async def fetch(self, message_id: str) -> RawEmail:
        """Fetch one message in full format."""
        try:
            message = await asyncio.to_thread(self._fetch_sync, message_id)
        except Exception as e:
            raise GmailAPIError(f"Failed to fetch Gmail message {message_id}: {str(e)}") from e
        return RawEmail.model_validate(message)

    async def search_promotional_emails(
        self,
        max_results: int = DEFAULT_MAX_RESULTS,
        senders: Sequence[str] = RESTAURANT_SENDERS,
    ) -> List[str]:
        return await self.search(build_promotions_query(senders), max_results)
