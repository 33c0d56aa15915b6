"""
Google OAuth helpers for connecting a user's Gmail account.

Flow:
  1. GET /auth/google            -> get_authorization_url()
  2. Google redirects back with ?code=...
  3. GET /auth/google/callback   -> exchange_code(code) -> (tokens, email)

The stored token dict never contains the client secret; it is re-read from
the environment whenever credentials are rebuilt.

Environment variables
---------------------
GOOGLE_CLIENT_ID
GOOGLE_CLIENT_SECRET
GOOGLE_REDIRECT_URI   (default: http://localhost:3001/auth/google/callback)
"""

import asyncio
import json
import os
from typing import Any, Dict, Tuple

from app.exceptions import ConfigurationError
from app.services.gmail_client import GMAIL_SCOPES, TOKEN_URI

DEFAULT_REDIRECT_URI = "http://localhost:3001/auth/google/callback"


def _client_config() -> Dict[str, Any]:
    client_id = os.getenv("GOOGLE_CLIENT_ID")
    client_secret = os.getenv("GOOGLE_CLIENT_SECRET")
    if not client_id or not client_secret:
        raise ConfigurationError("GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET must be set")
    return {
        "web": {
            "client_id": client_id,
            "client_secret": client_secret,
            "auth_uri": "https://accounts.google.com/o/oauth2/auth",
            "token_uri": TOKEN_URI,
        }
    }


def build_flow():
    from google_auth_oauthlib.flow import Flow

    flow = Flow.from_client_config(_client_config(), scopes=GMAIL_SCOPES)
    flow.redirect_uri = os.getenv("GOOGLE_REDIRECT_URI", DEFAULT_REDIRECT_URI)
    return flow


def get_authorization_url() -> str:
    """Consent URL asking for offline Gmail read access."""
    flow = build_flow()
    auth_url, _state = flow.authorization_url(access_type="offline", prompt="consent")
    return auth_url


def credentials_to_tokens(credentials) -> Dict[str, Any]:
    """Serialize credentials for storage, dropping the client secret."""
    tokens = json.loads(credentials.to_json())
    tokens.pop("client_secret", None)
    return tokens


def _exchange_code_sync(code: str) -> Tuple[Dict[str, Any], str]:
    from googleapiclient.discovery import build

    flow = build_flow()
    flow.fetch_token(code=code)
    credentials = flow.credentials

    oauth2 = build("oauth2", "v2", credentials=credentials, cache_discovery=False)
    info = oauth2.userinfo().get().execute()
    return credentials_to_tokens(credentials), info["email"]


async def exchange_code(code: str) -> Tuple[Dict[str, Any], str]:
    """Trade an authorization code for tokens and the account's email address."""
    return await asyncio.to_thread(_exchange_code_sync, code)
