"""
Google OAuth endpoints for connecting a Gmail account.

Endpoints:
  GET /google           returns the consent URL
  GET /google/callback  exchanges the code, stores tokens, redirects to
                        the frontend with ?auth=success or ?auth=error
"""

import logging
import os

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import RedirectResponse

from app.dependencies import get_store
from app.exceptions import ConfigurationError
from app.services.deal_store import DealStore
from app.services.google_oauth import exchange_code, get_authorization_url
from app.services.notification_template import DEFAULT_FRONTEND_URL

logger = logging.getLogger(__name__)

router = APIRouter()


def _frontend_url() -> str:
    return os.getenv("FRONTEND_URL", DEFAULT_FRONTEND_URL).rstrip("/")


@router.get("/google")
async def google_auth_url():
    try:
        return {"authUrl": get_authorization_url()}
    except ConfigurationError as e:
        raise HTTPException(status_code=503, detail=str(e))


@router.get("/google/callback")
async def google_auth_callback(code: str, store: DealStore = Depends(get_store)):
    try:
        tokens, email = await exchange_code(code)
        await store.upsert_user_tokens(email, tokens)
    except Exception as e:
        logger.error(f"Auth error: {e}")
        return RedirectResponse(f"{_frontend_url()}?auth=error")

    logger.info(f"Connected Gmail account for {email}")
    return RedirectResponse(f"{_frontend_url()}?auth=success")
