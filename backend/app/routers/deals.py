"""
Deal scanning and listing endpoints.

Endpoints:
  POST /scan-deals  scan the user's Gmail promotions for deals
  GET  /deals/{user_email}  list active deals (query-string filters)
  POST /deals/{deal_id}/use  mark a deal as used
"""

import logging
from typing import Callable, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from app.dependencies import (
    get_extraction_client,
    get_gmail_factory,
    get_store,
)
from app.exceptions import ConfigurationError, GmailAPIError, StorageError
from app.models.deal import DealFilters, DealListResponse, ScanRequest, ScanResponse
from app.services.deal_store import DealStore
from app.services.pipeline import scan_user_deals

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/scan-deals", response_model=ScanResponse)
async def scan_deals(
    body: ScanRequest,
    store: DealStore = Depends(get_store),
    extraction_client=Depends(get_extraction_client),
    gmail_factory: Callable = Depends(get_gmail_factory),
):
    """
    Scan the user's recent restaurant promotions and store new deals.

    Per-email failures are skipped; the response counts what was stored.
    Returns 401 when the user has not connected Gmail.
    """
    try:
        user = await store.get_user_by_email(body.user_email)
    except StorageError as e:
        logger.error(f"Scan deals user lookup failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    if not user or not user.gmail_tokens:
        raise HTTPException(status_code=401, detail="User not authenticated")

    try:
        gmail = gmail_factory(user.gmail_tokens)
    except ConfigurationError as e:
        raise HTTPException(status_code=503, detail=str(e))

    try:
        deals = await scan_user_deals(user, gmail, extraction_client, store)
    except GmailAPIError as e:
        logger.error(f"Scan deals error for {user.email}: {e}")
        raise HTTPException(status_code=502, detail=str(e))

    return ScanResponse(success=True, deals_processed=len(deals), deals=deals)


@router.get("/deals/{user_email}", response_model=DealListResponse)
async def list_deals(
    user_email: str,
    restaurant: Optional[str] = Query(None),
    min_savings: Optional[float] = Query(None, alias="minSavings"),
    expiring_soon: bool = Query(False, alias="expiringSoon"),
    store: DealStore = Depends(get_store),
):
    """List a user's active deals, soonest expiry first."""
    filters = DealFilters(
        restaurant=restaurant,
        min_savings=min_savings,
        expiring_soon=expiring_soon,
    )

    try:
        user = await store.get_user_by_email(user_email)
        if not user:
            raise HTTPException(status_code=404, detail="User not found")
        deals = await store.list_user_deals(user.id, filters)
    except HTTPException:
        raise
    except StorageError as e:
        logger.error(f"Get deals error: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    return DealListResponse(deals=deals)


@router.post("/deals/{deal_id}/use")
async def use_deal(deal_id: str, store: DealStore = Depends(get_store)):
    """Mark a deal as used. Used deals drop out of lists and notifications."""
    try:
        updated = await store.mark_deal_used(deal_id)
    except StorageError as e:
        logger.error(f"Mark deal used error: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    if not updated:
        raise HTTPException(status_code=404, detail="Deal not found")

    return {"success": True}
