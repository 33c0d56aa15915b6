"""
Restaurant preference endpoints.

Endpoints:
  GET  /restaurants/{user_email}  list the user's restaurant selections
  POST /restaurants  select/deselect a restaurant
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from app.dependencies import get_store
from app.exceptions import StorageError
from app.models.user import RestaurantPreferenceUpdate
from app.services.deal_store import DealStore

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/restaurants/{user_email}")
async def get_restaurant_preferences(
    user_email: str,
    store: DealStore = Depends(get_store),
):
    try:
        user = await store.get_user_by_email(user_email)
        if not user:
            raise HTTPException(status_code=404, detail="User not found")
        preferences = await store.get_restaurant_preferences(user.id)
    except HTTPException:
        raise
    except StorageError as e:
        logger.error(f"Get preferences error: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    return {"preferences": [p.model_dump() for p in preferences]}


@router.post("/restaurants")
async def update_restaurant_preference(
    body: RestaurantPreferenceUpdate,
    store: DealStore = Depends(get_store),
):
    try:
        user = await store.get_user_by_email(body.user_email)
        if not user:
            raise HTTPException(status_code=404, detail="User not found")
        await store.update_restaurant_preference(user.id, body.restaurant, body.is_selected)
    except HTTPException:
        raise
    except StorageError as e:
        logger.error(f"Update preference error: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    return {"success": True}
