"""
Manual trigger for the expiry notifier sweep.

The same sweep runs on a timer when NOTIFIER_INTERVAL_SECONDS is set (see
app.main). A manual trigger during a running sweep joins it instead of
starting a second one.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from app.dependencies import get_notifier
from app.services.notifier import ExpiryNotifier

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/check")
async def check_notifications(notifier: ExpiryNotifier = Depends(get_notifier)):
    try:
        result = await notifier.run_sweep()
    except Exception as e:
        logger.error(f"Notification check error: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    return {
        "success": True,
        "message": "Notification check completed",
        "result": result.model_dump(by_alias=True),
    }
