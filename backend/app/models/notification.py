"""
Pydantic models for the expiry notification sweep.
"""

from typing import List, Optional
from pydantic import BaseModel, Field


class UserNotificationResult(BaseModel):
    """Outcome of the sweep for a single user."""
    user_id: str
    email: str
    deal_ids: List[str] = []
    sent: bool = False
    marked: bool = False
    error: Optional[str] = None


class SweepResult(BaseModel):
    users_checked: int = Field(default=0, serialization_alias="usersChecked")
    notifications_sent: int = Field(default=0, serialization_alias="notificationsSent")
    deals_notified: int = Field(default=0, serialization_alias="dealsNotified")
    failures: int = 0
