"""
Pydantic models for users, notification settings and restaurant preferences.
"""

from typing import Any, Dict, Optional
from pydantic import BaseModel, Field, field_validator


class NotificationPreferences(BaseModel):
    """
    Stored as JSONB on the users row, e.g. {"email": true, "expiringSoon": true}.
    """
    email: bool = True
    expiring_soon: bool = Field(default=True, alias="expiringSoon")

    model_config = {"populate_by_name": True, "extra": "ignore"}


class User(BaseModel):
    model_config = {"from_attributes": True}

    id: str
    email: str
    gmail_tokens: Optional[Dict[str, Any]] = None
    notification_preferences: NotificationPreferences = NotificationPreferences()
    created_at: Optional[str] = None

    @field_validator("notification_preferences", mode="before")
    @classmethod
    def _default_preferences(cls, v):
        # NULL in the column means the table defaults apply.
        return v if v is not None else {}


class RestaurantPreference(BaseModel):
    model_config = {"from_attributes": True}

    id: Optional[str] = None
    user_id: str
    restaurant: str
    is_selected: bool = True


class RestaurantPreferenceUpdate(BaseModel):
    """Request body for POST /api/preferences/restaurants."""
    user_email: str = Field(alias="userEmail")
    restaurant: str
    is_selected: bool = Field(default=True, alias="isSelected")

    model_config = {"populate_by_name": True}
