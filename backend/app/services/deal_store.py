"""
Supabase-backed storage for users, deals and restaurant preferences.

Tables (see the schema in the project README / Supabase dashboard):
  users                         id, email, gmail_tokens, notification_preferences
  deals                         one row per extracted email deal
  user_restaurant_preferences   (user_id, restaurant) unique

The Supabase Python client is synchronous; every query runs in a worker
thread so callers can await it alongside Gmail and Claude calls.
"""

import asyncio
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from app.exceptions import StorageError
from app.models.deal import Deal, DealCreate, DealFilters
from app.models.user import RestaurantPreference, User

logger = logging.getLogger(__name__)

# Window used by the "expiringSoon" list filter and the notifier sweep.
EXPIRING_SOON_DAYS = 3


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class DealStore:
    """Keyed record store over the users and deals tables."""

    def __init__(self, client):
        self.client = client

    async def _execute(self, query, action: str):
        try:
            return await asyncio.to_thread(query.execute)
        except Exception as e:
            raise StorageError(f"Failed to {action}: {str(e)}") from e

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def get_user_by_email(self, email: str) -> Optional[User]:
        result = await self._execute(
            self.client.table("users").select("*").eq("email", email).limit(1),
            "look up user",
        )
        if not result.data:
            return None
        return User(**result.data[0])

    async def list_users(self) -> List[User]:
        result = await self._execute(
            self.client.table("users").select("id, email, notification_preferences"),
            "list users",
        )
        return [User(**row) for row in (result.data or [])]

    async def upsert_user_tokens(self, email: str, tokens: Dict[str, Any]) -> User:
        """Create the user on first sign-in, otherwise refresh their Gmail tokens."""
        result = await self._execute(
            self.client.table("users").upsert(
                {"email": email, "gmail_tokens": tokens},
                on_conflict="email",
            ),
            "store user tokens",
        )
        if not result.data:
            raise StorageError(f"Failed to store user tokens: no row returned for {email}")
        return User(**result.data[0])

    # ------------------------------------------------------------------
    # Deals
    # ------------------------------------------------------------------

    async def insert_deal(self, deal: DealCreate) -> Deal:
        result = await self._execute(
            self.client.table("deals").insert(deal.model_dump()),
            "save deal",
        )
        if not result.data:
            raise StorageError(f"Failed to save deal: no row returned for email {deal.email_id}")
        return Deal(**result.data[0])

    async def find_deal_by_email_id(self, user_id: str, email_id: str) -> Optional[Deal]:
        """Existing deal for (user, source email), used to skip re-scanned mail."""
        result = await self._execute(
            self.client.table("deals")
            .select("*")
            .eq("user_id", user_id)
            .eq("email_id", email_id)
            .limit(1),
            "look up deal by email id",
        )
        if not result.data:
            return None
        return Deal(**result.data[0])

    async def list_user_deals(
        self,
        user_id: str,
        filters: Optional[DealFilters] = None,
        today: Optional[date] = None,
    ) -> List[Deal]:
        """
        Active deals for a user, soonest expiry first (no-expiry deals last).
        """
        filters = filters or DealFilters()
        today = today or date.today()

        query = (
            self.client.table("deals")
            .select("*")
            .eq("user_id", user_id)
            .eq("is_active", True)
        )

        if filters.restaurant:
            query = query.eq("restaurant", filters.restaurant)

        if filters.min_savings is not None:
            query = query.gte("savings", filters.min_savings)

        if filters.expiring_soon:
            cutoff = today + timedelta(days=EXPIRING_SOON_DAYS)
            query = query.lte("expiry_date", cutoff.isoformat())

        query = query.order("expiry_date", desc=False, nullsfirst=False)

        result = await self._execute(query, "list deals")
        return [Deal(**row) for row in (result.data or [])]

    async def list_expiring_unnotified(self, user_id: str, cutoff: date) -> List[Deal]:
        """Active, not-yet-notified deals with an expiry date on or before cutoff."""
        result = await self._execute(
            self.client.table("deals")
            .select("*")
            .eq("user_id", user_id)
            .eq("is_active", True)
            .eq("is_notified", False)
            .lte("expiry_date", cutoff.isoformat())
            .not_.is_("expiry_date", "null"),
            "list expiring deals",
        )
        return [Deal(**row) for row in (result.data or [])]

    async def mark_notified(self, deal_ids: List[str]) -> None:
        if not deal_ids:
            return
        await self._execute(
            self.client.table("deals")
            .update({"is_notified": True, "updated_at": _now_iso()})
            .in_("id", deal_ids),
            "mark deals notified",
        )

    async def mark_deal_used(self, deal_id: str) -> bool:
        """
        Deactivate a deal. Returns False if no deal has that id.
        """
        result = await self._execute(
            self.client.table("deals")
            .update({"is_active": False, "updated_at": _now_iso()})
            .eq("id", deal_id),
            "mark deal used",
        )
        return bool(result.data)

    # ------------------------------------------------------------------
    # Restaurant preferences
    # ------------------------------------------------------------------

    async def get_restaurant_preferences(self, user_id: str) -> List[RestaurantPreference]:
        result = await self._execute(
            self.client.table("user_restaurant_preferences")
            .select("*")
            .eq("user_id", user_id),
            "load restaurant preferences",
        )
        return [RestaurantPreference(**row) for row in (result.data or [])]

    async def update_restaurant_preference(
        self,
        user_id: str,
        restaurant: str,
        is_selected: bool,
    ) -> None:
        await self._execute(
            self.client.table("user_restaurant_preferences").upsert(
                {
                    "user_id": user_id,
                    "restaurant": restaurant,
                    "is_selected": is_selected,
                },
                on_conflict="user_id,restaurant",
            ),
            "update restaurant preference",
        )
