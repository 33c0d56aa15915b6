"""
Expiry notifier: emails each user about deals expiring within three days.

One sweep:
  for each user (in order)
    skip if notification_preferences.expiringSoon is off
    load active, un-notified deals expiring on or before today + 3 days
    if any: send ONE email listing them, then mark them all notified

Ordering matters. A failed send marks nothing, so the next sweep retries.
A failed mark after a successful send is logged and left alone; the user may
get the same deals again next sweep, which beats silently dropping them.

Only one sweep runs at a time: a trigger that arrives while a sweep is in
flight waits for and shares that sweep's result. Each user's send-then-mark
unit is additionally guarded by a per-user lock.
"""

import asyncio
import logging
import weakref
from datetime import date, timedelta
from typing import Callable, Optional

from app.models.notification import SweepResult, UserNotificationResult
from app.models.user import User
from app.services.notification_template import render_expiring_deals_email

logger = logging.getLogger(__name__)

NOTIFY_HORIZON_DAYS = 3


class ExpiryNotifier:

    def __init__(self, store, mailer, today: Optional[Callable[[], date]] = None):
        self.store = store
        self.mailer = mailer
        self._today = today or date.today
        self._inflight: Optional[asyncio.Task] = None
        # Entries vanish once no sweep holds the lock.
        self._user_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    @property
    def sweep_in_progress(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    def cutoff(self) -> date:
        return self._today() + timedelta(days=NOTIFY_HORIZON_DAYS)

    async def run_sweep(self) -> SweepResult:
        """
        Run a sweep, or join the one already running.

        Raises whatever the pre-batch user listing raises; per-user failures
        are counted in the result instead.
        """
        if not self.sweep_in_progress:
            self._inflight = asyncio.create_task(self._sweep())
        else:
            logger.info("Notifier sweep already running; joining it")
        # shield: a caller going away must not cancel the sweep for the others
        return await asyncio.shield(self._inflight)

    async def _sweep(self) -> SweepResult:
        users = await self.store.list_users()
        cutoff = self.cutoff()
        result = SweepResult()

        for user in users:
            result.users_checked += 1
            outcome = await self.notify_user(user, cutoff)
            if outcome is None:
                continue
            if outcome.sent:
                result.notifications_sent += 1
            if outcome.marked:
                result.deals_notified += len(outcome.deal_ids)
            if outcome.error:
                result.failures += 1

        logger.info(
            f"Notifier sweep done: users={result.users_checked} "
            f"sent={result.notifications_sent} deals={result.deals_notified} "
            f"failures={result.failures}"
        )
        return result

    def _lock_for(self, user_id: str) -> asyncio.Lock:
        lock = self._user_locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._user_locks[user_id] = lock
        return lock

    async def notify_user(
        self,
        user: User,
        cutoff: Optional[date] = None,
    ) -> Optional[UserNotificationResult]:
        """
        Send one user their expiring-deals email and mark those deals notified.

        Returns None when the user is opted out or has nothing expiring.
        """
        if not user.notification_preferences.expiring_soon:
            return None

        cutoff = cutoff or self.cutoff()

        async with self._lock_for(user.id):
            outcome = UserNotificationResult(user_id=user.id, email=user.email)

            try:
                deals = await self.store.list_expiring_unnotified(user.id, cutoff)
            except Exception as e:
                logger.error(f"Failed to load expiring deals for {user.email}: {e}")
                outcome.error = str(e)
                return outcome

            if not deals:
                return None

            outcome.deal_ids = [d.id for d in deals]
            subject, html = render_expiring_deals_email(deals)

            try:
                await self.mailer.send(user.email, subject, html)
            except Exception as e:
                logger.error(f"Failed to send expiry notification to {user.email}: {e}")
                outcome.error = str(e)
                return outcome
            outcome.sent = True

            try:
                await self.store.mark_notified(outcome.deal_ids)
            except Exception as e:
                logger.error(
                    f"Sent notification to {user.email} but failed to mark "
                    f"{len(deals)} deals notified; they will be sent again: {e}"
                )
                outcome.error = str(e)
                return outcome
            outcome.marked = True

            logger.info(f"Sent notification to {user.email} for {len(deals)} deals")
            return outcome


async def run_periodic_sweeps(notifier: ExpiryNotifier, interval_seconds: float) -> None:
    """Background loop: sweep, sleep, repeat. Errors are logged, never fatal."""
    logger.info(f"Expiry notifier scheduled every {interval_seconds:.0f}s")
    while True:
        try:
            await notifier.run_sweep()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Notifier sweep failed: {e}")
        await asyncio.sleep(interval_seconds)
