"""
Entitlement / quota tracker.

Keeps one upload counter per identity in the preferences store: a guest
counter while the identity is a guest (or no user ID is known yet) and a
per-user counter once registered. The effective limit comes from the last
subscription status applied by the reconciler.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from modules.subscriptions.models import SubscriptionPlan, SubscriptionStatus

from .interfaces import IPreferencesStore
from .models import QuotaStatus

logger = logging.getLogger(__name__)

GUEST_COUNTER_KEY = "com.guidepost.trialUploadCount.guest"
USER_COUNTER_PREFIX = "com.guidepost.trialUploadCount.user."

DEFAULT_TRIAL_UPLOAD_LIMIT = 10


def user_counter_key(user_id: str) -> str:
    return f"{USER_COUNTER_PREFIX}{user_id}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EntitlementTracker:
    """
    Maps the current identity to an upload counter and a quota limit.

    Enforcement is advisory: can_upload() is checked by the caller before an
    upload, and concurrent uploads may overshoot the quota by the number in
    flight.
    """

    def __init__(
        self,
        preferences: IPreferencesStore,
        trial_limit: int = DEFAULT_TRIAL_UPLOAD_LIMIT,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._preferences = preferences
        self._trial_limit = trial_limit
        self._clock = clock or _utcnow
        self._status = SubscriptionStatus.trial()
        self._is_guest = False
        self._user_id: Optional[str] = None

    # ------------------------------------------------------------------
    # Identity and plan

    def set_identity(self, is_guest: bool, user_id: Optional[str]) -> None:
        """Select the counter for the current identity."""
        self._is_guest = is_guest
        self._user_id = user_id
        logger.debug(f"Quota identity set to {'guest' if is_guest else 'user'}")

    def clear_identity(self) -> None:
        self._is_guest = False
        self._user_id = None

    def apply_subscription_status(self, status: SubscriptionStatus) -> None:
        """Listener for the reconciler; replaces the plan used for the limit."""
        self._status = status

    @property
    def subscription_status(self) -> SubscriptionStatus:
        return self._status

    @property
    def counter_key(self) -> str:
        if self._is_guest or not self._user_id:
            return GUEST_COUNTER_KEY
        return user_counter_key(self._user_id)

    @property
    def effective_plan(self) -> SubscriptionPlan:
        """Pro only while the Pro status is active; otherwise Trial."""
        if self._status.is_pro and self._status.is_active(self._clock()):
            return SubscriptionPlan.PRO
        return SubscriptionPlan.TRIAL

    @property
    def quota_limit(self) -> Optional[int]:
        """None (unlimited) on active Pro, else the Trial limit."""
        if self.effective_plan == SubscriptionPlan.PRO:
            return None
        return self._trial_limit

    # ------------------------------------------------------------------
    # Quota

    @property
    def current_count(self) -> int:
        return self._preferences.get_int(self.counter_key)

    def remaining_uploads(self) -> Optional[int]:
        limit = self.quota_limit
        if limit is None:
            return None
        return max(0, limit - self.current_count)

    def can_upload(self) -> bool:
        limit = self.quota_limit
        if limit is None:
            return True
        return self.current_count < limit

    def record_upload(self) -> None:
        if self.effective_plan != SubscriptionPlan.TRIAL:
            return
        key = self.counter_key
        count = self._preferences.get_int(key) + 1
        self._preferences.set_int(key, count)
        logger.debug(f"Trial uploads used: {count}/{self._trial_limit}")

    def snapshot(self) -> QuotaStatus:
        return QuotaStatus(
            plan=self.effective_plan,
            used=self.current_count,
            limit=self.quota_limit,
            remaining=self.remaining_uploads(),
            can_upload=self.can_upload(),
        )

    # ------------------------------------------------------------------
    # Counter lifecycle

    def reset_guest_counter(self) -> None:
        self._preferences.remove(GUEST_COUNTER_KEY)
        logger.debug("Reset guest upload counter")

    def reset_user_counter(self, user_id: str) -> None:
        self._preferences.remove(user_counter_key(user_id))
        logger.debug("Reset user upload counter")

    def carry_over_guest_count(self, user_id: str) -> int:
        """
        Re-key the guest counter under a user ID after an upgrade.

        The count never decreases: if the user key already holds a higher
        value it is kept.

        Returns:
            The count now stored under the user key
        """
        guest_count = self._preferences.get_int(GUEST_COUNTER_KEY)
        key = user_counter_key(user_id)
        count = max(guest_count, self._preferences.get_int(key))
        self._preferences.set_int(key, count)
        self._preferences.remove(GUEST_COUNTER_KEY)
        self.set_identity(is_guest=False, user_id=user_id)
        logger.info(f"Carried over {guest_count} guest uploads")
        return count
