"""
Entitlement / quota module.

Per-identity Trial upload counters and the effective quota derived from the
current subscription status.

Public API:
- IEntitlementTracker: Quota interface consumed by the session facade
- IPreferencesStore: Persistent key -> integer store
- EntitlementTracker: Concrete tracker
- InMemoryPreferencesStore, JSONFilePreferencesStore: Preferences backends
- QuotaStatus: Quota snapshot
"""

from .interfaces import IEntitlementTracker, IPreferencesStore
from .models import QuotaStatus
from .preferences import InMemoryPreferencesStore, JSONFilePreferencesStore
from .service import (
    EntitlementTracker,
    GUEST_COUNTER_KEY,
    USER_COUNTER_PREFIX,
    DEFAULT_TRIAL_UPLOAD_LIMIT,
    user_counter_key,
)

__all__ = [
    # Interfaces
    "IEntitlementTracker",
    "IPreferencesStore",
    # Models
    "QuotaStatus",
    # Implementations
    "EntitlementTracker",
    "InMemoryPreferencesStore",
    "JSONFilePreferencesStore",
    # Keys
    "GUEST_COUNTER_KEY",
    "USER_COUNTER_PREFIX",
    "DEFAULT_TRIAL_UPLOAD_LIMIT",
    "user_counter_key",
]
