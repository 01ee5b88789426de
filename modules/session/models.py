"""
Session module data models.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from modules.identity.models import Identity, IdentityKind, User
from modules.entitlements.models import QuotaStatus
from modules.subscriptions.models import SubscriptionStatus


class SessionStatus(str, Enum):
    """Session state machine states."""

    UNAUTHENTICATED = "unauthenticated"
    GUEST = "guest"
    REGISTERED = "registered"


class SessionState(BaseModel):
    """
    Unified view of the session published to subscribers.

    Replaced wholesale on every change.
    """

    status: SessionStatus = Field(default=SessionStatus.UNAUTHENTICATED)
    user_id: Optional[str] = Field(None, description="Known once resolvable")
    user: Optional[User] = Field(None, description="Profile, once fetched")
    subscription: SubscriptionStatus = Field(default_factory=SubscriptionStatus.trial)
    quota: Optional[QuotaStatus] = Field(None, description="Only while authenticated")

    model_config = {"frozen": True}

    @property
    def is_authenticated(self) -> bool:
        return self.status != SessionStatus.UNAUTHENTICATED

    @property
    def is_guest(self) -> bool:
        return self.status == SessionStatus.GUEST

    @property
    def identity(self) -> Optional[Identity]:
        """The current identity, or None while unauthenticated."""
        if not self.is_authenticated:
            return None
        kind = IdentityKind.GUEST if self.is_guest else IdentityKind.REGISTERED
        return Identity(kind=kind, user_id=self.user_id, user=self.user)

    @property
    def remaining_uploads(self) -> Optional[int]:
        if self.quota is None:
            return None
        return self.quota.remaining
