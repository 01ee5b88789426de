"""
Subscription module data models.

Two groups of models live here:
- The canonical entitlement snapshot (SubscriptionPlan, SubscriptionStatus)
- The observable contract of the platform purchase store (products,
  transactions, renewal info and their verification results)
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class SubscriptionPlan(str, Enum):
    """Entitlement tiers."""

    TRIAL = "trial"
    PRO = "pro"

    @property
    def display_name(self) -> str:
        return "Pro" if self == SubscriptionPlan.PRO else "Free Trial"


class SubscriptionStatus(BaseModel):
    """
    Entitlement snapshot.

    The fallback value is always Trial: absence of purchase evidence is
    never interpreted as Pro.
    """

    plan: SubscriptionPlan = Field(default=SubscriptionPlan.TRIAL)
    expiration_date: Optional[datetime] = Field(None, description="Pro only")
    will_renew: bool = Field(default=False)

    model_config = {"frozen": True}

    @classmethod
    def trial(cls) -> "SubscriptionStatus":
        return cls()

    @classmethod
    def pro(cls, expiration_date: Optional[datetime], will_renew: bool) -> "SubscriptionStatus":
        return cls(
            plan=SubscriptionPlan.PRO,
            expiration_date=expiration_date,
            will_renew=will_renew,
        )

    @property
    def is_pro(self) -> bool:
        return self.plan == SubscriptionPlan.PRO

    def is_active(self, now: Optional[datetime] = None) -> bool:
        """
        Trial is always active (bounded by quota, not time). Pro is active
        only while its expiration date is in the future.
        """
        if self.plan == SubscriptionPlan.TRIAL:
            return True
        if self.expiration_date is None:
            return False
        return self.expiration_date > (now or datetime.now(timezone.utc))


# Purchase store contract

class SubscriptionPeriod(str, Enum):
    MONTH = "month"
    YEAR = "year"


class Product(BaseModel):
    """A subscription product from the store catalog."""

    id: str = Field(..., description="Store product identifier")
    display_name: str
    description: str = ""
    display_price: str = Field(..., description="Localized price string")
    price: Decimal
    period: SubscriptionPeriod

    model_config = {"frozen": True}


class RenewalState(str, Enum):
    """Renewal state of one subscription as reported by the store."""

    SUBSCRIBED = "subscribed"
    IN_GRACE_PERIOD = "in_grace_period"
    IN_BILLING_RETRY = "in_billing_retry_period"
    EXPIRED = "expired"
    REVOKED = "revoked"

    @property
    def grants_access(self) -> bool:
        return self in (RenewalState.SUBSCRIBED, RenewalState.IN_GRACE_PERIOD)


class Transaction(BaseModel):
    id: str
    product_id: str
    purchase_date: datetime
    expiration_date: Optional[datetime] = None
    revocation_date: Optional[datetime] = None

    model_config = {"frozen": True}


class RenewalInfo(BaseModel):
    product_id: str
    will_auto_renew: bool

    model_config = {"frozen": True}


class Verified(BaseModel, Generic[T]):
    """
    A store payload together with its signature check result.

    Unverified payloads are never trusted as purchase evidence.
    """

    payload: T
    verified: bool = True
    failure_reason: Optional[str] = None

    model_config = {"frozen": True}


class ProductSubscriptionStatus(BaseModel):
    """Live renewal status of one subscription product."""

    state: RenewalState
    transaction: Verified[Transaction]
    renewal_info: Verified[RenewalInfo]

    model_config = {"frozen": True}


class PurchaseOutcome(str, Enum):
    SUCCESS = "success"
    USER_CANCELLED = "user_cancelled"
    PENDING = "pending"


class PurchaseResult(BaseModel):
    """Result of a purchase call. ``transaction`` is set only on SUCCESS."""

    outcome: PurchaseOutcome
    transaction: Optional[Verified[Transaction]] = None

    model_config = {"frozen": True}
