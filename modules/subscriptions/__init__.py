"""
Subscription entitlement module.

Consumes purchase-store transaction state and produces the canonical
subscription status that drives the upload quota.

Public API:
- IPurchaseStore: Interface for the platform purchase store
- InMemoryPurchaseStore: Scriptable store for tests and development
- SubscriptionReconciler: Reconciliation, purchases, restore, update listener
- Models: SubscriptionPlan, SubscriptionStatus, Product and store payloads
- Subscription exceptions
"""

from .interfaces import IPurchaseStore
from .models import (
    SubscriptionPlan,
    SubscriptionStatus,
    SubscriptionPeriod,
    Product,
    Transaction,
    RenewalInfo,
    RenewalState,
    Verified,
    ProductSubscriptionStatus,
    PurchaseOutcome,
    PurchaseResult,
)
from .store import InMemoryPurchaseStore
from .service import SubscriptionReconciler, yearly_savings_percentage
from .exceptions import (
    PurchaseCancelledError,
    PurchaseVerificationFailedError,
    ProductNotFoundError,
    PurchaseFailedError,
)

__all__ = [
    # Interface
    "IPurchaseStore",
    # Models
    "SubscriptionPlan",
    "SubscriptionStatus",
    "SubscriptionPeriod",
    "Product",
    "Transaction",
    "RenewalInfo",
    "RenewalState",
    "Verified",
    "ProductSubscriptionStatus",
    "PurchaseOutcome",
    "PurchaseResult",
    # Implementations
    "InMemoryPurchaseStore",
    "SubscriptionReconciler",
    "yearly_savings_percentage",
    # Exceptions
    "PurchaseCancelledError",
    "PurchaseVerificationFailedError",
    "ProductNotFoundError",
    "PurchaseFailedError",
]
