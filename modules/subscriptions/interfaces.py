"""
Purchase store interface.

The reconciler depends only on the observable contract of the platform
store; receipt verification happens inside the store and is reported
through Verified.verified.
"""

from typing import AsyncIterator, Protocol, runtime_checkable

from .models import (
    Product,
    ProductSubscriptionStatus,
    PurchaseResult,
    Transaction,
    Verified,
)


@runtime_checkable
class IPurchaseStore(Protocol):
    """
    Interface for the in-app purchase store.

    Every method is an async boundary.
    """

    async def products(self, product_ids: list[str]) -> list[Product]:
        """
        Look up catalog entries.

        Unknown IDs are omitted from the result rather than raising.
        """
        ...

    async def purchase(self, product_id: str) -> PurchaseResult:
        """
        Run the purchase sheet for a product.

        Returns:
            SUCCESS with a (possibly unverified) transaction, USER_CANCELLED
            or PENDING (e.g., awaiting parental approval)
        """
        ...

    async def subscription_statuses(self, product_id: str) -> list[ProductSubscriptionStatus]:
        """Live renewal statuses of a subscription product."""
        ...

    async def current_entitlements(self) -> list[Verified[Transaction]]:
        """Snapshot of transactions currently granting access."""
        ...

    async def sync(self) -> None:
        """Force a sync with the store (restore purchases)."""
        ...

    async def finish(self, transaction_id: str) -> None:
        """Acknowledge a transaction. Finishing twice is harmless."""
        ...

    def updates(self) -> AsyncIterator[Verified[Transaction]]:
        """Transaction updates delivered for the lifetime of the process."""
        ...
