"""
In-memory purchase store.

A working IPurchaseStore without a platform store behind it. Used by tests
and by the service container when no platform store is injected. Tests
script it through the configure_* and push_update() helpers.
"""

import asyncio
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import AsyncIterator, Optional

from .models import (
    Product,
    ProductSubscriptionStatus,
    PurchaseOutcome,
    PurchaseResult,
    RenewalInfo,
    RenewalState,
    SubscriptionPeriod,
    Transaction,
    Verified,
)

logger = logging.getLogger(__name__)


class InMemoryPurchaseStore:
    """
    Purchase store with in-memory storage.

    By default a purchase succeeds with a verified transaction that expires
    one period after the purchase and is added to the current entitlements.
    """

    def __init__(self, products: Optional[list[Product]] = None):
        self._products: dict[str, Product] = {p.id: p for p in products or []}
        self._statuses: dict[str, list[ProductSubscriptionStatus]] = {}
        self._entitlements: list[Verified[Transaction]] = []
        self._next_results: list[PurchaseResult] = []
        self._purchase_error: Optional[Exception] = None
        self._sync_error: Optional[Exception] = None
        self._updates: asyncio.Queue = asyncio.Queue()

        # Inspection for tests
        self.finished: dict[str, int] = {}
        self.sync_count = 0

    # Scripting helpers

    def add_product(self, product: Product) -> None:
        self._products[product.id] = product

    def configure_next_purchase(self, result: PurchaseResult) -> None:
        """Queue the result of the next purchase() call."""
        self._next_results.append(result)

    def configure_purchase_error(self, error: Optional[Exception]) -> None:
        self._purchase_error = error

    def configure_sync_error(self, error: Optional[Exception]) -> None:
        self._sync_error = error

    def set_statuses(self, product_id: str, statuses: list[ProductSubscriptionStatus]) -> None:
        self._statuses[product_id] = list(statuses)

    def set_entitlements(self, entitlements: list[Verified[Transaction]]) -> None:
        self._entitlements = list(entitlements)

    def push_update(self, update: Verified[Transaction]) -> None:
        """Deliver a transaction update to the updates() stream."""
        self._updates.put_nowait(update)

    def close_updates(self) -> None:
        """End the updates() stream."""
        self._updates.put_nowait(None)

    def make_transaction(
        self,
        product_id: str,
        purchase_date: Optional[datetime] = None,
    ) -> Transaction:
        """Build a transaction lasting one period of the product."""
        purchase_date = purchase_date or datetime.now(timezone.utc)
        product = self._products.get(product_id)
        days = 365 if product and product.period == SubscriptionPeriod.YEAR else 30
        return Transaction(
            id=str(uuid.uuid4()),
            product_id=product_id,
            purchase_date=purchase_date,
            expiration_date=purchase_date + timedelta(days=days),
        )

    # IPurchaseStore

    async def products(self, product_ids: list[str]) -> list[Product]:
        return [self._products[pid] for pid in product_ids if pid in self._products]

    async def purchase(self, product_id: str) -> PurchaseResult:
        if self._purchase_error is not None:
            raise self._purchase_error

        if self._next_results:
            result = self._next_results.pop(0)
        else:
            transaction = Verified[Transaction](payload=self.make_transaction(product_id))
            result = PurchaseResult(outcome=PurchaseOutcome.SUCCESS, transaction=transaction)

        if result.outcome == PurchaseOutcome.SUCCESS and result.transaction is not None:
            if result.transaction.verified:
                self._grant(result.transaction)
        return result

    def _grant(self, verified: Verified[Transaction]) -> None:
        transaction = verified.payload
        self._entitlements = [
            e for e in self._entitlements if e.payload.product_id != transaction.product_id
        ]
        self._entitlements.append(verified)
        self._statuses[transaction.product_id] = [
            ProductSubscriptionStatus(
                state=RenewalState.SUBSCRIBED,
                transaction=verified,
                renewal_info=Verified[RenewalInfo](
                    payload=RenewalInfo(product_id=transaction.product_id, will_auto_renew=True)
                ),
            )
        ]

    async def subscription_statuses(self, product_id: str) -> list[ProductSubscriptionStatus]:
        return list(self._statuses.get(product_id, []))

    async def current_entitlements(self) -> list[Verified[Transaction]]:
        return list(self._entitlements)

    async def sync(self) -> None:
        self.sync_count += 1
        if self._sync_error is not None:
            raise self._sync_error

    async def finish(self, transaction_id: str) -> None:
        self.finished[transaction_id] = self.finished.get(transaction_id, 0) + 1
        logger.debug(f"Finished transaction {transaction_id}")

    async def updates(self) -> AsyncIterator[Verified[Transaction]]:
        while True:
            update = await self._updates.get()
            if update is None:
                return
            yield update
