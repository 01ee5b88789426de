"""
Subscription entitlement reconciler.

Derives the canonical SubscriptionStatus from the purchase store. Every run
replaces the cached status wholesale; listeners (the entitlement tracker,
the session facade) are notified after each replacement.
"""

import asyncio
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Optional

from shared.exceptions import GuidepostError

from .interfaces import IPurchaseStore
from .models import (
    Product,
    PurchaseOutcome,
    SubscriptionPeriod,
    SubscriptionStatus,
    Transaction,
    Verified,
)
from .exceptions import (
    ProductNotFoundError,
    PurchaseCancelledError,
    PurchaseFailedError,
    PurchaseVerificationFailedError,
)

logger = logging.getLogger(__name__)

StatusListener = Callable[[SubscriptionStatus], None]


def yearly_savings_percentage(yearly: Product, monthly: Product) -> Optional[int]:
    """Whole-percent saving of the yearly price over twelve monthly payments."""
    monthly_total = monthly.price * 12
    if monthly_total <= 0:
        return None
    savings = (monthly_total - yearly.price) / monthly_total * 100
    return int(savings.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class SubscriptionReconciler:
    """
    Reconciles subscription status and runs purchases.

    Verified transactions are finished exactly once per process whether they
    arrive through purchase() or the update listener.
    """

    def __init__(self, store: IPurchaseStore, product_ids: list[str]):
        """
        Initialize the reconciler.

        Args:
            store: Purchase store
            product_ids: Known subscription product IDs, monthly first
        """
        self._store = store
        self._product_ids = list(product_ids)
        self._status = SubscriptionStatus.trial()
        self._products: list[Product] = []
        self._listeners: list[StatusListener] = []
        self._finished: set[str] = set()
        self._is_loading_products = False
        self._is_purchasing = False
        self._listener_task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # State

    @property
    def status(self) -> SubscriptionStatus:
        return self._status

    @property
    def products(self) -> list[Product]:
        return list(self._products)

    @property
    def is_purchasing(self) -> bool:
        return self._is_purchasing

    @property
    def monthly_product(self) -> Optional[Product]:
        return next((p for p in self._products if p.period == SubscriptionPeriod.MONTH), None)

    @property
    def yearly_product(self) -> Optional[Product]:
        return next((p for p in self._products if p.period == SubscriptionPeriod.YEAR), None)

    def product(self, product_id: str) -> Product:
        """
        Raises:
            ProductNotFoundError: If the product is not in the loaded catalog
        """
        for product in self._products:
            if product.id == product_id:
                return product
        raise ProductNotFoundError(product_id)

    def subscribe(self, listener: StatusListener) -> Callable[[], None]:
        """Register a status listener. Returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_status(self, status: SubscriptionStatus) -> None:
        self._status = status
        for listener in list(self._listeners):
            listener(status)

    def reset_status(self) -> None:
        """Back to Trial, e.g. when the app identity changes."""
        self._set_status(SubscriptionStatus.trial())

    # ------------------------------------------------------------------
    # Catalog

    async def load_products(self) -> list[Product]:
        """Load the known products in configured order. Concurrent calls are ignored."""
        if self._is_loading_products:
            return self.products

        self._is_loading_products = True
        try:
            loaded = await self._store.products(self._product_ids)
            order = {pid: i for i, pid in enumerate(self._product_ids)}
            self._products = sorted(loaded, key=lambda p: order.get(p.id, len(order)))
            logger.debug(f"Loaded {len(self._products)} subscription products")
        finally:
            self._is_loading_products = False

        return self.products

    # ------------------------------------------------------------------
    # Reconciliation

    async def reconcile(self) -> SubscriptionStatus:
        """
        Recompute the subscription status from the purchase store.

        1. Live status of each loaded product; the first verified
           subscribed/grace-period transaction for a known product wins.
        2. Otherwise the current-entitlements snapshot, with will_renew
           assumed True. A product whose status lookup fails is skipped.
        3. Otherwise Trial.
        """
        status = await self._derive_status()
        self._set_status(status)
        logger.debug(f"Reconciled subscription status: {status.plan.value}")
        return status

    async def _derive_status(self) -> SubscriptionStatus:
        for product in self._products:
            try:
                entries = await self._store.subscription_statuses(product.id)
            except Exception as e:
                logger.warning(f"Status lookup for {product.id} failed: {e}")
                continue
            for entry in entries:
                if not entry.transaction.verified or not entry.renewal_info.verified:
                    continue
                transaction = entry.transaction.payload
                if transaction.product_id not in self._product_ids:
                    continue
                if entry.state.grants_access:
                    return SubscriptionStatus.pro(
                        transaction.expiration_date,
                        entry.renewal_info.payload.will_auto_renew,
                    )

        for entitlement in await self._store.current_entitlements():
            if not entitlement.verified:
                continue
            transaction = entitlement.payload
            if transaction.product_id in self._product_ids and transaction.revocation_date is None:
                return SubscriptionStatus.pro(transaction.expiration_date, will_renew=True)

        return SubscriptionStatus.trial()

    # ------------------------------------------------------------------
    # Purchases

    async def _finish(self, transaction: Transaction) -> None:
        if transaction.id in self._finished:
            return
        await self._store.finish(transaction.id)
        self._finished.add(transaction.id)

    async def purchase(self, product: Product) -> bool:
        """
        Purchase a product.

        Returns:
            True on a verified purchase, False if pending or if another
            purchase is already in flight

        Raises:
            PurchaseCancelledError: User cancelled
            PurchaseVerificationFailedError: Transaction failed verification
            PurchaseFailedError: Store failed with an unexpected error
        """
        if self._is_purchasing:
            logger.info("Purchase already in progress, ignoring")
            return False

        self._is_purchasing = True
        try:
            try:
                result = await self._store.purchase(product.id)
            except GuidepostError:
                raise
            except Exception as e:
                logger.error(f"Purchase of {product.id} failed: {e}")
                raise PurchaseFailedError(str(e)) from e

            if result.outcome == PurchaseOutcome.USER_CANCELLED:
                raise PurchaseCancelledError()

            if result.outcome == PurchaseOutcome.PENDING:
                logger.info(f"Purchase of {product.id} is pending approval")
                return False

            if result.transaction is None or not result.transaction.verified:
                reason = result.transaction.failure_reason if result.transaction else None
                logger.error(f"Purchase of {product.id} failed verification")
                raise PurchaseVerificationFailedError(reason or "")

            await self._finish(result.transaction.payload)
            await self.reconcile()
            logger.info(f"Purchased {product.id}")
            return True
        finally:
            self._is_purchasing = False

    async def restore_purchases(self) -> SubscriptionStatus:
        """Sync with the store, then reconcile."""
        await self._store.sync()
        return await self.reconcile()

    # ------------------------------------------------------------------
    # Transaction updates

    async def handle_update(self, update: Verified[Transaction]) -> None:
        """Finish a verified update and reconcile. Unverified updates are ignored."""
        if not update.verified:
            logger.warning(f"Ignoring unverified transaction update {update.payload.id}")
            return
        await self._finish(update.payload)
        await self.reconcile()

    async def _listen(self) -> None:
        async for update in self._store.updates():
            try:
                await self.handle_update(update)
            except GuidepostError as e:
                logger.warning(f"Transaction update {update.payload.id} not processed: {e.code}")
            except Exception:
                logger.exception(f"Transaction update {update.payload.id} not processed")
        logger.debug("Transaction update stream ended")

    def start_listening(self) -> None:
        """Process store transaction updates in a background task. Idempotent."""
        if self._listener_task is not None and not self._listener_task.done():
            return
        self._listener_task = asyncio.create_task(self._listen())

    async def stop_listening(self) -> None:
        task = self._listener_task
        self._listener_task = None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    @property
    def is_listening(self) -> bool:
        return self._listener_task is not None and not self._listener_task.done()