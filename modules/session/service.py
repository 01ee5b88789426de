"""
Session facade.

Orchestrates the identity service, token manager, entitlement tracker,
subscription reconciler and library cache behind one state machine:

    Unauthenticated -> Guest | Registered
    Guest -> Registered (upgrade, one way)
    Guest | Registered -> Unauthenticated (sign-out, deletion, rejected token)

Session-changing operations are serialized by one lock, so a sign-out always
completes before the next sign-in or guest creation starts. Entering
Unauthenticated invalidates every per-identity cache synchronously, before
control returns to the event loop.
"""

import asyncio
import logging
from typing import Callable, Optional

from shared.exceptions import GuidepostError, UnauthorizedError
from modules.tokens.service import TokenManager
from modules.tokens.exceptions import NotAuthenticatedError, TokenExpiredError
from modules.identity.service import IdentityService
from modules.entitlements.service import EntitlementTracker
from modules.subscriptions.service import SubscriptionReconciler
from modules.subscriptions.models import SubscriptionStatus
from modules.library.service import LibraryService
from modules.library.models import ImageUpload, UploadedImage
from modules.library.exceptions import UploadCancelledError

from .models import SessionState, SessionStatus
from .exceptions import (
    GuestPurchaseNotAllowedError,
    InvalidSessionTransitionError,
    UploadQuotaExceededError,
)

logger = logging.getLogger(__name__)

SessionListener = Callable[[SessionState], None]

# Failures meaning the stored tokens are gone or unusable
SESSION_LOST_ERRORS = (NotAuthenticatedError, TokenExpiredError, UnauthorizedError)


class SessionFacade:
    """
    Orchestrator consumed by the UI.

    Implements IAuthActions for the auth-flow driver.
    """

    def __init__(
        self,
        identity: IdentityService,
        tokens: TokenManager,
        entitlements: EntitlementTracker,
        subscriptions: SubscriptionReconciler,
        library: LibraryService,
    ):
        self._identity = identity
        self._tokens = tokens
        self._entitlements = entitlements
        self._subscriptions = subscriptions
        self._library = library

        self._lock = asyncio.Lock()
        self._state = SessionState()
        self._listeners: list[SessionListener] = []
        self._profile_task: Optional[asyncio.Task] = None
        # Bumped whenever the identity changes
        self._generation = 0
        self._leaving = False

        self._subscriptions.subscribe(self._entitlements.apply_subscription_status)
        self._subscriptions.subscribe(self._on_subscription_status)

    # ------------------------------------------------------------------
    # State and publishing

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_authenticated(self) -> bool:
        return self._state.is_authenticated

    @property
    def is_guest(self) -> bool:
        return self._state.is_guest

    def remaining_uploads(self) -> Optional[int]:
        return self._entitlements.remaining_uploads()

    def can_upload(self) -> bool:
        return self._entitlements.can_upload()

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a state listener. Returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_state(self, **changes) -> None:
        state = self._state.model_copy(update=changes)
        if state.is_authenticated:
            quota = self._entitlements.snapshot()
        else:
            quota = None
        self._state = state.model_copy(
            update={"quota": quota, "subscription": self._subscriptions.status}
        )
        for listener in list(self._listeners):
            listener(self._state)

    def _on_subscription_status(self, status: SubscriptionStatus) -> None:
        # The unauthenticated state published at the end of a sign-out carries it
        if self._leaving:
            return
        self._set_state(subscription=status)

    # ------------------------------------------------------------------
    # Transitions

    def _enter_authenticated(self, status: SessionStatus, user_id: Optional[str]) -> None:
        self._generation += 1
        self._library.clear_all_data()
        self._entitlements.set_identity(
            is_guest=status == SessionStatus.GUEST,
            user_id=user_id,
        )
        self._set_state(status=status, user_id=user_id, user=None)
        logger.info(f"Session is now {status.value}")

    def _enter_unauthenticated(self) -> None:
        """Invalidate everything belonging to the departing identity. Synchronous."""
        was_guest = self._state.is_guest
        self._generation += 1

        task = self._profile_task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
        self._profile_task = None

        self._library.clear_all_data()
        if was_guest:
            self._entitlements.reset_guest_counter()
        self._entitlements.clear_identity()
        self._leaving = True
        try:
            self._subscriptions.reset_status()
        finally:
            self._leaving = False
        self._set_state(status=SessionStatus.UNAUTHENTICATED, user_id=None, user=None)
        logger.info("Session is now unauthenticated")

    def _drop_session(self) -> None:
        """The stored tokens are gone; leave the authenticated state."""
        if not self._state.is_authenticated:
            return
        logger.warning("Session lost, signing out locally")
        self._identity.sign_out()
        self._enter_unauthenticated()

    def _require(self, operation: str, *allowed: SessionStatus) -> None:
        if self._state.status not in allowed:
            raise InvalidSessionTransitionError(operation, self._state.status.value)

    async def _guard(self, coro):
        """Await a protected call, dropping the session if its tokens are gone."""
        try:
            return await coro
        except SESSION_LOST_ERRORS:
            if not self._tokens.has_tokens:
                self._drop_session()
            raise

    # ------------------------------------------------------------------
    # Background work

    def _start_profile_fetch(self) -> None:
        if self._profile_task is not None and not self._profile_task.done():
            self._profile_task.cancel()
        self._profile_task = asyncio.create_task(self.refresh_profile())

    async def wait_for_profile(self) -> None:
        """Wait for a background profile fetch, if one is running."""
        task = self._profile_task
        if task is not None:
            await asyncio.wait({task})

    async def refresh_profile(self) -> None:
        """
        Fetch the profile as enrichment.

        Failures never change the authenticated state unless the tokens are
        gone, in which case the session is dropped.
        """
        try:
            user = await self._identity.fetch_profile()
        except SESSION_LOST_ERRORS as e:
            if not self._tokens.has_tokens:
                logger.warning(f"Profile fetch found no usable session: {e.code}")
                self._drop_session()
            else:
                logger.warning(f"Profile fetch failed: {e.code}")
            return
        except GuidepostError as e:
            logger.warning(f"Profile fetch failed: {e.code}")
            return

        if not self._state.is_authenticated:
            return
        if self._state.user_id is None:
            self._entitlements.set_identity(is_guest=self._state.is_guest, user_id=user.user_id)
        self._set_state(user=user, user_id=self._state.user_id or user.user_id)
        logger.debug("Profile loaded")

    async def _reconcile_quietly(self) -> None:
        try:
            await self._subscriptions.reconcile()
        except GuidepostError as e:
            logger.warning(f"Subscription reconciliation failed: {e.code}")

    async def _load_products_quietly(self) -> None:
        try:
            await self._subscriptions.load_products()
        except GuidepostError as e:
            logger.warning(f"Could not load subscription products: {e.code}")

    # ------------------------------------------------------------------
    # Lifecycle

    async def restore(self) -> SessionState:
        """
        Derive the session from persisted credentials at launch.

        Runs the one-time credential migration first. Registered sessions are
        reconciled; the profile is fetched in the background.
        """
        async with self._lock:
            self._tokens.migrate_legacy_tokens()
            await self._load_products_quietly()

            if not self._tokens.has_tokens:
                self._identity.clear_guest_flag()
                self._set_state(status=SessionStatus.UNAUTHENTICATED)
                return self._state

            status = SessionStatus.GUEST if self._identity.is_guest_account else SessionStatus.REGISTERED
            self._enter_authenticated(status, self._identity.resolve_user_id())
            self._start_profile_fetch()
            if status == SessionStatus.REGISTERED:
                await self._reconcile_quietly()
            return self._state

    async def on_foreground(self) -> None:
        """Reconcile on app foreground for a non-guest authenticated user."""
        if self._state.status == SessionStatus.REGISTERED:
            await self._reconcile_quietly()

    # ------------------------------------------------------------------
    # Auth operations

    async def sign_in(self, email: str, password: str) -> None:
        async with self._lock:
            self._require("sign in", SessionStatus.UNAUTHENTICATED)
            await self._identity.sign_in(email, password)
            self._enter_authenticated(SessionStatus.REGISTERED, self._identity.resolve_user_id())
            self._start_profile_fetch()
            await self._reconcile_quietly()

    async def sign_up(
        self,
        email: str,
        password: str,
        given_name: str,
        family_name: str,
    ) -> str:
        """Create an account. The session is unchanged."""
        return await self._identity.sign_up(email, password, given_name, family_name)

    async def try_as_guest(self) -> None:
        async with self._lock:
            self._require("start a guest session", SessionStatus.UNAUTHENTICATED)
            # A new guest always starts with a fresh quota
            self._entitlements.reset_guest_counter()
            await self._identity.create_guest_account()
            self._enter_authenticated(SessionStatus.GUEST, self._identity.resolve_user_id())
            self._start_profile_fetch()

    async def upgrade_guest_account(
        self,
        email: str,
        password: str,
        given_name: str,
        family_name: str,
    ) -> None:
        """Claim the guest account. Caches and the upload count are kept."""
        async with self._lock:
            self._require("upgrade the account", SessionStatus.GUEST)
            user_id = await self._guard(
                self._identity.upgrade_guest_account(email, password, given_name, family_name)
            )
            self._entitlements.carry_over_guest_count(user_id)
            self._set_state(status=SessionStatus.REGISTERED, user_id=user_id)
            logger.info("Session is now registered")
            self._start_profile_fetch()
            await self._reconcile_quietly()

    async def sign_out(self) -> None:
        async with self._lock:
            self._identity.sign_out()
            if self._state.is_authenticated:
                self._enter_unauthenticated()

    async def delete_account(self) -> None:
        """
        Delete the account remotely, then clear everything stored for it.

        Raises:
            NotAuthenticatedError: If no session exists
        """
        async with self._lock:
            if not self._state.is_authenticated:
                raise NotAuthenticatedError()
            user_id = self._state.user_id or self._identity.resolve_user_id()

            await self._guard(self._identity.delete_account())

            self._entitlements.reset_guest_counter()
            if user_id:
                self._entitlements.reset_user_counter(user_id)
            self._enter_unauthenticated()

    async def forgot_password(self, email: str) -> None:
        await self._identity.forgot_password(email)

    async def confirm_forgot_password(
        self,
        email: str,
        confirmation_code: str,
        new_password: str,
    ) -> None:
        await self._identity.confirm_forgot_password(email, confirmation_code, new_password)

    # ------------------------------------------------------------------
    # Library

    async def upload_image(self, upload: ImageUpload) -> UploadedImage:
        """
        Upload an image within the quota and count it once on success.

        Raises:
            NotAuthenticatedError: If no session exists
            UploadQuotaExceededError: If the Trial quota is used up
            UploadCancelledError: If the identity changed before the upload finished
        """
        if not self._state.is_authenticated:
            raise NotAuthenticatedError()
        if not self._entitlements.can_upload():
            raise UploadQuotaExceededError(self._entitlements.quota_limit or 0)

        generation = self._generation
        image = await self._guard(self._library.upload(upload))
        if generation != self._generation:
            logger.info("Upload finished after a session change; not counted")
            raise UploadCancelledError()
        self._entitlements.record_upload()
        self._set_state()
        return image

    async def refresh_library(self) -> None:
        if not self._state.is_authenticated:
            raise NotAuthenticatedError()
        await self._guard(self._library.load())

    async def delete_image(self, image_id: str) -> None:
        if not self._state.is_authenticated:
            raise NotAuthenticatedError()
        await self._guard(self._library.delete(image_id))

    # ------------------------------------------------------------------
    # Subscriptions

    def _require_subscriber(self) -> None:
        if self._state.is_guest:
            raise GuestPurchaseNotAllowedError()
        if not self._state.is_authenticated:
            raise NotAuthenticatedError()

    async def purchase(self, product_id: str) -> bool:
        """
        Purchase a subscription product from the loaded catalog.

        Raises:
            GuestPurchaseNotAllowedError: Guests must upgrade first
            ProductNotFoundError: Unknown product
        """
        self._require_subscriber()
        product = self._subscriptions.product(product_id)
        return await self._subscriptions.purchase(product)

    async def restore_purchases(self) -> SubscriptionStatus:
        self._require_subscriber()
        return await self._subscriptions.restore_purchases()
