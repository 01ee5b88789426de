"""
Dependency wiring for the session client.

ServiceContainer builds every component from Settings with explicit
constructor injection. Components are created lazily on first access and
cached within the container; there is no module-level container.

Platform collaborators (credential store, preferences, purchase store, HTTP
client, clock) can be injected to replace the defaults, e.g. in tests.
"""

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Callable, Optional

import httpx

from shared.config import Settings

if TYPE_CHECKING:
    from modules.credentials.interfaces import ICredentialStore
    from modules.entitlements.interfaces import IPreferencesStore
    from modules.subscriptions.interfaces import IPurchaseStore
    from modules.tokens.service import TokenManager
    from modules.identity.client import AuthAPIClient
    from modules.identity.service import IdentityService
    from modules.identity.flow import AuthFlow
    from modules.entitlements.service import EntitlementTracker
    from modules.subscriptions.service import SubscriptionReconciler
    from modules.library.client import ImageAPIClient
    from modules.library.service import LibraryService
    from modules.session.service import SessionFacade

logger = logging.getLogger(__name__)


class ServiceContainer:
    """
    Container for all service instances.

    Services are created lazily on first access and cached as singletons
    within the container. Use reset() to drop them, and aclose() to release
    HTTP connections.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        credential_store: Optional["ICredentialStore"] = None,
        preferences: Optional["IPreferencesStore"] = None,
        purchase_store: Optional["IPurchaseStore"] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._settings = settings
        self._clock = clock
        self._injected_credential_store = credential_store
        self._injected_preferences = preferences
        self._injected_purchase_store = purchase_store
        self._http_client = http_client
        self.reset()

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def credential_store(self) -> "ICredentialStore":
        """Encrypted file store unless one was injected."""
        if self._credential_store is None:
            from modules.credentials.store import EncryptedFileCredentialStore
            self._credential_store = EncryptedFileCredentialStore(
                self._settings.credential_store_dir,
                secret=self._settings.credential_encryption_secret,
                salt=self._settings.credential_encryption_salt,
            )
        return self._credential_store

    @property
    def preferences(self) -> "IPreferencesStore":
        if self._preferences is None:
            from modules.entitlements.preferences import JSONFilePreferencesStore
            self._preferences = JSONFilePreferencesStore(self._settings.preferences_path)
        return self._preferences

    @property
    def purchase_store(self) -> "IPurchaseStore":
        if self._purchase_store is None:
            from modules.subscriptions.store import InMemoryPurchaseStore
            logger.warning("No purchase store configured, using the in-memory store")
            self._purchase_store = InMemoryPurchaseStore()
        return self._purchase_store

    @property
    def auth_api(self) -> "AuthAPIClient":
        if self._auth_api is None:
            from modules.identity.client import AuthAPIClient
            self._auth_api = AuthAPIClient(
                self._settings.auth_api_url,
                timeout=self._settings.request_timeout,
                resource_timeout=self._settings.resource_timeout,
                client=self._http_client,
            )
        return self._auth_api

    @property
    def tokens(self) -> "TokenManager":
        if self._tokens is None:
            from modules.tokens.service import TokenManager
            self._tokens = TokenManager(
                self.credential_store,
                refresher=self.auth_api,
                scope=self._settings.credential_access_group,
                leeway_seconds=self._settings.token_expiry_leeway_seconds,
                clock=self._clock,
            )
        return self._tokens

    @property
    def identity(self) -> "IdentityService":
        if self._identity is None:
            from modules.identity.service import IdentityService
            self._identity = IdentityService(
                self.auth_api,
                self.tokens,
                self.credential_store,
                guest_email_domain=self._settings.guest_email_domain,
            )
        return self._identity

    @property
    def entitlements(self) -> "EntitlementTracker":
        if self._entitlements is None:
            from modules.entitlements.service import EntitlementTracker
            self._entitlements = EntitlementTracker(
                self.preferences,
                trial_limit=self._settings.trial_upload_limit,
                clock=self._clock,
            )
        return self._entitlements

    @property
    def subscriptions(self) -> "SubscriptionReconciler":
        if self._subscriptions is None:
            from modules.subscriptions.service import SubscriptionReconciler
            self._subscriptions = SubscriptionReconciler(
                self.purchase_store,
                product_ids=self._settings.subscription_product_ids,
            )
        return self._subscriptions

    @property
    def image_api(self) -> "ImageAPIClient":
        if self._image_api is None:
            from modules.library.client import ImageAPIClient
            self._image_api = ImageAPIClient(
                self._settings.upload_service_url,
                self._settings.analysis_service_url,
                tokens=self.tokens,
                timeout=self._settings.request_timeout,
                resource_timeout=self._settings.resource_timeout,
                upload_timeout=self._settings.upload_timeout,
                client=self._http_client,
            )
        return self._image_api

    @property
    def library(self) -> "LibraryService":
        if self._library is None:
            from modules.library.service import LibraryService
            self._library = LibraryService(
                self.image_api,
                refresh_delay=self._settings.library_refresh_delay,
            )
        return self._library

    @property
    def session(self) -> "SessionFacade":
        if self._session is None:
            from modules.session.service import SessionFacade
            self._session = SessionFacade(
                identity=self.identity,
                tokens=self.tokens,
                entitlements=self.entitlements,
                subscriptions=self.subscriptions,
                library=self.library,
            )
        return self._session

    @property
    def auth_flow(self) -> "AuthFlow":
        """Auth forms driver, reset whenever the session ends."""
        if self._auth_flow is None:
            from modules.identity.flow import AuthFlow
            flow = AuthFlow(self.session)
            self.session.subscribe(lambda state: flow.session_changed(state.is_authenticated))
            self._auth_flow = flow
        return self._auth_flow

    async def start(self) -> "SessionFacade":
        """Restore the session and start listening for transaction updates."""
        session = self.session
        self.subscriptions.start_listening()
        await session.restore()
        return session

    async def aclose(self) -> None:
        """Stop background work and close HTTP clients."""
        if self._subscriptions is not None:
            await self._subscriptions.stop_listening()
        if self._auth_api is not None:
            await self._auth_api.aclose()
        if self._image_api is not None:
            await self._image_api.aclose()

    def reset(self) -> None:
        """
        Drop all cached services.

        Injected collaborators are kept; everything built from them is
        recreated on next access.
        """
        self._credential_store = self._injected_credential_store
        self._preferences = self._injected_preferences
        self._purchase_store = self._injected_purchase_store
        self._auth_api: "AuthAPIClient | None" = None
        self._tokens: "TokenManager | None" = None
        self._identity: "IdentityService | None" = None
        self._entitlements: "EntitlementTracker | None" = None
        self._subscriptions: "SubscriptionReconciler | None" = None
        self._image_api: "ImageAPIClient | None" = None
        self._library: "LibraryService | None" = None
        self._session: "SessionFacade | None" = None
        self._auth_flow: "AuthFlow | None" = None
