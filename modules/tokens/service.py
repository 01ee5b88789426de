"""
Token manager implementation.

Persists the token set through an ICredentialStore under four fixed keys,
scoped to the shared access group so a companion process can read the same
session without signing in again.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Optional

import jwt

from shared.exceptions import GuidepostError, NetworkError
from modules.credentials.interfaces import ICredentialStore
from modules.credentials.exceptions import CredentialStoreError

from .interfaces import ITokenRefresher
from .models import AuthTokens, TokenSet
from .exceptions import NotAuthenticatedError, TokenExpiredError

logger = logging.getLogger(__name__)


class TokenKey(str, Enum):
    """Logical credential-store keys of the token set."""

    ACCESS_TOKEN = "com.guidepost.accessToken"
    ID_TOKEN = "com.guidepost.idToken"
    REFRESH_TOKEN = "com.guidepost.refreshToken"
    EXPIRATION = "com.guidepost.tokenExpiration"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenManager:
    """
    Owns the current TokenSet.

    Concurrent ensure_valid() calls share a single refresh: the first caller
    refreshes while holding a lock, later callers re-check the stored token
    set once they acquire it.
    """

    def __init__(
        self,
        store: ICredentialStore,
        refresher: ITokenRefresher,
        scope: Optional[str] = None,
        leeway_seconds: int = 300,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize the token manager.

        Args:
            store: Credential store holding the four token keys
            refresher: Remote refresh call (the identity API client)
            scope: Sharing group; None means the legacy unscoped location
            leeway_seconds: Pre-emptive expiry window
            clock: Returns the current aware datetime (injectable for tests)
        """
        self._store = store
        self._refresher = refresher
        self._scope = scope
        self._leeway = timedelta(seconds=leeway_seconds)
        self._clock = clock or _utcnow
        self._refresh_lock = asyncio.Lock()

    @property
    def scope(self) -> Optional[str]:
        return self._scope

    def _load(self, key: TokenKey) -> Optional[str]:
        data = self._store.load(key.value, self._scope)
        if data is None:
            return None
        return data.decode("utf-8")

    def current_tokens(self) -> Optional[TokenSet]:
        """Read the stored token set. No side effects."""
        access_token = self._load(TokenKey.ACCESS_TOKEN)
        identity_token = self._load(TokenKey.ID_TOKEN)
        expiration = self._load(TokenKey.EXPIRATION)

        if not access_token or not identity_token or not expiration:
            return None

        try:
            expires_at = datetime.fromtimestamp(float(expiration), tz=timezone.utc)
        except ValueError:
            logger.warning("Stored token expiration is unreadable")
            return None

        return TokenSet(
            access_token=access_token,
            identity_token=identity_token,
            refresh_token=self._load(TokenKey.REFRESH_TOKEN),
            expires_at=expires_at,
        )

    @property
    def has_tokens(self) -> bool:
        return self.current_tokens() is not None

    def is_expired(self) -> bool:
        """True if no token set exists or less than the leeway remains."""
        tokens = self.current_tokens()
        if tokens is None:
            return True
        return tokens.is_expired(self._clock(), self._leeway)

    def save(self, tokens: TokenSet) -> None:
        """
        Overwrite all four token fields.

        The expiration key is removed first and written last, so a failure
        part-way leaves no readable token set and forces a new sign-in.

        Raises:
            CredentialStoreError: If any key could not be written
        """
        self._store.delete(TokenKey.EXPIRATION.value, self._scope)

        writes = [
            (TokenKey.ACCESS_TOKEN, tokens.access_token),
            (TokenKey.ID_TOKEN, tokens.identity_token),
        ]
        if tokens.refresh_token:
            writes.append((TokenKey.REFRESH_TOKEN, tokens.refresh_token))
        else:
            self._store.delete(TokenKey.REFRESH_TOKEN.value, self._scope)
        writes.append((TokenKey.EXPIRATION, str(tokens.expires_at.timestamp())))

        for key, value in writes:
            if not self._store.save(key.value, value.encode("utf-8"), self._scope):
                logger.error(f"Failed to persist {key.name}, clearing session")
                self.clear()
                raise CredentialStoreError("Could not save your session. Please sign in again.")

        logger.debug(f"Saved token set expiring at {tokens.expires_at.isoformat()}")

    def save_auth_tokens(
        self,
        tokens: AuthTokens,
        previous_refresh_token: Optional[str] = None,
    ) -> TokenSet:
        """Convert a sign-in/refresh payload to a TokenSet and persist it."""
        token_set = TokenSet.from_auth_tokens(
            tokens,
            received_at=self._clock(),
            previous_refresh_token=previous_refresh_token,
        )
        self.save(token_set)
        return token_set

    def clear(self) -> None:
        """Delete every token key. Idempotent."""
        for key in TokenKey:
            self._store.delete(key.value, self._scope)
        logger.debug("Cleared stored tokens")

    def handle_unauthorized(self) -> None:
        """The server rejected the token; it is unusable whatever its expiry says."""
        logger.info("Server rejected the identity token, clearing session")
        self.clear()

    async def ensure_valid(self) -> str:
        """
        Return a valid identity token, refreshing once if needed.

        Raises:
            NotAuthenticatedError: If no token set exists
            TokenExpiredError: If the refresh failed (tokens are cleared first)
            NetworkError: If the refresh could not reach the server
        """
        tokens = self.current_tokens()
        if tokens is None:
            raise NotAuthenticatedError()
        if not tokens.is_expired(self._clock(), self._leeway):
            return tokens.identity_token

        async with self._refresh_lock:
            tokens = self.current_tokens()
            if tokens is None:
                raise NotAuthenticatedError()
            if not tokens.is_expired(self._clock(), self._leeway):
                # Another caller refreshed while we waited
                return tokens.identity_token
            tokens = await self._refresh(tokens)

        return tokens.identity_token

    async def _refresh(self, tokens: TokenSet) -> TokenSet:
        if not tokens.refresh_token:
            logger.info("Token set expired and no refresh token is stored")
            self.clear()
            raise TokenExpiredError()

        try:
            payload = await self._refresher.refresh(tokens.refresh_token)
        except NetworkError:
            raise
        except GuidepostError as e:
            logger.warning(f"Token refresh rejected: {e.code}")
            self.clear()
            raise TokenExpiredError() from e

        logger.debug("Refreshed token set")
        return self.save_auth_tokens(payload, previous_refresh_token=tokens.refresh_token)

    def identity_claims(self) -> dict:
        """
        Decode the stored identity token without verifying it.

        The token is only read to learn who is signed in; the server is the
        one validating it.
        """
        identity_token = self._load(TokenKey.ID_TOKEN)
        if not identity_token:
            return {}
        try:
            return jwt.decode(identity_token, options={"verify_signature": False})
        except jwt.InvalidTokenError:
            logger.debug("Stored identity token is not a decodable JWT")
            return {}

    def current_user_id(self) -> Optional[str]:
        """The ``sub`` claim of the identity token, if any."""
        return self.identity_claims().get("sub")

    def migrate_legacy_tokens(self) -> bool:
        """
        Move tokens from the unscoped store into the shared scope. Idempotent.

        Does nothing when the shared scope already holds an identity token,
        so a fresher session is never overwritten with stale legacy data.
        Individual key failures are logged and do not stop the other keys.

        Returns:
            True if at least one key was migrated
        """
        if self._scope is None:
            return False
        if self._store.load(TokenKey.ID_TOKEN.value, self._scope) is not None:
            return False
        if self._store.load(TokenKey.ID_TOKEN.value, None) is None:
            return False

        migrated = 0
        for key in TokenKey:
            try:
                data = self._store.load(key.value, None)
                if data is None:
                    continue
                if not self._store.save(key.value, data, self._scope):
                    logger.warning(f"Could not migrate {key.name} to the shared scope")
                    continue
                self._store.delete(key.value, None)
                migrated += 1
            except (OSError, GuidepostError) as e:
                logger.warning(f"Skipping {key.name} during token migration: {e}")

        logger.info(f"Migrated {migrated} token keys to the shared credential scope")
        return migrated > 0
