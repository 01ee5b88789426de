"""
Shared test fixtures and utilities.

This module provides common test infrastructure used across all test modules:
a controllable clock, an in-process fake of the identity, upload and analysis
services served through httpx.MockTransport, and a fully wired container.
"""

import asyncio
import json
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

import httpx
import jwt  # PyJWT
import pytest

from shared.config import Settings
from app.dependencies import ServiceContainer
from modules.credentials.store import InMemoryCredentialStore
from modules.entitlements.preferences import InMemoryPreferencesStore
from modules.subscriptions.models import Product, SubscriptionPeriod
from modules.subscriptions.store import InMemoryPurchaseStore


# Test JWT secret (only for testing)
TEST_JWT_SECRET = "test-secret-key-for-testing-only"

AUTH_URL = "https://auth.test"
UPLOAD_URL = "https://upload.test"
ANALYSIS_URL = "https://analysis.test"

MONTHLY_ID = "com.gambrell.guidepost2026.pro.monthly"
YEARLY_ID = "com.gambrell.guidepost2026.pro.yearly"


def create_test_token(user_id: str = "test-user-123", email: str = "test@example.com", jti: str = "0") -> str:
    """Create an identity token the way the identity API would."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "email": email,
        "token_use": "id",
        "jti": jti,
        "iat": int(now.timestamp()),
    }
    return jwt.encode(payload, TEST_JWT_SECRET, algorithm="HS256")


def envelope(data=None, success: bool = True, error: Optional[str] = None, message: Optional[str] = None) -> dict:
    body = {"success": success}
    if data is not None:
        body["data"] = data
    if error is not None:
        body["error"] = error
    if message is not None:
        body["message"] = message
    return body


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakeBackend:
    """
    In-process stand-in for the identity, upload and analysis services.

    Routes by host; identity tokens it issued are accepted by all three.
    """

    def __init__(self, expires_in: int = 3600):
        self.expires_in = expires_in
        self.users: dict[str, dict] = {}  # email -> user record
        self.sessions: dict[str, str] = {}  # identity token -> user ID
        self.refresh_tokens: dict[str, str] = {}  # refresh token -> user ID
        self.images: dict[str, list[dict]] = {}  # user ID -> uploaded images
        self.analysis: dict[str, list[dict]] = {}  # user ID -> analysis results
        self.requests: list[tuple[str, str, str]] = []  # (method, host, path)
        self.reset_codes: dict[str, str] = {}

        self.fail_refresh = False
        self.omit_refresh_token = False
        self.network_down = False
        self.fail_profile = False
        self.fail_signin = False
        self.list_gate: Optional[asyncio.Event] = None
        self.upload_gate: Optional[asyncio.Event] = None

        self._counter = 0

    # Helpers

    def _next(self) -> int:
        self._counter += 1
        return self._counter

    def add_user(self, email: str, password: str, given_name: str = "Test", family_name: str = "User") -> str:
        user_id = f"user-{self._next()}"
        self.users[email] = {
            "userId": user_id,
            "email": email,
            "password": password,
            "givenName": given_name,
            "familyName": family_name,
            "role": "user",
        }
        return user_id

    def user_by_id(self, user_id: str) -> Optional[dict]:
        for user in self.users.values():
            if user["userId"] == user_id:
                return user
        return None

    def issue_tokens(self, user_id: str) -> dict:
        n = self._next()
        user = self.user_by_id(user_id)
        identity_token = create_test_token(user_id, user["email"] if user else "", jti=str(n))
        refresh_token = f"refresh-{n}"
        self.sessions[identity_token] = user_id
        self.refresh_tokens[refresh_token] = user_id
        tokens = {
            "accessToken": f"access-{n}",
            "idToken": identity_token,
            "expiresIn": self.expires_in,
        }
        if not self.omit_refresh_token:
            tokens["refreshToken"] = refresh_token
        return tokens

    def revoke_sessions(self) -> None:
        """Reject every identity token issued so far."""
        self.sessions.clear()

    def complete_analysis(self, user_id: str, image_id: str, keywords: list[str], description: str = "") -> None:
        image = next(i for i in self.images[user_id] if i["id"] == image_id)
        self.analysis.setdefault(user_id, []).append({
            "imageId": image_id,
            "userId": user_id,
            "filename": image["filename"],
            "analyzedAt": "2026-01-15T12:00:00Z",
            "keywords": keywords,
            "description": description,
            "status": "completed",
        })

    def seed_image(self, user_id: str, keywords: list[str], filename: str = "photo.jpg") -> str:
        image_id = f"img-{self._next()}"
        self.images.setdefault(user_id, []).append(self._image_record(image_id, user_id, filename, 1024))
        self.complete_analysis(user_id, image_id, keywords)
        return image_id

    @staticmethod
    def _image_record(image_id: str, user_id: str, filename: str, size: int) -> dict:
        return {
            "id": image_id,
            "userId": user_id,
            "filename": filename,
            "originalName": filename,
            "mimetype": "image/jpeg",
            "size": size,
            "uploadedAt": "2026-01-15T12:00:00Z",
            "path": f"/uploads/{image_id}",
        }

    def count(self, method: str, path: str) -> int:
        return sum(1 for m, _, p in self.requests if m == method and p == path)

    # Transport

    async def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append((request.method, request.url.host, request.url.path))
        if self.network_down:
            raise httpx.ConnectError("offline", request=request)

        if request.url.host == "auth.test":
            return self._auth(request)

        user_id = self._bearer_user(request)
        if user_id is None:
            return httpx.Response(401, json=envelope(success=False, error="Unauthorized"))

        if request.url.host == "upload.test":
            return await self._upload(request, user_id)
        if request.url.host == "analysis.test":
            return await self._analysis(request, user_id)
        return httpx.Response(404, json=envelope(success=False, error="Not found"))

    def _bearer_user(self, request: httpx.Request) -> Optional[str]:
        header = request.headers.get("Authorization", "")
        if not header.startswith("Bearer "):
            return None
        return self.sessions.get(header[len("Bearer "):])

    def _auth(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        body = json.loads(request.content) if request.content else {}

        if request.method == "POST" and path == "/api/auth/signup":
            if body["email"] in self.users:
                return httpx.Response(400, json=envelope(success=False, error="User already exists"))
            if len(body["password"]) < 8:
                return httpx.Response(
                    400,
                    json=envelope(success=False, error="Password does not meet requirements"),
                )
            user_id = self.add_user(body["email"], body["password"], body["givenName"], body["familyName"])
            return httpx.Response(200, json=envelope({"userId": user_id}, message="User created"))

        if request.method == "POST" and path == "/api/auth/signin":
            if self.fail_signin:
                raise httpx.ConnectError("sign-in unavailable", request=request)
            user = self.users.get(body["email"])
            if user is None or user["password"] != body["password"]:
                return httpx.Response(401, json=envelope(success=False, error="Invalid email or password"))
            return httpx.Response(200, json=envelope(self.issue_tokens(user["userId"])))

        if request.method == "POST" and path == "/api/auth/refresh":
            user_id = self.refresh_tokens.get(body["refreshToken"])
            if self.fail_refresh or user_id is None:
                return httpx.Response(401, json=envelope(success=False, error="Refresh token is invalid"))
            return httpx.Response(200, json=envelope(self.issue_tokens(user_id)))

        if request.method == "POST" and path == "/api/auth/forgot-password":
            self.reset_codes[body["email"]] = "123456"
            return httpx.Response(200, json=envelope({}, message="Code sent"))

        if request.method == "POST" and path == "/api/auth/confirm-forgot-password":
            if self.reset_codes.get(body["email"]) != body["confirmationCode"]:
                return httpx.Response(400, json=envelope(success=False, error="Invalid confirmation code"))
            self.users[body["email"]]["password"] = body["newPassword"]
            return httpx.Response(200, json=envelope({}))

        user_id = self._bearer_user(request)
        if user_id is None:
            return httpx.Response(401, json=envelope(success=False, error="Unauthorized"))

        if request.method == "GET" and path == "/api/auth/me":
            if self.fail_profile:
                return httpx.Response(500, json=envelope(success=False, error="Profile service unavailable"))
            user = self.user_by_id(user_id)
            data = {k: v for k, v in user.items() if k != "password"}
            return httpx.Response(200, json=envelope(data))

        if request.method == "DELETE" and path == "/api/auth/me":
            user = self.user_by_id(user_id)
            del self.users[user["email"]]
            self.sessions = {t: u for t, u in self.sessions.items() if u != user_id}
            return httpx.Response(200, json=envelope({}))

        if request.method == "POST" and path == "/api/auth/upgrade-guest":
            if body["email"] in self.users:
                return httpx.Response(400, json=envelope(success=False, error="User already exists"))
            user = self.user_by_id(user_id)
            del self.users[user["email"]]
            user.update(
                email=body["email"],
                password=body["password"],
                givenName=body["givenName"],
                familyName=body["familyName"],
            )
            self.users[body["email"]] = user
            return httpx.Response(200, json=envelope({"userId": user_id}))

        return httpx.Response(404, json=envelope(success=False, error="Not found"))

    async def _upload(self, request: httpx.Request, user_id: str) -> httpx.Response:
        path = request.url.path

        if request.method == "POST" and path == "/api/upload":
            content = request.read()
            if b'name="image"' not in content:
                return httpx.Response(400, json=envelope(success=False, error="No image"))
            image_id = f"img-{self._next()}"
            record = self._image_record(image_id, user_id, f"{image_id}.jpg", len(content))
            self.images.setdefault(user_id, []).append(record)
            if self.upload_gate is not None:
                await self.upload_gate.wait()
            return httpx.Response(200, json=envelope(record, message="Uploaded"))

        if request.method == "GET" and path == "/api/images":
            if self.list_gate is not None:
                await self.list_gate.wait()
            return httpx.Response(200, json=envelope(self.images.get(user_id, [])))

        if path.startswith("/api/images/"):
            image_id = path.rsplit("/", 1)[-1]
            owned = [i for i in self.images.get(user_id, []) if i["id"] == image_id]
            if not owned:
                return httpx.Response(404, json=envelope(success=False, error="Image not found"))
            if request.method == "GET":
                return httpx.Response(200, content=b"\xff\xd8jpeg-bytes")
            if request.method == "DELETE":
                self.images[user_id] = [i for i in self.images[user_id] if i["id"] != image_id]
                self.analysis[user_id] = [
                    a for a in self.analysis.get(user_id, []) if a["imageId"] != image_id
                ]
                return httpx.Response(200, json=envelope({}))

        return httpx.Response(404, json=envelope(success=False, error="Not found"))

    async def _analysis(self, request: httpx.Request, user_id: str) -> httpx.Response:
        path = request.url.path
        if request.method == "GET" and path == "/api/analysis":
            if self.list_gate is not None:
                await self.list_gate.wait()
            return httpx.Response(200, json=envelope(self.analysis.get(user_id, [])))
        if request.method == "GET" and path.startswith("/api/analysis/"):
            image_id = path.rsplit("/", 1)[-1]
            for result in self.analysis.get(user_id, []):
                if result["imageId"] == image_id:
                    return httpx.Response(200, json=envelope(result))
            return httpx.Response(404, json=envelope(success=False, error="Analysis not found"))
        return httpx.Response(404, json=envelope(success=False, error="Not found"))


def make_products() -> list[Product]:
    return [
        Product(
            id=YEARLY_ID,
            display_name="Guidepost Pro Yearly",
            display_price="$49.99",
            price=Decimal("49.99"),
            period=SubscriptionPeriod.YEAR,
        ),
        Product(
            id=MONTHLY_ID,
            display_name="Guidepost Pro Monthly",
            display_price="$4.99",
            price=Decimal("4.99"),
            period=SubscriptionPeriod.MONTH,
        ),
    ]


@pytest.fixture
def clock() -> FakeClock:
    """Provide a clock frozen at a fixed instant."""
    return FakeClock()


@pytest.fixture
def backend() -> FakeBackend:
    """Provide a fresh fake backend."""
    return FakeBackend()


@pytest.fixture
def http_client(backend: FakeBackend) -> httpx.AsyncClient:
    """httpx client whose requests are answered by the fake backend."""
    return httpx.AsyncClient(transport=httpx.MockTransport(backend.handle))


@pytest.fixture
def credential_store() -> InMemoryCredentialStore:
    return InMemoryCredentialStore()


@pytest.fixture
def preferences() -> InMemoryPreferencesStore:
    return InMemoryPreferencesStore()


@pytest.fixture
def purchase_store() -> InMemoryPurchaseStore:
    return InMemoryPurchaseStore(make_products())


@pytest.fixture
def settings() -> Settings:
    """Settings pointing at the fake backend, isolated from the environment file."""
    return Settings(
        _env_file=None,
        auth_api_url=AUTH_URL,
        upload_service_url=UPLOAD_URL,
        analysis_service_url=ANALYSIS_URL,
        library_refresh_delay=None,
    )


@pytest.fixture
def container(settings, credential_store, preferences, purchase_store, http_client, clock) -> ServiceContainer:
    """A container wired entirely to in-memory collaborators."""
    return ServiceContainer(
        settings,
        credential_store=credential_store,
        preferences=preferences,
        purchase_store=purchase_store,
        http_client=http_client,
        clock=clock,
    )


@pytest.fixture
def test_user_email() -> str:
    """Provide a consistent test user email."""
    return "test@example.com"


@pytest.fixture
def test_user_password() -> str:
    return "Password123"


@pytest.fixture
def registered_user(backend: FakeBackend, test_user_email: str, test_user_password: str) -> str:
    """A user known to the fake backend. Returns the user ID."""
    return backend.add_user(test_user_email, test_user_password, "Test", "User")
