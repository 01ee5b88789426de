"""Tests for shared/http.py."""

import asyncio
from typing import Optional

import httpx
import pytest
from pydantic import BaseModel

from shared.http import APIClient, APIEnvelope, default_error_mapper
from shared.exceptions import (
    GuidepostError,
    InvalidRequestTargetError,
    MalformedResponseError,
    HTTPStatusError,
    DecodeError,
    NetworkError,
    NoDataError,
    UnauthorizedError,
    UnknownError,
)


class Item(BaseModel):
    name: str


class MappedError(GuidepostError):
    def __init__(self, text: Optional[str], status: Optional[int]):
        super().__init__(text or "mapped", code="MAPPED", details={"status": status})


def mapper(text, status):
    return MappedError(text, status)


def make_client(handler, **kwargs) -> APIClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return APIClient("https://api.test", service="test", client=http, **kwargs)


class TestAPIEnvelope:
    def test_parses_typed_data(self):
        """The envelope should validate its payload against the model."""
        envelope = APIEnvelope[Item].model_validate({"success": True, "data": {"name": "x"}})
        assert envelope.data == Item(name="x")

    def test_ignores_unknown_fields(self):
        envelope = APIEnvelope[Item].model_validate({"success": False, "error": "nope", "extra": 1})
        assert envelope.error == "nope"
        assert envelope.data is None


class TestDefaultErrorMapper:
    def test_message_becomes_unknown(self):
        assert isinstance(default_error_mapper("boom", 500), UnknownError)

    def test_status_without_message(self):
        error = default_error_mapper(None, 502)
        assert isinstance(error, HTTPStatusError)
        assert error.status_code == 502


class TestAPIClientSuccess:
    @pytest.mark.asyncio
    async def test_call_data_returns_payload(self):
        """A successful envelope should yield its typed data."""
        client = make_client(lambda r: httpx.Response(200, json={"success": True, "data": {"name": "a"}}))
        item = await client.call_data("GET", "/items/1", Item)
        assert item == Item(name="a")

    @pytest.mark.asyncio
    async def test_sends_bearer_token(self):
        """Authenticated requests should carry the token in the header."""
        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={"success": True})

        client = make_client(handler)
        await client.call("GET", "/me", token="id-token")
        assert seen["auth"] == "Bearer id-token"

    @pytest.mark.asyncio
    async def test_unauthenticated_request_has_no_header(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={"success": True})

        client = make_client(handler)
        await client.call("POST", "/signin", json={"email": "a"})
        assert seen["auth"] is None

    @pytest.mark.asyncio
    async def test_missing_data_raises_no_data(self):
        client = make_client(lambda r: httpx.Response(200, json={"success": True}))
        with pytest.raises(NoDataError):
            await client.call_data("GET", "/items/1", Item)

    @pytest.mark.asyncio
    async def test_fetch_bytes(self):
        client = make_client(lambda r: httpx.Response(200, content=b"raw"))
        assert await client.fetch_bytes("/images/1") == b"raw"

    @pytest.mark.asyncio
    async def test_fetch_bytes_empty_body(self):
        client = make_client(lambda r: httpx.Response(200, content=b""))
        with pytest.raises(NoDataError):
            await client.fetch_bytes("/images/1")


class TestAPIClientErrors:
    @pytest.mark.asyncio
    async def test_success_false_goes_through_mapper(self):
        """A success:false envelope should be mapped from its error text."""
        client = make_client(
            lambda r: httpx.Response(200, json={"success": False, "error": "bad thing"}),
            error_mapper=mapper,
        )
        with pytest.raises(MappedError) as exc_info:
            await client.call("GET", "/x")
        assert exc_info.value.message == "bad thing"
        assert exc_info.value.details["status"] is None

    @pytest.mark.asyncio
    async def test_non_2xx_goes_through_mapper(self):
        client = make_client(
            lambda r: httpx.Response(400, json={"success": False, "error": "bad input"}),
            error_mapper=mapper,
        )
        with pytest.raises(MappedError) as exc_info:
            await client.call("POST", "/x", json={})
        assert exc_info.value.details["status"] == 400

    @pytest.mark.asyncio
    async def test_non_2xx_without_envelope(self):
        """A non-JSON error body should surface the HTTP status."""
        client = make_client(lambda r: httpx.Response(502, text="Bad Gateway"))
        with pytest.raises(HTTPStatusError) as exc_info:
            await client.call("GET", "/x")
        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_authenticated_401_is_unauthorized(self):
        """A 401 on an authenticated request should be UnauthorizedError regardless of body."""
        client = make_client(
            lambda r: httpx.Response(401, json={"success": False, "error": "Invalid email or password"}),
            error_mapper=mapper,
        )
        with pytest.raises(UnauthorizedError):
            await client.call("GET", "/me", token="stale")

    @pytest.mark.asyncio
    async def test_unauthenticated_401_goes_through_mapper(self):
        client = make_client(
            lambda r: httpx.Response(401, json={"success": False, "error": "Invalid email or password"}),
            error_mapper=mapper,
        )
        with pytest.raises(MappedError):
            await client.call("POST", "/signin", json={})

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        client = make_client(lambda r: httpx.Response(200, text="<html>"))
        with pytest.raises(DecodeError):
            await client.call("GET", "/x")

    @pytest.mark.asyncio
    async def test_non_object_body(self):
        client = make_client(lambda r: httpx.Response(200, json=[1, 2]))
        with pytest.raises(MalformedResponseError):
            await client.call("GET", "/x")

    @pytest.mark.asyncio
    async def test_payload_shape_mismatch(self):
        client = make_client(lambda r: httpx.Response(200, json={"success": True, "data": {"other": 1}}))
        with pytest.raises(DecodeError):
            await client.call_data("GET", "/x", Item)

    @pytest.mark.asyncio
    async def test_connection_failure_is_network_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        client = make_client(handler)
        with pytest.raises(NetworkError):
            await client.call("GET", "/x")

    @pytest.mark.asyncio
    async def test_transport_timeout_is_network_error(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        client = make_client(handler)
        with pytest.raises(NetworkError) as exc_info:
            await client.call("GET", "/x")
        assert "timed out" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_resource_timeout_is_network_error(self):
        """The overall exchange bound should surface as a network error."""
        async def handler(request):
            await asyncio.sleep(1)
            return httpx.Response(200, json={"success": True})

        client = make_client(handler, resource_timeout=0.01)
        with pytest.raises(NetworkError):
            await client.call("GET", "/x")

    @pytest.mark.asyncio
    async def test_invalid_base_url(self):
        http = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        client = APIClient("not-a-url", client=http)
        with pytest.raises(InvalidRequestTargetError):
            await client.call("GET", "/x")
