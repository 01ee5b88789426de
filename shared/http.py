"""
JSON envelope client built on httpx.

Every Guidepost service wraps its payload in an envelope
``{success, message?, data?, error?}``. APIClient sends requests, translates
transport failures into the shared error taxonomy and hands server error text
to a pluggable mapper so each module can derive its own domain errors.
"""

import asyncio
import logging
from typing import Any, Callable, Generic, Optional, TypeVar

import httpx
from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from .exceptions import (
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

logger = logging.getLogger(__name__)

T = TypeVar("T")

# (server error text, HTTP status or None) -> exception to raise
ErrorMapper = Callable[[Optional[str], Optional[int]], GuidepostError]


class APIEnvelope(BaseModel, Generic[T]):
    """Response envelope shared by all Guidepost services."""

    model_config = ConfigDict(extra="ignore")

    success: bool
    message: Optional[str] = None
    data: Optional[T] = None
    error: Optional[str] = None


def default_error_mapper(message: Optional[str], status_code: Optional[int]) -> GuidepostError:
    """Fallback mapping used when a client has no domain-specific rules."""
    if message:
        return UnknownError(message)
    if status_code is not None:
        return HTTPStatusError(status_code)
    return UnknownError()


class APIClient:
    """
    Thin async client for one Guidepost service.

    Args:
        base_url: Service root, paths are appended verbatim.
        service: Name used in error details and log lines.
        timeout: Per-request timeout in seconds (connect/read/write).
        resource_timeout: Upper bound for the whole exchange in seconds.
        error_mapper: Maps server error text to a domain exception.
        client: Optional pre-built httpx.AsyncClient (e.g., with a MockTransport).
            An injected client is never closed by this class.
    """

    def __init__(
        self,
        base_url: str,
        *,
        service: str = "api",
        timeout: float = 30.0,
        resource_timeout: Optional[float] = None,
        error_mapper: Optional[ErrorMapper] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._service = service
        self._timeout = timeout
        self._resource_timeout = resource_timeout
        self._map_error = error_mapper or default_error_mapper
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    @property
    def service(self) -> str:
        return self._service

    async def aclose(self) -> None:
        """Close the underlying httpx client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "APIClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    def _url(self, path: str) -> httpx.URL:
        raw = f"{self._base_url}{path}"
        try:
            url = httpx.URL(raw)
        except httpx.InvalidURL:
            raise InvalidRequestTargetError(raw, service=self._service)
        if url.scheme not in ("http", "https") or not url.host:
            raise InvalidRequestTargetError(raw, service=self._service)
        return url

    async def send(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        token: Optional[str] = None,
        files: Any = None,
        data: Any = None,
        timeout: Optional[float] = None,
        resource_timeout: Optional[float] = None,
    ) -> httpx.Response:
        """
        Send a request and check its status.

        When ``token`` is given the request is authenticated and a 401 answer
        raises UnauthorizedError regardless of the body.

        Raises:
            InvalidRequestTargetError: If the URL cannot be built
            NetworkError: On connection failures or timeouts
            UnauthorizedError: On 401 for an authenticated request
            GuidepostError: Whatever the error mapper derives for other statuses
        """
        url = self._url(path)
        headers = {"Accept": "application/json"}
        if token is not None:
            headers["Authorization"] = f"Bearer {token}"

        request_timeout = httpx.Timeout(timeout or self._timeout)
        overall = resource_timeout or self._resource_timeout

        try:
            exchange = self._client.request(
                method,
                url,
                json=json,
                files=files,
                data=data,
                headers=headers,
                timeout=request_timeout,
            )
            if overall:
                response = await asyncio.wait_for(exchange, overall)
            else:
                response = await exchange
        except asyncio.TimeoutError:
            raise NetworkError("The request timed out", service=self._service)
        except httpx.UnsupportedProtocol:
            raise InvalidRequestTargetError(str(url), service=self._service)
        except httpx.TimeoutException:
            raise NetworkError("The request timed out", service=self._service)
        except httpx.HTTPError as e:
            raise NetworkError(str(e) or e.__class__.__name__, service=self._service)

        logger.debug(f"{method} {path} -> {response.status_code} ({self._service})")

        if not response.is_success:
            self._raise_for_status(response, authenticated=token is not None)

        return response

    def _raise_for_status(self, response: httpx.Response, authenticated: bool) -> None:
        status = response.status_code
        if authenticated and status == 401:
            raise UnauthorizedError()

        try:
            envelope = APIEnvelope[Any].model_validate(response.json())
        except (ValueError, PydanticValidationError):
            raise HTTPStatusError(status, service=self._service)

        raise self._map_error(envelope.error, status)

    def decode(self, response: httpx.Response, data_model: Any = Any) -> APIEnvelope:
        """
        Decode a 2xx response into an envelope whose data is ``data_model``.

        A ``success: false`` envelope is passed to the error mapper.
        """
        try:
            body = response.json()
        except ValueError as e:
            raise DecodeError(str(e), service=self._service)

        if not isinstance(body, dict):
            raise MalformedResponseError(
                service=self._service,
                reason=f"expected an object, got {type(body).__name__}",
            )

        try:
            envelope = APIEnvelope[data_model].model_validate(body)
        except PydanticValidationError as e:
            raise DecodeError(str(e), service=self._service)

        if not envelope.success:
            raise self._map_error(envelope.error, None)

        return envelope

    async def call(
        self,
        method: str,
        path: str,
        data_model: Any = Any,
        **kwargs: Any,
    ) -> APIEnvelope:
        """Send a request and decode its envelope."""
        response = await self.send(method, path, **kwargs)
        return self.decode(response, data_model)

    async def call_data(
        self,
        method: str,
        path: str,
        data_model: type[T],
        **kwargs: Any,
    ) -> T:
        """Send a request and return the envelope payload, which must be present."""
        envelope = await self.call(method, path, data_model, **kwargs)
        if envelope.data is None:
            raise NoDataError(service=self._service)
        return envelope.data

    async def fetch_bytes(self, path: str, token: Optional[str] = None) -> bytes:
        """Fetch a raw (non-envelope) body such as image data."""
        response = await self.send("GET", path, token=token)
        if not response.content:
            raise NoDataError(service=self._service)
        return response.content
