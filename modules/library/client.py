"""
Image and analysis API client.

Two services share one token provider: uploads and image bytes come from
the upload service, analysis results from the analysis service.
"""

import logging
from typing import Awaitable, Callable, Optional, TypeVar
from urllib.parse import quote

import httpx

from shared.exceptions import UnauthorizedError
from shared.http import APIClient
from modules.tokens.interfaces import ITokenProvider

from .models import ImageAnalysisResult, ImageUpload, UploadedImage

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ImageAPIClient:
    """Client for the protected image and analysis endpoints."""

    def __init__(
        self,
        upload_url: str,
        analysis_url: str,
        tokens: ITokenProvider,
        timeout: float = 30.0,
        resource_timeout: Optional[float] = 60.0,
        upload_timeout: float = 300.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._tokens = tokens
        self._upload_timeout = upload_timeout
        self._uploads = APIClient(
            upload_url,
            service="upload",
            timeout=timeout,
            resource_timeout=resource_timeout,
            client=client,
        )
        self._analysis = APIClient(
            analysis_url,
            service="analysis",
            timeout=timeout,
            resource_timeout=resource_timeout,
            client=client,
        )

    async def aclose(self) -> None:
        await self._uploads.aclose()
        await self._analysis.aclose()

    async def _authorized(self, call: Callable[[str], Awaitable[T]]) -> T:
        identity_token = await self._tokens.ensure_valid()
        try:
            return await call(identity_token)
        except UnauthorizedError:
            self._tokens.handle_unauthorized()
            raise

    async def upload_image(self, upload: ImageUpload) -> UploadedImage:
        files = {"image": (upload.filename, upload.data, upload.content_type)}
        image = await self._authorized(
            lambda token: self._uploads.call_data(
                "POST",
                "/api/upload",
                UploadedImage,
                files=files,
                token=token,
                resource_timeout=self._upload_timeout,
            )
        )
        logger.info(f"Uploaded image {image.id} ({image.size} bytes)")
        return image

    async def list_images(self) -> list[UploadedImage]:
        return await self._authorized(
            lambda token: self._uploads.call_data(
                "GET", "/api/images", list[UploadedImage], token=token
            )
        )

    async def fetch_image_data(self, image_id: str) -> bytes:
        return await self._authorized(
            lambda token: self._uploads.fetch_bytes(
                f"/api/images/{quote(image_id, safe='')}", token=token
            )
        )

    async def delete_image(self, image_id: str) -> None:
        await self._authorized(
            lambda token: self._uploads.call(
                "DELETE", f"/api/images/{quote(image_id, safe='')}", token=token
            )
        )

    async def list_analysis(self) -> list[ImageAnalysisResult]:
        return await self._authorized(
            lambda token: self._analysis.call_data(
                "GET", "/api/analysis", list[ImageAnalysisResult], token=token
            )
        )

    async def get_analysis(self, image_id: str) -> ImageAnalysisResult:
        return await self._authorized(
            lambda token: self._analysis.call_data(
                "GET",
                f"/api/analysis/{quote(image_id, safe='')}",
                ImageAnalysisResult,
                token=token,
            )
        )
