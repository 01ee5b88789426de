"""
Library module interfaces.
"""

from typing import Protocol, runtime_checkable

from .models import ImageAnalysisResult, ImageUpload, UploadedImage


@runtime_checkable
class IImageAPI(Protocol):
    """
    Protected image and analysis endpoints.

    Every call presents the current identity token. A 401 answer clears the
    stored tokens and raises UnauthorizedError.
    """

    async def upload_image(self, upload: ImageUpload) -> UploadedImage:
        """POST {upload}/api/upload (multipart field ``image``)"""
        ...

    async def list_images(self) -> list[UploadedImage]:
        """GET {upload}/api/images"""
        ...

    async def fetch_image_data(self, image_id: str) -> bytes:
        """GET {upload}/api/images/{id}"""
        ...

    async def delete_image(self, image_id: str) -> None:
        """DELETE {upload}/api/images/{id}"""
        ...

    async def list_analysis(self) -> list[ImageAnalysisResult]:
        """GET {analysis}/api/analysis"""
        ...

    async def get_analysis(self, image_id: str) -> ImageAnalysisResult:
        """GET {analysis}/api/analysis/{id}"""
        ...
