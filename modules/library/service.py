"""
Identity-scoped image library cache.

Holds the analysis-result list, image info and image bytes of the current
identity. clear_all_data() cancels in-flight loads and uploads so work started
under one identity can never write into the next identity's view.
"""

import asyncio
import logging
from typing import Optional

from shared.exceptions import GuidepostError

from .exceptions import UploadCancelledError
from .interfaces import IImageAPI
from .models import AnalysisStatus, ImageAnalysisResult, ImageUpload, UploadedImage

logger = logging.getLogger(__name__)


class LibraryService:
    """
    Cached view of the current identity's images.

    Args:
        api: Protected image/analysis API
        refresh_delay: Seconds to wait after an upload before reloading the
            list in the background; None disables the reload
    """

    def __init__(self, api: IImageAPI, refresh_delay: Optional[float] = 0.5):
        self._api = api
        self._refresh_delay = refresh_delay
        self._load_task: Optional[asyncio.Task] = None
        self._refresh_task: Optional[asyncio.Task] = None
        self._upload_tasks: set[asyncio.Task] = set()
        self._reset_state()

    def _reset_state(self) -> None:
        self.analysis_results: list[ImageAnalysisResult] = []
        self.image_info: dict[str, UploadedImage] = {}
        self.image_cache: dict[str, bytes] = {}
        self.error_message: Optional[str] = None
        self.search_text = ""
        self.is_loading = True
        self._has_loaded = False

    @property
    def is_empty(self) -> bool:
        return not self.analysis_results and not self.image_info and not self.image_cache

    @property
    def filtered_results(self) -> list[ImageAnalysisResult]:
        if not self.search_text:
            return list(self.analysis_results)
        needle = self.search_text.lower()
        return [r for r in self.analysis_results if needle in r.searchable_text]

    def get_image_info(self, image_id: str) -> Optional[UploadedImage]:
        return self.image_info.get(image_id)

    def clear_all_data(self) -> None:
        """Cancel in-flight loads and uploads and drop every cached item."""
        for task in (self._load_task, self._refresh_task, *self._upload_tasks):
            if task is not None and not task.done():
                task.cancel()
        self._load_task = None
        self._refresh_task = None
        self._upload_tasks.clear()
        self._reset_state()
        logger.debug("Cleared library cache")

    async def load_if_needed(self) -> None:
        if self._has_loaded:
            return
        self._has_loaded = True
        await self.load()

    async def load(self) -> None:
        """
        Reload analysis results and image info.

        Replaces any load already in flight. Local processing placeholders
        the server does not know about yet are kept at the top.

        Raises:
            GuidepostError: The load failure, also stored in error_message
        """
        if self._load_task is not None and not self._load_task.done():
            self._load_task.cancel()

        self.error_message = None
        self.is_loading = True
        placeholders = [
            r for r in self.analysis_results if r.status == AnalysisStatus.PROCESSING
        ]

        task = asyncio.create_task(self._load(placeholders))
        self._load_task = task
        # wait() does not raise when the task itself is cancelled
        await asyncio.wait({task})
        if task.cancelled():
            return
        task.result()

    async def _load(self, placeholders: list[ImageAnalysisResult]) -> None:
        try:
            results, images = await asyncio.gather(
                self._api.list_analysis(),
                self._api.list_images(),
            )
        except GuidepostError as e:
            logger.error(f"Failed to load library: {e.code}")
            self.error_message = e.message
            self.is_loading = False
            raise

        server_ids = {r.image_id for r in results}
        orphaned = [p for p in placeholders if p.image_id not in server_ids]

        lookup = {image.id: image for image in images}
        for placeholder in orphaned:
            existing = self.image_info.get(placeholder.image_id)
            if existing is not None:
                lookup[placeholder.image_id] = existing

        self.analysis_results = orphaned + list(results)
        self.image_info = lookup
        self.is_loading = False
        logger.debug(f"Loaded {len(results)} analysis results")

    async def load_image_data(self, image_id: str) -> Optional[bytes]:
        """Image bytes from the cache or the server. Failures are logged and yield None."""
        cached = self.image_cache.get(image_id)
        if cached is not None:
            return cached
        try:
            data = await self._api.fetch_image_data(image_id)
        except GuidepostError as e:
            logger.warning(f"Failed to load image {image_id}: {e.code}")
            return None
        self.image_cache[image_id] = data
        return data

    async def upload(self, upload: ImageUpload) -> UploadedImage:
        """
        Upload an image and show a processing placeholder for it right away.

        Raises:
            UploadCancelledError: clear_all_data() ran before the upload finished
        """
        task = asyncio.create_task(self._upload(upload))
        self._upload_tasks.add(task)
        try:
            await asyncio.wait({task})
        finally:
            self._upload_tasks.discard(task)
        if task.cancelled():
            logger.info("Upload cancelled by a session change")
            raise UploadCancelledError()
        return task.result()

    async def _upload(self, upload: ImageUpload) -> UploadedImage:
        image = await self._api.upload_image(upload)

        self.analysis_results.insert(0, ImageAnalysisResult.placeholder(image))
        self.image_info[image.id] = image
        self.image_cache[image.id] = upload.data

        if self._refresh_delay is not None:
            if self._refresh_task is not None and not self._refresh_task.done():
                self._refresh_task.cancel()
            self._refresh_task = asyncio.create_task(self._delayed_refresh(self._refresh_delay))

        return image

    async def _delayed_refresh(self, delay: float) -> None:
        await asyncio.sleep(delay)
        try:
            await self.load()
        except GuidepostError as e:
            logger.warning(f"Background refresh after upload failed: {e.code}")

    async def delete(self, image_id: str) -> None:
        await self._api.delete_image(image_id)
        self.image_cache.pop(image_id, None)
        self.image_info.pop(image_id, None)
        self.analysis_results = [r for r in self.analysis_results if r.image_id != image_id]
        logger.info(f"Deleted image {image_id}")
