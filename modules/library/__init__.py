"""
Image library module.

Per-identity cache of uploaded images and their AI analysis results.

Public API:
- IImageAPI: Interface for the protected image/analysis endpoints
- ImageAPIClient: httpx-based implementation
- LibraryService: Identity-scoped cache with cancellable loads
- Models: UploadedImage, ImageAnalysisResult, AnalysisStatus, ImageUpload
- Exceptions: UploadCancelledError
"""

from .interfaces import IImageAPI
from .models import UploadedImage, ImageAnalysisResult, AnalysisStatus, ImageUpload
from .exceptions import UploadCancelledError
from .client import ImageAPIClient
from .service import LibraryService

__all__ = [
    # Interface
    "IImageAPI",
    # Models
    "UploadedImage",
    "ImageAnalysisResult",
    "AnalysisStatus",
    "ImageUpload",
    # Exceptions
    "UploadCancelledError",
    # Implementations
    "ImageAPIClient",
    "LibraryService",
]
