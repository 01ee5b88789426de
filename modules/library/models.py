"""
Library module data models.

Wire models of the upload and analysis services (camelCase JSON).
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AnalysisStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class UploadedImage(CamelModel):
    """An image stored by the upload service."""

    id: str
    user_id: str
    filename: str
    original_name: str
    mimetype: str
    size: int = Field(..., ge=0, description="Size in bytes")
    uploaded_at: str = Field(..., description="ISO 8601 timestamp")
    path: str


class ImageAnalysisResult(CamelModel):
    """AI analysis of one image."""

    image_id: str
    user_id: str
    filename: str
    analyzed_at: str
    keywords: Optional[list[str]] = None
    detected_text: Optional[list[str]] = None
    description: Optional[str] = None
    status: AnalysisStatus
    error: Optional[str] = None

    @classmethod
    def placeholder(cls, image: UploadedImage) -> "ImageAnalysisResult":
        """Local stand-in shown until the analysis service reports the image."""
        return cls(
            image_id=image.id,
            user_id=image.user_id,
            filename=image.filename,
            analyzed_at=image.uploaded_at,
            status=AnalysisStatus.PROCESSING,
        )

    @property
    def searchable_text(self) -> str:
        components: list[str] = []
        if self.keywords:
            components.extend(self.keywords)
        if self.description:
            components.append(self.description)
        if self.detected_text:
            components.extend(self.detected_text)
        components.append(self.filename)
        return " ".join(components).lower()


class ImageUpload(BaseModel):
    """Already-encoded image bytes plus what the multipart part needs."""

    data: bytes = Field(..., min_length=1)
    filename: str = Field(default="image.jpg")
    content_type: str = Field(default="image/jpeg")
