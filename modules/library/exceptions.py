"""
Library module exceptions.
"""

from shared.exceptions import GuidepostError


class UploadCancelledError(GuidepostError):
    """Raised when the identity that started an upload left before it finished."""

    def __init__(self):
        super().__init__(
            "The upload was cancelled because the session changed",
            code="UPLOAD_CANCELLED",
        )
