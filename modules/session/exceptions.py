"""
Session module exceptions.
"""

from shared.exceptions import GuidepostError, ValidationError


class InvalidSessionTransitionError(ValidationError):
    """Raised when an operation is not allowed in the current session state."""

    def __init__(self, operation: str, status: str):
        super().__init__(
            f"Cannot {operation} while {status}",
            code="INVALID_SESSION_TRANSITION",
            details={"operation": operation, "status": status},
        )


class GuestPurchaseNotAllowedError(GuidepostError):
    """Raised when a guest tries to subscribe before creating an account."""

    def __init__(self):
        super().__init__(
            "Please create an account before subscribing",
            code="GUEST_PURCHASE_NOT_ALLOWED",
        )


class UploadQuotaExceededError(GuidepostError):
    """Raised when the Trial upload quota is used up."""

    def __init__(self, limit: int):
        super().__init__(
            f"You've used all {limit} free uploads. Upgrade to Pro for unlimited uploads.",
            code="UPLOAD_QUOTA_EXCEEDED",
            details={"limit": limit},
        )
