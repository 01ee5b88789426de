"""
Subscription module exceptions.
"""

from shared.exceptions import GuidepostError


class PurchaseCancelledError(GuidepostError):
    """Raised when the user cancels the purchase sheet."""

    def __init__(self):
        super().__init__("Purchase was cancelled", code="PURCHASE_CANCELLED")


class PurchaseVerificationFailedError(GuidepostError):
    """Raised when the store returns a transaction that fails verification."""

    def __init__(self, reason: str = ""):
        super().__init__(
            "Purchase verification failed",
            code="VERIFICATION_FAILED",
            details={"reason": reason} if reason else {},
        )


class ProductNotFoundError(GuidepostError):
    """Raised when a product ID is not in the loaded catalog."""

    def __init__(self, product_id: str):
        super().__init__(
            f"Product not found: {product_id}",
            code="PRODUCT_NOT_FOUND",
            details={"product_id": product_id},
        )


class PurchaseFailedError(GuidepostError):
    """Raised when the store fails with an error outside the taxonomy."""

    def __init__(self, detail: str):
        super().__init__(
            f"Purchase failed: {detail}",
            code="PURCHASE_FAILED",
            details={"detail": detail},
        )
