"""
Session module.

The facade the UI talks to: one state machine over identity, tokens, quota,
subscription status and the per-identity library cache.

Public API:
- SessionFacade: Orchestrator and publish/subscribe source of SessionState
- SessionState, SessionStatus: Published session view
- Session exceptions
"""

from .models import SessionState, SessionStatus
from .service import SessionFacade
from .exceptions import (
    InvalidSessionTransitionError,
    GuestPurchaseNotAllowedError,
    UploadQuotaExceededError,
)

__all__ = [
    # Models
    "SessionState",
    "SessionStatus",
    # Service
    "SessionFacade",
    # Exceptions
    "InvalidSessionTransitionError",
    "GuestPurchaseNotAllowedError",
    "UploadQuotaExceededError",
]
