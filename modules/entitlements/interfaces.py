"""
Entitlement module interfaces.
"""

from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class IPreferencesStore(Protocol):
    """
    Small persistent key -> integer store for non-secret local state.

    Writes are durable enough for usage counters; they are not transactional.
    """

    def get_int(self, key: str) -> int:
        """Stored value, or 0 if the key is absent."""
        ...

    def set_int(self, key: str, value: int) -> None:
        ...

    def remove(self, key: str) -> None:
        """Remove a key. Removing an absent key is not an error."""
        ...


@runtime_checkable
class IEntitlementTracker(Protocol):
    """Upload quota for the current identity."""

    def remaining_uploads(self) -> Optional[int]:
        """
        Uploads left under the Trial quota.

        Returns:
            max(0, limit - count), or None when the quota does not apply
        """
        ...

    def can_upload(self) -> bool:
        ...

    def record_upload(self) -> None:
        """Count one successful upload against the Trial quota."""
        ...
