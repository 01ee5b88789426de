"""
Credential store interface.

The token manager depends on ICredentialStore, not on a concrete backend.
A ``scope`` of None addresses the legacy, unshared location.
"""

from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class ICredentialStore(Protocol):
    """
    Interface for secure key -> secret storage.

    Implementations must be safe to use from several processes that share
    the same scope; each key is written independently.
    """

    def save(self, key: str, data: bytes, scope: Optional[str] = None) -> bool:
        """
        Store a secret, replacing any previous value.

        Returns:
            True if the value was written, False otherwise
        """
        ...

    def load(self, key: str, scope: Optional[str] = None) -> Optional[bytes]:
        """
        Read a secret.

        Returns:
            The stored bytes, or None if the key is absent or unreadable
        """
        ...

    def delete(self, key: str, scope: Optional[str] = None) -> bool:
        """
        Remove a secret.

        Deleting an absent key is not an error and returns True.
        """
        ...
