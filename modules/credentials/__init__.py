"""
Secure credential store module.

Opaque key -> secret storage scoped by a named sharing group, so a companion
process (e.g., the share extension) can read the same secrets.

Public API:
- ICredentialStore: Interface for credential storage
- InMemoryCredentialStore: Process-local store for tests and previews
- EncryptedFileCredentialStore: Fernet-encrypted, file-backed store
- CredentialStoreError: Raised when the store is misconfigured
"""

from .interfaces import ICredentialStore
from .store import InMemoryCredentialStore, EncryptedFileCredentialStore
from .exceptions import CredentialStoreError

__all__ = [
    # Interface
    "ICredentialStore",
    # Implementations
    "InMemoryCredentialStore",
    "EncryptedFileCredentialStore",
    # Exceptions
    "CredentialStoreError",
]
