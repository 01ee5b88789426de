"""
Credential store implementations.

- InMemoryCredentialStore: dict-backed, process-local. For tests and previews.
- EncryptedFileCredentialStore: one Fernet-encrypted file per key inside a
  directory per sharing group. Every process configured with the same root
  directory and secret sees the same secrets.
"""

import base64
import hashlib
import logging
import os
import stat
import tempfile
from pathlib import Path
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .exceptions import CredentialStoreError

logger = logging.getLogger(__name__)

# Directory name used for the unscoped (legacy) location
LEGACY_SCOPE_DIR = "_default"


class InMemoryCredentialStore:
    """
    Credential store with in-memory storage.

    For testing and development. Use EncryptedFileCredentialStore for production.
    """

    def __init__(self):
        self._items: dict[tuple[Optional[str], str], bytes] = {}

    def save(self, key: str, data: bytes, scope: Optional[str] = None) -> bool:
        self._items[(scope, key)] = bytes(data)
        return True

    def load(self, key: str, scope: Optional[str] = None) -> Optional[bytes]:
        return self._items.get((scope, key))

    def delete(self, key: str, scope: Optional[str] = None) -> bool:
        self._items.pop((scope, key), None)
        return True

    def keys(self, scope: Optional[str] = None) -> set[str]:
        """Keys currently stored under a scope (test helper)."""
        return {k for s, k in self._items if s == scope}


class EncryptedFileCredentialStore:
    """
    File-backed credential store with Fernet encryption.

    Security features:
    - AES-128-CBC + HMAC-SHA256 via Fernet for every stored value
    - Key derived with PBKDF2-HMAC-SHA256 from a configured secret and salt
    - Owner-only (600) permissions on every file
    - Atomic replace on write so a concurrent reader never sees a partial file
    """

    # OWASP 2023 recommendation for PBKDF2-SHA256
    PBKDF2_ITERATIONS = 480000

    def __init__(self, root: Path, secret: Optional[str], salt: Optional[str]):
        """
        Initialize the store.

        Args:
            root: Directory holding one sub-directory per scope
            secret: Key material shared by every process using this store
            salt: PBKDF2 salt

        Raises:
            CredentialStoreError: If secret or salt is missing
        """
        if not secret or not salt:
            raise CredentialStoreError(
                "Credential store encryption is not configured. "
                "Set GUIDEPOST_CREDENTIAL_ENCRYPTION_SECRET and "
                "GUIDEPOST_CREDENTIAL_ENCRYPTION_SALT."
            )
        self._root = Path(root)
        self._fernet = Fernet(self._derive_key(secret, salt))

    def _derive_key(self, secret: str, salt: str) -> bytes:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=salt.encode(),
            iterations=self.PBKDF2_ITERATIONS,
        )
        return base64.urlsafe_b64encode(kdf.derive(secret.encode()))

    def _path(self, key: str, scope: Optional[str]) -> Path:
        scope_dir = scope or LEGACY_SCOPE_DIR
        # Hash names so arbitrary keys and scopes map to safe file names
        scope_name = hashlib.sha256(scope_dir.encode()).hexdigest()[:32]
        key_name = hashlib.sha256(key.encode()).hexdigest()
        return self._root / scope_name / f"{key_name}.secret"

    def save(self, key: str, data: bytes, scope: Optional[str] = None) -> bool:
        path = self._path(key, scope)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            token = self._fernet.encrypt(bytes(data))
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(token)
                self._set_secure_file_permissions(Path(tmp_name))
                os.replace(tmp_name, path)
            except OSError:
                Path(tmp_name).unlink(missing_ok=True)
                raise
            return True
        except OSError as e:
            logger.error(f"Could not save credential {key}: {e}")
            return False

    def load(self, key: str, scope: Optional[str] = None) -> Optional[bytes]:
        path = self._path(key, scope)
        try:
            token = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning(f"Could not read credential {key}: {e}")
            return None

        try:
            return self._fernet.decrypt(token)
        except InvalidToken:
            logger.warning(f"Credential {key} could not be decrypted, ignoring it")
            return None

    def delete(self, key: str, scope: Optional[str] = None) -> bool:
        path = self._path(key, scope)
        try:
            path.unlink(missing_ok=True)
            return True
        except OSError as e:
            logger.error(f"Could not delete credential {key}: {e}")
            return False

    def _set_secure_file_permissions(self, file_path: Path) -> None:
        if os.name == "nt":
            return
        try:
            os.chmod(file_path, stat.S_IRUSR | stat.S_IWUSR)  # 600
        except OSError as e:
            logger.warning(f"Could not set secure file permissions: {e}")
