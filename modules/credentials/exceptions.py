"""
Credential store exceptions.
"""

from shared.exceptions import GuidepostError


class CredentialStoreError(GuidepostError):
    """Raised when the credential store cannot be used at all."""

    def __init__(self, message: str):
        super().__init__(message, code="CREDENTIAL_STORE_ERROR")
