"""Encryption of long-lived aggregator access tokens at rest.

Uses Fernet symmetric encryption (AES-128-CBC + HMAC-SHA256). The key comes
from ``ENCRYPTION_KEY`` and must be a urlsafe base64-encoded 32-byte key, as
produced by ``Fernet.generate_key()``.
"""

from cryptography.fernet import Fernet, InvalidToken

from agencytax.config import settings
from agencytax.core.exceptions import CredentialError


class CredentialVault:
    """Encrypt/decrypt capability for access tokens."""

    def __init__(self, key: str | bytes):
        if isinstance(key, str):
            key = key.encode()
        self._cipher = Fernet(key)

    def encrypt(self, credential: str) -> str:
        """Encrypt a plaintext credential into an opaque token."""
        return self._cipher.encrypt(credential.encode()).decode()

    def decrypt(self, token: str) -> str:
        """Decrypt an opaque token back into the credential.

        Raises:
            CredentialError: If the token was tampered with or made with another key
        """
        try:
            return self._cipher.decrypt(token.encode()).decode()
        except InvalidToken as exc:
            raise CredentialError() from exc


def get_vault() -> CredentialVault:
    return CredentialVault(settings.encryption_key)
