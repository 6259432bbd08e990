"""
Token Encryption
Encrypts OAuth tokens before they are written to the database.
"""

import base64
import hashlib
import logging
from functools import lru_cache

from cryptography.fernet import Fernet, InvalidToken

from app.config import settings

logger = logging.getLogger(__name__)


class TokenDecryptionError(Exception):
    """Raised when a stored token cannot be decrypted with the current key."""


@lru_cache()
def get_cipher() -> Fernet:
    """
    Build the Fernet cipher used for token storage.

    Uses TOKEN_ENCRYPTION_KEY when configured, otherwise derives a stable
    key from SECRET_KEY so development setups work without extra config.
    """
    key = settings.token_encryption_key
    if not key:
        logger.warning("TOKEN_ENCRYPTION_KEY not set, deriving token key from SECRET_KEY")
        digest = hashlib.sha256(settings.secret_key.encode()).digest()
        key = base64.urlsafe_b64encode(digest).decode()
    return Fernet(key.encode())


def encrypt_token(token: str) -> str:
    """Encrypt a token for storage."""
    return get_cipher().encrypt(token.encode()).decode()


def decrypt_token(encrypted_token: str) -> str:
    """
    Decrypt a stored token.

    Raises:
        TokenDecryptionError: If the value was not produced with the current key
    """
    try:
        return get_cipher().decrypt(encrypted_token.encode()).decode()
    except (InvalidToken, ValueError) as e:
        raise TokenDecryptionError("Stored token could not be decrypted") from e
