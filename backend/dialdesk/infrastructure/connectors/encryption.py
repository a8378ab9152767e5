"""
Token Encryption Service
Encryption at rest for stored calendar access tokens using Fernet.

MultiFernet lets old keys keep decrypting while new tokens are always
written with the current key.
"""
import logging
from typing import Optional, List
from cryptography.fernet import Fernet, MultiFernet, InvalidToken

logger = logging.getLogger(__name__)


class TokenEncryptionError(Exception):
    """Raised when token encryption/decryption fails"""
    pass


class TokenEncryptionService:
    """
    Encrypt/decrypt access tokens.

    Key chain:
    - key: current key, used for every encrypt
    - old_keys: previous keys, only used to decrypt

    Usage:
        service = TokenEncryptionService(settings.connector_encryption_key)
        stored = service.encrypt(access_token)
        access_token = service.decrypt(stored)
    """

    def __init__(self, key: Optional[str] = None, old_keys: Optional[List[str]] = None):
        if not key:
            logger.warning(
                "CONNECTOR_ENCRYPTION_KEY not set! "
                "Using temporary key - stored tokens will not survive a restart"
            )
            key = Fernet.generate_key().decode()

        try:
            keys = [Fernet(key.encode())]
            for old_key in old_keys or []:
                if old_key:
                    keys.append(Fernet(old_key.encode()))
        except (ValueError, TypeError) as e:
            raise TokenEncryptionError(f"Failed to initialize encryption keys: {e}")

        self._fernet = MultiFernet(keys)
        logger.info(f"Encryption service initialized with {len(keys)} key(s)")

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a token string. Empty input stays empty."""
        if not plaintext:
            return ""
        return self._fernet.encrypt(plaintext.encode()).decode()

    def decrypt(self, ciphertext: str) -> str:
        """
        Decrypt a token string.

        Raises:
            TokenEncryptionError: If no key in the chain can decrypt it
        """
        if not ciphertext:
            return ""

        try:
            return self._fernet.decrypt(ciphertext.encode()).decode()
        except InvalidToken:
            logger.error("Decryption failed: Invalid token or wrong key")
            raise TokenEncryptionError("Failed to decrypt token: Invalid token or key")

    def rotate_token(self, ciphertext: str) -> str:
        """Re-encrypt a token written with any key in the chain using the current key."""
        if not ciphertext:
            return ""

        try:
            return self._fernet.rotate(ciphertext.encode()).decode()
        except InvalidToken:
            logger.error("Token rotation failed: Invalid token or wrong key")
            raise TokenEncryptionError("Failed to rotate token: Invalid token or key")

    @staticmethod
    def generate_key() -> str:
        """New URL-safe base64 Fernet key for setup or rotation."""
        return Fernet.generate_key().decode()
