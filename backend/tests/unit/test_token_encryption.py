"""
Tests for Token Encryption Service
Calendar tokens at rest
"""
import pytest
from cryptography.fernet import Fernet

from dialdesk.infrastructure.connectors.encryption import (
    TokenEncryptionError,
    TokenEncryptionService,
)


class TestTokenEncryption:
    """Tests for Fernet encryption service"""

    def test_encrypt_decrypt_roundtrip(self):
        """Token survives encrypt/decrypt cycle"""
        service = TokenEncryptionService(TokenEncryptionService.generate_key())

        encrypted = service.encrypt("ya29.access_token")

        assert encrypted != "ya29.access_token"
        assert service.decrypt(encrypted) == "ya29.access_token"

    def test_empty_string_handling(self):
        """Empty strings return empty strings"""
        service = TokenEncryptionService(TokenEncryptionService.generate_key())

        assert service.encrypt("") == ""
        assert service.decrypt("") == ""

    def test_decrypt_with_wrong_key_fails(self):
        """Decryption fails with incorrect key"""
        encrypted = TokenEncryptionService(Fernet.generate_key().decode()).encrypt("secret")
        other = TokenEncryptionService(Fernet.generate_key().decode())

        with pytest.raises(TokenEncryptionError):
            other.decrypt(encrypted)

    def test_old_key_still_decrypts(self):
        """Rotated-out keys keep decrypting existing tokens"""
        old_key = Fernet.generate_key().decode()
        stored = TokenEncryptionService(old_key).encrypt("legacy_token")

        service = TokenEncryptionService(Fernet.generate_key().decode(), old_keys=[old_key])

        assert service.decrypt(stored) == "legacy_token"

    def test_rotate_token_uses_current_key(self):
        """Rotated ciphertext decrypts without the old key"""
        old_key = Fernet.generate_key().decode()
        new_key = Fernet.generate_key().decode()
        stored = TokenEncryptionService(old_key).encrypt("legacy_token")

        rotated = TokenEncryptionService(new_key, old_keys=[old_key]).rotate_token(stored)

        assert TokenEncryptionService(new_key).decrypt(rotated) == "legacy_token"

    def test_missing_key_uses_temporary_key(self):
        """No key still gives a working (ephemeral) service"""
        service = TokenEncryptionService(None)

        assert service.decrypt(service.encrypt("token")) == "token"

    def test_invalid_key_rejected(self):
        """A malformed key fails at construction"""
        with pytest.raises(TokenEncryptionError):
            TokenEncryptionService("not-a-fernet-key")
