"""Tests for the credential vault."""

import pytest

from ai_gateway.config import settings
from ai_gateway.services.credential_vault import (
    CredentialVault,
    IV_LENGTH,
    TAG_LENGTH,
    derive_key,
    mask_secret,
)
from ai_gateway.services.errors import AuthenticationFailure, ConfigurationError, MalformedBlob


def _flip_hex_byte(segment: str, index: int = 0) -> str:
    data = bytearray(bytes.fromhex(segment))
    data[index] ^= 0x01
    return data.hex()


class TestRoundTrip:
    """Encrypt/decrypt behaviour."""

    @pytest.mark.parametrize(
        "plaintext",
        [
            "sk-test-api-key-12345",
            "sk-ant-" + "x" * 200,
            "k",
            "clé-ünïcødé-🔑",
            "with:colons:inside",
        ],
    )
    def test_decrypt_returns_original(self, vault, plaintext):
        """Test that decrypt(encrypt(p)) == p."""
        assert vault.decrypt(vault.encrypt(plaintext)) == plaintext

    def test_same_plaintext_gives_different_blobs(self, vault):
        """Test that a fresh IV is used for every encryption."""
        first = vault.encrypt("sk-openai-key-123")
        second = vault.encrypt("sk-openai-key-123")

        assert first != second
        assert first.split(":")[0] != second.split(":")[0]
        assert vault.decrypt(first) == vault.decrypt(second) == "sk-openai-key-123"

    def test_blob_format(self, vault):
        """Test that the blob is iv:authTag:ciphertext in hex."""
        iv, tag, ciphertext = vault.encrypt("sk-test").split(":")

        assert len(bytes.fromhex(iv)) == IV_LENGTH
        assert len(bytes.fromhex(tag)) == TAG_LENGTH
        assert len(bytes.fromhex(ciphertext)) == len("sk-test")

    def test_plaintext_not_in_blob(self, vault):
        """Test that the key does not appear in the blob."""
        assert "sk-secret" not in vault.encrypt("sk-secret")

    def test_empty_plaintext_rejected(self, vault):
        """Test that empty credentials cannot be encrypted."""
        with pytest.raises(ValueError):
            vault.encrypt("")

    def test_separate_instances_share_key(self):
        """Test that the key depends only on passphrase and salt."""
        blob = CredentialVault(passphrase="shared", salt="salt").encrypt("sk-test")
        assert CredentialVault(passphrase="shared", salt="salt").decrypt(blob) == "sk-test"


class TestTampering:
    """Authentication failures."""

    def test_flipped_ciphertext_byte(self, vault):
        """Test that a modified ciphertext fails authentication."""
        iv, tag, ciphertext = vault.encrypt("sk-test-api-key").split(":")
        tampered = f"{iv}:{tag}:{_flip_hex_byte(ciphertext)}"

        with pytest.raises(AuthenticationFailure):
            vault.decrypt(tampered)

    def test_flipped_tag_byte(self, vault):
        """Test that a modified tag fails authentication."""
        iv, tag, ciphertext = vault.encrypt("sk-test-api-key").split(":")
        tampered = f"{iv}:{_flip_hex_byte(tag, 5)}:{ciphertext}"

        with pytest.raises(AuthenticationFailure):
            vault.decrypt(tampered)

    def test_flipped_iv_byte(self, vault):
        """Test that a modified IV fails authentication."""
        iv, tag, ciphertext = vault.encrypt("sk-test-api-key").split(":")
        tampered = f"{_flip_hex_byte(iv)}:{tag}:{ciphertext}"

        with pytest.raises(AuthenticationFailure):
            vault.decrypt(tampered)

    def test_wrong_passphrase(self, vault):
        """Test that a different passphrase cannot decrypt the blob."""
        blob = vault.encrypt("sk-test-api-key")
        other = CredentialVault(passphrase="another-passphrase", salt="salt")

        with pytest.raises(AuthenticationFailure):
            other.decrypt(blob)

    def test_wrong_salt(self, vault):
        """Test that a different salt cannot decrypt the blob."""
        blob = vault.encrypt("sk-test-api-key")
        other = CredentialVault(passphrase="test-vault-passphrase", salt="pepper")

        with pytest.raises(AuthenticationFailure):
            other.decrypt(blob)

    def test_errors_are_configuration_errors(self):
        """Test that decryption errors are reported as configuration faults."""
        assert issubclass(AuthenticationFailure, ConfigurationError)
        assert issubclass(MalformedBlob, ConfigurationError)


class TestMalformedBlob:
    """Blob shape validation."""

    @pytest.mark.parametrize(
        "blob",
        [
            "onlyonepart",
            "not:three:parts:extra",
            "two:parts",
            "",
            "::",
            "aa::bb",
        ],
    )
    def test_wrong_shape(self, vault, blob):
        """Test that anything other than three non-empty segments is malformed."""
        with pytest.raises(MalformedBlob):
            vault.decrypt(blob)

    def test_non_hex_segment(self, vault):
        """Test that non-hex data is malformed."""
        iv, tag, _ = vault.encrypt("sk-test").split(":")
        with pytest.raises(MalformedBlob):
            vault.decrypt(f"{iv}:{tag}:not-hex!")

    def test_truncated_tag(self, vault):
        """Test that a short tag is malformed rather than misread."""
        iv, tag, ciphertext = vault.encrypt("sk-test").split(":")
        with pytest.raises(MalformedBlob):
            vault.decrypt(f"{iv}:{tag[:-2]}:{ciphertext}")

    def test_non_string_blob(self, vault):
        """Test that a missing blob is malformed."""
        with pytest.raises(MalformedBlob):
            vault.decrypt(None)


class TestKeyDerivation:
    """Derived key memoization."""

    def test_key_is_deterministic(self):
        """Test that the same inputs give the same 256-bit key."""
        key = derive_key("passphrase", "salt")
        assert key == derive_key("passphrase", "salt")
        assert len(key) == 32

    def test_key_depends_on_inputs(self):
        """Test that passphrase and salt both change the key."""
        base = derive_key("passphrase", "salt")
        assert derive_key("passphrase-2", "salt") != base
        assert derive_key("passphrase", "salt-2") != base

    def test_key_is_memoized(self):
        """Test that repeated derivations hit the cache."""
        derive_key.cache_clear()
        derive_key("memo-passphrase", "salt")
        derive_key("memo-passphrase", "salt")

        info = derive_key.cache_info()
        assert info.misses == 1
        assert info.hits == 1


class TestConfiguration:
    """Startup validation of the passphrase."""

    def test_defaults_from_settings(self, monkeypatch):
        """Test that the vault reads the passphrase from settings."""
        monkeypatch.setattr(settings, "encryption_key", "from-settings")
        blob = CredentialVault().encrypt("sk-test")

        assert CredentialVault(passphrase="from-settings", salt=settings.encryption_salt).decrypt(blob) == "sk-test"

    def test_missing_passphrase_exits(self, monkeypatch):
        """Test that the vault refuses to start without a passphrase."""
        monkeypatch.setattr(settings, "encryption_key", None)

        with pytest.raises(SystemExit) as exc_info:
            CredentialVault()

        assert exc_info.value.code == 1

    def test_empty_passphrase_exits(self):
        """Test that an empty passphrase is treated as missing."""
        with pytest.raises(SystemExit):
            CredentialVault(passphrase="")


class TestMasking:
    """Secret masking for display."""

    def test_long_secret(self):
        assert mask_secret("sk-provider1-key-1234567890") == "sk-" + "*" * 15 + "7890"

    def test_short_secret(self):
        assert mask_secret("short") == "*****"
