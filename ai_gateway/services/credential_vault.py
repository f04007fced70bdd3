"""Credential vault for securing provider API keys at rest.

Blobs use AES-256-GCM with a key derived from the configured passphrase via
scrypt, and are stored as ``iv:authTag:ciphertext`` with each part hex encoded.
"""

import os
import sys
import logging
from functools import lru_cache
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from ai_gateway.config import settings
from ai_gateway.services.errors import AuthenticationFailure, MalformedBlob

logger = logging.getLogger(__name__)

KEY_LENGTH = 32
IV_LENGTH = 16
TAG_LENGTH = 16

# scrypt cost parameters (N=2^14, r=8, p=1)
SCRYPT_N = 2 ** 14
SCRYPT_R = 8
SCRYPT_P = 1


@lru_cache(maxsize=8)
def derive_key(passphrase: str, salt: str) -> bytes:
    """Derive the 256-bit vault key from a passphrase and salt.

    scrypt is deliberately slow, so the result is memoized per
    (passphrase, salt) for the lifetime of the process.
    """
    kdf = Scrypt(
        salt=salt.encode("utf-8"),
        length=KEY_LENGTH,
        n=SCRYPT_N,
        r=SCRYPT_R,
        p=SCRYPT_P,
    )
    return kdf.derive(passphrase.encode("utf-8"))


def mask_secret(secret: str) -> str:
    """Mask a secret for display - show only first 3 and last 4 characters."""
    if len(secret) > 10:
        return f"{secret[:3]}{'*' * 15}{secret[-4:]}"
    return "*" * len(secret)


class CredentialVault:
    """Service for encrypting and decrypting provider credentials."""

    def __init__(self, passphrase: Optional[str] = None, salt: Optional[str] = None):
        """Initialize the vault.

        Args:
            passphrase: Vault passphrase (defaults to settings.encryption_key).
            salt: Key-derivation salt (defaults to settings.encryption_salt).
        """
        self._passphrase = passphrase if passphrase is not None else settings.encryption_key
        self._salt = salt if salt is not None else settings.encryption_salt
        self._validate_passphrase()

    def _validate_passphrase(self) -> None:
        """Validate that the vault passphrase is configured.

        Raises:
            SystemExit: If the passphrase is missing.
        """
        if not self._passphrase:
            print("ERROR: ENCRYPTION_KEY environment variable is not set.", file=sys.stderr)
            print("The service cannot start without a vault passphrase.", file=sys.stderr)
            print("Generate one with: python -c \"import secrets; print(secrets.token_urlsafe(32))\"", file=sys.stderr)
            sys.exit(1)

    @property
    def _key(self) -> bytes:
        return derive_key(self._passphrase, self._salt)

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a credential.

        Args:
            plaintext: The credential to encrypt. Must not be empty.

        Returns:
            The blob ``iv:authTag:ciphertext``, hex encoded. A fresh IV is used
            on every call, so the same plaintext never yields the same blob.

        Raises:
            ValueError: If plaintext is empty.
        """
        if not plaintext:
            raise ValueError("Cannot encrypt an empty credential")

        iv = os.urandom(IV_LENGTH)
        sealed = AESGCM(self._key).encrypt(iv, plaintext.encode("utf-8"), None)
        ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]
        return f"{iv.hex()}:{tag.hex()}:{ciphertext.hex()}"

    def decrypt(self, blob: str) -> str:
        """Decrypt a credential blob.

        Args:
            blob: The string produced by ``encrypt``.

        Returns:
            The original plaintext.

        Raises:
            MalformedBlob: If the blob is not three non-empty hex segments.
            AuthenticationFailure: If the tag does not verify.
        """
        iv, tag, ciphertext = self._split_blob(blob)
        try:
            plaintext = AESGCM(self._key).decrypt(iv, ciphertext + tag, None)
        except InvalidTag:
            logger.error("Credential blob failed authentication")
            raise AuthenticationFailure("Credential could not be authenticated (tampered blob or wrong key)")
        return plaintext.decode("utf-8")

    @staticmethod
    def _split_blob(blob: str):
        parts = blob.split(":") if isinstance(blob, str) else []
        if len(parts) != 3 or not all(parts):
            raise MalformedBlob("Encrypted credential must have the form iv:authTag:ciphertext")

        try:
            iv, tag, ciphertext = (bytes.fromhex(part) for part in parts)
        except ValueError:
            raise MalformedBlob("Encrypted credential contains non-hex data")

        if len(iv) != IV_LENGTH or len(tag) != TAG_LENGTH:
            raise MalformedBlob(
                f"Encrypted credential has invalid IV or tag length "
                f"(iv={len(iv)}, tag={len(tag)})"
            )
        return iv, tag, ciphertext
