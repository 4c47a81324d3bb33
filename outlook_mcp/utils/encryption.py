"""AES-256-GCM encryption of user identifiers for transport.

This module provides the identity cipher used to carry a user identifier
through URLs and the OAuth ``state`` parameter without exposing it. The
identifier is encrypted with AES-256-GCM under a key derived from an operator
secret with scrypt and a fixed salt, and serialized as ``iv_hex:ciphertext_hex``.

Security considerations:
- Keys are 256 bits (32 bytes), derived once per cipher instance
- IVs are 128 bits (16 bytes) and freshly random for every encryption
- The GCM tag is appended to the ciphertext, so any tampering fails decryption
- Only the identifier is protected; this is not a token-at-rest control
"""

from __future__ import annotations

import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from outlook_mcp.utils.errors import ConfigurationError, InvalidEncryptedIdentity

# Constants
KEY_SIZE_BITS = 256
KEY_SIZE_BYTES = KEY_SIZE_BITS // 8  # 32 bytes
IV_SIZE_BYTES = 16
SEPARATOR = ":"

# scrypt cost parameters
SCRYPT_N = 2**14
SCRYPT_R = 8
SCRYPT_P = 1

DEFAULT_SALT = "outlook-mcp-identity"


def derive_key(secret: str, salt: str = DEFAULT_SALT) -> bytes:
    """Derive a 256-bit key from an operator secret.

    The derivation is a pure function of ``(secret, salt)``, so a cipher built
    from the same configuration always decrypts what another one encrypted.

    Args:
        secret: Operator-supplied secret (ENCRYPTION_KEY).
        salt: Fixed salt (ENCRYPTION_SALT).

    Returns:
        A 32-byte key suitable for AES-256-GCM.

    Raises:
        ConfigurationError: If the secret is empty.

    Example:
        >>> key = derive_key("operator secret")
        >>> len(key)
        32
    """
    if not secret:
        raise ConfigurationError(
            "Identity encryption secret is not configured",
            details={"hint": "Set ENCRYPTION_KEY to a long random string"},
        )

    kdf = Scrypt(
        salt=salt.encode("utf-8"),
        length=KEY_SIZE_BYTES,
        n=SCRYPT_N,
        r=SCRYPT_R,
        p=SCRYPT_P,
    )
    return kdf.derive(secret.encode("utf-8"))


class IdentityCipher:
    """Encrypts and decrypts opaque user identifiers.

    Attributes:
        _aesgcm: AES-256-GCM primitive bound to the derived key.

    Example:
        >>> cipher = IdentityCipher("operator secret")
        >>> token = cipher.encrypt("alice")
        >>> cipher.decrypt(token)
        'alice'
    """

    def __init__(self, secret: str, salt: str = DEFAULT_SALT) -> None:
        """Derive the key and prepare the cipher.

        Args:
            secret: Operator-supplied secret.
            salt: Fixed salt for key derivation.

        Raises:
            ConfigurationError: If the secret is empty.
        """
        self._aesgcm = AESGCM(derive_key(secret, salt))

    def encrypt(self, identity: str) -> str:
        """Encrypt an identity with a fresh random IV.

        Args:
            identity: The user identifier to protect.

        Returns:
            ``iv_hex:ciphertext_hex``.
        """
        return self.encrypt_with_iv(identity, os.urandom(IV_SIZE_BYTES))

    def encrypt_with_iv(self, identity: str, iv: bytes) -> str:
        """Encrypt an identity under a caller-supplied IV.

        Deterministic for a given key, IV and plaintext. Callers other than
        :meth:`encrypt` should only use this in tests.

        Args:
            identity: The user identifier to protect.
            iv: A 16-byte initialization vector.

        Returns:
            ``iv_hex:ciphertext_hex``.

        Raises:
            InvalidEncryptedIdentity: If the IV has the wrong length.
        """
        _validate_iv(iv)
        ciphertext = self._aesgcm.encrypt(iv, identity.encode("utf-8"), None)
        return f"{iv.hex()}{SEPARATOR}{ciphertext.hex()}"

    def decrypt(self, value: str) -> str:
        """Decrypt an ``iv_hex:ciphertext_hex`` value.

        Args:
            value: Encrypted identity as produced by :meth:`encrypt`.

        Returns:
            The original identity string.

        Raises:
            InvalidEncryptedIdentity: If the value is malformed, the IV has
                the wrong length, or authenticated decryption fails.
        """
        parts = value.split(SEPARATOR)
        if len(parts) != 2 or not all(parts):
            raise InvalidEncryptedIdentity(
                "Encrypted identity must have the form iv:ciphertext",
                details={"parts": len(parts)},
            )

        try:
            iv = bytes.fromhex(parts[0])
            ciphertext = bytes.fromhex(parts[1])
        except ValueError as e:
            raise InvalidEncryptedIdentity(
                "Encrypted identity contains invalid hex encoding"
            ) from e

        _validate_iv(iv)

        try:
            plaintext = self._aesgcm.decrypt(iv, ciphertext, None)
            return plaintext.decode("utf-8")
        except (InvalidTag, UnicodeDecodeError) as e:
            raise InvalidEncryptedIdentity(
                "Failed to decrypt identity - invalid key or tampered value",
                details={"error_type": type(e).__name__},
            ) from e

    def is_encrypted(self, value: str) -> bool:
        """Check whether ``value`` decrypts under this cipher."""
        try:
            self.decrypt(value)
        except InvalidEncryptedIdentity:
            return False
        return True


def _validate_iv(iv: bytes) -> None:
    """Validate that the IV is the expected 16 bytes.

    Args:
        iv: The initialization vector to validate.

    Raises:
        InvalidEncryptedIdentity: If the IV is not exactly 16 bytes.
    """
    if len(iv) != IV_SIZE_BYTES:
        raise InvalidEncryptedIdentity(
            f"Invalid IV length: expected {IV_SIZE_BYTES} bytes, got {len(iv)}",
            details={"expected_length": IV_SIZE_BYTES, "actual_length": len(iv)},
        )


__all__ = [
    "IdentityCipher",
    "derive_key",
    "DEFAULT_SALT",
    "IV_SIZE_BYTES",
]
