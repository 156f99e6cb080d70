"""
AES-256-GCM Authenticated Encryption
====================================

Seals a single credential secret under a caller-supplied 256-bit key.

Security Properties:
    - 256-bit key (128-bit security level)
    - 96-bit nonce (NIST recommended), fresh from the OS CSPRNG per call
    - 128-bit authentication tag appended to the ciphertext
    - Tag is verified before any plaintext is returned

NIST SP 800-38D Compliance:
    - GCM mode with 96-bit IV
    - Unique nonce for each encryption under same key

WARNING:
    - Never reuse (key, nonce) pairs; nonces are never caller-supplied here
    - AuthenticationError means corruption or the wrong key. It must never be
      turned into a best-effort plaintext.
"""

from __future__ import annotations

import base64
import binascii
import secrets
from dataclasses import dataclass
from typing import Final, Tuple

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from credvault.core.exceptions import (
    AuthenticationError,
    EncodingError,
    EncryptionError,
)

# Constants following NIST recommendations
AES_KEY_SIZE: Final[int] = 32  # 256 bits
AES_NONCE_SIZE: Final[int] = 12  # 96 bits (NIST recommended for GCM)
AES_TAG_SIZE: Final[int] = 16  # 128 bits


@dataclass(frozen=True, slots=True)
class SealedSecret:
    """
    Immutable result of sealing one secret.

    Attributes:
        nonce: Unique nonce used for this encryption (stored with the ciphertext)
        sealed: Encrypted payload with appended authentication tag
    """

    nonce: bytes
    sealed: bytes

    def __iter__(self):
        # Allows ``decrypt(key, *encrypt(key, text))``
        yield self.nonce
        yield self.sealed

    def __repr__(self) -> str:
        """Safe representation without exposing payload."""
        return f"SealedSecret(nonce_len={len(self.nonce)}, sealed_len={len(self.sealed)})"


def encode_b64(data: bytes) -> str:
    """Standard base64 alphabet, no line wrapping."""
    return base64.b64encode(data).decode("ascii")


def decode_b64(text: str, field_name: str = "value") -> bytes:
    """
    Strictly decode standard base64.

    Raises:
        EncodingError: If text is not valid base64
    """
    if not isinstance(text, str):
        raise EncodingError(f"{field_name} must be base64 text")
    try:
        return base64.b64decode(text.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as e:
        raise EncodingError(f"{field_name} is not valid base64") from e


def _check_key(key: bytes) -> None:
    if not isinstance(key, (bytes, bytearray)) or len(key) != AES_KEY_SIZE:
        raise ValueError(f"Key must be exactly {AES_KEY_SIZE} bytes")


class AesGcmCipher:
    """
    AES-256-GCM Authenticated Encryption with Associated Data (AEAD).

    Stateless: every call is a pure function of its arguments plus fresh
    entropy for the nonce.

    Usage:
        cipher = AesGcmCipher()
        key = cipher.generate_key()

        result = cipher.encrypt(key, "s3cret")
        plaintext = cipher.decrypt(key, result.nonce, result.sealed)

    Security Notes:
        - The key is owned by the caller; nothing here stores it
        - Decryption raises AuthenticationError before any output on tampering
    """

    __slots__ = ()

    @staticmethod
    def generate_key() -> bytes:
        """
        Generate a cryptographically secure random AES-256 key.

        Returns:
            32 bytes of cryptographic random data
        """
        return secrets.token_bytes(AES_KEY_SIZE)

    @staticmethod
    def generate_nonce() -> bytes:
        """
        Generate a cryptographically secure random nonce.

        Returns:
            12 bytes of cryptographic random data

        Security:
            96-bit nonces with random generation have negligible collision
            probability for up to 2^32 encryptions under same key.
        """
        return secrets.token_bytes(AES_NONCE_SIZE)

    def encrypt(self, key: bytes, plaintext: str) -> SealedSecret:
        """
        Encrypt a text secret using AES-256-GCM.

        Args:
            key: 32-byte encryption key
            plaintext: Text to encrypt (can be empty)

        Returns:
            SealedSecret with the random nonce and ciphertext+tag

        Raises:
            ValueError: If key is the wrong size or plaintext is not text
            EncryptionError: If the underlying library fails
        """
        _check_key(key)
        if not isinstance(plaintext, str):
            raise ValueError("Plaintext must be a string")

        try:
            data = plaintext.encode("utf-8")
        except UnicodeEncodeError as e:
            # Lone surrogates cannot be represented as UTF-8
            raise EncodingError("Plaintext is not encodable as UTF-8") from e

        try:
            nonce = self.generate_nonce()
            sealed = AESGCM(bytes(key)).encrypt(nonce, data, None)
        except Exception as e:
            raise EncryptionError(f"Encryption failed: {e}") from e

        return SealedSecret(nonce=nonce, sealed=sealed)

    def decrypt(self, key: bytes, nonce: bytes, sealed: bytes) -> str:
        """
        Decrypt and verify a sealed secret.

        Args:
            key: The 32-byte encryption key
            nonce: The nonce used during encryption
            sealed: Encrypted data with authentication tag

        Returns:
            Decrypted plaintext

        Raises:
            ValueError: If key is the wrong size
            AuthenticationError: If the tag does not verify, or the nonce or
                sealed input is too malformed to be authenticated at all
            EncodingError: If the verified bytes are not valid UTF-8
        """
        _check_key(key)
        if len(nonce) != AES_NONCE_SIZE:
            raise AuthenticationError(
                f"Nonce must be exactly {AES_NONCE_SIZE} bytes, got {len(nonce)}"
            )
        if len(sealed) < AES_TAG_SIZE:
            raise AuthenticationError("Ciphertext too short (missing authentication tag)")

        try:
            data = AESGCM(bytes(key)).decrypt(bytes(nonce), bytes(sealed), None)
        except InvalidTag as e:
            raise AuthenticationError(
                "Authentication failed: data is corrupted or the key is wrong"
            ) from e

        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise EncodingError("Decrypted data is not valid UTF-8 text") from e

    def seal_text(self, key: bytes, plaintext: str) -> Tuple[str, str]:
        """
        Encrypt and encode for a text-based store.

        Returns:
            (nonce_b64, sealed_b64)
        """
        result = self.encrypt(key, plaintext)
        return encode_b64(result.nonce), encode_b64(result.sealed)

    def open_text(self, key: bytes, nonce_b64: str, sealed_b64: str) -> str:
        """Decode the stored base64 fields and decrypt them."""
        nonce = decode_b64(nonce_b64, "nonce")
        sealed = decode_b64(sealed_b64, "ciphertext")
        return self.decrypt(key, nonce, sealed)


_default_cipher: Final[AesGcmCipher] = AesGcmCipher()


def encrypt(key: bytes, plaintext: str) -> SealedSecret:
    """Seal ``plaintext`` under ``key`` with a fresh random nonce."""
    return _default_cipher.encrypt(key, plaintext)


def decrypt(key: bytes, nonce: bytes, sealed: bytes) -> str:
    """Verify and open a sealed secret."""
    return _default_cipher.decrypt(key, nonce, sealed)
