"""
Error Taxonomy
==============

Every failure the core can surface is a distinct, inspectable exception.

The core never logs-and-continues, never substitutes a default plaintext
and never retries: corruption is not transient. Presentation belongs to the
caller (see ``credvault.cli``).
"""

from __future__ import annotations


class CredVaultError(Exception):
    """Base class for all credvault errors."""
    pass


class EncryptionError(CredVaultError):
    """Raised when the cipher or the random source fails while sealing."""
    pass


class AuthenticationError(CredVaultError):
    """
    Raised when an authentication tag does not verify.

    Means wrong key, corrupted ciphertext or corrupted nonce. Never
    downgrade this to a decoded-but-wrong plaintext.
    """
    pass


class EncodingError(CredVaultError):
    """Raised when decrypted bytes are not text or stored base64 is malformed."""
    pass


class InterchangeError(EncodingError):
    """Raised when an export file does not match the record schema."""
    pass


class StorageError(CredVaultError):
    """Raised on backing-file, schema or statement failures."""
    pass


class CredentialNotFoundError(CredVaultError):
    """Raised when a label is absent."""

    def __init__(self, label: str) -> None:
        self.label = label
        super().__init__(f"Credential '{label}' not found")


class DuplicateLabelError(CredVaultError):
    """Raised when adding a record whose label is already in use."""

    def __init__(self, label: str) -> None:
        self.label = label
        super().__init__(f"Credential '{label}' already exists")


class KeyFileError(CredVaultError):
    """Raised when the key file is missing, unreadable or malformed."""
    pass


class ValidationError(CredVaultError, ValueError):
    """Raised when an input value is rejected."""
    pass
