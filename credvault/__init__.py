"""
credvault - Local, Offline Credential Manager
=============================================

Stores labeled username/password/notes records in a SQLite file, sealing
each password with AES-256-GCM.

Security Notice:
- No secrets are logged
- Tampering or corruption is always reported, never decoded
- The key is passed explicitly; nothing holds it at module level
"""

from credvault.core.config import VaultConfig
from credvault.core.exceptions import (
    AuthenticationError,
    CredentialNotFoundError,
    CredVaultError,
    DuplicateLabelError,
    EncodingError,
    EncryptionError,
    StorageError,
)
from credvault.db.credential_store import CredentialRecord, CredentialStore

__version__ = "0.1.0"

__all__ = [
    "CredentialRecord",
    "CredentialStore",
    "VaultConfig",
    "CredVaultError",
    "EncryptionError",
    "AuthenticationError",
    "EncodingError",
    "StorageError",
    "CredentialNotFoundError",
    "DuplicateLabelError",
    "__version__",
]
