"""
Database module - Data persistence and storage components.

Security Considerations:
- Passwords are encrypted before they reach the database
- No plaintext secrets in database
"""

from credvault.db.credential_store import CredentialRecord, CredentialStore

__all__ = ["CredentialRecord", "CredentialStore"]
