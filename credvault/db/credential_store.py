"""
Credential Store
================

Durable, label-keyed storage of encrypted credential records on SQLite.

Security Features:
- Passwords are sealed with AES-256-GCM before they reach SQL
- Every add draws a fresh random nonce from the cipher
- Stored records are returned still encrypted; ``reveal`` is the only
  plaintext exit and it verifies the authentication tag first
- All statements are parameterized (SQL injection safe)
- Each mutation is one statement, committed or rolled back as a unit
"""

from __future__ import annotations

import logging
import platform
import sqlite3
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import Final, Iterator, List, Optional

from credvault.core.crypto.aes_gcm import (
    AES_NONCE_SIZE,
    AES_TAG_SIZE,
    AesGcmCipher,
    decode_b64,
)
from credvault.core.exceptions import (
    CredentialNotFoundError,
    DuplicateLabelError,
    EncodingError,
    StorageError,
)
from credvault.utils.validators import (
    validate_label,
    validate_notes,
    validate_secret,
    validate_username,
)

# Columns every interoperable store must carry
REQUIRED_COLUMNS: Final[frozenset[str]] = frozenset({
    "id", "label", "username", "nonce", "ciphertext", "notes",
})


@dataclass(frozen=True, slots=True)
class CredentialRecord:
    """
    One stored credential.

    ``nonce`` and ``ciphertext`` are base64 text exactly as persisted; the
    password is never held here in the clear. ``id`` is None for records that
    have not been stored yet (e.g. decoded from an export file).
    """

    label: str
    username: str
    nonce: str
    ciphertext: str
    notes: Optional[str] = None
    id: Optional[int] = None

    def __repr__(self) -> str:
        """Safe representation without the encrypted payload."""
        return (
            f"CredentialRecord(id={self.id!r}, label={self.label!r}, "
            f"username={self.username!r})"
        )


class CredentialStore:
    """
    Encrypted credential storage with SQLite backend.

    One connection is opened per store and held until ``close()``.

    Usage:
        key = load_or_create_key(key_path)

        with CredentialStore.open(db_path) as store:
            store.add("github", "alice", "secret123", key=key)

            record = store.get("github")          # still encrypted
            password = store.reveal("github", key=key)

            store.delete("github")

    Label uniqueness:
        With ``unique_labels=True`` (default) ``add`` rejects a label that is
        already stored. With ``unique_labels=False`` duplicates are accepted,
        ``get`` returns the oldest match and ``delete`` removes all of them.
        The schema itself carries no UNIQUE constraint either way, so stores
        that already hold duplicate labels still open.
    """

    __slots__ = ("_db_path", "_conn", "_cipher", "_unique_labels", "_log")

    # SQL schema for the credentials table
    _SCHEMA: Final[str] = """
    CREATE TABLE IF NOT EXISTS credentials (
        id          INTEGER PRIMARY KEY AUTOINCREMENT,
        label       TEXT NOT NULL,
        username    TEXT NOT NULL,
        nonce       TEXT NOT NULL,
        ciphertext  TEXT NOT NULL,
        notes       TEXT
    );

    CREATE INDEX IF NOT EXISTS idx_credentials_label ON credentials(label);
    """

    _COLUMNS: Final[str] = "id, label, username, nonce, ciphertext, notes"

    def __init__(
        self,
        db_path: Path | str,
        unique_labels: bool = True,
        cipher: Optional[AesGcmCipher] = None,
    ) -> None:
        """
        Open the backing database file.

        Args:
            db_path: Path to SQLite database file (created if absent)
            unique_labels: Reject adds whose label is already stored
            cipher: Cipher engine (default: AesGcmCipher)

        Raises:
            StorageError: If the file cannot be opened
        """
        self._db_path = Path(db_path)
        self._cipher = cipher or AesGcmCipher()
        self._unique_labels = unique_labels
        self._log = logging.getLogger("credvault.store")
        self._conn = self._connect()

    @classmethod
    def open(cls, db_path: Path | str, unique_labels: bool = True) -> CredentialStore:
        """Open a store and make sure its schema exists."""
        store = cls(db_path, unique_labels=unique_labels)
        try:
            store.initialize()
        except StorageError:
            store.close()
            raise
        return store

    @property
    def path(self) -> Path:
        return self._db_path

    @property
    def unique_labels(self) -> bool:
        return self._unique_labels

    def _connect(self) -> sqlite3.Connection:
        """Open the database connection; a new file is created owner-only."""
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            if platform.system().lower() != "windows":
                self._db_path.touch(mode=stat.S_IRUSR | stat.S_IWUSR, exist_ok=True)  # 600
            conn = sqlite3.connect(self._db_path)
        except (OSError, sqlite3.Error) as e:
            raise StorageError(f"Cannot open store {self._db_path}: {e}") from e

        conn.row_factory = sqlite3.Row
        return conn

    def close(self) -> None:
        """Close the connection. Further operations raise StorageError."""
        self._conn.close()

    def __enter__(self) -> CredentialStore:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"CredentialStore(path={str(self._db_path)!r})"

    def initialize(self) -> None:
        """
        Ensure the credentials table exists.

        Safe to call on every startup; never touches existing rows.

        Raises:
            StorageError: If the file is not a database or the existing
                table lacks the expected columns
        """
        try:
            with self._conn:
                self._conn.executescript(self._SCHEMA)
            columns = {
                row["name"]
                for row in self._conn.execute("PRAGMA table_info(credentials)")
            }
        except sqlite3.Error as e:
            raise StorageError(f"Cannot initialize store {self._db_path}: {e}") from e

        missing = REQUIRED_COLUMNS - columns
        if missing:
            raise StorageError(
                f"Schema mismatch in {self._db_path}: missing columns "
                f"{', '.join(sorted(missing))}"
            )

    def add(
        self,
        label: str,
        username: str,
        password: str,
        notes: Optional[str] = None,
        *,
        key: bytes,
    ) -> CredentialRecord:
        """
        Encrypt a password and store it as a new record.

        Args:
            label: Unique, case-sensitive identifier
            username: Username (stored in clear)
            password: Secret to encrypt
            notes: Optional notes (stored in clear)
            key: 32-byte encryption key

        Returns:
            The stored record, still encrypted, with its assigned id

        Raises:
            ValidationError: If an input is rejected
            DuplicateLabelError: If unique labels are enforced and the label exists
            EncryptionError: If sealing fails
            StorageError: If the insert fails
        """
        validate_label(label)
        validate_username(username)
        validate_notes(notes)
        validate_secret(password)

        nonce_b64, sealed_b64 = self._cipher.seal_text(key, password)
        record = CredentialRecord(
            label=label,
            username=username,
            nonce=nonce_b64,
            ciphertext=sealed_b64,
            notes=notes,
        )
        return self._insert(record)

    def insert_record(self, record: CredentialRecord) -> CredentialRecord:
        """
        Store an already-encrypted record field-for-field.

        The nonce and ciphertext are copied verbatim; they are only checked
        for shape, never decrypted.

        Raises:
            ValidationError: If a text field is rejected
            EncodingError: If nonce or ciphertext is not well-formed base64
            DuplicateLabelError: If unique labels are enforced and the label exists
            StorageError: If the insert fails
        """
        self.check_record(record)
        return self._insert(record)

    @staticmethod
    def check_record(record: CredentialRecord) -> None:
        """
        Run the checks ``insert_record`` applies, without touching the database.

        Raises:
            ValidationError: If a text field is rejected
            EncodingError: If nonce or ciphertext is not well-formed base64
        """
        validate_label(record.label)
        validate_username(record.username)
        validate_notes(record.notes)

        if len(decode_b64(record.nonce, "nonce")) != AES_NONCE_SIZE:
            raise EncodingError(f"nonce must decode to {AES_NONCE_SIZE} bytes")
        if len(decode_b64(record.ciphertext, "ciphertext")) < AES_TAG_SIZE:
            raise EncodingError("ciphertext is shorter than the authentication tag")

    def _insert(self, record: CredentialRecord) -> CredentialRecord:
        params = (
            record.label,
            record.username,
            record.nonce,
            record.ciphertext,
            record.notes,
        )
        try:
            with self._conn:
                if self._unique_labels:
                    # Existence check and insert in a single statement
                    cursor = self._conn.execute("""
                        INSERT INTO credentials (label, username, nonce, ciphertext, notes)
                        SELECT ?, ?, ?, ?, ?
                        WHERE NOT EXISTS (SELECT 1 FROM credentials WHERE label = ?)
                    """, params + (record.label,))
                else:
                    cursor = self._conn.execute("""
                        INSERT INTO credentials (label, username, nonce, ciphertext, notes)
                        VALUES (?, ?, ?, ?, ?)
                    """, params)
        except sqlite3.Error as e:
            raise StorageError(f"Failed to store credential '{record.label}': {e}") from e

        if cursor.rowcount == 0:
            raise DuplicateLabelError(record.label)

        record_id = cursor.lastrowid
        self._log.debug("Stored credential id=%s label=%r", record_id, record.label)

        return CredentialRecord(
            label=record.label,
            username=record.username,
            nonce=record.nonce,
            ciphertext=record.ciphertext,
            notes=record.notes,
            id=record_id,
        )

    def get(self, label: str) -> Optional[CredentialRecord]:
        """
        Get the first record (in insertion order) with ``label``.

        Returns:
            The record as stored (still encrypted), or None
        """
        try:
            row = self._conn.execute(
                f"SELECT {self._COLUMNS} FROM credentials WHERE label = ? ORDER BY id LIMIT 1",
                (label,),
            ).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to read credential '{label}': {e}") from e

        if not row:
            return None

        return self._row_to_record(row)

    def require(self, label: str) -> CredentialRecord:
        """Like ``get`` but raises CredentialNotFoundError when absent."""
        record = self.get(label)
        if record is None:
            raise CredentialNotFoundError(label)
        return record

    def reveal(self, label: str, *, key: bytes) -> str:
        """
        Decrypt the password stored under ``label``.

        Raises:
            CredentialNotFoundError: If the label is absent
            EncodingError: If stored base64 is malformed or plaintext is not text
            AuthenticationError: If the tag does not verify (wrong key or corruption)
        """
        record = self.require(label)
        return self._cipher.open_text(key, record.nonce, record.ciphertext)

    def list(self) -> List[CredentialRecord]:
        """All records in insertion order. Not paginated."""
        return list(self.iter_records())

    def iter_records(self) -> Iterator[CredentialRecord]:
        """Yield records in insertion order, one row at a time."""
        try:
            cursor = self._conn.execute(
                f"SELECT {self._COLUMNS} FROM credentials ORDER BY id"
            )
            for row in cursor:
                yield self._row_to_record(row)
        except sqlite3.Error as e:
            raise StorageError(f"Failed to list credentials: {e}") from e

    def labels(self) -> List[str]:
        """Stored labels in insertion order."""
        try:
            rows = self._conn.execute(
                "SELECT label FROM credentials ORDER BY id"
            ).fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to list labels: {e}") from e
        return [row["label"] for row in rows]

    def count(self) -> int:
        try:
            row = self._conn.execute("SELECT COUNT(*) FROM credentials").fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to count credentials: {e}") from e
        return int(row[0])

    def delete(self, label: str) -> bool:
        """
        Permanently delete every record with ``label``.

        WARNING: This is irreversible.

        Returns:
            True if at least one row was removed
        """
        try:
            with self._conn:
                result = self._conn.execute(
                    "DELETE FROM credentials WHERE label = ?",
                    (label,),
                )
        except sqlite3.Error as e:
            raise StorageError(f"Failed to delete credential '{label}': {e}") from e

        if result.rowcount > 0:
            self._log.info("Deleted %d record(s) with label=%r", result.rowcount, label)
        return result.rowcount > 0

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> CredentialRecord:
        """Convert a database row to a CredentialRecord."""
        return CredentialRecord(
            id=row["id"],
            label=row["label"],
            username=row["username"],
            nonce=row["nonce"],
            ciphertext=row["ciphertext"],
            notes=row["notes"],
        )
