"""
Encrypted Record Interchange
============================

Export and import of stored credentials as a schema-checked JSON file.

This is a pure encrypted-record interchange, not a plaintext backup:
nonce and ciphertext are copied verbatim and are never decrypted or
re-encrypted in transit. Importing into a store therefore only makes sense
with the key the records were sealed under.

File Format:
    {
        "format": "credvault-export",
        "version": 1,
        "records": [
            {"label": ..., "username": ..., "nonce": ...,
             "ciphertext": ..., "notes": ... | null},
            ...
        ]
    }

Decoding rejects unknown or missing fields instead of defaulting them.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final, Iterable, List

from credvault.core.crypto.aes_gcm import AES_NONCE_SIZE, AES_TAG_SIZE, decode_b64
from credvault.core.exceptions import (
    DuplicateLabelError,
    EncodingError,
    InterchangeError,
)
from credvault.db.credential_store import CredentialRecord, CredentialStore

# File format constants
EXPORT_FORMAT: Final[str] = "credvault-export"
EXPORT_VERSION: Final[int] = 1
MAX_EXPORT_SIZE: Final[int] = 64 * 1024 * 1024  # 64 MB

_DOCUMENT_FIELDS: Final[frozenset[str]] = frozenset({"format", "version", "records"})
_RECORD_FIELDS: Final[frozenset[str]] = frozenset({
    "label", "username", "nonce", "ciphertext", "notes",
})

_log = logging.getLogger("credvault.interchange")


@dataclass(frozen=True, slots=True)
class ImportSummary:
    """Outcome of an import."""

    imported: int
    skipped: int


def encode_record(record: CredentialRecord) -> dict[str, Any]:
    """Field-for-field mirror of a record; the surrogate id is not exported."""
    return {
        "label": record.label,
        "username": record.username,
        "nonce": record.nonce,
        "ciphertext": record.ciphertext,
        "notes": record.notes,
    }


def decode_record(data: Any, index: int = 0) -> CredentialRecord:
    """
    Decode one record, enforcing the exact field set and types.

    Raises:
        InterchangeError: If the record does not match the schema
    """
    where = f"record {index}"
    if not isinstance(data, dict):
        raise InterchangeError(f"{where}: expected an object")

    keys = set(data)
    unknown = keys - _RECORD_FIELDS
    missing = _RECORD_FIELDS - keys
    if unknown:
        raise InterchangeError(f"{where}: unknown fields {', '.join(sorted(unknown))}")
    if missing:
        raise InterchangeError(f"{where}: missing fields {', '.join(sorted(missing))}")

    for name in ("label", "username", "nonce", "ciphertext"):
        if not isinstance(data[name], str):
            raise InterchangeError(f"{where}: {name} must be a string")
    if data["notes"] is not None and not isinstance(data["notes"], str):
        raise InterchangeError(f"{where}: notes must be a string or null")
    if not data["label"]:
        raise InterchangeError(f"{where}: label cannot be empty")

    try:
        nonce = decode_b64(data["nonce"], "nonce")
        sealed = decode_b64(data["ciphertext"], "ciphertext")
    except EncodingError as e:
        raise InterchangeError(f"{where}: {e}") from e
    if len(nonce) != AES_NONCE_SIZE:
        raise InterchangeError(f"{where}: nonce must decode to {AES_NONCE_SIZE} bytes")
    if len(sealed) < AES_TAG_SIZE:
        raise InterchangeError(f"{where}: ciphertext is shorter than the authentication tag")

    return CredentialRecord(
        label=data["label"],
        username=data["username"],
        nonce=data["nonce"],
        ciphertext=data["ciphertext"],
        notes=data["notes"],
    )


def encode_records(records: Iterable[CredentialRecord]) -> str:
    """Serialize records to the export document."""
    document = {
        "format": EXPORT_FORMAT,
        "version": EXPORT_VERSION,
        "records": [encode_record(r) for r in records],
    }
    return json.dumps(document, indent=2, ensure_ascii=False)


def decode_records(text: str) -> List[CredentialRecord]:
    """
    Parse and validate an export document.

    Raises:
        InterchangeError: If the document is not valid JSON or fails the schema
    """
    try:
        document = json.loads(text)
    except json.JSONDecodeError as e:
        raise InterchangeError(f"Export file is not valid JSON: {e}") from e

    if not isinstance(document, dict):
        raise InterchangeError("Export document must be an object")

    keys = set(document)
    if keys != _DOCUMENT_FIELDS:
        unknown = keys - _DOCUMENT_FIELDS
        missing = _DOCUMENT_FIELDS - keys
        detail = []
        if unknown:
            detail.append(f"unknown fields {', '.join(sorted(unknown))}")
        if missing:
            detail.append(f"missing fields {', '.join(sorted(missing))}")
        raise InterchangeError(f"Export document has {'; '.join(detail)}")

    if document["format"] != EXPORT_FORMAT:
        raise InterchangeError(f"Unsupported export format: {document['format']!r}")
    # bool is an int subclass; reject it explicitly
    if isinstance(document["version"], bool) or document["version"] != EXPORT_VERSION:
        raise InterchangeError(f"Unsupported export version: {document['version']!r}")
    if not isinstance(document["records"], list):
        raise InterchangeError("records must be a list")

    return [decode_record(item, index) for index, item in enumerate(document["records"])]


def _write_atomic(path: Path, content: str) -> None:
    """Write via a temp file in the same directory, then replace."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_name, 0o600)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.remove(tmp_name)
        raise


def export_store(store: CredentialStore, path: Path | str) -> int:
    """
    Write every record of ``store`` to ``path``.

    Returns:
        Number of records exported
    """
    records = store.list()
    _write_atomic(Path(path), encode_records(records))
    _log.info("Exported %d record(s) to %s", len(records), path)
    return len(records)


def read_export(path: Path | str) -> List[CredentialRecord]:
    """
    Read and validate an export file.

    Raises:
        InterchangeError: If the file is too large, not UTF-8, or fails the schema
        OSError: If the file cannot be read
    """
    source = Path(path)
    if source.stat().st_size > MAX_EXPORT_SIZE:
        raise InterchangeError(f"Export file too large (max {MAX_EXPORT_SIZE} bytes)")
    try:
        text = source.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise InterchangeError("Export file is not valid UTF-8") from e
    return decode_records(text)


def import_records(
    store: CredentialStore,
    records: List[CredentialRecord],
    skip_existing: bool = False,
) -> ImportSummary:
    """
    Insert decoded records into ``store`` in file order.

    Every record is checked before anything is written, so a rejected
    record leaves the store unchanged. When the store enforces unique
    labels, conflicts are detected up front as well: either every
    conflicting record is skipped (``skip_existing``) or DuplicateLabelError
    is raised.

    Raises:
        ValidationError: If a record has a rejected text field
        EncodingError: If a record's nonce or ciphertext is malformed
        DuplicateLabelError: On a label conflict without ``skip_existing``
    """
    for record in records:
        store.check_record(record)

    to_insert = records
    skipped = 0

    if store.unique_labels:
        seen = set(store.labels())
        to_insert = []
        for record in records:
            if record.label in seen:
                if not skip_existing:
                    raise DuplicateLabelError(record.label)
                skipped += 1
                continue
            seen.add(record.label)
            to_insert.append(record)

    for record in to_insert:
        store.insert_record(record)

    _log.info("Imported %d record(s), skipped %d", len(to_insert), skipped)
    return ImportSummary(imported=len(to_insert), skipped=skipped)


def import_store(
    store: CredentialStore,
    path: Path | str,
    skip_existing: bool = False,
) -> ImportSummary:
    """Read ``path`` and import its records into ``store``."""
    return import_records(store, read_export(path), skip_existing=skip_existing)
