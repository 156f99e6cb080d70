"""
Key File Handling
=================

Loads the 256-bit store key from a local key file.

The key is always handed to the cipher and the store explicitly; this module
only decides where the bytes come from. The file holds the base64 encoding of
32 random bytes and is created owner-only on first use.

WARNING:
    - Losing the key file makes every stored password unrecoverable
    - Anyone who can read the key file can decrypt the store
"""

from __future__ import annotations

import binascii
import base64
import logging
import os
import platform
import stat
from pathlib import Path
from typing import Final

from credvault.core.crypto.aes_gcm import AES_KEY_SIZE, AesGcmCipher
from credvault.core.exceptions import KeyFileError

_log = logging.getLogger("credvault.keyfile")

_MAX_KEY_FILE_SIZE: Final[int] = 1024


def _restrict_permissions(path: Path, mode: int) -> None:
    if platform.system().lower() != "windows":
        path.chmod(mode)


def _ensure_private_dir(directory: Path) -> None:
    """Create ``directory`` owner-only (700); an existing directory is left as is."""
    if directory.is_dir():
        return
    directory.mkdir(mode=stat.S_IRWXU, parents=True, exist_ok=True)
    _restrict_permissions(directory, stat.S_IRWXU)  # 700


def load_key(path: Path | str) -> bytes:
    """
    Read and validate a key file.

    Args:
        path: Path to the key file

    Returns:
        The 32-byte key

    Raises:
        KeyFileError: If the file is missing, unreadable or malformed
    """
    key_path = Path(path)
    try:
        if key_path.stat().st_size > _MAX_KEY_FILE_SIZE:
            raise KeyFileError(f"Key file is too large: {key_path}")
        raw = key_path.read_bytes()
    except FileNotFoundError as e:
        raise KeyFileError(f"Key file not found: {key_path}") from e
    except OSError as e:
        raise KeyFileError(f"Cannot read key file {key_path}: {e}") from e

    try:
        key = base64.b64decode(raw.strip(), validate=True)
    except binascii.Error as e:
        raise KeyFileError(f"Key file is not valid base64: {key_path}") from e

    if len(key) != AES_KEY_SIZE:
        raise KeyFileError(
            f"Key file must hold {AES_KEY_SIZE} bytes, found {len(key)}: {key_path}"
        )

    return key


def create_key_file(path: Path | str) -> bytes:
    """
    Generate a new random key and write it to ``path``.

    The file is created exclusively, so an existing key is never overwritten.

    Raises:
        KeyFileError: If the file already exists or cannot be written
    """
    key_path = Path(path)
    key = AesGcmCipher.generate_key()

    try:
        _ensure_private_dir(key_path.parent)
        fd = os.open(key_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    except FileExistsError as e:
        raise KeyFileError(f"Key file already exists: {key_path}") from e
    except OSError as e:
        raise KeyFileError(f"Cannot create key file {key_path}: {e}") from e

    with os.fdopen(fd, "wb") as f:
        f.write(base64.b64encode(key) + b"\n")
        f.flush()
        os.fsync(f.fileno())

    _restrict_permissions(key_path, stat.S_IRUSR | stat.S_IWUSR)  # 600
    _log.info("Created new key file at %s", key_path)
    return key


def load_or_create_key(path: Path | str) -> bytes:
    """Load the key at ``path``, creating a fresh one when the file is absent."""
    key_path = Path(path)
    if not key_path.exists():
        return create_key_file(key_path)
    return load_key(key_path)
