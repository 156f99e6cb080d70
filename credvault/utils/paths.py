"""
Path Utilities
==============

OS-aware path handling for the store, key and export files.
"""

from __future__ import annotations

from pathlib import Path


def expand_path(path: str | Path) -> Path:
    """Expand ``~`` and make the path absolute without resolving symlinks."""
    return Path(path).expanduser().absolute()


def same_file(a: Path, b: Path) -> bool:
    """True if both paths name the same file (after resolving symlinks)."""
    try:
        return a.resolve() == b.resolve()
    except (OSError, RuntimeError):
        return False
