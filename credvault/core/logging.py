"""
Secure Logging Module
=====================

Provides security-aware logging with secret filtering.

Security Features:
- Automatic secret/sensitive data filtering
- Rotating log files with size limits
- No plaintext, nonce or ciphertext in log output
"""

from __future__ import annotations

import logging
import re
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Final, Optional, Pattern

PACKAGE_LOGGER: Final[str] = "credvault"

# Patterns for sensitive data detection
_SENSITIVE_PATTERNS: Final[list[tuple[str, Pattern[str]]]] = [
    ("password", re.compile(r'(?i)(password|passwd|pwd)\s*[=:]\s*["\']?[^\s"\']+["\']?')),
    ("token", re.compile(r'(?i)(token|bearer)\s*[=:]\s*["\']?[^\s"\']+["\']?')),
    ("secret", re.compile(r'(?i)(secret|private[_-]?key)\s*[=:]\s*["\']?[^\s"\']+["\']?')),
    ("nonce", re.compile(r'(?i)nonce\s*[=:]\s*["\']?[^\s"\']+["\']?')),
    ("ciphertext", re.compile(r'(?i)ciphertext\s*[=:]\s*["\']?[^\s"\']+["\']?')),
    # Base64 encoded blobs (sealed passwords, key material)
    ("base64_secret", re.compile(r'[A-Za-z0-9+/]{40,}={0,2}')),
    # Hex encoded secrets (longer than 32 chars)
    ("hex_secret", re.compile(r'(?i)(?:0x)?[a-f0-9]{32,}')),
]

_REDACTED_TEXT: Final[str] = "[REDACTED]"

_CONSOLE_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_FILE_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(funcName)s:%(lineno)d | %(message)s"


class SecureLogFilter(logging.Filter):
    """
    Log filter that removes sensitive information from log messages.

    Scans log messages for patterns that might contain sensitive data
    (passwords, tokens, encoded payloads) and replaces them with [REDACTED].
    """

    def __init__(self, name: str = "", additional_patterns: Optional[list[Pattern[str]]] = None) -> None:
        """
        Initialize the secure log filter.

        Args:
            name: Logger name filter (empty string matches all)
            additional_patterns: Additional regex patterns to redact
        """
        super().__init__(name)
        self._additional_patterns = additional_patterns or []

    def filter(self, record: logging.LogRecord) -> bool:
        """
        Filter log record by redacting sensitive information.

        Returns:
            Always True (record is always kept, just sanitized)
        """
        if record.msg and isinstance(record.msg, str):
            record.msg = self._sanitize(record.msg)

        if record.args:
            if isinstance(record.args, dict):
                record.args = {k: self._sanitize(v) if isinstance(v, str) else v
                              for k, v in record.args.items()}
            elif isinstance(record.args, tuple):
                record.args = tuple(
                    self._sanitize(arg) if isinstance(arg, str) else arg
                    for arg in record.args
                )

        return True

    def _sanitize(self, text: str) -> str:
        """Remove sensitive data from text."""
        result = text

        for name, pattern in _SENSITIVE_PATTERNS:
            result = pattern.sub(f"{name}={_REDACTED_TEXT}", result)

        for pattern in self._additional_patterns:
            result = pattern.sub(_REDACTED_TEXT, result)

        return result


class SecureRotatingFileHandler(RotatingFileHandler):
    """Rotating file handler that creates its directory owner-only."""

    def __init__(
        self,
        filename: str | Path,
        mode: str = "a",
        maxBytes: int = 10 * 1024 * 1024,  # 10 MB default
        backupCount: int = 5,
        encoding: str = "utf-8",
    ) -> None:
        log_path = Path(filename).resolve()
        log_path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)

        super().__init__(
            str(log_path),
            mode=mode,
            maxBytes=maxBytes,
            backupCount=backupCount,
            encoding=encoding,
        )


def configure_logging(
    log_dir: Optional[Path] = None,
    level: str = "WARNING",
    enable_console: bool = True,
    enable_file: bool = False,
    max_file_size: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> logging.Logger:
    """
    Configure the package logger with secure defaults.

    Should be called once at process startup; library code only ever calls
    ``logging.getLogger("credvault.<area>")``. Calling again replaces the
    previously installed handlers.

    Args:
        log_dir: Directory for log files
        level: Logging level
        enable_console: Whether to output to stderr
        enable_file: Whether to output to a rotating file in ``log_dir``
        max_file_size: Maximum log file size before rotation
        backup_count: Number of backup files to keep

    Returns:
        The configured ``credvault`` logger
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(getattr(logging, level.upper()))

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    secure_filter = SecureLogFilter()

    if enable_console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.DEBUG)
        console_handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT, datefmt="%H:%M:%S"))
        console_handler.addFilter(secure_filter)
        logger.addHandler(console_handler)

    if enable_file and log_dir:
        file_handler = SecureRotatingFileHandler(
            filename=log_dir / "credvault.log",
            maxBytes=max_file_size,
            backupCount=backup_count,
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        file_handler.addFilter(secure_filter)
        logger.addHandler(file_handler)

    # Prevent propagation to root logger
    logger.propagate = False

    return logger
