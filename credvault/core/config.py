"""
Configuration Module
====================

Provides immutable, environment-aware configuration with safe defaults.

Security Features:
- Immutable configuration after initialization
- Environment variable override support
- No secrets in default values, and secret-like keys are never read from env
- OS-aware path handling
"""

from __future__ import annotations

import os
import platform
import stat
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Final, Optional

from credvault.core.exceptions import ValidationError

APP_DIR_NAME: Final[str] = "credvault"

# Security Constants
_SENSITIVE_KEYS: Final[frozenset[str]] = frozenset({
    "password", "secret", "token", "api_key", "private", "credential", "auth",
})

_TRUE_VALUES: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES: Final[frozenset[str]] = frozenset({"0", "false", "no", "off"})


def _is_sensitive_key(key: str) -> bool:
    """Check if a configuration key might contain sensitive data."""
    key_lower = key.lower()
    return any(sensitive in key_lower for sensitive in _SENSITIVE_KEYS)


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValidationError(f"Invalid boolean for {name}: {value!r}")


def _get_default_data_dir() -> Path:
    """Get OS-appropriate default data directory."""
    system = platform.system().lower()

    if system == "windows":
        base = Path(os.environ.get("LOCALAPPDATA", Path.home() / "AppData" / "Local"))
    elif system == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:  # Linux and others
        base = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share"))

    return base / APP_DIR_NAME


def _get_default_log_dir() -> Path:
    """Get OS-appropriate default log directory."""
    system = platform.system().lower()

    if system == "windows":
        base = Path(os.environ.get("LOCALAPPDATA", Path.home() / "AppData" / "Local"))
        return base / APP_DIR_NAME / "Logs"
    elif system == "darwin":
        return Path.home() / "Library" / "Logs" / APP_DIR_NAME
    else:  # Linux and others
        return Path(os.environ.get("XDG_STATE_HOME", Path.home() / ".local" / "state")) / APP_DIR_NAME / "logs"


@dataclass(frozen=True, slots=True)
class PathConfig:
    """
    Immutable path configuration with OS-aware defaults.

    ``store_path`` and ``key_file`` default to files inside ``data_dir``.
    """

    data_dir: Path = field(default_factory=_get_default_data_dir)
    log_dir: Path = field(default_factory=_get_default_log_dir)
    store_path: Optional[Path] = None
    key_file: Optional[Path] = None

    def __post_init__(self) -> None:
        """Validate paths after initialization."""
        for field_name in ["data_dir", "log_dir"]:
            path = getattr(self, field_name)
            if not path.is_absolute():
                raise ValidationError(f"{field_name} must be an absolute path: {path}")

    @property
    def resolved_store_path(self) -> Path:
        return self.store_path or self.data_dir / "store.db"

    @property
    def resolved_key_file(self) -> Path:
        return self.key_file or self.data_dir / "store.key"


@dataclass(frozen=True, slots=True)
class StoreConfig:
    """Immutable credential store settings."""

    # Reject a new record whose label is already stored
    unique_labels: bool = True


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """Immutable logging configuration."""

    level: str = "WARNING"
    max_file_size_bytes: int = 10 * 1024 * 1024  # 10 MB
    backup_count: int = 5
    enable_console: bool = True
    enable_file: bool = False

    def __post_init__(self) -> None:
        """Validate logging settings."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if self.level.upper() not in valid_levels:
            raise ValidationError(f"Invalid log level: {self.level}")
        if self.max_file_size_bytes <= 0:
            raise ValidationError("max_file_size_bytes must be positive")


class VaultConfig:
    """
    Centralized, immutable configuration loader with environment override support.

    Usage:
        config = VaultConfig.load()
        store_path = config.paths.resolved_store_path
        unique = config.store.unique_labels
    """

    __slots__ = ("_paths", "_store", "_logging", "_frozen")

    _instance: Optional[VaultConfig] = None

    def __init__(
        self,
        paths: Optional[PathConfig] = None,
        store: Optional[StoreConfig] = None,
        logging: Optional[LoggingConfig] = None,
    ) -> None:
        """Initialize configuration. Use VaultConfig.load() for standard initialization."""
        # Use object.__setattr__ to bypass our immutability check during init
        object.__setattr__(self, "_frozen", False)
        object.__setattr__(self, "_paths", paths or PathConfig())
        object.__setattr__(self, "_store", store or StoreConfig())
        object.__setattr__(self, "_logging", logging or LoggingConfig())
        object.__setattr__(self, "_frozen", True)

    @property
    def paths(self) -> PathConfig:
        return self._paths

    @property
    def store(self) -> StoreConfig:
        return self._store

    @property
    def logging(self) -> LoggingConfig:
        return self._logging

    @classmethod
    def load(cls, env_prefix: str = "CREDVAULT") -> VaultConfig:
        """
        Load configuration with environment variable overrides.

        Environment variables should be prefixed with CREDVAULT_ and use
        double underscores between section and key.

        Examples:
            CREDVAULT_LOGGING__LEVEL=DEBUG
            CREDVAULT_PATHS__STORE_PATH=/custom/store.db
            CREDVAULT_STORE__UNIQUE_LABELS=false

        Args:
            env_prefix: Prefix for environment variables (default: CREDVAULT)

        Returns:
            Configured VaultConfig instance

        Raises:
            ValidationError: If an override has an invalid value
        """
        env_overrides = cls._parse_env_overrides(env_prefix)

        paths_kwargs: dict[str, Any] = {}
        for name in ("data_dir", "log_dir", "store_path", "key_file"):
            if f"paths.{name}" in env_overrides:
                paths_kwargs[name] = Path(env_overrides[f"paths.{name}"]).expanduser()

        store_kwargs: dict[str, Any] = {}
        if "store.unique_labels" in env_overrides:
            store_kwargs["unique_labels"] = _parse_bool(
                "store.unique_labels", env_overrides["store.unique_labels"]
            )

        logging_kwargs: dict[str, Any] = {}
        if "logging.level" in env_overrides:
            logging_kwargs["level"] = env_overrides["logging.level"].upper()
        if "logging.enable_console" in env_overrides:
            logging_kwargs["enable_console"] = _parse_bool(
                "logging.enable_console", env_overrides["logging.enable_console"]
            )
        if "logging.enable_file" in env_overrides:
            logging_kwargs["enable_file"] = _parse_bool(
                "logging.enable_file", env_overrides["logging.enable_file"]
            )
        if "logging.max_file_size_bytes" in env_overrides:
            try:
                logging_kwargs["max_file_size_bytes"] = int(
                    env_overrides["logging.max_file_size_bytes"]
                )
            except ValueError as e:
                raise ValidationError("logging.max_file_size_bytes must be an integer") from e

        return cls(
            paths=PathConfig(**paths_kwargs) if paths_kwargs else None,
            store=StoreConfig(**store_kwargs) if store_kwargs else None,
            logging=LoggingConfig(**logging_kwargs) if logging_kwargs else None,
        )

    @staticmethod
    def _parse_env_overrides(prefix: str) -> dict[str, str]:
        """Parse environment variables with the given prefix."""
        overrides: dict[str, str] = {}
        prefix_upper = f"{prefix.upper()}_"

        for key, value in os.environ.items():
            if key.startswith(prefix_upper):
                # Convert CREDVAULT_SECTION__KEY to section.key
                config_key = key[len(prefix_upper):].lower().replace("__", ".")

                # Never take secrets from the environment
                if _is_sensitive_key(config_key):
                    continue

                overrides[config_key] = value

        return overrides

    @classmethod
    def get_instance(cls) -> VaultConfig:
        """Get or create the singleton configuration instance."""
        if cls._instance is None:
            cls._instance = cls.load()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset the singleton instance. Use only for testing."""
        cls._instance = None

    def ensure_directories(self) -> None:
        """Create the data directory (and log directory if file logging is on)."""
        directories = [self._paths.data_dir]
        if self._logging.enable_file:
            directories.append(self._paths.log_dir)

        for directory in directories:
            directory.mkdir(parents=True, exist_ok=True)

            if platform.system().lower() != "windows":
                directory.chmod(stat.S_IRWXU)  # 700 - owner only

    def __repr__(self) -> str:
        """Safe string representation without sensitive data."""
        return f"VaultConfig(store={self._paths.resolved_store_path})"

    def __setattr__(self, name: str, value: Any) -> None:
        """Prevent modification after initialization."""
        if hasattr(self, "_frozen") and self._frozen:
            raise AttributeError("VaultConfig is immutable after initialization")
        super().__setattr__(name, value)
