"""
Core module - Contains configuration, logging, errors and the cipher engine.
"""

from credvault.core.config import VaultConfig
from credvault.core.logging import SecureLogFilter, configure_logging

__all__ = ["VaultConfig", "configure_logging", "SecureLogFilter"]
