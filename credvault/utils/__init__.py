"""
Utils module - Utility functions and helpers.

This module contains utility functions used throughout credvault.
"""

from credvault.utils.passwords import generate_password
from credvault.utils.paths import expand_path, same_file
from credvault.utils.validators import validate_label, validate_string_safe

__all__ = [
    "generate_password",
    "expand_path",
    "same_file",
    "validate_label",
    "validate_string_safe",
]
