"""
Validation Utilities
====================

Input validation for values that end up in the credential store.

Text fields are stored verbatim: any ``str`` is accepted, including NUL
and arbitrarily long values. Only the label must be non-empty.
"""

from __future__ import annotations

from typing import Optional

from credvault.core.exceptions import ValidationError


def validate_string_safe(
    value: str,
    allow_empty: bool = False,
    field_name: str = "value",
) -> str:
    """
    Validate a text value bound for the store.
    
    Args:
        value: The string to validate
        allow_empty: If False, empty strings are rejected
        field_name: Name of the field for error messages
        
    Returns:
        Validated string
        
    Raises:
        ValidationError: If validation fails
    """
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a string")
    
    if not allow_empty and not value:
        raise ValidationError(f"{field_name} cannot be empty")
    
    return value


def validate_label(label: str) -> str:
    """Labels are case-sensitive, non-empty, and used verbatim as lookup keys."""
    return validate_string_safe(label, field_name="label")


def validate_username(username: str) -> str:
    return validate_string_safe(username, allow_empty=True, field_name="username")


def validate_notes(notes: Optional[str]) -> Optional[str]:
    if notes is None:
        return None
    return validate_string_safe(notes, allow_empty=True, field_name="notes")


def validate_secret(secret: str, field_name: str = "password") -> str:
    """Secrets may hold any text; they are encrypted, never stored raw."""
    if not isinstance(secret, str):
        raise ValidationError(f"{field_name} must be a string")
    return secret
