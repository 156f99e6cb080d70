"""
Password Generation
===================

Random password generation from the OS CSPRNG.
"""

from __future__ import annotations

import secrets
import string
from typing import Final

from credvault.core.exceptions import ValidationError

MIN_GENERATED_LENGTH: Final[int] = 4
MAX_GENERATED_LENGTH: Final[int] = 256
DEFAULT_GENERATED_LENGTH: Final[int] = 16

SYMBOLS: Final[str] = "!@#$%^&*()-_=+[]{};:,.<>?/"


def generate_password(length: int = DEFAULT_GENERATED_LENGTH, symbols: bool = False) -> str:
    """
    Generate a random password.

    The result always contains a lowercase letter, an uppercase letter and a
    digit, plus a symbol when ``symbols`` is set. Positions are shuffled with
    ``secrets.SystemRandom``.

    Args:
        length: Number of characters (4 to 256)
        symbols: Include punctuation characters

    Raises:
        ValidationError: If length is out of range
    """
    if isinstance(length, bool) or not isinstance(length, int):
        raise ValidationError("length must be an integer")
    if not MIN_GENERATED_LENGTH <= length <= MAX_GENERATED_LENGTH:
        raise ValidationError(
            f"length must be between {MIN_GENERATED_LENGTH} and {MAX_GENERATED_LENGTH}"
        )

    groups = [string.ascii_lowercase, string.ascii_uppercase, string.digits]
    if symbols:
        groups.append(SYMBOLS)
    alphabet = "".join(groups)

    chars = [secrets.choice(group) for group in groups]
    chars.extend(secrets.choice(alphabet) for _ in range(length - len(chars)))
    secrets.SystemRandom().shuffle(chars)

    return "".join(chars)
