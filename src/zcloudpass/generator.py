"""Random password generation."""

from __future__ import annotations

import secrets
import string

SYMBOLS = "!@#$%^&*()_+-=[]{}|;:,.<>?"
ALPHANUMERIC_CHARSET = string.ascii_letters + string.digits
DEFAULT_CHARSET = ALPHANUMERIC_CHARSET + SYMBOLS
DEFAULT_LENGTH = 16


def generate_password(length: int = DEFAULT_LENGTH, charset: str = DEFAULT_CHARSET) -> str:
    """Return *length* characters drawn uniformly and independently from *charset*."""
    if length < 1:
        raise ValueError("Password length must be at least 1.")
    if not charset:
        raise ValueError("Charset cannot be empty.")
    return "".join(secrets.choice(charset) for _ in range(length))
