"""Fixed-width base36 encoding of UUIDs, as used in partition table names."""

from __future__ import annotations

import re
import uuid

_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"
_FIXED_LENGTH = 25
_VALID_TEXT = re.compile(r"[+-]?[0-9A-Za-z]+")


def uuid_to_base36(value: uuid.UUID) -> str:
    """Encode a UUID as a lower-case base36 string, zero-padded to 25 characters."""
    number = value.int
    digits: list[str] = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_DIGITS[remainder])
    text = "".join(reversed(digits)) or "0"
    return text.rjust(_FIXED_LENGTH, "0")


def base36_to_uuid(text: str) -> uuid.UUID:
    """Decode a base36 string back into a UUID.

    Raises ValueError if the text is not base36 or does not fit in 128 bits.
    """
    if not _VALID_TEXT.fullmatch(text):
        raise ValueError(f"invalid base36 string: {text}")
    number = abs(int(text, 36))
    if number.bit_length() > 128:
        raise ValueError(f"number too large for UUID: {text}")
    return uuid.UUID(int=number)