"""Beacon identifier conversion.

A beacon identifier is a 128-bit value written as 32 hex characters,
usually hyphenated like a UUID (e.g. "E2C56DB5-DFFB-48D2-B060-D0F5A71096E0").
Byte 0 of the binary form is the first pair of hex characters.
"""

import re

IDENTIFIER_LENGTH = 16

# 32 hex characters once hyphens are removed
HEX_PATTERN = re.compile(r"^[0-9A-Fa-f]{32}$")


class InvalidFormatError(ValueError):
    """Raised when a beacon identifier is malformed."""

    pass


def decode(value: str) -> bytes:
    """Convert an identifier string to 16 bytes.

    Args:
        value: 32 hex characters, hyphens allowed anywhere
               (e.g., "e2c56db5-dffb-48d2-b060-d0f5a71096e0")

    Returns:
        16-byte identifier, big-endian in textual order

    Raises:
        InvalidFormatError: If the stripped string is not exactly 32 hex characters
    """
    if not isinstance(value, str):
        raise InvalidFormatError(
            f"Identifier must be a string, got {type(value).__name__}"
        )

    hex_str = value.replace("-", "")

    if len(hex_str) != IDENTIFIER_LENGTH * 2:
        raise InvalidFormatError(
            f"Identifier must be 32 hex characters, got {len(hex_str)}"
        )

    if not HEX_PATTERN.match(hex_str):
        raise InvalidFormatError(f"Invalid identifier hex characters: {value!r}")

    return bytes(int(hex_str[i * 2:i * 2 + 2], 16) for i in range(IDENTIFIER_LENGTH))


def encode(data: bytes) -> str:
    """Convert 16 identifier bytes back to 32 lowercase hex characters."""
    if len(data) != IDENTIFIER_LENGTH:
        raise InvalidFormatError(
            f"Identifier must be {IDENTIFIER_LENGTH} bytes, got {len(data)}"
        )
    return bytes(data).hex()


def format_identifier(value: str) -> str:
    """Return the canonical 8-4-4-4-12 lowercase form of an identifier."""
    hex_str = encode(decode(value))
    return "-".join(
        (hex_str[0:8], hex_str[8:12], hex_str[12:16], hex_str[16:20], hex_str[20:32])
    )
