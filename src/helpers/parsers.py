"""Parsing utilities for JSON-RPC hex quantities and addresses."""

from src.helpers.constants import ZERO_ADDRESS


def parse_hex_int(hex_value: str | None, default: int = 0) -> int:
    """Parse hex string to integer.

    Args:
        hex_value: Hex-encoded string or None
        default: Default value if hex_value is None

    Returns:
        int: Parsed integer value

    Raises:
        ValueError: If hex_value is not a valid hex quantity

    Example:
        >>> parse_hex_int("0xff")
        255
        >>> parse_hex_int(None, 0)
        0
    """
    if hex_value is None:
        return default
    if not isinstance(hex_value, str):
        msg = f"Expected hex string, got {type(hex_value).__name__}"
        raise ValueError(msg)
    return int(hex_value, 16)


def hex_to_decimal(hex_value: str) -> str:
    """Render a hex quantity as a decimal string without precision loss.

    Example:
        >>> hex_to_decimal("0xde0b6b3a7640000")
        '1000000000000000000'
    """
    return str(parse_hex_int(hex_value))


def optional_hex_to_decimal(hex_value: str | None) -> str | None:
    """Like hex_to_decimal, but passes None through."""
    if hex_value is None:
        return None
    return hex_to_decimal(hex_value)


def normalize_address(address: str | None) -> str | None:
    """Canonical form used for address document IDs (lower-case hex).

    Example:
        >>> normalize_address("0xAbC0000000000000000000000000000000000001")
        '0xabc0000000000000000000000000000000000001'
        >>> normalize_address(None) is None
        True
    """
    if not address:
        return None
    return address.lower()


def normalize_hash(value: str) -> str:
    """Canonical form used for transaction document IDs."""
    return value.lower()


def is_zero_address(address: str | None) -> bool:
    """Whether the address is the all-zero sentinel."""
    return normalize_address(address) == ZERO_ADDRESS


__all__ = [
    "hex_to_decimal",
    "is_zero_address",
    "normalize_address",
    "normalize_hash",
    "optional_hex_to_decimal",
    "parse_hex_int",
]
