"""Hex codecs for JSON-RPC quantities and byte data."""

import binascii
import re

from web3_concurrency.helpers.constants import HEX_PREFIX
from web3_concurrency.helpers.exceptions import DecodeError


_QUANTITY_RE = re.compile(r"0x(0|[1-9a-fA-F][0-9a-fA-F]*)")
_DATA_RE = re.compile(r"0x([0-9a-fA-F]{2})*")


def encode_quantity(value: int) -> str:
    """Encode a non-negative integer as a minimal ``0x``-prefixed hex string.

    Args:
        value: Unsigned integer

    Returns:
        str: Hex quantity, ``0x0`` for zero

    Raises:
        ValueError: If value is negative or not an integer

    Example:
        >>> encode_quantity(12345)
        '0x3039'
        >>> encode_quantity(0)
        '0x0'
    """
    if isinstance(value, bool) or not isinstance(value, int):
        msg = f"Quantity must be an int, got {type(value).__name__}"
        raise ValueError(msg)
    if value < 0:
        msg = f"Quantity cannot be negative: {value}"
        raise ValueError(msg)
    return hex(value)


def decode_quantity(hex_value: str) -> int:
    """Decode a ``0x``-prefixed hex quantity.

    Leading zeros are rejected, except for the value zero itself (``0x0``).

    Args:
        hex_value: Hex-encoded quantity

    Returns:
        int: Decoded value

    Raises:
        DecodeError: If hex_value is not a valid quantity

    Example:
        >>> decode_quantity("0x3039")
        12345
    """
    if not isinstance(hex_value, str) or not _QUANTITY_RE.fullmatch(hex_value):
        msg = f"Invalid hex quantity: {hex_value!r}"
        raise DecodeError(msg)
    return int(hex_value, 16)


def encode_bytes(data: bytes) -> str:
    """Encode bytes as ``0x``-prefixed lowercase hex.

    Example:
        >>> encode_bytes(b"\\x01\\xff")
        '0x01ff'
        >>> encode_bytes(b"")
        '0x'
    """
    if not isinstance(data, (bytes, bytearray, memoryview)):
        msg = f"Byte data must be bytes, got {type(data).__name__}"
        raise ValueError(msg)
    return HEX_PREFIX + bytes(data).hex()


def decode_bytes(hex_data: str, length: int | None = None) -> bytes:
    """Decode ``0x``-prefixed hex data.

    Args:
        hex_data: Hex string with an even number of digits after the prefix
        length: Exact number of bytes expected, if any

    Returns:
        bytes: Decoded data

    Raises:
        DecodeError: If hex_data is empty, unprefixed, odd-length, not hex,
            or not of the expected length
    """
    if not isinstance(hex_data, str) or not _DATA_RE.fullmatch(hex_data):
        msg = f"Invalid hex data: {hex_data!r}"
        raise DecodeError(msg)

    try:
        data = binascii.unhexlify(hex_data[len(HEX_PREFIX) :])
    except binascii.Error as e:
        msg = f"Invalid hex data: {hex_data!r}"
        raise DecodeError(msg) from e

    if length is not None and len(data) != length:
        msg = f"Expected {length} bytes, got {len(data)}: {hex_data!r}"
        raise DecodeError(msg)

    return data


def to_bytes(value: bytes | str, length: int | None = None) -> bytes:
    """Accept raw bytes or their hex form, returning bytes.

    Args:
        value: Bytes or ``0x``-prefixed hex string
        length: Exact number of bytes expected, if any

    Raises:
        DecodeError: If value is not valid hex data or has the wrong length
    """
    if isinstance(value, str):
        return decode_bytes(value, length)
    if not isinstance(value, (bytes, bytearray, memoryview)):
        msg = f"Expected bytes or hex string, got {type(value).__name__}"
        raise DecodeError(msg)

    data = bytes(value)
    if length is not None and len(data) != length:
        msg = f"Expected {length} bytes, got {len(data)}"
        raise DecodeError(msg)
    return data


__all__ = [
    "decode_bytes",
    "decode_quantity",
    "encode_bytes",
    "encode_quantity",
    "to_bytes",
]
