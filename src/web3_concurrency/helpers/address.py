"""EIP-55 checksum addresses."""

from eth_hash.auto import keccak

from web3_concurrency.helpers.constants import ADDRESS_LENGTH, HEX_PREFIX
from web3_concurrency.helpers.exceptions import ChecksumMismatch, DecodeError
from web3_concurrency.helpers.parsers import decode_bytes, to_bytes


def to_checksum_address(address: bytes | str) -> str:
    """Render a 20-byte address in EIP-55 mixed-case form.

    The casing of the input string is ignored.

    Args:
        address: Raw 20 bytes or ``0x``-prefixed hex in any casing

    Returns:
        str: Checksum-cased address

    Raises:
        DecodeError: If address is not 20 bytes of valid hex

    Example:
        >>> to_checksum_address("0xd8da6bf26964af9d7eed9e03e53415d37aa96045")
        '0xd8dA6BF26964aF9D7eEd9e03E53415D37aA96045'
    """
    if isinstance(address, str):
        address = address.lower()
    digest = to_bytes(address, ADDRESS_LENGTH).hex()
    address_hash = keccak(digest.encode("ascii")).hex()

    return HEX_PREFIX + "".join(
        char.upper() if int(address_hash[i], 16) >= 8 else char
        for i, char in enumerate(digest)
    )


def decode_address(address: str, *, checksum: bool = False) -> bytes:
    """Decode a hex address to its 20 raw bytes.

    Args:
        address: ``0x``-prefixed 40-digit hex string
        checksum: Require the casing to match the EIP-55 checksum exactly

    Returns:
        bytes: The 20-byte address

    Raises:
        DecodeError: If address is not 20 bytes of valid hex
        ChecksumMismatch: If checksum is requested and the casing is wrong
    """
    data = decode_bytes(address, ADDRESS_LENGTH)
    if checksum:
        expected = to_checksum_address(data)
        if address != expected:
            raise ChecksumMismatch(address, expected)
    return data


def is_checksum_address(address: str) -> bool:
    """Check whether a string is a correctly checksum-cased address."""
    try:
        decode_address(address, checksum=True)
    except DecodeError:
        return False
    return True


def normalize_address(address: bytes | str) -> str:
    """Return the checksum form of an address.

    Single-case hex input is accepted as-is; mixed-case input must already
    carry a valid checksum.

    Raises:
        DecodeError: If address is malformed
        ChecksumMismatch: If a mixed-case address has the wrong checksum
    """
    if isinstance(address, str):
        digits = address[len(HEX_PREFIX) :]
        mixed_case = digits != digits.lower() and digits != digits.upper()
        decode_address(address, checksum=mixed_case)
    return to_checksum_address(address)


__all__ = [
    "decode_address",
    "is_checksum_address",
    "normalize_address",
    "to_checksum_address",
]
