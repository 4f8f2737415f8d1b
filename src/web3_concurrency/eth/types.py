"""Annotated wire types and block identifiers."""

from enum import StrEnum
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, PlainSerializer

from web3_concurrency.helpers.address import normalize_address
from web3_concurrency.helpers.constants import HASH_LENGTH, HEX_PREFIX
from web3_concurrency.helpers.parsers import (
    decode_quantity,
    encode_bytes,
    encode_quantity,
    to_bytes,
)


def _to_quantity(value: Any) -> int:
    if isinstance(value, str):
        return decode_quantity(value)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        msg = f"Invalid quantity: {value!r}"
        raise ValueError(msg)
    return value


def _to_hash(value: Any) -> bytes:
    return to_bytes(value, HASH_LENGTH)


Quantity = Annotated[
    int,
    BeforeValidator(_to_quantity),
    PlainSerializer(encode_quantity, return_type=str, when_used="json"),
]
"""Unsigned integer, hex quantity on the wire."""

HexData = Annotated[
    bytes,
    BeforeValidator(to_bytes),
    PlainSerializer(encode_bytes, return_type=str, when_used="json"),
]
"""Arbitrary byte data, hex on the wire."""

Hash32 = Annotated[
    bytes,
    BeforeValidator(_to_hash),
    PlainSerializer(encode_bytes, return_type=str, when_used="json"),
]
"""32-byte block or transaction hash."""

Address = Annotated[str, BeforeValidator(normalize_address)]
"""20-byte account address held in EIP-55 checksum form."""


class BlockTag(StrEnum):
    """Symbolic block selectors."""

    LATEST = "latest"
    EARLIEST = "earliest"
    PENDING = "pending"
    SAFE = "safe"
    FINALIZED = "finalized"


class BlockHash(BaseModel):
    """Exact block selected by hash (EIP-1898)."""

    hash: Hash32
    require_canonical: bool | None = None

    model_config = ConfigDict(frozen=True)


type BlockIdentifier = int | str | BlockTag | BlockHash
"""Block number, symbolic tag or block hash."""


def encode_block_identifier(
    block: BlockIdentifier, *, allow_hash: bool = True
) -> str | dict[str, Any]:
    """Encode a block selector as a JSON-RPC parameter.

    Args:
        block: Block number, tag name or BlockHash
        allow_hash: Whether the method accepts a block hash selector

    Returns:
        Hex quantity, tag string, or an EIP-1898 ``{"blockHash": ...}`` object

    Raises:
        ValueError: If the selector is not valid for the method
    """
    if isinstance(block, BlockHash):
        if not allow_hash:
            msg = "This method takes a block number or tag, not a block hash"
            raise ValueError(msg)
        selector: dict[str, Any] = {"blockHash": encode_bytes(block.hash)}
        if block.require_canonical is not None:
            selector["requireCanonical"] = block.require_canonical
        return selector

    if isinstance(block, BlockTag):
        return block.value

    if isinstance(block, str):
        if block.startswith(HEX_PREFIX):
            return encode_quantity(decode_quantity(block))
        try:
            return BlockTag(block).value
        except ValueError:
            msg = f"Unknown block tag: {block!r}"
            raise ValueError(msg) from None

    return encode_quantity(block)


__all__ = [
    "Address",
    "BlockHash",
    "BlockIdentifier",
    "BlockTag",
    "Hash32",
    "HexData",
    "Quantity",
    "encode_block_identifier",
]
