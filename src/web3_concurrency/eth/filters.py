"""Log filter for eth_getLogs.

Matching follows the node's rules:

- ``from_block``/``to_block`` are inclusive
- ``addresses`` is an OR-set; empty or None matches any address
- ``topics`` is positional; each position is an OR-set, and None or an empty
  list at a position matches any topic. A log with fewer topics than the
  filter has positions never matches.
"""

from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from web3_concurrency.eth.models import Log
from web3_concurrency.eth.types import Address, Hash32, encode_block_identifier
from web3_concurrency.helpers.constants import HEX_PREFIX
from web3_concurrency.helpers.parsers import decode_quantity, encode_bytes


class LogFilter(BaseModel):
    """Criteria for a poll-style log query."""

    addresses: list[Address] | None = None
    topics: list[list[Hash32] | None] | None = None
    from_block: int | str | None = None
    to_block: int | str | None = None
    block_hash: Hash32 | None = None

    model_config = ConfigDict(frozen=True)

    @field_validator("addresses", mode="before")
    @classmethod
    def _single_address(cls, value: Any) -> Any:
        if isinstance(value, (str, bytes)):
            return [value]
        return value

    @field_validator("topics", mode="before")
    @classmethod
    def _single_topics(cls, value: Any) -> Any:
        # A bare topic at a position is shorthand for a one-element OR-set.
        if value is None:
            return None
        return [[t] if isinstance(t, (str, bytes)) else t for t in value]

    @field_validator("from_block", "to_block")
    @classmethod
    def _block_bound(cls, value: int | str | None) -> int | str | None:
        if isinstance(value, str) and value.startswith(HEX_PREFIX):
            return decode_quantity(value)
        if value is not None:
            encode_block_identifier(value, allow_hash=False)
        return value

    @model_validator(mode="after")
    def _hash_or_range(self) -> Self:
        if self.block_hash is not None and (
            self.from_block is not None or self.to_block is not None
        ):
            msg = "block_hash cannot be combined with from_block/to_block"
            raise ValueError(msg)
        return self

    def to_params(self) -> dict[str, Any]:
        """Build the filter object passed to eth_getLogs."""
        params: dict[str, Any] = {}

        if self.block_hash is not None:
            params["blockHash"] = encode_bytes(self.block_hash)
        if self.from_block is not None:
            params["fromBlock"] = encode_block_identifier(self.from_block, allow_hash=False)
        if self.to_block is not None:
            params["toBlock"] = encode_block_identifier(self.to_block, allow_hash=False)

        if self.addresses:
            params["address"] = list(self.addresses)

        if self.topics is not None:
            params["topics"] = [
                [encode_bytes(topic) for topic in position] if position else None
                for position in self.topics
            ]

        return params

    def matches(self, log: Log) -> bool:
        """Apply the filter to a log locally.

        Symbolic block tags cannot be resolved without a node, so only
        numeric bounds are checked.
        """
        if self.addresses and log.address not in self.addresses:
            return False

        if self.block_hash is not None and log.block_hash != self.block_hash:
            return False

        if log.block_number is not None:
            if isinstance(self.from_block, int) and log.block_number < self.from_block:
                return False
            if isinstance(self.to_block, int) and log.block_number > self.to_block:
                return False

        if not self.topics:
            return True
        if len(self.topics) > len(log.topics):
            return False
        return all(
            not position or topic in position
            for position, topic in zip(self.topics, log.topics, strict=False)
        )


__all__ = ["LogFilter"]
