"""Typed async methods for the web3_*, net_* and eth_* JSON-RPC namespaces."""

from collections.abc import Callable, Sequence
from typing import Any, TypeVar

from pydantic import ValidationError

from web3_concurrency.eth.filters import LogFilter
from web3_concurrency.eth.models import (
    Block,
    Call,
    Log,
    Receipt,
    SignedTransaction,
    SyncStatus,
    Transaction,
    TransactionObject,
)
from web3_concurrency.eth.types import BlockIdentifier, BlockTag, encode_block_identifier
from web3_concurrency.helpers.address import normalize_address
from web3_concurrency.helpers.config import get_eth_rpc_url, get_rpc_timeout
from web3_concurrency.helpers.constants import DEFAULT_TIMEOUT, HASH_LENGTH
from web3_concurrency.helpers.exceptions import DecodeError
from web3_concurrency.helpers.http_models import JsonParams
from web3_concurrency.helpers.parsers import (
    decode_bytes,
    decode_quantity,
    encode_bytes,
    encode_quantity,
    to_bytes,
)
from web3_concurrency.helpers.rpc import RPCClient


T = TypeVar("T")

type Decoder[T] = Callable[[Any], T]


def _optional(decoder: Decoder[T]) -> Decoder[T | None]:
    """Map a JSON null (nothing found) to None."""

    def decode(result: Any) -> T | None:
        return None if result is None else decoder(result)

    return decode


def _expect(kind: type[T]) -> Decoder[T]:
    def decode(result: Any) -> T:
        if not isinstance(result, kind):
            msg = f"Expected {kind.__name__}, got {type(result).__name__}"
            raise DecodeError(msg)
        return result

    return decode


def _list_of(decoder: Decoder[T]) -> Decoder[list[T]]:
    def decode(result: Any) -> list[T]:
        return [decoder(item) for item in _expect(list)(result)]

    return decode


def _hash(value: bytes | str) -> str:
    return encode_bytes(to_bytes(value, HASH_LENGTH))


class Namespace:
    """Group of RPC methods sharing one transport."""

    def __init__(self, provider: RPCClient) -> None:
        self.provider = provider

    async def _request(
        self, method: str, params: JsonParams, decoder: Decoder[T]
    ) -> T:
        """Call method and decode its result.

        RpcError, TransportError and UnknownResponseId propagate unchanged;
        a result that does not decode raises DecodeError.
        """
        result = await self.provider.request(method, params)
        try:
            return decoder(result)
        except DecodeError:
            raise
        except (ValidationError, ValueError, TypeError) as e:
            msg = f"Malformed {method} result: {e}"
            raise DecodeError(msg) from e


class Net(Namespace):
    """net_* methods."""

    async def version(self) -> str:
        """Network id as a decimal string (e.g. ``"1"`` for mainnet)."""
        return await self._request("net_version", [], _expect(str))

    async def peer_count(self) -> int:
        return await self._request("net_peerCount", [], decode_quantity)

    async def listening(self) -> bool:
        return await self._request("net_listening", [], _expect(bool))


class Eth(Namespace):
    """eth_* methods.

    Block selectors accept a block number, a tag (``"latest"``,
    ``"earliest"``, ``"pending"``, ``"safe"``, ``"finalized"``) or, where the
    node supports it, a BlockHash.
    """

    async def protocol_version(self) -> str:
        return await self._request("eth_protocolVersion", [], _expect(str))

    async def syncing(self) -> SyncStatus:
        return await self._request("eth_syncing", [], SyncStatus.from_result)

    async def mining(self) -> bool:
        return await self._request("eth_mining", [], _expect(bool))

    async def hashrate(self) -> int:
        return await self._request("eth_hashrate", [], decode_quantity)

    async def gas_price(self) -> int:
        """Current gas price in wei."""
        return await self._request("eth_gasPrice", [], decode_quantity)

    async def chain_id(self) -> int:
        return await self._request("eth_chainId", [], decode_quantity)

    async def accounts(self) -> list[str]:
        """Addresses owned by the node, in checksum form."""
        return await self._request("eth_accounts", [], _list_of(normalize_address))

    async def block_number(self) -> int:
        return await self._request("eth_blockNumber", [], decode_quantity)

    async def balance(
        self, address: str | bytes, block: BlockIdentifier = BlockTag.LATEST
    ) -> int:
        """Account balance in wei."""
        return await self._request(
            "eth_getBalance",
            [normalize_address(address), encode_block_identifier(block)],
            decode_quantity,
        )

    async def storage(
        self,
        address: str | bytes,
        position: int,
        block: BlockIdentifier = BlockTag.LATEST,
    ) -> bytes:
        """32-byte storage word at position."""
        return await self._request(
            "eth_getStorageAt",
            [
                normalize_address(address),
                encode_quantity(position),
                encode_block_identifier(block),
            ],
            decode_bytes,
        )

    async def transaction_count(
        self, address: str | bytes, block: BlockIdentifier = BlockTag.LATEST
    ) -> int:
        """Number of transactions sent from address (its next nonce)."""
        return await self._request(
            "eth_getTransactionCount",
            [normalize_address(address), encode_block_identifier(block)],
            decode_quantity,
        )

    async def block_transaction_count_by_hash(self, block_hash: bytes | str) -> int | None:
        return await self._request(
            "eth_getBlockTransactionCountByHash",
            [_hash(block_hash)],
            _optional(decode_quantity),
        )

    async def block_transaction_count_by_number(
        self, block: BlockIdentifier = BlockTag.LATEST
    ) -> int | None:
        return await self._request(
            "eth_getBlockTransactionCountByNumber",
            [encode_block_identifier(block, allow_hash=False)],
            _optional(decode_quantity),
        )

    async def uncle_count_by_hash(self, block_hash: bytes | str) -> int | None:
        return await self._request(
            "eth_getUncleCountByBlockHash",
            [_hash(block_hash)],
            _optional(decode_quantity),
        )

    async def uncle_count_by_number(
        self, block: BlockIdentifier = BlockTag.LATEST
    ) -> int | None:
        return await self._request(
            "eth_getUncleCountByBlockNumber",
            [encode_block_identifier(block, allow_hash=False)],
            _optional(decode_quantity),
        )

    async def code(
        self, address: str | bytes, block: BlockIdentifier = BlockTag.LATEST
    ) -> bytes:
        """Contract bytecode, empty for externally owned accounts."""
        return await self._request(
            "eth_getCode",
            [normalize_address(address), encode_block_identifier(block)],
            decode_bytes,
        )

    async def send_raw_transaction(
        self, transaction: SignedTransaction | bytes | str
    ) -> bytes:
        """Submit a signed transaction and return its hash.

        Node rejections (nonce too low, underpriced, ...) are raised as
        RpcError exactly as the node reported them.
        """
        if isinstance(transaction, SignedTransaction):
            raw = transaction.raw()
        else:
            raw = to_bytes(transaction)
        return await self._request(
            "eth_sendRawTransaction", [encode_bytes(raw)], decode_bytes
        )

    async def send_transaction(self, transaction: Transaction) -> bytes:
        """Ask the node to sign and submit a transaction from one of its accounts."""
        return await self._request(
            "eth_sendTransaction", [transaction.to_params()], decode_bytes
        )

    async def call(
        self, call: Call, block: BlockIdentifier = BlockTag.LATEST
    ) -> bytes:
        """Execute a message call without creating a transaction."""
        return await self._request(
            "eth_call",
            [call.to_params(), encode_block_identifier(block)],
            decode_bytes,
        )

    async def estimate_gas(
        self, call: Call, block: BlockIdentifier | None = None
    ) -> int:
        params: JsonParams = [call.to_params()]
        if block is not None:
            params.append(encode_block_identifier(block))
        return await self._request("eth_estimateGas", params, decode_quantity)

    async def block_by_hash(
        self, block_hash: bytes | str, full_transactions: bool = False
    ) -> Block | None:
        return await self._request(
            "eth_getBlockByHash",
            [_hash(block_hash), full_transactions],
            _optional(Block.model_validate),
        )

    async def block_by_number(
        self,
        block: BlockIdentifier = BlockTag.LATEST,
        full_transactions: bool = False,
    ) -> Block | None:
        return await self._request(
            "eth_getBlockByNumber",
            [encode_block_identifier(block, allow_hash=False), full_transactions],
            _optional(Block.model_validate),
        )

    async def transaction_by_hash(
        self, transaction_hash: bytes | str
    ) -> TransactionObject | None:
        return await self._request(
            "eth_getTransactionByHash",
            [_hash(transaction_hash)],
            _optional(TransactionObject.model_validate),
        )

    async def transaction_by_block_hash_and_index(
        self, block_hash: bytes | str, index: int
    ) -> TransactionObject | None:
        return await self._request(
            "eth_getTransactionByBlockHashAndIndex",
            [_hash(block_hash), encode_quantity(index)],
            _optional(TransactionObject.model_validate),
        )

    async def transaction_by_block_number_and_index(
        self, block: BlockIdentifier, index: int
    ) -> TransactionObject | None:
        return await self._request(
            "eth_getTransactionByBlockNumberAndIndex",
            [encode_block_identifier(block, allow_hash=False), encode_quantity(index)],
            _optional(TransactionObject.model_validate),
        )

    async def transaction_receipt(self, transaction_hash: bytes | str) -> Receipt | None:
        """Receipt of a mined transaction, None while it is pending or unknown."""
        return await self._request(
            "eth_getTransactionReceipt",
            [_hash(transaction_hash)],
            _optional(Receipt.model_validate),
        )

    async def uncle_by_block_hash_and_index(
        self, block_hash: bytes | str, index: int
    ) -> Block | None:
        return await self._request(
            "eth_getUncleByBlockHashAndIndex",
            [_hash(block_hash), encode_quantity(index)],
            _optional(Block.model_validate),
        )

    async def uncle_by_block_number_and_index(
        self, block: BlockIdentifier, index: int
    ) -> Block | None:
        return await self._request(
            "eth_getUncleByBlockNumberAndIndex",
            [encode_block_identifier(block, allow_hash=False), encode_quantity(index)],
            _optional(Block.model_validate),
        )

    async def logs(
        self,
        addresses: Sequence[str | bytes] | None = None,
        topics: Sequence[Sequence[bytes | str] | bytes | str | None] | None = None,
        from_block: int | str | None = None,
        to_block: int | str | None = None,
    ) -> list[Log]:
        """Logs matching the given criteria.

        Args:
            addresses: Emitting contracts, OR'd; None or empty means any
            topics: Per-position OR-sets; None or [] at a position means any
            from_block: First block, inclusive
            to_block: Last block, inclusive

        Raises:
            DecodeError: If an address or topic is malformed
            ChecksumMismatch: If a mixed-case address has the wrong checksum
            ValueError: If a block bound is not a number or known tag

        Example:
            ```python
            transfers = await web3.eth.logs(
                addresses=[usdt],
                topics=[[TRANSFER_TOPIC]],
                from_block=15_884_445,
                to_block=15_884_445,
            )
            ```
        """
        try:
            log_filter = LogFilter(
                addresses=list(addresses) if addresses is not None else None,
                topics=list(topics) if topics is not None else None,
                from_block=from_block,
                to_block=to_block,
            )
        except ValidationError as e:
            for error in e.errors():
                cause = error.get("ctx", {}).get("error")
                if isinstance(cause, ValueError):
                    raise cause from e
            msg = f"Invalid log filter: {e}"
            raise DecodeError(msg) from e
        return await self.logs_by_filter(log_filter)

    async def logs_by_filter(self, log_filter: LogFilter) -> list[Log]:
        return await self._request(
            "eth_getLogs", [log_filter.to_params()], _list_of(Log.model_validate)
        )


class Web3(Namespace):
    """Async Ethereum JSON-RPC client.

    Example:
        ```python
        async with Web3.from_url("https://eth.llamarpc.com") as web3:
            version = await web3.client_version()
            balance = await web3.eth.balance(address)
            peers = await web3.net.peer_count()
        ```
    """

    def __init__(self, provider: RPCClient) -> None:
        super().__init__(provider)
        self.net = Net(provider)
        self.eth = Eth(provider)

    @classmethod
    def from_url(cls, rpc_url: str, timeout: float = DEFAULT_TIMEOUT) -> "Web3":
        return cls(RPCClient(rpc_url, timeout))

    @classmethod
    def from_env(cls, rpc_url: str | None = None, timeout: float | None = None) -> "Web3":
        """Build a client from ETH_RPC_URL / ETH_RPC_TIMEOUT unless given explicitly."""
        return cls.from_url(get_eth_rpc_url(rpc_url), get_rpc_timeout(timeout))

    async def __aenter__(self) -> "Web3":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.provider.aclose()

    async def client_version(self) -> str:
        return await self._request("web3_clientVersion", [], _expect(str))

    async def sha3(self, data: bytes | str) -> bytes:
        """Keccak-256 of data, computed by the node."""
        return await self._request(
            "web3_sha3", [encode_bytes(to_bytes(data))], decode_bytes
        )


__all__ = [
    "Eth",
    "Net",
    "Web3",
]
