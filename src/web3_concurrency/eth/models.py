"""Pydantic models for Ethereum call objects, transactions and results."""

from typing import Any, Self

import rlp

from eth_hash.auto import keccak
from pydantic import BaseModel, ConfigDict, Field, model_validator

from web3_concurrency.eth.types import Address, Hash32, HexData, Quantity
from web3_concurrency.helpers.address import decode_address
from web3_concurrency.helpers.parsers import encode_bytes


DYNAMIC_FEE_TX_TYPE = 2


class EthModel(BaseModel):
    """Node result object. Unknown, client-specific fields are kept."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)


def _check_fee_style(
    gas_price: int | None,
    max_fee_per_gas: int | None,
    max_priority_fee_per_gas: int | None,
) -> None:
    if gas_price is not None and (
        max_fee_per_gas is not None or max_priority_fee_per_gas is not None
    ):
        msg = "Use either gas_price or max_fee_per_gas/max_priority_fee_per_gas, not both"
        raise ValueError(msg)


class Call(BaseModel):
    """Message for eth_call and eth_estimateGas."""

    from_address: Address | None = Field(default=None, alias="from")
    to: Address | None = None
    gas: Quantity | None = None
    gas_price: Quantity | None = Field(default=None, alias="gasPrice")
    value: Quantity | None = None
    data: HexData | None = None

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    def to_params(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Transaction(BaseModel):
    """Unsigned transaction for eth_sendTransaction.

    Omitted fields are filled in by the node. ``to`` absent means contract
    creation.
    """

    from_address: Address = Field(..., alias="from")
    to: Address | None = None
    value: Quantity | None = None
    gas: Quantity | None = None
    gas_price: Quantity | None = Field(default=None, alias="gasPrice")
    max_fee_per_gas: Quantity | None = Field(default=None, alias="maxFeePerGas")
    max_priority_fee_per_gas: Quantity | None = Field(
        default=None, alias="maxPriorityFeePerGas"
    )
    nonce: Quantity | None = None
    data: HexData | None = None

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @model_validator(mode="after")
    def _fee_style(self) -> Self:
        _check_fee_style(
            self.gas_price, self.max_fee_per_gas, self.max_priority_fee_per_gas
        )
        return self

    def to_params(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class AccessListEntry(BaseModel):
    """EIP-2930 access list item."""

    address: Address
    storage_keys: list[Hash32] = Field(default_factory=list, alias="storageKeys")

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class SignedTransaction(BaseModel):
    """Transaction with its signature, ready for eth_sendRawTransaction.

    Legacy transactions carry ``gas_price`` and an EIP-155 ``v``. EIP-1559
    transactions carry both fee caps, ``chain_id`` and a ``v`` of 0 or 1
    (the y-parity).
    """

    nonce: Quantity
    gas: Quantity
    to: Address | None = None
    value: Quantity = 0
    data: HexData = b""
    gas_price: Quantity | None = Field(default=None, alias="gasPrice")
    max_fee_per_gas: Quantity | None = Field(default=None, alias="maxFeePerGas")
    max_priority_fee_per_gas: Quantity | None = Field(
        default=None, alias="maxPriorityFeePerGas"
    )
    chain_id: Quantity | None = Field(default=None, alias="chainId")
    access_list: list[AccessListEntry] = Field(default_factory=list, alias="accessList")
    v: Quantity
    r: Quantity
    s: Quantity

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @model_validator(mode="after")
    def _fee_style(self) -> Self:
        _check_fee_style(
            self.gas_price, self.max_fee_per_gas, self.max_priority_fee_per_gas
        )
        if self.is_dynamic_fee:
            if self.max_fee_per_gas is None or self.max_priority_fee_per_gas is None:
                msg = "EIP-1559 transactions need both max_fee_per_gas and max_priority_fee_per_gas"
                raise ValueError(msg)
            if self.chain_id is None:
                msg = "EIP-1559 transactions need a chain_id"
                raise ValueError(msg)
            if self.v not in (0, 1):
                msg = f"EIP-1559 signature v must be 0 or 1, got {self.v}"
                raise ValueError(msg)
        elif self.gas_price is None:
            msg = "Legacy transactions need a gas_price"
            raise ValueError(msg)
        return self

    @property
    def is_dynamic_fee(self) -> bool:
        return self.max_fee_per_gas is not None or self.max_priority_fee_per_gas is not None

    def raw(self) -> bytes:
        """Serialize to the signed wire form accepted by eth_sendRawTransaction."""
        to = decode_address(self.to) if self.to is not None else b""

        if not self.is_dynamic_fee:
            return rlp.encode([
                self.nonce,
                self.gas_price,
                self.gas,
                to,
                self.value,
                self.data,
                self.v,
                self.r,
                self.s,
            ])

        access_list = [
            [decode_address(entry.address), list(entry.storage_keys)]
            for entry in self.access_list
        ]
        payload = rlp.encode([
            self.chain_id,
            self.nonce,
            self.max_priority_fee_per_gas,
            self.max_fee_per_gas,
            self.gas,
            to,
            self.value,
            self.data,
            access_list,
            self.v,
            self.r,
            self.s,
        ])
        return bytes([DYNAMIC_FEE_TX_TYPE]) + payload

    @property
    def hash(self) -> bytes:
        """Transaction hash the node will report for this transaction."""
        return keccak(self.raw())

    def hex(self) -> str:
        return encode_bytes(self.raw())


class SyncStatus(EthModel):
    """Result of eth_syncing. ``syncing`` is False when the node is in sync."""

    syncing: bool = True
    starting_block: Quantity | None = Field(default=None, alias="startingBlock")
    current_block: Quantity | None = Field(default=None, alias="currentBlock")
    highest_block: Quantity | None = Field(default=None, alias="highestBlock")

    @classmethod
    def from_result(cls, result: Any) -> "SyncStatus":
        if result is False:
            return cls(syncing=False)
        return cls.model_validate(result)


class Log(EthModel):
    """Event log entry from eth_getLogs or a receipt."""

    address: Address
    topics: list[Hash32] = Field(default_factory=list)
    data: HexData = b""
    block_number: Quantity | None = Field(default=None, alias="blockNumber")
    block_hash: Hash32 | None = Field(default=None, alias="blockHash")
    transaction_hash: Hash32 | None = Field(default=None, alias="transactionHash")
    transaction_index: Quantity | None = Field(default=None, alias="transactionIndex")
    log_index: Quantity | None = Field(default=None, alias="logIndex")
    removed: bool = False


class TransactionObject(EthModel):
    """Transaction as returned by the eth_getTransactionBy* methods."""

    hash: Hash32
    nonce: Quantity
    block_hash: Hash32 | None = Field(default=None, alias="blockHash")
    block_number: Quantity | None = Field(default=None, alias="blockNumber")
    transaction_index: Quantity | None = Field(default=None, alias="transactionIndex")
    from_address: Address = Field(..., alias="from")
    to: Address | None = None
    value: Quantity
    gas: Quantity
    gas_price: Quantity | None = Field(default=None, alias="gasPrice")
    max_fee_per_gas: Quantity | None = Field(default=None, alias="maxFeePerGas")
    max_priority_fee_per_gas: Quantity | None = Field(
        default=None, alias="maxPriorityFeePerGas"
    )
    input: HexData = b""
    type: Quantity | None = None
    chain_id: Quantity | None = Field(default=None, alias="chainId")
    v: Quantity | None = None
    r: Quantity | None = None
    s: Quantity | None = None


class Receipt(EthModel):
    """Result of eth_getTransactionReceipt."""

    transaction_hash: Hash32 = Field(..., alias="transactionHash")
    transaction_index: Quantity = Field(..., alias="transactionIndex")
    block_hash: Hash32 = Field(..., alias="blockHash")
    block_number: Quantity = Field(..., alias="blockNumber")
    from_address: Address = Field(..., alias="from")
    to: Address | None = None
    cumulative_gas_used: Quantity = Field(..., alias="cumulativeGasUsed")
    gas_used: Quantity = Field(..., alias="gasUsed")
    effective_gas_price: Quantity | None = Field(default=None, alias="effectiveGasPrice")
    contract_address: Address | None = Field(default=None, alias="contractAddress")
    logs: list[Log] = Field(default_factory=list)
    logs_bloom: HexData | None = Field(default=None, alias="logsBloom")
    status: Quantity | None = None
    root: Hash32 | None = None
    type: Quantity | None = None

    @property
    def succeeded(self) -> bool | None:
        """True/False after Byzantium, None for pre-Byzantium receipts."""
        return None if self.status is None else self.status == 1


class Block(EthModel):
    """Block (or uncle) header with its transactions.

    ``transactions`` holds hashes or full TransactionObjects depending on the
    ``full_transactions`` flag of the request. Pending blocks have no number
    or hash.
    """

    number: Quantity | None = None
    hash: Hash32 | None = None
    parent_hash: Hash32 = Field(..., alias="parentHash")
    nonce: HexData | None = None
    sha3_uncles: Hash32 = Field(..., alias="sha3Uncles")
    logs_bloom: HexData | None = Field(default=None, alias="logsBloom")
    transactions_root: Hash32 = Field(..., alias="transactionsRoot")
    state_root: Hash32 = Field(..., alias="stateRoot")
    receipts_root: Hash32 = Field(..., alias="receiptsRoot")
    miner: Address | None = None
    difficulty: Quantity | None = None
    total_difficulty: Quantity | None = Field(default=None, alias="totalDifficulty")
    extra_data: HexData = Field(default=b"", alias="extraData")
    size: Quantity | None = None
    gas_limit: Quantity = Field(..., alias="gasLimit")
    gas_used: Quantity = Field(..., alias="gasUsed")
    timestamp: Quantity
    base_fee_per_gas: Quantity | None = Field(default=None, alias="baseFeePerGas")
    mix_hash: Hash32 | None = Field(default=None, alias="mixHash")
    transactions: list[Hash32 | TransactionObject] = Field(default_factory=list)
    uncles: list[Hash32] = Field(default_factory=list)


__all__ = [
    "AccessListEntry",
    "Block",
    "Call",
    "EthModel",
    "Log",
    "Receipt",
    "SignedTransaction",
    "SyncStatus",
    "Transaction",
    "TransactionObject",
]
