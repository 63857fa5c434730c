"""Pydantic models for the documents written to the search index.

Chain-scale quantities are stored as decimal strings so that values wider
than 64 bits survive the round trip through the search backend.
"""

from enum import IntEnum
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field

from src.helpers.constants import ADDRESS_INDEX, BLOCK_INDEX, TRANSACTION_INDEX


class IndexDocument(BaseModel):
    """Base class for documents stored under a fixed index and a string ID."""

    index: ClassVar[str]

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @property
    def doc_id(self) -> str:
        raise NotImplementedError

    def to_source(self) -> dict[str, Any]:
        """JSON body stored as the document ``_source``.

        Fields left as None are omitted, so legacy and fee-market documents
        only carry the fields that apply to them.
        """
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class BlockDocument(IndexDocument):
    """One document per block, keyed by decimal height."""

    index: ClassVar[str] = BLOCK_INDEX

    number: str
    block_hash: str = Field(..., alias="blockHash")
    parent_hash: str = Field(..., alias="parentHash")
    sha3_uncles: str | None = Field(default=None, alias="sha3Uncles")
    state_root: str = Field(..., alias="stateRoot")
    transactions_root: str = Field(..., alias="transactionsRoot")
    receipts_root: str = Field(..., alias="receiptsRoot")
    logs_bloom: str | None = Field(default=None, alias="logsBloom")
    miner: str
    difficulty: str
    gas_limit: str = Field(..., alias="gasLimit")
    gas_used: str = Field(..., alias="gasUsed")
    timestamp: int
    extra_data: str = Field(..., alias="extraData")
    mix_hash: str | None = Field(default=None, alias="mixHash")
    nonce: str | None = None
    txns: int
    size: str
    base_fee_per_gas: str | None = Field(default=None, alias="baseFeePerGas")
    burnt_fees: str | None = Field(default=None, alias="burntFees")

    @property
    def doc_id(self) -> str:
        return self.number


class LogEntry(BaseModel):
    """Event log emitted by a transaction, embedded in its document."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    address: str
    topics: list[str] = Field(default_factory=list)
    data: str = "0x"
    log_index: str | None = Field(default=None, alias="logIndex")
    removed: bool = False


class TransactionDocument(IndexDocument):
    """One document per transaction, keyed by transaction hash."""

    index: ClassVar[str] = TRANSACTION_INDEX

    hash: str
    type: int
    nonce: str
    from_address: str = Field(..., alias="from")
    to: str | None = None
    value: str
    gas_limit: str = Field(..., alias="gasLimit")
    gas_price: str | None = Field(default=None, alias="gasPrice")
    max_priority_fee_per_gas: str | None = Field(
        default=None, alias="maxPriorityFeePerGas"
    )
    max_fee_per_gas: str | None = Field(default=None, alias="maxFeePerGas")
    input: str
    v: str
    r: str
    s: str
    access_list: list[dict[str, Any]] | None = Field(default=None, alias="accessList")
    chain_id: str | None = Field(default=None, alias="chainId")

    block_number: str = Field(..., alias="blockNumber")
    block_hash: str = Field(..., alias="blockHash")
    timestamp: int
    transaction_index: int | None = Field(default=None, alias="transactionIndex")
    base_fee_per_gas: str | None = Field(default=None, alias="baseFeePerGas")

    # receipt
    status: str | None = None
    cumulative_gas_used: str = Field(..., alias="cumulativeGasUsed")
    gas_used: str = Field(..., alias="gasUsed")
    logs_bloom: str | None = Field(default=None, alias="logsBloom")
    log_length: int = Field(..., alias="logLength")
    logs: list[LogEntry] = Field(default_factory=list)
    contract_address: str | None = Field(default=None, alias="contractAddress")

    # fees
    transaction_fee: str = Field(..., alias="transactionFee")
    burnt_fees: str | None = Field(default=None, alias="burntFees")
    tx_savings_fee: str | None = Field(default=None, alias="txSavingsFee")

    @property
    def doc_id(self) -> str:
        return self.hash


class AddressKind(IntEnum):
    """Classification of an indexed account."""

    EXTERNALLY_OWNED = 1
    CONTRACT = 2


class AddressDocument(IndexDocument):
    """One document per distinct account, keyed by lower-case address."""

    index: ClassVar[str] = ADDRESS_INDEX

    address: str
    kind: AddressKind = Field(..., alias="type")

    @property
    def doc_id(self) -> str:
        return self.address


__all__ = [
    "AddressDocument",
    "AddressKind",
    "BlockDocument",
    "IndexDocument",
    "LogEntry",
    "TransactionDocument",
]
