"""Transformation of raw chain blocks into index documents.

Every hex quantity is decoded to ``int`` and rendered back as a decimal
string, so values wider than 64 bits keep full precision and legacy and
fee-market transactions share one document schema.

Fee formulas:

* fee-market block (header carries ``baseFeePerGas``)::

      transactionFee = (baseFee + gasTipCap) * gasUsed
      burntFees      = baseFee * gasUsed
      txSavingsFee   = (gasFeeCap - gasTipCap - baseFee) * gasUsed

* legacy block::

      transactionFee = gasPrice * gasUsed

A new fee schedule gets its own branch in ``compute_fees``.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any

from src.data.chain import ChainSource, RawBlock, RawReceipt
from src.data.models import BlockDocument, LogEntry, TransactionDocument
from src.helpers.constants import RECEIPT_CONCURRENCY
from src.helpers.errors import DocumentBuildError
from src.helpers.logging import get_logger
from src.helpers.parsers import (
    hex_to_decimal,
    is_zero_address,
    normalize_address,
    normalize_hash,
    optional_hex_to_decimal,
    parse_hex_int,
)


logger = get_logger(__name__)

FEE_MARKET_TX_TYPE = 2
"""First transaction type that carries tip and fee caps instead of a gas price"""


@dataclass(frozen=True)
class Fees:
    """Fees charged for one transaction, in wei."""

    transaction_fee: int
    burnt_fees: int | None = None
    savings_fee: int | None = None


@dataclass
class BuiltBlock:
    """Documents and address candidates produced for one block."""

    block: BlockDocument
    transactions: list[TransactionDocument] = field(default_factory=list)
    addresses: list[str] = field(default_factory=list)
    contracts: list[str] = field(default_factory=list)


def compute_fees(
    *,
    gas_used: int,
    base_fee: int | None,
    gas_price: int,
    gas_tip_cap: int,
    gas_fee_cap: int,
) -> Fees:
    """Compute transaction, burnt and savings fees.

    Args:
        gas_used: Gas consumed according to the receipt
        base_fee: Block base fee, or None for a legacy block
        gas_price: Legacy gas price of the transaction
        gas_tip_cap: Priority fee cap (equals gas_price for legacy types)
        gas_fee_cap: Total fee cap (equals gas_price for legacy types)

    Example:
        >>> compute_fees(gas_used=50, base_fee=100, gas_price=0,
        ...              gas_tip_cap=10, gas_fee_cap=200)
        Fees(transaction_fee=5500, burnt_fees=5000, savings_fee=4500)
        >>> compute_fees(gas_used=21000, base_fee=None, gas_price=2,
        ...              gas_tip_cap=2, gas_fee_cap=2)
        Fees(transaction_fee=42000, burnt_fees=None, savings_fee=None)
    """
    if base_fee is not None:
        return Fees(
            transaction_fee=(base_fee + gas_tip_cap) * gas_used,
            burnt_fees=base_fee * gas_used,
            savings_fee=(gas_fee_cap - gas_tip_cap - base_fee) * gas_used,
        )
    return Fees(transaction_fee=gas_price * gas_used)


def build_block_document(raw_block: RawBlock) -> BlockDocument:
    """Build the block document from a raw JSON-RPC block.

    Raises:
        KeyError, ValueError, TypeError: If a required field is missing or malformed
    """
    base_fee = (
        parse_hex_int(raw_block["baseFeePerGas"])
        if raw_block.get("baseFeePerGas") is not None
        else None
    )
    gas_used = parse_hex_int(raw_block["gasUsed"])

    return BlockDocument(
        number=hex_to_decimal(raw_block["number"]),
        block_hash=raw_block["hash"],
        parent_hash=raw_block["parentHash"],
        sha3_uncles=raw_block.get("sha3Uncles"),
        state_root=raw_block["stateRoot"],
        transactions_root=raw_block["transactionsRoot"],
        receipts_root=raw_block["receiptsRoot"],
        logs_bloom=raw_block.get("logsBloom"),
        miner=normalize_address(raw_block["miner"]),
        difficulty=hex_to_decimal(raw_block.get("difficulty") or "0x0"),
        gas_limit=hex_to_decimal(raw_block["gasLimit"]),
        gas_used=str(gas_used),
        timestamp=parse_hex_int(raw_block["timestamp"]),
        extra_data=raw_block.get("extraData") or "0x",
        mix_hash=raw_block.get("mixHash"),
        nonce=raw_block.get("nonce"),
        txns=len(raw_block.get("transactions") or []),
        size=hex_to_decimal(raw_block.get("size") or "0x0"),
        base_fee_per_gas=str(base_fee) if base_fee is not None else None,
        burnt_fees=str(base_fee * gas_used) if base_fee is not None else None,
    )


def _build_logs(receipt: RawReceipt) -> list[LogEntry]:
    return [
        LogEntry(
            address=normalize_address(log["address"]),
            topics=list(log.get("topics") or []),
            data=log.get("data") or "0x",
            log_index=optional_hex_to_decimal(log.get("logIndex")),
            removed=bool(log.get("removed", False)),
        )
        for log in receipt.get("logs") or []
    ]


def build_transaction_document(
    raw_tx: dict[str, Any], raw_block: RawBlock, receipt: RawReceipt
) -> TransactionDocument:
    """Build one transaction document from the transaction, its block and receipt.

    Raises:
        KeyError, ValueError, TypeError: If a required field is missing or malformed
    """
    tx_type = parse_hex_int(raw_tx.get("type"), 0)
    base_fee = (
        parse_hex_int(raw_block["baseFeePerGas"])
        if raw_block.get("baseFeePerGas") is not None
        else None
    )

    gas_price = parse_hex_int(raw_tx.get("gasPrice"), 0)
    gas_tip_cap = parse_hex_int(raw_tx.get("maxPriorityFeePerGas"), gas_price)
    gas_fee_cap = parse_hex_int(raw_tx.get("maxFeePerGas"), gas_price)
    is_fee_market_tx = tx_type >= FEE_MARKET_TX_TYPE

    gas_used = parse_hex_int(receipt["gasUsed"])
    fees = compute_fees(
        gas_used=gas_used,
        base_fee=base_fee,
        gas_price=gas_price,
        gas_tip_cap=gas_tip_cap,
        gas_fee_cap=gas_fee_cap,
    )

    contract_address = normalize_address(receipt.get("contractAddress"))
    if is_zero_address(contract_address):
        contract_address = None

    logs = _build_logs(receipt)
    access_list = raw_tx.get("accessList")

    return TransactionDocument(
        hash=normalize_hash(raw_tx["hash"]),
        type=tx_type,
        nonce=hex_to_decimal(raw_tx["nonce"]),
        from_address=normalize_address(raw_tx["from"]),
        to=normalize_address(raw_tx.get("to")),
        value=hex_to_decimal(raw_tx["value"]),
        gas_limit=hex_to_decimal(raw_tx["gas"]),
        gas_price=None if is_fee_market_tx else str(gas_price),
        max_priority_fee_per_gas=str(gas_tip_cap) if is_fee_market_tx else None,
        max_fee_per_gas=str(gas_fee_cap) if is_fee_market_tx else None,
        input=raw_tx.get("input") or "0x",
        v=hex_to_decimal(raw_tx.get("v") or raw_tx.get("yParity") or "0x0"),
        r=hex_to_decimal(raw_tx.get("r") or "0x0"),
        s=hex_to_decimal(raw_tx.get("s") or "0x0"),
        access_list=list(access_list) if access_list is not None else None,
        chain_id=optional_hex_to_decimal(raw_tx.get("chainId")),
        block_number=hex_to_decimal(raw_block["number"]),
        block_hash=raw_block["hash"],
        timestamp=parse_hex_int(raw_block["timestamp"]),
        transaction_index=(
            parse_hex_int(raw_tx["transactionIndex"])
            if raw_tx.get("transactionIndex") is not None
            else None
        ),
        base_fee_per_gas=str(base_fee) if base_fee is not None else None,
        status=optional_hex_to_decimal(receipt.get("status")),
        cumulative_gas_used=hex_to_decimal(receipt["cumulativeGasUsed"]),
        gas_used=str(gas_used),
        logs_bloom=receipt.get("logsBloom"),
        log_length=len(logs),
        logs=logs,
        contract_address=contract_address,
        transaction_fee=str(fees.transaction_fee),
        burnt_fees=str(fees.burnt_fees) if fees.burnt_fees is not None else None,
        tx_savings_fee=str(fees.savings_fee) if fees.savings_fee is not None else None,
    )


class DocumentBuilder:
    """Builds all documents for a block, fetching receipts from the chain."""

    def __init__(
        self, chain: ChainSource, receipt_concurrency: int = RECEIPT_CONCURRENCY
    ) -> None:
        """Initialize the builder.

        Args:
            chain: Source used for receipt lookups
            receipt_concurrency: Receipt fetches allowed in flight per block
        """
        self.chain = chain
        self.receipt_concurrency = receipt_concurrency

    async def _fetch_receipts(self, tx_hashes: list[str]) -> list[RawReceipt]:
        semaphore = asyncio.Semaphore(self.receipt_concurrency)

        async def fetch(tx_hash: str) -> RawReceipt:
            async with semaphore:
                return await self.chain.receipt_for(tx_hash)

        # the first failure cancels the fetches still in flight
        try:
            async with asyncio.TaskGroup() as group:
                tasks = [group.create_task(fetch(h)) for h in tx_hashes]
        except ExceptionGroup as e:
            raise e.exceptions[0] from None
        return [task.result() for task in tasks]

    async def build(self, raw_block: RawBlock) -> BuiltBlock:
        """Build the block, transaction documents and address candidates.

        Nothing is returned unless every transaction of the block decoded and
        every receipt was fetched.

        Raises:
            DocumentBuildError: If the block or a transaction cannot be decoded
            ChainError: If a receipt cannot be fetched
        """
        try:
            block_doc = build_block_document(raw_block)
            raw_txs = list(raw_block.get("transactions") or [])
            tx_hashes = [tx["hash"] for tx in raw_txs]
        except (KeyError, ValueError, TypeError) as e:
            msg = f"Failed to decode block {raw_block.get('number')}: {e!r}"
            raise DocumentBuildError(msg) from e

        receipts = await self._fetch_receipts(tx_hashes)

        built = BuiltBlock(block=block_doc)
        for raw_tx, receipt in zip(raw_txs, receipts, strict=True):
            try:
                tx_doc = build_transaction_document(raw_tx, raw_block, receipt)
            except (KeyError, ValueError, TypeError) as e:
                msg = (
                    f"Failed to decode transaction {raw_tx.get('hash')} "
                    f"in block {block_doc.number}: {e!r}"
                )
                raise DocumentBuildError(msg) from e

            built.transactions.append(tx_doc)
            built.addresses.append(tx_doc.from_address)
            if tx_doc.to is not None:
                built.addresses.append(tx_doc.to)
            if tx_doc.contract_address is not None:
                built.contracts.append(tx_doc.contract_address)

        logger.debug(
            "Built block %s: %d transactions, %d address refs, %d contracts",
            block_doc.number,
            len(built.transactions),
            len(built.addresses),
            len(built.contracts),
        )
        return built


__all__ = [
    "BuiltBlock",
    "DocumentBuilder",
    "Fees",
    "build_block_document",
    "build_transaction_document",
    "compute_fees",
]
