"""Pydantic models for JSON-RPC requests."""

from typing import Any

from pydantic import BaseModel, Field


class JsonRpcRequest(BaseModel):
    """JSON-RPC 2.0 request model."""

    jsonrpc: str = Field(default="2.0", description="JSON-RPC version")
    method: str = Field(..., description="Method name to call")
    params: list[Any] = Field(
        default_factory=list, description="Method parameters"
    )
    id: int | str = Field(..., description="Request ID")


class EthBlockNumberRequest(JsonRpcRequest):
    """JSON-RPC request for eth_blockNumber."""

    method: str = Field(default="eth_blockNumber", frozen=True)
    params: list[Any] = Field(default_factory=list, frozen=True)


class EthGetBlockByNumberRequest(JsonRpcRequest):
    """JSON-RPC request for eth_getBlockByNumber.

    Params are ``[hex_height, full_transactions]``.
    """

    method: str = Field(default="eth_getBlockByNumber", frozen=True)

    @classmethod
    def for_height(cls, height: int, request_id: int | str = 1) -> "EthGetBlockByNumberRequest":
        """Request for the block at ``height`` with full transaction bodies."""
        return cls(params=[hex(height), True], id=request_id)


class EthGetTransactionReceiptRequest(JsonRpcRequest):
    """JSON-RPC request for eth_getTransactionReceipt."""

    method: str = Field(default="eth_getTransactionReceipt", frozen=True)

    @classmethod
    def for_hash(cls, tx_hash: str, request_id: int | str = 1) -> "EthGetTransactionReceiptRequest":
        """Request for the receipt of ``tx_hash``."""
        return cls(params=[tx_hash], id=request_id)


__all__ = [
    "EthBlockNumberRequest",
    "EthGetBlockByNumberRequest",
    "EthGetTransactionReceiptRequest",
    "JsonRpcRequest",
]
