"""Read-only access to the chain node."""

from typing import Any, Protocol

import httpx

from src.helpers.constants import DEFAULT_TIMEOUT
from src.helpers.errors import ChainNotFoundError
from src.helpers.http import create_http_client
from src.helpers.logging import get_logger
from src.helpers.rpc import RPCClient


logger = get_logger(__name__)

type RawBlock = dict[str, Any]
type RawReceipt = dict[str, Any]


class ChainSource(Protocol):
    """Read-only view of the chain.

    ``ChainUnreachableError`` signals a transport problem and
    ``ChainNotFoundError`` a key the node does not know.
    """

    async def latest_height(self) -> int: ...

    async def block_at(self, height: int) -> RawBlock: ...

    async def receipt_for(self, tx_hash: str) -> RawReceipt: ...


class RpcChainSource:
    """ChainSource backed by an Ethereum JSON-RPC endpoint."""

    def __init__(
        self,
        rpc_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the chain source.

        Args:
            rpc_url: Ethereum JSON-RPC endpoint URL
            timeout: Per-call timeout in seconds
            client: Optional pre-built HTTP client (owned by the caller)
        """
        self.rpc = RPCClient(rpc_url, timeout=timeout)
        self._owns_client = client is None
        self.client = client or create_http_client(timeout=timeout)

    async def latest_height(self) -> int:
        return await self.rpc.get_block_number(self.client)

    async def block_at(self, height: int) -> RawBlock:
        block = await self.rpc.get_block_by_number(self.client, height)
        if block is None:
            msg = f"Block {height} not found"
            raise ChainNotFoundError(msg)
        return block

    async def receipt_for(self, tx_hash: str) -> RawReceipt:
        receipt = await self.rpc.get_transaction_receipt(self.client, tx_hash)
        if receipt is None:
            msg = f"Receipt for transaction {tx_hash} not found"
            raise ChainNotFoundError(msg)
        return receipt

    async def aclose(self) -> None:
        """Close the HTTP client if this source created it."""
        if self._owns_client:
            await self.client.aclose()


__all__ = ["ChainSource", "RawBlock", "RawReceipt", "RpcChainSource"]
