"""Ethereum JSON-RPC client utilities."""

from typing import Any

import httpx

from src.helpers.constants import DEFAULT_TIMEOUT
from src.helpers.errors import ChainUnreachableError
from src.helpers.logging import get_logger
from src.helpers.parsers import parse_hex_int
from src.helpers.rpc_models import (
    EthBlockNumberRequest,
    EthGetBlockByNumberRequest,
    EthGetTransactionReceiptRequest,
    JsonRpcRequest,
)


logger = get_logger(__name__)


class RPCClient:
    """Ethereum JSON-RPC client.

    Transport failures, timeouts, non-2xx responses, undecodable bodies and
    JSON-RPC error objects all surface as ``ChainUnreachableError``. A
    ``null`` result is returned as ``None`` and left to the caller.
    """

    def __init__(self, rpc_url: str, timeout: float = DEFAULT_TIMEOUT) -> None:
        """Initialize RPC client.

        Args:
            rpc_url: Ethereum JSON-RPC endpoint URL
            timeout: Default timeout for requests in seconds

        Raises:
            ValueError: If rpc_url is empty or None
        """
        if not rpc_url:
            msg = "RPC URL cannot be empty"
            raise ValueError(msg)

        self.rpc_url = rpc_url
        self.timeout = timeout

    async def _post(
        self,
        client: httpx.AsyncClient,
        payload: dict[str, Any],
        description: str,
        timeout: float | None,
    ) -> Any:
        try:
            response = await client.post(
                self.rpc_url, json=payload, timeout=timeout or self.timeout
            )
            response.raise_for_status()
            return response.json()
        except httpx.TimeoutException as e:
            msg = f"{description} timed out"
            raise ChainUnreachableError(msg) from e
        except httpx.HTTPStatusError as e:
            msg = f"{description} returned HTTP {e.response.status_code}"
            raise ChainUnreachableError(msg) from e
        except httpx.HTTPError as e:
            msg = f"{description} failed: {e}"
            raise ChainUnreachableError(msg) from e
        except ValueError as e:
            msg = f"{description} returned an invalid JSON body"
            raise ChainUnreachableError(msg) from e

    async def send(
        self,
        client: httpx.AsyncClient,
        request: JsonRpcRequest,
        *,
        timeout: float | None = None,
    ) -> Any:
        """Send a prepared request model and return its result value.

        Args:
            client: HTTP client instance
            request: JSON-RPC request model
            timeout: Optional timeout override

        Returns:
            RPC result value (``None`` when the node returned null)

        Raises:
            ChainUnreachableError: If the request fails or the node reports an error
        """
        logger.debug("RPC %s %s", request.method, request.params)
        result = await self._post(
            client, request.model_dump(), request.method, timeout
        )

        if not isinstance(result, dict):
            msg = f"{request.method} returned an unexpected body"
            raise ChainUnreachableError(msg)

        if "error" in result:
            msg = f"{request.method} RPC error: {result['error']}"
            raise ChainUnreachableError(msg)

        return result.get("result")

    async def get_block_number(self, client: httpx.AsyncClient) -> int:
        """Get the latest block number.

        Args:
            client: HTTP client instance

        Returns:
            Latest block number

        Raises:
            ChainUnreachableError: If the node does not report a block number
        """
        result = await self.send(client, EthBlockNumberRequest(id=1))
        if not result:
            msg = "eth_blockNumber returned no result"
            raise ChainUnreachableError(msg)
        return parse_hex_int(result)

    async def get_block_by_number(
        self, client: httpx.AsyncClient, block_number: int
    ) -> dict[str, Any] | None:
        """Get a block with full transaction objects.

        Args:
            client: HTTP client instance
            block_number: Block height

        Returns:
            Raw block dictionary, or None if the node does not know the block
        """
        return await self.send(
            client, EthGetBlockByNumberRequest.for_height(block_number)
        )

    async def get_transaction_receipt(
        self, client: httpx.AsyncClient, tx_hash: str
    ) -> dict[str, Any] | None:
        """Get the receipt of a mined transaction.

        Args:
            client: HTTP client instance
            tx_hash: Transaction hash

        Returns:
            Raw receipt dictionary, or None if the node has no receipt
        """
        return await self.send(
            client, EthGetTransactionReceiptRequest.for_hash(tx_hash)
        )


__all__ = ["RPCClient"]
