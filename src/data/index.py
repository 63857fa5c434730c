"""Read/write access to the search index."""

from collections.abc import Iterable, Sequence
from typing import Any, Protocol

import httpx

from src.data.bulk import BulkResult, encode_bulk_create, parse_bulk_response
from src.data.models import BlockDocument, IndexDocument
from src.helpers.constants import (
    ALL_INDICES,
    BLOCK_INDEX,
    DEFAULT_TIMEOUT,
    ID_LOOKUP_BATCH_SIZE,
)
from src.helpers.errors import (
    BulkPartialFailureError,
    DocumentConflictError,
    IndexUnreachableError,
)
from src.helpers.http import create_http_client, describe_http_error
from src.helpers.logging import get_logger


logger = get_logger(__name__)

NDJSON_CONTENT_TYPE = "application/x-ndjson"

INDEX_MAPPINGS: dict[str, dict[str, Any]] = {
    BLOCK_INDEX: {
        "mappings": {
            "properties": {
                "number": {"type": "unsigned_long"},
                "timestamp": {"type": "long"},
            }
        }
    },
}
"""Explicit mappings applied when an index is created; others are dynamic."""


class IndexStore(Protocol):
    """Search backend as seen by the sync engine.

    Writes are create-only: a document whose ID already exists is rejected
    instead of overwritten, which makes replaying a height a no-op.
    """

    async def latest_indexed_height(self) -> int | None: ...

    async def create_block(self, doc: BlockDocument) -> None: ...

    async def bulk_create(
        self, index: str, docs: Sequence[IndexDocument]
    ) -> BulkResult: ...

    async def find_existing_ids(self, index: str, ids: Iterable[str]) -> set[str]: ...


class ElasticsearchIndexStore:
    """IndexStore backed by the Elasticsearch REST API."""

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        auth: tuple[str, str] | None = None,
        client: httpx.AsyncClient | None = None,
        lookup_batch_size: int = ID_LOOKUP_BATCH_SIZE,
    ) -> None:
        """Initialize the index store.

        Args:
            base_url: Elasticsearch base URL
            timeout: Per-call timeout in seconds
            auth: Optional (username, password) for basic auth
            client: Optional pre-built HTTP client (owned by the caller)
            lookup_batch_size: Maximum IDs per existence lookup request

        Raises:
            ValueError: If base_url is empty
        """
        if not base_url:
            msg = "Elasticsearch URL cannot be empty"
            raise ValueError(msg)

        self.base_url = base_url.rstrip("/")
        self.lookup_batch_size = lookup_batch_size
        self._owns_client = client is None
        self.client = client or create_http_client(
            timeout=timeout, base_url=self.base_url, auth=auth
        )

    async def _request(
        self, method: str, path: str, description: str, **kwargs: Any
    ) -> httpx.Response:
        try:
            return await self.client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            msg = f"{description} failed: {describe_http_error(e)}"
            raise IndexUnreachableError(msg) from e

    @staticmethod
    def _json(response: httpx.Response, description: str) -> dict[str, Any]:
        try:
            body = response.json()
        except ValueError as e:
            msg = f"{description} returned an invalid JSON body"
            raise IndexUnreachableError(msg) from e
        if not isinstance(body, dict):
            msg = f"{description} returned an unexpected body"
            raise IndexUnreachableError(msg)
        return body

    @staticmethod
    def _raise_for_status(response: httpx.Response, description: str) -> None:
        if response.is_success:
            return
        body = response.text[:200] if response.text else ""
        msg = f"{description} returned HTTP {response.status_code} {body}".strip()
        raise IndexUnreachableError(msg)

    async def ensure_indices(self, indices: Iterable[str] = ALL_INDICES) -> None:
        """Create any missing index, applying the explicit mappings.

        Raises:
            IndexUnreachableError: If an index can neither be found nor created
        """
        for index in indices:
            response = await self._request("HEAD", f"/{index}", f"check index {index}")
            if response.status_code == 200:
                continue
            if response.status_code != 404:
                self._raise_for_status(response, f"check index {index}")

            response = await self._request(
                "PUT",
                f"/{index}",
                f"create index {index}",
                json=INDEX_MAPPINGS.get(index, {}),
            )
            if response.status_code == 400 and "resource_already_exists" in response.text:
                continue
            self._raise_for_status(response, f"create index {index}")
            logger.info("Created index %s", index)

    async def latest_indexed_height(self) -> int | None:
        """Highest indexed block height, or None for an empty index."""
        description = "latest indexed height lookup"
        response = await self._request(
            "POST",
            f"/{BLOCK_INDEX}/_search",
            description,
            json={
                "size": 1,
                "sort": [{"number": {"order": "desc"}}],
                "_source": ["number"],
            },
        )
        if response.status_code == 404:
            return None
        self._raise_for_status(response, description)

        hits = self._json(response, description).get("hits", {}).get("hits", [])
        if not hits:
            return None
        return int(hits[0]["_source"]["number"])

    async def create_block(self, doc: BlockDocument) -> None:
        """Create the block document.

        Raises:
            DocumentConflictError: If a document for this height already exists
            IndexUnreachableError: On any other failure
        """
        description = f"create block {doc.doc_id}"
        response = await self._request(
            "PUT",
            f"/{doc.index}/_create/{doc.doc_id}",
            description,
            json=doc.to_source(),
        )
        if response.status_code == 409:
            raise DocumentConflictError(doc.index, doc.doc_id)
        self._raise_for_status(response, description)

    async def bulk_create(
        self, index: str, docs: Sequence[IndexDocument]
    ) -> BulkResult:
        """Create documents in one bulk request, skipping existing IDs.

        Raises:
            IndexUnreachableError: If the request cannot be delivered
            BulkPartialFailureError: If the request or any item fails for a
                reason other than an ID conflict
        """
        if not docs:
            return BulkResult()

        description = f"bulk create into {index}"
        response = await self._request(
            "POST",
            "/_bulk",
            description,
            content=encode_bulk_create(index, docs).encode(),
            headers={"Content-Type": NDJSON_CONTENT_TYPE},
        )
        if not response.is_success:
            raise BulkPartialFailureError(index, f"HTTP {response.status_code}")

        result = parse_bulk_response(self._json(response, description))
        if result.total < len(docs):
            raise BulkPartialFailureError(
                index,
                f"response reported {result.total} of {len(docs)} documents",
            )
        if result.failures:
            failed_id, reason = result.failures[0]
            raise BulkPartialFailureError(
                index,
                f"{len(result.failures)} item(s) rejected, first {failed_id}: {reason}",
                [doc_id for doc_id, _ in result.failures],
            )

        logger.debug(
            "Bulk create into %s: %d created, %d already indexed",
            index,
            result.created,
            result.conflicts,
        )
        return result

    async def find_existing_ids(self, index: str, ids: Iterable[str]) -> set[str]:
        """Return the subset of ``ids`` already present in ``index``.

        Uses realtime multi-get, so documents created by earlier writes are
        visible without waiting for an index refresh.
        """
        unique_ids = list(dict.fromkeys(ids))
        existing: set[str] = set()
        description = f"id lookup in {index}"

        for i in range(0, len(unique_ids), self.lookup_batch_size):
            chunk = unique_ids[i : i + self.lookup_batch_size]
            response = await self._request(
                "POST",
                f"/{index}/_mget",
                description,
                params={"_source": "false"},
                json={"ids": chunk},
            )
            if response.status_code == 404:
                return existing
            self._raise_for_status(response, description)

            for doc in self._json(response, description).get("docs", []):
                if doc.get("found"):
                    existing.add(doc["_id"])

        return existing

    async def aclose(self) -> None:
        """Close the HTTP client if this store created it."""
        if self._owns_client:
            await self.client.aclose()


__all__ = ["INDEX_MAPPINGS", "ElasticsearchIndexStore", "IndexStore"]
