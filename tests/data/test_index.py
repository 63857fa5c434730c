"""Tests for the Elasticsearch index store using pytest-httpx."""

import json
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING

import httpx
import pytest
import pytest_asyncio

from src.data.builder import build_block_document
from src.data.index import ElasticsearchIndexStore
from src.data.models import AddressDocument, AddressKind
from src.helpers.errors import (
    BulkPartialFailureError,
    DocumentConflictError,
    IndexUnreachableError,
)
from tests.fakes import addr, make_raw_block


if TYPE_CHECKING:
    from pytest_httpx import HTTPXMock


ES = "http://es.test:9200"


@pytest_asyncio.fixture
async def es_store() -> AsyncIterator[ElasticsearchIndexStore]:
    """Index store pointed at the mocked backend."""
    store = ElasticsearchIndexStore(ES, timeout=5.0)
    yield store
    await store.aclose()


def address_docs(*ns: int) -> list[AddressDocument]:
    return [AddressDocument(address=addr(n), kind=AddressKind.EXTERNALLY_OWNED) for n in ns]


class TestInit:
    """Tests for ElasticsearchIndexStore construction."""

    def test_empty_url_raises(self) -> None:
        """Test that an empty URL raises ValueError."""
        with pytest.raises(ValueError, match="Elasticsearch URL cannot be empty"):
            ElasticsearchIndexStore("")

    def test_trailing_slash_is_stripped(self) -> None:
        """Test the base URL is normalized."""
        store = ElasticsearchIndexStore(ES + "/")

        assert store.base_url == ES


class TestCreateBlock:
    """Tests for create_block."""

    @pytest.mark.asyncio
    async def test_create_block_success(
        self, es_store: ElasticsearchIndexStore, httpx_mock: "HTTPXMock"
    ) -> None:
        """Test the block is written with the create-only endpoint."""
        doc = build_block_document(make_raw_block(5))
        httpx_mock.add_response(
            method="PUT", url=f"{ES}/block/_create/5", status_code=201, json={"result": "created"}
        )

        await es_store.create_block(doc)

        request = httpx_mock.get_request()
        assert request is not None
        assert json.loads(request.content) == doc.to_source()

    @pytest.mark.asyncio
    async def test_create_block_conflict(
        self, es_store: ElasticsearchIndexStore, httpx_mock: "HTTPXMock"
    ) -> None:
        """Test an existing height raises DocumentConflictError."""
        httpx_mock.add_response(
            method="PUT", url=f"{ES}/block/_create/5", status_code=409, json={}
        )

        with pytest.raises(DocumentConflictError) as exc_info:
            await es_store.create_block(build_block_document(make_raw_block(5)))

        assert exc_info.value.doc_id == "5"

    @pytest.mark.asyncio
    async def test_create_block_server_error(
        self, es_store: ElasticsearchIndexStore, httpx_mock: "HTTPXMock"
    ) -> None:
        """Test a server error raises IndexUnreachableError."""
        httpx_mock.add_response(
            method="PUT", url=f"{ES}/block/_create/5", status_code=503, text="unavailable"
        )

        with pytest.raises(IndexUnreachableError, match="HTTP 503"):
            await es_store.create_block(build_block_document(make_raw_block(5)))

    @pytest.mark.asyncio
    async def test_create_block_transport_error(
        self, es_store: ElasticsearchIndexStore, httpx_mock: "HTTPXMock"
    ) -> None:
        """Test a connection failure raises IndexUnreachableError."""
        httpx_mock.add_exception(httpx.ConnectError("refused"))

        with pytest.raises(IndexUnreachableError, match="ConnectError"):
            await es_store.create_block(build_block_document(make_raw_block(5)))


class TestBulkCreate:
    """Tests for bulk_create."""

    @pytest.mark.asyncio
    async def test_encodes_create_directives(
        self, es_store: ElasticsearchIndexStore, httpx_mock: "HTTPXMock"
    ) -> None:
        """Test the body pairs a create directive with each document."""
        httpx_mock.add_response(
            method="POST",
            url=f"{ES}/_bulk",
            json={
                "errors": False,
                "items": [
                    {"create": {"_id": addr(1), "status": 201}},
                    {"create": {"_id": addr(2), "status": 201}},
                ],
            },
        )

        result = await es_store.bulk_create("address", address_docs(1, 2))

        assert result.created == 2
        request = httpx_mock.get_request()
        assert request is not None
        assert request.headers["Content-Type"] == "application/x-ndjson"
        lines = request.content.decode().splitlines()
        assert [json.loads(line) for line in lines] == [
            {"create": {"_index": "address", "_id": addr(1)}},
            {"address": addr(1), "type": 1},
            {"create": {"_index": "address", "_id": addr(2)}},
            {"address": addr(2), "type": 1},
        ]
        assert request.content.endswith(b"\n")

    @pytest.mark.asyncio
    async def test_conflicts_are_not_errors(
        self, es_store: ElasticsearchIndexStore, httpx_mock: "HTTPXMock"
    ) -> None:
        """Test per-item conflicts are counted and skipped."""
        httpx_mock.add_response(
            method="POST",
            url=f"{ES}/_bulk",
            json={
                "errors": True,
                "items": [
                    {"create": {"_id": addr(1), "status": 201}},
                    {
                        "create": {
                            "_id": addr(2),
                            "status": 409,
                            "error": {"type": "version_conflict_engine_exception"},
                        }
                    },
                ],
            },
        )

        result = await es_store.bulk_create("address", address_docs(1, 2))

        assert result.created == 1
        assert result.conflicts == 1

    @pytest.mark.asyncio
    async def test_item_failure_raises(
        self, es_store: ElasticsearchIndexStore, httpx_mock: "HTTPXMock"
    ) -> None:
        """Test an item rejected for another reason fails the request."""
        httpx_mock.add_response(
            method="POST",
            url=f"{ES}/_bulk",
            json={
                "errors": True,
                "items": [
                    {
                        "create": {
                            "_id": addr(1),
                            "status": 400,
                            "error": {
                                "type": "mapper_parsing_exception",
                                "reason": "failed to parse",
                            },
                        }
                    },
                ],
            },
        )

        with pytest.raises(BulkPartialFailureError, match="failed to parse") as exc_info:
            await es_store.bulk_create("address", address_docs(1))

        assert exc_info.value.failed_ids == [addr(1)]

    @pytest.mark.asyncio
    async def test_http_error_raises(
        self, es_store: ElasticsearchIndexStore, httpx_mock: "HTTPXMock"
    ) -> None:
        """Test a failed bulk request raises BulkPartialFailureError."""
        httpx_mock.add_response(method="POST", url=f"{ES}/_bulk", status_code=500)

        with pytest.raises(BulkPartialFailureError, match="HTTP 500"):
            await es_store.bulk_create("address", address_docs(1))

    @pytest.mark.asyncio
    async def test_missing_items_raises(
        self, es_store: ElasticsearchIndexStore, httpx_mock: "HTTPXMock"
    ) -> None:
        """Test a response that does not account for every document fails."""
        httpx_mock.add_response(
            method="POST",
            url=f"{ES}/_bulk",
            json={"errors": False, "items": [{"create": {"_id": addr(1), "status": 201}}]},
        )

        with pytest.raises(BulkPartialFailureError, match="reported 1 of 2 documents"):
            await es_store.bulk_create("address", address_docs(1, 2))

    @pytest.mark.asyncio
    async def test_response_without_items_raises(
        self, es_store: ElasticsearchIndexStore, httpx_mock: "HTTPXMock"
    ) -> None:
        """Test a 2xx body with no items is not taken as success."""
        httpx_mock.add_response(method="POST", url=f"{ES}/_bulk", json={"errors": False})

        with pytest.raises(BulkPartialFailureError, match="reported 0 of 1 documents"):
            await es_store.bulk_create("address", address_docs(1))

    @pytest.mark.asyncio
    async def test_empty_batch_sends_nothing(
        self, es_store: ElasticsearchIndexStore, httpx_mock: "HTTPXMock"
    ) -> None:
        """Test an empty document list issues no request."""
        result = await es_store.bulk_create("tx", [])

        assert result.total == 0
        assert httpx_mock.get_requests() == []


class TestFindExistingIds:
    """Tests for find_existing_ids."""

    @pytest.mark.asyncio
    async def test_returns_found_ids(
        self, es_store: ElasticsearchIndexStore, httpx_mock: "HTTPXMock"
    ) -> None:
        """Test only documents reported as found are returned."""
        httpx_mock.add_response(
            method="POST",
            url=f"{ES}/address/_mget?_source=false",
            json={
                "docs": [
                    {"_id": addr(1), "found": True},
                    {"_id": addr(2), "found": False},
                ]
            },
        )

        existing = await es_store.find_existing_ids("address", [addr(1), addr(2)])

        assert existing == {addr(1)}
        request = httpx_mock.get_request()
        assert request is not None
        assert json.loads(request.content) == {"ids": [addr(1), addr(2)]}

    @pytest.mark.asyncio
    async def test_lookup_is_chunked(self, httpx_mock: "HTTPXMock") -> None:
        """Test large lookups are split into batches."""
        store = ElasticsearchIndexStore(ES, lookup_batch_size=2)
        httpx_mock.add_response(
            method="POST",
            url=f"{ES}/address/_mget?_source=false",
            json={"docs": [{"_id": addr(1), "found": True}, {"_id": addr(2), "found": False}]},
        )
        httpx_mock.add_response(
            method="POST",
            url=f"{ES}/address/_mget?_source=false",
            json={"docs": [{"_id": addr(3), "found": True}]},
        )

        existing = await store.find_existing_ids("address", [addr(1), addr(2), addr(3), addr(1)])
        await store.aclose()

        assert existing == {addr(1), addr(3)}
        assert len(httpx_mock.get_requests()) == 2

    @pytest.mark.asyncio
    async def test_later_missing_chunk_keeps_earlier_hits(self, httpx_mock: "HTTPXMock") -> None:
        """Test a 404 on a later batch keeps IDs found in earlier batches."""
        store = ElasticsearchIndexStore(ES, lookup_batch_size=2)
        httpx_mock.add_response(
            method="POST",
            url=f"{ES}/address/_mget?_source=false",
            json={"docs": [{"_id": addr(1), "found": True}, {"_id": addr(2), "found": False}]},
        )
        httpx_mock.add_response(
            method="POST", url=f"{ES}/address/_mget?_source=false", status_code=404
        )

        existing = await store.find_existing_ids("address", [addr(1), addr(2), addr(3)])
        await store.aclose()

        assert existing == {addr(1)}

    @pytest.mark.asyncio
    async def test_missing_index_means_nothing_exists(
        self, es_store: ElasticsearchIndexStore, httpx_mock: "HTTPXMock"
    ) -> None:
        """Test a missing index is treated as empty."""
        httpx_mock.add_response(
            method="POST", url=f"{ES}/address/_mget?_source=false", status_code=404
        )

        assert await es_store.find_existing_ids("address", [addr(1)]) == set()


class TestLatestIndexedHeight:
    """Tests for latest_indexed_height."""

    @pytest.mark.asyncio
    async def test_returns_highest_number(
        self, es_store: ElasticsearchIndexStore, httpx_mock: "HTTPXMock"
    ) -> None:
        """Test the height comes from the top hit sorted by number."""
        httpx_mock.add_response(
            method="POST",
            url=f"{ES}/block/_search",
            json={"hits": {"hits": [{"_id": "42", "_source": {"number": "42"}}]}},
        )

        assert await es_store.latest_indexed_height() == 42
        request = httpx_mock.get_request()
        assert request is not None
        body = json.loads(request.content)
        assert body["sort"] == [{"number": {"order": "desc"}}]
        assert body["size"] == 1

    @pytest.mark.asyncio
    async def test_empty_index(
        self, es_store: ElasticsearchIndexStore, httpx_mock: "HTTPXMock"
    ) -> None:
        """Test an empty index reports no height."""
        httpx_mock.add_response(
            method="POST", url=f"{ES}/block/_search", json={"hits": {"hits": []}}
        )

        assert await es_store.latest_indexed_height() is None

    @pytest.mark.asyncio
    async def test_missing_index(
        self, es_store: ElasticsearchIndexStore, httpx_mock: "HTTPXMock"
    ) -> None:
        """Test a missing block index reports no height."""
        httpx_mock.add_response(method="POST", url=f"{ES}/block/_search", status_code=404)

        assert await es_store.latest_indexed_height() is None


class TestEnsureIndices:
    """Tests for ensure_indices."""

    @pytest.mark.asyncio
    async def test_creates_missing_indices(
        self, es_store: ElasticsearchIndexStore, httpx_mock: "HTTPXMock"
    ) -> None:
        """Test missing indices are created and existing ones left alone."""
        httpx_mock.add_response(method="HEAD", url=f"{ES}/block", status_code=404)
        httpx_mock.add_response(method="PUT", url=f"{ES}/block", json={"acknowledged": True})
        httpx_mock.add_response(method="HEAD", url=f"{ES}/tx", status_code=200)
        httpx_mock.add_response(method="HEAD", url=f"{ES}/address", status_code=404)
        httpx_mock.add_response(
            method="PUT",
            url=f"{ES}/address",
            status_code=400,
            json={"error": {"type": "resource_already_exists_exception"}},
        )

        await es_store.ensure_indices()

        create_block = httpx_mock.get_request(method="PUT", url=f"{ES}/block")
        assert create_block is not None
        mapping = json.loads(create_block.content)
        assert mapping["mappings"]["properties"]["number"]["type"] == "unsigned_long"

    @pytest.mark.asyncio
    async def test_unexpected_status_raises(
        self, es_store: ElasticsearchIndexStore, httpx_mock: "HTTPXMock"
    ) -> None:
        """Test an unexpected response to the existence check raises."""
        httpx_mock.add_response(method="HEAD", url=f"{ES}/block", status_code=401)

        with pytest.raises(IndexUnreachableError, match="HTTP 401"):
            await es_store.ensure_indices()
