"""Exception hierarchy for the chain and index clients and the sync pipeline.

Transport-level ``httpx`` errors are translated into these types at the
client boundary so the sync engine can tell a tolerated create conflict
apart from everything that must halt the process.
"""


class ExplorerError(Exception):
    """Base class for all sync errors."""


class ChainError(ExplorerError):
    """Error raised while reading from the chain node."""


class ChainUnreachableError(ChainError):
    """The chain node could not be reached or returned an unusable response."""


class ChainNotFoundError(ChainError):
    """The chain node has no block or receipt for the requested key."""


class ChainInconsistencyError(ChainError):
    """A block below the reported chain head is missing."""

    def __init__(self, height: int, head: int) -> None:
        self.height = height
        self.head = head
        super().__init__(
            f"Block {height} not found although the chain head is {head}"
        )


class IndexStoreError(ExplorerError):
    """Error raised while talking to the search backend."""


class IndexUnreachableError(IndexStoreError):
    """The search backend could not be reached or rejected the request."""


class DocumentConflictError(IndexStoreError):
    """A create-only write hit a document ID that already exists."""

    def __init__(self, index: str, doc_id: str) -> None:
        self.index = index
        self.doc_id = doc_id
        super().__init__(f"Document {doc_id} already exists in index {index}")


class BulkPartialFailureError(IndexStoreError):
    """A bulk request failed as a whole or for reasons other than conflicts."""

    def __init__(
        self, index: str, message: str, failed_ids: list[str] | None = None
    ) -> None:
        self.index = index
        self.failed_ids = failed_ids or []
        super().__init__(f"Bulk create into {index} failed: {message}")


class DocumentBuildError(ExplorerError):
    """A block or transaction could not be decoded into documents."""


__all__ = [
    "BulkPartialFailureError",
    "ChainError",
    "ChainInconsistencyError",
    "ChainNotFoundError",
    "ChainUnreachableError",
    "DocumentBuildError",
    "DocumentConflictError",
    "ExplorerError",
    "IndexStoreError",
    "IndexUnreachableError",
]
