"""Newline-delimited bulk encoding for create-only document writes."""

import json
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from src.data.models import IndexDocument


CONFLICT_STATUS = 409


@dataclass
class BulkResult:
    """Outcome of one bulk create request."""

    created: int = 0
    conflicts: int = 0
    failures: list[tuple[str, str]] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.created + self.conflicts + len(self.failures)


def _dumps(value: dict[str, Any]) -> str:
    return json.dumps(value, separators=(",", ":"))


def encode_bulk_create(index: str, docs: Iterable[IndexDocument]) -> str:
    """Encode documents as create directives for the ``_bulk`` endpoint.

    Each document becomes two lines: the ``create`` directive naming its
    index and ID, then its source. The body ends with a newline.

    Example:
        >>> from src.data.models import AddressDocument, AddressKind
        >>> doc = AddressDocument(address="0xab", kind=AddressKind.CONTRACT)
        >>> print(encode_bulk_create("address", [doc]), end="")
        {"create":{"_index":"address","_id":"0xab"}}
        {"address":"0xab","type":2}
    """
    lines: list[str] = []
    for doc in docs:
        lines.append(_dumps({"create": {"_index": index, "_id": doc.doc_id}}))
        lines.append(_dumps(doc.to_source()))
    if not lines:
        return ""
    return "\n".join(lines) + "\n"


def parse_bulk_response(body: dict[str, Any]) -> BulkResult:
    """Tally per-item outcomes of a bulk create response.

    Conflicts are counted separately from other failures because they mean
    the document is already indexed.
    """
    result = BulkResult()
    items: Sequence[dict[str, Any]] = body.get("items") or []
    for item in items:
        outcome = item.get("create") or next(iter(item.values()), {})
        status = int(outcome.get("status", 0))
        if 200 <= status < 300:
            result.created += 1
        elif status == CONFLICT_STATUS:
            result.conflicts += 1
        else:
            error = outcome.get("error") or {}
            if isinstance(error, dict):
                reason = error.get("reason") or error.get("type") or f"status {status}"
            else:
                reason = str(error)
            result.failures.append((str(outcome.get("_id", "")), reason))
    return result


__all__ = ["BulkResult", "encode_bulk_create", "parse_bulk_response"]
