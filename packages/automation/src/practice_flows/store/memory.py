"""In-process document store for tests and local runs."""

import copy
from collections.abc import Sequence
from typing import Any

import structlog

from practice_flows.errors import StoreError
from practice_flows.store.base import DocumentStore, Filter, WriteBatch, matches

logger = structlog.get_logger(__name__)


class InMemoryBatch(WriteBatch):
    def __init__(self, store: "InMemoryStore"):
        super().__init__()
        self._store = store

    async def commit(self) -> None:
        # Check every precondition before touching anything so a failing
        # update leaves the store untouched.
        for kind, collection, doc_id, _ in self._writes:
            if kind == "update" and doc_id not in self._store._data.get(collection, {}):
                raise StoreError(
                    f"Cannot update missing document {collection}/{doc_id}",
                    status_code=404,
                )
        for kind, collection, doc_id, data in self._writes:
            self._store._apply(kind, collection, doc_id, data)
        logger.debug("batch_committed", writes=len(self._writes))


class InMemoryStore(DocumentStore):
    """Dictionary-backed store. Documents are deep-copied on the way in and out."""

    def __init__(self, seed: dict[str, list[dict[str, Any]]] | None = None):
        self._data: dict[str, dict[str, dict[str, Any]]] = {}
        self.reads = 0
        self.writes = 0
        for collection, documents in (seed or {}).items():
            for document in documents:
                self._apply("set", collection, document["id"], document)
        self.writes = 0

    def _apply(self, kind: str, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        documents = self._data.setdefault(collection, {})
        if kind == "set":
            documents[doc_id] = copy.deepcopy(data)
        else:
            documents[doc_id].update(copy.deepcopy(data))
        self.writes += 1

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        self.reads += 1
        document = self._data.get(collection, {}).get(doc_id)
        return copy.deepcopy(document) if document is not None else None

    async def query(
        self, collection: str, filters: Sequence[Filter] = ()
    ) -> list[dict[str, Any]]:
        self.reads += 1
        return [
            copy.deepcopy(document)
            for document in self._data.get(collection, {}).values()
            if all(matches(document, condition) for condition in filters)
        ]

    async def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        self._apply("set", collection, doc_id, data)

    async def update(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        if doc_id not in self._data.get(collection, {}):
            raise StoreError(
                f"Cannot update missing document {collection}/{doc_id}", status_code=404
            )
        self._apply("update", collection, doc_id, data)

    def batch(self) -> InMemoryBatch:
        return InMemoryBatch(self)

    def dump(self, collection: str) -> list[dict[str, Any]]:
        """Snapshot of a whole collection, for assertions."""
        return [copy.deepcopy(d) for d in self._data.get(collection, {}).values()]
