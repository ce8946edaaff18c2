"""Document store interface used by tools, flows and appliers.

The store is a set of named collections of JSON documents keyed by string id.
Reads are point lookups or filtered queries; writes are whole-document ``set``
or partial ``update``. There is deliberately no delete.
"""

import asyncio
import secrets
import string
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Literal

FilterOp = Literal["==", "!=", "<", "<=", ">", ">=", "array-contains", "in"]

_ID_ALPHABET = string.ascii_letters + string.digits


def new_id() -> str:
    """Generate a 20 character auto-id, the same shape Firestore uses."""
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(20))


@dataclass(frozen=True)
class Filter:
    """One ``field op value`` condition. Conditions in a query are ANDed."""

    field: str
    op: FilterOp
    value: Any


def matches(document: dict[str, Any], condition: Filter) -> bool:
    """Evaluate a filter against a document.

    Documents missing the field never match, including for ``!=``.
    """
    if condition.field not in document:
        return False
    actual = document[condition.field]
    expected = condition.value

    if condition.op == "array-contains":
        return isinstance(actual, list) and expected in actual
    if condition.op == "in":
        return actual in expected
    if condition.op == "==":
        return actual == expected
    if condition.op == "!=":
        return actual != expected

    try:
        if condition.op == "<":
            return actual < expected
        if condition.op == "<=":
            return actual <= expected
        if condition.op == ">":
            return actual > expected
        if condition.op == ">=":
            return actual >= expected
    except TypeError:
        return False
    raise ValueError(f"Unsupported filter operator: {condition.op!r}")


class WriteBatch(ABC):
    """Group of writes committed all-or-nothing."""

    def __init__(self) -> None:
        self._writes: list[tuple[str, str, str, dict[str, Any]]] = []

    def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> "WriteBatch":
        self._writes.append(("set", collection, doc_id, dict(data)))
        return self

    def update(self, collection: str, doc_id: str, data: dict[str, Any]) -> "WriteBatch":
        self._writes.append(("update", collection, doc_id, dict(data)))
        return self

    def __len__(self) -> int:
        return len(self._writes)

    @abstractmethod
    async def commit(self) -> None:
        """Apply every queued write atomically."""


class DocumentStore(ABC):
    """Abstract document store."""

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        """Return one document, or None when it does not exist."""

    @abstractmethod
    async def query(
        self, collection: str, filters: Sequence[Filter] = ()
    ) -> list[dict[str, Any]]:
        """Return every document matching all filters (all documents if none)."""

    @abstractmethod
    async def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        """Create or overwrite a document."""

    @abstractmethod
    async def update(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        """Merge fields into an existing document."""

    @abstractmethod
    def batch(self) -> WriteBatch:
        """Start a new atomic write batch."""

    async def get_many(
        self, collection: str, doc_ids: Sequence[str]
    ) -> list[dict[str, Any] | None]:
        """Point-read several documents concurrently, preserving order."""
        return list(await asyncio.gather(*(self.get(collection, i) for i in doc_ids)))

    async def fetch_all(self, collection: str) -> list[dict[str, Any]]:
        return await self.query(collection)

    async def close(self) -> None:
        """Release transport resources, if any."""
        return None
