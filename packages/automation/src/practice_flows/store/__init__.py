"""Document store implementations."""

from practice_flows.config import get_settings
from practice_flows.store.base import DocumentStore, Filter, WriteBatch, matches, new_id
from practice_flows.store.firestore import FirestoreStore
from practice_flows.store.memory import InMemoryStore


def create_store() -> DocumentStore:
    """Build the store selected by ``STORE_BACKEND``."""
    if get_settings().store_backend == "firestore":
        return FirestoreStore()
    return InMemoryStore()


__all__ = [
    "DocumentStore",
    "Filter",
    "WriteBatch",
    "matches",
    "new_id",
    "InMemoryStore",
    "FirestoreStore",
    "create_store",
]
