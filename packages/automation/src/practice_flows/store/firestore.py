"""Firestore-backed document store speaking the REST v1 API over httpx."""

import asyncio
from collections.abc import Sequence
from typing import Any

import httpx
import structlog

from practice_flows.config import get_settings
from practice_flows.errors import StoreError
from practice_flows.store.base import DocumentStore, Filter, WriteBatch

logger = structlog.get_logger(__name__)

_OPERATORS = {
    "==": "EQUAL",
    "!=": "NOT_EQUAL",
    "<": "LESS_THAN",
    "<=": "LESS_THAN_OR_EQUAL",
    ">": "GREATER_THAN",
    ">=": "GREATER_THAN_OR_EQUAL",
    "array-contains": "ARRAY_CONTAINS",
    "in": "IN",
}


def encode_value(value: Any) -> dict[str, Any]:
    """Convert a Python value to a Firestore typed ``Value``."""
    if value is None:
        return {"nullValue": None}
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(v) for v in value]}}
    if isinstance(value, dict):
        return {"mapValue": {"fields": encode_fields(value)}}
    raise TypeError(f"Cannot store value of type {type(value).__name__}")


def encode_fields(data: dict[str, Any]) -> dict[str, Any]:
    return {key: encode_value(value) for key, value in data.items()}


def decode_value(value: dict[str, Any]) -> Any:
    """Convert a Firestore typed ``Value`` back to a Python value."""
    if "nullValue" in value:
        return None
    if "booleanValue" in value:
        return value["booleanValue"]
    if "integerValue" in value:
        return int(value["integerValue"])
    if "doubleValue" in value:
        return float(value["doubleValue"])
    if "stringValue" in value:
        return value["stringValue"]
    if "timestampValue" in value:
        return value["timestampValue"]
    if "referenceValue" in value:
        return value["referenceValue"]
    if "arrayValue" in value:
        return [decode_value(v) for v in value["arrayValue"].get("values", [])]
    if "mapValue" in value:
        return decode_fields(value["mapValue"].get("fields", {}))
    raise StoreError(f"Unsupported Firestore value: {sorted(value)}")


def decode_fields(fields: dict[str, Any]) -> dict[str, Any]:
    return {key: decode_value(value) for key, value in fields.items()}


def decode_document(document: dict[str, Any]) -> dict[str, Any]:
    data = decode_fields(document.get("fields", {}))
    data.setdefault("id", document["name"].rsplit("/", 1)[-1])
    return data


class FirestoreBatch(WriteBatch):
    def __init__(self, store: "FirestoreStore"):
        super().__init__()
        self._store = store

    async def commit(self) -> None:
        if not self._writes:
            return
        writes = [
            self._store._build_write(kind, collection, doc_id, data)
            for kind, collection, doc_id, data in self._writes
        ]
        await self._store._commit(writes)


class FirestoreStore(DocumentStore):
    """Async Firestore client.

    Batches and single writes both go through ``documents:commit``, which
    applies its writes atomically.
    """

    def __init__(
        self,
        project_id: str | None = None,
        database: str | None = None,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        max_retries: int = 3,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()
        self._project_id = project_id or settings.firestore_project_id
        if not self._project_id:
            raise StoreError("FIRESTORE_PROJECT_ID is not configured")
        self._database = database or settings.firestore_database
        self.base_url = (base_url or settings.firestore_base_url).rstrip("/")
        self._token = token if token is not None else settings.firestore_token.get_secret_value()
        self._timeout = timeout or settings.firestore_timeout
        self._max_retries = max_retries
        self._transport = transport

        self._client: httpx.AsyncClient | None = None
        self._logger = logger.bind(project=self._project_id, database=self._database)

    @property
    def _root(self) -> str:
        return f"projects/{self._project_id}/databases/{self._database}/documents"

    def _document_name(self, collection: str, doc_id: str) -> str:
        return f"{self._root}/{collection}/{doc_id}"

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self._timeout),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "FirestoreStore":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def _get_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
        allow_not_found: bool = False,
        retry_count: int = 0,
    ) -> Any:
        """Send one request, retrying transport failures with backoff."""
        client = await self._get_client()
        try:
            response = await client.request(
                method=method,
                url=f"/{path}",
                json=json,
                headers=self._get_headers(),
            )
        except httpx.RequestError as e:
            if retry_count < self._max_retries:
                await asyncio.sleep(2**retry_count)
                return await self._request(method, path, json, allow_not_found, retry_count + 1)
            raise StoreError(f"Request failed: {e}") from e

        if response.status_code == 404 and allow_not_found:
            return None

        if response.status_code >= 400:
            try:
                error_detail = response.json() if response.content else {}
            except ValueError:
                error_detail = {"raw": response.text[:500] if response.text else "empty response"}
            self._logger.warning(
                "firestore_error", status=response.status_code, path=path
            )
            raise StoreError(
                f"Firestore error: {response.status_code}",
                status_code=response.status_code,
                details=error_detail,
            )

        return response.json() if response.content else {}

    # === Reads ===

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        document = await self._request(
            "GET", self._document_name(collection, doc_id), allow_not_found=True
        )
        if document is None:
            return None
        return decode_document(document)

    def _build_where(self, filters: Sequence[Filter]) -> dict[str, Any] | None:
        field_filters = [
            {
                "fieldFilter": {
                    "field": {"fieldPath": condition.field},
                    "op": _OPERATORS[condition.op],
                    "value": encode_value(condition.value),
                }
            }
            for condition in filters
        ]
        if not field_filters:
            return None
        if len(field_filters) == 1:
            return field_filters[0]
        return {"compositeFilter": {"op": "AND", "filters": field_filters}}

    async def query(
        self, collection: str, filters: Sequence[Filter] = ()
    ) -> list[dict[str, Any]]:
        structured_query: dict[str, Any] = {"from": [{"collectionId": collection}]}
        where = self._build_where(filters)
        if where:
            structured_query["where"] = where

        rows = await self._request(
            "POST", f"{self._root}:runQuery", json={"structuredQuery": structured_query}
        )
        # runQuery streams one row per result; rows without a document only
        # carry read metadata.
        results = [decode_document(row["document"]) for row in rows if "document" in row]
        self._logger.debug("query_executed", collection=collection, results=len(results))
        return results

    # === Writes ===

    def _build_write(
        self, kind: str, collection: str, doc_id: str, data: dict[str, Any]
    ) -> dict[str, Any]:
        write: dict[str, Any] = {
            "update": {
                "name": self._document_name(collection, doc_id),
                "fields": encode_fields(data),
            }
        }
        if kind == "update":
            write["updateMask"] = {"fieldPaths": list(data)}
            write["currentDocument"] = {"exists": True}
        return write

    async def _commit(self, writes: list[dict[str, Any]]) -> None:
        await self._request("POST", f"{self._root}:commit", json={"writes": writes})
        self._logger.debug("commit_applied", writes=len(writes))

    async def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        await self._commit([self._build_write("set", collection, doc_id, data)])

    async def update(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        await self._commit([self._build_write("update", collection, doc_id, data)])

    def batch(self) -> FirestoreBatch:
        return FirestoreBatch(self)
