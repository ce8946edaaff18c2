"""Tests for the Firestore REST document store."""

import json

import httpx
import pytest

from practice_flows.errors import StoreError
from practice_flows.store import Filter, FirestoreStore
from practice_flows.store.firestore import decode_value, encode_value

ROOT = "projects/demo/databases/(default)/documents"


def make_store(handler, token: str = "") -> FirestoreStore:
    return FirestoreStore(
        project_id="demo",
        base_url="http://emulator:8080/v1",
        token=token,
        max_retries=0,
        transport=httpx.MockTransport(handler),
    )


class TestValueEncoding:
    """Tests for Firestore typed values."""

    def test_encode_nested_document(self):
        encoded = encode_value({"assignedTo": ["E001"], "fees": 5000, "isActive": True})

        fields = encoded["mapValue"]["fields"]
        assert fields["assignedTo"] == {"arrayValue": {"values": [{"stringValue": "E001"}]}}
        assert fields["fees"] == {"integerValue": "5000"}
        assert fields["isActive"] == {"booleanValue": True}

    def test_bool_is_not_encoded_as_integer(self):
        assert encode_value(False) == {"booleanValue": False}

    def test_decode_empty_array_and_timestamp(self):
        assert decode_value({"arrayValue": {}}) == []
        assert decode_value({"timestampValue": "2025-06-15T10:30:00Z"}) == "2025-06-15T10:30:00Z"

    def test_unsupported_values_raise(self):
        with pytest.raises(TypeError):
            encode_value(object())
        with pytest.raises(StoreError):
            decode_value({"geoPointValue": {}})


class TestFirestoreStore:
    """Tests for FirestoreStore over a mocked transport."""

    def test_requires_project_id(self, monkeypatch):
        monkeypatch.setenv("FIRESTORE_PROJECT_ID", "")
        with pytest.raises(StoreError):
            FirestoreStore()

    @pytest.mark.asyncio
    async def test_get_decodes_document(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "GET"
            assert request.url.path.endswith("/documents/clients/C001")
            return httpx.Response(
                200,
                json={
                    "name": f"{ROOT}/clients/C001",
                    "fields": {
                        "name": {"stringValue": "Acme Traders"},
                        "fees": {"integerValue": "5000"},
                        "linkedClientIds": {"arrayValue": {}},
                    },
                },
            )

        async with make_store(handler) as store:
            doc = await store.get("clients", "C001")

        assert doc == {"id": "C001", "name": "Acme Traders", "fees": 5000, "linkedClientIds": []}

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self):
        async with make_store(lambda request: httpx.Response(404, json={})) as store:
            assert await store.get("clients", "nope") is None

    @pytest.mark.asyncio
    async def test_query_builds_composite_filter(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                200,
                json=[
                    {"document": {"name": f"{ROOT}/engagements/ENG2", "fields": {}}},
                    {"readTime": "2025-06-15T10:30:00Z"},
                ],
            )

        async with make_store(handler) as store:
            docs = await store.query(
                "engagements",
                [
                    Filter("assignedTo", "array-contains", "E001"),
                    Filter("status", "in", ["Pending", "On Hold"]),
                ],
            )

        assert docs == [{"id": "ENG2"}]
        assert seen["path"].endswith("/documents:runQuery")
        query = seen["body"]["structuredQuery"]
        assert query["from"] == [{"collectionId": "engagements"}]
        composite = query["where"]["compositeFilter"]
        assert composite["op"] == "AND"
        assert [f["fieldFilter"]["op"] for f in composite["filters"]] == ["ARRAY_CONTAINS", "IN"]

    @pytest.mark.asyncio
    async def test_query_without_filters_has_no_where(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=[])

        async with make_store(handler) as store:
            assert await store.fetch_all("firms") == []

        assert "where" not in seen["body"]["structuredQuery"]

    @pytest.mark.asyncio
    async def test_batch_commits_in_one_request(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(json.loads(request.content))
            return httpx.Response(200, json={"writeResults": [{}, {}]})

        async with make_store(handler) as store:
            batch = store.batch()
            batch.set("todos", "t1", {"id": "t1", "text": "Cover"})
            batch.update("engagements", "ENG2", {"assignedTo": ["E002"]})
            await batch.commit()

        assert len(requests) == 1
        create, update = requests[0]["writes"]
        assert create["update"]["name"] == f"{ROOT}/todos/t1"
        assert "updateMask" not in create
        assert update["updateMask"] == {"fieldPaths": ["assignedTo"]}
        assert update["currentDocument"] == {"exists": True}

    @pytest.mark.asyncio
    async def test_empty_batch_sends_nothing(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        async with make_store(handler) as store:
            await store.batch().commit()

    @pytest.mark.asyncio
    async def test_bearer_token_is_sent(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={})

        async with make_store(handler, token="secret-token") as store:
            await store.set("todos", "t1", {"id": "t1"})

        assert seen["auth"] == "Bearer secret-token"

    @pytest.mark.asyncio
    async def test_http_error_raises_store_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, json={"error": {"message": "boom"}})

        async with make_store(handler) as store:
            with pytest.raises(StoreError) as exc_info:
                await store.get("clients", "C001")

        assert exc_info.value.status_code == 500
        assert exc_info.value.details == {"error": {"message": "boom"}}

    @pytest.mark.asyncio
    async def test_transport_error_raises_store_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with make_store(handler) as store:
            with pytest.raises(StoreError):
                await store.query("clients")
