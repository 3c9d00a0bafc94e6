"""Tests for the HTTP surface of the search service."""

import pytest
from fastapi.testclient import TestClient

from libs.common.config import SearchConfig
from libs.common.metrics import MetricsCollector
from libs.vector_store.base import VectorStoreConnectionError
from service_search.main import app
from tests.conftest import VEC_A, VEC_GROUPS, FakeVectorStore

SEARCH_URL = "/api/v1/collections/docs/search"
BATCH_URL = "/api/v1/collections/docs/search/batch"


@pytest.fixture
def client(fake_store):
    app.state.config = SearchConfig()
    app.state.vector_store = fake_store
    app.state.embedding_client = None
    app.state.metrics_collector = MetricsCollector("test-service")
    yield TestClient(app)
    for attr in ("config", "vector_store", "embedding_client", "metrics_collector"):
        if hasattr(app.state, attr):
            delattr(app.state, attr)


def group_body():
    return {"keys": ["category"], "aggregate": {"$min_k": {"keys": ["#distance"], "k": 2}}}


def test_search_ungrouped(client):
    response = client.post(SEARCH_URL, json={"rank": {"query": VEC_A}, "limit": 2})

    assert response.status_code == 200
    body = response.json()
    assert body["grouped"] is False
    assert body["total"] == 2
    assert body["took"] >= 0
    assert [r["id"] for r in body["results"]] == ["d1", "d2"]
    # absent fields are omitted rather than null
    assert "score" not in body["results"][0]
    assert "X-Process-Time" in response.headers


def test_search_with_select(client):
    response = client.post(SEARCH_URL, json={"rank": {"query": VEC_A}, "select": {"keys": ["category"]}})

    assert response.json()["results"][0] == {"id": "d1", "metadata": {"category": "A"}}


def test_search_grouped(client):
    response = client.post(SEARCH_URL, json={"rank": {"query": VEC_GROUPS}, "groupBy": group_body()})

    assert response.status_code == 200
    body = response.json()
    assert body["grouped"] is True
    assert body["totalGroups"] == 3
    assert body["totalItems"] == 4
    first = body["groups"][0]
    assert first["groupKey"] == "category"
    assert first["groupValue"] == "A"
    assert [i["id"] for i in first["items"]] == ["g1", "g3"]


def test_unknown_collection(client):
    response = client.post("/api/v1/collections/missing/search", json={"rank": {"query": VEC_A}})

    assert response.status_code == 404


def test_missing_rank(client, fake_store):
    response = client.post(SEARCH_URL, json={"limit": 5})

    assert response.status_code == 400
    assert "rank" in response.json()["detail"]
    assert fake_store.calls == []


def test_unsupported_embedding_key(client):
    response = client.post(SEARCH_URL, json={"rank": {"query": VEC_A, "key": "#custom"}})

    assert response.status_code == 400
    assert "#custom" in response.json()["detail"]


def test_store_failure(client):
    app.state.vector_store = FakeVectorStore(error=VectorStoreConnectionError("down"))

    response = client.post(SEARCH_URL, json={"rank": {"query": VEC_A}})

    assert response.status_code == 500
    assert response.json()["detail"].startswith("Search failed")


def test_text_query_without_embedding_service(client):
    response = client.post(SEARCH_URL, json={"rank": {"query": "hello"}})

    assert response.status_code == 500


@pytest.mark.parametrize("body", [
    {"rank": {"query": VEC_A}, "limit": 0},
    {"rank": {"ranks": []}},
    {"rank": {"query": VEC_A}, "groupBy": {"keys": ["#embedding"], "aggregate": {"$min_k": {"keys": ["#score"], "k": 1}}}},
    {"rank": {"query": VEC_A}, "groupBy": {"keys": ["category"], "aggregate": {}}},
])
def test_invalid_request_shape(client, body):
    response = client.post(SEARCH_URL, json=body)

    assert response.status_code == 422


def test_batch_search(client):
    response = client.post(BATCH_URL, json={"searches": [
        {"rank": {"query": VEC_A}, "limit": 1},
        {"rank": {"query": VEC_GROUPS}, "groupBy": group_body()},
    ]})

    assert response.status_code == 200
    body = response.json()
    assert [r["grouped"] for r in body["results"]] == [False, True]
    assert body["results"][0]["results"][0]["id"] == "d1"
    assert body["results"][1]["totalGroups"] == 3
    assert body["took"] >= 0


def test_batch_rejects_empty_list(client):
    assert client.post(BATCH_URL, json={"searches": []}).status_code == 422


def test_batch_missing_rank(client):
    response = client.post(BATCH_URL, json={"searches": [{"rank": {"query": VEC_A}}, {}]})

    assert response.status_code == 400


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy", "service": "search-service"}

    app.state.vector_store = FakeVectorStore(healthy=False)
    assert client.get("/health").status_code == 503


def test_health_without_store(client):
    delattr(app.state, "vector_store")

    assert client.get("/health").status_code == 503


def test_metrics(client):
    client.post(SEARCH_URL, json={"rank": {"query": VEC_A}})

    response = client.get("/metrics")

    assert response.status_code == 200
    assert "search_requests_total" in response.text
    assert 'query_type="knn"' in response.text
    assert "http_requests_total" in response.text


def test_root(client):
    body = client.get("/").json()

    assert body["service"] == "search-service"
    assert body["endpoints"]["search"] == "/api/v1/collections/{name}/search"
