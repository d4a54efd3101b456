from __future__ import annotations

import json

import httpx
import pytest

from docintel.app import main
from docintel.metadata.history import QueryHistoryStore
from docintel.rag.errors import ConfigurationError, EmbeddingError
from docintel.rag.index_builder import IndexBuilder
from docintel.rag.pipeline import RetrievalPipeline
from docintel.rag.types import DocumentStatus

pytestmark = pytest.mark.anyio


@pytest.fixture
def pipeline(catalog, storage, embedder, monkeypatch) -> RetrievalPipeline:
    built = RetrievalPipeline(
        index_builder=IndexBuilder(catalog=catalog, storage=storage, embedder=embedder),
        embedder=embedder,
    )
    monkeypatch.setattr(main, "get_pipeline", lambda: built)
    return built


def get_client() -> httpx.AsyncClient:
    transport = httpx.ASGITransport(app=main.app)
    return httpx.AsyncClient(transport=transport, base_url="http://test")


async def test_health_endpoint() -> None:
    async with get_client() as client:
        response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


async def test_query_returns_sources(pipeline, add_text_document) -> None:
    add_text_document(
        "notes",
        "notes.txt",
        "Alice is a software engineer with 5 years experience.",
        owner_id="local",
    )

    async with get_client() as client:
        response = await client.post(
            "/rag/query", json={"question": "What is Alice's profession?", "k": 1}
        )

    assert response.status_code == 200
    payload = response.json()
    assert payload["question"] == "What is Alice's profession?"
    assert response.headers["x-request-id"] == payload["request_id"]
    [source] = payload["sources"]
    assert "software engineer" in source["text"]
    assert source["documentId"] == "notes"
    assert source["documentName"] == "notes.txt"
    assert source["sourceNumber"] == 1


async def test_query_with_document_filter(pipeline, add_text_document) -> None:
    add_text_document("first", "first.txt", "Revenue grew in Europe.", owner_id="local")
    add_text_document("second", "second.txt", "The cafeteria opens at nine.", owner_id="local")

    async with get_client() as client:
        response = await client.post(
            "/rag/query",
            json={"question": "Revenue in Europe", "documentId": "second"},
        )

    assert response.status_code == 200
    assert [source["documentId"] for source in response.json()["sources"]] == ["second"]


async def test_query_without_ready_documents_is_not_found(pipeline, add_text_document) -> None:
    add_text_document("draft", "draft.txt", "content", status=DocumentStatus.UPLOADED, owner_id="local")

    async with get_client() as client:
        response = await client.post("/rag/query", json={"question": "anything"})

    assert response.status_code == 404
    assert "Nothing to search" in response.json()["detail"]


async def test_blank_question_is_rejected(pipeline) -> None:
    async with get_client() as client:
        empty = await client.post("/rag/query", json={"question": ""})
        blank = await client.post("/rag/query", json={"question": "   "})

    assert empty.status_code == 422
    assert blank.status_code == 400


async def test_embedding_failure_is_bad_gateway(pipeline, embedder, add_text_document) -> None:
    add_text_document("notes", "notes.txt", "Alice is a software engineer.", owner_id="local")

    def fail(texts):
        raise EmbeddingError("Embedding provider returned 500", stage="embed")

    embedder.embed_documents = fail

    async with get_client() as client:
        response = await client.post("/rag/query", json={"question": "Alice"})

    assert response.status_code == 502
    assert "sources" not in response.json()


async def test_missing_credential_is_server_error(monkeypatch) -> None:
    def broken_pipeline():
        raise ConfigurationError("HUGGINGFACEHUB_API_KEY is required", stage="configure")

    monkeypatch.setattr(main, "get_pipeline", broken_pipeline)

    async with get_client() as client:
        response = await client.post("/rag/query", json={"question": "Alice"})

    assert response.status_code == 500
    assert "HUGGINGFACEHUB_API_KEY" not in response.text


async def test_api_key_maps_to_user(pipeline, add_text_document, monkeypatch) -> None:
    monkeypatch.setenv("RAG_API_KEY_MAP", json.dumps({"key-1": "user-1"}))
    add_text_document("mine", "mine.txt", "Alice is a software engineer.", owner_id="user-1")
    add_text_document("theirs", "theirs.txt", "Alice is a software engineer.", owner_id="local")

    async with get_client() as client:
        missing = await client.post("/rag/query", json={"question": "Alice"})
        wrong = await client.post(
            "/rag/query", json={"question": "Alice"}, headers={"X-API-Key": "nope"}
        )
        ok = await client.post(
            "/rag/query",
            json={"question": "Alice"},
            headers={"Authorization": "Bearer key-1"},
        )

    assert missing.status_code == 401
    assert wrong.status_code == 401
    assert ok.status_code == 200
    assert [source["documentId"] for source in ok.json()["sources"]] == ["mine"]


async def test_query_history_lists_callers_queries(pipeline, add_text_document, tmp_path, monkeypatch) -> None:
    history = QueryHistoryStore(f"sqlite:///{tmp_path / 'history.db'}")
    pipeline.history = history
    monkeypatch.setattr(main, "get_history_store", lambda: history)
    add_text_document("notes", "notes.txt", "Alice is a software engineer.", owner_id="local")
    history.record("someone-else", "Not mine", [])

    async with get_client() as client:
        await client.post("/rag/query", json={"question": "Who is Alice?"})
        response = await client.get("/queries")

    assert response.status_code == 200
    [entry] = response.json()["queries"]
    assert entry["question"] == "Who is Alice?"
    assert entry["sources"][0]["documentName"] == "notes.txt"


async def test_query_history_disabled_is_not_found(monkeypatch) -> None:
    monkeypatch.setattr(main, "get_history_store", lambda: None)

    async with get_client() as client:
        response = await client.get("/queries")

    assert response.status_code == 404


async def test_request_metrics_carry_retrieval_outcome(pipeline, add_text_document) -> None:
    add_text_document("notes", "notes.txt", "Alice is a software engineer.", owner_id="local")

    async with get_client() as client:
        await client.post("/rag/query", json={"question": "Alice"})
        await client.post("/rag/query", json={"question": "   "})
        response = await client.get("/metrics")

    assert response.status_code == 200
    body = response.text
    assert 'path="/rag/query",status="200",outcome="ok"' in body
    assert 'path="/rag/query",status="400",outcome="InvalidArgumentError"' in body
    assert "docintel_retrieval_duration_seconds" in body
