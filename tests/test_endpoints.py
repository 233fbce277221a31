"""HTTP surface: documents, search, chat streaming, status and models."""
import json

import httpx
import pytest

from config import settings
from conftest import anthropic_sse, openai_sse, parse_sse, sse_response

REFUND_DOC = b"Our refund policy allows returns within 30 days. Refund requests need a receipt."
SHIPPING_DOC = b"Shipping takes five business days. Shipping is free for orders over fifty dollars."


def _upload(client, name="notes.txt", content=REFUND_DOC, mime="text/plain"):
    return client.post("/documents", files={"file": (name, content, mime)})


def _chat(client, **overrides):
    body = {"query": "What is the refund policy?", "provider": "openai", "model": "gpt-3.5-turbo"}
    body.update(overrides)
    return client.post("/chat", json=body)


# ---------- Documents ----------

class TestUpload:

    def test_upload_text_document(self, client):
        response = _upload(client)

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "notes.txt"
        assert data["chunks"] == 1
        assert data["size"] == len(REFUND_DOC)
        assert data["tokens"] == -(-len(REFUND_DOC) // 4)
        assert data["documentId"]

    def test_markdown_accepted_by_extension(self, client):
        response = _upload(client, name="readme.md", content=b"# Title\n\nBody", mime="application/octet-stream")
        assert response.status_code == 200

    def test_rejects_other_types(self, client):
        response = _upload(client, name="report.pdf", content=b"%PDF-1.4", mime="application/pdf")

        assert response.status_code == 400
        assert "Invalid file type" in response.json()["detail"]

    def test_rejects_empty_file(self, client):
        response = _upload(client, content=b"   \n  ")

        assert response.status_code == 400
        assert response.json()["detail"] == "File is empty"

    def test_rejects_binary_content(self, client):
        assert _upload(client, content=b"\xff\xfe\x00\x80binary").status_code == 400

    def test_missing_file(self, client):
        response = client.post("/documents")

        assert response.status_code == 400
        assert response.json()["detail"] == "No file provided"

    def test_file_too_large(self, client, monkeypatch):
        monkeypatch.setattr(settings, "MAX_FILE_SIZE", 16)

        assert _upload(client).status_code == 413


class TestDocuments:

    def test_list_documents(self, client):
        _upload(client, name="a.txt")
        _upload(client, name="b.txt", content=SHIPPING_DOC)

        data = client.get("/documents").json()

        assert data["total"] == 2
        assert [d["name"] for d in data["documents"]] == ["a.txt", "b.txt"]
        first = data["documents"][0]
        assert set(first) == {"id", "name", "createdAt", "size", "chunks", "tokens"}

    def test_delete_document(self, client):
        doc_id = _upload(client).json()["documentId"]

        response = client.delete("/documents", params={"id": doc_id})

        assert response.status_code == 200
        assert client.get("/documents").json()["total"] == 0

    def test_delete_unknown_document(self, client):
        assert client.delete("/documents", params={"id": "nope"}).status_code == 404

    def test_delete_without_id(self, client):
        assert client.delete("/documents").status_code == 400


# ---------- Search ----------

class TestSearch:

    def test_search_ranks_matching_document_first(self, client):
        doc_a = _upload(client, name="a.txt").json()["documentId"]
        _upload(client, name="b.txt", content=SHIPPING_DOC)

        response = client.post("/search", json={"query": "refund policy", "topK": 2})

        assert response.status_code == 200
        data = response.json()
        assert 1 <= data["total"] <= 2
        top = data["results"][0]
        assert top["documentId"] == doc_a
        assert set(top) == {"documentId", "documentName", "chunkId", "text", "score", "tokens", "source"}

        citation = top["source"]
        assert {"id", "source", "excerpt", "confidence", "metadata"} <= set(citation)
        assert citation["id"] == top["chunkId"]
        assert citation["source"] == "a.txt"
        assert citation["excerpt"] == top["text"]
        assert 0 <= citation["confidence"] <= 1
        assert citation["metadata"]["documentId"] == doc_a
        assert citation["metadata"]["chunkIndex"] == 0
        assert citation["metadata"]["relevanceScore"] == pytest.approx(top["score"])

    def test_search_restricted_to_documents(self, client):
        _upload(client, name="a.txt")
        doc_b = _upload(client, name="b.txt", content=SHIPPING_DOC + b" Refund not available.").json()["documentId"]

        data = client.post("/search", json={"query": "refund", "documentIds": [doc_b]}).json()

        assert data["total"] >= 1
        assert all(r["documentId"] == doc_b for r in data["results"])

    def test_deleted_document_never_returned(self, client):
        doc_a = _upload(client, name="a.txt").json()["documentId"]
        _upload(client, name="b.txt", content=SHIPPING_DOC + b" Refund not available.")
        client.delete("/documents", params={"id": doc_a})

        data = client.post("/search", json={"query": "refund"}).json()

        assert all(r["documentId"] != doc_a for r in data["results"])
        assert doc_a not in [d["id"] for d in client.get("/documents").json()["documents"]]

    def test_search_without_documents(self, client):
        assert client.post("/search", json={"query": "refund"}).status_code == 404

    def test_search_without_results(self, client):
        _upload(client)
        assert client.post("/search", json={"query": "zebra"}).status_code == 404

    @pytest.mark.parametrize("body", [{}, {"query": "   "}, {"query": "refund", "topK": 0}, {"query": "refund", "topK": 500}])
    def test_invalid_search_requests(self, client, body):
        _upload(client)
        assert client.post("/search", json=body).status_code == 400

    def test_malformed_body_is_400(self, client):
        assert client.post("/search", json={"query": "refund", "topK": "many"}).status_code == 400


# ---------- Chat ----------

class TestChat:

    def test_streams_normalized_events(self, client, upstream):
        _upload(client)
        upstream.handler = lambda request: sse_response(openai_sse(["Returns ", "within ", "30 days."]))

        response = _chat(client)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        events = parse_sse(response.text)
        assert [e["type"] for e in events] == ["metadata", "content", "content", "content", "done"]

        metadata, done = events[0], events[-1]
        assert metadata["sources"][0]["source"] == "notes.txt"
        assert 0 < metadata["sources"][0]["confidence"] <= 1
        assert "".join(e["content"] for e in events[1:-1]) == "Returns within 30 days."

        tokens = done["tokens"]
        assert tokens["context"] == metadata["contextTokens"]
        assert tokens["prompt"] == metadata["promptTokens"]
        assert tokens["completion"] == 3
        assert tokens["total"] == tokens["context"] + tokens["prompt"] + tokens["completion"]
        expected_cost = (
            (tokens["context"] + tokens["prompt"]) / 1000 * 0.0015 + tokens["completion"] / 1000 * 0.002
        )
        assert done["cost"] == pytest.approx(expected_cost)

    def test_prompt_sent_upstream_contains_context(self, client, upstream):
        _upload(client)

        _chat(client)

        prompt = json.loads(upstream.requests[0].content)["messages"][0]["content"]
        assert "[Source: notes.txt, Chunk 1]" in prompt
        assert prompt.index("refund policy allows returns") < prompt.index("User Question: What is the refund policy?")

    def test_anthropic_provider(self, client, upstream):
        _upload(client)
        upstream.handler = lambda request: sse_response(anthropic_sse(["Thirty ", "days."]))

        events = parse_sse(_chat(client, provider="anthropic", model="claude-3-haiku").text)

        assert [e["type"] for e in events] == ["metadata", "content", "content", "done"]
        assert upstream.requests[0].headers["x-api-key"] == "sk-ant-test"

    def test_upstream_failure_becomes_error_event(self, client, upstream):
        _upload(client)
        upstream.handler = lambda request: httpx.Response(500, text="internal error")

        response = _chat(client)

        assert response.status_code == 200
        events = parse_sse(response.text)
        assert [e["type"] for e in events] == ["metadata", "error"]
        assert "HTTP 500" in events[-1]["error"]

    def test_missing_credential_rejected_before_stream(self, client, upstream):
        _upload(client)

        response = _chat(client, provider="google", model="gemini-pro")

        assert response.status_code == 500
        assert "GOOGLE_API_KEY" in response.json()["detail"]
        assert upstream.requests == []

    @pytest.mark.parametrize("missing", ["query", "provider", "model"])
    def test_missing_fields(self, client, missing):
        _upload(client)
        body = {"query": "refund", "provider": "openai", "model": "gpt-4"}
        del body[missing]

        response = client.post("/chat", json=body)

        assert response.status_code == 400
        assert missing in response.json()["detail"]

    def test_unknown_model(self, client, upstream):
        _upload(client)
        assert _chat(client, model="gpt-99").status_code == 400
        assert upstream.requests == []

    def test_unknown_provider(self, client):
        _upload(client)
        assert _chat(client, provider="cohere").status_code == 400

    def test_model_provider_mismatch(self, client):
        _upload(client)
        assert _chat(client, provider="anthropic", model="gpt-4").status_code == 400

    def test_no_documents(self, client, upstream):
        assert _chat(client).status_code == 404
        assert upstream.requests == []

    def test_no_relevant_content(self, client, upstream):
        _upload(client)
        assert _chat(client, query="zebra migration").status_code == 404
        assert upstream.requests == []


# ---------- Status / models ----------

def test_status(client):
    assert client.get("/status").json() == {
        "documents": 0,
        "chunks": 0,
        "readyForQueries": False,
        "providers": {"openai": True, "anthropic": True, "google": False},
    }

    _upload(client)
    status = client.get("/status").json()
    assert status["documents"] == 1
    assert status["chunks"] == 1
    assert status["readyForQueries"] is True


def test_models(client):
    data = client.get("/models").json()

    assert data["total"] == len(data["models"])
    gpt4 = next(m for m in data["models"] if m["id"] == "gpt-4")
    assert gpt4 == {"id": "gpt-4", "provider": "openai", "inputRate": 0.03, "outputRate": 0.06}
