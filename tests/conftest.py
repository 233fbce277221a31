"""Shared fixtures: documents, fake providers, upstream SSE bodies and an API client."""
import json
from datetime import datetime, timezone
from typing import Callable, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from config import Settings
from core.domain import Document, GenerationParams
from core.interfaces import ILLMProvider
from infrastructure.document_processors import TextChunker
from infrastructure.repositories import InMemoryDocumentRepository
from services.factory import get_document_repository, get_llm_service
from services.llm_service import LLMService


def make_document(doc_id: str, text: str, name: Optional[str] = None, max_tokens: int = 500) -> Document:
    chunks = TextChunker(max_tokens=max_tokens).chunk(text, doc_id)
    return Document(
        id=doc_id,
        name=name or f"{doc_id}.txt",
        content=text,
        created_at=datetime.now(timezone.utc),
        chunks=tuple(chunks),
    )


# ---------- Upstream SSE bodies ----------

def openai_sse(fragments: List[str]) -> str:
    events = [
        "data: " + json.dumps({"choices": [{"index": 0, "delta": {"content": f}}]}) + "\n\n"
        for f in fragments
    ]
    return "".join(events) + "data: [DONE]\n\n"


def anthropic_sse(fragments: List[str]) -> str:
    events = ["event: message_start\ndata: " + json.dumps({"type": "message_start", "message": {}}) + "\n\n"]
    for f in fragments:
        payload = {"type": "content_block_delta", "index": 0, "delta": {"type": "text_delta", "text": f}}
        events.append("event: content_block_delta\ndata: " + json.dumps(payload) + "\n\n")
    events.append("event: message_stop\ndata: " + json.dumps({"type": "message_stop"}) + "\n\n")
    return "".join(events)


def google_sse(fragments: List[str]) -> str:
    return "".join(
        "data: " + json.dumps({"candidates": [{"content": {"role": "model", "parts": [{"text": f}]}}]}) + "\n\n"
        for f in fragments
    )


def sse_response(body: str, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, text=body, headers={"content-type": "text/event-stream"})


def parse_sse(text: str) -> List[dict]:
    return [
        json.loads(block[len("data: "):])
        for block in text.split("\n\n")
        if block.startswith("data: ")
    ]


# ---------- Fakes ----------

class FakeProvider(ILLMProvider):
    """Yields fixed fragments, optionally raising after `fail_after` of them."""

    name = "fake"

    def __init__(self, fragments: List[str], error: Optional[Exception] = None, fail_after: int = 0):
        self.fragments = fragments
        self.error = error
        self.fail_after = fail_after
        self.closed = False
        self.calls = 0

    async def stream(self, prompt: str, params: GenerationParams):
        self.calls += 1
        try:
            for index, fragment in enumerate(self.fragments):
                if self.error and index == self.fail_after:
                    raise self.error
                yield fragment
            if self.error and self.fail_after >= len(self.fragments):
                raise self.error
        finally:
            self.closed = True


# ---------- Fixtures ----------

@pytest.fixture
def test_settings() -> Settings:
    """OpenAI and Anthropic configured, Google deliberately missing."""
    return Settings(
        _env_file=None,
        OPENAI_API_KEY="sk-test",
        ANTHROPIC_API_KEY="sk-ant-test",
        GOOGLE_API_KEY=None,
    )


@pytest.fixture
def repository() -> InMemoryDocumentRepository:
    return InMemoryDocumentRepository()


class UpstreamStub:
    """Routes every upstream request to `handler`; records what was sent."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.handler: Callable[[httpx.Request], httpx.Response] = (
            lambda request: sse_response(openai_sse(["Hello", " world"]))
        )

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)


@pytest.fixture
def upstream() -> UpstreamStub:
    return UpstreamStub()


@pytest.fixture
def llm_service(test_settings, upstream) -> LLMService:
    return LLMService(test_settings, transport=httpx.MockTransport(upstream))


@pytest.fixture
def client(repository, llm_service):
    from main import app

    app.dependency_overrides[get_document_repository] = lambda: repository
    app.dependency_overrides[get_llm_service] = lambda: llm_service
    yield TestClient(app)
    app.dependency_overrides.clear()
