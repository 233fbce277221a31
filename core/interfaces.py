"""Core interfaces for the RAG system"""
from abc import ABC, abstractmethod
from typing import AsyncIterator, Dict, Any, List, Optional, Sequence

from fastapi import UploadFile

from core.domain import (
    ChatPlan, ChunkSearchResult, Document, DocumentChunk, GenerationParams, RAGQuery
)

# ============= Chunker Interface =============
class IChunker(ABC):
    """Splits raw document text into token-bounded chunks."""

    @abstractmethod
    def chunk(self, content: str, document_id: str = "") -> List[DocumentChunk]:
        """
        Split content into ordered chunks under the token ceiling.

        Whitespace-only content yields an empty list; the caller rejects it.
        """
        pass

# ============= Scoring Strategy Interface =============
class IScoringStrategy(ABC):
    """Pluggable lexical relevance function."""

    name: str

    @abstractmethod
    def score(self, query: str, chunks: Sequence[DocumentChunk]) -> List[float]:
        """Return one relevance score per chunk (higher = more relevant)."""
        pass

# ============= Repository Interfaces =============
class IDocumentRepository(ABC):
    """
    Interface for document storage.

    Implementations: InMemoryDocumentRepository. Swap for a persistent
    backend without touching the pipeline.
    """

    @abstractmethod
    async def add(self, document: Document) -> Document:
        """Append a fully chunked document."""
        pass

    @abstractmethod
    async def get_by_id(self, document_id: str) -> Optional[Document]:
        """Get document by ID"""
        pass

    @abstractmethod
    async def list_all(self) -> List[Document]:
        """List all documents in ingestion order"""
        pass

    @abstractmethod
    async def delete(self, document_id: str) -> bool:
        """Delete document; False when it does not exist"""
        pass

    @abstractmethod
    async def count(self) -> int:
        pass

# ============= LLM Provider Interface =============
class ILLMProvider(ABC):
    """
    Streaming completion adapter for one upstream provider.

    Each implementation only translates its own wire format into a
    sequence of text fragments.
    """

    name: str

    @abstractmethod
    def stream(self, prompt: str, params: GenerationParams) -> AsyncIterator[str]:
        """
        Yield text fragments of the completion as they arrive.

        Raises:
            UpstreamError: HTTP failure, malformed payload or timeout
        """
        pass

# ============= Service Layer Interfaces =============
class IRAGService(ABC):
    """High-level RAG operations interface"""

    document_repo: IDocumentRepository

    @abstractmethod
    async def get_status(self) -> Dict[str, Any]:
        """Get system status"""
        pass

    @abstractmethod
    async def process_document(self, file: UploadFile) -> Document:
        """Validate, decode and chunk an uploaded text file, then store it."""
        pass

    @abstractmethod
    async def list_documents(self) -> List[Document]:
        pass

    @abstractmethod
    async def delete_document(self, document_id: str) -> None:
        """Raises NotFoundError when the document does not exist."""
        pass

    @abstractmethod
    async def search(
        self,
        query: Optional[str],
        top_k: Optional[int] = None,
        document_ids: Optional[List[str]] = None
    ) -> List[ChunkSearchResult]:
        """Validated search; raises NotFoundError when nothing is relevant."""
        pass

    @abstractmethod
    async def prepare_chat(self, request: RAGQuery) -> ChatPlan:
        """Run validation, retrieval and context assembly ahead of streaming."""
        pass
