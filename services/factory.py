# services/factory.py
from fastapi import Depends

from config import settings
from core.interfaces import IChunker, IDocumentRepository, IRAGService
from infrastructure.document_processors import TextChunker
from infrastructure.repositories import InMemoryDocumentRepository
from services.llm_service import LLMService
from services.rag_service import RAGService
from services.retrieval_strategies import LexicalRetriever, build_scoring_strategy

# Documents live for the lifetime of the process
_document_repository = InMemoryDocumentRepository()


# Provider functions for each component
def get_document_repository() -> IDocumentRepository:
    return _document_repository


def get_chunker() -> IChunker:
    """Create chunker based on configuration."""
    return TextChunker(max_tokens=settings.CHUNK_SIZE_TOKENS)


def get_retriever() -> LexicalRetriever:
    """Create retriever with the configured scoring strategy."""
    return LexicalRetriever(build_scoring_strategy(settings.SCORING_STRATEGY))


def get_llm_service() -> LLMService:
    return LLMService(settings)


# Main service provider using FastAPI DI
def get_rag_service(
    document_repo: IDocumentRepository = Depends(get_document_repository),
    chunker: IChunker = Depends(get_chunker),
    retriever: LexicalRetriever = Depends(get_retriever),
    llm_service: LLMService = Depends(get_llm_service)
) -> IRAGService:
    """
    Create RAG service with full dependency injection.

    Easy to override individual components for testing.
    """
    return RAGService(
        document_repo=document_repo,
        chunker=chunker,
        retriever=retriever,
        llm_service=llm_service
    )
