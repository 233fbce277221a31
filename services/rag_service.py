# services/rag_service.py
import logging
from datetime import datetime, timezone
from typing import List, Dict, Any, Optional

from fastapi import UploadFile

from config import settings
from core.domain import (
    ChatPlan, ChunkSearchResult, Document, GenerationParams, NotFoundError,
    PipelineState, RAGQuery, ValidationError
)
from core.interfaces import IChunker, IDocumentRepository, IRAGService
from services.context_builder import build_context, create_rag_prompt
from services.cost_estimator import get_rate
from services.llm_service import LLMService
from services.retrieval_strategies import LexicalRetriever
from services.source_extractor import extract_sources
from utils.common import decode_text_content, generate_document_id, validate_uploaded_file
from utils.tokens import estimate_tokens

logger = logging.getLogger(settings.LOGGER_NAME)


class RAGService(IRAGService):
    def __init__(
        self,
        document_repo: IDocumentRepository,
        chunker: IChunker,
        retriever: LexicalRetriever,
        llm_service: LLMService
    ):
        self.document_repo = document_repo
        self.chunker = chunker
        self.retriever = retriever
        self.llm_service = llm_service

    # ============ DOCUMENTS ============

    async def process_document(self, file: Optional[UploadFile]) -> Document:
        if file is None or not file.filename:
            raise ValidationError("No file provided")

        # Reject on the declared size before buffering the body
        validate_uploaded_file(file.filename, file.content_type, file.size or 0)
        raw = await file.read()
        validate_uploaded_file(file.filename, file.content_type, len(raw))
        content = decode_text_content(raw, file.filename)

        doc_id = generate_document_id()
        chunks = self.chunker.chunk(content, doc_id)
        if not chunks:
            raise ValidationError("File is empty")

        document = Document(
            id=doc_id,
            name=file.filename,
            content=content,
            created_at=datetime.now(timezone.utc),
            chunks=tuple(chunks),
        )
        await self.document_repo.add(document)
        logger.info(f"Ingested '{file.filename}': {len(chunks)} chunks, ~{document.tokens} tokens")
        return document

    async def list_documents(self) -> List[Document]:
        return await self.document_repo.list_all()

    async def delete_document(self, document_id: Optional[str]) -> None:
        if not document_id:
            raise ValidationError("Document ID is required")
        document = await self.document_repo.get_by_id(document_id)
        if document is None:
            raise NotFoundError("Document not found")
        await self.document_repo.delete(document_id)

    # ============ RETRIEVAL ============

    def _resolve_top_k(self, top_k: Optional[int]) -> int:
        if top_k is None:
            return settings.DEFAULT_TOP_K
        if isinstance(top_k, bool) or not isinstance(top_k, int) or not 1 <= top_k <= settings.MAX_TOP_K:
            raise ValidationError(f"topK must be an integer between 1 and {settings.MAX_TOP_K}")
        return top_k

    async def search(
        self,
        query: Optional[str],
        top_k: Optional[int] = None,
        document_ids: Optional[List[str]] = None
    ) -> List[ChunkSearchResult]:
        if not query or not query.strip():
            raise ValidationError("Query is required")
        k = self._resolve_top_k(top_k)

        documents = await self.document_repo.list_all()
        if not documents:
            raise NotFoundError("No documents available. Please upload a document first")

        results = self.retriever.search(query, documents, top_k=k, document_ids=document_ids)
        logger.info(f"Search '{query[:50]}' over {len(documents)} documents returned {len(results)} results")
        if not results:
            raise NotFoundError("No relevant content found for the query")
        return results

    # ============ CHAT ============

    async def prepare_chat(self, request: RAGQuery) -> ChatPlan:
        """
        Everything that can fail before the first streamed byte.

        Order: required fields, provider name, model rate, credential,
        retrieval, context assembly. A failure at any step raises before the
        upstream provider is contacted.
        """
        missing = [name for name in ("query", "provider", "model") if not getattr(request, name)]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")
        if not request.query.strip():
            raise ValidationError("Query is required")

        provider = self.llm_service.normalize(request.provider)
        rate = get_rate(request.model)
        if rate is None:
            raise ValidationError(f"Unknown model: '{request.model}'")
        if rate.provider != provider:
            raise ValidationError(f"Model '{request.model}' is not served by provider '{provider}'")
        self.llm_service.ensure_ready(provider)

        params = self._generation_params(request)

        logger.debug(f"Chat pipeline: {PipelineState.SEARCHING.value}")
        results = await self.search(request.query, request.top_k, request.document_ids)

        context = build_context(results)
        prompt = create_rag_prompt(request.query, context.text)
        logger.debug(f"Chat pipeline: {PipelineState.CONTEXT_BUILT.value} ({context.tokens} context tokens)")

        return ChatPlan(
            query=request.query,
            provider=provider,
            params=params,
            prompt=prompt,
            context=context,
            prompt_tokens=estimate_tokens(prompt),
            sources=extract_sources(context.results),
        )

    @staticmethod
    def _generation_params(request: RAGQuery) -> GenerationParams:
        temperature = settings.DEFAULT_TEMPERATURE if request.temperature is None else request.temperature
        max_tokens = settings.DEFAULT_MAX_TOKENS if request.max_tokens is None else request.max_tokens
        if not 0 <= temperature <= 2:
            raise ValidationError("temperature must be between 0 and 2")
        if max_tokens < 1:
            raise ValidationError("maxTokens must be at least 1")
        return GenerationParams(model=request.model, temperature=temperature, max_tokens=max_tokens)

    # ============ STATUS ============

    async def get_status(self) -> Dict[str, Any]:
        """Get system status"""
        document_count = await self.document_repo.count()
        documents = await self.document_repo.list_all()
        return {
            "documents": document_count,
            "chunks": sum(len(d.chunks) for d in documents),
            "ready_for_queries": document_count > 0,
            "providers": self.llm_service.configured_providers(),
        }
