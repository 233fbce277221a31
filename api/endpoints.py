# api/endpoints.py
"""
HTTP surface of the RAG workbench.

No authentication: documents live in process memory and are shared by every
caller of this instance.
"""
import json
import logging
import time
from contextlib import aclosing
from typing import AsyncIterator, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from fastapi.responses import StreamingResponse

from config import settings
from core.domain import ErrorCode, RAGError
from core.interfaces import IRAGService
from services.cost_estimator import RATE_TABLE
from services.factory import get_llm_service, get_rag_service
from services.llm_service import LLMService
from services.source_extractor import extract_sources
from services.stream_orchestrator import StreamOrchestrator
from api.schemas import (
    ChatRequest,
    CitationItem,
    DeleteResponse,
    DocumentsListItem,
    DocumentsListResponse,
    ModelItem,
    ModelsResponse,
    SearchRequest,
    SearchResponse,
    SearchResultItem,
    StatusResponse,
    UploadResponse,
)

logger = logging.getLogger(settings.LOGGER_NAME)

router = APIRouter()

ERROR_STATUS = {
    ErrorCode.VALIDATION_FAILED: 400,
    ErrorCode.FILE_TOO_LARGE: 413,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.CONFIGURATION_ERROR: 500,
    ErrorCode.UPSTREAM_ERROR: 502,
}

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def to_http_exception(error: RAGError) -> HTTPException:
    status_code = ERROR_STATUS.get(error.error_code, 500)
    if status_code >= 500:
        logger.error(f"Request failed: {error}")
    else:
        logger.info(f"Request rejected: {error}")
    return HTTPException(status_code=status_code, detail=error.message)


# ---------- Documents ----------
@router.post("/documents", response_model=UploadResponse)
async def upload_document(
    file: Optional[UploadFile] = File(None),
    rag_service: IRAGService = Depends(get_rag_service),
) -> UploadResponse:
    try:
        document = await rag_service.process_document(file)
    except RAGError as e:
        raise to_http_exception(e) from e

    return UploadResponse(
        document_id=document.id,
        name=document.name,
        chunks=len(document.chunks),
        tokens=document.tokens,
        size=document.size,
    )


@router.get("/documents", response_model=DocumentsListResponse)
async def list_documents(rag_service: IRAGService = Depends(get_rag_service)) -> DocumentsListResponse:
    documents = await rag_service.list_documents()
    items = [
        DocumentsListItem(
            id=doc.id,
            name=doc.name,
            created_at=doc.created_at.isoformat(),
            size=doc.size,
            chunks=len(doc.chunks),
            tokens=doc.tokens,
        )
        for doc in documents
    ]
    return DocumentsListResponse(documents=items, total=len(items))


@router.delete("/documents", response_model=DeleteResponse)
async def delete_document(
    document_id: Optional[str] = Query(None, alias="id"),
    rag_service: IRAGService = Depends(get_rag_service),
) -> DeleteResponse:
    try:
        await rag_service.delete_document(document_id)
    except RAGError as e:
        raise to_http_exception(e) from e
    return DeleteResponse(status="success", message="Document deleted successfully")


# ---------- Search ----------
@router.post("/search", response_model=SearchResponse)
async def search_endpoint(
    search_request: SearchRequest,
    rag_service: IRAGService = Depends(get_rag_service),
) -> SearchResponse:
    try:
        results = await rag_service.search(
            search_request.query,
            top_k=search_request.top_k,
            document_ids=search_request.document_ids,
        )
    except RAGError as e:
        raise to_http_exception(e) from e

    sources = extract_sources(results)
    items = [
        SearchResultItem(
            document_id=r.document.id,
            document_name=r.document.name,
            chunk_id=r.chunk.id,
            text=r.chunk.text,
            score=r.score,
            tokens=r.chunk.tokens,
            source=CitationItem(**source.to_dict()),
        )
        for r, source in zip(results, sources)
    ]
    return SearchResponse(results=items, total=len(items))


# ---------- Chat (SSE) ----------
async def _sse_stream(orchestrator: StreamOrchestrator) -> AsyncIterator[str]:
    # Closing this generator (client gone) closes the orchestrator and the upstream request
    async with aclosing(orchestrator.events()) as events:
        async for event in events:
            yield f"data: {json.dumps(event.to_dict())}\n\n"


@router.post("/chat")
async def chat_endpoint(
    chat_request: ChatRequest,
    rag_service: IRAGService = Depends(get_rag_service),
    llm_service: LLMService = Depends(get_llm_service),
) -> StreamingResponse:
    started = time.perf_counter()
    try:
        plan = await rag_service.prepare_chat(chat_request.to_query())
        provider = llm_service.create_adapter(plan.provider)
    except RAGError as e:
        raise to_http_exception(e) from e

    logger.info(
        f"Streaming {plan.provider}/{plan.params.model} answer "
        f"({len(plan.sources)} sources, {plan.prompt_tokens} prompt tokens)"
    )
    orchestrator = StreamOrchestrator(plan, provider, started_at=started)
    return StreamingResponse(
        _sse_stream(orchestrator),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


# ---------- Service status ----------
@router.get("/status", response_model=StatusResponse)
async def get_status(rag_service: IRAGService = Depends(get_rag_service)) -> StatusResponse:
    status = await rag_service.get_status()
    return StatusResponse(**status)


@router.get("/models", response_model=ModelsResponse)
async def list_models() -> ModelsResponse:
    models = [
        ModelItem(id=model_id, provider=rate.provider, input_rate=float(rate.input), output_rate=float(rate.output))
        for model_id, rate in RATE_TABLE.items()
    ]
    return ModelsResponse(models=models, total=len(models))
