# api/schemas.py
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, Optional, List

from core.domain import RAGQuery


class APIModel(BaseModel):
    """camelCase on the wire, snake_case in Python"""
    model_config = ConfigDict(populate_by_name=True)


# ---------- Requests ----------
# Fields are optional so missing values reach the service layer and get
# reported as validation errors with a readable message.

class SearchRequest(APIModel):
    query: Optional[str] = None
    document_ids: Optional[List[str]] = Field(None, alias="documentIds")
    top_k: Optional[int] = Field(None, alias="topK")


class ChatRequest(APIModel):
    query: Optional[str] = None
    provider: Optional[str] = None
    model: Optional[str] = None
    document_ids: Optional[List[str]] = Field(None, alias="documentIds")
    top_k: Optional[int] = Field(None, alias="topK")
    temperature: Optional[float] = None
    max_tokens: Optional[int] = Field(None, alias="maxTokens")

    def to_query(self) -> RAGQuery:
        return RAGQuery(
            query=self.query,
            provider=self.provider,
            model=self.model,
            document_ids=self.document_ids,
            top_k=self.top_k,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )


# ---------- Responses ----------

class UploadResponse(APIModel):
    document_id: str = Field(alias="documentId")
    name: str
    chunks: int
    tokens: int
    size: int


class DocumentsListItem(APIModel):
    id: str
    name: str
    created_at: str = Field(alias="createdAt")
    size: int
    chunks: int
    tokens: int


class DocumentsListResponse(APIModel):
    documents: List[DocumentsListItem]
    total: int


class CitationItem(APIModel):
    id: str
    source: str
    excerpt: str
    confidence: float
    url: Optional[str] = None
    metadata: Dict[str, Any] = {}


class SearchResultItem(APIModel):
    document_id: str = Field(alias="documentId")
    document_name: str = Field(alias="documentName")
    chunk_id: str = Field(alias="chunkId")
    text: str
    score: float
    tokens: int
    source: CitationItem


class SearchResponse(APIModel):
    results: List[SearchResultItem]
    total: int


class DeleteResponse(BaseModel):
    status: str
    message: str


class StatusResponse(APIModel):
    documents: int = 0
    chunks: int = 0
    ready_for_queries: bool = Field(False, alias="readyForQueries")
    providers: Dict[str, bool] = {}


class ModelItem(APIModel):
    id: str
    provider: str
    input_rate: float = Field(alias="inputRate")
    output_rate: float = Field(alias="outputRate")


class ModelsResponse(BaseModel):
    models: List[ModelItem]
    total: int
