"""Domain models, enumerations and errors shared across the application."""
from abc import ABC, abstractmethod
from enum import Enum

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Dict, Any, Optional, Tuple

from utils.tokens import estimate_tokens

# ============= Enums =============

class ErrorCode(str, Enum):
    """Error codes for user-facing error messages."""
    VALIDATION_FAILED = "VALIDATION_FAILED"
    FILE_TOO_LARGE = "FILE_TOO_LARGE"
    NOT_FOUND = "NOT_FOUND"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    UPSTREAM_ERROR = "UPSTREAM_ERROR"


class PipelineState(str, Enum):
    """Lifecycle of a single chat query."""
    IDLE = "idle"
    SEARCHING = "searching"
    CONTEXT_BUILT = "context_built"
    STREAMING = "streaming"
    DONE = "done"
    ERRORED = "errored"


class DecodeKind(str, Enum):
    """Outcome of decoding one line of an upstream stream."""
    FRAGMENT = "fragment"
    SKIP = "skip"
    DONE = "done"
    ERROR = "error"


# ============= Errors =============

class RAGError(Exception):
    """Base error carrying a user-facing code"""

    def __init__(self, message: str, error_code: ErrorCode):
        self.message = message
        self.error_code = error_code
        super().__init__(message)

    def __str__(self):
        # Format used for logging
        return f"[{self.error_code.value}] {self.message}"


class ValidationError(RAGError):
    def __init__(self, message: str):
        super().__init__(message, ErrorCode.VALIDATION_FAILED)


class FileTooLargeError(RAGError):
    def __init__(self, message: str):
        super().__init__(message, ErrorCode.FILE_TOO_LARGE)


class NotFoundError(RAGError):
    def __init__(self, message: str):
        super().__init__(message, ErrorCode.NOT_FOUND)


class ConfigurationError(RAGError):
    def __init__(self, message: str):
        super().__init__(message, ErrorCode.CONFIGURATION_ERROR)


class UpstreamError(RAGError):
    """Provider HTTP failure, malformed payload or timeout."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message, ErrorCode.UPSTREAM_ERROR)


# ============= Domain Models =============

@dataclass(frozen=True)
class DocumentChunk:
    """Retrievable slice of a document"""
    id: str
    document_id: str
    text: str
    tokens: int
    position: int       # Index within the owning document
    start_offset: int   # Character offset into the document content
    end_offset: int


@dataclass(frozen=True)
class Document:
    """Ingested text document. Never mutated after creation."""
    id: str
    name: str
    content: str
    created_at: datetime
    chunks: Tuple[DocumentChunk, ...] = ()

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def tokens(self) -> int:
        return estimate_tokens(self.content)


@dataclass(frozen=True)
class ChunkSearchResult:
    """Scored match of a chunk against a query"""
    document: Document
    chunk: DocumentChunk
    score: float


@dataclass
class RAGQuery:
    """Caller request for a retrieval-augmented completion"""
    query: Optional[str]
    provider: Optional[str]
    model: Optional[str]
    document_ids: Optional[List[str]] = None
    top_k: Optional[int] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None


@dataclass(frozen=True)
class GenerationParams:
    model: str
    temperature: float
    max_tokens: int


@dataclass
class Citation:
    """Client-facing provenance record for one search result"""
    id: str
    source: str
    excerpt: str
    confidence: float
    url: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "source": self.source,
            "excerpt": self.excerpt,
            "confidence": self.confidence,
            "metadata": dict(self.metadata),
        }
        if self.url:
            data["url"] = self.url
        return data


@dataclass(frozen=True)
class AssembledContext:
    """Packed context plus the results that made it in"""
    text: str
    tokens: int
    results: Tuple[ChunkSearchResult, ...]


@dataclass(frozen=True)
class UsageAccounting:
    """Token and cost ledger for one query"""
    context_tokens: int
    prompt_tokens: int
    completion_tokens: int
    cost: Decimal

    @property
    def total_tokens(self) -> int:
        return self.context_tokens + self.prompt_tokens + self.completion_tokens

    def tokens_dict(self) -> Dict[str, int]:
        return {
            "context": self.context_tokens,
            "prompt": self.prompt_tokens,
            "completion": self.completion_tokens,
            "total": self.total_tokens,
        }


@dataclass
class ChatPlan:
    """Everything the stream needs, computed before the first byte is sent"""
    query: str
    provider: str
    params: GenerationParams
    prompt: str
    context: AssembledContext
    prompt_tokens: int
    sources: List[Citation]


@dataclass(frozen=True)
class DecodeResult:
    """Decoded form of one upstream stream line"""
    kind: DecodeKind
    text: str = ""
    error: Optional[str] = None

    @classmethod
    def fragment(cls, text: str) -> "DecodeResult":
        return cls(DecodeKind.FRAGMENT, text=text)

    @classmethod
    def skip(cls) -> "DecodeResult":
        return cls(DecodeKind.SKIP)

    @classmethod
    def done(cls) -> "DecodeResult":
        return cls(DecodeKind.DONE)

    @classmethod
    def failed(cls, error: str) -> "DecodeResult":
        return cls(DecodeKind.ERROR, error=error)


# ============= Stream Events =============

@dataclass(frozen=True)
class StreamEvent(ABC):
    """One unit of the client-facing stream protocol"""
    type: str = ""

    @property
    def is_terminal(self) -> bool:
        return self.type in ("done", "error")

    @abstractmethod
    def to_dict(self) -> Dict[str, Any]:
        pass


@dataclass(frozen=True)
class MetadataEvent(StreamEvent):
    sources: Tuple[Citation, ...] = ()
    context_tokens: int = 0
    prompt_tokens: int = 0
    type: str = "metadata"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "sources": [s.to_dict() for s in self.sources],
            "contextTokens": self.context_tokens,
            "promptTokens": self.prompt_tokens,
        }


@dataclass(frozen=True)
class ContentEvent(StreamEvent):
    content: str = ""
    type: str = "content"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "content": self.content}


@dataclass(frozen=True)
class DoneEvent(StreamEvent):
    usage: Optional[UsageAccounting] = None
    response_time: int = 0  # milliseconds
    type: str = "done"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "tokens": self.usage.tokens_dict() if self.usage else {},
            "cost": float(self.usage.cost) if self.usage else 0.0,
            "responseTime": self.response_time,
        }


@dataclass(frozen=True)
class ErrorEvent(StreamEvent):
    error: str = ""
    type: str = "error"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "error": self.error}
