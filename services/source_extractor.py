"""Citation records for search results"""
import math
from typing import List, Optional, Sequence

from config import settings
from core.domain import ChunkSearchResult, Citation


def score_to_confidence(score: float, scale: Optional[float] = None) -> float:
    """Monotonic map of an unbounded score onto [0, 1]."""
    scale = scale or settings.CONFIDENCE_SCALE
    if score <= 0:
        return 0.0
    return min(1.0, 1.0 - math.exp(-score / scale))


def make_excerpt(text: str, length: Optional[int] = None) -> str:
    length = length or settings.EXCERPT_LENGTH
    if len(text) <= length:
        return text
    return text[:length].rstrip() + "..."


def extract_sources(results: Sequence[ChunkSearchResult]) -> List[Citation]:
    """One citation per result, in rank order. Pure: no I/O, no state."""
    return [
        Citation(
            id=result.chunk.id,
            source=result.document.name,
            excerpt=make_excerpt(result.chunk.text),
            confidence=score_to_confidence(result.score),
            metadata={
                "documentId": result.document.id,
                "documentName": result.document.name,
                "chunkId": result.chunk.id,
                "chunkIndex": index,
                "relevanceScore": result.score,
            },
        )
        for index, result in enumerate(results)
    ]
