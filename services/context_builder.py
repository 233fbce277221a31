"""Context assembly and prompt construction"""
import logging
from typing import Optional, Sequence

from config import settings
from core.domain import AssembledContext, ChunkSearchResult
from utils.tokens import estimate_tokens

logger = logging.getLogger(settings.LOGGER_NAME)

RAG_PROMPT_TEMPLATE = (
    "You are a helpful AI assistant. Answer the user's question based ONLY on the "
    "provided context. If the context doesn't contain relevant information, say so.\n"
    "\n"
    "Context:\n"
    "{context}\n"
    "\n"
    "User Question: {query}\n"
    "\n"
    "Answer:"
)

BLOCK_SEPARATOR = "\n\n"


def source_label(result: ChunkSearchResult, rank: int) -> str:
    return f"[Source: {result.document.name}, Chunk {rank}]"


def build_context(
    results: Sequence[ChunkSearchResult],
    max_tokens: Optional[int] = None
) -> AssembledContext:
    """
    Pack ranked chunks into one context string.

    Chunks are taken in ranking order, each under a source label. The first
    chunk that would push the estimated size past the ceiling is dropped
    together with everything ranked below it; chunks are never cut.
    """
    limit = settings.MAX_CONTEXT_TOKENS if max_tokens is None else max_tokens

    blocks = []
    used = []
    for rank, result in enumerate(results, start=1):
        block = f"{source_label(result, rank)}\n{result.chunk.text}"
        candidate = BLOCK_SEPARATOR.join(blocks + [block])
        if estimate_tokens(candidate) > limit:
            logger.info(
                f"Context budget reached at rank {rank}: "
                f"dropping {len(results) - rank + 1} of {len(results)} results"
            )
            break
        blocks.append(block)
        used.append(result)

    text = BLOCK_SEPARATOR.join(blocks)
    return AssembledContext(text=text, tokens=estimate_tokens(text), results=tuple(used))


def create_rag_prompt(query: str, context: str) -> str:
    """Place retrieved context ahead of the question."""
    return RAG_PROMPT_TEMPLATE.format(context=context, query=query)
