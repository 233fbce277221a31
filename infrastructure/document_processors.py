"""Text chunking for ingested documents.

Splitting is structure-first: paragraphs, then lines, then sentences, then
words, and only as a last resort a hard character cut. Chunk size is
measured with the shared token estimator, so every chunk stays under the
configured token ceiling. No overlap is used: chunks partition the document.
"""
from __future__ import annotations

import logging
from typing import List, Optional

from langchain_text_splitters import RecursiveCharacterTextSplitter

from core.interfaces import IChunker
from core.domain import DocumentChunk
from config import settings
from utils.tokens import estimate_tokens

logger = logging.getLogger(settings.LOGGER_NAME)

DEFAULT_SEPARATORS = ["\n\n", "\n", ". ", "? ", "! ", " ", ""]


class TextChunker(IChunker):
    """Token-bounded chunker backed by a recursive character splitter."""

    def __init__(self, max_tokens: Optional[int] = None, separators: Optional[List[str]] = None):
        self.max_tokens = max_tokens or settings.CHUNK_SIZE_TOKENS
        self._splitter = RecursiveCharacterTextSplitter(
            separators=separators or DEFAULT_SEPARATORS,
            keep_separator="end",
            chunk_size=self.max_tokens,
            chunk_overlap=0,
            length_function=estimate_tokens,
            strip_whitespace=True,
        )

    def chunk(self, content: str, document_id: str = "") -> List[DocumentChunk]:
        if not content or not content.strip():
            return []

        pieces = self._splitter.split_text(content)

        chunks: List[DocumentChunk] = []
        cursor = 0
        for piece in pieces:
            start = content.find(piece, cursor)
            if start < 0:
                logger.warning(f"Chunk {len(chunks)} of document {document_id!r} not located in source text")
                start = cursor
            end = start + len(piece)
            chunks.append(
                DocumentChunk(
                    id=f"{document_id}-chunk-{len(chunks)}",
                    document_id=document_id,
                    text=piece,
                    tokens=estimate_tokens(piece),
                    position=len(chunks),
                    start_offset=start,
                    end_offset=end,
                )
            )
            cursor = end

        logger.debug(f"Split {len(content)} chars into {len(chunks)} chunks (ceiling {self.max_tokens} tokens)")
        return chunks
